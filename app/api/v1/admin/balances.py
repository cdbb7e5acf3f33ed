"""
Admin leave balances: list, initialize, adjust, per-employee reset, year-end reset.
"""
from typing import Optional, List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import Principal, get_db, require_roles
from app.models.employee import Role
from app.models.leave import LeaveBalance, LeaveType
from app.schemas.leave import (
    AllocationUpdateRequest,
    BalanceInitializeRequest,
    LeaveBalanceOut,
    LeaveBalanceResponse,
    YearEndResetOut,
    YearEndResetRequest,
)
from app.services import leave_ledger_service as ledger
from app.services import year_end_service
from app.utils.datetime_utils import today_local

router = APIRouter()


@router.get("", response_model=List[LeaveBalanceOut])
async def admin_list_balances(
    year: int = Query(..., description="Calendar year (e.g. 2026)"),
    employee_id: Optional[int] = Query(None, description="Filter by employee ID"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.HR)),
):
    """List ledger rows for the year, optionally for one employee."""
    query = db.query(LeaveBalance).filter(LeaveBalance.year == year)
    if employee_id is not None:
        query = query.filter(LeaveBalance.employee_id == employee_id)
    return query.order_by(LeaveBalance.employee_id, LeaveBalance.leave_type).all()


@router.post("/year-end-reset", response_model=YearEndResetOut)
async def year_end_reset(
    payload: YearEndResetRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles()),
):
    """
    Close a year for every employee (ADMIN only).

    Archives the year's rows and opens year + 1 with the default allocation;
    earned leave carries forward up to the configured cap. Re-running is a no-op
    for rows already handled.
    """
    year = payload.year or today_local().year
    return year_end_service.process_year_end_reset(db, year, actor_id=principal.employee_id)


@router.post("/{employee_id}/initialize", response_model=LeaveBalanceResponse, status_code=201)
async def initialize_employee_balances(
    employee_id: int,
    payload: BalanceInitializeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.HR)),
):
    """
    Create the employee's ledger rows for a year.

    Allocation follows the pro-rata joining table unless a manual value is
    given per leave type. Existing rows are not touched.
    """
    year = payload.year or today_local().year
    overrides = {
        LeaveType.EARNED: payload.earned,
        LeaveType.SICK: payload.sick,
        LeaveType.CASUAL: payload.casual,
    }
    rows = ledger.initialize_balances(
        db,
        employee_id,
        year,
        join_date=payload.join_date,
        overrides={k: v for k, v in overrides.items() if v is not None},
        actor_id=principal.employee_id,
    )
    return LeaveBalanceResponse(
        employee_id=employee_id,
        year=year,
        balances=[LeaveBalanceOut.model_validate(row) for row in rows],
    )


@router.put("/{employee_id}/allocation", response_model=LeaveBalanceOut)
async def adjust_allocation(
    employee_id: int,
    payload: AllocationUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.HR)),
):
    """Change a row's total allocation; used days are kept and available recomputed."""
    return ledger.set_allocation(
        db,
        employee_id,
        payload.year,
        payload.leave_type,
        payload.total_allocated,
        actor_id=principal.employee_id,
    )


@router.post("/{employee_id}/reset")
async def reset_employee_balances(
    employee_id: int,
    target_year: int = Query(..., description="Year to reset; target_year - 1 is archived"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles()),
):
    """Manual per-employee reset for corrections (ADMIN only)."""
    return year_end_service.reset_employee_balances(
        db, employee_id, target_year, actor_id=principal.employee_id
    )
