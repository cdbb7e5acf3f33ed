"""
Leave endpoints
"""
from typing import Optional, List
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from app.core.deps import (
    Principal,
    get_collaborators,
    get_current_employee,
    get_current_principal,
    get_db,
    require_roles,
)
from app.models.employee import Role, PRIVILEGED_ROLES
from app.models.leave import LeaveStatus
from app.schemas.leave import (
    ApprovalActionRequest,
    LeaveApplyRequest,
    LeaveBalanceOut,
    LeaveBalanceResponse,
    LeaveListResponse,
    LeaveOut,
    LeaveTransactionOut,
    LeaveUpdateRequest,
    RejectActionRequest,
)
from app.services import leave_ledger_service as ledger
from app.services import leave_service
from app.services.side_effects import LeaveCollaborators
from app.utils.datetime_utils import today_local

router = APIRouter()

_PRIVILEGED = {role.value for role in PRIVILEGED_ROLES}


def _can_view_employee(db: Session, principal: Principal, employee_id: int) -> bool:
    """Self, HR/ADMIN, or a manager over the employee's reporting tree"""
    if principal.role in _PRIVILEGED or principal.employee_id == employee_id:
        return True
    if principal.role == Role.MANAGER.value:
        return employee_id in leave_service.get_subordinate_ids(db, principal.employee_id)
    return False


def _ensure_can_view(db: Session, principal: Principal, employee_id: int) -> None:
    if not _can_view_employee(db, principal, employee_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not allowed to view this employee's leave"
        )


def _balance_response(db: Session, employee_id: int, year: Optional[int]) -> LeaveBalanceResponse:
    year = year or today_local().year
    rows = ledger.get_balances(db, employee_id, year)
    return LeaveBalanceResponse(
        employee_id=employee_id,
        year=year,
        balances=[LeaveBalanceOut.model_validate(row) for row in rows],
    )


@router.get("/balance/me", response_model=LeaveBalanceResponse)
async def balance_me(
    year: Optional[int] = Query(None, description="Calendar year (defaults to the current year)"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_employee),
):
    """Current user's ledger rows for the year (earned, sick, casual)."""
    return _balance_response(db, principal.employee_id, year)


@router.get("/balance/{employee_id}", response_model=LeaveBalanceResponse)
async def balance_for_employee(
    employee_id: int,
    year: Optional[int] = Query(None, description="Calendar year (defaults to the current year)"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.MANAGER, Role.HR)),
):
    """
    Ledger rows of another employee

    - HR/ADMIN: any employee
    - MANAGER: employees in their reporting tree
    """
    _ensure_can_view(db, principal, employee_id)
    return _balance_response(db, employee_id, year)


@router.get("/balance/{employee_id}/transactions", response_model=List[LeaveTransactionOut])
async def balance_transactions(
    employee_id: int,
    year: Optional[int] = Query(None, description="Filter by ledger year"),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.HR)),
):
    """Ledger audit trail (allocations, debits, credits, adjustments, carry forward)."""
    return ledger.get_transactions(db, employee_id, year=year, limit=limit)


@router.get("/calendar", response_model=LeaveListResponse)
async def leave_calendar(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Approved and pending leave intersecting the month.

    HR/ADMIN see everyone; managers see themselves and their reporting tree;
    other employees see their own leave.
    """
    employee_ids = None
    if principal.role not in _PRIVILEGED:
        employee_ids = [principal.employee_id]
        if principal.role == Role.MANAGER.value:
            employee_ids += leave_service.get_subordinate_ids(db, principal.employee_id)
    items = leave_service.get_leave_calendar(db, month, year, employee_ids=employee_ids)
    return LeaveListResponse(items=[LeaveOut.model_validate(item) for item in items], total=len(items))


@router.post("/apply", response_model=LeaveOut, status_code=201)
async def apply_leave_endpoint(
    leave_data: LeaveApplyRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_employee),
    collaborators: LeaveCollaborators = Depends(get_collaborators),
):
    """
    Apply for leave (creates PENDING request) for the caller.

    Validations:
    - start_date <= end_date; half-day requires a single date
    - No backdated start (reference timezone)
    - At least one working day (weekends and holidays excluded)
    - No overlap with PENDING/APPROVED leave
    - Sufficient balance (compensation leave is not balance-tracked)
    """
    return leave_service.apply_leave(
        db=db,
        employee_id=principal.employee_id,
        leave_type=leave_data.leave_type,
        start_date=leave_data.start_date,
        end_date=leave_data.end_date,
        reason=leave_data.reason,
        is_half_day=leave_data.is_half_day,
        collaborators=collaborators,
    )


@router.get("/my", response_model=LeaveListResponse)
async def list_my_leaves_endpoint(
    status_filter: Optional[LeaveStatus] = Query(None, alias="status"),
    year: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_employee),
):
    """Current user's leave requests (all statuses unless filtered), newest first."""
    items, total = leave_service.list_leaves(
        db,
        employee_id=principal.employee_id,
        status=status_filter,
        year=year,
        page=page,
        page_size=page_size,
    )
    return LeaveListResponse(items=[LeaveOut.model_validate(item) for item in items], total=total)


@router.get("/pending", response_model=LeaveListResponse)
async def list_pending_leaves_endpoint(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Pending requests the caller may decide

    - Admin accounts, HR and ADMIN: all pending requests
    - MANAGER: pending requests of their reporting tree
    - EMPLOYEE: empty list
    """
    items = leave_service.list_pending_for_approver(db, principal.as_approver())
    return LeaveListResponse(items=[LeaveOut.model_validate(item) for item in items], total=len(items))


@router.get("/{leave_request_id}", response_model=LeaveOut)
async def get_leave_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    leave = leave_service.get_leave(db, leave_request_id)
    _ensure_can_view(db, principal, leave.employee_id)
    return leave


@router.patch("/{leave_request_id}", response_model=LeaveOut)
async def update_leave_endpoint(
    leave_request_id: int,
    changes: LeaveUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Edit a PENDING request (owner, or HR/ADMIN). Changing dates, half-day or
    leave type recomputes working days and re-checks balance and overlap.
    """
    requesting_employee_id = None if principal.role in _PRIVILEGED else principal.employee_id
    return leave_service.update_leave(
        db,
        leave_request_id,
        changes.model_dump(exclude_unset=True),
        requesting_employee_id=requesting_employee_id,
    )


@router.post("/{leave_request_id}/approve", response_model=LeaveOut)
async def approve_leave_endpoint(
    leave_request_id: int,
    approval_data: ApprovalActionRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    collaborators: LeaveCollaborators = Depends(get_collaborators),
):
    """
    Approve a PENDING request

    Authority:
    - Admin accounts, HR and ADMIN: any request
    - MANAGER: requests of their reporting tree
    - Nobody approves their own leave

    The balance is debited in the same transaction as the status change;
    insufficient balance leaves the request PENDING.
    """
    return leave_service.approve_leave(
        db,
        leave_request_id,
        principal.as_approver(),
        comment=approval_data.comment,
        collaborators=collaborators,
    )


@router.post("/{leave_request_id}/reject", response_model=LeaveOut)
async def reject_leave_endpoint(
    leave_request_id: int,
    reject_data: RejectActionRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    collaborators: LeaveCollaborators = Depends(get_collaborators),
):
    """Reject a PENDING request (same authority as approve). No balance change."""
    return leave_service.reject_leave(
        db,
        leave_request_id,
        principal.as_approver(),
        reject_data.rejection_reason,
        collaborators=collaborators,
    )


@router.post("/{leave_request_id}/cancel", response_model=LeaveOut)
async def cancel_leave_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_employee),
    collaborators: LeaveCollaborators = Depends(get_collaborators),
):
    """Owner cancels a PENDING or APPROVED request; approved days are credited back."""
    return leave_service.cancel_leave(
        db,
        leave_request_id,
        principal.employee_id,
        collaborators=collaborators,
    )


@router.delete("/{leave_request_id}", status_code=204)
async def delete_leave_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.HR)),
    collaborators: LeaveCollaborators = Depends(get_collaborators),
):
    """Hard-delete a request (HR/ADMIN). Approved days are credited back first."""
    leave_service.delete_leave(
        db,
        leave_request_id,
        actor_id=principal.employee_id,
        collaborators=collaborators,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
