"""
Admin leave actions: apply on behalf of an employee, statistics, the
auto-approval sweep and cancelled-request cleanup.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import Principal, get_collaborators, get_db, require_roles
from app.core.exceptions import LeaveError
from app.models.employee import Role
from app.models.leave import LeaveStatus
from app.schemas.leave import (
    AdminLeaveApplyRequest,
    CancelledCleanupOut,
    CancelledCleanupRequest,
    LeaveOut,
    LeaveStatsOut,
    SweepResultOut,
)
from app.services import leave_service
from app.services.auto_approval_service import DbAutoApprovalConfig, run_auto_approval
from app.services.side_effects import LeaveCollaborators
from app.utils.datetime_utils import one_month_before, today_local

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/apply-for/{employee_id}", response_model=LeaveOut, status_code=201)
async def admin_apply_for_employee(
    employee_id: int,
    leave_data: AdminLeaveApplyRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.HR)),
    collaborators: LeaveCollaborators = Depends(get_collaborators),
):
    """
    Create leave on behalf of an employee.

    Same validation as self-service apply except that backdated dates are
    allowed. With status=approved the request is approved right away by the
    caller (balance debited in that step); the caller's approval authority is
    checked before anything is created, and a request whose approval still
    fails is removed again.
    """
    approve = leave_data.status == LeaveStatus.APPROVED
    if approve:
        leave_service.validate_authority_over(db, employee_id, principal.as_approver())

    leave = leave_service.apply_leave(
        db=db,
        employee_id=employee_id,
        leave_type=leave_data.leave_type,
        start_date=leave_data.start_date,
        end_date=leave_data.end_date,
        reason=leave_data.reason,
        is_half_day=leave_data.is_half_day,
        collaborators=collaborators,
        allow_backdated=True,
    )
    logger.info(
        "Leave applied on behalf: leave_request_id=%s employee_id=%s by=%s",
        leave.id, employee_id, principal.display_name,
    )
    if not approve:
        return leave
    try:
        return leave_service.approve_leave(
            db,
            leave.id,
            principal.as_approver(),
            comment="Applied and approved by admin",
            collaborators=collaborators,
        )
    except LeaveError:
        logger.warning(
            "Approval on behalf failed, removing leave_request_id=%s employee_id=%s",
            leave.id, employee_id,
        )
        leave_service.delete_leave(db, leave.id, actor_id=principal.employee_id, collaborators=collaborators)
        raise


@router.post("/auto-approve/trigger", response_model=SweepResultOut)
async def trigger_auto_approval(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles()),
    collaborators: LeaveCollaborators = Depends(get_collaborators),
):
    """
    Run one auto-approval sweep now (ADMIN only).

    Honors the persisted auto-approve flag; when it is off nothing is approved.
    """
    logger.info("Auto-approval sweep triggered by %s", principal.display_name)
    result = run_auto_approval(db, DbAutoApprovalConfig(db), collaborators=collaborators)
    return SweepResultOut(
        enabled=result.enabled,
        approved_count=result.approved_count,
        total_processed=result.total_processed,
        errors=result.errors,
    )


@router.get("/stats", response_model=LeaveStatsOut)
async def leave_stats(
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Defaults to the current year"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.HR)),
):
    """Counts of requests starting in the year, by status, leave type and month."""
    return leave_service.get_leave_stats(db, year or today_local().year)


@router.post("/cleanup-cancelled", response_model=CancelledCleanupOut)
async def cleanup_cancelled(
    body: CancelledCleanupRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles()),
):
    """Delete CANCELLED requests that ended before the cutoff (ADMIN only)."""
    before = body.before or one_month_before(today_local())
    logger.info("Cancelled leave cleanup triggered by %s before=%s", principal.display_name, before)
    removed = leave_service.cleanup_cancelled_requests(db, before)
    return CancelledCleanupOut(before=before, removed_count=removed)
