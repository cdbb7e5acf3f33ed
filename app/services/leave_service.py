"""
Leave service - lifecycle of a leave request

States: PENDING (initial) -> APPROVED | REJECTED | CANCELLED; APPROVED -> CANCELLED;
hard delete from any state. Ledger debit/credit and the status flip commit
together; notifications and calendar sync run after the commit.
"""
import calendar
import logging
from collections import deque
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import (
    ConcurrentModification,
    InsufficientBalance,
    InvalidStateTransition,
    LeaveValidationError,
    NoWorkingDays,
    NotFound,
    PermissionDenied,
)
from app.models.employee import Employee, Role, PRIVILEGED_ROLES
from app.models.leave import LeaveRequest, LeaveStatus, LeaveType
from app.services import leave_ledger_service as ledger
from app.services.approver import (
    Approver,
    EmployeeApprover,
    approver_display_name,
    approver_employee_id,
)
from app.services.side_effects import LeaveCollaborators, default_collaborators, snapshot_leave
from app.services.working_calendar import DbHolidayLookup, HolidayLookup, count_leave_days
from app.utils.datetime_utils import now_utc, today_local

logger = logging.getLogger(__name__)

# Bounded retries when a balance row or request changed under a unit of work
MAX_UNIT_ATTEMPTS = 3

UPDATABLE_FIELDS = frozenset({"leave_type", "start_date", "end_date", "reason", "is_half_day"})
# Updatable fields backed by NOT NULL columns
REQUIRED_FIELDS = frozenset({"leave_type", "start_date", "end_date", "is_half_day"})
CANCELLABLE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


class _RequestChanged(Exception):
    """The request row moved between read and conditional write; the unit is re-run."""


def _run_unit(db: Session, action: str, leave_request_id: Optional[int], unit: Callable[[], Any]) -> Any:
    """
    Run `unit` and commit as one transaction.

    Stale ledger rows (version mismatch) and requests that moved to another
    cancellable state are retried a bounded number of times; any other error
    rolls back and propagates.
    """
    for attempt in range(1, MAX_UNIT_ATTEMPTS + 1):
        try:
            result = unit()
            db.commit()
            return result
        except (StaleDataError, _RequestChanged):
            db.rollback()
            logger.warning(
                "Concurrent modification during %s: leave_request_id=%s attempt=%s/%s",
                action, leave_request_id, attempt, MAX_UNIT_ATTEMPTS,
            )
        except Exception:
            db.rollback()
            raise
    raise ConcurrentModification(
        f"Could not {action} leave request {leave_request_id}: balance kept changing, please retry",
        data={"leave_request_id": leave_request_id, "action": action},
    )


def _claim(db: Session, leave_request_id: int, expected_status: LeaveStatus, values: Dict[str, Any]) -> bool:
    """
    Conditional UPDATE ... WHERE status = expected_status.
    Exactly one concurrent caller wins; the others see False.
    """
    result = db.execute(
        update(LeaveRequest)
        .where(LeaveRequest.id == leave_request_id, LeaveRequest.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _current_status(db: Session, leave_request_id: int) -> Optional[LeaveStatus]:
    return db.execute(
        select(LeaveRequest.status).where(LeaveRequest.id == leave_request_id)
    ).scalar_one_or_none()


def _log_transition(leave_request_id: int, before: LeaveStatus, after: str, action: str) -> None:
    logger.info(
        "leave status transition: leave_request_id=%s before=%s after=%s action=%s",
        leave_request_id, before.value, after, action,
    )


def get_subordinate_ids(db: Session, manager_id: int) -> List[int]:
    """
    All direct and indirect reports of a manager (active employees only).
    Iterative walk of the reporting tree.
    """
    subordinate_ids = []
    queue = deque([manager_id])
    seen = {manager_id}
    while queue:
        current_manager_id = queue.popleft()
        direct_reports = db.query(Employee.id).filter(
            Employee.reporting_manager_id == current_manager_id,
            Employee.active == True,  # noqa: E712
        ).all()
        for (employee_id,) in direct_reports:
            if employee_id in seen:
                continue
            seen.add(employee_id)
            subordinate_ids.append(employee_id)
            queue.append(employee_id)
    return subordinate_ids


def _get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFound("Employee", employee_id)
    return employee


def get_leave(db: Session, leave_request_id: int) -> LeaveRequest:
    """Fetch a leave request or raise NotFound."""
    leave = (
        db.query(LeaveRequest)
        .options(joinedload(LeaveRequest.employee), joinedload(LeaveRequest.approver))
        .filter(LeaveRequest.id == leave_request_id)
        .first()
    )
    if not leave:
        raise NotFound("LeaveRequest", leave_request_id)
    return leave


def _validate_dates(start_date: date, end_date: date, is_half_day: bool) -> None:
    if start_date > end_date:
        raise LeaveValidationError(
            "Start date cannot be after end date",
            data={"start_date": str(start_date), "end_date": str(end_date)},
        )
    if is_half_day and start_date != end_date:
        raise LeaveValidationError(
            "Half-day leave must start and end on the same date",
            data={"start_date": str(start_date), "end_date": str(end_date)},
        )


def _validate_not_backdated(start_date: date, today: date) -> None:
    if start_date < today:
        raise LeaveValidationError(
            "Cannot apply for leave in the past",
            data={"start_date": str(start_date), "today": str(today)},
        )


def _count_days(lookup: HolidayLookup, start_date: date, end_date: date, is_half_day: bool) -> Decimal:
    days = count_leave_days(lookup, start_date, end_date, is_half_day)
    if days <= 0:
        raise NoWorkingDays(start_date, end_date)
    return days


def validate_overlap(
    db: Session,
    employee_id: int,
    start_date: date,
    end_date: date,
    exclude_leave_id: Optional[int] = None,
) -> None:
    """
    Validate that the range doesn't overlap the employee's PENDING or APPROVED
    requests (exclude_leave_id skips the request being updated).

    Raises:
        LeaveValidationError: If an overlapping request exists
    """
    # Overlap: existing.end_date >= new.start_date AND existing.start_date <= new.end_date
    query = db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status.in_([LeaveStatus.PENDING, LeaveStatus.APPROVED]),
        LeaveRequest.end_date >= start_date,
        LeaveRequest.start_date <= end_date,
    )
    if exclude_leave_id:
        query = query.filter(LeaveRequest.id != exclude_leave_id)

    overlapping = query.first()
    if overlapping:
        raise LeaveValidationError(
            f"Leave request overlaps with existing leave from {overlapping.start_date} to {overlapping.end_date}",
            data={"overlapping_leave_request_id": overlapping.id},
        )


def _ensure_available(db: Session, employee_id: int, leave_type: LeaveType, start_date: date, days: Decimal) -> None:
    availability = ledger.check_availability(db, employee_id, leave_type, start_date.year, days)
    if not availability.available:
        raise InsufficientBalance(available=availability.balance, requested=days)


def apply_leave(
    db: Session,
    employee_id: int,
    leave_type: LeaveType,
    start_date: date,
    end_date: date,
    reason: Optional[str] = None,
    is_half_day: bool = False,
    collaborators: Optional[LeaveCollaborators] = None,
    holiday_lookup: Optional[HolidayLookup] = None,
    today: Optional[date] = None,
    allow_backdated: bool = False,
) -> LeaveRequest:
    """
    Create a PENDING leave request.

    Args:
        db: Database session
        employee_id: Employee applying
        leave_type: sick, casual, earned or compensation
        start_date: First day (inclusive)
        end_date: Last day (inclusive)
        reason: Optional free text
        is_half_day: Half a day on start_date (start_date must equal end_date)
        collaborators: Notification/calendar collaborators (defaults from settings)
        holiday_lookup: Holiday source (defaults to the holidays table)
        today: Reference date for the backdating check (defaults to today in settings.TZ)
        allow_backdated: Admin-initiated creation may start in the past

    Returns:
        Created LeaveRequest instance

    Raises:
        NotFound: Unknown employee
        LeaveValidationError: Bad range, half-day mismatch, backdated start, overlap
        NoWorkingDays: Range contains no working day
        InsufficientBalance: Not enough balance for the requested days
    """
    collaborators = collaborators or default_collaborators()
    lookup = holiday_lookup or DbHolidayLookup(db)
    today = today or today_local()

    employee = _get_employee(db, employee_id)
    if not employee.active:
        raise LeaveValidationError(f"Employee {employee_id} is inactive")

    _validate_dates(start_date, end_date, is_half_day)
    if not allow_backdated:
        _validate_not_backdated(start_date, today)
    days = _count_days(lookup, start_date, end_date, is_half_day)
    validate_overlap(db, employee_id, start_date, end_date)
    _ensure_available(db, employee_id, leave_type, start_date, days)

    now = now_utc()
    leave = LeaveRequest(
        employee_id=employee_id,
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date,
        days_count=ledger.quantize_days(days),
        is_half_day=is_half_day,
        reason=reason,
        status=LeaveStatus.PENDING,
        # Suggested approver only; replaced by the actual approver on decision
        approved_by=employee.reporting_manager_id,
        applied_at=now,
        created_at=now,
        updated_at=now,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    logger.info(
        "leave applied: leave_request_id=%s employee_id=%s leave_type=%s start=%s end=%s days=%s",
        leave.id, employee_id, leave_type.value, start_date, end_date, leave.days_count,
    )

    manager = employee.reporting_manager
    collaborators.notify_submitted(manager.email if manager else None, snapshot_leave(leave))
    return leave


def list_leaves(
    db: Session,
    employee_id: Optional[int] = None,
    status: Optional[LeaveStatus] = None,
    year: Optional[int] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[LeaveRequest], int]:
    """
    List leave requests (all statuses unless filtered), newest first.

    Returns:
        (items for the page, total matching)
    """
    query = db.query(LeaveRequest).options(
        joinedload(LeaveRequest.employee),
        joinedload(LeaveRequest.approver),
    )
    if employee_id is not None:
        query = query.filter(LeaveRequest.employee_id == employee_id)
    if status is not None:
        query = query.filter(LeaveRequest.status == status)
    if year is not None:
        query = query.filter(
            LeaveRequest.start_date <= date(year, 12, 31),
            LeaveRequest.end_date >= date(year, 1, 1),
        )
    total = query.count()
    items = (
        query.order_by(LeaveRequest.applied_at.desc(), LeaveRequest.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total


def _is_privileged(employee: Employee) -> bool:
    return employee.role in {role.value for role in PRIVILEGED_ROLES}


def list_pending_for_approver(db: Session, approver: Approver) -> List[LeaveRequest]:
    """
    Pending requests the approver may act on, oldest first.

    - System/admin accounts, HR and ADMIN employees: all pending requests
    - MANAGER: pending requests of their reporting tree
    - Other roles: none
    """
    query = db.query(LeaveRequest).options(
        joinedload(LeaveRequest.employee),
    ).filter(LeaveRequest.status == LeaveStatus.PENDING)

    if isinstance(approver, EmployeeApprover):
        employee = _get_employee(db, approver.employee_id)
        if not _is_privileged(employee):
            if employee.role != Role.MANAGER.value:
                return []
            subordinate_ids = get_subordinate_ids(db, employee.id)
            if not subordinate_ids:
                return []
            query = query.filter(LeaveRequest.employee_id.in_(subordinate_ids))

    return query.order_by(LeaveRequest.applied_at.asc(), LeaveRequest.id.asc()).all()


def validate_approval_authority(db: Session, leave: LeaveRequest, approver: Approver) -> None:
    """Raise PermissionDenied unless the approver may decide this request."""
    validate_authority_over(db, leave.employee_id, approver)


def validate_authority_over(db: Session, employee_id: int, approver: Approver) -> None:
    """
    Raise PermissionDenied unless the approver may decide requests of `employee_id`.

    - System/admin accounts may decide any request
    - Nobody decides their own request
    - HR and ADMIN employees may decide any other request
    - A MANAGER may decide requests of their reporting tree
    """
    if not isinstance(approver, EmployeeApprover):
        return
    if approver.employee_id == employee_id:
        raise PermissionDenied("Employee cannot approve their own leave")
    employee = _get_employee(db, approver.employee_id)
    if _is_privileged(employee):
        return
    if employee.role == Role.MANAGER.value and employee_id in get_subordinate_ids(db, employee.id):
        return
    raise PermissionDenied("You do not have approval authority for this leave request")


def approve_leave(
    db: Session,
    leave_request_id: int,
    approver: Approver,
    comment: Optional[str] = None,
    collaborators: Optional[LeaveCollaborators] = None,
    notify_employee: bool = True,
) -> LeaveRequest:
    """
    Approve a PENDING request: debit the ledger and flip the status atomically.

    Used by human approvals and by the auto-approval sweep (system approver).

    Raises:
        NotFound: Unknown request
        InvalidStateTransition: Request is not PENDING (including losing a race)
        PermissionDenied: Approver lacks authority
        InsufficientBalance: Debit would make the balance negative
    """
    collaborators = collaborators or default_collaborators()
    approved_by = approver_employee_id(approver)

    def unit():
        leave = get_leave(db, leave_request_id)
        if leave.status != LeaveStatus.PENDING:
            raise InvalidStateTransition(leave.id, leave.status, "approve")
        validate_approval_authority(db, leave, approver)

        claimed = _claim(db, leave.id, LeaveStatus.PENDING, {
            "status": LeaveStatus.APPROVED,
            "approved_by": approved_by,
            "approved_at": now_utc(),
            "approval_comment": comment,
        })
        if not claimed:
            raise InvalidStateTransition(leave.id, _current_status(db, leave.id), "approve")

        ledger.debit(
            db,
            leave.employee_id,
            leave.leave_type,
            leave.start_date.year,
            Decimal(leave.days_count),
            leave_id=leave.id,
            actor_id=approved_by,
            remarks=comment or "Leave approved",
        )
        _log_transition(leave.id, LeaveStatus.PENDING, LeaveStatus.APPROVED.value, "approve")

    _run_unit(db, "approve", leave_request_id, unit)

    leave = get_leave(db, leave_request_id)
    snapshot = snapshot_leave(leave)
    collaborators.calendar_approved(snapshot)
    if notify_employee:
        collaborators.notify_decision(snapshot, LeaveStatus.APPROVED.value, approver_display_name(approver))
    return leave


def reject_leave(
    db: Session,
    leave_request_id: int,
    approver: Approver,
    rejection_reason: str,
    collaborators: Optional[LeaveCollaborators] = None,
) -> LeaveRequest:
    """
    Reject a PENDING request. No balance change.

    Raises:
        LeaveValidationError: Missing rejection reason
        NotFound / InvalidStateTransition / PermissionDenied
    """
    if not rejection_reason or not rejection_reason.strip():
        raise LeaveValidationError("Rejection reason is required")
    collaborators = collaborators or default_collaborators()

    def unit():
        leave = get_leave(db, leave_request_id)
        if leave.status != LeaveStatus.PENDING:
            raise InvalidStateTransition(leave.id, leave.status, "reject")
        validate_approval_authority(db, leave, approver)

        claimed = _claim(db, leave.id, LeaveStatus.PENDING, {
            "status": LeaveStatus.REJECTED,
            "approved_by": approver_employee_id(approver),
            "approved_at": now_utc(),
            "rejection_reason": rejection_reason.strip(),
        })
        if not claimed:
            raise InvalidStateTransition(leave.id, _current_status(db, leave.id), "reject")
        _log_transition(leave.id, LeaveStatus.PENDING, LeaveStatus.REJECTED.value, "reject")

    _run_unit(db, "reject", leave_request_id, unit)

    leave = get_leave(db, leave_request_id)
    snapshot = snapshot_leave(leave)
    collaborators.notify_decision(snapshot, LeaveStatus.REJECTED.value, approver_display_name(approver))
    collaborators.calendar_removed(leave.id)
    return leave


def cancel_leave(
    db: Session,
    leave_request_id: int,
    requesting_employee_id: int,
    collaborators: Optional[LeaveCollaborators] = None,
) -> LeaveRequest:
    """
    Owner cancels a PENDING or APPROVED request; an APPROVED one is credited
    back in the same transaction.

    Raises:
        NotFound: Unknown request
        PermissionDenied: Caller is not the owner
        InvalidStateTransition: Request is REJECTED or already CANCELLED
    """
    collaborators = collaborators or default_collaborators()

    def unit():
        leave = get_leave(db, leave_request_id)
        if leave.employee_id != requesting_employee_id:
            raise PermissionDenied("Only the employee who applied can cancel this leave request")
        before = leave.status
        if before not in CANCELLABLE_STATUSES:
            raise InvalidStateTransition(leave.id, before, "cancel")

        if not _claim(db, leave.id, before, {"status": LeaveStatus.CANCELLED}):
            current = _current_status(db, leave.id)
            if current in CANCELLABLE_STATUSES:
                raise _RequestChanged()
            if current is None:
                raise NotFound("LeaveRequest", leave.id)
            raise InvalidStateTransition(leave.id, current, "cancel")

        if before == LeaveStatus.APPROVED:
            ledger.credit(
                db,
                leave.employee_id,
                leave.leave_type,
                leave.start_date.year,
                Decimal(leave.days_count),
                leave_id=leave.id,
                actor_id=requesting_employee_id,
                remarks="Leave cancelled",
            )
        _log_transition(leave.id, before, LeaveStatus.CANCELLED.value, "cancel")

    _run_unit(db, "cancel", leave_request_id, unit)

    collaborators.calendar_removed(leave_request_id)
    return get_leave(db, leave_request_id)


def update_leave(
    db: Session,
    leave_request_id: int,
    changes: Dict[str, Any],
    requesting_employee_id: Optional[int] = None,
    holiday_lookup: Optional[HolidayLookup] = None,
    today: Optional[date] = None,
) -> LeaveRequest:
    """
    Edit a PENDING request. Date, half-day or type changes recompute days with
    the same working-day formula as apply_leave and re-check availability and
    overlap. No ledger change (nothing is debited while pending).

    Args:
        requesting_employee_id: When given, must be the owner (None for HR/admin edits)

    Raises:
        LeaveValidationError: Unknown field, null for a required field, bad dates or overlap
        NoWorkingDays / InsufficientBalance
        InvalidStateTransition: Request is not PENDING
        PermissionDenied: Caller is not the owner
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise LeaveValidationError(
            f"Fields cannot be updated: {', '.join(sorted(unknown))}",
            data={"fields": sorted(unknown)},
        )
    nulls = sorted(name for name in REQUIRED_FIELDS if name in changes and changes[name] is None)
    if nulls:
        raise LeaveValidationError(
            f"Fields cannot be null: {', '.join(nulls)}",
            data={"fields": nulls},
        )
    lookup = holiday_lookup or DbHolidayLookup(db)
    today = today or today_local()

    def unit():
        leave = get_leave(db, leave_request_id)
        if requesting_employee_id is not None and leave.employee_id != requesting_employee_id:
            raise PermissionDenied("Only the employee who applied can update this leave request")
        if leave.status != LeaveStatus.PENDING:
            raise InvalidStateTransition(leave.id, leave.status, "update")

        start_date = changes.get("start_date", leave.start_date)
        end_date = changes.get("end_date", leave.end_date)
        is_half_day = changes.get("is_half_day", leave.is_half_day)
        leave_type = changes.get("leave_type", leave.leave_type)
        values: Dict[str, Any] = {}
        if "reason" in changes:
            values["reason"] = changes["reason"]

        recompute = (
            start_date != leave.start_date
            or end_date != leave.end_date
            or bool(is_half_day) != bool(leave.is_half_day)
            or leave_type != leave.leave_type
        )
        if recompute:
            _validate_dates(start_date, end_date, is_half_day)
            if start_date != leave.start_date:
                _validate_not_backdated(start_date, today)
            days = _count_days(lookup, start_date, end_date, is_half_day)
            validate_overlap(db, leave.employee_id, start_date, end_date, exclude_leave_id=leave.id)
            _ensure_available(db, leave.employee_id, leave_type, start_date, days)
            values.update({
                "start_date": start_date,
                "end_date": end_date,
                "is_half_day": is_half_day,
                "leave_type": leave_type,
                "days_count": ledger.quantize_days(days),
            })
        if not values:
            return
        if not _claim(db, leave.id, LeaveStatus.PENDING, values):
            raise InvalidStateTransition(leave.id, _current_status(db, leave.id), "update")
        logger.info(
            "leave updated: leave_request_id=%s fields=%s",
            leave.id, ",".join(sorted(values)),
        )

    _run_unit(db, "update", leave_request_id, unit)
    return get_leave(db, leave_request_id)


def delete_leave(
    db: Session,
    leave_request_id: int,
    actor_id: Optional[int] = None,
    collaborators: Optional[LeaveCollaborators] = None,
) -> None:
    """
    Hard-delete a request in any status (administrative cleanup), including
    REJECTED and CANCELLED ones. An APPROVED request is credited back first,
    in the same transaction; other statuses never held a debit. The calendar
    entry is always removed. A second delete of the same id raises NotFound.
    """
    collaborators = collaborators or default_collaborators()

    def unit():
        leave = get_leave(db, leave_request_id)
        before = leave.status
        if before == LeaveStatus.APPROVED:
            ledger.credit(
                db,
                leave.employee_id,
                leave.leave_type,
                leave.start_date.year,
                Decimal(leave.days_count),
                leave_id=leave.id,
                actor_id=actor_id,
                remarks=f"Leave request {leave.id} deleted",
            )
        ledger.detach_transactions_from_request(db, leave.id)
        result = db.execute(
            delete(LeaveRequest)
            .where(LeaveRequest.id == leave.id, LeaveRequest.status == before)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            if _current_status(db, leave.id) is None:
                raise NotFound("LeaveRequest", leave.id)
            raise _RequestChanged()
        _log_transition(leave.id, before, "DELETED", "delete")

    _run_unit(db, "delete", leave_request_id, unit)
    collaborators.calendar_removed(leave_request_id)


def on_employee_removed(
    db: Session,
    employee_id: int,
    collaborators: Optional[LeaveCollaborators] = None,
) -> Dict[str, int]:
    """
    Cleanup hook for the surrounding HR system before it deletes an employee.

    Removes the employee's leave requests (and their calendar entries), their
    ledger rows through the ledger API, and clears references to them as an
    approver or actor. The employee row itself is left to the caller.
    """
    collaborators = collaborators or default_collaborators()
    leave_ids = [
        leave_id for (leave_id,) in db.query(LeaveRequest.id).filter(LeaveRequest.employee_id == employee_id).all()
    ]

    def unit():
        db.execute(
            update(LeaveRequest)
            .where(LeaveRequest.approved_by == employee_id)
            .values(approved_by=None)
            .execution_options(synchronize_session=False)
        )
        ledger.clear_actor_references(db, employee_id)
        balances_removed = ledger.remove_balances_for_employee(db, employee_id)
        result = db.execute(
            delete(LeaveRequest)
            .where(LeaveRequest.employee_id == employee_id)
            .execution_options(synchronize_session=False)
        )
        return {"leave_requests_removed": result.rowcount, "balances_removed": balances_removed}

    summary = _run_unit(db, "remove employee data", None, unit)
    for leave_id in leave_ids:
        collaborators.calendar_removed(leave_id)
    logger.info(
        "Employee leave data removed: employee_id=%s leave_requests=%s balances=%s",
        employee_id, summary["leave_requests_removed"], summary["balances_removed"],
    )
    return summary


def get_leave_calendar(
    db: Session,
    month: int,
    year: int,
    employee_ids: Optional[List[int]] = None,
) -> List[LeaveRequest]:
    """APPROVED and PENDING requests intersecting the given month, by start date."""
    if not 1 <= month <= 12:
        raise LeaveValidationError("month must be between 1 and 12", data={"month": month})
    first_day = date(year, month, 1)
    last_day = date(year, month, calendar.monthrange(year, month)[1])

    query = db.query(LeaveRequest).options(joinedload(LeaveRequest.employee)).filter(
        LeaveRequest.status.in_([LeaveStatus.APPROVED, LeaveStatus.PENDING]),
        LeaveRequest.start_date <= last_day,
        LeaveRequest.end_date >= first_day,
    )
    if employee_ids is not None:
        query = query.filter(LeaveRequest.employee_id.in_(employee_ids))
    return query.order_by(LeaveRequest.start_date.asc(), LeaveRequest.id.asc()).all()


def cleanup_cancelled_requests(db: Session, cutoff: date) -> int:
    """
    Hard-delete CANCELLED requests whose end date is before `cutoff`.

    Cancelled requests hold no debit (a cancelled APPROVED request was already
    credited back), so only their ledger rows are detached; balances are not
    touched. Returns the number of requests removed.
    """
    leave_ids = [
        leave_id for (leave_id,) in db.query(LeaveRequest.id).filter(
            LeaveRequest.status == LeaveStatus.CANCELLED,
            LeaveRequest.end_date < cutoff,
        ).all()
    ]
    if not leave_ids:
        logger.info("Cancelled leave cleanup: nothing older than %s", cutoff)
        return 0

    def unit():
        for leave_id in leave_ids:
            ledger.detach_transactions_from_request(db, leave_id)
        result = db.execute(
            delete(LeaveRequest)
            .where(LeaveRequest.id.in_(leave_ids), LeaveRequest.status == LeaveStatus.CANCELLED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    removed = _run_unit(db, "clean up cancelled", None, unit)
    logger.info("Cancelled leave cleanup: removed=%s cutoff=%s", removed, cutoff)
    return removed


def get_leave_stats(db: Session, year: int) -> Dict[str, Any]:
    """
    Counts of requests starting in `year`: overall, per status, per leave type
    and per calendar month (1..12, months without requests are 0).
    """
    rows = db.query(LeaveRequest.status, LeaveRequest.leave_type, LeaveRequest.start_date).filter(
        LeaveRequest.start_date >= date(year, 1, 1),
        LeaveRequest.start_date <= date(year, 12, 31),
    ).all()

    by_status = {status.value: 0 for status in LeaveStatus}
    by_type = {leave_type.value: 0 for leave_type in LeaveType}
    by_month = {month: 0 for month in range(1, 13)}
    for status, leave_type, start_date in rows:
        by_status[status.value] += 1
        by_type[leave_type.value] += 1
        by_month[start_date.month] += 1

    return {
        "year": year,
        "total": len(rows),
        "pending": by_status[LeaveStatus.PENDING.value],
        "approved": by_status[LeaveStatus.APPROVED.value],
        "rejected": by_status[LeaveStatus.REJECTED.value],
        "cancelled": by_status[LeaveStatus.CANCELLED.value],
        "by_type": by_type,
        "by_month": by_month,
    }
