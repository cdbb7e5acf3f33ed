"""
Post-commit side effects (notifications, calendar sync).

Side effects are fire-and-forget: they run after the ledger transaction has
committed, failures are logged and never reach the caller. The HTTP layer hands
them to FastAPI BackgroundTasks through `submit`; scripts and tests run them
inline.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

from app.core.config import settings
from app.services.calendar_sync_service import (
    CalendarSyncAdapter,
    LoggingCalendarSyncAdapter,
    NullCalendarSyncAdapter,
)
from app.services.notification_service import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    NullNotificationDispatcher,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveSnapshot:
    """Detached copy of a leave request handed to collaborators."""
    id: int
    employee_id: int
    employee_name: str
    employee_contact: Optional[str]
    leave_type: str
    start_date: date
    end_date: date
    days_count: Decimal
    is_half_day: bool
    status: str
    reason: Optional[str] = None
    rejection_reason: Optional[str] = None


def snapshot_leave(leave) -> LeaveSnapshot:
    employee = leave.employee
    return LeaveSnapshot(
        id=leave.id,
        employee_id=leave.employee_id,
        employee_name=employee.name if employee else "",
        employee_contact=employee.email if employee else None,
        leave_type=leave.leave_type.value,
        start_date=leave.start_date,
        end_date=leave.end_date,
        days_count=Decimal(leave.days_count),
        is_half_day=bool(leave.is_half_day),
        status=leave.status.value,
        reason=leave.reason,
        rejection_reason=leave.rejection_reason,
    )


def _run_safely(description: str, fn: Callable, *args, **kwargs) -> None:
    try:
        fn(*args, **kwargs)
    except Exception:
        logger.error("Side effect failed: %s", description, exc_info=True)


class SideEffectDispatcher:
    """
    Queues a side effect through `submit` (e.g. BackgroundTasks.add_task) or
    runs it immediately when no submitter is given. Never raises.
    """

    def __init__(self, submit: Optional[Callable] = None):
        self._submit = submit

    def dispatch(self, description: str, fn: Callable, *args, **kwargs) -> None:
        if self._submit is None:
            _run_safely(description, fn, *args, **kwargs)
            return
        try:
            self._submit(_run_safely, description, fn, *args, **kwargs)
        except Exception:
            logger.error("Could not schedule side effect: %s", description, exc_info=True)


@dataclass
class LeaveCollaborators:
    notifier: NotificationDispatcher = field(default_factory=LoggingNotificationDispatcher)
    calendar: CalendarSyncAdapter = field(default_factory=LoggingCalendarSyncAdapter)
    dispatcher: SideEffectDispatcher = field(default_factory=SideEffectDispatcher)

    def notify_submitted(self, manager_contact: Optional[str], snapshot: LeaveSnapshot) -> None:
        if not manager_contact:
            logger.debug("No manager contact for leave_request_id=%s; skipping submit notification", snapshot.id)
            return
        self.dispatcher.dispatch(
            f"notify submitted leave_request_id={snapshot.id}",
            self.notifier.notify_leave_submitted,
            manager_contact,
            snapshot.employee_name,
            snapshot.leave_type,
            snapshot.start_date,
            snapshot.end_date,
            snapshot.reason,
        )

    def notify_decision(self, snapshot: LeaveSnapshot, decision: str, approver_name: str) -> None:
        if not snapshot.employee_contact:
            return
        self.dispatcher.dispatch(
            f"notify {decision} leave_request_id={snapshot.id}",
            self.notifier.notify_leave_decision,
            snapshot.employee_contact,
            snapshot.leave_type,
            snapshot.start_date,
            snapshot.end_date,
            decision,
            approver_name,
            snapshot.rejection_reason,
        )

    def calendar_approved(self, snapshot: LeaveSnapshot) -> None:
        self.dispatcher.dispatch(
            f"calendar approved leave_request_id={snapshot.id}",
            self.calendar.on_approved,
            snapshot,
        )

    def calendar_removed(self, leave_request_id: int) -> None:
        self.dispatcher.dispatch(
            f"calendar removed leave_request_id={leave_request_id}",
            self.calendar.on_removed,
            leave_request_id,
        )


def default_collaborators(submit: Optional[Callable] = None) -> LeaveCollaborators:
    """Collaborators selected by NOTIFICATIONS_ENABLED / CALENDAR_SYNC_ENABLED."""
    notifier = LoggingNotificationDispatcher() if settings.NOTIFICATIONS_ENABLED else NullNotificationDispatcher()
    calendar = LoggingCalendarSyncAdapter() if settings.CALENDAR_SYNC_ENABLED else NullCalendarSyncAdapter()
    return LeaveCollaborators(
        notifier=notifier,
        calendar=calendar,
        dispatcher=SideEffectDispatcher(submit=submit),
    )
