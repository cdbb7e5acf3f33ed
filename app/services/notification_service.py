"""
Leave notifications (mail delivery lives outside this service).

Dispatchers receive plain snapshots, never ORM objects, because they run after
the request session is closed.
"""
import logging
from datetime import date
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    def notify_leave_submitted(
        self,
        manager_contact: str,
        employee_name: str,
        leave_type: str,
        start: date,
        end: date,
        reason: Optional[str] = None,
    ) -> None:
        ...

    def notify_leave_decision(
        self,
        employee_contact: str,
        leave_type: str,
        start: date,
        end: date,
        decision: str,
        approver_name: str,
        rejection_reason: Optional[str] = None,
    ) -> None:
        ...


class LoggingNotificationDispatcher:
    """Default dispatcher: records each notification in the application log."""

    def notify_leave_submitted(self, manager_contact, employee_name, leave_type, start, end, reason=None):
        logger.info(
            "notify leave submitted: to=%s employee=%s leave_type=%s start=%s end=%s reason=%s",
            manager_contact, employee_name, leave_type, start, end, reason,
        )

    def notify_leave_decision(
        self, employee_contact, leave_type, start, end, decision, approver_name, rejection_reason=None
    ):
        logger.info(
            "notify leave decision: to=%s leave_type=%s start=%s end=%s decision=%s approver=%s rejection_reason=%s",
            employee_contact, leave_type, start, end, decision, approver_name, rejection_reason,
        )


class NullNotificationDispatcher:
    """Used when NOTIFICATIONS_ENABLED is off."""

    def notify_leave_submitted(self, *args, **kwargs):
        return None

    def notify_leave_decision(self, *args, **kwargs):
        return None
