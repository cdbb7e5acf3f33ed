"""
External calendar mirroring of approved leave.
"""
import logging
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from app.services.side_effects import LeaveSnapshot

logger = logging.getLogger(__name__)


class CalendarSyncAdapter(Protocol):
    def on_approved(self, request: "LeaveSnapshot") -> None:
        ...

    def on_removed(self, leave_request_id: int) -> None:
        ...


class LoggingCalendarSyncAdapter:
    def on_approved(self, request):
        logger.info(
            "calendar sync approved: leave_request_id=%s employee_id=%s start=%s end=%s leave_type=%s",
            request.id, request.employee_id, request.start_date, request.end_date, request.leave_type,
        )

    def on_removed(self, leave_request_id):
        logger.info("calendar sync removed: leave_request_id=%s", leave_request_id)


class NullCalendarSyncAdapter:
    """Used when CALENDAR_SYNC_ENABLED is off."""

    def on_approved(self, request):
        return None

    def on_removed(self, leave_request_id):
        return None
