"""
Auto-approval sweep - approves PENDING requests whose start date has passed.

Each request goes through leave_service.approve_leave with the system approver,
so the ledger debit is identical to a human approval. The enabled flag is read
once per run from the injected AutoApprovalConfig.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import LeaveError
from app.models.leave import LeaveRequest, LeaveStatus
from app.services import leave_service
from app.services import system_settings_service
from app.services.approver import SYSTEM_APPROVER
from app.services.side_effects import LeaveCollaborators, default_collaborators
from app.utils.datetime_utils import today_local

logger = logging.getLogger(__name__)


class AutoApprovalConfig(Protocol):
    def is_enabled(self) -> bool:
        ...


class DbAutoApprovalConfig:
    """Reads the `auto_approve_pending_leaves` system setting."""

    def __init__(self, db: Session):
        self.db = db

    def is_enabled(self) -> bool:
        return system_settings_service.get_auto_approve_enabled(self.db)


class StaticAutoApprovalConfig:
    def __init__(self, enabled: bool):
        self.enabled = enabled

    def is_enabled(self) -> bool:
        return self.enabled


@dataclass
class SweepResult:
    enabled: bool
    approved_count: int = 0
    total_processed: int = 0
    errors: List[str] = field(default_factory=list)


def find_overdue_pending(db: Session, today: date) -> List[LeaveRequest]:
    """PENDING requests with start_date strictly before `today`, oldest start first."""
    return (
        db.query(LeaveRequest)
        .filter(LeaveRequest.status == LeaveStatus.PENDING, LeaveRequest.start_date < today)
        .order_by(LeaveRequest.start_date.asc(), LeaveRequest.id.asc())
        .all()
    )


def run_auto_approval(
    db: Session,
    config: AutoApprovalConfig,
    collaborators: Optional[LeaveCollaborators] = None,
    today: Optional[date] = None,
) -> SweepResult:
    """
    Run one sweep. Disabled config means no reads and no writes beyond the flag.

    Per-request failures (insufficient balance, missing ledger row, a request
    already decided by someone else) are logged and collected; the sweep moves
    on. No per-request retries.
    """
    if not config.is_enabled():
        logger.info("Auto-approval is disabled. Skipping.")
        return SweepResult(enabled=False)

    collaborators = collaborators or default_collaborators()
    today = today or today_local()
    candidate_ids = [leave.id for leave in find_overdue_pending(db, today)]
    logger.info("Starting auto-approval: cutoff=%s candidates=%s", today, len(candidate_ids))

    result = SweepResult(enabled=True, total_processed=len(candidate_ids))
    for leave_request_id in candidate_ids:
        try:
            leave_service.approve_leave(
                db,
                leave_request_id,
                SYSTEM_APPROVER,
                comment=None,
                collaborators=collaborators,
                notify_employee=False,
            )
            result.approved_count += 1
            logger.info("Auto-approved leave request %s", leave_request_id)
        except (LeaveError, SQLAlchemyError) as exc:
            db.rollback()
            message = f"Failed to auto-approve leave {leave_request_id}: {getattr(exc, 'detail', exc)}"
            logger.error(message, exc_info=not isinstance(exc, LeaveError))
            result.errors.append(message)

    logger.info(
        "Auto-approval completed: approved=%s total=%s errors=%s",
        result.approved_count, result.total_processed, len(result.errors),
    )
    return result
