"""
Domain exceptions raised by the leave lifecycle and balance ledger.

Services raise these; app.core.errors maps them to HTTP responses. Each kind
carries the data a caller needs to explain the failure (e.g. available vs.
requested days) in ``data``.
"""
from decimal import Decimal
from typing import Any, Dict, Optional


class LeaveError(Exception):
    """Base for all leave/ledger business errors."""

    status_code: int = 400
    error_type: str = "leave-error"

    def __init__(self, detail: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.detail = detail
        self.data = data or {}
        super().__init__(detail)


class LeaveValidationError(LeaveError):
    """Bad date range, half-day mismatch, backdated start, overlap."""

    status_code = 400
    error_type = "validation-error"


class NoWorkingDays(LeaveValidationError):
    """Requested range contains no working day."""

    error_type = "no-working-days"

    def __init__(self, start, end) -> None:
        super().__init__(
            "The selected date range contains no working days. "
            "Please select dates that include at least one working day.",
            data={"start_date": str(start), "end_date": str(end)},
        )


class InsufficientBalance(LeaveError):
    status_code = 409
    error_type = "insufficient-balance"

    def __init__(self, available: Decimal, requested: Decimal) -> None:
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient leave balance. Available: {available} days, Requested: {requested} days",
            data={"available": float(available), "requested": float(requested)},
        )


class InvalidStateTransition(LeaveError):
    """Operation attempted on a request that is not in the required source state."""

    status_code = 409
    error_type = "invalid-state-transition"

    def __init__(self, leave_request_id: int, current_status: Any, action: str) -> None:
        status_value = getattr(current_status, "value", current_status)
        super().__init__(
            f"Cannot {action} leave request {leave_request_id} with status {status_value}",
            data={"leave_request_id": leave_request_id, "status": status_value, "action": action},
        )


class NotFound(LeaveError):
    status_code = 404
    error_type = "not-found"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} with id {entity_id} not found", data={"entity": entity, "id": entity_id})


class PermissionDenied(LeaveError):
    status_code = 403
    error_type = "forbidden"


class LedgerCorruptionGuard(LeaveError):
    """
    A ledger invariant would be violated by a mutation that should already have
    been validated. Treated as a defect: logged at CRITICAL, surfaced as a
    failed operation.
    """

    status_code = 500
    error_type = "ledger-corruption-guard"


class ConcurrentModification(LeaveError):
    """A ledger row kept changing underneath the operation; the caller may retry later."""

    status_code = 409
    error_type = "concurrent-modification"
