"""
Database models
"""
from app.models.employee import Employee, Role, PRIVILEGED_ROLES
from app.models.leave import (
    LeaveRequest,
    LeaveBalance,
    LeaveBalanceHistory,
    LeaveTransaction,
    LeaveType,
    LeaveStatus,
    LeaveTransactionAction,
    LEDGER_LEAVE_TYPES,
    TERMINAL_LEAVE_STATUSES,
)
from app.models.holiday import Holiday
from app.models.system_setting import SystemSetting

__all__ = [
    "Employee",
    "Role",
    "PRIVILEGED_ROLES",
    "LeaveRequest",
    "LeaveBalance",
    "LeaveBalanceHistory",
    "LeaveTransaction",
    "LeaveType",
    "LeaveStatus",
    "LeaveTransactionAction",
    "LEDGER_LEAVE_TYPES",
    "TERMINAL_LEAVE_STATUSES",
    "Holiday",
    "SystemSetting",
]
