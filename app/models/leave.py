"""
Leave models
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Numeric,
    Enum as SQLEnum,
    Boolean,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from app.db.base import Base


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class LeaveType(str, enum.Enum):
    SICK = "sick"
    CASUAL = "casual"
    EARNED = "earned"
    COMPENSATION = "compensation"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Ledger-backed leave types. Compensation leave never debits a balance.
LEDGER_LEAVE_TYPES = (LeaveType.EARNED, LeaveType.SICK, LeaveType.CASUAL)

# Statuses that never return to PENDING
TERMINAL_LEAVE_STATUSES = frozenset({
    LeaveStatus.APPROVED,
    LeaveStatus.REJECTED,
    LeaveStatus.CANCELLED,
})


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(SQLEnum(LeaveType, values_callable=_enum_values, name="leave_type"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days_count = Column(Numeric(5, 2), nullable=False)  # 0.5 for half-day
    is_half_day = Column(Boolean, nullable=False, default=False)
    reason = Column(Text, nullable=True)
    status = Column(
        SQLEnum(LeaveStatus, values_callable=_enum_values, name="leave_status"),
        nullable=False,
        default=LeaveStatus.PENDING,
        index=True,
    )
    # Suggested approver (manager) while pending; actual approver afterwards, NULL for system/admin-only
    approved_by = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approval_comment = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    applied_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relationships
    employee = relationship("Employee", foreign_keys=[employee_id], back_populates="leave_requests")
    approver = relationship("Employee", foreign_keys=[approved_by])

    __table_args__ = (
        Index("ix_leave_requests_employee_dates", "employee_id", "start_date", "end_date"),
        Index("ix_leave_requests_status_start", "status", "start_date"),
        CheckConstraint("start_date <= end_date", name="check_start_date_le_end_date"),
        CheckConstraint("days_count > 0", name="check_days_count_positive"),
    )


class LeaveTransactionAction(str, enum.Enum):
    ALLOCATION = "ALLOCATION"
    DEBIT = "DEBIT"            # approval (human or auto)
    CREDIT = "CREDIT"          # cancellation / deletion of an approved request
    ADJUSTMENT = "ADJUSTMENT"  # admin allocation change
    YEAR_END = "YEAR_END"      # carry forward into the next year


class LeaveBalance(Base):
    """
    Ledger row: one per (employee_id, year, leave_type).
    available_days = total_allocated + carry_forward - used_days.
    """
    __tablename__ = "leave_balances"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    leave_type = Column(SQLEnum(LeaveType, values_callable=_enum_values, name="leave_type"), nullable=False)
    total_allocated = Column(Numeric(5, 2), nullable=False, default=0)
    carry_forward = Column(Numeric(5, 2), nullable=False, default=0)
    used_days = Column(Numeric(5, 2), nullable=False, default=0)
    available_days = Column(Numeric(5, 2), nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    employee = relationship("Employee", backref="leave_balances")

    # Optimistic concurrency: every UPDATE checks and bumps `version`
    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("employee_id", "year", "leave_type", name="uq_leave_balances_employee_year_type"),
        CheckConstraint("used_days >= 0", name="check_used_days_non_negative"),
        CheckConstraint("available_days >= 0", name="check_available_days_non_negative"),
    )


class LeaveTransaction(Base):
    """Audit trail for the ledger: allocation, debit, credit, adjustment, year-end carry."""
    __tablename__ = "leave_transactions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_id = Column(Integer, ForeignKey("leave_requests.id", ondelete="SET NULL"), nullable=True, index=True)
    year = Column(Integer, nullable=False, index=True)
    leave_type = Column(SQLEnum(LeaveType, values_callable=_enum_values, name="leave_type"), nullable=False)
    delta_days = Column(Numeric(5, 2), nullable=False)  # + for credit, - for debit
    action = Column(String(30), nullable=False)
    remarks = Column(Text, nullable=True)
    action_by_employee_id = Column(Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True)
    action_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)


class LeaveBalanceHistory(Base):
    """Snapshot of a ledger row archived by the year-end reset."""
    __tablename__ = "leave_balances_history"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    leave_type = Column(SQLEnum(LeaveType, values_callable=_enum_values, name="leave_type"), nullable=False)
    total_allocated = Column(Numeric(5, 2), nullable=False)
    carry_forward = Column(Numeric(5, 2), nullable=False, default=0)
    used_days = Column(Numeric(5, 2), nullable=False, default=0)
    available_days = Column(Numeric(5, 2), nullable=False)
    archived_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    archived_by = Column(Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "year", "leave_type", name="uq_leave_balances_history_employee_year_type"),
    )
