"""Initial leave ledger schema.

Revision ID: 001_initial_leave_ledger
Revises:
Create Date: 2026-10-16

- employees (read-mostly mirror of the HR system) and holidays.
- leave_requests with the status state machine columns.
- leave_balances (one row per employee/year/leave type, optimistic version),
  leave_transactions (audit trail) and leave_balances_history (year-end archive).
- system_settings for runtime flags (auto-approve).
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_leave_ledger"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LEAVE_TYPE_VALUES = ("sick", "casual", "earned", "compensation")
LEAVE_STATUS_VALUES = ("pending", "approved", "rejected", "cancelled")


def _enum(values, name):
    # Postgres types are created once up front; columns only reference them
    return sa.Enum(*values, name=name).with_variant(
        postgresql.ENUM(*values, name=name, create_type=False), "postgresql"
    )


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        postgresql.ENUM(*LEAVE_TYPE_VALUES, name="leave_type").create(bind, checkfirst=True)
        postgresql.ENUM(*LEAVE_STATUS_VALUES, name="leave_status").create(bind, checkfirst=True)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("emp_code", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="EMPLOYEE"),
        sa.Column("reporting_manager_id", sa.Integer(), nullable=True),
        sa.Column("join_date", sa.Date(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["reporting_manager_id"], ["employees.id"]),
    )
    op.create_index(op.f("ix_employees_id"), "employees", ["id"], unique=False)
    op.create_index(op.f("ix_employees_emp_code"), "employees", ["emp_code"], unique=True)

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("year", "date", name="uq_holiday_year_date"),
    )
    op.create_index(op.f("ix_holidays_id"), "holidays", ["id"], unique=False)
    op.create_index(op.f("ix_holidays_year"), "holidays", ["year"], unique=False)
    op.create_index(op.f("ix_holidays_date"), "holidays", ["date"], unique=False)

    op.create_table(
        "leave_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("leave_type", _enum(LEAVE_TYPE_VALUES, "leave_type"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("days_count", sa.Numeric(5, 2), nullable=False),
        sa.Column("is_half_day", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", _enum(LEAVE_STATUS_VALUES, "leave_status"), nullable=False, server_default="pending"),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_comment", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("applied_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["approved_by"], ["employees.id"]),
        sa.CheckConstraint("start_date <= end_date", name="check_start_date_le_end_date"),
        sa.CheckConstraint("days_count > 0", name="check_days_count_positive"),
    )
    op.create_index(op.f("ix_leave_requests_id"), "leave_requests", ["id"], unique=False)
    op.create_index(op.f("ix_leave_requests_employee_id"), "leave_requests", ["employee_id"], unique=False)
    op.create_index(op.f("ix_leave_requests_status"), "leave_requests", ["status"], unique=False)
    op.create_index(op.f("ix_leave_requests_approved_by"), "leave_requests", ["approved_by"], unique=False)
    op.create_index("ix_leave_requests_employee_dates", "leave_requests", ["employee_id", "start_date", "end_date"], unique=False)
    op.create_index("ix_leave_requests_status_start", "leave_requests", ["status", "start_date"], unique=False)

    op.create_table(
        "leave_balances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("leave_type", _enum(LEAVE_TYPE_VALUES, "leave_type"), nullable=False),
        sa.Column("total_allocated", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("carry_forward", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("used_days", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("available_days", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.UniqueConstraint("employee_id", "year", "leave_type", name="uq_leave_balances_employee_year_type"),
        sa.CheckConstraint("used_days >= 0", name="check_used_days_non_negative"),
        sa.CheckConstraint("available_days >= 0", name="check_available_days_non_negative"),
    )
    op.create_index(op.f("ix_leave_balances_id"), "leave_balances", ["id"], unique=False)
    op.create_index(op.f("ix_leave_balances_employee_id"), "leave_balances", ["employee_id"], unique=False)
    op.create_index(op.f("ix_leave_balances_year"), "leave_balances", ["year"], unique=False)

    op.create_table(
        "leave_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("leave_id", sa.Integer(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("leave_type", _enum(LEAVE_TYPE_VALUES, "leave_type"), nullable=False),
        sa.Column("delta_days", sa.Numeric(5, 2), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("action_by_employee_id", sa.Integer(), nullable=True),
        sa.Column("action_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["leave_id"], ["leave_requests.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["action_by_employee_id"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_leave_transactions_id"), "leave_transactions", ["id"], unique=False)
    op.create_index(op.f("ix_leave_transactions_employee_id"), "leave_transactions", ["employee_id"], unique=False)
    op.create_index(op.f("ix_leave_transactions_leave_id"), "leave_transactions", ["leave_id"], unique=False)
    op.create_index(op.f("ix_leave_transactions_year"), "leave_transactions", ["year"], unique=False)
    op.create_index(
        op.f("ix_leave_transactions_action_by_employee_id"), "leave_transactions", ["action_by_employee_id"], unique=False
    )

    op.create_table(
        "leave_balances_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("leave_type", _enum(LEAVE_TYPE_VALUES, "leave_type"), nullable=False),
        sa.Column("total_allocated", sa.Numeric(5, 2), nullable=False),
        sa.Column("carry_forward", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("used_days", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("available_days", sa.Numeric(5, 2), nullable=False),
        sa.Column("archived_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("archived_by", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["archived_by"], ["employees.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_id", "year", "leave_type", name="uq_leave_balances_history_employee_year_type"),
    )
    op.create_index(op.f("ix_leave_balances_history_id"), "leave_balances_history", ["id"], unique=False)
    op.create_index(op.f("ix_leave_balances_history_employee_id"), "leave_balances_history", ["employee_id"], unique=False)
    op.create_index(op.f("ix_leave_balances_history_year"), "leave_balances_history", ["year"], unique=False)

    op.create_table(
        "system_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_by", sa.String(100), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_system_settings_id"), "system_settings", ["id"], unique=False)
    op.create_index(op.f("ix_system_settings_key"), "system_settings", ["key"], unique=True)


def downgrade() -> None:
    op.drop_table("system_settings")
    op.drop_table("leave_balances_history")
    op.drop_table("leave_transactions")
    op.drop_table("leave_balances")
    op.drop_table("leave_requests")
    op.drop_table("holidays")
    op.drop_table("employees")
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        postgresql.ENUM(name="leave_status").drop(bind, checkfirst=True)
        postgresql.ENUM(name="leave_type").drop(bind, checkfirst=True)
