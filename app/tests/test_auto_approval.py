"""
Tests for the auto-approval sweep and its runtime flag
"""
from datetime import date
from decimal import Decimal

from app.models.leave import LeaveStatus, LeaveType
from app.services import leave_service
from app.services import system_settings_service
from app.services.auto_approval_service import (
    DbAutoApprovalConfig,
    StaticAutoApprovalConfig,
    find_overdue_pending,
    run_auto_approval,
)

TODAY = date(2030, 1, 1)
MON = date(2030, 3, 4)
FRI = date(2030, 3, 8)
NEXT_MON = date(2030, 3, 11)
NEXT_FRI = date(2030, 3, 15)


def _apply(db, employee, collaborators, start, end, leave_type=LeaveType.EARNED):
    return leave_service.apply_leave(
        db, employee.id, leave_type, start, end, today=TODAY, collaborators=collaborators
    )


def test_disabled_sweep_does_nothing(db, employee, employee_balances, collaborators):
    leave = _apply(db, employee, collaborators, MON, FRI)

    result = run_auto_approval(db, StaticAutoApprovalConfig(False), collaborators=collaborators, today=date(2030, 4, 1))

    assert result.enabled is False
    assert result.total_processed == 0
    db.expire_all()
    assert leave_service.get_leave(db, leave.id).status == LeaveStatus.PENDING


def test_sweep_approves_only_requests_that_already_started(
    db, employee, employee_balances, collaborators, notifier, calendar_sync, balance_of
):
    started = _apply(db, employee, collaborators, MON, FRI)
    future = _apply(db, employee, collaborators, NEXT_MON, NEXT_MON, leave_type=LeaveType.SICK)
    starts_today = _apply(db, employee, collaborators, date(2030, 3, 6), date(2030, 3, 6), leave_type=LeaveType.CASUAL)
    decisions_before = len(notifier.decisions)

    # Cutoff is strict: a request starting on the sweep date stays pending
    assert [l.id for l in find_overdue_pending(db, date(2030, 3, 5))] == [started.id]

    result = run_auto_approval(db, StaticAutoApprovalConfig(True), collaborators=collaborators, today=date(2030, 3, 5))

    assert result.enabled is True
    assert result.approved_count == 1
    assert result.total_processed == 1
    assert result.errors == []

    db.expire_all()
    approved = leave_service.get_leave(db, started.id)
    assert approved.status == LeaveStatus.APPROVED
    assert approved.approved_by is None
    assert leave_service.get_leave(db, future.id).status == LeaveStatus.PENDING
    assert leave_service.get_leave(db, starts_today.id).status == LeaveStatus.PENDING
    assert balance_of(employee.id, LeaveType.EARNED).available_days == Decimal("7")

    # Calendar is synced, the employee is not notified by the sweep
    assert calendar_sync.approved == [started.id]
    assert len(notifier.decisions) == decisions_before


def test_second_sweep_is_a_no_op(db, employee, employee_balances, collaborators, calendar_sync, balance_of):
    started = _apply(db, employee, collaborators, MON, FRI)
    config = StaticAutoApprovalConfig(True)

    first = run_auto_approval(db, config, collaborators=collaborators, today=date(2030, 3, 5))
    second = run_auto_approval(db, config, collaborators=collaborators, today=date(2030, 3, 5))

    assert first.approved_count == 1
    assert second.enabled is True
    assert second.total_processed == 0
    assert second.approved_count == 0
    assert second.errors == []
    assert balance_of(employee.id, LeaveType.EARNED).available_days == Decimal("7")
    assert calendar_sync.approved == [started.id]


def test_insufficient_balance_is_collected_and_sweep_continues(
    db, employee, seed_balances, collaborators, balance_of
):
    seed_balances(employee.id, earned="8")
    first = _apply(db, employee, collaborators, MON, FRI)
    second = _apply(db, employee, collaborators, NEXT_MON, NEXT_FRI)

    result = run_auto_approval(db, StaticAutoApprovalConfig(True), collaborators=collaborators, today=date(2030, 3, 20))

    assert result.total_processed == 2
    assert result.approved_count == 1
    assert len(result.errors) == 1
    assert str(second.id) in result.errors[0]

    db.expire_all()
    assert leave_service.get_leave(db, first.id).status == LeaveStatus.APPROVED
    assert leave_service.get_leave(db, second.id).status == LeaveStatus.PENDING
    assert balance_of(employee.id, LeaveType.EARNED).available_days == Decimal("3")


def test_compensation_leave_is_approved_without_ledger_rows(db, employee, collaborators):
    comp = _apply(db, employee, collaborators, MON, MON, leave_type=LeaveType.COMPENSATION)

    result = run_auto_approval(db, StaticAutoApprovalConfig(True), collaborators=collaborators, today=date(2030, 3, 20))
    assert result.approved_count == 1
    assert result.errors == []
    db.expire_all()
    assert leave_service.get_leave(db, comp.id).status == LeaveStatus.APPROVED


def test_db_config_defaults_to_off_and_follows_the_setting(db):
    config = DbAutoApprovalConfig(db)
    assert config.is_enabled() is False

    setting = system_settings_service.set_auto_approve_enabled(db, True, updated_by="root")
    assert setting.value == "true"
    assert setting.updated_by == "root"
    assert config.is_enabled() is True

    system_settings_service.set_auto_approve_enabled(db, False)
    assert config.is_enabled() is False
    assert len(system_settings_service.list_settings(db)) == 1
