"""
Tests for the year-end reset and the manual per-employee reset
"""
from decimal import Decimal

import pytest

from app.core.exceptions import NotFound
from app.models.leave import LeaveBalanceHistory, LeaveTransaction, LeaveType
from app.services import leave_ledger_service as ledger
from app.services import year_end_service


@pytest.fixture
def used_earned(db, employee, employee_balances):
    """Employee with 7 earned days left in 2030"""
    ledger.debit(db, employee.id, LeaveType.EARNED, 2030, Decimal("5"))
    db.commit()
    return employee


def test_carry_forward_rule():
    assert year_end_service.carry_forward_for(LeaveType.EARNED, Decimal("7")) == Decimal("5")
    assert year_end_service.carry_forward_for(LeaveType.EARNED, Decimal("3.5")) == Decimal("3.5")
    assert year_end_service.carry_forward_for(LeaveType.SICK, Decimal("8")) == Decimal("0")
    assert year_end_service.carry_forward_for(LeaveType.CASUAL, Decimal("2")) == Decimal("0")


def test_year_end_reset_archives_and_opens_next_year(db, used_earned, balance_of):
    summary = year_end_service.process_year_end_reset(db, 2030)

    assert summary["archived_count"] == 3
    assert summary["reset_count"] == 3
    assert summary["skipped_count"] == 0
    assert summary["total_carry_forward"] == 5.0

    earned = balance_of(used_earned.id, LeaveType.EARNED, year=2031)
    assert earned.total_allocated == Decimal("12")
    assert earned.carry_forward == Decimal("5")
    assert earned.available_days == Decimal("17")
    sick = balance_of(used_earned.id, LeaveType.SICK, year=2031)
    assert sick.carry_forward == Decimal("0")
    assert sick.available_days == Decimal("8")

    history = db.query(LeaveBalanceHistory).filter(
        LeaveBalanceHistory.employee_id == used_earned.id,
        LeaveBalanceHistory.leave_type == LeaveType.EARNED,
    ).one()
    assert history.year == 2030
    assert history.used_days == Decimal("5")
    assert history.available_days == Decimal("7")

    # The closed year stays readable as-is
    assert balance_of(used_earned.id, LeaveType.EARNED, year=2030).available_days == Decimal("7")

    carry_rows = db.query(LeaveTransaction).filter(
        LeaveTransaction.employee_id == used_earned.id,
        LeaveTransaction.year == 2031,
        LeaveTransaction.action == "YEAR_END",
    ).all()
    assert [row.delta_days for row in carry_rows] == [Decimal("5")]


def test_year_end_reset_is_safe_to_rerun(db, used_earned, balance_of):
    year_end_service.process_year_end_reset(db, 2030)
    summary = year_end_service.process_year_end_reset(db, 2030)

    assert summary["archived_count"] == 0
    assert summary["reset_count"] == 0
    assert summary["skipped_count"] == 3
    assert balance_of(used_earned.id, LeaveType.EARNED, year=2031).available_days == Decimal("17")
    assert db.query(LeaveBalanceHistory).count() == 3


def test_year_end_reset_with_no_balances(db):
    summary = year_end_service.process_year_end_reset(db, 2030)
    assert summary["archived_count"] == 0
    assert summary["reset_count"] == 0


def test_employee_reset_overwrites_target_year(db, used_earned, balance_of):
    year_end_service.process_year_end_reset(db, 2030)
    ledger.debit(db, used_earned.id, LeaveType.EARNED, 2031, Decimal("4"))
    db.commit()

    summary = year_end_service.reset_employee_balances(db, used_earned.id, 2031)

    assert summary["reset_count"] == 3
    assert summary["archived_count"] == 0
    earned = balance_of(used_earned.id, LeaveType.EARNED, year=2031)
    assert earned.used_days == Decimal("0")
    assert earned.available_days == Decimal("17")


def test_employee_reset_opens_missing_rows(db, used_earned, balance_of):
    summary = year_end_service.reset_employee_balances(db, used_earned.id, 2031)
    assert summary["archived_count"] == 3
    assert balance_of(used_earned.id, LeaveType.CASUAL, year=2031).available_days == Decimal("8")


def test_employee_reset_errors(db, employee):
    with pytest.raises(NotFound):
        year_end_service.reset_employee_balances(db, 999, 2031)
    with pytest.raises(NotFound):
        year_end_service.reset_employee_balances(db, employee.id, 2031)
