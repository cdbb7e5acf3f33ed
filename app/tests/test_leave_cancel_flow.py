"""
Regression test: Apply -> Approve -> Cancel restores the balance exactly.

Earned balance 12 -> approve 5 days -> 7 -> cancel -> 12, with one DEBIT and
one CREDIT row in the ledger audit trail.
"""
from datetime import date
from decimal import Decimal

import pytest

from app.core.exceptions import InvalidStateTransition, PermissionDenied
from app.models.leave import LeaveStatus, LeaveTransaction, LeaveType
from app.services import leave_service
from app.services.approver import EmployeeApprover

TODAY = date(2030, 1, 1)
MON = date(2030, 3, 4)
FRI = date(2030, 3, 8)


@pytest.fixture
def pending_leave(db, employee, employee_balances, collaborators):
    return leave_service.apply_leave(
        db, employee.id, LeaveType.EARNED, MON, FRI, today=TODAY, collaborators=collaborators
    )


def test_apply_approve_cancel_restores_balance(
    db, employee, manager, pending_leave, collaborators, calendar_sync, balance_of
):
    approver = EmployeeApprover(manager.id, manager.name)
    leave_service.approve_leave(db, pending_leave.id, approver, collaborators=collaborators)
    assert balance_of(employee.id, LeaveType.EARNED).available_days == Decimal("7")

    leave = leave_service.cancel_leave(db, pending_leave.id, employee.id, collaborators=collaborators)
    assert leave.status == LeaveStatus.CANCELLED

    row = balance_of(employee.id, LeaveType.EARNED)
    assert row.available_days == Decimal("12")
    assert row.used_days == Decimal("0")

    actions = [
        t.action for t in db.query(LeaveTransaction)
        .filter(LeaveTransaction.leave_id == pending_leave.id)
        .order_by(LeaveTransaction.id)
    ]
    assert actions == ["DEBIT", "CREDIT"]
    assert calendar_sync.approved == [pending_leave.id]
    assert calendar_sync.removed == [pending_leave.id]


def test_cancel_pending_has_no_ledger_effect(db, employee, pending_leave, collaborators, balance_of):
    leave = leave_service.cancel_leave(db, pending_leave.id, employee.id, collaborators=collaborators)
    assert leave.status == LeaveStatus.CANCELLED
    assert balance_of(employee.id, LeaveType.EARNED).available_days == Decimal("12")
    assert db.query(LeaveTransaction).filter(LeaveTransaction.leave_id == pending_leave.id).count() == 0


def test_only_owner_can_cancel(db, manager, pending_leave, collaborators):
    with pytest.raises(PermissionDenied):
        leave_service.cancel_leave(db, pending_leave.id, manager.id, collaborators=collaborators)


def test_cancel_twice_is_invalid(db, employee, pending_leave, collaborators):
    leave_service.cancel_leave(db, pending_leave.id, employee.id, collaborators=collaborators)
    with pytest.raises(InvalidStateTransition):
        leave_service.cancel_leave(db, pending_leave.id, employee.id, collaborators=collaborators)


def test_cancel_rejected_is_invalid(db, employee, manager, pending_leave, collaborators):
    leave_service.reject_leave(
        db, pending_leave.id, EmployeeApprover(manager.id, manager.name), "No", collaborators=collaborators
    )
    with pytest.raises(InvalidStateTransition):
        leave_service.cancel_leave(db, pending_leave.id, employee.id, collaborators=collaborators)


def test_cancelled_request_is_never_pending_again(db, employee, manager, pending_leave, collaborators):
    leave_service.cancel_leave(db, pending_leave.id, employee.id, collaborators=collaborators)
    with pytest.raises(InvalidStateTransition):
        leave_service.approve_leave(
            db, pending_leave.id, EmployeeApprover(manager.id, manager.name), collaborators=collaborators
        )
    with pytest.raises(InvalidStateTransition):
        leave_service.update_leave(db, pending_leave.id, {"reason": "again"}, today=TODAY)
    db.expire_all()
    assert leave_service.get_leave(db, pending_leave.id).status == LeaveStatus.CANCELLED
