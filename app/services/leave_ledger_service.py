"""
Leave Ledger Service - per (employee, year, leave type) balance records.

- available_days = total_allocated + carry_forward - used_days, always.
- used_days never negative; a debit that would push available_days below zero is refused.
- Compensation leave has no ledger row: always available, debit/credit are no-ops.
- Every mutation writes a leave_transactions row (audit trail).

debit/credit only flush: the caller owns the transaction so the balance change
commits together with the request status flip.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    InsufficientBalance,
    LedgerCorruptionGuard,
    LeaveValidationError,
    NotFound,
)
from app.models.employee import Employee
from app.models.leave import (
    LeaveBalance,
    LeaveBalanceHistory,
    LeaveTransaction,
    LeaveType,
    LeaveTransactionAction,
    LEDGER_LEAVE_TYPES,
)
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")

# HR pro-rata tables: allocation by joining month (Jan=1 .. Dec=12)
PRO_RATA_EARNED = (12, 11, 10, 9, 8, 7, 6, 5, 4, 3, 2, 1)
PRO_RATA_CASUAL_SICK = (8, 7, 7, 6, 6, 5, 4, 4, 3, 2, 2, 1)
_PRO_RATA_TABLES = {
    12: PRO_RATA_EARNED,
    8: PRO_RATA_CASUAL_SICK,
}


@dataclass
class Availability:
    available: bool
    balance: Decimal


def quantize_days(value) -> Decimal:
    """Round to two decimals, half away from zero. Applied only when persisting."""
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def default_allocation(leave_type: LeaveType) -> Decimal:
    """Annual allocation per leave type from settings (compensation leave is unallocated)."""
    defaults = {
        LeaveType.EARNED: settings.DEFAULT_EARNED_DAYS,
        LeaveType.SICK: settings.DEFAULT_SICK_DAYS,
        LeaveType.CASUAL: settings.DEFAULT_CASUAL_DAYS,
    }
    return Decimal(defaults.get(leave_type, 0))


def pro_rata_allocation(leave_type: LeaveType, join_date: date, year: int) -> Decimal:
    """
    Allocation for `year` given the joining date.

    Full allocation for employees who joined before `year`, nothing for future
    joiners. Joiners within `year` get the HR table value for their joining
    month; non-standard annual entitlements fall back to a proportional split.
    """
    annual = default_allocation(leave_type)
    if join_date.year < year:
        return annual
    if join_date.year > year:
        return ZERO
    month = join_date.month
    table = _PRO_RATA_TABLES.get(int(annual))
    if table is not None:
        return Decimal(table[month - 1])
    months_remaining = 13 - month
    return quantize_days(annual / Decimal(12) * months_remaining)


def _recompute_available(row: LeaveBalance) -> Decimal:
    return quantize_days(
        Decimal(row.total_allocated) + Decimal(row.carry_forward) - Decimal(row.used_days)
    )


def _verify_conservation(row: LeaveBalance) -> None:
    """Raise LedgerCorruptionGuard when a stored row already breaks the balance equation."""
    expected = _recompute_available(row)
    if Decimal(row.used_days) < ZERO or quantize_days(row.available_days) != expected:
        logger.critical(
            "Ledger invariant broken: balance_id=%s employee_id=%s year=%s leave_type=%s "
            "allocated=%s carry=%s used=%s available=%s expected_available=%s",
            row.id, row.employee_id, row.year, row.leave_type.value,
            row.total_allocated, row.carry_forward, row.used_days, row.available_days, expected,
        )
        raise LedgerCorruptionGuard(
            f"Leave balance {row.id} violates available = allocated + carry_forward - used",
            data={"balance_id": row.id, "expected_available": float(expected)},
        )


def get_balance_row(
    db: Session,
    employee_id: int,
    year: int,
    leave_type: LeaveType,
    for_update: bool = False,
) -> Optional[LeaveBalance]:
    """
    Fetch the ledger row for (employee_id, year, leave_type).

    With for_update=True the row is locked (SELECT ... FOR UPDATE) on backends
    that support it; the version column covers the rest.
    """
    q = db.query(LeaveBalance).filter(
        LeaveBalance.employee_id == employee_id,
        LeaveBalance.year == year,
        LeaveBalance.leave_type == leave_type,
    )
    if for_update:
        q = q.with_for_update()
    return q.first()


def _log_transaction(
    db: Session,
    employee_id: int,
    leave_id: Optional[int],
    year: int,
    leave_type: LeaveType,
    delta_days: Decimal,
    action: LeaveTransactionAction,
    remarks: Optional[str],
    action_by_employee_id: Optional[int],
) -> None:
    t = LeaveTransaction(
        employee_id=employee_id,
        leave_id=leave_id,
        year=year,
        leave_type=leave_type,
        delta_days=quantize_days(delta_days),
        action=action.value,
        remarks=remarks,
        action_by_employee_id=action_by_employee_id,
        action_at=now_utc(),
    )
    db.add(t)


def check_availability(
    db: Session,
    employee_id: int,
    leave_type: LeaveType,
    year: int,
    requested_days: Decimal,
) -> Availability:
    """
    Read-only availability check.

    Compensation leave is always available. A missing ledger row counts as a
    zero balance.
    """
    if leave_type not in LEDGER_LEAVE_TYPES:
        return Availability(available=True, balance=ZERO)
    row = get_balance_row(db, employee_id, year, leave_type)
    if row is None:
        return Availability(available=False, balance=ZERO)
    balance = Decimal(row.available_days)
    return Availability(available=balance >= Decimal(requested_days), balance=balance)


def debit(
    db: Session,
    employee_id: int,
    leave_type: LeaveType,
    year: int,
    days: Decimal,
    leave_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    remarks: Optional[str] = None,
) -> Optional[LeaveBalance]:
    """
    Consume `days` from the balance: used_days += days, available recomputed.

    Re-validates availability against the locked row even if the caller already
    checked. Raises InsufficientBalance without touching the row when the
    debit would make available_days negative. Flushes, never commits.

    Returns:
        The updated LeaveBalance, or None for leave types outside the ledger.
    """
    if leave_type not in LEDGER_LEAVE_TYPES:
        return None
    days = Decimal(days)
    if days <= ZERO:
        raise LeaveValidationError(f"Debit must be positive, got {days}")

    row = get_balance_row(db, employee_id, year, leave_type, for_update=True)
    if row is None:
        raise InsufficientBalance(available=ZERO, requested=days)
    _verify_conservation(row)

    available = Decimal(row.available_days)
    if available - days < ZERO:
        raise InsufficientBalance(available=available, requested=days)

    before = available
    row.used_days = quantize_days(Decimal(row.used_days) + days)
    row.available_days = _recompute_available(row)
    _log_transaction(
        db, employee_id, leave_id, year, leave_type,
        -days, LeaveTransactionAction.DEBIT, remarks, actor_id,
    )
    db.flush()
    logger.info(
        "ledger debit: employee_id=%s year=%s leave_type=%s days=%s available_before=%s available_after=%s leave_request_id=%s",
        employee_id, year, leave_type.value, days, before, row.available_days, leave_id,
    )
    return row


def credit(
    db: Session,
    employee_id: int,
    leave_type: LeaveType,
    year: int,
    days: Decimal,
    leave_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    remarks: Optional[str] = None,
) -> Optional[LeaveBalance]:
    """
    Return `days` to the balance (inverse of debit). used_days is clamped at 0.
    Flushes, never commits.
    """
    if leave_type not in LEDGER_LEAVE_TYPES:
        return None
    days = Decimal(days)
    if days <= ZERO:
        raise LeaveValidationError(f"Credit must be positive, got {days}")

    row = get_balance_row(db, employee_id, year, leave_type, for_update=True)
    if row is None:
        raise NotFound("LeaveBalance", f"{employee_id}/{year}/{leave_type.value}")
    _verify_conservation(row)

    used = Decimal(row.used_days)
    if days > used:
        logger.warning(
            "ledger credit clamped: employee_id=%s year=%s leave_type=%s credit=%s used=%s",
            employee_id, year, leave_type.value, days, used,
        )
    row.used_days = quantize_days(max(ZERO, used - days))
    row.available_days = _recompute_available(row)
    _log_transaction(
        db, employee_id, leave_id, year, leave_type,
        days, LeaveTransactionAction.CREDIT, remarks, actor_id,
    )
    db.flush()
    logger.info(
        "ledger credit: employee_id=%s year=%s leave_type=%s days=%s available_after=%s leave_request_id=%s",
        employee_id, year, leave_type.value, days, row.available_days, leave_id,
    )
    return row


def get_balances(db: Session, employee_id: int, year: int) -> List[LeaveBalance]:
    """All ledger rows for employee/year."""
    return (
        db.query(LeaveBalance)
        .filter(LeaveBalance.employee_id == employee_id, LeaveBalance.year == year)
        .order_by(LeaveBalance.leave_type)
        .all()
    )


def initialize_balances(
    db: Session,
    employee_id: int,
    year: int,
    join_date: Optional[date] = None,
    overrides: Optional[Dict[LeaveType, Decimal]] = None,
    actor_id: Optional[int] = None,
) -> List[LeaveBalance]:
    """
    Create ledger rows (earned, sick, casual) for an employee and year.

    Allocation is pro-rata by joining month unless an override is given for the
    leave type. Existing rows are left untouched, so re-running is safe.

    Args:
        db: Database session
        employee_id: Employee to initialize
        year: Ledger year
        join_date: Joining date (defaults to the employee's join_date)
        overrides: Manual allocation per leave type; wins over the pro-rata table
        actor_id: Employee performing the initialization (None for system/admin)

    Returns:
        The employee's ledger rows for the year

    Raises:
        NotFound: Unknown employee
        LeaveValidationError: Negative override
    """
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFound("Employee", employee_id)
    join_date = join_date or employee.join_date
    overrides = overrides or {}

    created = 0
    for leave_type in LEDGER_LEAVE_TYPES:
        if get_balance_row(db, employee_id, year, leave_type) is not None:
            continue
        if leave_type in overrides and overrides[leave_type] is not None:
            allocation = quantize_days(overrides[leave_type])
            if allocation < ZERO:
                raise LeaveValidationError(
                    f"Allocation for {leave_type.value} cannot be negative",
                    data={"leave_type": leave_type.value, "allocation": float(allocation)},
                )
        else:
            allocation = pro_rata_allocation(leave_type, join_date, year)
        db.add(LeaveBalance(
            employee_id=employee_id,
            year=year,
            leave_type=leave_type,
            total_allocated=quantize_days(allocation),
            carry_forward=ZERO,
            used_days=ZERO,
            available_days=quantize_days(allocation),
        ))
        _log_transaction(
            db, employee_id, None, year, leave_type,
            allocation, LeaveTransactionAction.ALLOCATION, "Initial allocation", actor_id,
        )
        created += 1

    db.commit()
    logger.info(
        "Initialized leave balances: employee_id=%s year=%s created=%s",
        employee_id, year, created,
    )
    return get_balances(db, employee_id, year)


def set_allocation(
    db: Session,
    employee_id: int,
    year: int,
    leave_type: LeaveType,
    total_allocated: Decimal,
    actor_id: Optional[int] = None,
) -> LeaveBalance:
    """
    Admin adjustment of a row's allocation. used_days is kept; available_days
    is recomputed and must stay non-negative. Commits.
    """
    if leave_type not in LEDGER_LEAVE_TYPES:
        raise LeaveValidationError(f"{leave_type.value} leave has no balance to allocate")
    row = get_balance_row(db, employee_id, year, leave_type, for_update=True)
    if row is None:
        raise NotFound("LeaveBalance", f"{employee_id}/{year}/{leave_type.value}")

    new_total = quantize_days(total_allocated)
    new_available = quantize_days(new_total + Decimal(row.carry_forward) - Decimal(row.used_days))
    if new_total < ZERO or new_available < ZERO:
        raise LeaveValidationError(
            "Allocation cannot be lower than the days already used",
            data={"used_days": float(row.used_days), "requested_allocation": float(new_total)},
        )
    delta = new_total - Decimal(row.total_allocated)
    row.total_allocated = new_total
    row.available_days = new_available
    _log_transaction(
        db, employee_id, None, year, leave_type,
        delta, LeaveTransactionAction.ADJUSTMENT, "Allocation adjusted", actor_id,
    )
    db.commit()
    db.refresh(row)
    return row


def remove_balances_for_employee(db: Session, employee_id: int) -> int:
    """
    Delete every ledger row, archived row and transaction of an employee
    (employee-removal hook only). Flushes, never commits. Returns the number of balance rows removed.
    """
    db.query(LeaveTransaction).filter(LeaveTransaction.employee_id == employee_id).delete(
        synchronize_session=False
    )
    db.query(LeaveBalanceHistory).filter(LeaveBalanceHistory.employee_id == employee_id).delete(
        synchronize_session=False
    )
    removed = db.query(LeaveBalance).filter(LeaveBalance.employee_id == employee_id).delete(
        synchronize_session=False
    )
    db.flush()
    return removed


def get_transactions(
    db: Session,
    employee_id: int,
    year: Optional[int] = None,
    limit: int = 100,
) -> List[LeaveTransaction]:
    q = db.query(LeaveTransaction).filter(LeaveTransaction.employee_id == employee_id)
    if year is not None:
        q = q.filter(LeaveTransaction.year == year)
    return q.order_by(LeaveTransaction.action_at.desc(), LeaveTransaction.id.desc()).limit(limit).all()


def clear_actor_references(db: Session, employee_id: int) -> None:
    """Null out audit references to an employee acting on other employees' ledger rows. Flushes."""
    db.query(LeaveTransaction).filter(LeaveTransaction.action_by_employee_id == employee_id).update(
        {LeaveTransaction.action_by_employee_id: None}, synchronize_session=False
    )
    db.query(LeaveBalanceHistory).filter(LeaveBalanceHistory.archived_by == employee_id).update(
        {LeaveBalanceHistory.archived_by: None}, synchronize_session=False
    )
    db.flush()


def detach_transactions_from_request(db: Session, leave_request_id: int) -> None:
    """Keep the audit rows of a request that is being hard-deleted. Flushes."""
    db.query(LeaveTransaction).filter(LeaveTransaction.leave_id == leave_request_id).update(
        {LeaveTransaction.leave_id: None}, synchronize_session=False
    )
    db.flush()


def open_balance(
    db: Session,
    employee_id: int,
    year: int,
    leave_type: LeaveType,
    total_allocated: Decimal,
    carry_forward: Decimal = ZERO,
    actor_id: Optional[int] = None,
    remarks: Optional[str] = None,
) -> Optional[LeaveBalance]:
    """
    Create the ledger row for a new year. Returns None (and changes nothing)
    when the row already exists. Flushes, never commits.
    """
    if get_balance_row(db, employee_id, year, leave_type) is not None:
        return None
    total_allocated = quantize_days(total_allocated)
    carry_forward = quantize_days(carry_forward)
    row = LeaveBalance(
        employee_id=employee_id,
        year=year,
        leave_type=leave_type,
        total_allocated=total_allocated,
        carry_forward=carry_forward,
        used_days=ZERO,
        available_days=quantize_days(total_allocated + carry_forward),
    )
    db.add(row)
    _log_transaction(
        db, employee_id, None, year, leave_type,
        total_allocated, LeaveTransactionAction.ALLOCATION, remarks or "Annual allocation", actor_id,
    )
    if carry_forward > ZERO:
        _log_transaction(
            db, employee_id, None, year, leave_type,
            carry_forward, LeaveTransactionAction.YEAR_END, f"Carry forward from {year - 1}", actor_id,
        )
    db.flush()
    return row


def reset_balance(
    db: Session,
    row: LeaveBalance,
    total_allocated: Decimal,
    carry_forward: Decimal = ZERO,
    actor_id: Optional[int] = None,
) -> LeaveBalance:
    """Overwrite an existing row with a fresh allocation (manual per-employee reset). Flushes."""
    total_allocated = quantize_days(total_allocated)
    carry_forward = quantize_days(carry_forward)
    previous_available = Decimal(row.available_days)
    row.total_allocated = total_allocated
    row.carry_forward = carry_forward
    row.used_days = ZERO
    row.available_days = quantize_days(total_allocated + carry_forward)
    _log_transaction(
        db, row.employee_id, None, row.year, row.leave_type,
        Decimal(row.available_days) - previous_available, LeaveTransactionAction.ADJUSTMENT,
        "Balance reset", actor_id,
    )
    db.flush()
    return row


def archive_balance(db: Session, row: LeaveBalance, actor_id: Optional[int] = None) -> bool:
    """
    Copy a row into leave_balances_history. Returns False when that
    (employee, year, leave type) was archived already. Flushes.
    """
    exists = db.query(LeaveBalanceHistory).filter(
        LeaveBalanceHistory.employee_id == row.employee_id,
        LeaveBalanceHistory.year == row.year,
        LeaveBalanceHistory.leave_type == row.leave_type,
    ).first()
    if exists:
        return False
    db.add(LeaveBalanceHistory(
        employee_id=row.employee_id,
        year=row.year,
        leave_type=row.leave_type,
        total_allocated=row.total_allocated,
        carry_forward=row.carry_forward,
        used_days=row.used_days,
        available_days=row.available_days,
        archived_at=now_utc(),
        archived_by=actor_id,
    ))
    db.flush()
    return True
