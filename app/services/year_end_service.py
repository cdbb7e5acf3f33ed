"""
Year-end reset - archive a year's balances and open the next year.

Only earned leave carries forward: min(available, YEAR_END_CARRY_FORWARD_MAX).
Sick and casual leave lapse and restart at the default allocation.
"""
import logging
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFound
from app.models.employee import Employee
from app.models.leave import LeaveBalance, LeaveType
from app.services import leave_ledger_service as ledger

logger = logging.getLogger(__name__)


def carry_forward_for(leave_type: LeaveType, available_days: Decimal) -> Decimal:
    if leave_type != LeaveType.EARNED:
        return Decimal("0")
    cap = Decimal(settings.YEAR_END_CARRY_FORWARD_MAX)
    return max(Decimal("0"), min(Decimal(available_days), cap))


def process_year_end_reset(
    db: Session,
    year: int,
    actor_id: Optional[int] = None,
) -> Dict:
    """
    Archive every balance of `year` and create `year + 1` rows with the
    default allocation (plus earned-leave carry forward).

    Safe to re-run: rows already archived or already opened for the next year
    are skipped.

    Args:
        db: Database session
        year: Year being closed
        actor_id: Employee running the reset (None for the scheduled job)

    Returns:
        Summary with archived/created/skipped counts and total carry forward
    """
    next_year = year + 1
    rows = (
        db.query(LeaveBalance)
        .filter(LeaveBalance.year == year)
        .order_by(LeaveBalance.employee_id, LeaveBalance.leave_type)
        .all()
    )
    logger.info("Starting year-end reset: year=%s next_year=%s balances=%s", year, next_year, len(rows))

    archived = 0
    created = 0
    skipped = 0
    total_carry_forward = Decimal("0")

    for row in rows:
        if ledger.archive_balance(db, row, actor_id):
            archived += 1
        carry = carry_forward_for(row.leave_type, row.available_days)
        opened = ledger.open_balance(
            db,
            row.employee_id,
            next_year,
            row.leave_type,
            ledger.default_allocation(row.leave_type),
            carry_forward=carry,
            actor_id=actor_id,
            remarks=f"Year-end allocation for {next_year}",
        )
        if opened is None:
            skipped += 1
            continue
        created += 1
        total_carry_forward += carry

    db.commit()
    logger.info(
        "Year-end reset completed: year=%s archived=%s created=%s skipped=%s carry_forward=%s",
        year, archived, created, skipped, total_carry_forward,
    )
    return {
        "year": year,
        "next_year": next_year,
        "archived_count": archived,
        "reset_count": created,
        "skipped_count": skipped,
        "total_carry_forward": float(total_carry_forward),
    }


def reset_employee_balances(
    db: Session,
    employee_id: int,
    target_year: int,
    actor_id: Optional[int] = None,
) -> Dict:
    """
    Manual per-employee reset (mid-year corrections): archive the employee's
    `target_year - 1` balances and set `target_year` to the default allocation,
    overwriting any existing rows.

    Raises:
        NotFound: Unknown employee or no balances for the previous year
    """
    if not db.query(Employee).filter(Employee.id == employee_id).first():
        raise NotFound("Employee", employee_id)
    previous_year = target_year - 1
    rows = ledger.get_balances(db, employee_id, previous_year)
    if not rows:
        raise NotFound("LeaveBalance", f"{employee_id}/{previous_year}")

    archived = 0
    reset = 0
    for row in rows:
        if ledger.archive_balance(db, row, actor_id):
            archived += 1
        allocation = ledger.default_allocation(row.leave_type)
        carry = carry_forward_for(row.leave_type, row.available_days)
        existing = ledger.get_balance_row(db, employee_id, target_year, row.leave_type, for_update=True)
        if existing is None:
            ledger.open_balance(
                db, employee_id, target_year, row.leave_type, allocation,
                carry_forward=carry, actor_id=actor_id,
            )
        else:
            ledger.reset_balance(db, existing, allocation, carry_forward=carry, actor_id=actor_id)
        reset += 1

    db.commit()
    logger.info(
        "Employee balances reset: employee_id=%s target_year=%s archived=%s reset=%s",
        employee_id, target_year, archived, reset,
    )
    return {
        "employee_id": employee_id,
        "year": previous_year,
        "next_year": target_year,
        "archived_count": archived,
        "reset_count": reset,
    }
