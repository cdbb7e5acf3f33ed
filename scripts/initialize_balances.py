"""
Initialize leave balances (earned, sick, casual) for all active employees for a year.
Allocation is pro-rata by joining month; existing rows are left untouched.

Usage:
  python scripts/initialize_balances.py --year 2026
  python scripts/initialize_balances.py --year 2026 --dry-run
"""
import argparse
import sys
from pathlib import Path

# Add project root so app is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy.orm import Session
from app.core.exceptions import LeaveError
from app.core.logging import setup_logging
from app.db import session as db_session
from app.models.employee import Employee
from app.models.leave import LeaveBalance
from app.services import leave_ledger_service as ledger


def main():
    parser = argparse.ArgumentParser(description="Initialize leave balances for a year")
    parser.add_argument("--year", type=int, required=True, help="Calendar year (e.g. 2026)")
    parser.add_argument("--dry-run", action="store_true", help="Only list employees without balances")
    args = parser.parse_args()

    setup_logging()
    db: Session = db_session.SessionLocal()
    try:
        employees = db.query(Employee).filter(Employee.active == True).all()  # noqa: E712
        print(f"Year {args.year}: initializing balances for {len(employees)} active employees...")
        for i, emp in enumerate(employees):
            if args.dry_run:
                has_rows = db.query(LeaveBalance.id).filter(
                    LeaveBalance.employee_id == emp.id, LeaveBalance.year == args.year
                ).first()
                if not has_rows:
                    print(f"  Missing balances: employee {emp.id} ({emp.emp_code})")
                continue
            try:
                ledger.initialize_balances(db, emp.id, args.year)
                if (i + 1) % 50 == 0:
                    print(f"  {i + 1}/{len(employees)}")
            except LeaveError as e:
                db.rollback()
                print(f"  Skip employee {emp.id} ({emp.emp_code}): {e.detail}")
        print("Done.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
