"""
Remove CANCELLED leave requests whose end date is more than a month old.

Ledger rows of the removed requests are kept (detached from the request).
Schedule monthly, e.g. cron: 0 2 1 * *

Usage:
  python scripts/cleanup_cancelled_leaves.py
  python scripts/cleanup_cancelled_leaves.py --before 2030-01-01
"""
import argparse
import sys
from datetime import date
from pathlib import Path

# Add project root so app is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy.orm import Session
from app.core.logging import setup_logging
from app.db import session as db_session
from app.services.leave_service import cleanup_cancelled_requests
from app.utils.datetime_utils import one_month_before, today_local


def main():
    parser = argparse.ArgumentParser(description="Delete old cancelled leave requests")
    parser.add_argument(
        "--before",
        type=date.fromisoformat,
        default=None,
        help="Remove requests ending before this date (YYYY-MM-DD). Default: one month ago",
    )
    args = parser.parse_args()

    setup_logging()
    cutoff = args.before or one_month_before(today_local())
    db: Session = db_session.SessionLocal()
    try:
        removed = cleanup_cancelled_requests(db, cutoff)
        print(f"Removed {removed} cancelled leave requests ending before {cutoff}.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
