"""
Close a leave year: archive balances and open the next year with default
allocations (earned leave carries forward up to YEAR_END_CARRY_FORWARD_MAX).

Schedule on Dec 31, e.g. cron: 30 23 31 12 *

Usage:
  python scripts/year_end_reset.py
  python scripts/year_end_reset.py --year 2026
"""
import argparse
import sys
from pathlib import Path

# Add project root so app is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy.orm import Session
from app.core.logging import setup_logging
from app.db import session as db_session
from app.services.year_end_service import process_year_end_reset
from app.utils.datetime_utils import today_local


def main():
    parser = argparse.ArgumentParser(description="Year-end leave balance reset")
    parser.add_argument("--year", type=int, default=None, help="Year to close (defaults to the current year)")
    args = parser.parse_args()

    setup_logging()
    year = args.year or today_local().year
    db: Session = db_session.SessionLocal()
    try:
        summary = process_year_end_reset(db, year)
        print(
            f"Year {summary['year']} closed: archived={summary['archived_count']} "
            f"opened={summary['reset_count']} skipped={summary['skipped_count']} "
            f"carry_forward={summary['total_carry_forward']}"
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
