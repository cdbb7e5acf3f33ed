"""
Auto-approve pending leave requests whose start date has passed.

Honors the persisted auto-approve flag (falls back to AUTO_APPROVE_DEFAULT).
Schedule daily, e.g. cron: 0 1 * * *

Usage:
  python scripts/run_auto_approval.py
  python scripts/run_auto_approval.py --force
"""
import argparse
import sys
from pathlib import Path

# Add project root so app is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy.orm import Session
from app.core.logging import setup_logging
from app.db import session as db_session
from app.services.auto_approval_service import (
    DbAutoApprovalConfig,
    StaticAutoApprovalConfig,
    run_auto_approval,
)


def main():
    parser = argparse.ArgumentParser(description="Auto-approve overdue pending leave requests")
    parser.add_argument("--force", action="store_true", help="Run even if the auto-approve flag is off")
    args = parser.parse_args()

    setup_logging()
    db: Session = db_session.SessionLocal()
    try:
        config = StaticAutoApprovalConfig(True) if args.force else DbAutoApprovalConfig(db)
        result = run_auto_approval(db, config)
        if not result.enabled:
            print("Auto-approval is disabled; nothing to do.")
            return
        print(f"Approved {result.approved_count}/{result.total_processed} pending requests.")
        for error in result.errors:
            print(f"  {error}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
