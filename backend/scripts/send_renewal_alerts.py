"""
Run the renewal alert job once, outside the scheduler.

Reminders already recorded in the renewal_alerts ledger are not resent, so
this is safe to run after the daily job.
"""
import sys
import logging
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.database import SessionLocal
from app.services.scheduler import send_renewal_alerts

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main(run_date: date):
    db = SessionLocal()
    try:
        result = send_renewal_alerts(db, run_date)
        print(f"{result.message}: {len(result.alerts_sent)} sent, {len(result.already_sent)} already sent")
        for label in result.alerts_sent:
            print(f"  ✅ {label}")
        for error in result.errors:
            print(f"  ❌ {error}")
    finally:
        db.close()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description='Send renewal alerts due on a date')
    parser.add_argument('--date', default=None, help='Run date YYYY-MM-DD (default: today)')

    args = parser.parse_args()
    main(date.fromisoformat(args.date) if args.date else date.today())
