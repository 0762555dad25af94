"""
Scheduler service wrapping the process-wide APScheduler instance.
"""
import logging
from typing import Optional, Tuple
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


def get_scheduler() -> BackgroundScheduler:
    """Get or create the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler()
    return _scheduler


def start_scheduler():
    """Start the scheduler."""
    scheduler = get_scheduler()
    if not scheduler.running:
        scheduler.start()
        logger.info("✅ Scheduler started")
    else:
        logger.debug("Scheduler already running")


def stop_scheduler():
    """Stop the scheduler."""
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown()
        logger.info("Scheduler stopped")
    _scheduler = None


def parse_schedule_time(time_str: str) -> Tuple[int, int]:
    """Parse 'HH:MM' into (hour, minute)."""
    try:
        hour, minute = map(int, time_str.split(':'))
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid schedule time: {time_str!r}, expected HH:MM")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid schedule time: {time_str!r}, expected HH:MM")
    return hour, minute
