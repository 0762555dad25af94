"""
Renewal alert job.

Runs daily and emails a reminder when a subscription is exactly 11, 5 or 1
days (configurable) from its next renewal. Every reminder is claimed in the
renewal_alerts ledger before it is sent, so re-running the job on the same
day never sends the same reminder twice.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from app.core.config import ALERT_DAYS, ALERT_EMAIL, ALERT_SCHEDULE
from app.core.database import SessionLocal
from app.models.renewal_alert import RenewalAlert
from app.models.subscription import Subscription
from app.services.email import is_email_configured, send_renewal_alert_email
from app.services.renewal import days_between, next_renewal_date

logger = logging.getLogger(__name__)

JOB_ID = "renewal_alerts"

# (to_email, subscription_name, icon, days_until, renewal_date) -> sent?
AlertSender = Callable[[str, str, str, int, date], bool]


@dataclass
class AlertRunResult:
    """Outcome of one alert job run."""
    message: str
    total_subscriptions: int = 0
    alerts_enabled: int = 0
    alerts_sent: List[str] = field(default_factory=list)
    already_sent: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def is_alert_day(days_until: int, alert_days: Iterable[int] = ALERT_DAYS) -> bool:
    return days_until in tuple(alert_days)


def _claim_alert(db: Session, subscription_id: int, renewal_date: date, days_before: int, recipient: str) -> Optional[RenewalAlert]:
    """Insert the ledger row; None if this reminder was already claimed."""
    alert = RenewalAlert(
        subscription_id=subscription_id,
        renewal_date=renewal_date,
        days_before=days_before,
        recipient=recipient,
    )
    db.add(alert)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return None
    return alert


def send_renewal_alerts(
    db: Session,
    today: date,
    sender: Optional[AlertSender] = None,
    alert_days: Iterable[int] = ALERT_DAYS,
    fallback_email: Optional[str] = ALERT_EMAIL,
    user_id: Optional[int] = None,
) -> AlertRunResult:
    """
    Send renewal reminders due today.

    Args:
        db: Database session
        today: Current date
        sender: Callable delivering one reminder (defaults to SMTP email)
        alert_days: Offsets before renewal that trigger a reminder
        fallback_email: Recipient when the owner has no email
        user_id: Only process this user's subscriptions (all users when None)

    Returns:
        AlertRunResult
    """
    if sender is None:
        if not is_email_configured():
            logger.info("SMTP not configured, skipping renewal alerts")
            return AlertRunResult(message="SMTP not configured")
        sender = send_renewal_alert_email

    alert_days = tuple(alert_days)
    query = db.query(Subscription).options(joinedload(Subscription.user))
    if user_id is not None:
        query = query.filter(Subscription.user_id == user_id)
    subscriptions = query.order_by(Subscription.id.asc()).all()
    if not subscriptions:
        logger.info("No subscriptions found")
        return AlertRunResult(message="No subscriptions found")

    result = AlertRunResult(
        message="Alerts processed",
        total_subscriptions=len(subscriptions),
        alerts_enabled=sum(1 for s in subscriptions if s.alerts_enabled),
    )

    for subscription in subscriptions:
        if not subscription.alerts_enabled:
            logger.debug(f"Alerts disabled for {subscription.name}, skipping")
            continue

        recipient = (subscription.user.email if subscription.user else None) or fallback_email
        if not recipient:
            logger.warning(f"No email found for subscription {subscription.name}, skipping")
            result.errors.append(f"No email for {subscription.name}")
            continue

        try:
            renewal_date = next_renewal_date(
                subscription.renewal_day,
                subscription.billing_cycle,
                subscription.renewal_month,
                today=today,
            )
        except ValueError as e:
            logger.error(f"Invalid billing configuration for subscription {subscription.id}: {e}")
            result.errors.append(f"Invalid billing configuration for {subscription.name}")
            continue

        days_until = days_between(today, renewal_date)
        if not is_alert_day(days_until, alert_days):
            continue

        label = f"{subscription.name} (J-{days_until})"
        alert = _claim_alert(db, subscription.id, renewal_date, days_until, recipient)
        if alert is None:
            logger.info(f"Alert for {subscription.name} at J-{days_until} already sent, skipping")
            result.already_sent.append(label)
            continue

        try:
            sent = sender(recipient, subscription.name, subscription.icon, days_until, renewal_date)
        except Exception as e:
            logger.error(f"Failed to send email for {subscription.name}: {e}", exc_info=True)
            sent = False

        if not sent:
            # Release the claim so a later run today can retry
            db.delete(alert)
            db.commit()
            result.errors.append(f"Failed to send alert for {subscription.name}")
            continue

        result.alerts_sent.append(label)
        logger.info(f"Alert sent for {subscription.name}, {days_until} days until renewal")

    logger.info(
        f"Renewal alert job completed: {len(result.alerts_sent)} sent, "
        f"{len(result.already_sent)} already sent, {len(result.errors)} errors"
    )
    return result


def run_renewal_alerts_job() -> AlertRunResult:
    """Scheduler entry point: run the alert job with its own session."""
    db = SessionLocal()
    try:
        return send_renewal_alerts(db, date.today())
    except Exception as e:
        logger.error(f"Error in renewal alert job: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()


def add_alert_job(schedule_time: str = ALERT_SCHEDULE):
    """Add the renewal alert job to the scheduler (runs daily at ``schedule_time``)."""
    from apscheduler.triggers.cron import CronTrigger
    from app.services.scheduler.scheduler_service import get_scheduler, parse_schedule_time

    hour, minute = parse_schedule_time(schedule_time)
    scheduler = get_scheduler()
    scheduler.add_job(
        run_renewal_alerts_job,
        trigger=CronTrigger(hour=hour, minute=minute),
        id=JOB_ID,
        replace_existing=True,
        max_instances=1
    )

    logger.info(f"Added renewal alert job (daily at {hour:02d}:{minute:02d})")


def start_alert_job(schedule_time: str = ALERT_SCHEDULE):
    """Start the scheduler and register the renewal alert job."""
    from app.services.scheduler.scheduler_service import start_scheduler

    start_scheduler()
    add_alert_job(schedule_time)
