"""
Subscription service for managing tracked subscriptions.
"""
import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from sqlalchemy import func, update
from sqlalchemy.orm import Session
from app.models.subscription import Subscription
from app.services.credit_history import record_usage
from app.services.renewal import (
    BILLING_ANNUAL,
    CreditCycleEvaluation,
    evaluate_credit_cycle,
    is_low_credits,
    renewal_status,
)
from app.services.subscription.subscription_models import SubscriptionSummary, TimelineEntry

logger = logging.getLogger(__name__)

# Renewing within this many days with more than this share of credits left
AT_RISK_MAX_DAYS = 5
AT_RISK_MIN_CREDITS_RATIO = 0.30

UPDATABLE_FIELDS = (
    "name",
    "icon",
    "price",
    "currency",
    "category",
    "billing_cycle",
    "renewal_day",
    "renewal_month",
    "trial_end_date",
    "credits_total",
    "credits_remaining",
    "credits_tracking_disabled",
    "alerts_enabled",
)
NULLABLE_FIELDS = ("category", "renewal_month", "trial_end_date")


def _check_credits(credits_remaining: int, credits_total: int) -> None:
    if credits_remaining > credits_total:
        raise ValueError("Remaining credits cannot exceed total credits")


def list_subscriptions(db: Session, user_id: int) -> List[Subscription]:
    """Get all subscriptions of a user in display order."""
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.position.asc(), Subscription.created_at.asc(), Subscription.id.asc())
        .all()
    )


def get_subscription(db: Session, user_id: int, subscription_id: int) -> Optional[Subscription]:
    """Get a subscription by ID, scoped to its owner."""
    return (
        db.query(Subscription)
        .filter(Subscription.id == subscription_id, Subscription.user_id == user_id)
        .first()
    )


def _get_owned_subscription(db: Session, user_id: int, subscription_id: int) -> Subscription:
    subscription = get_subscription(db, user_id, subscription_id)
    if not subscription:
        raise ValueError(f"Subscription {subscription_id} not found")
    return subscription


def create_subscription(db: Session, user_id: int, data: dict, today: date) -> Subscription:
    """
    Create a new subscription at the end of the user's list.

    The current credit period is considered started on creation, so the
    entered remaining credits are not reset on the next refresh.

    Args:
        db: Database session
        user_id: Owner user ID
        data: Validated subscription fields
        today: Current date

    Returns:
        Created Subscription
    """
    _check_credits(data.get("credits_remaining", 0), data.get("credits_total", 0))

    max_position = (
        db.query(func.max(Subscription.position))
        .filter(Subscription.user_id == user_id)
        .scalar()
    )
    position = max_position + 1 if max_position is not None else 0

    values = {key: value for key, value in data.items() if key in UPDATABLE_FIELDS}
    if values.get("billing_cycle") != BILLING_ANNUAL:
        values["renewal_month"] = None
    elif values.get("renewal_month") is None:
        raise ValueError("Annual subscriptions need a renewal month")

    subscription = Subscription(
        user_id=user_id,
        position=position,
        last_reset_date=today,
        **values,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)

    logger.info(f"Created subscription {subscription.id} ({subscription.name}) for user {user_id}")
    return subscription


def update_subscription(db: Session, user_id: int, subscription_id: int, updates: dict) -> Subscription:
    """
    Update subscription fields.

    Args:
        db: Database session
        user_id: Owner user ID
        subscription_id: Subscription ID
        updates: Validated partial fields

    Returns:
        Updated Subscription
    """
    subscription = _get_owned_subscription(db, user_id, subscription_id)

    values = {key: value for key, value in updates.items() if key in UPDATABLE_FIELDS}
    for key, value in values.items():
        if value is None and key not in NULLABLE_FIELDS:
            raise ValueError(f"{key} cannot be null")

    credits_total = values.get("credits_total", subscription.credits_total)
    credits_remaining = values.get("credits_remaining", subscription.credits_remaining)
    _check_credits(credits_remaining, credits_total)

    billing_cycle = values.get("billing_cycle", subscription.billing_cycle)
    renewal_month = values.get("renewal_month", subscription.renewal_month)
    if billing_cycle == BILLING_ANNUAL and renewal_month is None:
        raise ValueError("Annual subscriptions need a renewal month")

    for key, value in values.items():
        setattr(subscription, key, value)
    if subscription.billing_cycle != BILLING_ANNUAL:
        subscription.renewal_month = None

    db.commit()
    db.refresh(subscription)
    return subscription


def update_credits(
    db: Session,
    user_id: int,
    subscription_id: int,
    credits_remaining: int,
    credits_total: Optional[int] = None,
) -> Subscription:
    """Update the remaining (and optionally total) credits of a subscription."""
    subscription = _get_owned_subscription(db, user_id, subscription_id)

    new_total = credits_total if credits_total is not None else subscription.credits_total
    _check_credits(credits_remaining, new_total)

    subscription.credits_remaining = credits_remaining
    subscription.credits_total = new_total
    db.commit()
    db.refresh(subscription)
    return subscription


def delete_subscription(db: Session, user_id: int, subscription_id: int) -> None:
    """Delete a subscription and its history."""
    subscription = _get_owned_subscription(db, user_id, subscription_id)
    db.delete(subscription)
    db.commit()
    logger.info(f"Deleted subscription {subscription_id} for user {user_id}")


def reorder_subscriptions(db: Session, user_id: int, active_id: int, over_id: int) -> List[Subscription]:
    """
    Move one subscription to the position of another.

    Args:
        db: Database session
        user_id: Owner user ID
        active_id: Subscription being moved
        over_id: Subscription whose slot it takes

    Returns:
        Subscriptions in their new order
    """
    subscriptions = list_subscriptions(db, user_id)
    ids = [subscription.id for subscription in subscriptions]
    if active_id not in ids or over_id not in ids:
        raise ValueError("Invalid indices")

    moved = subscriptions.pop(ids.index(active_id))
    subscriptions.insert(ids.index(over_id), moved)

    for index, subscription in enumerate(subscriptions):
        subscription.position = index
    db.commit()
    return subscriptions


def apply_credit_reset(db: Session, subscription: Subscription, evaluation: CreditCycleEvaluation) -> bool:
    """
    Persist a credit reset with a compare-and-set on last_reset_date.

    The reset only applies if last_reset_date still holds the value the
    evaluation was computed from; the usage record is written in the same
    transaction, so concurrent refreshes cannot double-reset or duplicate
    history.

    Args:
        db: Database session
        subscription: Subscription the evaluation was computed for
        evaluation: Result of evaluate_credit_cycle with needs_reset=True

    Returns:
        True if this call applied the reset, False if another writer won
    """
    if not evaluation.needs_reset:
        return False

    expected = subscription.last_reset_date
    condition = (
        Subscription.last_reset_date.is_(None)
        if expected is None
        else Subscription.last_reset_date == expected
    )
    result = db.execute(
        update(Subscription)
        .where(Subscription.id == subscription.id, condition)
        .values(
            credits_remaining=evaluation.reset_to.credits_remaining,
            last_reset_date=evaluation.reset_to.last_reset_date,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        db.rollback()
        db.refresh(subscription)
        logger.info(f"Credit reset for subscription {subscription.id} already applied by another request")
        return False

    usage = evaluation.usage_to_record
    if usage is not None:
        record_usage(
            db,
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            credits_used=usage.credits_used,
            credits_total=usage.credits_total,
            commit=False,
        )

    db.commit()
    db.refresh(subscription)
    logger.info(
        f"Reset credits for subscription {subscription.id} "
        f"(renewed {evaluation.last_renewal_date}, used {usage.credits_used if usage else 0})"
    )
    return True


def refresh_credit_cycles(db: Session, user_id: int, today: date) -> List[Subscription]:
    """
    Get a user's subscriptions, resetting credits of those past a renewal.

    Args:
        db: Database session
        user_id: Owner user ID
        today: Current date

    Returns:
        Subscriptions in display order, with resets applied
    """
    subscriptions = list_subscriptions(db, user_id)
    for subscription in subscriptions:
        evaluation = evaluate_credit_cycle(subscription, today=today)
        if evaluation.needs_reset:
            apply_credit_reset(db, subscription, evaluation)
    return subscriptions


def monthly_equivalent_price(subscription) -> Decimal:
    """Price per month; annual prices are spread over twelve months."""
    price = Decimal(str(subscription.price or 0))
    if subscription.billing_cycle == BILLING_ANNUAL:
        price = price / 12
    return price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _timeline_entry(subscription, today: date) -> TimelineEntry:
    status = renewal_status(subscription, today=today)
    return TimelineEntry(
        subscription_id=subscription.id,
        name=subscription.name,
        icon=subscription.icon,
        next_renewal_date=status.next_renewal_date,
        days_until_renewal=status.days_until_renewal,
        urgency=status.urgency,
        credits_total=subscription.credits_total,
        credits_remaining=subscription.credits_remaining,
    )


def build_timeline(subscriptions, today: date) -> List[TimelineEntry]:
    """Upcoming renewals, soonest first."""
    entries = [_timeline_entry(subscription, today) for subscription in subscriptions]
    return sorted(entries, key=lambda entry: (entry.days_until_renewal, entry.name))


def _is_at_risk(entry: TimelineEntry) -> bool:
    if entry.days_until_renewal > AT_RISK_MAX_DAYS or entry.credits_total <= 0:
        return False
    return entry.credits_remaining / entry.credits_total > AT_RISK_MIN_CREDITS_RATIO


def build_summary(subscriptions, today: date) -> SubscriptionSummary:
    """
    Summarise spending and upcoming renewals.

    Credits at risk are subscriptions renewing within five days that still
    have more than 30% of their credits left.
    """
    monthly_cost: dict[str, Decimal] = {}
    for subscription in subscriptions:
        currency = subscription.currency or "EUR"
        monthly_cost[currency] = monthly_cost.get(currency, Decimal("0.00")) + monthly_equivalent_price(subscription)

    timeline = build_timeline(subscriptions, today)
    tracked = {s.id for s in subscriptions if not s.credits_tracking_disabled}

    return SubscriptionSummary(
        subscription_count=len(timeline),
        monthly_cost=monthly_cost,
        low_credit_count=sum(
            1 for s in subscriptions
            if s.id in tracked and is_low_credits(s.credits_remaining, s.credits_total)
        ),
        next_renewal=timeline[0] if timeline else None,
        credits_at_risk=[
            entry for entry in timeline
            if entry.subscription_id in tracked and _is_at_risk(entry)
        ],
    )
