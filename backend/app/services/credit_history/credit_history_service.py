"""
Credit history service for recording and aggregating credit usage.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session
from app.models.credit_history import CreditHistory
from app.services.credit_history.credit_history_models import CreditHistoryItem, MonthlyUsage

DEFAULT_MONTHS = 6


def record_usage(
    db: Session,
    subscription_id: int,
    user_id: int,
    credits_used: int,
    credits_total: int,
    recorded_at: Optional[datetime] = None,
    commit: bool = True,
) -> CreditHistory:
    """
    Record the usage of a closed credit period.

    Args:
        db: Database session
        subscription_id: Subscription ID
        user_id: Owner user ID
        credits_used: Credits consumed during the period
        credits_total: Allotment of the period
        recorded_at: Timestamp of the record (defaults to now, UTC)
        commit: Commit immediately; pass False to join the caller's transaction

    Returns:
        Created CreditHistory row
    """
    entry = CreditHistory(
        subscription_id=subscription_id,
        user_id=user_id,
        credits_used=credits_used,
        credits_total=credits_total,
        recorded_at=recorded_at or datetime.now(timezone.utc),
    )
    db.add(entry)
    if commit:
        db.commit()
        db.refresh(entry)
    else:
        db.flush()
    return entry


def get_credit_history(
    db: Session,
    user_id: int,
    subscription_id: Optional[int] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[CreditHistoryItem]:
    """Get credit history for a user, oldest first, optionally for one subscription."""
    query = db.query(CreditHistory).filter(CreditHistory.user_id == user_id)
    if subscription_id is not None:
        query = query.filter(CreditHistory.subscription_id == subscription_id)

    entries = (
        query.order_by(CreditHistory.recorded_at.asc(), CreditHistory.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return [CreditHistoryItem.from_model(entry) for entry in entries]


def aggregate_monthly_usage(entries: Iterable, months: int = DEFAULT_MONTHS) -> List[MonthlyUsage]:
    """
    Aggregate history entries by calendar month.

    Args:
        entries: Objects with recorded_at, credits_used and credits_total
        months: Number of most recent months to keep

    Returns:
        MonthlyUsage list in ascending month order
    """
    monthly: dict[str, dict] = {}
    for entry in entries:
        month_key = entry.recorded_at.strftime("%Y-%m")
        bucket = monthly.setdefault(month_key, {"used": 0, "total": 0})
        bucket["used"] += entry.credits_used
        bucket["total"] += entry.credits_total

    usage = [
        MonthlyUsage(
            month=month_key,
            used=data["used"],
            total=data["total"],
            percentage=round(data["used"] / data["total"] * 100) if data["total"] > 0 else 0,
        )
        for month_key, data in sorted(monthly.items())
    ]
    if months <= 0:
        return []
    return usage[-months:]


def get_monthly_usage(db: Session, user_id: int, months: int = DEFAULT_MONTHS) -> List[MonthlyUsage]:
    """Get monthly credit usage for the user's dashboard chart."""
    entries = (
        db.query(CreditHistory)
        .filter(CreditHistory.user_id == user_id)
        .order_by(CreditHistory.recorded_at.asc())
        .all()
    )
    return aggregate_monthly_usage(entries, months)
