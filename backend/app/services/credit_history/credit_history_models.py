"""
Credit history model classes.
"""
from dataclasses import dataclass
from datetime import datetime


@dataclass
class CreditHistoryItem:
    """Single closed credit cycle."""
    id: int
    subscription_id: int
    credits_used: int
    credits_total: int
    recorded_at: datetime

    @classmethod
    def from_model(cls, entry) -> "CreditHistoryItem":
        return cls(
            id=entry.id,
            subscription_id=entry.subscription_id,
            credits_used=entry.credits_used,
            credits_total=entry.credits_total,
            recorded_at=entry.recorded_at,
        )


@dataclass
class MonthlyUsage:
    """Credit usage aggregated over one calendar month."""
    month: str  # YYYY-MM
    used: int
    total: int
    percentage: int
