"""
Subscription model classes.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional


@dataclass
class TimelineEntry:
    """One upcoming renewal."""
    subscription_id: int
    name: str
    icon: str
    next_renewal_date: date
    days_until_renewal: int
    urgency: str
    credits_total: int
    credits_remaining: int


@dataclass
class SubscriptionSummary:
    """Dashboard summary across a user's subscriptions."""
    subscription_count: int
    monthly_cost: dict[str, Decimal]  # currency -> monthly-equivalent total
    low_credit_count: int
    next_renewal: Optional[TimelineEntry] = None
    credits_at_risk: List[TimelineEntry] = field(default_factory=list)
