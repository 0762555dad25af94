"""
Subscription service for managing tracked subscriptions.
"""
from app.services.subscription.subscription_service import (
    list_subscriptions,
    get_subscription,
    create_subscription,
    update_subscription,
    update_credits,
    delete_subscription,
    reorder_subscriptions,
    apply_credit_reset,
    refresh_credit_cycles,
    monthly_equivalent_price,
    build_timeline,
    build_summary,
)
from app.services.subscription.subscription_models import (
    SubscriptionSummary,
    TimelineEntry,
)

__all__ = [
    "list_subscriptions",
    "get_subscription",
    "create_subscription",
    "update_subscription",
    "update_credits",
    "delete_subscription",
    "reorder_subscriptions",
    "apply_credit_reset",
    "refresh_credit_cycles",
    "monthly_equivalent_price",
    "build_timeline",
    "build_summary",
    "SubscriptionSummary",
    "TimelineEntry",
]
