"""
Credit history service for recording and aggregating credit usage.
"""
from app.services.credit_history.credit_history_service import (
    record_usage,
    get_credit_history,
    aggregate_monthly_usage,
    get_monthly_usage,
)
from app.services.credit_history.credit_history_models import (
    CreditHistoryItem,
    MonthlyUsage,
)

__all__ = [
    "record_usage",
    "get_credit_history",
    "aggregate_monthly_usage",
    "get_monthly_usage",
    "CreditHistoryItem",
    "MonthlyUsage",
]
