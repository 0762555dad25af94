"""
Database models.
"""
from app.models.user import User
from app.models.subscription import Subscription
from app.models.credit_history import CreditHistory
from app.models.renewal_alert import RenewalAlert

__all__ = [
    "User",
    "Subscription",
    "CreditHistory",
    "RenewalAlert",
]
