"""
Renewal and credit-cycle model classes.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional


BILLING_MONTHLY = "monthly"
BILLING_ANNUAL = "annual"
BILLING_CYCLES = (BILLING_MONTHLY, BILLING_ANNUAL)

URGENCY_CRITICAL = "critical"
URGENCY_WARNING = "warning"
URGENCY_NORMAL = "normal"

CRITICAL_THRESHOLD_DAYS = 3
WARNING_THRESHOLD_DAYS = 7
LOW_CREDITS_RATIO = 0.20


@dataclass
class BillingProfile:
    """
    Plain snapshot of the fields the calculator reads.

    Any object exposing the same attributes (e.g. the Subscription ORM model)
    can be passed to the calculator instead.
    """
    renewal_day: int
    billing_cycle: str = BILLING_MONTHLY
    renewal_month: Optional[int] = None
    credits_total: int = 0
    credits_remaining: int = 0
    last_reset_date: Optional[date] = None
    trial_end_date: Optional[date] = None
    credits_tracking_disabled: bool = False


@dataclass
class UsageRecord:
    """Usage of the credit period that just closed."""
    credits_used: int
    credits_total: int


@dataclass
class ResetState:
    """Credit state the caller should persist."""
    credits_remaining: int
    last_reset_date: Optional[date]


@dataclass
class CreditCycleEvaluation:
    """Outcome of checking a subscription against its last renewal boundary."""
    needs_reset: bool
    last_renewal_date: date
    reset_to: ResetState
    usage_to_record: Optional[UsageRecord] = None


@dataclass
class RenewalStatus:
    """Derived renewal values for display and alerting."""
    next_renewal_date: date
    days_until_renewal: int
    urgency: str  # critical, warning, normal
    trial_days_left: Optional[int]
    trial_active: bool
    is_low_credits: bool
