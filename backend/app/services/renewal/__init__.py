"""
Renewal-date and credit-cycle calculator.
"""
from app.services.renewal.renewal_calculator import (
    next_renewal_date,
    last_renewal_date,
    days_between,
    days_until_renewal,
    urgency_level,
    trial_days_left,
    is_trial_active,
    is_low_credits,
    evaluate_credit_cycle,
    renewal_status,
)
from app.services.renewal.renewal_models import (
    BILLING_MONTHLY,
    BILLING_ANNUAL,
    BILLING_CYCLES,
    URGENCY_CRITICAL,
    URGENCY_WARNING,
    URGENCY_NORMAL,
    BillingProfile,
    UsageRecord,
    ResetState,
    CreditCycleEvaluation,
    RenewalStatus,
)

__all__ = [
    "next_renewal_date",
    "last_renewal_date",
    "days_between",
    "days_until_renewal",
    "urgency_level",
    "trial_days_left",
    "is_trial_active",
    "is_low_credits",
    "evaluate_credit_cycle",
    "renewal_status",
    "BILLING_MONTHLY",
    "BILLING_ANNUAL",
    "BILLING_CYCLES",
    "URGENCY_CRITICAL",
    "URGENCY_WARNING",
    "URGENCY_NORMAL",
    "BillingProfile",
    "UsageRecord",
    "ResetState",
    "CreditCycleEvaluation",
    "RenewalStatus",
]
