"""
Renewal-date and credit-cycle calculator.

Pure date arithmetic shared by the read API, the credit refresh routine and
the renewal alert job. Nothing here reads the clock: callers pass ``today``.

Day-of-month overflow is clamped: a renewal day of 31 falls on the last day
of shorter months (30 April, 28/29 February), looking forward and backward
alike.
"""
import calendar
from datetime import date, datetime
from typing import Optional, Tuple, Union

from app.services.renewal.renewal_models import (
    BILLING_ANNUAL,
    BILLING_CYCLES,
    BILLING_MONTHLY,
    CRITICAL_THRESHOLD_DAYS,
    LOW_CREDITS_RATIO,
    URGENCY_CRITICAL,
    URGENCY_NORMAL,
    URGENCY_WARNING,
    WARNING_THRESHOLD_DAYS,
    CreditCycleEvaluation,
    RenewalStatus,
    ResetState,
    UsageRecord,
)

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    """Drop the time of day so differences are counted in calendar days."""
    if isinstance(value, datetime):
        return value.date()
    return value


def _clamped_date(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _check_billing(renewal_day: int, billing_cycle: Optional[str], renewal_month: Optional[int]) -> str:
    cycle = billing_cycle or BILLING_MONTHLY
    if cycle not in BILLING_CYCLES:
        raise ValueError(f"Unknown billing cycle: {billing_cycle}")
    if not 1 <= renewal_day <= 31:
        raise ValueError(f"Renewal day must be between 1 and 31, got {renewal_day}")
    if renewal_month is not None and not 1 <= renewal_month <= 12:
        raise ValueError(f"Renewal month must be between 1 and 12, got {renewal_month}")
    # Annual without an anchor month renews like a monthly subscription
    if cycle == BILLING_ANNUAL and renewal_month is None:
        return BILLING_MONTHLY
    return cycle


def next_renewal_date(
    renewal_day: int,
    billing_cycle: Optional[str] = BILLING_MONTHLY,
    renewal_month: Optional[int] = None,
    *,
    today: DateLike,
) -> date:
    """
    Get the next date on or after ``today`` on which the subscription renews.

    Args:
        renewal_day: Day of month the cycle renews on (1-31)
        billing_cycle: 'monthly' or 'annual'
        renewal_month: Month of renewal (1-12), annual cycles only
        today: Current date (datetimes are truncated to their date)

    Returns:
        Renewal date, equal to ``today`` when the subscription renews today
    """
    cycle = _check_billing(renewal_day, billing_cycle, renewal_month)
    today = _as_date(today)

    if cycle == BILLING_ANNUAL:
        candidate = _clamped_date(today.year, renewal_month, renewal_day)
        if candidate < today:
            candidate = _clamped_date(today.year + 1, renewal_month, renewal_day)
        return candidate

    candidate = _clamped_date(today.year, today.month, renewal_day)
    if candidate < today:
        year, month = _shift_month(today.year, today.month, 1)
        candidate = _clamped_date(year, month, renewal_day)
    return candidate


def last_renewal_date(
    renewal_day: int,
    billing_cycle: Optional[str] = BILLING_MONTHLY,
    renewal_month: Optional[int] = None,
    *,
    today: DateLike,
) -> date:
    """
    Get the most recent renewal boundary on or before ``today``.

    Mirror of next_renewal_date looking backward: when this period's
    renewal has not happened yet, the previous period's occurrence is used.
    """
    cycle = _check_billing(renewal_day, billing_cycle, renewal_month)
    today = _as_date(today)

    if cycle == BILLING_ANNUAL:
        candidate = _clamped_date(today.year, renewal_month, renewal_day)
        if candidate > today:
            candidate = _clamped_date(today.year - 1, renewal_month, renewal_day)
        return candidate

    candidate = _clamped_date(today.year, today.month, renewal_day)
    if candidate > today:
        year, month = _shift_month(today.year, today.month, -1)
        candidate = _clamped_date(year, month, renewal_day)
    return candidate


def days_between(start: DateLike, end: DateLike) -> int:
    """Whole calendar days from ``start`` to ``end`` (negative if ``end`` is earlier)."""
    return (_as_date(end) - _as_date(start)).days


def days_until_renewal(
    renewal_day: int,
    billing_cycle: Optional[str] = BILLING_MONTHLY,
    renewal_month: Optional[int] = None,
    *,
    today: DateLike,
) -> int:
    """Days until the next renewal; 0 when it renews today, never negative."""
    renewal_date = next_renewal_date(renewal_day, billing_cycle, renewal_month, today=today)
    return days_between(today, renewal_date)


def urgency_level(days_remaining: int) -> str:
    if days_remaining <= CRITICAL_THRESHOLD_DAYS:
        return URGENCY_CRITICAL
    if days_remaining <= WARNING_THRESHOLD_DAYS:
        return URGENCY_WARNING
    return URGENCY_NORMAL


def trial_days_left(trial_end_date: Optional[DateLike], *, today: DateLike) -> Optional[int]:
    """Days left in the trial, negative once it has ended, None without a trial."""
    if trial_end_date is None:
        return None
    return days_between(today, trial_end_date)


def is_trial_active(days_left: Optional[int]) -> bool:
    return days_left is not None and days_left >= 0


def is_low_credits(credits_remaining: int, credits_total: int) -> bool:
    """True when at most 20% of the allotment is left; never for a zero allotment."""
    if credits_total <= 0:
        return False
    return credits_remaining / credits_total <= LOW_CREDITS_RATIO


def evaluate_credit_cycle(subscription, *, today: DateLike) -> CreditCycleEvaluation:
    """
    Decide whether a subscription's credits must be reset.

    Credits reset when the last recorded reset predates the most recent
    renewal boundary. The evaluation never mutates ``subscription``; the
    caller persists ``reset_to`` and ``usage_to_record``. Once ``reset_to``
    is applied, evaluating again on the same day reports no reset.

    Args:
        subscription: Object with renewal_day, billing_cycle, renewal_month,
            credits_total, credits_remaining and last_reset_date attributes
            (credits_tracking_disabled is optional)
        today: Current date

    Returns:
        CreditCycleEvaluation
    """
    today = _as_date(today)
    boundary = last_renewal_date(
        subscription.renewal_day,
        subscription.billing_cycle,
        subscription.renewal_month,
        today=today,
    )

    last_reset = subscription.last_reset_date
    if last_reset is not None:
        last_reset = _as_date(last_reset)

    needs_reset = (last_reset is None or last_reset < boundary) and today >= boundary

    if not needs_reset:
        return CreditCycleEvaluation(
            needs_reset=False,
            last_renewal_date=boundary,
            reset_to=ResetState(
                credits_remaining=subscription.credits_remaining,
                last_reset_date=last_reset,
            ),
        )

    usage = None
    credits_used = subscription.credits_total - subscription.credits_remaining
    tracking_disabled = getattr(subscription, "credits_tracking_disabled", False)
    if credits_used != 0 and not tracking_disabled:
        usage = UsageRecord(credits_used=credits_used, credits_total=subscription.credits_total)

    return CreditCycleEvaluation(
        needs_reset=True,
        last_renewal_date=boundary,
        reset_to=ResetState(credits_remaining=subscription.credits_total, last_reset_date=today),
        usage_to_record=usage,
    )


def renewal_status(subscription, *, today: DateLike) -> RenewalStatus:
    """Bundle every derived renewal value for one subscription."""
    renewal_date = next_renewal_date(
        subscription.renewal_day,
        subscription.billing_cycle,
        subscription.renewal_month,
        today=today,
    )
    days = days_between(today, renewal_date)
    trial_left = trial_days_left(subscription.trial_end_date, today=today)

    return RenewalStatus(
        next_renewal_date=renewal_date,
        days_until_renewal=days,
        urgency=urgency_level(days),
        trial_days_left=trial_left,
        trial_active=is_trial_active(trial_left),
        is_low_credits=is_low_credits(subscription.credits_remaining, subscription.credits_total),
    )
