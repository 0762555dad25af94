"""
Subscription management API endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator
from typing import Literal, Optional, List
from datetime import datetime, date
from decimal import Decimal

from app.core.database import get_db
from app.core.auth import get_current_user_dependency
from app.models.user import User
from app.services.renewal import renewal_status
from app.services.subscription import (
    build_summary,
    build_timeline,
    create_subscription as create_subscription_service,
    delete_subscription as delete_subscription_service,
    get_subscription as get_subscription_service,
    monthly_equivalent_price,
    refresh_credit_cycles,
    reorder_subscriptions as reorder_subscriptions_service,
    update_credits as update_credits_service,
    update_subscription as update_subscription_service,
)

router = APIRouter()

BillingCycle = Literal["monthly", "annual"]
Currency = Literal["EUR", "USD", "GBP", "CAD", "CHF"]
Category = Literal["IA", "Productivité", "Design", "Vidéo", "Audio", "Autre"]


def _today() -> date:
    return date.today()


# Request Models
class SubscriptionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    icon: str = Field(min_length=1, max_length=32)
    renewal_day: int = Field(ge=1, le=31)
    renewal_month: Optional[int] = Field(None, ge=1, le=12)
    price: Decimal = Field(ge=0)
    credits_total: int = Field(ge=0)
    credits_remaining: int = Field(ge=0)
    currency: Currency = "EUR"
    category: Optional[Category] = None
    billing_cycle: BillingCycle = "monthly"
    trial_end_date: Optional[date] = None
    credits_tracking_disabled: bool = False
    alerts_enabled: bool = True

    @model_validator(mode="after")
    def check_billing_and_credits(self):
        if self.credits_remaining > self.credits_total:
            raise ValueError("Remaining credits cannot exceed total credits")
        if self.billing_cycle == "annual" and self.renewal_month is None:
            raise ValueError("Annual subscriptions need a renewal month")
        return self


class SubscriptionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    icon: Optional[str] = Field(None, min_length=1, max_length=32)
    renewal_day: Optional[int] = Field(None, ge=1, le=31)
    renewal_month: Optional[int] = Field(None, ge=1, le=12)
    price: Optional[Decimal] = Field(None, ge=0)
    credits_total: Optional[int] = Field(None, ge=0)
    credits_remaining: Optional[int] = Field(None, ge=0)
    currency: Optional[Currency] = None
    category: Optional[Category] = None
    billing_cycle: Optional[BillingCycle] = None
    trial_end_date: Optional[date] = None
    credits_tracking_disabled: Optional[bool] = None
    alerts_enabled: Optional[bool] = None

    # Omitted means unchanged; only renewal_month, category and trial_end_date can be cleared
    @field_validator(
        "name",
        "icon",
        "renewal_day",
        "price",
        "credits_total",
        "credits_remaining",
        "currency",
        "billing_cycle",
        "credits_tracking_disabled",
        "alerts_enabled",
    )
    @classmethod
    def reject_null(cls, value, info: ValidationInfo):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class CreditsUpdate(BaseModel):
    credits_remaining: int = Field(ge=0)
    credits_total: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_credits(self):
        if self.credits_total is not None and self.credits_remaining > self.credits_total:
            raise ValueError("Remaining credits cannot exceed total credits")
        return self


class ReorderRequest(BaseModel):
    active_id: int
    over_id: int


# Response Models
class RenewalStatusResponse(BaseModel):
    next_renewal_date: date
    days_until_renewal: int
    urgency: str
    trial_days_left: Optional[int]
    trial_active: bool
    is_low_credits: bool


class SubscriptionResponse(BaseModel):
    id: int
    name: str
    icon: str
    price: Decimal
    monthly_price: Decimal
    currency: str
    category: Optional[str]
    billing_cycle: str
    renewal_day: int
    renewal_month: Optional[int]
    trial_end_date: Optional[date]
    credits_total: int
    credits_remaining: int
    credits_tracking_disabled: bool
    last_reset_date: Optional[date]
    alerts_enabled: bool
    position: int
    created_at: Optional[datetime]
    renewal: RenewalStatusResponse


class TimelineEntryResponse(BaseModel):
    subscription_id: int
    name: str
    icon: str
    next_renewal_date: date
    days_until_renewal: int
    urgency: str
    credits_total: int
    credits_remaining: int


class SummaryResponse(BaseModel):
    subscription_count: int
    monthly_cost: dict[str, Decimal]
    low_credit_count: int
    next_renewal: Optional[TimelineEntryResponse]
    credits_at_risk: List[TimelineEntryResponse]


def _to_response(subscription, today: date) -> SubscriptionResponse:
    renewal = renewal_status(subscription, today=today)
    return SubscriptionResponse(
        id=subscription.id,
        name=subscription.name,
        icon=subscription.icon,
        price=subscription.price,
        monthly_price=monthly_equivalent_price(subscription),
        currency=subscription.currency,
        category=subscription.category,
        billing_cycle=subscription.billing_cycle,
        renewal_day=subscription.renewal_day,
        renewal_month=subscription.renewal_month,
        trial_end_date=subscription.trial_end_date,
        credits_total=subscription.credits_total,
        credits_remaining=subscription.credits_remaining,
        credits_tracking_disabled=subscription.credits_tracking_disabled,
        last_reset_date=subscription.last_reset_date,
        alerts_enabled=subscription.alerts_enabled,
        position=subscription.position,
        created_at=subscription.created_at,
        renewal=RenewalStatusResponse(**renewal.__dict__),
    )


def _get_or_404(db: Session, user_id: int, subscription_id: int):
    subscription = get_subscription_service(db, user_id, subscription_id)
    if not subscription:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscription not found"
        )
    return subscription


@router.get("", response_model=List[SubscriptionResponse])
async def get_subscriptions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """List subscriptions, resetting credits of those that renewed since the last visit."""
    today = _today()
    subscriptions = refresh_credit_cycles(db, current_user.id, today)
    return [_to_response(subscription, today) for subscription in subscriptions]


@router.post("", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    request: SubscriptionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Create a new subscription."""
    today = _today()
    try:
        subscription = create_subscription_service(db, current_user.id, request.model_dump(), today)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _to_response(subscription, today)


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Monthly cost, next renewal and credits at risk of being lost."""
    today = _today()
    summary = build_summary(refresh_credit_cycles(db, current_user.id, today), today)
    return SummaryResponse(
        subscription_count=summary.subscription_count,
        monthly_cost=summary.monthly_cost,
        low_credit_count=summary.low_credit_count,
        next_renewal=TimelineEntryResponse(**summary.next_renewal.__dict__) if summary.next_renewal else None,
        credits_at_risk=[TimelineEntryResponse(**entry.__dict__) for entry in summary.credits_at_risk],
    )


@router.get("/timeline", response_model=List[TimelineEntryResponse])
async def get_timeline(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Upcoming renewals, soonest first."""
    today = _today()
    timeline = build_timeline(refresh_credit_cycles(db, current_user.id, today), today)
    return [TimelineEntryResponse(**entry.__dict__) for entry in timeline]


@router.post("/reorder", response_model=List[SubscriptionResponse])
async def reorder_subscriptions(
    request: ReorderRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Move a subscription to another subscription's slot."""
    try:
        subscriptions = reorder_subscriptions_service(db, current_user.id, request.active_id, request.over_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    today = _today()
    return [_to_response(subscription, today) for subscription in subscriptions]


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Get one subscription."""
    subscription = _get_or_404(db, current_user.id, subscription_id)
    return _to_response(subscription, _today())


@router.patch("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: int,
    request: SubscriptionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Update a subscription."""
    _get_or_404(db, current_user.id, subscription_id)
    try:
        subscription = update_subscription_service(
            db, current_user.id, subscription_id, request.model_dump(exclude_unset=True)
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _to_response(subscription, _today())


@router.patch("/{subscription_id}/credits", response_model=SubscriptionResponse)
async def update_credits(
    subscription_id: int,
    request: CreditsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Update remaining credits."""
    _get_or_404(db, current_user.id, subscription_id)
    try:
        subscription = update_credits_service(
            db, current_user.id, subscription_id, request.credits_remaining, request.credits_total
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _to_response(subscription, _today())


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    subscription_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Delete a subscription."""
    _get_or_404(db, current_user.id, subscription_id)
    delete_subscription_service(db, current_user.id, subscription_id)
