"""
Credit history API endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from app.core.database import get_db
from app.core.auth import get_current_user_dependency
from app.models.user import User
from app.services.credit_history import get_credit_history, get_monthly_usage

router = APIRouter()


# Response Models
class CreditHistoryItemResponse(BaseModel):
    id: int
    subscription_id: int
    credits_used: int
    credits_total: int
    recorded_at: datetime


class MonthlyUsageResponse(BaseModel):
    month: str
    used: int
    total: int
    percentage: int


@router.get("", response_model=List[CreditHistoryItemResponse])
async def list_credit_history(
    subscription_id: Optional[int] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Get closed credit cycles, oldest first."""
    items = get_credit_history(db, current_user.id, subscription_id, limit=limit, offset=offset)
    return [CreditHistoryItemResponse(**item.__dict__) for item in items]


@router.get("/monthly", response_model=List[MonthlyUsageResponse])
async def get_monthly_credit_usage(
    months: int = Query(6, ge=1, le=24),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Get credit usage aggregated per month for charts."""
    usage = get_monthly_usage(db, current_user.id, months)
    return [MonthlyUsageResponse(**item.__dict__) for item in usage]
