"""
Renewal alert endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List
from datetime import date

from app.core.database import get_db
from app.core.auth import get_current_user_dependency
from app.models.user import User
from app.services.scheduler import send_renewal_alerts

router = APIRouter()


class AlertRunResponse(BaseModel):
    message: str
    total_subscriptions: int
    alerts_enabled: int
    alerts_sent: List[str]
    already_sent: List[str]
    errors: List[str]


@router.post("/run", response_model=AlertRunResponse)
async def run_renewal_alerts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Run the renewal alert job now for the current user. Reminders already sent today are not resent."""
    result = send_renewal_alerts(db, date.today(), user_id=current_user.id)
    return AlertRunResponse(**result.__dict__)
