"""
Credit history model: one row per closed credit cycle.
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.core.database import Base


class CreditHistory(Base):
    __tablename__ = "credit_history"

    id = Column(Integer, primary_key=True, index=True)
    subscription_id = Column(Integer, ForeignKey('subscriptions.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    credits_used = Column(Integer, nullable=False)
    credits_total = Column(Integer, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    subscription = relationship("Subscription", back_populates="credit_history")
