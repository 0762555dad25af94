"""
Renewal alert ledger.

One row per reminder actually sent; the unique key makes the alert job
idempotent for a given subscription, renewal date and offset.
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from app.core.database import Base


class RenewalAlert(Base):
    __tablename__ = "renewal_alerts"
    __table_args__ = (
        UniqueConstraint('subscription_id', 'renewal_date', 'days_before', name='uq_renewal_alert'),
    )

    id = Column(Integer, primary_key=True, index=True)
    subscription_id = Column(Integer, ForeignKey('subscriptions.id', ondelete='CASCADE'), nullable=False, index=True)
    renewal_date = Column(Date, nullable=False)
    days_before = Column(Integer, nullable=False)
    recipient = Column(String(255), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    subscription = relationship("Subscription", back_populates="renewal_alerts")
