"""
Subscription model for tracked AI/software subscriptions.
"""
from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Numeric, ForeignKey, func
from sqlalchemy.orm import relationship
from app.core.database import Base


class Subscription(Base):
    """A recurring subscription with its billing anchor and credit allotment."""

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    icon = Column(String(32), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default='EUR')
    category = Column(String(50), nullable=True)  # IA, Productivité, Design, Vidéo, Audio, Autre

    # Billing anchor
    # billing_cycle: 'monthly' or 'annual'; renewal_month only used for 'annual'
    billing_cycle = Column(String(20), nullable=False, default='monthly')
    renewal_day = Column(Integer, nullable=False)
    renewal_month = Column(Integer, nullable=True)
    trial_end_date = Column(Date, nullable=True)

    # Credits
    credits_total = Column(Integer, nullable=False, default=0)
    credits_remaining = Column(Integer, nullable=False, default=0)
    credits_tracking_disabled = Column(Boolean, nullable=False, default=False)
    last_reset_date = Column(Date, nullable=True)

    alerts_enabled = Column(Boolean, nullable=False, default=True)
    position = Column(Integer, nullable=False, default=0)

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="subscriptions")
    credit_history = relationship("CreditHistory", back_populates="subscription", cascade="all, delete-orphan")
    renewal_alerts = relationship("RenewalAlert", back_populates="subscription", cascade="all, delete-orphan")
