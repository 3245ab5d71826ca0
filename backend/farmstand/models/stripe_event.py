"""Received Stripe webhook events. processed=True means the event must not be handled again."""
from sqlalchemy import Boolean, Column, DateTime, String, Text
from sqlalchemy.sql import func

from farmstand.db.base import Base


class StripeEvent(Base):
    __tablename__ = "stripe_events"

    id = Column(String(255), primary_key=True)  # Stripe event id (evt_...)
    type = Column(String(64), nullable=False)
    received_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    processed = Column(Boolean, nullable=False, default=False)
    error_message = Column(Text, nullable=True)
