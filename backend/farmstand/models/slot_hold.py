"""One temporary claim on slot capacity pending payment.

status: held -> confirmed (payment completed) | released (expired, canceled checkout, failed session).
Transitions are conditional updates on status = 'held' so each hold resolves exactly once.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from farmstand.db.base import Base


class SlotHold(Base):
    __tablename__ = "slot_holds"

    id = Column(String(36), primary_key=True)  # uuid4, sent to Stripe as metadata
    slot_id = Column(Integer, ForeignKey("pickup_slots.id"), nullable=False, index=True)
    qty = Column(Integer, nullable=False)
    session_id = Column(String(255), nullable=True, index=True)
    status = Column(String(16), nullable=False, default="held", index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    release_reason = Column(String(64), nullable=True)
