"""Concrete pickup slot with finite capacity. Never deleted (historical record).

reserved is only written by the reservation ledger (farmstand.services.reservations).
hold_expires_at / held_by_session mirror the most recent hold; slot_holds has one row per hold.
"""
from sqlalchemy import CheckConstraint, Column, Date, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import validates
from sqlalchemy.sql import func

from farmstand.db.base import Base


class PickupSlot(Base):
    __tablename__ = "pickup_slots"
    __table_args__ = (
        UniqueConstraint("day", "start_ts", name="uq_pickup_slots_day_start_ts"),
        CheckConstraint("capacity >= 0", name="ck_pickup_slots_capacity"),
        CheckConstraint("reserved >= 0 AND reserved <= capacity", name="ck_pickup_slots_reserved"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    day = Column(Date, nullable=False, index=True)  # farm local date
    start_ts = Column(DateTime(timezone=True), nullable=False)  # UTC
    capacity = Column(Integer, nullable=False, default=0)
    reserved = Column(Integer, nullable=False, default=0)
    hold_expires_at = Column(DateTime(timezone=True), nullable=True)
    held_by_session = Column(String(255), nullable=True)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @validates("capacity", "reserved")
    def _validate_counts(self, key, value):
        if value is None or value < 0:
            raise ValueError(f"{key} must be >= 0, got {value!r}")
        if key == "reserved" and self.capacity is not None and value > self.capacity:
            raise ValueError(f"reserved ({value}) exceeds capacity ({self.capacity})")
        return value

    @property
    def available(self) -> int:
        return max(0, (self.capacity or 0) - (self.reserved or 0))

    def __repr__(self):
        return f"<PickupSlot(id={self.id}, day={self.day}, start_ts={self.start_ts}, {self.reserved}/{self.capacity})>"
