"""Pickup capacity per weekday: base_pickups normally, occupied_pickups when the venue is booked.

weekday: 0 = Sunday .. 6 = Saturday. Every weekday must have exactly one row.
"""
from sqlalchemy import CheckConstraint, Column, Integer
from sqlalchemy.orm import validates

from farmstand.db.base import Base


class CapacityRule(Base):
    __tablename__ = "capacity_rules"
    __table_args__ = (
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_capacity_rules_weekday"),
        CheckConstraint("base_pickups >= 0 AND occupied_pickups >= 0", name="ck_capacity_rules_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    weekday = Column(Integer, nullable=False, unique=True)
    base_pickups = Column(Integer, nullable=False, default=0)
    occupied_pickups = Column(Integer, nullable=False, default=0)

    @validates("weekday")
    def _validate_weekday(self, key, value):
        if value is None or not 0 <= value <= 6:
            raise ValueError(f"weekday must be 0-6, got {value!r}")
        return value

    @validates("base_pickups", "occupied_pickups")
    def _validate_pickups(self, key, value):
        if value is None or value < 0:
            raise ValueError(f"{key} must be >= 0, got {value!r}")
        return value

    def __repr__(self):
        return f"<CapacityRule(weekday={self.weekday}, base={self.base_pickups}, occupied={self.occupied_pickups})>"
