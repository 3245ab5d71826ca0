"""Recurring pickup window template: slots every slot_minutes from start_time until end_time (exclusive)."""
from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Time

from farmstand.db.base import Base


class PickupWindow(Base):
    __tablename__ = "pickup_windows"
    __table_args__ = (
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_pickup_windows_weekday"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    weekday = Column(Integer, nullable=False, index=True)  # 0 = Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    slot_minutes = Column(Integer, nullable=False, default=15)
    active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<PickupWindow(weekday={self.weekday}, {self.start_time}-{self.end_time}, every {self.slot_minutes}m)>"
