"""Venue occupancy per day, derived from the Airbnb iCal feed. One row per day (upserted)."""
from sqlalchemy import Boolean, Column, Date, DateTime, Integer
from sqlalchemy.sql import func

from farmstand.db.base import Base


class AirbnbOccupancy(Base):
    __tablename__ = "airbnb_occupancy"

    id = Column(Integer, primary_key=True, autoincrement=True)
    day = Column(Date, nullable=False, unique=True, index=True)
    occupied = Column(Boolean, nullable=False, default=False)
    imported_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
