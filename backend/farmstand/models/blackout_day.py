"""Days with no pickups at all; the slot generator skips them."""
from sqlalchemy import Column, Date, DateTime, Integer, String
from sqlalchemy.sql import func

from farmstand.db.base import Base


class BlackoutDay(Base):
    __tablename__ = "blackout_days"

    id = Column(Integer, primary_key=True, autoincrement=True)
    day = Column(Date, nullable=False, unique=True)
    reason = Column(String(255), nullable=True)
    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
