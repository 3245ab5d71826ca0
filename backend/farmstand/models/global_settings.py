"""Operator settings singleton (id = 1): panic mode kill-switch and auto-pause threshold (percent)."""
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from farmstand.db.base import Base


class GlobalSettings(Base):
    __tablename__ = "global_settings"
    __table_args__ = (
        CheckConstraint(
            "auto_pause_threshold >= 0 AND auto_pause_threshold <= 100",
            name="ck_global_settings_threshold",
        ),
    )

    id = Column(Integer, primary_key=True)
    panic_mode = Column(Boolean, nullable=False, default=False)
    auto_pause_threshold = Column(Integer, nullable=False, default=80)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    updated_by = Column(String(64), nullable=True)

    def to_dict(self) -> dict:
        return {"panic_mode": bool(self.panic_mode), "auto_pause_threshold": int(self.auto_pause_threshold)}
