"""
Demand governor: panic mode and auto-pause on high utilization, checked before new reservations.

Advisory only. It is not atomic with reserve(); the ledger alone prevents overselling.
Settings are passed in per call (read fresh per request), never cached here.
"""
from dataclasses import dataclass
from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session

from farmstand.core.constants import (
    DEFAULT_AUTO_PAUSE_THRESHOLD,
    DEFAULT_PANIC_MODE,
    GLOBAL_SETTINGS_ROW_ID,
)
from farmstand.core.errors import REASON_AUTO_PAUSE, REASON_PANIC_MODE
from farmstand.models.global_settings import GlobalSettings
from farmstand.models.pickup_slot import PickupSlot


@dataclass(frozen=True)
class GovernorSettings:
    panic_mode: bool = DEFAULT_PANIC_MODE
    auto_pause_threshold: int = DEFAULT_AUTO_PAUSE_THRESHOLD


@dataclass(frozen=True)
class Admission:
    allowed: bool
    reason: str | None = None


def load_governor_settings(db: Session) -> GovernorSettings:
    row = db.get(GlobalSettings, GLOBAL_SETTINGS_ROW_ID)
    if row is None:
        return GovernorSettings()
    return GovernorSettings(panic_mode=bool(row.panic_mode), auto_pause_threshold=int(row.auto_pause_threshold))


def day_utilization(db: Session, day: date) -> tuple[int, int]:
    """(reserved, capacity) summed over the day's slots."""
    reserved, capacity = (
        db.query(func.coalesce(func.sum(PickupSlot.reserved), 0), func.coalesce(func.sum(PickupSlot.capacity), 0))
        .filter(PickupSlot.day == day)
        .one()
    )
    return int(reserved), int(capacity)


def check_admission(db: Session, day: date, settings: GovernorSettings) -> Admission:
    if settings.panic_mode:
        return Admission(False, REASON_PANIC_MODE)
    if settings.auto_pause_threshold > 0:
        reserved, capacity = day_utilization(db, day)
        # reserved / capacity >= threshold / 100, in integers
        if capacity > 0 and reserved * 100 >= settings.auto_pause_threshold * capacity:
            return Admission(False, REASON_AUTO_PAUSE)
    return Admission(True)
