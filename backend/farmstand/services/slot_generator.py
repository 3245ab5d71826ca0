"""
Slot generator: materialize pickup slots for the next N days from capacity rules and pickup windows.

Idempotent: INSERT ... ON CONFLICT (day, start_ts) DO NOTHING, so an existing slot's
capacity and reserved count are never overwritten. Runs daily from the scheduler and on
POST /api/pickup-slots/generate.
"""
import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from farmstand.config import settings
from farmstand.core.dates import local_start_utc, local_today, weekday_of
from farmstand.core.errors import ConfigurationError
from farmstand.db.upsert import insert_for
from farmstand.models.blackout_day import BlackoutDay
from farmstand.models.pickup_slot import PickupSlot
from farmstand.models.pickup_window import PickupWindow
from farmstand.services.capacity import resolve_capacity

logger = logging.getLogger(__name__)


def slot_start_times(day: date, start: time, end: time, slot_minutes: int) -> list[time]:
    """Wall-clock starts from start while < end. A trailing partial interval still gets a slot."""
    if slot_minutes <= 0:
        raise ConfigurationError(f"Pickup window slot_minutes must be positive, got {slot_minutes}")
    starts: list[time] = []
    cursor = datetime.combine(day, start)
    stop = datetime.combine(day, end)
    step = timedelta(minutes=slot_minutes)
    while cursor < stop:
        starts.append(cursor.time())
        cursor += step
    return starts


def active_windows(db: Session, weekday: int) -> list[PickupWindow]:
    return (
        db.query(PickupWindow)
        .filter(PickupWindow.weekday == weekday, PickupWindow.active.is_(True))
        .order_by(PickupWindow.start_time)
        .all()
    )


def blackout_days_between(db: Session, first: date, last: date) -> set[date]:
    rows = db.query(BlackoutDay.day).filter(BlackoutDay.day >= first, BlackoutDay.day <= last).all()
    return {r[0] for r in rows}


def generate_slots(db: Session, window_days: int | None = None, today: date | None = None) -> int:
    """
    Create missing slots for [today, today + window_days). Returns the number of slots created.

    Raises ConfigurationError when a weekday has no capacity rule; a day is never skipped silently.
    """
    window_days = settings.slot_window_days if window_days is None else window_days
    today = today or local_today()
    last = today + timedelta(days=max(window_days - 1, 0))
    blackouts = blackout_days_between(db, today, last)
    created = 0
    for offset in range(window_days):
        day = today + timedelta(days=offset)
        if day in blackouts:
            logger.info("Slot generation: %s is a blackout day; skipping", day)
            continue
        capacity = resolve_capacity(db, day)
        for window in active_windows(db, weekday_of(day)):
            for start in slot_start_times(day, window.start_time, window.end_time, window.slot_minutes):
                stmt = (
                    insert_for(db, PickupSlot)
                    .values(day=day, start_ts=local_start_utc(day, start), capacity=capacity, reserved=0)
                    .on_conflict_do_nothing(index_elements=["day", "start_ts"])
                )
                created += db.execute(stmt).rowcount or 0
    db.commit()
    logger.info("Slot generation: created %s slots for %s days starting %s", created, window_days, today)
    return created
