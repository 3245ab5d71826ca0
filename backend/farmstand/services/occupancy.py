"""Airbnb calendar import: one occupancy row per day for the next occupancy_window_days."""
import logging
from datetime import date, datetime, timedelta
from typing import Any

import httpx
from icalendar import Calendar

from farmstand.config import settings
from farmstand.core.dates import local_today, to_local, utcnow
from farmstand.core.errors import ConfigurationError, ExternalServiceError
from farmstand.core.retry import call_with_retry
from farmstand.db.upsert import insert_for
from farmstand.models.occupancy import AirbnbOccupancy

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_SECONDS = 20.0


def fetch_ical(url: str) -> str:
    def _get() -> str:
        with httpx.Client(timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True) as c:
            r = c.get(url)
        r.raise_for_status()
        return r.text

    try:
        return call_with_retry(_get, retry_on=(httpx.TransportError,), label="iCal fetch")
    except httpx.HTTPError as e:
        raise ExternalServiceError(f"Failed to fetch Airbnb calendar: {e}") from e


def _as_day(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return to_local(value).date() if value.tzinfo else value.date()
    return value


def busy_days(ical_text: str) -> set[date]:
    """Days covered by any VEVENT, DTSTART <= day < DTEND (a one-day event if DTEND is missing)."""
    cal = Calendar.from_ical(ical_text)
    days: set[date] = set()
    for event in cal.walk("VEVENT"):
        start_prop = event.get("dtstart")
        if start_prop is None:
            continue
        start = _as_day(start_prop.dt)
        end_prop = event.get("dtend")
        end = _as_day(end_prop.dt) if end_prop is not None else start + timedelta(days=1)
        if end <= start:
            end = start + timedelta(days=1)
        day = start
        while day < end:
            days.add(day)
            day += timedelta(days=1)
    return days


def refresh_occupancy(db, ical_text: str | None = None, today: date | None = None) -> dict[str, Any]:
    """Fetch (unless ical_text is given), parse and upsert occupancy for the window starting today."""
    if ical_text is None:
        if not settings.airbnb_ical_url:
            raise ConfigurationError("AIRBNB_ICAL_URL not configured")
        ical_text = fetch_ical(settings.airbnb_ical_url)
    try:
        busy = busy_days(ical_text)
    except ValueError as e:
        raise ExternalServiceError(f"Invalid Airbnb calendar: {e}") from e

    start = today or local_today()
    imported_at = utcnow()
    busy_count = 0
    try:
        for offset in range(settings.occupancy_window_days):
            day = start + timedelta(days=offset)
            occupied = day in busy
            busy_count += int(occupied)
            stmt = insert_for(db, AirbnbOccupancy).values(day=day, occupied=occupied, imported_at=imported_at)
            stmt = stmt.on_conflict_do_update(
                index_elements=["day"],
                set_={"occupied": stmt.excluded.occupied, "imported_at": stmt.excluded.imported_at},
            )
            db.execute(stmt)
        db.commit()
    except Exception:
        db.rollback()
        raise
    message = f"Imported {settings.occupancy_window_days} days of occupancy ({busy_count} busy)"
    logger.info("Occupancy refresh: %s", message)
    return {"ok": True, "message": message, "busyDaysCount": busy_count}
