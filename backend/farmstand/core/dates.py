"""
Farm-local date helpers. Slots are generated in the farm's timezone and stored in UTC.

Weekdays use the calendar convention of the capacity tables: 0 = Sunday .. 6 = Saturday.
"""
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from farmstand.config import settings


def farm_tz() -> ZoneInfo:
    return ZoneInfo(settings.farm_timezone)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_today() -> date:
    return datetime.now(farm_tz()).date()


def weekday_of(day: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return day.isoweekday() % 7


def as_utc(dt: datetime | None) -> datetime | None:
    """SQLite returns naive datetimes; everything stored is UTC."""
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)


def local_start_utc(day: date, at: time) -> datetime:
    """Farm wall-clock (day, at) as an aware UTC datetime."""
    return datetime.combine(day, at, tzinfo=farm_tz()).astimezone(timezone.utc)


def to_local(dt: datetime) -> datetime:
    return as_utc(dt).astimezone(farm_tz())


def display_time(dt: datetime) -> str:
    """Storefront label, e.g. '9:20 AM'."""
    local = to_local(dt)
    return local.strftime("%I:%M %p").lstrip("0")
