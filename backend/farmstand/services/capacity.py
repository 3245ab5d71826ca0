"""Capacity rule resolver: pickups available on a day given the weekday rule and venue occupancy."""
from datetime import date

from sqlalchemy.orm import Session

from farmstand.core.dates import weekday_of
from farmstand.core.errors import ConfigurationError
from farmstand.models.capacity_rule import CapacityRule
from farmstand.models.occupancy import AirbnbOccupancy


def is_occupied(db: Session, day: date) -> bool:
    """No occupancy row for the day means the venue is free."""
    row = db.query(AirbnbOccupancy).filter(AirbnbOccupancy.day == day).first()
    return bool(row and row.occupied)


def get_capacity_rule(db: Session, weekday: int) -> CapacityRule:
    rule = db.query(CapacityRule).filter(CapacityRule.weekday == weekday).first()
    if rule is None:
        raise ConfigurationError(
            f"No capacity rule for weekday {weekday}. Seed all 7 weekdays (0 = Sunday .. 6 = Saturday)."
        )
    return rule


def resolve_capacity(db: Session, day: date) -> int:
    rule = get_capacity_rule(db, weekday_of(day))
    return rule.occupied_pickups if is_occupied(db, day) else rule.base_pickups


def capacity_summary(db: Session, day: date) -> dict:
    """Payload for GET /api/capacity/{date}."""
    weekday = weekday_of(day)
    occupied = is_occupied(db, day)
    rule = get_capacity_rule(db, weekday)
    return {
        "date": day.isoformat(),
        "occupied": occupied,
        "weekday": weekday,
        "capacity": rule.occupied_pickups if occupied else rule.base_pickups,
    }
