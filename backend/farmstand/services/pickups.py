"""Slot read models for the storefront and the staff pickup timeline."""
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from farmstand.core.dates import as_utc, display_time, local_today, utcnow
from farmstand.models.pickup_slot import PickupSlot
from farmstand.services.reservations import sweep_expired_holds


def _slot_dict(slot: PickupSlot) -> dict[str, Any]:
    return {
        "id": slot.id,
        "startTime": as_utc(slot.start_ts).isoformat(),
        "capacity": slot.capacity,
        "reserved": slot.reserved,
        "available": slot.available,
        "displayTime": display_time(slot.start_ts),
    }


def available_slots(db: Session, day: date) -> dict[str, Any]:
    """Future slots on day with room left. Expired holds for the day are released first."""
    sweep_expired_holds(db, day=day)
    now = utcnow()
    slots = (
        db.query(PickupSlot)
        .filter(PickupSlot.day == day, PickupSlot.reserved < PickupSlot.capacity)
        .order_by(PickupSlot.start_ts)
        .all()
    )
    return {
        "date": day.isoformat(),
        "availableSlots": [_slot_dict(s) for s in slots if as_utc(s.start_ts) > now],
    }


def pickups_today(db: Session, day: date | None = None) -> dict[str, Any]:
    day = day or local_today()
    slots = db.query(PickupSlot).filter(PickupSlot.day == day).order_by(PickupSlot.start_ts).all()
    return {
        "date": day.isoformat(),
        "totals": {
            "reserved": sum(s.reserved for s in slots),
            "capacity": sum(s.capacity for s in slots),
        },
        "timeline": [_slot_dict(s) for s in slots],
    }
