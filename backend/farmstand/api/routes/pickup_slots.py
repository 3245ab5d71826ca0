"""
Pickup slots: storefront availability and the generation trigger (also run nightly by the scheduler).
"""
import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from farmstand.core.errors import ValidationError
from farmstand.db.session import get_db
from farmstand.services.occupancy import refresh_occupancy
from farmstand.services.pickups import available_slots
from farmstand.services.slot_generator import generate_slots

router = APIRouter()
logger = logging.getLogger(__name__)


def parse_day(value: str | None) -> date:
    if not value:
        raise ValidationError("Date parameter is required")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError("Invalid date, expected YYYY-MM-DD") from None


@router.get("/available")
def get_available_slots(day: str | None = Query(None, alias="date"), db: Session = Depends(get_db)) -> dict[str, Any]:
    return available_slots(db, parse_day(day))


@router.post("/generate")
def post_generate_slots(db: Session = Depends(get_db)) -> dict[str, Any]:
    occupancy_refreshed = False
    try:
        refresh_occupancy(db)
        occupancy_refreshed = True
    except Exception as e:
        db.rollback()
        logger.warning("Occupancy refresh before slot generation failed: %s", e)
    created = generate_slots(db)
    return {"success": True, "slotsCreated": created, "occupancyRefreshed": occupancy_refreshed}
