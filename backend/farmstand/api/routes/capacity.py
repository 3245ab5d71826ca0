from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from farmstand.api.routes.pickup_slots import parse_day
from farmstand.db.session import get_db
from farmstand.services.capacity import capacity_summary

router = APIRouter()


@router.get("/{day}")
def get_capacity(day: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Pickups offered on a day: weekday rule, reduced when the Airbnb is occupied."""
    return capacity_summary(db, parse_day(day))
