"""
Admin endpoints: operator settings (panic mode, auto-pause threshold), blackout days, audit log.
"""
import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from farmstand.db.session import get_db
from farmstand.services.admin_service import (
    create_blackout_day,
    get_settings,
    list_blackout_days,
    update_settings,
)
from farmstand.services.audit import list_audit_events

router = APIRouter()
logger = logging.getLogger(__name__)


# --- Settings ---


class UpdateSettingsRequest(BaseModel):
    panic_mode: bool | None = None
    auto_pause_threshold: int | None = Field(None, ge=0, le=100)


@router.get("/settings")
def read_settings(db: Session = Depends(get_db)) -> dict[str, Any]:
    return {"settings": get_settings(db)}


@router.patch("/settings")
def patch_settings(body: UpdateSettingsRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    return {
        "settings": update_settings(
            db, panic_mode=body.panic_mode, auto_pause_threshold=body.auto_pause_threshold
        )
    }


# --- Blackout days ---


class CreateBlackoutDayRequest(BaseModel):
    day: date
    reason: str | None = Field(None, max_length=255)


@router.get("/blackout-days")
def read_blackout_days(db: Session = Depends(get_db)) -> dict[str, Any]:
    return {"blackoutDays": list_blackout_days(db)}


@router.post("/blackout-days", status_code=201)
def post_blackout_day(body: CreateBlackoutDayRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    return {"blackoutDay": create_blackout_day(db, body.day, body.reason)}


# --- Audit ---


@router.get("/audit")
def read_audit(
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    entity: str | None = Query(None),
    action: str | None = Query(None),
) -> dict[str, Any]:
    return list_audit_events(db, limit=limit, offset=offset, entity=entity, action=action)
