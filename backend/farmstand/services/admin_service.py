"""
Admin: operator settings (panic mode, auto-pause threshold) and blackout days.
The settings row (id = 1) is created with defaults on first write.
"""
import logging
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from farmstand.core.constants import DEFAULT_AUTO_PAUSE_THRESHOLD, DEFAULT_PANIC_MODE, GLOBAL_SETTINGS_ROW_ID
from farmstand.core.errors import ConflictError, ValidationError
from farmstand.models.blackout_day import BlackoutDay
from farmstand.models.global_settings import GlobalSettings
from farmstand.services.audit import log_audit_event
from farmstand.services.governor import load_governor_settings

logger = logging.getLogger(__name__)


def get_settings(db: Session) -> dict[str, Any]:
    current = load_governor_settings(db)
    return {"panic_mode": current.panic_mode, "auto_pause_threshold": current.auto_pause_threshold}


def update_settings(
    db: Session,
    *,
    panic_mode: bool | None = None,
    auto_pause_threshold: int | None = None,
    actor: str = "staff",
) -> dict[str, Any]:
    """Partial update; fields left None are unchanged."""
    if auto_pause_threshold is not None and not 0 <= auto_pause_threshold <= 100:
        raise ValidationError("auto_pause_threshold must be between 0 and 100")
    row = db.get(GlobalSettings, GLOBAL_SETTINGS_ROW_ID)
    if row is None:
        row = GlobalSettings(
            id=GLOBAL_SETTINGS_ROW_ID,
            panic_mode=DEFAULT_PANIC_MODE,
            auto_pause_threshold=DEFAULT_AUTO_PAUSE_THRESHOLD,
        )
        db.add(row)
    old = row.to_dict()
    if panic_mode is not None:
        row.panic_mode = panic_mode
    if auto_pause_threshold is not None:
        row.auto_pause_threshold = auto_pause_threshold
    row.updated_by = actor
    new = row.to_dict()
    log_audit_event(db, "update_settings", "global_settings", GLOBAL_SETTINGS_ROW_ID, actor=actor, old_values=old, new_values=new)
    db.commit()
    if old["panic_mode"] != new["panic_mode"]:
        logger.warning("Panic mode %s by %s", "enabled" if new["panic_mode"] else "disabled", actor)
    return new


def list_blackout_days(db: Session, from_day: date | None = None) -> list[dict[str, Any]]:
    q = db.query(BlackoutDay)
    if from_day is not None:
        q = q.filter(BlackoutDay.day >= from_day)
    return [
        {"id": b.id, "day": b.day.isoformat(), "reason": b.reason, "created_by": b.created_by}
        for b in q.order_by(BlackoutDay.day).all()
    ]


def create_blackout_day(db: Session, day: date, reason: str | None = None, actor: str = "staff") -> dict[str, Any]:
    """Existing slots on the day are left alone; generation skips the day from now on."""
    if db.query(BlackoutDay.id).filter(BlackoutDay.day == day).first():
        raise ConflictError(f"{day.isoformat()} is already a blackout day")
    row = BlackoutDay(day=day, reason=reason, created_by=actor)
    db.add(row)
    db.flush()
    log_audit_event(db, "create_blackout_day", "blackout_days", row.id, actor=actor, new_values={"day": day.isoformat(), "reason": reason})
    db.commit()
    return {"id": row.id, "day": row.day.isoformat(), "reason": row.reason, "created_by": row.created_by}
