"""Runs every minute: release slot holds whose checkout never completed."""
import logging

from farmstand.db.session import SessionLocal
from farmstand.services.reservations import sweep_expired_holds

logger = logging.getLogger(__name__)


def run_hold_sweep_job() -> None:
    db = SessionLocal()
    try:
        sweep_expired_holds(db)
    except Exception:
        db.rollback()
        logger.exception("Hold sweep job failed")
    finally:
        db.close()
