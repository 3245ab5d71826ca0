"""Runs nightly at 00:05 farm time: refresh Airbnb occupancy, then generate the rolling slot window."""
import logging

from farmstand.db.session import SessionLocal
from farmstand.services.occupancy import refresh_occupancy
from farmstand.services.slot_generator import generate_slots

logger = logging.getLogger(__name__)


def run_slot_generation_job() -> None:
    db = SessionLocal()
    try:
        try:
            refresh_occupancy(db)
        except Exception as e:
            db.rollback()
            logger.warning("Slot generation job: occupancy refresh failed, using stored occupancy: %s", e)
        try:
            created = generate_slots(db)
            logger.info("Slot generation job: %s slots created", created)
        except Exception:
            db.rollback()
            logger.exception("Slot generation job failed")
    finally:
        db.close()
