"""Runs every 6 hours: re-import the Airbnb calendar."""
import logging

from farmstand.config import settings
from farmstand.db.session import SessionLocal
from farmstand.services.occupancy import refresh_occupancy

logger = logging.getLogger(__name__)


def run_occupancy_refresh_job() -> None:
    if not settings.airbnb_ical_url:
        logger.debug("AIRBNB_ICAL_URL not set; skipping occupancy refresh")
        return
    db = SessionLocal()
    try:
        refresh_occupancy(db)
    except Exception:
        db.rollback()
        logger.exception("Occupancy refresh job failed")
    finally:
        db.close()
