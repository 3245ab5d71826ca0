#!/usr/bin/env python3
"""
Quick checks so the backend can start and take orders. Run from backend/:
  python scripts/check_backend.py
"""
import os
import sys
from pathlib import Path

# Run from backend/
backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []
    warnings = []

    # 1) .env
    env_file = backend_dir / ".env"
    if not env_file.exists():
        errors.append("backend/.env missing. Set DATABASE_URL, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET.")
    else:
        print("OK  .env exists")

    # 2) DB connection
    try:
        from sqlalchemy import text
        from farmstand.db.session import engine
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 3) Capacity rules for every weekday (generation fails loudly without them)
    try:
        from farmstand.db.session import SessionLocal
        from farmstand.models import CapacityRule, PickupWindow
        db = SessionLocal()
        try:
            weekdays = {r.weekday for r in db.query(CapacityRule.weekday).all()}
            missing = sorted(set(range(7)) - weekdays)
            if missing:
                errors.append(f"Capacity rules missing for weekdays {missing} (0 = Sunday). Run scripts/seed_pickup_config.py.")
                print("FAIL Capacity rules")
            else:
                print("OK  Capacity rules for all 7 weekdays")
            if db.query(PickupWindow).filter(PickupWindow.active.is_(True)).count() == 0:
                warnings.append("No active pickup windows; no slots will be generated.")
        finally:
            db.close()
    except Exception as e:
        errors.append(f"Capacity rules: {e}")
        print("FAIL Capacity rules:", e)

    # 4) Stripe
    from farmstand.config import settings
    if not settings.stripe_secret_key:
        warnings.append("STRIPE_SECRET_KEY not set; checkout will fail.")
    if not settings.stripe_webhook_secret:
        warnings.append("STRIPE_WEBHOOK_SECRET not set; webhooks will be rejected.")
    if not settings.airbnb_ical_url:
        warnings.append("AIRBNB_ICAL_URL not set; every day uses base capacity.")

    # 5) App import (catches missing deps, bad imports)
    try:
        from farmstand.main import app  # noqa: F401
        print("OK  App import (farmstand.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    for w in warnings:
        print("WARN", w)
    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        print("\nThen start backend: cd backend && uvicorn farmstand.main:app --reload --port 8000")
        return 1

    print("\nAll checks passed. Start with: cd backend && uvicorn farmstand.main:app --reload --port 8000")
    return 0


if __name__ == "__main__":
    sys.exit(main())
