#!/usr/bin/env python3
"""
Seed capacity rules (all 7 weekdays), pickup windows and the settings row.
Existing rows are left alone, so it is safe to re-run.

Run from backend dir after `alembic upgrade head`:
  python scripts/seed_pickup_config.py
"""
import sys
from datetime import time
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from sqlalchemy import func

from farmstand.core.constants import DEFAULT_AUTO_PAUSE_THRESHOLD, DEFAULT_PANIC_MODE, GLOBAL_SETTINGS_ROW_ID
from farmstand.db.tables import SEED_TABLE_NAMES
from farmstand.db.session import SessionLocal
from farmstand.models import CapacityRule, GlobalSettings, PickupWindow

# weekday (0 = Sunday): (base_pickups, occupied_pickups) per slot
CAPACITY = {
    0: (0, 0),
    1: (0, 0),
    2: (6, 3),
    3: (6, 3),
    4: (6, 3),
    5: (8, 4),
    6: (10, 5),
}

# weekday: [(start, end, slot_minutes)]
WINDOWS = {
    2: [(time(16, 0), time(19, 0), 20)],
    3: [(time(16, 0), time(19, 0), 20)],
    4: [(time(16, 0), time(19, 0), 20)],
    5: [(time(15, 0), time(19, 0), 20)],
    6: [(time(9, 0), time(12, 0), 20), (time(13, 0), time(16, 0), 20)],
}


def main():
    db = SessionLocal()
    try:
        existing = {r.weekday for r in db.query(CapacityRule).all()}
        for weekday, (base, occupied) in CAPACITY.items():
            if weekday not in existing:
                db.add(CapacityRule(weekday=weekday, base_pickups=base, occupied_pickups=occupied))
                print(f"capacity_rules: weekday {weekday} base={base} occupied={occupied}")
        windowed = {w.weekday for w in db.query(PickupWindow).all()}
        for weekday, windows in WINDOWS.items():
            if weekday in windowed:
                continue
            for start, end, minutes in windows:
                db.add(PickupWindow(weekday=weekday, start_time=start, end_time=end, slot_minutes=minutes, active=True))
                print(f"pickup_windows: weekday {weekday} {start}-{end} every {minutes}m")
        if db.get(GlobalSettings, GLOBAL_SETTINGS_ROW_ID) is None:
            db.add(GlobalSettings(
                id=GLOBAL_SETTINGS_ROW_ID,
                panic_mode=DEFAULT_PANIC_MODE,
                auto_pause_threshold=DEFAULT_AUTO_PAUSE_THRESHOLD,
            ))
            print("global_settings: defaults")
        db.commit()
        counts = {
            CapacityRule.__tablename__: db.query(func.count(CapacityRule.id)).scalar(),
            PickupWindow.__tablename__: db.query(func.count(PickupWindow.id)).scalar(),
            GlobalSettings.__tablename__: db.query(func.count(GlobalSettings.id)).scalar(),
        }
        for name in SEED_TABLE_NAMES:
            print(f"{name}: {counts[name]} rows")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
    print("Done.")


if __name__ == "__main__":
    main()
