"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE) and in alembic/env.py's model check.
"""
# All tables that exist in the DB. Must match models and the migrations.
ALL_TABLE_NAMES = (
    "capacity_rules",
    "airbnb_occupancy",
    "pickup_windows",
    "pickup_slots",
    "slot_holds",
    "global_settings",
    "orders",
    "order_items",
    "stripe_events",
    "audit_log",
    "blackout_days",
    "waitlist",
    "links",
    "link_hits",
)

# Reference data an operator seeds once (scripts/seed_pickup_config.py).
SEED_TABLE_NAMES = (
    "capacity_rules",
    "pickup_windows",
    "global_settings",
)
