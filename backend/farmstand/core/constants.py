"""
Centralized constants for the scheduler and the reservation ledger.

Change job IDs or intervals here instead of scattering literals across main and routes.
"""

# Scheduler job IDs (must match ids used in main.py add_job)
SLOT_GENERATION_JOB_ID = "pickup_slot_generation"
OCCUPANCY_REFRESH_JOB_ID = "airbnb_occupancy_refresh"
HOLD_SWEEP_JOB_ID = "slot_hold_sweep"

# Slot generation runs daily shortly after midnight (farm local time)
SLOT_GENERATION_HOUR = 0
SLOT_GENERATION_MINUTE = 5
OCCUPANCY_REFRESH_INTERVAL_HOURS = 6
HOLD_SWEEP_INTERVAL_SECONDS = 60

# Hold lifecycle
HOLD_STATUS_HELD = "held"
HOLD_STATUS_CONFIRMED = "confirmed"
HOLD_STATUS_RELEASED = "released"

# Demand governor
DEFAULT_PANIC_MODE = False
DEFAULT_AUTO_PAUSE_THRESHOLD = 80  # percent; 0 disables auto-pause
GLOBAL_SETTINGS_ROW_ID = 1

# Stripe reconciliation looks back this far for sessions without an order
RECONCILE_LOOKBACK_HOURS = 48

# Retry policy for payment processor and calendar fetches
EXTERNAL_RETRIES = 2
EXTERNAL_BACKOFF_SECONDS = 0.4

# Stripe metadata keys shared by checkout and the webhook handler
META_PRODUCT_SLUG = "product_slug"
META_QTY = "qty"
META_PICKUP_SLOT_ID = "pickup_slot_id"
META_HOLD_ID = "hold_id"
META_RESERVATION_HELD = "reservation_held"
META_PICKUP_ONLY = "pickup_only"
