from farmstand.models.audit_log import AuditLog
from farmstand.models.blackout_day import BlackoutDay
from farmstand.models.capacity_rule import CapacityRule
from farmstand.models.global_settings import GlobalSettings
from farmstand.models.link import LinkHit, TrackedLink
from farmstand.models.occupancy import AirbnbOccupancy
from farmstand.models.order import Order, OrderItem, OrderStatus
from farmstand.models.pickup_slot import PickupSlot
from farmstand.models.pickup_window import PickupWindow
from farmstand.models.slot_hold import SlotHold
from farmstand.models.stripe_event import StripeEvent
from farmstand.models.waitlist import WaitlistEntry

__all__ = [
    "AirbnbOccupancy",
    "AuditLog",
    "BlackoutDay",
    "CapacityRule",
    "GlobalSettings",
    "LinkHit",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PickupSlot",
    "PickupWindow",
    "SlotHold",
    "StripeEvent",
    "TrackedLink",
    "WaitlistEntry",
]
