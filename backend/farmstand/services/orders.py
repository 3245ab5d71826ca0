"""
Staff order workflow: paid -> ready -> collected, or canceled from any non-terminal state.
Canceling an order that holds pickup capacity gives it back through the ledger. Orders paid after
their slot filled up (capacity_reserved False) never took capacity, so canceling them releases nothing.
"""
import logging
from collections import OrderedDict
from datetime import date
from typing import Any

from sqlalchemy.orm import Session, joinedload

from farmstand.core.dates import as_utc, display_time, local_today, utcnow
from farmstand.core.errors import NotFoundError, ValidationError
from farmstand.models.order import STATUS_RANK, TERMINAL_STATUSES, Order, OrderStatus
from farmstand.models.pickup_slot import PickupSlot
from farmstand.services.audit import log_audit_event
from farmstand.services.reservations import release

logger = logging.getLogger(__name__)

STAFF_SETTABLE = frozenset({OrderStatus.READY, OrderStatus.COLLECTED, OrderStatus.CANCELED})
CAPACITY_HOLDING = frozenset({OrderStatus.PAID, OrderStatus.READY})


def _parse_status(value: str) -> OrderStatus:
    try:
        status = OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status: {value}") from None
    if status not in STAFF_SETTABLE:
        raise ValidationError(f"Status must be one of: {', '.join(sorted(s.value for s in STAFF_SETTABLE))}")
    return status


def _check_transition(current: OrderStatus, target: OrderStatus) -> None:
    if current in TERMINAL_STATUSES:
        raise ValidationError(f"Order is already {current.value}")
    if target == OrderStatus.CANCELED:
        return
    if STATUS_RANK[target] <= STATUS_RANK[current]:
        raise ValidationError(f"Cannot move order from {current.value} to {target.value}")


def update_order_status(db: Session, order_id: int, new_status: str, actor: str = "staff") -> Order:
    target = _parse_status(new_status)
    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    current = OrderStatus(order.status)
    _check_transition(current, target)

    release_slot = (
        target == OrderStatus.CANCELED
        and current in CAPACITY_HOLDING
        and order.capacity_reserved
        and order.pickup_slot_id is not None
        and (order.pickup_qty or 0) > 0
    )
    order.status = target
    if target == OrderStatus.COLLECTED:
        order.collected_at = utcnow()
    log_audit_event(
        db, "update_order_status", "orders", order.id, actor=actor,
        old_values={"status": current.value},
        new_values={"status": target.value},
        meta={"released_capacity": release_slot},
    )
    if release_slot:
        release(db, order.pickup_slot_id, order.pickup_qty, commit=False)
        order.capacity_reserved = False
    db.commit()
    if release_slot:
        logger.info("Order %s canceled; released %s on slot %s", order.id, order.pickup_qty, order.pickup_slot_id)
    db.refresh(order)
    return order


def order_to_dict(order: Order) -> dict[str, Any]:
    return {
        "id": order.id,
        "status": OrderStatus(order.status).value,
        "stripe_session_id": order.stripe_session_id,
        "customer_email": order.customer_email,
        "customer_name": order.customer_name,
        "total_cents": order.total_cents,
        "pickup_slot_id": order.pickup_slot_id,
        "pickup_qty": order.pickup_qty,
        "capacity_reserved": bool(order.capacity_reserved),
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "collected_at": order.collected_at.isoformat() if order.collected_at else None,
        "items": [
            {"product_id": i.product_id, "product_name": i.product_name, "qty": i.qty, "unit_price_cents": i.unit_price_cents}
            for i in order.items
        ],
    }


def orders_today(db: Session, day: date | None = None) -> dict[str, Any]:
    """Run sheet: today's paid/ready pickups grouped by slot time, earliest first."""
    day = day or local_today()
    orders = (
        db.query(Order)
        .join(PickupSlot, PickupSlot.id == Order.pickup_slot_id)
        .options(joinedload(Order.items), joinedload(Order.pickup_slot))
        .filter(PickupSlot.day == day, Order.status.in_([OrderStatus.PAID, OrderStatus.READY]))
        .order_by(PickupSlot.start_ts, Order.id)
        .all()
    )
    groups: "OrderedDict[int, dict[str, Any]]" = OrderedDict()
    total_items = 0
    for order in orders:
        slot = order.pickup_slot
        group = groups.setdefault(slot.id, {
            "slotId": slot.id,
            "time": display_time(slot.start_ts),
            "startTime": as_utc(slot.start_ts).isoformat(),
            "orders": [],
        })
        group["orders"].append(order_to_dict(order))
        total_items += sum(i.qty for i in order.items)
    return {
        "date": day.isoformat(),
        "runSheet": list(groups.values()),
        "totalOrders": len(orders),
        "totalItems": total_items,
    }
