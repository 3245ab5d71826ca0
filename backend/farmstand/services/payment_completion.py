"""
Stripe webhook handling: turn completed checkout sessions into paid orders and settle slot holds.

checkout.session.completed: confirm the hold (no capacity change) and create the order as paid.
checkout.session.expired: release the hold.
Events are recorded in stripe_events; an event already processed is acknowledged and skipped.
"""
import logging
from datetime import timedelta
from typing import Any

from sqlalchemy.orm import Session

from farmstand.config import settings
from farmstand.core.constants import (
    HOLD_STATUS_CONFIRMED,
    META_HOLD_ID,
    META_PICKUP_SLOT_ID,
    META_QTY,
    META_RESERVATION_HELD,
    RECONCILE_LOOKBACK_HOURS,
)
from farmstand.core.dates import utcnow
from farmstand.core.errors import ExternalServiceError
from farmstand.models.order import Order, OrderItem, OrderStatus
from farmstand.models.pickup_slot import PickupSlot
from farmstand.models.stripe_event import StripeEvent
from farmstand.services.audit import log_audit_event
from farmstand.services.email_notify import send_owner_order_email
from farmstand.services.payments import StripeGateway
from farmstand.services.reservations import (
    confirm_hold,
    hold_status,
    release_hold,
    reserve,
)

logger = logging.getLogger(__name__)

EVENT_SESSION_COMPLETED = "checkout.session.completed"
EVENT_SESSION_EXPIRED = "checkout.session.expired"


def _int_or_none(value: Any) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _settle_slot(
    db: Session, session_id: str, metadata: dict[str, Any], customer_email: str | None
) -> tuple[int | None, int, bool]:
    """
    Make the order's pickup reservation permanent. Returns (slot_id, qty, capacity_reserved);
    slot_id is None if no slot, capacity_reserved is False if the slot could not take the order.
    """
    slot_id = _int_or_none(metadata.get(META_PICKUP_SLOT_ID))
    qty = _int_or_none(metadata.get(META_QTY)) or 1
    if slot_id is None:
        return None, qty, False
    hold_id = metadata.get(META_HOLD_ID)
    held = metadata.get(META_RESERVATION_HELD) == "true"

    if held and hold_id:
        if confirm_hold(db, hold_id):
            log_audit_event(
                db, "confirm_reservation", "pickup_slots", slot_id,
                meta={"session_id": session_id, "hold_id": hold_id, "customer_email": customer_email},
            )
            return slot_id, qty, True
        if hold_status(db, hold_id) == HOLD_STATUS_CONFIRMED:
            return slot_id, qty, True
        # Hold expired and was released before payment landed; take the capacity again if it is there.
        reason = "hold_released_before_payment"
    else:
        # Session created without a hold: reserve now.
        reason = "no_hold"

    result = reserve(db, slot_id, qty, commit=False)
    if result.success:
        log_audit_event(
            db, "reserve_on_payment", "pickup_slots", slot_id,
            meta={"session_id": session_id, "qty": qty, "reason": reason},
        )
    else:
        logger.error(
            "Paid session %s could not get pickup capacity (slot=%s qty=%s reason=%s result=%s); order needs staff follow-up",
            session_id, slot_id, qty, reason, result.reason,
        )
        log_audit_event(
            db, "overbooked_after_payment", "pickup_slots", slot_id,
            meta={"session_id": session_id, "qty": qty, "reason": reason, "result": result.reason},
        )
    return slot_id, qty, result.success


def complete_checkout_session(
    db: Session,
    gateway: StripeGateway,
    session: dict[str, Any],
) -> Order:
    """Create the paid order for a completed session. Idempotent per Stripe session id."""
    session_id = session["id"]
    existing = db.query(Order).filter(Order.stripe_session_id == session_id).first()
    if existing is not None:
        return existing

    items = gateway.list_line_items(session_id)
    metadata = session.get("metadata") or {}
    customer = session.get("customer_details") or {}
    customer_email = customer.get("email")

    slot_id, qty, capacity_reserved = _settle_slot(db, session_id, metadata, customer_email)
    order = Order(
        stripe_session_id=session_id,
        status=OrderStatus.PAID,
        pickup_slot_id=slot_id,
        pickup_qty=qty if slot_id is not None else None,
        capacity_reserved=capacity_reserved,
        customer_email=customer_email,
        customer_name=customer.get("name"),
        total_cents=session.get("amount_total") or 0,
    )
    for item in items:
        order.items.append(OrderItem(
            product_id=item.get("product_id") or "unknown",
            product_name=item.get("description") or "Unknown Product",
            stripe_price_id=item.get("price_id"),
            qty=item.get("quantity") or 1,
            unit_price_cents=item.get("unit_amount") or 0,
        ))
    db.add(order)
    db.flush()
    log_audit_event(
        db, "create_order", "orders", order.id,
        new_values={
            "status": OrderStatus.PAID.value,
            "total_cents": order.total_cents,
            "pickup_slot_id": slot_id,
            "capacity_reserved": capacity_reserved,
        },
        meta={"stripe_session_id": session_id, "item_count": len(items)},
    )
    db.commit()

    pickup_start = None
    if slot_id is not None:
        slot = db.get(PickupSlot, slot_id)
        pickup_start = slot.start_ts if slot else None
    send_owner_order_email(
        settings.business_email,
        total_cents=order.total_cents,
        items=items,
        pickup_start=pickup_start,
        customer_name=order.customer_name,
    )
    logger.info("Order %s created for session %s (slot=%s)", order.id, session_id, slot_id)
    return order


def expire_checkout_session(db: Session, session: dict[str, Any]) -> bool:
    """Release the hold of an abandoned session. The caller commits."""
    metadata = session.get("metadata") or {}
    hold_id = metadata.get(META_HOLD_ID)
    if metadata.get(META_RESERVATION_HELD) != "true" or not hold_id:
        return False
    released = release_hold(db, hold_id, "checkout_expired", commit=False)
    if released:
        log_audit_event(
            db, "release_expired_hold", "pickup_slots", metadata.get(META_PICKUP_SLOT_ID),
            meta={"session_id": session.get("id"), "hold_id": hold_id, "reason": "checkout_expired"},
        )
        logger.info("Released hold for expired session %s", session.get("id"))
    return released


def _record_event(db: Session, event: dict[str, Any]) -> StripeEvent:
    row = db.get(StripeEvent, event["id"])
    if row is None:
        row = StripeEvent(id=event["id"], type=event["type"], processed=False)
        db.add(row)
        db.commit()
    return row


def handle_stripe_event(db: Session, gateway: StripeGateway, event: dict[str, Any]) -> dict[str, Any]:
    """Process one verified webhook event. Raises ExternalServiceError if processing failed."""
    row = _record_event(db, event)
    if row.processed:
        logger.info("Skipping already processed event: %s", event["id"])
        return {"received": True, "status": "already_processed"}

    obj = (event.get("data") or {}).get("object") or {}
    try:
        if event["type"] == EVENT_SESSION_COMPLETED:
            complete_checkout_session(db, gateway, obj)
        elif event["type"] == EVENT_SESSION_EXPIRED:
            expire_checkout_session(db, obj)
        row = db.get(StripeEvent, event["id"])
        row.processed = True
        row.error_message = None
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Webhook processing error for event %s: %s", event["id"], e)
        row = db.get(StripeEvent, event["id"])
        row.processed = False
        row.error_message = str(e)[:2000]
        db.commit()
        raise ExternalServiceError("Webhook processing failed") from e
    return {"received": True}


def reconcile_recent_sessions(db: Session, gateway: StripeGateway) -> dict[str, int]:
    """Create orders for paid sessions from the last 48 hours whose webhook never arrived."""
    since = utcnow() - timedelta(hours=RECONCILE_LOOKBACK_HOURS)
    sessions = gateway.list_recent_sessions(int(since.timestamp()))
    reconciled = skipped = errors = 0
    for s in sessions:
        if s.get("payment_status") != "paid":
            skipped += 1
            continue
        if db.query(Order.id).filter(Order.stripe_session_id == s["id"]).first():
            skipped += 1
            continue
        try:
            complete_checkout_session(db, gateway, s)
            reconciled += 1
        except Exception as e:
            db.rollback()
            errors += 1
            logger.exception("Reconcile failed for session %s: %s", s.get("id"), e)
    logger.info("Reconcile: reconciled=%s skipped=%s errors=%s", reconciled, skipped, errors)
    return {"reconciled": reconciled, "skipped": skipped, "errors": errors}
