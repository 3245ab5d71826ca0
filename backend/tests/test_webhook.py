from datetime import timedelta

from conftest import reserved_of, sign_payload, stripe_event
from farmstand.core.constants import HOLD_STATUS_CONFIRMED
from farmstand.core.dates import utcnow
from farmstand.core.errors import ExternalServiceError
from farmstand.models import AuditLog, Order, OrderStatus, SlotHold, StripeEvent
from farmstand.services.reservations import reserve, reserve_with_hold, sweep_expired_holds


def _post(client, payload: str, signature: str | None = None):
    headers = {"Content-Type": "application/json"}
    headers["Stripe-Signature"] = signature if signature is not None else sign_payload(payload)
    return client.post("/api/stripe/webhook", content=payload, headers=headers)


def _session(session_id: str, slot_id: int | None = None, hold_id: str | None = None, qty: int = 2) -> dict:
    metadata = {"product_slug": "farm-eggs-dozen", "qty": str(qty), "pickup_only": "true"}
    if slot_id is not None:
        metadata["pickup_slot_id"] = str(slot_id)
    if hold_id is not None:
        metadata["hold_id"] = hold_id
        metadata["reservation_held"] = "true"
    return {
        "id": session_id,
        "payment_status": "paid",
        "amount_total": 1600,
        "metadata": metadata,
        "customer_details": {"email": "sam@example.com", "name": "Sam Rivera"},
    }


def test_rejects_bad_signature(client, db):
    payload = stripe_event("evt_1", "checkout.session.completed", _session("cs_1"))
    r = _post(client, payload, signature=sign_payload(payload, secret="whsec_wrong"))
    assert r.status_code == 400
    assert r.json()["error"].startswith("Webhook Error")
    assert db.query(Order).count() == 0


def test_rejects_missing_signature(client, db):
    payload = stripe_event("evt_1", "checkout.session.completed", _session("cs_1"))
    r = client.post("/api/stripe/webhook", content=payload)
    assert r.status_code == 400


def test_completed_confirms_hold_and_creates_paid_order(client, db, make_slot):
    slot = make_slot(capacity=10)
    _, hold = reserve_with_hold(db, slot.id, 2)
    payload = stripe_event("evt_1", "checkout.session.completed", _session("cs_1", slot.id, hold.id))

    r = _post(client, payload)

    assert r.status_code == 200
    assert r.json() == {"received": True}
    db.expire_all()
    order = db.query(Order).one()
    assert order.status == OrderStatus.PAID
    assert order.pickup_slot_id == slot.id
    assert order.pickup_qty == 2
    assert order.capacity_reserved is True
    assert order.customer_email == "sam@example.com"
    assert order.total_cents == 1600
    assert [(i.product_id, i.qty, i.unit_price_cents) for i in order.items] == [("eggs-dozen", 2, 800)]
    assert db.get(SlotHold, hold.id).status == HOLD_STATUS_CONFIRMED
    assert reserved_of(db, slot.id) == 2
    assert db.get(StripeEvent, "evt_1").processed is True


def test_duplicate_event_is_not_processed_twice(client, db, make_slot):
    slot = make_slot(capacity=10)
    _, hold = reserve_with_hold(db, slot.id, 2)
    payload = stripe_event("evt_1", "checkout.session.completed", _session("cs_1", slot.id, hold.id))

    assert _post(client, payload).status_code == 200
    r = _post(client, payload)

    assert r.status_code == 200
    assert r.json() == {"received": True, "status": "already_processed"}
    assert db.query(Order).count() == 1
    assert reserved_of(db, slot.id) == 2


def test_same_session_in_new_event_keeps_one_order(client, db, make_slot):
    slot = make_slot(capacity=10)
    session = _session("cs_1", slot.id)
    assert _post(client, stripe_event("evt_1", "checkout.session.completed", session)).status_code == 200
    assert _post(client, stripe_event("evt_2", "checkout.session.completed", session)).status_code == 200
    assert db.query(Order).count() == 1
    assert reserved_of(db, slot.id) == 2


def test_expired_session_releases_hold(client, db, make_slot):
    slot = make_slot(capacity=10)
    _, hold = reserve_with_hold(db, slot.id, 3)
    payload = stripe_event("evt_1", "checkout.session.expired", _session("cs_1", slot.id, hold.id, qty=3))

    assert _post(client, payload).status_code == 200
    assert reserved_of(db, slot.id) == 0
    assert db.query(Order).count() == 0


def test_completion_after_sweep_reserves_again(client, db, make_slot):
    slot = make_slot(capacity=10)
    _, hold = reserve_with_hold(db, slot.id, 2, ttl_minutes=15)
    sweep_expired_holds(db, now=utcnow() + timedelta(minutes=20))
    assert reserved_of(db, slot.id) == 0

    payload = stripe_event("evt_1", "checkout.session.completed", _session("cs_1", slot.id, hold.id))
    assert _post(client, payload).status_code == 200

    assert reserved_of(db, slot.id) == 2
    assert db.query(Order).one().status == OrderStatus.PAID


def test_completion_after_sweep_on_full_slot_is_recorded_as_overbooking(client, db, make_slot):
    slot = make_slot(capacity=2)
    _, hold = reserve_with_hold(db, slot.id, 2, ttl_minutes=15)
    sweep_expired_holds(db, now=utcnow() + timedelta(minutes=20))
    reserve_with_hold(db, slot.id, 2)

    payload = stripe_event("evt_1", "checkout.session.completed", _session("cs_1", slot.id, hold.id))
    assert _post(client, payload).status_code == 200

    assert reserved_of(db, slot.id) == 2
    order = db.query(Order).one()
    assert order.status == OrderStatus.PAID
    assert order.capacity_reserved is False
    assert db.query(AuditLog).filter(AuditLog.action == "overbooked_after_payment").count() == 1

    # Canceling the overbooked order must not hand back the other customer's units.
    r = client.patch(f"/api/orders/{order.id}/status", json={"status": "canceled"})
    assert r.status_code == 200
    assert reserved_of(db, slot.id) == 2
    assert reserve(db, slot.id, 1).success is False


def test_processing_error_is_recorded_and_retryable(client, db, gateway, make_slot):
    slot = make_slot(capacity=10)
    _, hold = reserve_with_hold(db, slot.id, 2)
    payload = stripe_event("evt_1", "checkout.session.completed", _session("cs_1", slot.id, hold.id))
    gateway.fail_line_items = ExternalServiceError("Payment processor error: list line items failed")

    r = _post(client, payload)
    assert r.status_code == 500
    db.expire_all()
    event = db.get(StripeEvent, "evt_1")
    assert event.processed is False
    assert "list line items failed" in event.error_message
    assert db.query(Order).count() == 0

    gateway.fail_line_items = None
    assert _post(client, payload).json() == {"received": True}
    assert db.query(Order).count() == 1
    assert reserved_of(db, slot.id) == 2


def test_reconcile_backfills_missing_orders(client, db, gateway, make_slot):
    slot = make_slot(capacity=10)
    _, hold = reserve_with_hold(db, slot.id, 2)
    unpaid = _session("cs_2")
    unpaid["payment_status"] = "unpaid"
    gateway.recent_sessions = [_session("cs_1", slot.id, hold.id), unpaid]

    r = client.post("/api/webhooks/reconcile")

    assert r.status_code == 200
    assert r.json() == {"reconciled": 1, "skipped": 1, "errors": 0}
    assert db.query(Order).one().stripe_session_id == "cs_1"

    assert client.post("/api/webhooks/reconcile").json() == {"reconciled": 0, "skipped": 2, "errors": 0}
