from datetime import timedelta

from conftest import reserved_of
from farmstand.core.dates import to_local, utcnow
from farmstand.models import AuditLog, PickupSlot
from farmstand.services.reservations import reserve_with_hold


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_available_slots_lists_future_slots_with_room(client, db, make_slot):
    start = utcnow() + timedelta(days=2)
    day = to_local(start).date()
    open_slot = make_slot(start_ts=start, capacity=10, reserved=4, day=day)
    make_slot(start_ts=start + timedelta(minutes=20), capacity=3, reserved=3, day=day)

    r = client.get("/api/pickup-slots/available", params={"date": day.isoformat()})

    assert r.status_code == 200
    body = r.json()
    assert body["date"] == day.isoformat()
    assert len(body["availableSlots"]) == 1
    listed = body["availableSlots"][0]
    assert listed["id"] == open_slot.id
    assert listed["capacity"] == 10
    assert listed["reserved"] == 4
    assert listed["available"] == 6
    assert listed["displayTime"].endswith(("AM", "PM"))


def test_available_slots_hides_started_slots(client, db, make_slot):
    start = utcnow() - timedelta(minutes=5)
    day = to_local(start).date()
    make_slot(start_ts=start, capacity=10, day=day)
    body = client.get("/api/pickup-slots/available", params={"date": day.isoformat()}).json()
    assert body["availableSlots"] == []


def test_available_slots_releases_expired_holds_first(client, db, make_slot):
    slot = make_slot(capacity=2)
    reserve_with_hold(db, slot.id, 2, ttl_minutes=-1)

    body = client.get("/api/pickup-slots/available", params={"date": slot.day.isoformat()}).json()

    assert [s["id"] for s in body["availableSlots"]] == [slot.id]
    assert reserved_of(db, slot.id) == 0


def test_available_slots_bad_date(client):
    r = client.get("/api/pickup-slots/available", params={"date": "20-10-2026"})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid date, expected YYYY-MM-DD"}


def test_available_slots_requires_date(client):
    r = client.get("/api/pickup-slots/available")
    assert r.status_code == 400
    assert r.json() == {"error": "Date parameter is required"}


def test_generate_endpoint(client, db, seed_rules):
    seed_rules()
    r = client.post("/api/pickup-slots/generate")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["occupancyRefreshed"] is False
    assert body["slotsCreated"] == db.query(PickupSlot).count()
    assert client.post("/api/pickup-slots/generate").json()["slotsCreated"] == 0


def test_generate_endpoint_without_rules(client):
    r = client.post("/api/pickup-slots/generate")
    assert r.status_code == 500
    assert "No capacity rule" in r.json()["error"]


def test_settings_defaults_and_partial_update(client, db):
    assert client.get("/api/settings").json() == {"settings": {"panic_mode": False, "auto_pause_threshold": 80}}

    r = client.patch("/api/settings", json={"panic_mode": True})
    assert r.status_code == 200
    assert r.json() == {"settings": {"panic_mode": True, "auto_pause_threshold": 80}}

    r = client.patch("/api/settings", json={"auto_pause_threshold": 60})
    assert r.json() == {"settings": {"panic_mode": True, "auto_pause_threshold": 60}}
    assert client.get("/api/settings").json()["settings"]["auto_pause_threshold"] == 60

    entries = db.query(AuditLog).filter(AuditLog.action == "update_settings").count()
    assert entries == 2


def test_settings_threshold_out_of_range(client):
    r = client.patch("/api/settings", json={"auto_pause_threshold": 150})
    assert r.status_code == 400
    assert "auto_pause_threshold" in r.json()["error"]


def test_blackout_days(client):
    r = client.post("/api/blackout-days", json={"day": "2026-12-25", "reason": "Christmas"})
    assert r.status_code == 201
    assert r.json()["blackoutDay"]["day"] == "2026-12-25"

    assert client.post("/api/blackout-days", json={"day": "2026-12-25"}).status_code == 409
    days = client.get("/api/blackout-days").json()["blackoutDays"]
    assert [(d["day"], d["reason"]) for d in days] == [("2026-12-25", "Christmas")]


def test_audit_listing_filters(client):
    client.patch("/api/settings", json={"panic_mode": True})
    client.post("/api/blackout-days", json={"day": "2026-12-25"})

    body = client.get("/api/audit", params={"entity": "blackout_days"}).json()
    assert body["total"] == 1
    assert body["logs"][0]["action"] == "create_blackout_day"
    assert body["limit"] == 50
    assert body["offset"] == 0
    assert client.get("/api/audit").json()["total"] == 2


def test_products_hide_stripe_price_ids(client):
    products = client.get("/api/products").json()["products"]
    eggs = next(p for p in products if p["slug"] == "farm-eggs-dozen")
    assert eggs["price_cents"] == 800
    assert "stripe_price_id" not in eggs
