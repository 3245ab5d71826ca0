from types import SimpleNamespace

import pytest

from farmstand.models import AuditLog, WaitlistEntry
from farmstand.services import waitlist as waitlist_service


@pytest.fixture
def sent(monkeypatch):
    """Captures restock emails instead of talking to SMTP; add an address to `fail` to make it bounce."""
    mail = SimpleNamespace(outbox=[], fail=set())

    def fake_send(to_email, product_name):
        if to_email in mail.fail:
            return False
        mail.outbox.append((to_email, product_name))
        return True

    monkeypatch.setattr(waitlist_service, "send_restock_email", fake_send)
    return mail


def _join(client, product_id="veg-box", email="sam@example.com"):
    return client.post("/api/waitlist", json={"product_id": product_id, "email": email})


def test_join_waitlist(client, db):
    r = _join(client, email="Sam@Example.com")

    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Successfully added to waitlist"
    assert body["waitlistEntry"]["email"] == "sam@example.com"
    assert body["waitlistEntry"]["product_id"] == "veg-box"
    entry = db.query(AuditLog).filter(AuditLog.action == "join_waitlist").one()
    assert entry.actor == "customer"
    assert entry.meta == {"product_id": "veg-box", "email": "sam@example.com"}


def test_join_twice_is_reported_not_duplicated(client, db):
    assert _join(client).status_code == 200
    r = _join(client, email="SAM@example.com")

    assert r.status_code == 200
    assert r.json() == {"message": "Already on waitlist", "already_exists": True}
    assert db.query(WaitlistEntry).count() == 1


def test_join_rejects_unknown_product_and_bad_email(client, db):
    r = _join(client, product_id="goat-cheese")
    assert r.status_code == 404
    assert r.json() == {"error": "Product not found"}

    r = _join(client, email="not-an-email")
    assert r.status_code == 400
    assert r.json()["error"].startswith("email:")

    r = client.post("/api/waitlist", json={"email": "sam@example.com"})
    assert r.status_code == 400
    assert db.query(WaitlistEntry).count() == 0


def test_leave_waitlist(client, db):
    _join(client)

    r = client.delete("/api/waitlist", params={"product_id": "veg-box", "email": "sam@example.com"})

    assert r.status_code == 200
    assert db.query(WaitlistEntry).count() == 0
    r = client.delete("/api/waitlist", params={"product_id": "veg-box"})
    assert r.status_code == 400
    assert r.json() == {"error": "Product ID and email are required"}


def test_notify_emails_each_subscriber_once(client, db, sent):
    _join(client, product_id="eggs-dozen", email="a@example.com")
    _join(client, product_id="eggs-dozen", email="b@example.com")
    _join(client, product_id="honey-500g", email="c@example.com")

    r = client.post("/api/waitlist/notify", json={"product_id": "eggs-dozen"})

    assert r.status_code == 200
    assert r.json() == {"message": "Notified 2 subscribers", "notified": 2}
    assert sent.outbox == [("a@example.com", "Farm Fresh Eggs (Dozen)"), ("b@example.com", "Farm Fresh Eggs (Dozen)")]
    assert db.query(AuditLog).filter(AuditLog.action == "send_waitlist_notification").count() == 2

    r = client.post("/api/waitlist/notify", json={"product_id": "eggs-dozen"})
    assert r.json() == {"message": "No subscribers to notify", "notified": 0}
    assert len(sent.outbox) == 2


def test_notify_keeps_failed_subscribers_for_next_run(client, db, sent):
    _join(client, product_id="eggs-dozen", email="a@example.com")
    _join(client, product_id="eggs-dozen", email="bounce@example.com")
    sent.fail.add("bounce@example.com")

    body = client.post("/api/waitlist/notify", json={"product_id": "eggs-dozen"}).json()

    assert body["notified"] == 1
    assert body["errors"] == ["bounce@example.com"]
    db.expire_all()
    pending = db.query(WaitlistEntry).filter(WaitlistEntry.notified_at.is_(None)).all()
    assert [e.email for e in pending] == ["bounce@example.com"]


def test_notify_refuses_out_of_stock_product(client, db, sent):
    _join(client, product_id="veg-box")

    r = client.post("/api/waitlist/notify", json={"product_id": "veg-box"})

    assert r.status_code == 400
    assert r.json() == {"error": "Market Veggie Box is not in stock"}
    assert sent.outbox == []
