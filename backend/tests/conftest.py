"""
Shared fixtures: a throwaway SQLite database, a fake Stripe gateway and a TestClient wired to both.

Environment must be set before farmstand is imported: the engine and settings are built at import.
"""
import hashlib
import hmac
import json
import os
import tempfile
import time as _time
from datetime import date, datetime, time, timedelta

_tmp_dir = tempfile.mkdtemp(prefix="farmstand-tests-")
WEBHOOK_SECRET = "whsec_test_secret"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'test.db')}"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["STRIPE_WEBHOOK_SECRET"] = WEBHOOK_SECRET
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["BUSINESS_EMAIL"] = ""
os.environ["AIRBNB_ICAL_URL"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from farmstand.core.dates import local_start_utc, to_local, utcnow  # noqa: E402
from farmstand.db.base import Base  # noqa: E402
from farmstand.db.session import SessionLocal, engine  # noqa: E402
from farmstand.main import app  # noqa: E402
from farmstand.models import CapacityRule, PickupSlot, PickupWindow  # noqa: E402
from farmstand.services.payments import CheckoutSession, get_payment_gateway  # noqa: E402

# 2026-10-20 is a Tuesday (weekday 2 with 0 = Sunday)
TUESDAY = date(2026, 10, 20)


class FakeGateway:
    """Stands in for StripeGateway; records sessions and returns canned line items."""

    def __init__(self):
        self.created: list[dict] = []
        self.fail_create: Exception | None = None
        self.fail_line_items: Exception | None = None
        self.line_items: dict[str, list[dict]] = {}
        self.recent_sessions: list[dict] = []

    def is_configured(self) -> bool:
        return True

    def create_checkout_session(self, *, price_id, qty, metadata, success_url, cancel_url, expires_at=None):
        if self.fail_create is not None:
            raise self.fail_create
        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append({
            "id": session_id,
            "price_id": price_id,
            "qty": qty,
            "metadata": dict(metadata),
            "expires_at": expires_at,
        })
        return CheckoutSession(id=session_id, url=f"https://checkout.stripe.test/{session_id}")

    def list_line_items(self, session_id):
        if self.fail_line_items is not None:
            raise self.fail_line_items
        return self.line_items.get(session_id, [
            {"description": "Farm Fresh Eggs (Dozen)", "quantity": 2, "price_id": "price_eggs_dozen",
             "unit_amount": 800, "product_id": "eggs-dozen"},
        ])

    def list_recent_sessions(self, created_gte, limit=100):
        return list(self.recent_sessions)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(db, gateway):
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_slot(db):
    def _make(start_ts: datetime | None = None, capacity: int = 10, reserved: int = 0, day: date | None = None) -> PickupSlot:
        start_ts = start_ts or (utcnow() + timedelta(days=1))
        slot = PickupSlot(
            day=day or to_local(start_ts).date(),
            start_ts=start_ts,
            capacity=capacity,
            reserved=reserved,
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    return _make


@pytest.fixture
def seed_rules(db):
    """Capacity rules for all 7 weekdays; Tuesday gets a 09:00-10:00 window every 20 minutes."""
    def _seed(base: int = 10, occupied: int = 4, with_window: bool = True) -> None:
        for weekday in range(7):
            db.add(CapacityRule(weekday=weekday, base_pickups=base, occupied_pickups=occupied))
        if with_window:
            db.add(PickupWindow(weekday=2, start_time=time(9, 0), end_time=time(10, 0), slot_minutes=20, active=True))
        db.commit()

    return _seed


def slot_at(day: date, hour: int, minute: int = 0) -> datetime:
    return local_start_utc(day, time(hour, minute))


def reserved_of(db, slot_id: int) -> int:
    db.expire_all()
    return db.get(PickupSlot, slot_id).reserved


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Stripe-Signature header value: t=<ts>,v1=HMAC-SHA256(secret, "<ts>.<payload>")."""
    ts = timestamp or int(_time.time())
    signature = hmac.new(secret.encode(), f"{ts}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={ts},v1={signature}"


def stripe_event(event_id: str, event_type: str, session: dict) -> str:
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": session}})
