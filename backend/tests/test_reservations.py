import threading
from datetime import timedelta

import pytest

from conftest import reserved_of
from farmstand.core.constants import HOLD_STATUS_CONFIRMED, HOLD_STATUS_HELD, HOLD_STATUS_RELEASED
from farmstand.core.dates import utcnow
from farmstand.core.errors import ValidationError
from farmstand.db.session import SessionLocal
from farmstand.models import AuditLog, PickupSlot, SlotHold
from farmstand.services.reservations import (
    REASON_INSUFFICIENT_CAPACITY,
    REASON_SLOT_NOT_FOUND,
    attach_session,
    confirm_hold,
    place_hold,
    release,
    release_hold,
    reserve,
    reserve_with_hold,
    sweep_expired_holds,
)


def test_reserve_release_scenario(db, make_slot):
    slot = make_slot(capacity=10)

    assert reserve(db, slot.id, 3).success
    assert reserved_of(db, slot.id) == 3

    result = reserve(db, slot.id, 8)
    assert not result.success
    assert result.reason == REASON_INSUFFICIENT_CAPACITY
    assert reserved_of(db, slot.id) == 3

    release(db, slot.id, 3)
    assert reserved_of(db, slot.id) == 0


def test_reserve_exactly_to_capacity(db, make_slot):
    slot = make_slot(capacity=5, reserved=2)
    assert reserve(db, slot.id, 3).success
    assert reserved_of(db, slot.id) == 5
    assert not reserve(db, slot.id, 1).success


def test_release_floors_at_zero(db, make_slot):
    slot = make_slot(capacity=10, reserved=2)
    release(db, slot.id, 5)
    assert reserved_of(db, slot.id) == 0


def test_reserve_unknown_slot(db):
    result = reserve(db, 9999, 1)
    assert not result.success
    assert result.reason == REASON_SLOT_NOT_FOUND


@pytest.mark.parametrize("qty", [0, -1])
def test_reserve_rejects_non_positive_qty(db, make_slot, qty):
    slot = make_slot()
    with pytest.raises(ValidationError):
        reserve(db, slot.id, qty)


def test_concurrent_reserves_for_last_unit(db, make_slot):
    slot = make_slot(capacity=5, reserved=4)
    barrier = threading.Barrier(2)
    results = []
    lock = threading.Lock()

    def attempt():
        session = SessionLocal()
        try:
            barrier.wait()
            outcome = reserve(session, slot.id, 1)
            with lock:
                results.append(outcome.success)
        finally:
            session.close()

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(results) == [False, True]
    assert reserved_of(db, slot.id) == 5


def test_reserve_with_hold_sets_mirror(db, make_slot):
    slot = make_slot(capacity=10)
    result, hold = reserve_with_hold(db, slot.id, 2, ttl_minutes=15)
    assert result.success
    assert hold.status == HOLD_STATUS_HELD
    attach_session(db, hold.id, "cs_test_abc")

    db.expire_all()
    refreshed = db.get(PickupSlot, slot.id)
    assert refreshed.reserved == 2
    assert refreshed.held_by_session == "cs_test_abc"
    assert refreshed.hold_expires_at is not None
    assert db.get(SlotHold, hold.id).session_id == "cs_test_abc"


def test_reserve_with_hold_when_full_creates_no_hold(db, make_slot):
    slot = make_slot(capacity=1, reserved=1)
    result, hold = reserve_with_hold(db, slot.id, 1)
    assert not result.success
    assert hold is None
    assert db.query(SlotHold).count() == 0


def test_confirm_hold_once_without_capacity_change(db, make_slot):
    slot = make_slot(capacity=10)
    _, hold = reserve_with_hold(db, slot.id, 2)

    assert confirm_hold(db, hold.id)
    db.commit()
    assert not confirm_hold(db, hold.id)
    assert not release_hold(db, hold.id, "late")

    db.expire_all()
    assert db.get(SlotHold, hold.id).status == HOLD_STATUS_CONFIRMED
    assert db.get(PickupSlot, slot.id).reserved == 2
    assert db.get(PickupSlot, slot.id).held_by_session is None


def test_release_hold_returns_capacity_once(db, make_slot):
    slot = make_slot(capacity=10)
    _, hold = reserve_with_hold(db, slot.id, 3)

    assert release_hold(db, hold.id, "checkout_canceled")
    assert not release_hold(db, hold.id, "checkout_canceled")
    assert reserved_of(db, slot.id) == 0
    assert db.get(SlotHold, hold.id).release_reason == "checkout_canceled"


def test_sweep_releases_expired_holds_exactly_once(db, make_slot):
    slot = make_slot(capacity=10)
    _, expired = reserve_with_hold(db, slot.id, 2, ttl_minutes=15)
    _, fresh = reserve_with_hold(db, slot.id, 1, ttl_minutes=60)
    later = utcnow() + timedelta(minutes=30)

    assert sweep_expired_holds(db, now=later) == 1
    assert sweep_expired_holds(db, now=later) == 0

    db.expire_all()
    assert db.get(SlotHold, expired.id).status == HOLD_STATUS_RELEASED
    assert db.get(SlotHold, fresh.id).status == HOLD_STATUS_HELD
    assert db.get(PickupSlot, slot.id).reserved == 1
    audit = db.query(AuditLog).filter(AuditLog.action == "release_expired_hold").all()
    assert len(audit) == 1
    assert audit[0].meta["hold_id"] == expired.id


def test_sweep_skips_confirmed_holds(db, make_slot):
    slot = make_slot(capacity=10)
    _, hold = reserve_with_hold(db, slot.id, 2, ttl_minutes=15)
    confirm_hold(db, hold.id)
    db.commit()

    assert sweep_expired_holds(db, now=utcnow() + timedelta(hours=1)) == 0
    assert reserved_of(db, slot.id) == 2


def test_sweep_limited_to_day(db, make_slot):
    slot = make_slot(capacity=10)
    other = make_slot(start_ts=utcnow() + timedelta(days=3), capacity=10)
    reserve_with_hold(db, slot.id, 1, ttl_minutes=15)
    reserve_with_hold(db, other.id, 1, ttl_minutes=15)

    assert sweep_expired_holds(db, now=utcnow() + timedelta(hours=1), day=slot.day) == 1
    assert reserved_of(db, slot.id) == 0
    assert reserved_of(db, other.id) == 1


def test_place_hold_does_not_change_reserved(db, make_slot):
    slot = make_slot(capacity=10)
    assert reserve(db, slot.id, 2).success
    hold = place_hold(db, slot.id, 2, ttl_minutes=15)

    db.expire_all()
    assert db.get(SlotHold, hold.id).status == HOLD_STATUS_HELD
    refreshed = db.get(PickupSlot, slot.id)
    assert refreshed.reserved == 2
    assert refreshed.held_by_session == hold.id

    assert release_hold(db, hold.id, "checkout_canceled")
    assert reserved_of(db, slot.id) == 0
