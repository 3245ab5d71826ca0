"""
Reservation ledger: the only code that writes pickup_slots.reserved.

reserve() is a single conditional UPDATE (reserved + qty <= capacity) checked by rowcount, so two
concurrent checkouts for the last unit cannot both succeed. Capacity exhaustion is a normal result,
not an exception. release() decrements, floored at 0.

Holds (slot_holds) tie a reservation to a pending Stripe session. A hold resolves exactly once:
confirmed by the webhook, or released by session expiry, a failed checkout, or the expiry sweep.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import case, or_, update
from sqlalchemy.orm import Session

from farmstand.config import settings
from farmstand.core.constants import HOLD_STATUS_CONFIRMED, HOLD_STATUS_HELD, HOLD_STATUS_RELEASED
from farmstand.core.dates import as_utc, utcnow
from farmstand.core.errors import ValidationError
from farmstand.models.pickup_slot import PickupSlot
from farmstand.models.slot_hold import SlotHold
from farmstand.services.audit import log_audit_event

logger = logging.getLogger(__name__)

REASON_RESERVED = "reserved"
REASON_INSUFFICIENT_CAPACITY = "insufficient_capacity"
REASON_SLOT_NOT_FOUND = "slot_not_found"


@dataclass
class ReservationResult:
    success: bool
    reason: str = REASON_RESERVED


def _check_qty(qty: int) -> None:
    if qty is None or qty < 1:
        raise ValidationError(f"Reservation quantity must be at least 1, got {qty}")


def _increment(db: Session, slot_id: int, qty: int) -> bool:
    result = db.execute(
        update(PickupSlot)
        .where(PickupSlot.id == slot_id, PickupSlot.reserved + qty <= PickupSlot.capacity)
        .values(reserved=PickupSlot.reserved + qty)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _decrement(db: Session, slot_id: int, qty: int) -> None:
    db.execute(
        update(PickupSlot)
        .where(PickupSlot.id == slot_id)
        .values(reserved=case((PickupSlot.reserved >= qty, PickupSlot.reserved - qty), else_=0))
        .execution_options(synchronize_session=False)
    )


def _failure_reason(db: Session, slot_id: int) -> str:
    exists = db.query(PickupSlot.id).filter(PickupSlot.id == slot_id).first()
    return REASON_INSUFFICIENT_CAPACITY if exists else REASON_SLOT_NOT_FOUND


def reserve(db: Session, slot_id: int, qty: int, *, commit: bool = True) -> ReservationResult:
    """
    Atomically add qty to the slot if it fits. With commit=False the increment joins the
    caller's transaction (webhook order creation) and the caller commits.
    """
    _check_qty(qty)
    try:
        ok = _increment(db, slot_id, qty)
        if commit:
            if ok:
                db.commit()
            else:
                db.rollback()
    except Exception:
        db.rollback()
        raise
    if ok:
        return ReservationResult(True)
    return ReservationResult(False, _failure_reason(db, slot_id))


def release(db: Session, slot_id: int, qty: int, *, commit: bool = True) -> None:
    """Give qty back to the slot; never drops reserved below 0."""
    _check_qty(qty)
    try:
        _decrement(db, slot_id, qty)
        if commit:
            db.commit()
    except Exception:
        db.rollback()
        raise


def place_hold(
    db: Session,
    slot_id: int,
    qty: int,
    ttl_minutes: int | None = None,
    *,
    commit: bool = True,
) -> SlotHold:
    """
    Record a hold for qty already reserved on the slot and stamp the slot's hold mirror.
    Does not touch reserved; pair it with reserve() or use reserve_with_hold().
    """
    _check_qty(qty)
    ttl = settings.hold_ttl_minutes if ttl_minutes is None else ttl_minutes
    expires_at = utcnow() + timedelta(minutes=ttl)
    hold = SlotHold(
        id=str(uuid.uuid4()),
        slot_id=slot_id,
        qty=qty,
        status=HOLD_STATUS_HELD,
        expires_at=expires_at,
    )
    try:
        db.add(hold)
        db.execute(
            update(PickupSlot)
            .where(PickupSlot.id == slot_id)
            .values(hold_expires_at=expires_at, held_by_session=hold.id)
            .execution_options(synchronize_session=False)
        )
        if commit:
            db.commit()
    except Exception:
        db.rollback()
        raise
    return hold


def reserve_with_hold(
    db: Session,
    slot_id: int,
    qty: int,
    ttl_minutes: int | None = None,
) -> tuple[ReservationResult, SlotHold | None]:
    """
    reserve() plus place_hold() in one transaction, so a reservation never exists without
    the hold the expiry sweep needs to reclaim it.
    """
    _check_qty(qty)
    try:
        if not _increment(db, slot_id, qty):
            db.rollback()
            return ReservationResult(False, _failure_reason(db, slot_id)), None
        hold = place_hold(db, slot_id, qty, ttl_minutes, commit=False)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Reserved %s on slot %s (hold %s, expires %s)", qty, slot_id, hold.id, as_utc(hold.expires_at).isoformat())
    return ReservationResult(True), hold


def attach_session(db: Session, hold_id: str, session_id: str) -> None:
    """Record the Stripe session that owns the hold."""
    hold = db.get(SlotHold, hold_id)
    if hold is None:
        return
    hold.session_id = session_id
    db.execute(
        update(PickupSlot)
        .where(PickupSlot.id == hold.slot_id, PickupSlot.held_by_session == hold_id)
        .values(held_by_session=session_id)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def _clear_slot_mirror(db: Session, hold: SlotHold) -> None:
    owners = [hold.id] + ([hold.session_id] if hold.session_id else [])
    db.execute(
        update(PickupSlot)
        .where(PickupSlot.id == hold.slot_id, or_(*[PickupSlot.held_by_session == o for o in owners]))
        .values(hold_expires_at=None, held_by_session=None)
        .execution_options(synchronize_session=False)
    )


def _resolve(db: Session, hold_id: str, status: str, reason: str | None = None) -> bool:
    result = db.execute(
        update(SlotHold)
        .where(SlotHold.id == hold_id, SlotHold.status == HOLD_STATUS_HELD)
        .values(status=status, resolved_at=utcnow(), release_reason=reason)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def confirm_hold(db: Session, hold_id: str) -> bool:
    """
    held -> confirmed. No capacity change: reserved was incremented at reserve time.
    Returns False if the hold is unknown or already resolved. The caller commits.
    """
    hold = db.get(SlotHold, hold_id)
    if hold is None or not _resolve(db, hold_id, HOLD_STATUS_CONFIRMED):
        return False
    _clear_slot_mirror(db, hold)
    return True


def release_hold(db: Session, hold_id: str, reason: str, *, commit: bool = True) -> bool:
    """held -> released and give the quantity back. False if already resolved (no double release)."""
    hold = db.get(SlotHold, hold_id)
    if hold is None:
        return False
    try:
        if not _resolve(db, hold_id, HOLD_STATUS_RELEASED, reason):
            if commit:
                db.rollback()
            return False
        _decrement(db, hold.slot_id, hold.qty)
        _clear_slot_mirror(db, hold)
        if commit:
            db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Released hold %s (%s on slot %s): %s", hold_id, hold.qty, hold.slot_id, reason)
    return True


def hold_status(db: Session, hold_id: str) -> str | None:
    hold = db.get(SlotHold, hold_id)
    if hold is None:
        return None
    db.refresh(hold)
    return hold.status


def sweep_expired_holds(db: Session, now: datetime | None = None, day: date | None = None) -> int:
    """
    Release every hold still 'held' past its expiry. Safe to run concurrently with checkouts and
    webhooks: each hold's transition is conditional, so a hold confirmed meanwhile is skipped.
    day limits the sweep to slots on that date (lazy sweep before availability reads).
    """
    now = now or utcnow()
    q = db.query(SlotHold.id).filter(SlotHold.status == HOLD_STATUS_HELD, SlotHold.expires_at <= now)
    if day is not None:
        q = q.join(PickupSlot, PickupSlot.id == SlotHold.slot_id).filter(PickupSlot.day == day)
    expired_ids = [r[0] for r in q.all()]
    db.rollback()
    released = 0
    for hold_id in expired_ids:
        if release_hold(db, hold_id, "expired", commit=False):
            hold = db.get(SlotHold, hold_id)
            log_audit_event(
                db,
                "release_expired_hold",
                "pickup_slots",
                hold.slot_id,
                meta={"hold_id": hold_id, "qty": hold.qty, "session_id": hold.session_id, "reason": "hold_expired"},
            )
            db.commit()
            released += 1
    if released:
        logger.info("Hold sweep: released %s expired holds", released)
    return released
