"""
Checkout orchestrator: validate -> admit -> reserve -> create Stripe session.

START -> ADMITTED -> RESERVED -> SESSION_CREATED, any step may abort. A reservation made in
step 3 is released synchronously before any later error reaches the caller; this module is the
only place that compensates.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.orm import Session

from farmstand.config import settings
from farmstand.core.constants import (
    META_HOLD_ID,
    META_PICKUP_ONLY,
    META_PICKUP_SLOT_ID,
    META_PRODUCT_SLUG,
    META_QTY,
    META_RESERVATION_HELD,
)
from farmstand.core.dates import as_utc, local_today, utcnow
from farmstand.core.errors import (
    MSG_AUTO_PAUSE,
    MSG_PANIC_MODE,
    MSG_SLOT_UNAVAILABLE,
    REASON_PANIC_MODE,
    ConflictError,
    ServiceUnavailable,
    ValidationError,
)
from farmstand.models.pickup_slot import PickupSlot
from farmstand.services.governor import check_admission, load_governor_settings
from farmstand.services.payments import StripeGateway
from farmstand.services.products import Product, assert_purchasable, find_by_slug
from farmstand.services.reservations import (
    REASON_SLOT_NOT_FOUND,
    attach_session,
    release_hold,
    reserve_with_hold,
)

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    session_id: str
    url: str
    hold_id: str | None = None


def _validate_product(slug: str | None, qty: int) -> Product:
    if not slug:
        raise ValidationError("Missing slug")
    product = find_by_slug(slug)
    if product is None:
        raise ValidationError("Invalid product")
    assert_purchasable(product, qty)
    return product


def _validate_slot(db: Session, slot_id: int) -> PickupSlot:
    slot = db.get(PickupSlot, slot_id)
    if slot is None:
        raise ValidationError("Invalid pickup slot")
    if as_utc(slot.start_ts) <= utcnow():
        raise ValidationError("Pickup slot has already started")
    return slot


def _admit(db: Session) -> None:
    admission = check_admission(db, local_today(), load_governor_settings(db))
    if not admission.allowed:
        message = MSG_PANIC_MODE if admission.reason == REASON_PANIC_MODE else MSG_AUTO_PAUSE
        raise ServiceUnavailable(message, reason=admission.reason)


def _session_expiry():
    # Stripe requires expires_at at least 30 minutes out; the hold may expire sooner and is
    # then re-reserved on completion if capacity allows.
    return utcnow() + timedelta(minutes=max(settings.checkout_session_ttl_minutes, 30))


def start_checkout(
    db: Session,
    gateway: StripeGateway,
    slug: str | None,
    qty: int,
    pickup_slot_id: int | None = None,
) -> CheckoutResult:
    product = _validate_product(slug, qty)
    if pickup_slot_id is not None:
        _validate_slot(db, pickup_slot_id)

    _admit(db)

    hold = None
    if pickup_slot_id is not None:
        result, hold = reserve_with_hold(db, pickup_slot_id, qty)
        if not result.success:
            if result.reason == REASON_SLOT_NOT_FOUND:
                raise ValidationError("Invalid pickup slot")
            raise ConflictError(MSG_SLOT_UNAVAILABLE)

    metadata = {META_PRODUCT_SLUG: product.slug, META_QTY: str(qty), META_PICKUP_ONLY: "true"}
    if hold is not None:
        metadata[META_PICKUP_SLOT_ID] = str(pickup_slot_id)
        metadata[META_HOLD_ID] = hold.id
        metadata[META_RESERVATION_HELD] = "true"

    try:
        session = gateway.create_checkout_session(
            price_id=product.stripe_price_id,
            qty=qty,
            metadata=metadata,
            success_url=f"{settings.site_url}/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.site_url}/product/{product.slug}",
            expires_at=_session_expiry(),
        )
    except Exception:
        if hold is not None:
            logger.exception(
                "Checkout session failed after reserving; releasing hold %s (slot=%s qty=%s product=%s)",
                hold.id, pickup_slot_id, qty, product.slug,
            )
            release_hold(db, hold.id, "checkout_session_failed")
        else:
            logger.exception("Checkout session failed (product=%s qty=%s)", product.slug, qty)
        raise

    if hold is not None:
        # The webhook finds the hold through metadata; the session id on the hold is for operators.
        try:
            attach_session(db, hold.id, session.id)
        except Exception as e:
            db.rollback()
            logger.warning("Could not attach session %s to hold %s: %s", session.id, hold.id, e)
    logger.info("Checkout session %s created (product=%s qty=%s slot=%s)", session.id, product.slug, qty, pickup_slot_id)
    return CheckoutResult(session_id=session.id, url=session.url, hold_id=hold.id if hold else None)
