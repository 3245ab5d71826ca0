"""
Product waitlist: customers sign up while a product is out of stock and get one email when it is back.
A subscriber is emailed at most once; notified_at marks the ones already told.
"""
import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from farmstand.core.dates import utcnow
from farmstand.core.errors import NotFoundError, ValidationError
from farmstand.models.waitlist import WaitlistEntry
from farmstand.services.audit import log_audit_event
from farmstand.services.email_notify import send_restock_email
from farmstand.services.products import Product, find_by_id

logger = logging.getLogger(__name__)


def _product_or_404(product_id: str) -> Product:
    product = find_by_id(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def join_waitlist(db: Session, product_id: str, email: str) -> tuple[dict[str, Any], bool]:
    """Returns (entry, already_exists)."""
    _product_or_404(product_id)
    email = _normalize_email(email)
    existing = (
        db.query(WaitlistEntry)
        .filter(WaitlistEntry.product_id == product_id, WaitlistEntry.email == email)
        .first()
    )
    if existing is not None:
        return existing.to_dict(), True

    entry = WaitlistEntry(product_id=product_id, email=email)
    db.add(entry)
    try:
        db.flush()
    except IntegrityError:
        # Same signup raced us between the lookup and the insert.
        db.rollback()
        existing = (
            db.query(WaitlistEntry)
            .filter(WaitlistEntry.product_id == product_id, WaitlistEntry.email == email)
            .one()
        )
        return existing.to_dict(), True
    log_audit_event(
        db, "join_waitlist", "waitlist", entry.id, actor="customer",
        meta={"product_id": product_id, "email": email},
    )
    db.commit()
    logger.info("Waitlist: %s joined for %s", email, product_id)
    return entry.to_dict(), False


def leave_waitlist(db: Session, product_id: str, email: str) -> int:
    """Remove the signup; returns the number of rows deleted."""
    deleted = (
        db.query(WaitlistEntry)
        .filter(WaitlistEntry.product_id == product_id, WaitlistEntry.email == _normalize_email(email))
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


def notify_waitlist(db: Session, product_id: str) -> dict[str, Any]:
    """Email every subscriber not yet notified. Each success is committed on its own."""
    product = _product_or_404(product_id)
    if not product.in_stock:
        raise ValidationError(f"{product.name} is not in stock")

    pending = (
        db.query(WaitlistEntry)
        .filter(WaitlistEntry.product_id == product_id, WaitlistEntry.notified_at.is_(None))
        .order_by(WaitlistEntry.id)
        .all()
    )
    if not pending:
        return {"message": "No subscribers to notify", "notified": 0}

    notified = 0
    failed: list[str] = []
    for entry in pending:
        if not send_restock_email(entry.email, product.name):
            failed.append(entry.email)
            continue
        entry.notified_at = utcnow()
        log_audit_event(
            db, "send_waitlist_notification", "waitlist", entry.id,
            meta={"product_id": product_id, "product_name": product.name, "email": entry.email},
        )
        db.commit()
        notified += 1

    if failed:
        logger.warning("Waitlist notify for %s: %s sent, %s failed", product_id, notified, len(failed))
    result: dict[str, Any] = {"message": f"Notified {notified} subscribers", "notified": notified}
    if failed:
        result["errors"] = failed
    return result
