"""
Checkout: validate, admit, reserve a pickup slot and redirect to Stripe Checkout.
GET /api/checkout?slug=...&qty=...&pickup_slot_id=...
"""
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from farmstand.core.errors import ValidationError
from farmstand.db.session import get_db
from farmstand.services.checkout import start_checkout
from farmstand.services.payments import StripeGateway, get_payment_gateway

router = APIRouter()
logger = logging.getLogger(__name__)


def _parse_int(value: str | None, name: str, default: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Invalid {name}") from None


@router.get("")
def checkout(
    slug: str | None = Query(None),
    qty: str | None = Query(None),
    pickup_slot_id: str | None = Query(None),
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
) -> RedirectResponse:
    result = start_checkout(
        db,
        gateway,
        slug,
        _parse_int(qty, "quantity", default=1),
        pickup_slot_id=_parse_int(pickup_slot_id, "pickup slot"),
    )
    return RedirectResponse(result.url, status_code=303)
