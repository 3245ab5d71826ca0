"""Stripe webhook: signature is verified over the raw body before anything is parsed."""
from typing import Any

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from farmstand.db.session import get_db
from farmstand.services.payment_completion import handle_stripe_event
from farmstand.services.payments import StripeGateway, construct_event, get_payment_gateway

router = APIRouter()


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
) -> dict[str, Any]:
    payload = await request.body()
    event = construct_event(payload, stripe_signature)
    return handle_stripe_event(db, gateway, event)
