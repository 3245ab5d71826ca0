"""
Stripe client: checkout sessions, line items, recent sessions, webhook verification.

Transient failures (connection errors, rate limits) are retried with backoff; anything left over
surfaces as ExternalServiceError. Results are plain dicts so callers and tests never depend on
Stripe object types.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import stripe

from farmstand.config import settings
from farmstand.core.errors import ConfigurationError, ExternalServiceError, ValidationError
from farmstand.core.retry import call_with_retry

logger = logging.getLogger(__name__)

_TRANSIENT = (stripe.APIConnectionError, stripe.RateLimitError)

WEBHOOK_TOLERANCE_SECONDS = 300


@dataclass
class CheckoutSession:
    id: str
    url: str


def _customer_details(obj: Any) -> dict[str, Any]:
    details = getattr(obj, "customer_details", None)
    if not details:
        return {}
    return {"email": getattr(details, "email", None), "name": getattr(details, "name", None)}


def _session_to_dict(s: Any) -> dict[str, Any]:
    return {
        "id": s.id,
        "status": getattr(s, "status", None),
        "payment_status": getattr(s, "payment_status", None),
        "amount_total": getattr(s, "amount_total", None),
        "metadata": dict(getattr(s, "metadata", None) or {}),
        "customer_details": _customer_details(s),
    }


def _line_item_to_dict(li: Any) -> dict[str, Any]:
    price = getattr(li, "price", None)
    price_meta = dict(getattr(price, "metadata", None) or {}) if price else {}
    return {
        "description": getattr(li, "description", None),
        "quantity": getattr(li, "quantity", None) or 1,
        "price_id": getattr(price, "id", None) if price else None,
        "unit_amount": (getattr(price, "unit_amount", None) or 0) if price else 0,
        "product_id": price_meta.get("product_id"),
    }


class StripeGateway:
    """Stripe checkout operations used by checkout, the webhook handler and reconciliation."""

    def __init__(self, api_key: str | None = None) -> None:
        self._api_key = (api_key if api_key is not None else settings.stripe_secret_key).strip()

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _call(self, label: str, fn):
        if not self.is_configured():
            raise ExternalServiceError("Stripe not configured")
        try:
            return call_with_retry(fn, retry_on=_TRANSIENT, label=f"Stripe {label}")
        except stripe.StripeError as e:
            logger.error("Stripe %s failed: %s", label, e)
            raise ExternalServiceError(f"Payment processor error: {label} failed") from e

    def create_checkout_session(
        self,
        *,
        price_id: str,
        qty: int,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        expires_at: datetime | None = None,
    ) -> CheckoutSession:
        params: dict[str, Any] = {
            "mode": "payment",
            "line_items": [{"price": price_id, "quantity": qty}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "automatic_tax": {"enabled": True},
            "metadata": metadata,
        }
        if expires_at is not None:
            params["expires_at"] = int(expires_at.timestamp())
        session = self._call(
            "create checkout session",
            lambda: stripe.checkout.Session.create(api_key=self._api_key, **params),
        )
        return CheckoutSession(id=session.id, url=session.url)

    def list_line_items(self, session_id: str) -> list[dict[str, Any]]:
        items = self._call(
            "list line items",
            lambda: stripe.checkout.Session.list_line_items(session_id, limit=10, api_key=self._api_key),
        )
        return [_line_item_to_dict(li) for li in items.data]

    def list_recent_sessions(self, created_gte: int, limit: int = 100) -> list[dict[str, Any]]:
        sessions = self._call(
            "list sessions",
            lambda: stripe.checkout.Session.list(created={"gte": created_gte}, limit=limit, api_key=self._api_key),
        )
        return [_session_to_dict(s) for s in sessions.data]


def get_payment_gateway() -> StripeGateway:
    """FastAPI dependency; tests override it with a fake."""
    return StripeGateway()


def construct_event(payload: bytes, sig_header: str | None, secret: str | None = None) -> dict[str, Any]:
    """
    Verify the Stripe-Signature header over the raw body and return the event as a dict.
    Raises ValidationError for a bad signature or body, ConfigurationError when no secret is set.
    """
    secret = (secret if secret is not None else settings.stripe_webhook_secret).strip()
    if not secret:
        raise ConfigurationError("Webhook secret not configured")
    if not sig_header:
        raise ValidationError("Webhook Error: missing Stripe-Signature header")
    try:
        body = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(body, sig_header, secret, WEBHOOK_TOLERANCE_SECONDS)
        event = json.loads(body)
    except stripe.SignatureVerificationError as e:
        raise ValidationError(f"Webhook Error: {e}") from e
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError("Webhook Error: invalid payload") from e
    if not isinstance(event, dict) or "type" not in event:
        raise ValidationError("Webhook Error: invalid payload")
    return event
