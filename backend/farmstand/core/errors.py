"""
Centralized error taxonomy for checkout, reservations and jobs.
Services raise these; the FastAPI handler in main.py renders them as {"error": ...}.
"""
from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

# ---------------------------------------------------------------------------
# Constants: status codes and user-facing messages
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_INTERNAL_ERROR = 500
STATUS_SERVICE_UNAVAILABLE = 503

MSG_PANIC_MODE = "Ordering is temporarily paused. Please check back soon."
MSG_AUTO_PAUSE = "Pickups are fully booked for today. Please try again later."
MSG_SLOT_UNAVAILABLE = "Pickup slot no longer available. Please choose another time."
MSG_INTERNAL_ERROR = "Internal server error"

REASON_PANIC_MODE = "panic_mode"
REASON_AUTO_PAUSE = "auto_pause"


class FarmstandError(Exception):
    """Base for errors with a user-facing message and an HTTP status."""

    status_code = STATUS_INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FarmstandError):
    status_code = STATUS_BAD_REQUEST


class NotFoundError(FarmstandError):
    status_code = STATUS_NOT_FOUND


class ConflictError(FarmstandError):
    status_code = STATUS_CONFLICT


class ServiceUnavailable(FarmstandError):
    """Admission denied by the demand governor. Not retryable immediately."""

    status_code = STATUS_SERVICE_UNAVAILABLE

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.reason = reason


class ConfigurationError(FarmstandError):
    """Operator-fixable setup problem (missing capacity rule, missing secret)."""


class ExternalServiceError(FarmstandError):
    """Stripe, the calendar feed or the database could not be reached."""


def error_body(message: str) -> dict[str, str]:
    return {"error": message}


async def farmstand_error_handler(request: Request, exc: FarmstandError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))
