"""Retry with exponential backoff for calls to external services (Stripe, calendar feed)."""
import logging
import time
from typing import Callable, TypeVar

from farmstand.core.constants import EXTERNAL_BACKOFF_SECONDS, EXTERNAL_RETRIES

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_retry(
    fn: Callable[[], T],
    *,
    retry_on: tuple[type[BaseException], ...],
    retries: int = EXTERNAL_RETRIES,
    backoff_seconds: float = EXTERNAL_BACKOFF_SECONDS,
    label: str = "external call",
) -> T:
    """Run fn; on a retry_on exception wait backoff * 2**attempt and try again, up to retries times."""
    attempt = 0
    while True:
        try:
            return fn()
        except retry_on as e:
            if attempt >= retries:
                raise
            delay = backoff_seconds * (2 ** attempt)
            logger.warning("%s failed (%s); retry %s/%s in %.1fs", label, e, attempt + 1, retries, delay)
            time.sleep(delay)
            attempt += 1
