"""
Retrying wrapper around calendar backend calls.
"""

import logging
import time
from collections.abc import Callable
from typing import Any
from typing import TypeVar

from calendar_shadow.models import RateLimitedError
from calendar_shadow.models import TransientBackendError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Ceiling on the cumulative sleep of a single call, in seconds.
MAX_BACKOFF = 130

USAGE_LIMIT_MESSAGE = "Calendar usage limits exceeded"
USAGE_LIMIT_GUIDANCE = (
    "Error may relate to too many notifications to external domains, "
    "or too many requests in a short period of time"
)


def backoff_delay(attempt: int) -> int:
    """Seconds to wait after the given failed attempt (attempts start at 1)."""
    return 2 ** (attempt - 1)


def is_usage_limit_error(e: Exception) -> bool:
    return isinstance(e, RateLimitedError) or USAGE_LIMIT_MESSAGE in str(e)


class RetryingApiGateway:
    """Runs backend calls with bounded exponential backoff.

    Only TransientBackendError (which includes RateLimitedError) is retried;
    not-found and invalid-sync-token errors cannot be fixed by waiting and
    propagate immediately. Every call starts with a fresh backoff counter.
    """

    def __init__(
        self,
        max_backoff: int = MAX_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_backoff = max_backoff
        self._sleep = sleep

    def call(self, operation: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        attempt = 0
        waited = 0
        while True:
            attempt += 1
            try:
                return func(*args, **kwargs)
            except TransientBackendError as e:
                delay = backoff_delay(attempt)
                if waited + delay > self.max_backoff:
                    logger.error(
                        f"{operation} failed after {attempt} attempt(s) "
                        f"and {waited}s of backoff: {e}"
                    )
                    if is_usage_limit_error(e):
                        raise RateLimitedError(f"{USAGE_LIMIT_GUIDANCE} -- {e}") from e
                    raise
                logger.warning(f"{operation} failed (attempt {attempt}): {e}. Retrying in {delay}s")
                self._sleep(delay)
                waited += delay
