"""Exponential backoff for rate-limited provider calls."""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY_MS = 2000
MAX_JITTER_MS = 1000
RATE_LIMIT_STATUS = 429
RATE_LIMIT_MARKERS = ("429", "RESOURCE_EXHAUSTED")

RetryCallback = Callable[[int, float], None]


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True when ``exc`` signals an exhausted request quota."""
    for attr in ("status_code", "status"):
        if getattr(exc, attr, None) == RATE_LIMIT_STATUS:
            return True
    message = str(exc)
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


class RetryExecutor:
    """Runs zero-argument callables, retrying only rate-limit failures.

    The delay before retry ``n`` (1-based) is ``base_delay_ms * 2 ** (n - 1)``
    plus up to one second of jitter. Every other failure propagates on the
    first occurrence, and the last rate-limit error is re-raised once
    ``max_attempts`` calls have failed.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        *,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self._rng = rng or random.Random()
        self._sleep = sleep

    def execute(
        self,
        operation: Callable[[], T],
        on_retry: Optional[RetryCallback] = None,
        max_attempts: Optional[int] = None,
        base_delay_ms: Optional[int] = None,
    ) -> T:
        attempts = self.max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        base = self.base_delay_ms if base_delay_ms is None else base_delay_ms

        for attempt_index in range(attempts):
            try:
                return operation()
            except Exception as exc:
                if not is_rate_limit_error(exc):
                    raise
                if attempt_index >= attempts - 1:
                    logger.error("Rate limit persisted after %s attempts: %s", attempts, exc)
                    raise
                delay_ms = base * (2 ** attempt_index) + self._rng.random() * MAX_JITTER_MS
                logger.warning(
                    "Rate limited (attempt %s/%s); retrying in %.0f ms: %s",
                    attempt_index + 1,
                    attempts,
                    delay_ms,
                    exc,
                )
                if on_retry is not None:
                    on_retry(attempt_index + 1, delay_ms)
                self._sleep(delay_ms / 1000.0)
