"""
Token-bucket rate limiter guarding outbound query volume.

The bucket starts full.  ``acquire`` refills by elapsed time x rate (capped
at capacity) and takes one token; when the bucket is empty it waits for the
next token outside the lock, so other callers can still acquire or cancel.
A cancelled wait never consumes a token.
"""
from __future__ import annotations

import threading
import time
from typing import Callable

from nrql_frames.core.errors import RateLimitCancelled
from nrql_frames.core.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Thread-safe token bucket.

    Parameters
    ----------
    rate : float
        Tokens added per second.  ``0`` means the bucket never refills.
    capacity : float
        Maximum number of tokens (burst size).
    clock : callable
        Monotonic seconds source; injectable for tests.
    """

    def __init__(
        self,
        rate: float,
        capacity: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if rate < 0:
            raise ValueError("rate must be >= 0")
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._rate = float(rate)
        self._capacity = float(capacity)
        self._clock = clock
        self._tokens = float(capacity)
        self._last_refill = clock()
        self._lock = threading.Lock()

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def capacity(self) -> float:
        return self._capacity

    # ── Public API ──────────────────────────────────────

    def acquire(self, cancel: threading.Event | None = None) -> None:
        """Take one token, blocking until one is available.

        Raises
        ------
        RateLimitCancelled
            If *cancel* is set while waiting.
        """
        waiter = cancel if cancel is not None else threading.Event()
        while True:
            with self._lock:
                if self._take():
                    return
                wait = self._seconds_until_token()

            logger.debug("Rate limited: waiting %s s for a token", wait)
            if waiter.wait(wait):
                raise RateLimitCancelled("cancelled while waiting for a rate-limit token")

    def try_acquire(self) -> bool:
        """Take a token if one is available right now."""
        with self._lock:
            return self._take()

    def available_tokens(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    # ── Internals ───────────────────────────────────────

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._last_refill = now

    def _take(self) -> bool:
        self._refill()
        if self._tokens >= 1:
            self._tokens -= 1
            return True
        return False

    def _seconds_until_token(self) -> float | None:
        """None when the bucket never refills (rate 0)."""
        if self._rate == 0:
            return None
        return (1 - self._tokens) / self._rate
