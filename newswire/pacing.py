"""
Call pacing for the external AI provider.

A token bucket parameterized by the provider's quota. `acquire()` blocks
until a token is available; the clock and sleep function are injectable so
tests can run without waiting.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from .config import ProviderConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """Token bucket limiter.

    Args:
        rate_per_minute: Sustained number of calls allowed per minute
        burst: Bucket size, i.e. calls allowed back to back
        clock: Monotonic clock in seconds
        sleep: Function used to wait
    """

    def __init__(
        self,
        rate_per_minute: float,
        burst: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if rate_per_minute <= 0:
            raise ValueError("rate_per_minute must be positive")
        self.rate = rate_per_minute / 60.0
        self.capacity = max(1, burst)
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(self.capacity)
        self._updated = clock()

    @classmethod
    def from_config(cls, cfg: ProviderConfig) -> "RateLimiter":
        return cls(cfg.rate_per_minute, cfg.burst)

    def acquire(self) -> float:
        """Take one token, waiting if necessary.

        Returns:
            Seconds spent waiting
        """
        self._refill()
        waited = 0.0
        if self._tokens < 1.0:
            wait = (1.0 - self._tokens) / self.rate
            logger.debug("Pacing AI call for %.2fs", wait)
            self._sleep(wait)
            waited = wait
            self._refill()
            # sleep() may return early on a coarse clock
            self._tokens = max(self._tokens, 1.0)
        self._tokens -= 1.0
        return waited

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._updated = now
        self._tokens = min(float(self.capacity), self._tokens + elapsed * self.rate)


class NoopLimiter(RateLimiter):
    """Limiter that never waits."""

    def __init__(self):
        super().__init__(rate_per_minute=60.0, burst=1)

    def acquire(self) -> float:
        return 0.0
