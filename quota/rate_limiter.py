"""Sliding-window abuse rate limiter keyed by caller network identity."""

import math
import time
from datetime import datetime, timezone
from typing import Callable

from contracts import RateLimitResult
from logging_setup import get_logger
from stores import KeyValueStore, StoreUnavailableError

logger = get_logger("quota.rate_limiter")


class RateLimiter:
    """Coarse guard against scripted abuse, independent of authentication and tier.

    Approximates a sliding window with two fixed windows: the previous
    window's count is weighted by how much of it still overlaps the sliding
    window. A rejected call is not counted.
    """

    def __init__(
        self,
        store: KeyValueStore,
        limit: int,
        window_seconds: int,
        fail_open: bool = True,
        clock: Callable[[], float] = time.time,
        prefix: str = "ratelimit",
    ):
        if limit < 1 or window_seconds < 1:
            raise ValueError("limit and window_seconds must be positive")
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.fail_open = fail_open
        self._clock = clock
        self._prefix = prefix

    def _key(self, identity: str, window: int) -> str:
        return f"{self._prefix}:{identity}:{window}"

    def check(self, network_identity: str) -> RateLimitResult:
        """Count one operation for ``network_identity`` if the window allows it."""
        now = self._clock()
        window = int(now // self.window_seconds)
        overlap = 1.0 - (now - window * self.window_seconds) / self.window_seconds
        reset_at = datetime.fromtimestamp((window + 1) * self.window_seconds, tz=timezone.utc)
        identity = network_identity or "anonymous"

        try:
            previous = int(self.store.get(self._key(identity, window - 1)) or 0)
            current = int(self.store.get(self._key(identity, window)) or 0)
            if previous * overlap + current >= self.limit:
                logger.info("Rate limit exceeded for %s", identity)
                return RateLimitResult(allowed=False, limit=self.limit, remaining=0, reset_at=reset_at)

            current = self.store.incr(self._key(identity, window), ttl_seconds=2 * self.window_seconds)
        except (StoreUnavailableError, ValueError) as exc:
            logger.warning(
                "Rate limit store unavailable (%s); %s",
                exc,
                "allowing request" if self.fail_open else "rejecting request",
            )
            return RateLimitResult(
                allowed=self.fail_open,
                limit=self.limit,
                remaining=self.limit if self.fail_open else 0,
                reset_at=reset_at,
            )

        remaining = max(0, math.floor(self.limit - (previous * overlap + current)))
        return RateLimitResult(allowed=True, limit=self.limit, remaining=remaining, reset_at=reset_at)
