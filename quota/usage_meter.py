"""Tracks and enforces tiered daily generation quotas."""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from contracts import UsageCheckResult, UsageInfo, UserTier
from logging_setup import get_logger
from stores import KeyValueStore, StoreUnavailableError

from .tiers import TierPolicy

logger = get_logger("quota.usage_meter")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsageMeter:
    """Daily usage counter per user (or anonymous session), reset at local midnight.

    ``check`` and ``record`` are separate store operations. Two concurrent
    requests from one identity can both pass ``check`` before either
    records, so a counter may overshoot its ceiling by the number of
    in-flight requests. This looseness is accepted; strict enforcement would
    need a single increment-then-compare at the store.
    """

    def __init__(
        self,
        store: KeyValueStore,
        tier_policy: TierPolicy,
        timezone_name: str = "UTC",
        fail_open: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the usage meter.

        Args:
            store: Counter store
            tier_policy: Source of per-tier daily ceilings
            timezone_name: IANA timezone whose midnight resets the counters
            fail_open: Allow generation when the store is unreachable
            clock: Returns the current timezone-aware time
        """
        self.store = store
        self.tier_policy = tier_policy
        self.tz = ZoneInfo(timezone_name)
        self.fail_open = fail_open
        self._clock = clock

    # ------------------------------------------------------------------
    # Key helpers

    @staticmethod
    def identity(user_id: Optional[str], session_id: Optional[str]) -> str:
        """Prefer the authenticated user; fall back to the anonymous session."""
        if user_id:
            return user_id
        return f"anon:{session_id or 'unknown'}"

    def _today(self) -> date:
        return self._clock().astimezone(self.tz).date()

    def _reset_at(self) -> datetime:
        tomorrow = self._today() + timedelta(days=1)
        return datetime.combine(tomorrow, time.min, tzinfo=self.tz).astimezone(timezone.utc)

    def _key(self, identity: str) -> str:
        return f"usage:daily:{identity}:{self._today().isoformat()}"

    def _usage(self, used: int, tier: UserTier) -> UsageInfo:
        limit = self.tier_policy.daily_quota(tier)
        return UsageInfo(
            used=used,
            limit=limit,
            remaining=None if limit is None else max(0, limit - used),
            tier=tier,
            resets_at=self._reset_at(),
        )

    def _limit_message(self, tier: UserTier) -> str:
        if tier == UserTier.ANONYMOUS:
            registered = self.tier_policy.daily_quota(UserTier.REGISTERED)
            return f"Sign in to get {registered} free generations per day."
        return f"You've reached your daily limit. It resets at midnight ({self.tz.key})."

    # ------------------------------------------------------------------
    # Operations

    def check(self, user_id: Optional[str], session_id: Optional[str], tier: UserTier) -> UsageCheckResult:
        """Decide whether the identity may generate once more today."""
        tier = UserTier(tier)
        key = self._key(self.identity(user_id, session_id))
        try:
            used = int(self.store.get(key) or 0)
        except (StoreUnavailableError, ValueError) as exc:
            if self.fail_open:
                logger.warning("Usage check failed, allowing generation: %s", exc)
                return UsageCheckResult(allowed=True, usage=self._usage(0, tier))
            logger.warning("Usage check failed, rejecting generation: %s", exc)
            return UsageCheckResult(
                allowed=False,
                usage=self._usage(0, tier),
                message="Usage could not be verified. Please try again later.",
            )

        usage = self._usage(used, tier)
        if usage.limit is not None and used >= usage.limit:
            return UsageCheckResult(allowed=False, usage=usage, message=self._limit_message(tier))
        return UsageCheckResult(allowed=True, usage=usage)

    def record(self, user_id: Optional[str], session_id: Optional[str], tier: UserTier) -> UsageInfo:
        """Count one delivered generation. Failures are logged, never raised."""
        tier = UserTier(tier)
        key = self._key(self.identity(user_id, session_id))
        ttl = max(1, math.ceil((self._reset_at() - self._clock()).total_seconds()))
        try:
            used = self.store.incr(key, ttl_seconds=ttl)
        except StoreUnavailableError as exc:
            logger.error("Failed to record usage: %s", exc)
            return self._usage(0, tier)
        return self._usage(used, tier)

    def current(self, user_id: Optional[str], session_id: Optional[str], tier: UserTier) -> UsageInfo:
        """Usage snapshot for display."""
        tier = UserTier(tier)
        try:
            used = int(self.store.get(self._key(self.identity(user_id, session_id))) or 0)
        except (StoreUnavailableError, ValueError) as exc:
            logger.warning("Usage lookup failed: %s", exc)
            used = 0
        return self._usage(used, tier)
