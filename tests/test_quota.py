"""Tests for the rate limiter, usage meter and tier policy."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from contracts import TierRecord, UserTier
from quota import BASIC_SECTIONS, DEFAULT_TIERS, RateLimiter, TierPolicy, UsageMeter
from stores import InMemoryStore, StoreUnavailableError


class Clock:
    """Mutable clock shared by a store and the component under test."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def timestamp(self) -> float:
        return self.now.timestamp()

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def _down_store():
    store = MagicMock()
    store.get.side_effect = StoreUnavailableError("down")
    store.incr.side_effect = StoreUnavailableError("down")
    return store


class TestRateLimiter:
    """Test the sliding-window abuse limiter."""

    def _limiter(self, limit=3, window=60, start=600.0):
        now = [start]
        self.store = InMemoryStore(time_source=lambda: now[0])
        return RateLimiter(self.store, limit=limit, window_seconds=window, clock=lambda: now[0]), now

    def test_allows_up_to_limit(self):
        limiter, _ = self._limiter(limit=3)
        results = [limiter.check("1.2.3.4") for _ in range(4)]
        assert [r.allowed for r in results] == [True, True, True, False]
        assert results[0].remaining == 2
        assert results[3].remaining == 0

    def test_identities_independent(self):
        limiter, _ = self._limiter(limit=1)
        assert limiter.check("a").allowed
        assert limiter.check("b").allowed
        assert not limiter.check("a").allowed

    def test_previous_window_weighted(self):
        limiter, now = self._limiter(limit=4, window=60, start=600.0)
        for _ in range(4):
            limiter.check("ip")
        # 15s into the next window: 75% of the previous 4 still counts, room for one
        now[0] = 675.0
        assert [limiter.check("ip").allowed for _ in range(2)] == [True, False]
        # 45s in: 25% of 4 = 1 plus the one already counted, room for two more
        now[0] = 705.0
        assert [limiter.check("ip").allowed for _ in range(3)] == [True, True, False]

    def test_denied_calls_not_counted(self):
        limiter, now = self._limiter(limit=2, window=60, start=600.0)
        results = [limiter.check("ip").allowed for _ in range(10)]
        assert results.count(True) == 2
        assert self.store.get("ratelimit:ip:10") == "2"

    def test_reset_at_is_window_end(self):
        limiter, _ = self._limiter(window=60, start=630.0)
        assert limiter.check("ip").reset_at == datetime.fromtimestamp(660, tz=timezone.utc)

    def test_fail_open(self):
        limiter = RateLimiter(_down_store(), limit=1, window_seconds=60, fail_open=True)
        assert limiter.check("ip").allowed is True

    def test_fail_closed(self):
        limiter = RateLimiter(_down_store(), limit=1, window_seconds=60, fail_open=False)
        assert limiter.check("ip").allowed is False

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            RateLimiter(InMemoryStore(), limit=0, window_seconds=60)


class TestUsageMeter:
    """Test daily usage metering."""

    def _meter(self, start=datetime(2025, 3, 1, 22, 0, tzinfo=timezone.utc), tz="UTC", fail_open=True, store=None):
        clock = Clock(start)
        store = store if store is not None else InMemoryStore(time_source=clock.timestamp)
        return UsageMeter(store, TierPolicy(), timezone_name=tz, fail_open=fail_open, clock=clock), clock

    def test_anonymous_limit(self):
        meter, _ = self._meter()
        for _ in range(2):
            assert meter.check(None, "sess", UserTier.ANONYMOUS).allowed
            meter.record(None, "sess", UserTier.ANONYMOUS)
        result = meter.check(None, "sess", UserTier.ANONYMOUS)
        assert result.allowed is False
        assert result.usage.used == 2
        assert result.usage.remaining == 0
        assert "Sign in to get 5 free generations per day" in result.message

    def test_registered_message(self):
        meter, _ = self._meter()
        for _ in range(5):
            meter.record("user-1", None, UserTier.REGISTERED)
        result = meter.check("user-1", None, UserTier.REGISTERED)
        assert result.allowed is False
        assert "daily limit" in result.message

    def test_elevated_unbounded(self):
        meter, _ = self._meter()
        for _ in range(50):
            meter.record("vip", None, UserTier.ELEVATED)
        result = meter.check("vip", None, UserTier.ELEVATED)
        assert result.allowed is True
        assert result.usage.limit is None
        assert result.usage.remaining is None
        assert result.usage.used == 50

    def test_user_id_preferred_over_session(self):
        assert UsageMeter.identity("u1", "s1") == "u1"
        assert UsageMeter.identity(None, "s1") == "anon:s1"
        assert UsageMeter.identity(None, None) == "anon:unknown"

    def test_resets_at_midnight(self):
        meter, clock = self._meter()
        meter.record(None, "s", UserTier.ANONYMOUS)
        meter.record(None, "s", UserTier.ANONYMOUS)
        assert not meter.check(None, "s", UserTier.ANONYMOUS).allowed
        clock.advance(hours=2, minutes=1)
        result = meter.check(None, "s", UserTier.ANONYMOUS)
        assert result.allowed is True
        assert result.usage.used == 0

    def test_resets_at_is_next_local_midnight(self):
        meter, _ = self._meter(start=datetime(2025, 3, 1, 22, 0, tzinfo=timezone.utc), tz="America/New_York")
        info = meter.current(None, "s", UserTier.ANONYMOUS)
        # 22:00 UTC is 17:00 EST; next local midnight is 05:00 UTC on March 2
        assert info.resets_at == datetime(2025, 3, 2, 5, 0, tzinfo=timezone.utc)

    def test_counter_expires_with_day(self):
        store_clock = Clock(datetime(2025, 3, 1, 23, 0, tzinfo=timezone.utc))
        store = InMemoryStore(time_source=store_clock.timestamp)
        meter = UsageMeter(store, TierPolicy(), clock=store_clock)
        meter.record(None, "s", UserTier.ANONYMOUS)
        key = "usage:daily:anon:s:2025-03-01"
        assert store.get(key) == "1"
        store_clock.advance(hours=1, seconds=1)
        assert store.get(key) is None

    def test_fail_open(self):
        meter, _ = self._meter(store=_down_store(), fail_open=True)
        assert meter.check(None, "s", UserTier.ANONYMOUS).allowed is True

    def test_fail_closed(self):
        meter, _ = self._meter(store=_down_store(), fail_open=False)
        result = meter.check(None, "s", UserTier.ANONYMOUS)
        assert result.allowed is False
        assert result.message

    def test_record_failure_not_raised(self):
        meter, _ = self._meter(store=_down_store())
        info = meter.record(None, "s", UserTier.ANONYMOUS)
        assert info.used == 0


class TestTierPolicy:
    """Test tier gating configuration."""

    def test_defaults(self):
        policy = TierPolicy()
        assert policy.daily_quota(UserTier.ANONYMOUS) == 2
        assert policy.daily_quota(UserTier.REGISTERED) == 5
        assert policy.daily_quota(UserTier.ELEVATED) is None

    def test_section_gating(self):
        policy = TierPolicy()
        assert policy.is_allowed("installation", UserTier.ANONYMOUS)
        assert not policy.is_allowed("docker", UserTier.ANONYMOUS)
        assert policy.is_allowed("docker", UserTier.REGISTERED)
        assert not policy.is_allowed("api-docs", UserTier.REGISTERED)
        assert policy.is_allowed("api-docs", UserTier.ELEVATED)

    def test_required_tier(self):
        policy = TierPolicy()
        assert policy.required_tier("header") == UserTier.ANONYMOUS
        assert policy.required_tier("testing") == UserTier.REGISTERED
        assert policy.required_tier("contributing") == UserTier.ELEVATED
        assert policy.required_tier("unknown-section") is None

    def test_backend_sets(self):
        policy = TierPolicy()
        assert "anthropic" not in policy.allowed_backends(UserTier.ANONYMOUS)
        assert "anthropic" in policy.allowed_backends(UserTier.ELEVATED)

    def test_litellm_elevated_only(self):
        policy = TierPolicy()
        assert "litellm" not in policy.allowed_backends(UserTier.ANONYMOUS)
        assert "litellm" not in policy.allowed_backends(UserTier.REGISTERED)
        assert "litellm" in policy.allowed_backends(UserTier.ELEVATED)

    def test_missing_tier_rejected(self):
        with pytest.raises(ValueError, match="missing"):
            TierPolicy(DEFAULT_TIERS[:2])

    def test_decreasing_quota_rejected(self):
        records = (
            TierRecord(UserTier.ANONYMOUS, 10, BASIC_SECTIONS, frozenset()),
            TierRecord(UserTier.REGISTERED, 5, BASIC_SECTIONS, frozenset()),
            TierRecord(UserTier.ELEVATED, None, BASIC_SECTIONS, frozenset()),
        )
        with pytest.raises(ValueError, match="below"):
            TierPolicy(records)

    def test_shrinking_sections_rejected(self):
        records = (
            TierRecord(UserTier.ANONYMOUS, 1, BASIC_SECTIONS, frozenset()),
            TierRecord(UserTier.REGISTERED, 5, frozenset({"header"}), frozenset()),
            TierRecord(UserTier.ELEVATED, None, BASIC_SECTIONS, frozenset()),
        )
        with pytest.raises(ValueError, match="must include"):
            TierPolicy(records)
