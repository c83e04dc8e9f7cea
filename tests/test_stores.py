"""Tests for the key-value stores."""

from unittest.mock import MagicMock

import pytest
import redis

from stores import InMemoryStore, RedisStore, StoreUnavailableError, create_store


class TestInMemoryStore:
    """Test the in-process store."""

    def test_set_get_delete(self):
        store = InMemoryStore()
        store.set("k", "v")
        assert store.get("k") == "v"
        store.delete("k")
        assert store.get("k") is None

    def test_expiry(self):
        now = [100.0]
        store = InMemoryStore(time_source=lambda: now[0])
        store.set("k", "v", ttl_seconds=10)
        now[0] = 109.0
        assert store.get("k") == "v"
        now[0] = 110.0
        assert store.get("k") is None

    def test_incr_keeps_first_expiry(self):
        now = [0.0]
        store = InMemoryStore(time_source=lambda: now[0])
        assert store.incr("c", ttl_seconds=10) == 1
        now[0] = 5.0
        assert store.incr("c", ttl_seconds=10) == 2
        now[0] = 10.0
        assert store.get("c") is None
        assert store.incr("c", ttl_seconds=10) == 1

    def test_incr_non_integer(self):
        store = InMemoryStore()
        store.set("c", "abc")
        with pytest.raises(StoreUnavailableError):
            store.incr("c")

    def test_expired_keys_swept_on_write(self):
        now = [0.0]
        store = InMemoryStore(time_source=lambda: now[0], sweep_interval=60)
        for i in range(100):
            store.incr(f"ratelimit:10.0.0.{i}:0", ttl_seconds=600)
        store.set("keep", "v")
        now[0] = 10_000.0
        store.incr("ratelimit:10.0.0.1:16", ttl_seconds=600)
        assert len(store) == 2
        assert store.get("keep") == "v"

    def test_sweep_waits_for_interval(self):
        now = [0.0]
        store = InMemoryStore(time_source=lambda: now[0], sweep_interval=60)
        store.set("a", "1", ttl_seconds=5)
        now[0] = 30.0
        store.set("b", "2")
        assert len(store) == 2
        now[0] = 61.0
        store.set("c", "3")
        assert len(store) == 2
        assert store.get("a") is None

    def test_delete_prefix(self):
        store = InMemoryStore()
        for key in ("generate:a:1", "generate:a:2", "generate:b:1"):
            store.set(key, "x")
        assert store.delete_prefix("generate:a:") == 2
        assert store.get("generate:b:1") == "x"


class TestRedisStore:
    """Test the Redis store against a mocked client."""

    def test_requires_url_or_client(self):
        with pytest.raises(ValueError):
            RedisStore()

    def test_set_passes_ttl(self):
        client = MagicMock()
        RedisStore(client=client).set("k", "v", ttl_seconds=30)
        client.set.assert_called_once_with("k", "v", ex=30)

    def test_incr_sets_expiry_on_new_key(self):
        client = MagicMock()
        client.incr.return_value = 1
        client.ttl.return_value = -1
        assert RedisStore(client=client).incr("c", ttl_seconds=60) == 1
        client.expire.assert_called_once_with("c", 60)

    def test_incr_keeps_existing_expiry(self):
        client = MagicMock()
        client.incr.return_value = 3
        client.ttl.return_value = 42
        RedisStore(client=client).incr("c", ttl_seconds=60)
        client.expire.assert_not_called()

    def test_errors_wrapped(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("refused")
        with pytest.raises(StoreUnavailableError):
            RedisStore(client=client).get("k")

    def test_delete_prefix_scans(self):
        client = MagicMock()
        client.scan_iter.return_value = iter(["generate:a:1", "generate:a:2"])
        client.delete.return_value = 2
        assert RedisStore(client=client).delete_prefix("generate:a:") == 2
        client.scan_iter.assert_called_once_with(match="generate:a:*", count=100)
        client.delete.assert_called_once_with("generate:a:1", "generate:a:2")


class TestCreateStore:
    """Test store selection from configuration."""

    def test_memory_without_url(self):
        assert isinstance(create_store(""), InMemoryStore)

    def test_redis_with_url(self):
        store = create_store("redis://localhost:6379/0")
        assert isinstance(store, RedisStore)
        assert store.name == "redis"
