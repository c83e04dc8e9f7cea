"""Key-value stores backing quota counters and the content cache."""

from .base import KeyValueStore, StoreUnavailableError
from .memory import InMemoryStore
from .redis_store import RedisStore


def create_store(redis_url: str = "") -> KeyValueStore:
    """Redis store when a URL is configured, otherwise an in-process store."""
    if redis_url:
        return RedisStore(url=redis_url)
    return InMemoryStore()


__all__ = [
    "KeyValueStore",
    "StoreUnavailableError",
    "InMemoryStore",
    "RedisStore",
    "create_store",
]
