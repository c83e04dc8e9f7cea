"""Redis-backed key-value store."""

from typing import Optional

import redis

from .base import KeyValueStore, StoreUnavailableError


class RedisStore(KeyValueStore):
    """Store for quota counters and cached sections shared across workers."""

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
        socket_timeout: float = 2.0,
    ):
        """Initialize the Redis store.

        Args:
            url: Redis connection URL (redis://host:port/db)
            client: Pre-built client; takes precedence over ``url``
            socket_timeout: Seconds before a Redis call is abandoned
        """
        if client is None and not url:
            raise ValueError("RedisStore needs a url or a client")
        self.url = url
        self.socket_timeout = socket_timeout
        self._client = client

    @property
    def name(self) -> str:
        return "redis"

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis.from_url(
                self.url,
                decode_responses=True,
                socket_timeout=self.socket_timeout,
                socket_connect_timeout=self.socket_timeout,
            )
        return self._client

    def get(self, key: str) -> Optional[str]:
        try:
            return self._get_client().get(key)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"Redis GET failed: {exc}") from exc

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            self._get_client().set(key, value, ex=ttl_seconds or None)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"Redis SET failed: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._get_client().delete(key)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"Redis DEL failed: {exc}") from exc

    def incr(self, key: str, ttl_seconds: Optional[int] = None) -> int:
        client = self._get_client()
        try:
            value = int(client.incr(key))
            # TTL of -1 means the key exists without expiry
            if ttl_seconds and client.ttl(key) == -1:
                client.expire(key, ttl_seconds)
            return value
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"Redis INCR failed: {exc}") from exc

    def delete_prefix(self, prefix: str) -> int:
        client = self._get_client()
        deleted = 0
        try:
            batch = []
            for key in client.scan_iter(match=f"{prefix}*", count=100):
                batch.append(key)
                if len(batch) >= 100:
                    deleted += client.delete(*batch)
                    batch = []
            if batch:
                deleted += client.delete(*batch)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"Redis SCAN/DEL failed: {exc}") from exc
        return deleted
