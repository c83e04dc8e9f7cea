"""Base key-value store interface for quota counters and the content cache."""

from abc import ABC, abstractmethod
from typing import Optional


class StoreUnavailableError(RuntimeError):
    """Raised when the backing store cannot be reached or answers with an error."""


class KeyValueStore(ABC):
    """Abstract store providing atomic get/set/increment primitives with expiry."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Store name (memory, redis)."""
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key`` or None when missing or expired."""
        pass

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Store ``value``; it expires after ``ttl_seconds`` when given."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def incr(self, key: str, ttl_seconds: Optional[int] = None) -> int:
        """Atomically increment an integer counter, creating it at 1.

        Args:
            key: Counter key
            ttl_seconds: Expiry applied when the counter has none yet

        Returns:
            The value after incrementing
        """
        pass

    @abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``; returns the number removed."""
        pass
