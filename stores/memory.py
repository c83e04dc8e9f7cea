"""In-process key-value store."""

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from .base import KeyValueStore, StoreUnavailableError


class InMemoryStore(KeyValueStore):
    """Dictionary-backed store with lazy expiry.

    Suitable for a single process and for tests; counters are not shared
    between workers. Keys that are never read again are dropped by a sweep
    that runs on writes at most once per ``sweep_interval`` seconds.
    """

    def __init__(self, time_source: Callable[[], float] = time.time, sweep_interval: float = 60.0):
        self._time = time_source
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()
        self.sweep_interval = sweep_interval
        self._last_sweep = time_source()

    @property
    def name(self) -> str:
        return "memory"

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def _live(self, key: str) -> Optional[Tuple[str, Optional[float]]]:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at is not None and expires_at <= self._time():
            del self._data[key]
            return None
        return entry

    def _expiry(self, ttl_seconds: Optional[int]) -> Optional[float]:
        return self._time() + ttl_seconds if ttl_seconds else None

    def _maybe_sweep(self) -> None:
        now = self._time()
        if now - self._last_sweep < self.sweep_interval:
            return
        self._last_sweep = now
        expired = [key for key, (_, expires_at) in self._data.items() if expires_at is not None and expires_at <= now]
        for key in expired:
            del self._data[key]

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._live(key)
            return entry[0] if entry else None

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        with self._lock:
            self._maybe_sweep()
            self._data[key] = (value, self._expiry(ttl_seconds))

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def incr(self, key: str, ttl_seconds: Optional[int] = None) -> int:
        with self._lock:
            self._maybe_sweep()
            entry = self._live(key)
            if entry is None:
                value, expires_at = 1, self._expiry(ttl_seconds)
            else:
                try:
                    value = int(entry[0]) + 1
                except ValueError as exc:
                    raise StoreUnavailableError(f"Value at {key!r} is not an integer") from exc
                expires_at = entry[1] if entry[1] is not None else self._expiry(ttl_seconds)
            self._data[key] = (str(value), expires_at)
            return value

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [key for key in self._data if key.startswith(prefix)]
            for key in keys:
                del self._data[key]
            return len(keys)
