"""Content cache deduplicating identical section generation requests."""

import hashlib
import json
from typing import Optional, Sequence

from pydantic import ValidationError

from contracts import CacheEntry
from logging_setup import get_logger
from stores import KeyValueStore, StoreUnavailableError

logger = get_logger("cache")

# Markers of failed, placeholder or unrendered content
INVALID_CONTENT_MARKERS = (
    "*AI generation temporarily unavailable*",
    "Please customize this section manually",
    "{{",
    "Content generation failed",
)

KEY_PREFIX = "generate"


def _digest(value: str, length: int) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:length]


class ContentCache:
    """Maps a request fingerprint to a previously generated section.

    Entries are trusted only while they pass ``is_valid``: a stored entry
    that fails it at read time is evicted and reported as a miss. Expiry is
    delegated to the store.
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = 86400,
        min_content_length: int = 100,
        fingerprint_entries: int = 10,
        invalid_markers: Sequence[str] = INVALID_CONTENT_MARKERS,
    ):
        self._store = store
        self.ttl_seconds = ttl_seconds
        self.min_content_length = min_content_length
        self.fingerprint_entries = fingerprint_entries
        self.invalid_markers = tuple(invalid_markers)

    # ------------------------------------------------------------------
    # Keys

    @staticmethod
    def project_prefix(project: str) -> str:
        return f"{KEY_PREFIX}:{_digest(project, 12)}:"

    def make_key(
        self,
        project: str,
        section_id: str,
        stack_primary: str,
        structure: Optional[Sequence[str]] = None,
    ) -> str:
        """Deterministic, bounded-length key for a generation request.

        Only the first ``fingerprint_entries`` structure entries take part, so
        requests differing further down the listing share a key.
        """
        head = list(structure or [])[: self.fingerprint_entries]
        fingerprint = _digest(json.dumps(head), 16) if head else ""
        material = json.dumps([project, section_id, str(stack_primary), fingerprint])
        return self.project_prefix(project) + _digest(material, 32)

    # ------------------------------------------------------------------
    # Validity

    def is_content_valid(self, content: Optional[str]) -> bool:
        if not content or len(content) < self.min_content_length:
            return False
        return not any(marker in content for marker in self.invalid_markers)

    def is_valid(self, entry: Optional[CacheEntry]) -> bool:
        """True when the entry is complete real content worth serving."""
        if entry is None:
            return False
        if not entry.provider or not entry.section_id:
            return False
        return self.is_content_valid(entry.content)

    # ------------------------------------------------------------------
    # Operations

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return a valid cached entry, or None on miss.

        Undecodable or invalid entries are deleted. Store failures count as
        a miss.
        """
        try:
            raw = self._store.get(key)
        except StoreUnavailableError as exc:
            logger.warning("Cache lookup failed, treating as miss: %s", exc)
            return None
        if raw is None:
            logger.debug("Cache miss: %s", key)
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError:
            entry = None

        if not self.is_valid(entry):
            logger.warning("Removing invalid cache entry %s", key)
            self._evict(key)
            return None

        logger.debug("Cache hit: %s (%s)", key, entry.provider)
        return entry

    def store(self, key: str, entry: CacheEntry) -> bool:
        """Store ``entry`` if valid; returns whether it was written."""
        if not self.is_valid(entry):
            logger.warning("Not caching invalid content from %s for %s", entry.provider or "?", entry.section_id)
            return False
        try:
            self._store.set(key, entry.model_dump_json(), ttl_seconds=self.ttl_seconds)
        except StoreUnavailableError as exc:
            logger.warning("Cache write failed: %s", exc)
            return False
        logger.debug("Cached %s from %s", key, entry.provider)
        return True

    def clear_project(self, project: str) -> int:
        """Drop every cached section of ``project``."""
        try:
            removed = self._store.delete_prefix(self.project_prefix(project))
        except StoreUnavailableError as exc:
            logger.error("Cache clear failed for project %s: %s", project, exc)
            raise
        logger.info("Cleared %d cache entries for project %s", removed, project)
        return removed

    def _evict(self, key: str) -> None:
        try:
            self._store.delete(key)
        except StoreUnavailableError as exc:
            logger.warning("Cache eviction failed: %s", exc)
