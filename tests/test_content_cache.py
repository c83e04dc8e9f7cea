"""Tests for the content cache."""

from unittest.mock import MagicMock

import pytest

from cache import ContentCache
from contracts import CacheEntry
from stores import InMemoryStore, StoreUnavailableError

VALID_CONTENT = "## Installation\n\n" + "Run the installer and follow the prompts. " * 5


def _entry(content: str = VALID_CONTENT, provider: str = "groq", section_id: str = "installation") -> CacheEntry:
    return CacheEntry(section_id=section_id, content=content, explanation="why", provider=provider)


@pytest.fixture
def cache():
    return ContentCache(InMemoryStore())


class TestKeys:
    """Test cache key derivation."""

    def test_deterministic_and_bounded(self, cache):
        key = cache.make_key("my-project", "installation", "nextjs", ["a.ts", "b.ts"])
        assert key == cache.make_key("my-project", "installation", "nextjs", ["a.ts", "b.ts"])
        assert key.startswith("generate:")
        assert len(key) == len("generate:") + 12 + 1 + 32
        long_key = cache.make_key("p" * 5000, "installation", "nextjs", ["x" * 1000] * 50)
        assert len(long_key) == len(key)

    def test_distinct_inputs_distinct_keys(self, cache):
        base = cache.make_key("p", "installation", "nextjs", ["a"])
        assert base != cache.make_key("q", "installation", "nextjs", ["a"])
        assert base != cache.make_key("p", "features", "nextjs", ["a"])
        assert base != cache.make_key("p", "installation", "react", ["a"])
        assert base != cache.make_key("p", "installation", "nextjs", ["b"])

    def test_only_leading_structure_entries_count(self, cache):
        head = [f"file{i}" for i in range(10)]
        assert cache.make_key("p", "s", "go", head + ["x"]) == cache.make_key("p", "s", "go", head + ["y"])

    def test_project_prefix_shared(self, cache):
        prefix = cache.project_prefix("p")
        assert cache.make_key("p", "header", "go").startswith(prefix)
        assert cache.make_key("p", "license", "rust").startswith(prefix)


class TestValidity:
    """Test the validity predicate."""

    def test_valid_entry(self, cache):
        assert cache.is_valid(_entry())

    @pytest.mark.parametrize("content", [
        "",
        "too short",
        VALID_CONTENT + "*AI generation temporarily unavailable*",
        VALID_CONTENT + "Please customize this section manually",
        VALID_CONTENT + "{{ project_name }}",
        VALID_CONTENT + "Content generation failed",
    ])
    def test_invalid_content(self, cache, content):
        assert not cache.is_valid(_entry(content=content))

    def test_missing_provider(self, cache):
        assert not cache.is_valid(_entry(provider=""))

    def test_none(self, cache):
        assert not cache.is_valid(None)


class TestLookupAndStore:
    """Test cache round trips and eviction."""

    def test_store_then_lookup(self, cache):
        key = cache.make_key("p", "installation", "nextjs")
        assert cache.store(key, _entry()) is True
        hit = cache.lookup(key)
        assert hit is not None
        assert hit.provider == "groq"

    def test_invalid_entry_not_stored(self, cache):
        key = cache.make_key("p", "installation", "nextjs")
        assert cache.store(key, _entry(content="short")) is False
        assert cache.lookup(key) is None

    def test_invalid_stored_entry_evicted(self):
        store = InMemoryStore()
        cache = ContentCache(store)
        key = cache.make_key("p", "installation", "nextjs")
        store.set(key, _entry(content=VALID_CONTENT + "{{").model_dump_json())
        assert cache.lookup(key) is None
        assert store.get(key) is None

    def test_undecodable_entry_evicted(self):
        store = InMemoryStore()
        cache = ContentCache(store)
        store.set("generate:abc:def", "not json")
        assert cache.lookup("generate:abc:def") is None
        assert store.get("generate:abc:def") is None

    def test_ttl_applied(self):
        now = [1000.0]
        cache = ContentCache(InMemoryStore(time_source=lambda: now[0]), ttl_seconds=60)
        key = cache.make_key("p", "installation", "nextjs")
        cache.store(key, _entry())
        now[0] += 61
        assert cache.lookup(key) is None

    def test_store_outage_is_a_miss(self):
        store = MagicMock()
        store.get.side_effect = StoreUnavailableError("down")
        store.set.side_effect = StoreUnavailableError("down")
        cache = ContentCache(store)
        assert cache.lookup("generate:x:y") is None
        assert cache.store("generate:x:y", _entry()) is False

    def test_clear_project(self, cache):
        cache.store(cache.make_key("p", "installation", "nextjs"), _entry())
        cache.store(cache.make_key("p", "header", "nextjs"), _entry(section_id="header"))
        other = cache.make_key("q", "header", "nextjs")
        cache.store(other, _entry(section_id="header"))
        assert cache.clear_project("p") == 2
        assert cache.lookup(other) is not None
