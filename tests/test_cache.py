"""Tests for the in-memory cache."""

from food_search.services.cache import InMemoryCache


def test_cache_returns_stored_values() -> None:
    cache = InMemoryCache()
    cache.set("usda:search:pear:8:1", ["pear"], ttl_seconds=60)

    assert cache.get("usda:search:pear:8:1") == ["pear"]
    assert cache.get("missing") is None


def test_expired_entries_are_dropped() -> None:
    cache = InMemoryCache()
    cache.set("key", "value", ttl_seconds=0)

    assert cache.get("key") is None
    assert len(cache) == 0


def test_least_recently_used_entry_is_evicted() -> None:
    cache = InMemoryCache(max_entries=2)
    cache.set("a", 1, ttl_seconds=60)
    cache.set("b", 2, ttl_seconds=60)
    cache.get("a")
    cache.set("c", 3, ttl_seconds=60)

    assert cache.get("a") == 1
    assert cache.get("b") is None
    assert cache.get("c") == 3
