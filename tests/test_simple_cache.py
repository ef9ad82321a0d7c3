"""Unit tests for the in-memory SimpleTTLCache."""

import threading

import pytest

from app.utils.simple_cache import SimpleTTLCache, build_cache_key
from tests.conftest import FakeClock


def test_build_cache_key_applies_optional_prefix() -> None:
    assert build_cache_key("1234567890") == "1234567890"
    assert build_cache_key("1234567890", prefix="number:") == "number:1234567890"


def test_set_and_get_updates_hit_miss_counters() -> None:
    cache = SimpleTTLCache(ttl_seconds=10)

    assert cache.get("missing") is None

    cache.set("key", {"name": "Jane"})
    assert cache.get("key") == {"name": "Jane"}

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1


def test_get_before_ttl_hits_and_at_ttl_misses() -> None:
    cache = SimpleTTLCache(ttl_seconds=300)
    cache.put("k", {"v": 1}, now=1000.0)

    assert cache.get("k", now=1000.0 + 299.999) == {"v": 1}
    assert cache.get("k", now=1000.0 + 300) is None


def test_expired_entry_is_purged_on_get() -> None:
    clock = FakeClock(start=1_000.0)
    cache = SimpleTTLCache(ttl_seconds=5, clock=clock)
    cache.set("key", {"data": True})

    clock.advance(6)

    assert cache.get("key") is None
    assert len(cache) == 0
    assert cache.stats()["evictions"] == 1


def test_overwrite_refreshes_expiry() -> None:
    cache = SimpleTTLCache(ttl_seconds=10)
    cache.set("k", {"v": 1}, now=0.0)
    cache.set("k", {"v": 2}, now=8.0)

    assert cache.get("k", now=15.0) == {"v": 2}


def test_set_evicts_expired_entries_inline() -> None:
    cache = SimpleTTLCache(ttl_seconds=10)
    cache.set("old", {"v": 1}, now=0.0)
    cache.set("new", {"v": 2}, now=20.0)

    assert len(cache) == 1
    assert cache.get("new", now=20.0) == {"v": 2}


def test_inline_eviction_can_be_disabled() -> None:
    cache = SimpleTTLCache(ttl_seconds=10, evict_on_write=False)
    cache.set("old", {"v": 1}, now=0.0)
    cache.set("new", {"v": 2}, now=20.0)

    # Physically present but never served
    assert len(cache) == 2
    assert cache.get("old", now=20.0) is None


def test_evict_expired_removes_entries_at_or_past_expiry() -> None:
    cache = SimpleTTLCache(ttl_seconds=10, evict_on_write=False)
    cache.set("a", {"v": 1}, now=0.0)
    cache.set("b", {"v": 2}, now=5.0)

    assert cache.evict_expired(now=10.0) == 1
    assert cache.get("b", now=10.0) == {"v": 2}
    assert cache.evict_expired(now=15.0) == 1
    assert len(cache) == 0


def test_lru_eviction_removes_least_recently_used() -> None:
    cache = SimpleTTLCache(ttl_seconds=100, max_entries=2)
    cache.set("a", {"v": 1})
    cache.set("b", {"v": 2})

    # Access "a" so that "b" becomes least recently used
    assert cache.get("a") == {"v": 1}

    cache.set("c", {"v": 3})

    assert cache.get("a") == {"v": 1}
    assert cache.get("c") == {"v": 3}
    assert cache.get("b") is None


def test_clear_resets_state() -> None:
    cache = SimpleTTLCache(ttl_seconds=10)
    cache.set("a", {"v": 1})
    cache.get("a")

    cache.clear()

    stats = cache.stats()
    assert stats["entries"] == 0
    assert stats["hits"] == 0
    assert stats["misses"] == 0
    assert stats["evictions"] == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"ttl_seconds": 0},
        {"ttl_seconds": 10, "max_entries": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        SimpleTTLCache(**kwargs)


def test_thread_safety_under_concurrent_sets() -> None:
    cache = SimpleTTLCache(ttl_seconds=30, max_entries=None)
    total_keys = 50

    def _writer(idx: int) -> None:
        cache.set(f"k-{idx}", {"v": idx})

    threads = [threading.Thread(target=_writer, args=(i,)) for i in range(total_keys)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert cache.stats()["entries"] == total_keys
    assert cache.get("k-0") == {"v": 0}
    assert cache.get("k-49") == {"v": 49}
