"""
Unit tests for the cache module: TTL store, snapshot manager, coalescer.
"""
import threading
import time

import pytest

from app.cache import (
    CacheEntry,
    CacheKind,
    CacheManager,
    RequestCoalescer,
    TTLCache,
    get_ttl_for_kind,
    LIVE_ITEMS_KEY,
)
from tests.fakes import FakeClock, make_item


# =============================================================================
# TTL Store Tests
# =============================================================================

class TestTTLCache:
    """Tests for per-entry expiry."""

    def test_get_before_expiry_returns_value(self):
        clock = FakeClock()
        cache = TTLCache(CacheKind.CHANNEL_AVATAR, ttl_seconds=60, clock=clock)
        cache.set("@alpha", "https://img/a.jpg")

        clock.advance(59.9)
        assert cache.get("@alpha") == "https://img/a.jpg"
        assert cache.has("@alpha")

    def test_get_at_expiry_returns_none_and_evicts(self):
        clock = FakeClock()
        cache = TTLCache(CacheKind.CHANNEL_AVATAR, ttl_seconds=60, clock=clock)
        cache.set("@alpha", "https://img/a.jpg")

        clock.advance(60)
        assert cache.get("@alpha") is None
        assert cache.keys() == []
        assert cache.get_stats()["expired"] == 1

    def test_zero_ttl_never_expires(self):
        clock = FakeClock()
        cache = TTLCache(CacheKind.LIVE_ITEMS, ttl_seconds=0, clock=clock)
        cache.set("k", [1, 2])

        clock.advance(10 ** 9)
        assert cache.get("k") == [1, 2]
        assert cache.ttl_seconds is None

    def test_set_replaces_and_restarts_ttl(self):
        clock = FakeClock()
        cache = TTLCache(CacheKind.SUBSCRIBER_COUNT, ttl_seconds=10, clock=clock)
        cache.set("@a", 1)
        clock.advance(8)
        cache.set("@a", 2)
        clock.advance(8)
        assert cache.get("@a") == 2

    def test_get_default_on_miss(self):
        cache = TTLCache(CacheKind.CHANNEL_AVATAR, ttl_seconds=10)
        assert cache.get("missing") is None
        assert cache.get("missing", "") == ""
        assert not cache.has("missing")

    def test_delete_and_flush_all(self):
        cache = TTLCache(CacheKind.CHANNEL_AVATAR, ttl_seconds=10)
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.delete("a") is True
        assert cache.delete("a") is False
        assert cache.flush_all() == 1
        assert len(cache) == 0

    def test_replace_all_drops_old_keys(self):
        cache = TTLCache(CacheKind.LIVE_ITEMS)
        cache.set("old", 1)
        cache.replace_all({"new": 2})

        assert cache.get("old") is None
        assert cache.get("new") == 2

    def test_stats_count_hits_and_misses(self):
        cache = TTLCache(CacheKind.CHANNEL_AVATAR, ttl_seconds=10)
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")

        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate_percent"] == 50.0

    def test_cache_entry_expiry(self):
        entry = CacheEntry(value="x", stored_at=100.0, expires_at=110.0)
        assert not entry.is_expired(109.9)
        assert entry.is_expired(110.0)
        assert entry.ttl_remaining(105.0) == 5.0
        assert CacheEntry(value="x", stored_at=0.0).ttl_remaining(1e9) is None


class TestTTLPolicies:
    """Tests for TTL lookup."""

    def test_defaults(self):
        assert get_ttl_for_kind(CacheKind.LIVE_ITEMS) is None
        assert get_ttl_for_kind(CacheKind.CHANNEL_AVATAR) == 24 * 60 * 60
        assert get_ttl_for_kind(CacheKind.SUBSCRIBER_COUNT) == 30 * 60

    def test_settings_override(self, settings):
        settings.avatar_ttl_seconds = 5
        settings.live_items_ttl_seconds = 0
        assert get_ttl_for_kind(CacheKind.CHANNEL_AVATAR, settings) == 5
        assert get_ttl_for_kind(CacheKind.LIVE_ITEMS, settings) is None


# =============================================================================
# Manager Tests
# =============================================================================

class TestCacheManager:
    """Tests for the snapshot helpers."""

    def test_no_snapshot_before_first_replace(self):
        assert CacheManager().get_live_items() is None

    def test_replace_live_items_writes_backup(self):
        caches = CacheManager()
        items = [make_item("v1", "@a")]
        caches.replace_live_items(items)

        assert caches.get_live_items() == items
        assert caches.stale_items.get(LIVE_ITEMS_KEY) == items

    def test_snapshot_is_a_copy(self):
        caches = CacheManager()
        items = [make_item("v1", "@a")]
        caches.replace_live_items(items)
        items.append(make_item("v2", "@b"))

        assert len(caches.get_live_items()) == 1

    def test_clear_and_stats(self):
        caches = CacheManager()
        caches.replace_live_items([make_item("v1", "@a")])
        caches.avatars.set("@a", "url")

        stats = caches.get_stats()
        assert stats["channel_avatar"]["entries"] == 1
        assert caches.clear() == 3


# =============================================================================
# Coalescer Tests
# =============================================================================

class TestRequestCoalescer:
    """Tests for shared calls."""

    def test_concurrent_callers_share_one_call(self):
        coalescer = RequestCoalescer(timeout=5)
        release = threading.Event()
        calls = []

        def slow():
            calls.append(1)
            release.wait(5)
            return "done"

        results = []
        threads = [
            threading.Thread(target=lambda: results.append(coalescer.run("k", slow)))
            for _ in range(4)
        ]
        for t in threads:
            t.start()
        # Let every caller join before the call finishes
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline:
            in_flight = coalescer._in_flight.get("k")
            if in_flight is not None and in_flight.waiter_count == 4:
                break
            time.sleep(0.01)
        release.set()
        for t in threads:
            t.join(5)

        assert results == ["done"] * 4
        assert len(calls) == 1

    def test_error_propagates_to_caller(self):
        coalescer = RequestCoalescer(timeout=5)

        def boom():
            raise ValueError("bad")

        with pytest.raises(ValueError):
            coalescer.run("k", boom)

    def test_timeout_raises(self):
        coalescer = RequestCoalescer()
        release = threading.Event()

        with pytest.raises(TimeoutError):
            coalescer.run("k", lambda: release.wait(5), timeout=0.05)
        release.set()
