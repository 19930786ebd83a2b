"""
Unit tests for the refresh cycle and the periodic jobs.
"""
import threading
import time

import pytest

from app.errors import ExtractionError, NavigationError
from app.refresh import EnrichmentKind, PeriodicTask
from tests.fakes import make_item


# =============================================================================
# Refresh Cycle Tests
# =============================================================================

class TestRefreshScheduler:
    """Tests for RefreshScheduler.refresh."""

    def test_refresh_stores_snapshot_and_seeds(self, runtime, fetcher):
        result = runtime.scheduler.refresh()

        assert result.ran and result.succeeded
        assert result.item_count == 3
        assert [i.id for i in runtime.caches.get_live_items()] == ["v1", "v2", "v3"]
        assert runtime.queue.pending(EnrichmentKind.AVATAR) == ["@alpha", "@bravo"]
        assert runtime.queue.pending(EnrichmentKind.SUBSCRIBERS) == ["@alpha", "@bravo"]
        assert runtime.scheduler.has_completed
        assert runtime.state.snapshot() == {"refreshing": False, "draining": False}

    def test_refresh_does_not_seed_cached_channels(self, runtime):
        runtime.caches.avatars.set("@alpha", "https://img/a.jpg")
        runtime.caches.subscribers.set("@bravo", 5)

        runtime.scheduler.refresh()

        assert runtime.queue.pending(EnrichmentKind.AVATAR) == ["@bravo"]
        assert runtime.queue.pending(EnrichmentKind.SUBSCRIBERS) == ["@alpha"]

    def test_repeated_refresh_does_not_duplicate_pending(self, runtime):
        runtime.scheduler.refresh()
        runtime.scheduler.refresh()

        assert runtime.queue.size(EnrichmentKind.AVATAR) == 2

    def test_duplicate_ids_are_dropped(self, runtime, fetcher):
        fetcher.items = [make_item("v1", "@a"), make_item("v1", "@a"), make_item("v2", "@b")]

        result = runtime.scheduler.refresh()

        assert result.item_count == 2

    def test_snapshot_capped_at_max_results(self, runtime, fetcher):
        runtime.scheduler._max_results = 2

        runtime.scheduler.refresh()

        assert len(runtime.caches.get_live_items()) == 2

    def test_empty_fetch_is_cached(self, runtime, fetcher):
        runtime.scheduler.refresh()
        fetcher.items = []

        result = runtime.scheduler.refresh()

        assert result.succeeded
        assert runtime.caches.get_live_items() == []

    def test_skipped_while_refresh_guard_held(self, runtime, fetcher):
        runtime.caches.replace_live_items([make_item("old", "@old")])
        runtime.state.refreshing.try_enter()

        result = runtime.scheduler.refresh()

        assert not result.ran
        assert fetcher.fetch_calls == 0
        assert fetcher.open_calls == 0
        assert [i.id for i in runtime.caches.get_live_items()] == ["old"]
        # The holder's flag is untouched
        assert runtime.state.refreshing.held

    def test_skipped_while_drain_holds_session(self, runtime, fetcher):
        runtime.state.draining.try_enter()

        result = runtime.scheduler.refresh()

        assert not result.ran
        assert fetcher.open_calls == 0
        assert not runtime.state.refreshing.held
        assert runtime.state.draining.held

    def test_navigation_error_keeps_previous_snapshot(self, runtime, fetcher):
        runtime.scheduler.refresh()
        fetcher.items = NavigationError("search page timed out")

        result = runtime.scheduler.refresh()

        assert result.ran and not result.succeeded
        assert "NavigationError" in result.error
        assert len(runtime.caches.get_live_items()) == 3
        assert runtime.state.snapshot() == {"refreshing": False, "draining": False}

        # Next tick is unaffected by the failure
        fetcher.items = [make_item("v9", "@new")]
        assert runtime.scheduler.refresh().succeeded
        assert [i.id for i in runtime.caches.get_live_items()] == ["v9"]
        assert runtime.scheduler.last_error is None

    def test_extraction_error_before_first_snapshot(self, runtime, fetcher):
        fetcher.items = ExtractionError("no results grid")

        runtime.scheduler.refresh()

        assert runtime.caches.get_live_items() is None
        assert not runtime.scheduler.has_completed
        assert runtime.scheduler.failure_count == 1

    def test_acquisition_failure_releases_guards(self, runtime, fetcher, unreachable):
        fetcher.open_error = unreachable

        result = runtime.scheduler.refresh()

        assert result.ran and not result.succeeded
        assert fetcher.fetch_calls == 0
        assert runtime.state.snapshot() == {"refreshing": False, "draining": False}

    def test_unexpected_error_still_releases_guards(self, runtime, fetcher):
        fetcher.items = RuntimeError("driver bug")

        with pytest.raises(RuntimeError):
            runtime.scheduler.refresh()

        assert runtime.state.snapshot() == {"refreshing": False, "draining": False}
        assert fetcher.closed_sessions == 1

    def test_readers_never_see_mixed_snapshots(self, runtime, fetcher):
        old = [make_item(f"old{i}", "@old") for i in range(20)]
        new = [make_item(f"new{i}", "@new") for i in range(20)]
        runtime.caches.replace_live_items(old)
        fetcher.items = new

        seen = []
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                snapshot = runtime.caches.get_live_items() or []
                seen.append({item.id[:3] for item in snapshot})

        t = threading.Thread(target=reader)
        t.start()
        for _ in range(50):
            fetcher.items = new if fetcher.items is old else old
            runtime.scheduler.refresh()
        stop.set()
        t.join(5)

        assert seen
        assert all(prefixes in ({"old"}, {"new"}) for prefixes in seen)

    def test_concurrent_skips_are_all_counted(self, runtime):
        runtime.state.refreshing.try_enter()
        start = threading.Barrier(8)

        def contend():
            start.wait()
            for _ in range(200):
                runtime.scheduler.refresh()

        threads = [threading.Thread(target=contend) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)

        assert runtime.scheduler.skipped_count == 1600
        assert runtime.scheduler.get_stats()["skipped_count"] == 1600

    def test_stats(self, runtime):
        runtime.scheduler.refresh()
        stats = runtime.scheduler.get_stats()

        assert stats["refresh_count"] == 1
        assert stats["has_completed"] is True
        assert stats["last_refreshed_at"] is not None


# =============================================================================
# Background Job Tests
# =============================================================================

class TestBackgroundJobs:
    """Tests for the drain check and the periodic runner."""

    def test_check_queues_drains_both_kinds(self, runtime):
        runtime.scheduler.refresh()

        results = runtime.jobs.check_queues()

        assert [r.kind for r in results] == [EnrichmentKind.AVATAR, EnrichmentKind.SUBSCRIBERS]
        assert runtime.caches.avatars.get("@bravo") == "https://img/bravo.jpg"
        assert runtime.caches.subscribers.get("@alpha") == 12000
        assert not runtime.queue.has_pending()

    def test_check_queues_skips_while_session_busy(self, runtime, fetcher):
        runtime.scheduler.refresh()
        opened = fetcher.open_calls
        runtime.state.draining.try_enter()

        assert runtime.jobs.check_queues() == []
        assert fetcher.open_calls == opened

    def test_check_queues_stops_after_abort(self, runtime, fetcher, unreachable):
        runtime.scheduler.refresh()
        fetcher.open_error = unreachable

        results = runtime.jobs.check_queues()

        assert len(results) == 1 and results[0].aborted
        assert runtime.queue.size(EnrichmentKind.SUBSCRIBERS) == 2

    def test_periodic_task_runs_immediately_and_repeats(self):
        calls = []
        task = PeriodicTask("test-task", 0.01, lambda: calls.append(1), run_immediately=True)
        task.start()
        deadline = time.monotonic() + 5
        while len(calls) < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        task.stop(timeout=1)

        assert len(calls) >= 3
        assert not task.is_running

    def test_periodic_task_survives_failing_tick(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first tick fails")

        task = PeriodicTask("flaky-task", 0.01, flaky, run_immediately=True)
        task.start()
        deadline = time.monotonic() + 5
        while len(calls) < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
        task.stop(timeout=1)

        assert len(calls) >= 2

    def test_runtime_start_stop_runs_first_refresh(self, runtime):
        runtime.settings.background_jobs_enabled = True
        runtime.start()
        try:
            assert runtime.scheduler.wait_until_completed(timeout=5)
        finally:
            runtime.stop(timeout=5)

        assert not runtime.jobs.is_running
        assert len(runtime.caches.get_live_items()) == 3

    def test_stop_timeout_does_not_allow_second_loop(self):
        entered = threading.Event()
        release = threading.Event()
        active = []
        overlaps = []
        lock = threading.Lock()

        def slow_tick():
            with lock:
                active.append(1)
                if len(active) > 1:
                    overlaps.append(len(active))
            entered.set()
            release.wait(5)
            with lock:
                active.pop()

        task = PeriodicTask("slow-task", 0.01, slow_tick, run_immediately=True)
        task.start()
        assert entered.wait(5)

        task.stop(timeout=0.05)
        assert task.is_running

        task.start()
        release.set()
        task.stop(timeout=5)

        assert overlaps == []
        assert task.tick_count == 1
        assert not task.is_running
