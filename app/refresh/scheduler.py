"""
Refresh job for the live items snapshot.
"""
import threading
import time
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from app.cache import CacheManager
from app.errors import ExtractionError, NavigationError, ResourceAcquisitionError
from app.fetcher import Fetcher, session_scope
from app.models import unique_items
from .guard import RefreshState
from .queue import EnrichmentQueue

logger = logging.getLogger("refresh.scheduler")


@dataclass
class RefreshResult:
    """Outcome of one refresh call."""
    ran: bool
    succeeded: bool = False
    item_count: int = 0
    seeded: Dict[str, int] = field(default_factory=dict)
    error: Optional[str] = None


class RefreshScheduler:
    """
    Rebuilds the serving snapshot.

    A cycle holds `refreshing` and the shared `draining` guard for the whole
    session. If either is taken the call is a no-op: ticks are never queued.
    A failed fetch leaves the previous snapshot in place.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        caches: CacheManager,
        queue: EnrichmentQueue,
        state: RefreshState,
        query: str,
        max_results: int,
        acquire_attempts: int = 1,
        clock: Callable[[], float] = time.time,
    ):
        self._fetcher = fetcher
        self._caches = caches
        self._queue = queue
        self._state = state
        self._query = query
        self._max_results = max_results
        self._acquire_attempts = acquire_attempts
        self._clock = clock
        self._completed = threading.Event()
        self._stats_lock = threading.Lock()

        self.last_refreshed_at: Optional[float] = None
        self.last_error: Optional[str] = None
        self.refresh_count = 0
        self.failure_count = 0
        self.skipped_count = 0

    @property
    def has_completed(self) -> bool:
        """True once any refresh has stored a snapshot."""
        return self._completed.is_set()

    def wait_until_completed(self, timeout: Optional[float] = None) -> bool:
        return self._completed.wait(timeout)

    def refresh(self) -> RefreshResult:
        """
        Run one refresh cycle if no other cycle or drain is active.

        Returns:
            RefreshResult; ran=False if the cycle was skipped
        """
        if not self._state.refreshing.try_enter():
            logger.debug("Refresh already running, skipping tick")
            self._count_skipped()
            return RefreshResult(ran=False)
        try:
            if not self._state.draining.try_enter():
                logger.info("Session busy with enrichment, skipping refresh tick")
                self._count_skipped()
                return RefreshResult(ran=False)
            try:
                return self._run_cycle()
            finally:
                self._state.draining.release()
        finally:
            self._state.refreshing.release()

    def _count_skipped(self) -> None:
        with self._stats_lock:
            self.skipped_count += 1

    def _run_cycle(self) -> RefreshResult:
        started = time.monotonic()
        try:
            with session_scope(self._fetcher, self._acquire_attempts) as session:
                fetched = session.fetch_live_items(self._query, self._max_results)
        except (ResourceAcquisitionError, NavigationError, ExtractionError) as e:
            error = f"{type(e).__name__}: {e}"
            with self._stats_lock:
                self.failure_count += 1
                self.last_error = error
            logger.error(f"Refresh failed ({type(e).__name__}), keeping previous snapshot: {e}")
            return RefreshResult(ran=True, error=error)

        items = unique_items(fetched)[: self._max_results]
        self._caches.replace_live_items(items)

        with self._stats_lock:
            self.refresh_count += 1
            self.last_refreshed_at = self._clock()
            self.last_error = None
        self._completed.set()

        seeded = self._queue.seed_items(items)
        logger.info(
            f"Refresh stored {len(items)} items in {time.monotonic() - started:.1f}s"
        )
        return RefreshResult(ran=True, succeeded=True, item_count=len(items), seeded=seeded)

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            last = None
            if self.last_refreshed_at is not None:
                last = datetime.fromtimestamp(self.last_refreshed_at, tz=timezone.utc).isoformat()
            return {
                "query": self._query,
                "has_completed": self.has_completed,
                "last_refreshed_at": last,
                "last_error": self.last_error,
                "refresh_count": self.refresh_count,
                "failure_count": self.failure_count,
                "skipped_count": self.skipped_count,
            }
