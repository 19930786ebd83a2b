"""
Wiring for the caches, queues, guards and jobs.

Everything is built once per process and handed to the components that
need it; tests build their own runtime with fake fetchers and clocks.
"""
import time
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from config.settings import Settings
from app.cache import CacheManager, RequestCoalescer
from app.fetcher import Fetcher, YouTubeFetcher
from app.refresh import (
    BackgroundJobs,
    EnrichmentQueue,
    EnrichmentWorker,
    RefreshScheduler,
    RefreshState,
)
from app.view_models import LiveItemsView

logger = logging.getLogger("runtime")


@dataclass
class LiveItemsRuntime:
    """Handles to every long-lived component."""
    settings: Settings
    caches: CacheManager
    queue: EnrichmentQueue
    state: RefreshState
    scheduler: RefreshScheduler
    worker: EnrichmentWorker
    jobs: BackgroundJobs
    view: LiveItemsView

    def start(self) -> None:
        if self.settings.background_jobs_enabled:
            self.jobs.start()
        else:
            logger.info("Background jobs disabled")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self.jobs.stop(timeout)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "caches": self.caches.get_stats(),
            "pending": self.queue.get_stats(),
            "guards": self.state.snapshot(),
            "refresh": self.scheduler.get_stats(),
        }


def build_runtime(
    settings: Settings,
    fetcher: Optional[Fetcher] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> LiveItemsRuntime:
    """
    Build a runtime from settings.

    Args:
        settings: Configuration
        fetcher: Session factory; YouTubeFetcher when omitted
        clock: Monotonic time source for cache expiry
        sleep: Delay function used between drained items
    """
    fetcher = fetcher or YouTubeFetcher(settings)
    caches = CacheManager(settings, clock=clock)
    queue = EnrichmentQueue(caches)
    state = RefreshState()

    scheduler = RefreshScheduler(
        fetcher,
        caches,
        queue,
        state,
        query=settings.search_query,
        max_results=settings.max_results,
        acquire_attempts=settings.session_acquire_attempts,
    )
    worker = EnrichmentWorker(
        fetcher,
        queue,
        state,
        item_delay_seconds=settings.drain_item_delay_seconds,
        acquire_attempts=settings.session_acquire_attempts,
        sleep=sleep,
    )
    jobs = BackgroundJobs(
        scheduler,
        worker,
        queue,
        state,
        refresh_interval=settings.refresh_interval_seconds,
        drain_check_interval=settings.drain_check_interval_seconds,
    )
    view = LiveItemsView(
        caches,
        scheduler,
        coalescer=RequestCoalescer(timeout=settings.cold_start_timeout_seconds),
        inline_fetch=settings.cold_start_inline_fetch,
        cold_start_timeout=settings.cold_start_timeout_seconds,
    )
    return LiveItemsRuntime(
        settings=settings,
        caches=caches,
        queue=queue,
        state=state,
        scheduler=scheduler,
        worker=worker,
        jobs=jobs,
        view=view,
    )


# Global runtime instance
_runtime: Optional[LiveItemsRuntime] = None


def get_runtime() -> LiveItemsRuntime:
    """Get or create the process-wide runtime from environment settings."""
    global _runtime
    if _runtime is None:
        from config.settings import settings
        _runtime = build_runtime(settings)
    return _runtime
