"""
Periodic background jobs.

Two timers run on daemon threads: the refresh timer (every 5 minutes,
first run at startup) and the drain check (every 10 seconds). They contend
for the same guards, so only one of them uses the session at a time.
"""
import threading
import logging
from typing import Callable, List, Optional

from .guard import RefreshState
from .queue import EnrichmentKind, EnrichmentQueue
from .scheduler import RefreshScheduler
from .worker import DrainResult, EnrichmentWorker

logger = logging.getLogger("refresh.jobs")


class PeriodicTask:
    """
    Runs a callable every `interval` seconds on a daemon thread.

    A tick that raises is logged; the loop keeps going.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        fn: Callable[[], object],
        run_immediately: bool = False,
    ):
        self.name = name
        self.interval = interval
        self._fn = fn
        self._run_immediately = run_immediately
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.tick_count = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            if self._stop.is_set():
                logger.warning(f"{self.name} is still finishing its last tick, not restarting")
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.info(f"Started {self.name} (every {self.interval}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is None:
            return
        self._thread.join(timeout)
        if self._thread.is_alive():
            # Keep the handle while the old loop is alive
            logger.warning(f"{self.name} still finishing its current tick")
            return
        self._thread = None

    def _loop(self) -> None:
        if self._run_immediately:
            self._tick()
        while not self._stop.wait(self.interval):
            self._tick()

    def _tick(self) -> None:
        self.tick_count += 1
        try:
            self._fn()
        except Exception as e:
            logger.error(f"{self.name} tick failed ({type(e).__name__}): {e}", exc_info=True)


class BackgroundJobs:
    """Owns the refresh timer and the drain-check timer."""

    def __init__(
        self,
        scheduler: RefreshScheduler,
        worker: EnrichmentWorker,
        queue: EnrichmentQueue,
        state: RefreshState,
        refresh_interval: float,
        drain_check_interval: float,
    ):
        self._worker = worker
        self._queue = queue
        self._state = state
        self.refresh_task = PeriodicTask(
            "live-items-refresh", refresh_interval, scheduler.refresh, run_immediately=True
        )
        self.drain_task = PeriodicTask(
            "enrichment-drain", drain_check_interval, self.check_queues
        )

    def check_queues(self) -> List[DrainResult]:
        """
        Drain pending avatar then subscriber work, one drain at a time.

        Skips entirely while the session is in use.
        """
        if self._state.draining.held:
            return []
        results = []
        for kind in EnrichmentKind:
            if self._queue.has_pending(kind):
                result = self._worker.drain(kind)
                results.append(result)
                if not result.ran or result.aborted:
                    break
        return results

    def start(self) -> None:
        self.refresh_task.start()
        self.drain_task.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self.refresh_task.stop(timeout)
        self.drain_task.stop(timeout)

    @property
    def is_running(self) -> bool:
        return self.refresh_task.is_running or self.drain_task.is_running
