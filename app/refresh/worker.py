"""
Enrichment worker: drains one pending set through the channel enricher.
"""
import time
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from app.errors import ExtractionError, NavigationError, ResourceAcquisitionError
from app.fetcher import ChannelEnricher, Fetcher, session_scope
from .guard import RefreshState
from .queue import EnrichmentKind, EnrichmentQueue

logger = logging.getLogger("refresh.worker")


@dataclass
class DrainResult:
    """Outcome of one drain call."""
    kind: EnrichmentKind
    ran: bool = True
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    aborted: bool = False

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "ran": self.ran,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "aborted": self.aborted,
        }


class EnrichmentWorker:
    """
    Drains pending channels one at a time inside a single session.

    The shared `draining` guard is held for the whole session, so only one
    drain (or refresh) talks to the target at any moment. A failure for one
    channel is logged and skipped; failing to get a session at all aborts
    the drain and leaves the remaining channels pending.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        queue: EnrichmentQueue,
        state: RefreshState,
        item_delay_seconds: float = 1.0,
        acquire_attempts: int = 1,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._fetcher = fetcher
        self._queue = queue
        self._state = state
        self._item_delay = item_delay_seconds
        self._acquire_attempts = acquire_attempts
        self._sleep = sleep

    def drain(self, kind: EnrichmentKind) -> DrainResult:
        """
        Process every pending key of one kind.

        Returns:
            DrainResult; ran=False if another session was active
        """
        if not self._state.draining.try_enter():
            logger.debug(f"Skipping {kind.value} drain, session busy")
            return DrainResult(kind=kind, ran=False)

        result = DrainResult(kind=kind)
        try:
            if not self._queue.has_pending(kind):
                return result

            logger.info(f"Draining {self._queue.size(kind)} pending {kind.value} keys")
            with session_scope(self._fetcher, self._acquire_attempts) as session:
                while True:
                    key = self._queue.pop(kind)
                    if key is None:
                        break
                    result.processed += 1
                    if self._enrich_one(session, kind, key):
                        result.succeeded += 1
                    else:
                        result.failed += 1
                    if self._queue.has_pending(kind):
                        self._sleep(self._item_delay)
        except ResourceAcquisitionError as e:
            result.aborted = True
            logger.error(
                f"Session error ({type(e).__name__}) during {kind.value} drain, "
                f"{self._queue.size(kind)} keys left pending: {e}"
            )
        finally:
            self._state.draining.release()

        logger.info(
            f"{kind.value} drain done: {result.succeeded} stored, {result.failed} failed"
        )
        return result

    def _lookup(self, session: ChannelEnricher, kind: EnrichmentKind, key: str) -> Any:
        if kind is EnrichmentKind.AVATAR:
            return session.fetch_avatar(key)
        return session.fetch_subscriber_count(key)

    def _enrich_one(self, session: ChannelEnricher, kind: EnrichmentKind, key: str) -> bool:
        """
        Fetch and store one value.

        Returns:
            True if a value was written to the cache

        Raises:
            ResourceAcquisitionError: The session itself is gone
        """
        try:
            value: Optional[Any] = self._lookup(session, kind, key)
        except (NavigationError, ExtractionError) as e:
            logger.error(f"{type(e).__name__} for {key} ({kind.value}): {e}")
            return False
        except ResourceAcquisitionError:
            raise
        except Exception as e:
            logger.error(
                f"Unexpected error ({type(e).__name__}) for {key} ({kind.value}): {e}",
                exc_info=True,
            )
            return False

        if not value:
            logger.debug(f"No {kind.value} found for {key}")
            return False

        self._queue.cache_for(kind).set(key, value)
        logger.debug(f"Updated {kind.value} for {key}: {value}")
        return True
