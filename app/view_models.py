"""
View Models for the live items endpoint.
Joins the cached snapshot with the channel caches at request time.
The read path only does in-memory lookups once a snapshot exists.
"""
import logging
from typing import List, Optional
from dataclasses import dataclass, field

from app.cache import CacheManager, RequestCoalescer
from app.models import EnrichedView, Item
from app.refresh import RefreshScheduler

logger = logging.getLogger("view_models")

COLD_START_KEY = "cold-start"


# =============================================================================
# PAYLOAD CONTRACT
# =============================================================================


@dataclass
class LiveItemsPayload:
    """
    Stable payload for GET /api/live-items.
    UI relies on these exact field names.
    """
    success: bool
    items: List[EnrichedView] = field(default_factory=list)
    message: Optional[str] = None

    def to_dict(self) -> dict:
        result = {
            "success": self.success,
            "items": [view.to_dict() for view in self.items],
        }
        if self.message:
            result["message"] = self.message
        return result

    @classmethod
    def failure(cls) -> "LiveItemsPayload":
        """Generic error body; never carries upstream details."""
        return cls(success=False, items=[], message="Error fetching live items")


# =============================================================================
# READ PATH
# =============================================================================


class LiveItemsView:
    """
    Composes enriched views from the caches.

    Before the first refresh completes the snapshot is empty. By default
    that is what readers get. With inline_fetch enabled, readers instead
    trigger one shared refresh and wait for it up to cold_start_timeout.
    """

    def __init__(
        self,
        caches: CacheManager,
        scheduler: RefreshScheduler,
        coalescer: Optional[RequestCoalescer] = None,
        inline_fetch: bool = False,
        cold_start_timeout: float = 30.0,
    ):
        self._caches = caches
        self._scheduler = scheduler
        self._coalescer = coalescer or RequestCoalescer(timeout=cold_start_timeout)
        self._inline_fetch = inline_fetch
        self._cold_start_timeout = cold_start_timeout

    def get_view(self) -> List[EnrichedView]:
        """Current snapshot joined with avatar and subscriber values."""
        items = self._caches.get_live_items()
        if not items and self._inline_fetch and not self._scheduler.has_completed:
            items = self._cold_start()
        return [self.enrich(item) for item in items or []]

    def enrich(self, item: Item) -> EnrichedView:
        """Join one item; cache misses fall back to "" and 0."""
        return EnrichedView(
            item=item,
            channel_avatar_url=self._caches.avatars.get(item.channel_id) or "",
            subscriber_count=self._caches.subscribers.get(item.channel_id) or 0,
        )

    def _cold_start(self) -> List[Item]:
        logger.info("Cold cache, fetching inline")
        try:
            self._coalescer.run(
                COLD_START_KEY, self._refresh_or_wait, timeout=self._cold_start_timeout
            )
        except TimeoutError:
            logger.warning(
                f"Cold start fetch exceeded {self._cold_start_timeout}s, serving empty"
            )
            return []
        return self._caches.get_live_items() or []

    def _refresh_or_wait(self) -> None:
        result = self._scheduler.refresh()
        if not result.ran:
            # A scheduled cycle holds the session; wait for it instead.
            self._scheduler.wait_until_completed(self._cold_start_timeout)
