"""
Cache orchestration for the live items snapshot and the channel caches.
"""
import time
import logging
from typing import Any, Callable, Dict, List, Optional

from config.settings import Settings
from app.models import Item
from .core import CacheKind
from .store import TTLCache
from .ttl_policies import get_ttl_for_kind

logger = logging.getLogger("cache.manager")

LIVE_ITEMS_KEY = "live_items"


class CacheManager:
    """
    Owns the four caches:
    - live_items: the serving snapshot, one key holding the whole list
    - stale_items: copy of the last successful snapshot, never read by requests
    - avatars: channel id -> avatar URL
    - subscribers: channel id -> subscriber count
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache manager.

        Args:
            settings: TTL overrides; defaults from TTL_CONFIG when omitted
            clock: Time source shared by all caches
        """
        self._caches: Dict[CacheKind, TTLCache] = {
            kind: TTLCache(kind, get_ttl_for_kind(kind, settings), clock=clock)
            for kind in CacheKind
        }

    @property
    def live_items(self) -> TTLCache:
        return self._caches[CacheKind.LIVE_ITEMS]

    @property
    def stale_items(self) -> TTLCache:
        return self._caches[CacheKind.STALE_ITEMS]

    @property
    def avatars(self) -> TTLCache:
        return self._caches[CacheKind.CHANNEL_AVATAR]

    @property
    def subscribers(self) -> TTLCache:
        return self._caches[CacheKind.SUBSCRIBER_COUNT]

    def cache_for(self, kind: CacheKind) -> TTLCache:
        return self._caches[kind]

    def get_live_items(self) -> Optional[List[Item]]:
        """
        Get the serving snapshot.

        Returns:
            The complete item list from one refresh, or None before the first
        """
        return self.live_items.get(LIVE_ITEMS_KEY)

    def replace_live_items(self, items: List[Item]) -> None:
        """Swap in a new snapshot, keeping a backup copy in the stale cache."""
        snapshot = list(items)
        self.stale_items.replace_all({LIVE_ITEMS_KEY: snapshot})
        self.live_items.replace_all({LIVE_ITEMS_KEY: snapshot})
        logger.info(f"Live items snapshot replaced ({len(snapshot)} items)")

    def clear(self) -> int:
        """
        Clear all caches.

        Returns:
            Number of entries cleared
        """
        count = sum(cache.flush_all() for cache in self._caches.values())
        logger.info(f"Cleared {count} cache entries")
        return count

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics for every cache."""
        return {kind.value: cache.get_stats() for kind, cache in self._caches.items()}
