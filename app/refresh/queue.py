"""
Deduplicated pending work for channel enrichment.

One pending set per enrichment kind. A channel is pending at most once per
kind, and only while its auxiliary cache has no fresh value.
"""
import threading
import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional

from app.cache import CacheKind, CacheManager, TTLCache
from app.models import Item, channel_keys

logger = logging.getLogger("refresh.queue")


class EnrichmentKind(Enum):
    """Kinds of per-channel data fetched out of band."""
    AVATAR = "avatar"
    SUBSCRIBERS = "subscribers"

    @property
    def cache_kind(self) -> CacheKind:
        if self is EnrichmentKind.AVATAR:
            return CacheKind.CHANNEL_AVATAR
        return CacheKind.SUBSCRIBER_COUNT


class EnrichmentQueue:
    """
    Insertion-ordered pending sets, popped FIFO.

    Order is not a contract; it only makes draining deterministic.
    """

    def __init__(self, caches: CacheManager):
        self._caches = caches
        self._pending: Dict[EnrichmentKind, Dict[str, None]] = {
            kind: {} for kind in EnrichmentKind
        }
        self._lock = threading.Lock()

    def cache_for(self, kind: EnrichmentKind) -> TTLCache:
        """The auxiliary cache the given kind writes into."""
        return self._caches.cache_for(kind.cache_kind)

    def seed(self, kind: EnrichmentKind, key: str) -> bool:
        """
        Queue a channel unless it already has a fresh value or is pending.

        Returns:
            True if the key was added
        """
        if not key or self.cache_for(kind).has(key):
            return False
        with self._lock:
            pending = self._pending[kind]
            if key in pending:
                return False
            pending[key] = None
        logger.debug(f"Queued {kind.value} for {key}")
        return True

    def seed_items(self, items: Iterable[Item]) -> Dict[str, int]:
        """
        Seed both kinds for every distinct channel in the items.

        Returns:
            Number of keys added per kind
        """
        keys = channel_keys(list(items))
        added = {kind.value: 0 for kind in EnrichmentKind}
        for key in keys:
            for kind in EnrichmentKind:
                if self.seed(kind, key):
                    added[kind.value] += 1
        if any(added.values()):
            logger.info(f"Seeded enrichment queues: {added}")
        return added

    def pop(self, kind: EnrichmentKind) -> Optional[str]:
        """Remove and return the oldest pending key, None if empty."""
        with self._lock:
            pending = self._pending[kind]
            if not pending:
                return None
            key = next(iter(pending))
            del pending[key]
            return key

    def discard(self, kind: EnrichmentKind, key: str) -> bool:
        with self._lock:
            pending = self._pending[kind]
            if key not in pending:
                return False
            del pending[key]
            return True

    def pending(self, kind: EnrichmentKind) -> List[str]:
        with self._lock:
            return list(self._pending[kind])

    def size(self, kind: EnrichmentKind) -> int:
        with self._lock:
            return len(self._pending[kind])

    def has_pending(self, kind: Optional[EnrichmentKind] = None) -> bool:
        """Whether the given kind (or any kind) has work."""
        kinds = [kind] if kind is not None else list(EnrichmentKind)
        with self._lock:
            return any(self._pending[k] for k in kinds)

    def clear(self) -> None:
        with self._lock:
            for pending in self._pending.values():
                pending.clear()

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {kind.value: len(pending) for kind, pending in self._pending.items()}
