"""
In-memory key/value store with per-entry expiry.

Expired entries are evicted lazily on read. Capacity is unbounded; the
result sets kept here are small and bounded by the fetch size limit.
"""
import threading
import time
import logging
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional

from .core import CacheEntry, CacheKind
from .ttl_policies import normalize_ttl

logger = logging.getLogger("cache.store")


class TTLCache:
    """
    Thread-safe TTL cache.

    A get at time T returns a value stored with expires_at > T, or None.
    Writes replace the whole entry under the lock, so readers never see a
    torn value.

    Usage:
        avatars = TTLCache(CacheKind.CHANNEL_AVATAR, ttl_seconds=86400)
        avatars.set("@channel", "https://...")
        avatars.get("@channel")
    """

    def __init__(
        self,
        kind: CacheKind,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            kind: Which cache this is (used for logs and stats)
            ttl_seconds: Lifetime of each entry; None or 0 = never expires
            clock: Monotonic time source, injectable for tests
        """
        self.kind = kind
        self.ttl_seconds = normalize_ttl(ttl_seconds)
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._lock = threading.Lock()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "expired": 0,
            "flushes": 0,
        }

    def _make_entry(self, value: Any, now: float) -> CacheEntry:
        expires_at = now + self.ttl_seconds if self.ttl_seconds is not None else None
        return CacheEntry(value=value, stored_at=now, expires_at=expires_at)

    def set(self, key: Hashable, value: Any) -> None:
        """Store a value, replacing any previous entry for the key."""
        with self._lock:
            self._entries[key] = self._make_entry(value, self._clock())

    def get(self, key: Hashable, default: Any = None) -> Any:
        """
        Get a fresh value.

        Returns:
            The stored value, or default if absent or expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return default
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats["expired"] += 1
                self._stats["misses"] += 1
                logger.debug(f"Expired {self.kind.value}: {key}")
                return default
            self._stats["hits"] += 1
            return entry.value

    def has(self, key: Hashable) -> bool:
        """Check for a fresh entry without counting a hit or miss."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats["expired"] += 1
                return False
            return True

    def delete(self, key: Hashable) -> bool:
        """
        Remove an entry.

        Returns:
            True if an entry was found and removed
        """
        with self._lock:
            return self._entries.pop(key, None) is not None

    def flush_all(self) -> int:
        """
        Clear all entries.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._stats["flushes"] += 1
        logger.debug(f"Flushed {count} {self.kind.value} entries")
        return count

    def replace_all(self, values: Mapping[Hashable, Any]) -> None:
        """
        Flush and repopulate in one step.

        Readers observe either the previous contents or the new contents,
        never a mix of both.
        """
        now = self._clock()
        entries = {key: self._make_entry(value, now) for key, value in values.items()}
        with self._lock:
            self._entries = entries
            self._stats["flushes"] += 1

    def keys(self) -> List[Hashable]:
        """Keys of all entries that are still fresh."""
        with self._lock:
            now = self._clock()
            return [k for k, e in self._entries.items() if not e.is_expired(now)]

    def __len__(self) -> int:
        return len(self.keys())

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total = self._stats["hits"] + self._stats["misses"]
            hit_rate = (self._stats["hits"] / total * 100) if total > 0 else 0
            return {
                "kind": self.kind.value,
                "entries": len(self._entries),
                "ttl_seconds": self.ttl_seconds,
                "hits": self._stats["hits"],
                "misses": self._stats["misses"],
                "expired": self._stats["expired"],
                "flushes": self._stats["flushes"],
                "hit_rate_percent": round(hit_rate, 1),
            }
