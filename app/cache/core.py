"""
Core cache data structures.
"""
from dataclasses import dataclass
from typing import Any, Optional
from enum import Enum


class CacheKind(Enum):
    """The cache instances kept by the service."""
    LIVE_ITEMS = "live_items"               # Serving snapshot, replaced every refresh
    STALE_ITEMS = "stale_items"             # Last successful snapshot, backup only
    CHANNEL_AVATAR = "channel_avatar"       # Per-channel avatar URL, 24 hours
    SUBSCRIBER_COUNT = "subscriber_count"   # Per-channel subscriber count, 30 minutes


@dataclass(frozen=True)
class CacheEntry:
    """
    A cached value with its absolute expiry.

    Entries are immutable; a write always replaces the whole entry.
    """
    value: Any
    stored_at: float
    expires_at: Optional[float] = None  # None = never expires

    def is_expired(self, now: float) -> bool:
        """Check if the entry is past its expiry at the given time."""
        return self.expires_at is not None and now >= self.expires_at

    def age_seconds(self, now: float) -> float:
        """Seconds since the value was stored."""
        return now - self.stored_at

    def ttl_remaining(self, now: float) -> Optional[float]:
        """Seconds until expiry, or None for permanent entries."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - now)
