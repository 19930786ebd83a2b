"""
TTL configuration per cache kind.
"""
from typing import Dict, Optional

from config.settings import Settings
from .core import CacheKind


# Default TTLs (in seconds). None = never expires.
TTL_CONFIG: Dict[CacheKind, Optional[int]] = {
    CacheKind.LIVE_ITEMS: None,             # Replaced wholesale by the refresh job
    CacheKind.STALE_ITEMS: None,            # Replaced wholesale by the refresh job
    CacheKind.CHANNEL_AVATAR: 24 * 60 * 60, # Avatars rarely change
    CacheKind.SUBSCRIBER_COUNT: 30 * 60,    # Counts drift, keep them loosely fresh
}


def normalize_ttl(ttl_seconds: Optional[float]) -> Optional[float]:
    """Treat 0 or negative TTLs as permanent."""
    if ttl_seconds is None or ttl_seconds <= 0:
        return None
    return ttl_seconds


def get_ttl_for_kind(
    kind: CacheKind,
    settings: Optional[Settings] = None,
) -> Optional[float]:
    """
    Get the TTL for a cache kind.

    Args:
        kind: The cache kind
        settings: Overrides from configuration, if given

    Returns:
        TTL in seconds, or None if entries never expire
    """
    if settings is None:
        return normalize_ttl(TTL_CONFIG[kind])

    configured = {
        CacheKind.LIVE_ITEMS: settings.live_items_ttl_seconds,
        CacheKind.STALE_ITEMS: settings.stale_items_ttl_seconds,
        CacheKind.CHANNEL_AVATAR: settings.avatar_ttl_seconds,
        CacheKind.SUBSCRIBER_COUNT: settings.subscriber_ttl_seconds,
    }
    return normalize_ttl(configured[kind])
