"""
Caching module: TTL stores, the live items snapshot, and request coalescing.
"""
from .core import CacheEntry, CacheKind
from .ttl_policies import TTL_CONFIG, get_ttl_for_kind, normalize_ttl
from .store import TTLCache
from .coalescer import RequestCoalescer
from .manager import CacheManager, LIVE_ITEMS_KEY

__all__ = [
    # Core types
    "CacheEntry",
    "CacheKind",
    # TTL policies
    "TTL_CONFIG",
    "get_ttl_for_kind",
    "normalize_ttl",
    # Store
    "TTLCache",
    # Coalescing
    "RequestCoalescer",
    # Manager
    "CacheManager",
    "LIVE_ITEMS_KEY",
]
