"""
Fetcher module: the scrape capabilities used by the refresh and enrichment jobs.
"""
from .base import (
    ChannelEnricher,
    Fetcher,
    FetchSession,
    LiveItemsSource,
    open_session_with_retry,
    session_scope,
)
from .youtube import YouTubeFetcher, YouTubeSession

__all__ = [
    # Interfaces
    "ChannelEnricher",
    "Fetcher",
    "FetchSession",
    "LiveItemsSource",
    "open_session_with_retry",
    "session_scope",
    # Default implementation
    "YouTubeFetcher",
    "YouTubeSession",
]
