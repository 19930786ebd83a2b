"""
YouTube fetcher over plain HTTP.

A session is one requests.Session primed with the consent cookie and a
desktop user agent. Every page load is bounded by the navigation timeout.
"""
import logging
from typing import List, Optional

import requests

from config.settings import Settings
from app.errors import NavigationError, ResourceAcquisitionError
from app.models import Item
from . import parsing

logger = logging.getLogger("fetcher.youtube")

# Search filter for "Live" results
LIVE_FILTER = "EgJAAQ=="


class YouTubeSession:
    """One open scraping session."""

    def __init__(self, http: requests.Session, base_url: str, timeout: float):
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _load(self, url: str, params: Optional[dict] = None, key: Optional[str] = None) -> str:
        try:
            response = self._http.get(url, params=params, timeout=self._timeout)
            response.raise_for_status()
        except requests.Timeout as e:
            raise NavigationError(f"Timed out loading {url}", key=key) from e
        except requests.RequestException as e:
            raise NavigationError(f"Failed loading {url}: {e}", key=key) from e
        return response.text

    def fetch_live_items(self, query: str, max_results: int) -> List[Item]:
        html = self._load(
            f"{self._base_url}/results",
            params={"search_query": query, "sp": LIVE_FILTER},
        )
        items = parsing.parse_search_results(html, query, max_results, self._base_url)
        if not items:
            logger.warning(f"No live items found for query: {query}")
        return items

    def _channel_page(self, channel_key: str) -> str:
        return self._load(f"{self._base_url}/{channel_key.lstrip('/')}", key=channel_key)

    def fetch_avatar(self, channel_key: str) -> Optional[str]:
        return parsing.parse_avatar_url(self._channel_page(channel_key))

    def fetch_subscriber_count(self, channel_key: str) -> Optional[int]:
        return parsing.parse_subscriber_count(self._channel_page(channel_key))

    def close(self) -> None:
        self._http.close()


class YouTubeFetcher:
    """Opens YouTubeSession instances configured from settings."""

    def __init__(self, settings: Settings):
        self._base_url = settings.youtube_base_url.rstrip("/")
        self._user_agent = settings.user_agent
        self._timeout = settings.navigation_timeout_seconds

    def open_session(self) -> YouTubeSession:
        """
        Open a session and check the target answers at all.

        Raises:
            ResourceAcquisitionError: If the target cannot be reached
        """
        http = requests.Session()
        http.headers.update({
            "User-Agent": self._user_agent,
            "Accept-Language": "en-US,en;q=0.9",
        })
        http.cookies.set("CONSENT", "YES+1", domain=".youtube.com")

        try:
            response = http.head(self._base_url, timeout=self._timeout, allow_redirects=True)
            response.raise_for_status()
        except requests.RequestException as e:
            http.close()
            raise ResourceAcquisitionError(
                f"Could not reach {self._base_url} ({type(e).__name__})"
            ) from e

        logger.debug(f"Session opened for {self._base_url}")
        return YouTubeSession(http, self._base_url, self._timeout)
