"""
Fetcher interfaces.

The refresh and enrichment jobs only see these protocols. A session is the
scarce external resource: at most one is open at any time, and the jobs
decide when to open one.

Implementations:
- YouTubeFetcher: plain HTTP scrape of search and channel pages (default)
- Test doubles in tests/
"""
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol

from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from app.errors import ResourceAcquisitionError
from app.models import Item

logger = logging.getLogger("fetcher")


class LiveItemsSource(Protocol):
    """Capability to list live items for a query."""

    def fetch_live_items(self, query: str, max_results: int) -> List[Item]:
        """
        Scrape live items matching the query.

        Raises:
            NavigationError: Target unreachable or timed out
            ExtractionError: Page did not have the expected shape
        """
        ...


class ChannelEnricher(Protocol):
    """Capability to look up per-channel details."""

    def fetch_avatar(self, channel_key: str) -> Optional[str]:
        """Avatar URL for the channel, None if the page has none."""
        ...

    def fetch_subscriber_count(self, channel_key: str) -> Optional[int]:
        """Subscriber count for the channel, None if the page has none."""
        ...


class FetchSession(LiveItemsSource, ChannelEnricher, Protocol):
    """An open automation session offering both capabilities."""

    def close(self) -> None:
        ...


class Fetcher(Protocol):
    """Factory for automation sessions."""

    def open_session(self) -> FetchSession:
        """
        Open a session.

        Raises:
            ResourceAcquisitionError: The session could not be obtained
        """
        ...


def open_session_with_retry(fetcher: Fetcher, attempts: int = 1) -> FetchSession:
    """
    Open a session, retrying acquisition failures with exponential backoff.

    Any other error from the fetcher is reported as ResourceAcquisitionError.
    """
    retrying = Retrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=0.5, max=4),
        retry=retry_if_exception_type(ResourceAcquisitionError),
        reraise=True,
    )
    try:
        return retrying(fetcher.open_session)
    except ResourceAcquisitionError:
        raise
    except Exception as e:
        raise ResourceAcquisitionError(
            f"Could not open session ({type(e).__name__}): {e}"
        ) from e


@contextmanager
def session_scope(fetcher: Fetcher, attempts: int = 1) -> Iterator[FetchSession]:
    """
    Context manager that opens a session and always closes it.

    Errors while closing are logged, not raised, so they never mask the
    outcome of the work done inside the block.
    """
    session = open_session_with_retry(fetcher, attempts)
    try:
        yield session
    finally:
        try:
            session.close()
        except Exception as e:
            logger.error(f"Session close error ({type(e).__name__}): {e}")
