"""
Error taxonomy for refresh and enrichment cycles.

ResourceAcquisitionError aborts a whole cycle. NavigationError and
ExtractionError are scoped to one fetch and are recoverable.
An empty fetch result is not an error.
"""
from typing import Optional


class LiveItemsError(Exception):
    """Base class for scrape/enrichment failures."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ResourceAcquisitionError(LiveItemsError):
    """The external automation session could not be obtained."""


class NavigationError(LiveItemsError):
    """Target unreachable, timed out, or answered with an error status."""


class ExtractionError(LiveItemsError):
    """Page was fetched but did not have the expected shape."""
