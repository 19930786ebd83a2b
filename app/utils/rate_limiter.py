"""Per-client rate limiting for the /api routes."""

import time
from collections import defaultdict, deque
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Deque, Dict, Optional

# Configuration
RATE_LIMIT_REQUESTS = 10  # Max requests per window
RATE_LIMIT_WINDOW_SECONDS = 60  # Window size in seconds
CLEANUP_EVERY_HITS = 100  # Idle clients are swept after this many recorded requests


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of recording one request."""
    allowed: bool
    remaining: int
    retry_after: Optional[int] = None


class RateLimiter:
    """
    Sliding window rate limiter.

    Limits each client (IP address) to max_requests per window.
    Clients with no request in the current window are swept every
    cleanup_every hits, so the client map stays bounded by recent traffic.
    Thread-safe implementation.
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_REQUESTS,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        cleanup_every: int = CLEANUP_EVERY_HITS,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = Lock()
        self._cleanup_every = max(1, cleanup_every)
        self._hits_since_cleanup = 0

    def _prune(self, timestamps: Deque[float], now: float) -> None:
        window_start = now - self.window_seconds
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

    def hit(self, client_id: str) -> RateLimitDecision:
        """
        Record a request for the client if it is within the limit.

        Args:
            client_id: Unique identifier for the client

        Returns:
            RateLimitDecision; retry_after is set when the request is refused
        """
        now = self._clock()
        with self._lock:
            self._hits_since_cleanup += 1
            if self._hits_since_cleanup >= self._cleanup_every:
                self._sweep(now)

            timestamps = self._requests[client_id]
            self._prune(timestamps, now)

            if len(timestamps) >= self.max_requests:
                retry_after = int(timestamps[0] + self.window_seconds - now) + 1
                return RateLimitDecision(False, 0, max(1, retry_after))

            timestamps.append(now)
            return RateLimitDecision(True, self.max_requests - len(timestamps))

    def reset(self, client_id: Optional[str] = None) -> None:
        """Forget one client, or every client if none is given."""
        with self._lock:
            if client_id is None:
                self._requests.clear()
            else:
                self._requests.pop(client_id, None)

    def cleanup(self) -> int:
        """
        Remove clients with no requests in the current window.

        Returns the number of clients cleaned up.
        """
        with self._lock:
            return self._sweep(self._clock())

    def _sweep(self, now: float) -> int:
        self._hits_since_cleanup = 0
        for timestamps in self._requests.values():
            self._prune(timestamps, now)
        idle = [client for client, ts in self._requests.items() if not ts]
        for client in idle:
            del self._requests[client]
        return len(idle)

    @property
    def client_count(self) -> int:
        """Number of clients currently tracked."""
        with self._lock:
            return len(self._requests)
