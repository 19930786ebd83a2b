"""
Request coalescing for work triggered from the read path.

When several concurrent requests need the same expensive result, only one
call is made and everyone shares it. The call runs on its own thread so
every caller, including the one that started it, can stop waiting after a
timeout without cancelling the work.
"""
import threading
import time
import logging
from typing import Dict, Optional, Callable, Any
from dataclasses import dataclass, field

logger = logging.getLogger("cache.coalescer")


@dataclass
class InFlightRequest:
    """Tracks an in-progress call."""
    event: threading.Event = field(default_factory=threading.Event)
    result: Optional[Any] = None
    error: Optional[Exception] = None
    started_at: float = field(default_factory=time.time)
    waiter_count: int = 1


class RequestCoalescer:
    """
    Ensures concurrent callers for the same key share one call.

    Pattern:
    - First caller for a key starts the call on a worker thread
    - Every caller (first included) waits on the Event, bounded by a timeout
    - When the call completes, all waiters receive the same result
    - A caller that times out leaves the call running; later callers join it

    Usage:
        coalescer = RequestCoalescer(timeout=30.0)
        result = coalescer.run("cold-start", refresh_fn)
    """

    def __init__(self, timeout: float = 30.0):
        """
        Initialize the coalescer.

        Args:
            timeout: Default max seconds to wait for a call
        """
        self._in_flight: Dict[str, InFlightRequest] = {}
        self._lock = threading.Lock()
        self._timeout = timeout

    def run(
        self,
        key: str,
        fn: Callable[[], Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Start a call for the key or join the one in flight.

        Args:
            key: Unique key for this call
            fn: Function to call if nothing is in flight
            timeout: Max seconds to wait; the default from __init__ if None

        Returns:
            The call's result (shared among all concurrent callers)

        Raises:
            TimeoutError: If the call does not finish in time
            Exception: Any error from fn is propagated
        """
        wait_for = self._timeout if timeout is None else timeout

        with self._lock:
            in_flight = self._in_flight.get(key)
            if in_flight is not None:
                in_flight.waiter_count += 1
                logger.debug(f"Coalescing call for {key} (waiters: {in_flight.waiter_count})")
            else:
                in_flight = InFlightRequest()
                self._in_flight[key] = in_flight
                logger.debug(f"Starting call for {key}")
                threading.Thread(
                    target=self._execute,
                    args=(key, in_flight, fn),
                    name=f"coalesce-{key}",
                    daemon=True,
                ).start()

        completed = in_flight.event.wait(timeout=wait_for)

        if not completed:
            logger.warning(f"Timeout waiting for coalesced call: {key}")
            raise TimeoutError(f"Call for {key} timed out after {wait_for}s")

        if in_flight.error:
            raise in_flight.error

        return in_flight.result

    def _execute(self, key: str, in_flight: InFlightRequest, fn: Callable[[], Any]) -> None:
        try:
            in_flight.result = fn()
        except Exception as e:
            in_flight.error = e
            logger.warning(f"Coalesced call failed for {key}: {e}")
        finally:
            in_flight.event.set()
            with self._lock:
                if self._in_flight.get(key) is in_flight:
                    del self._in_flight[key]

    @property
    def active_requests(self) -> int:
        """Number of calls currently in flight."""
        with self._lock:
            return len(self._in_flight)

    def get_stats(self) -> Dict[str, Any]:
        """Get coalescer statistics."""
        with self._lock:
            return {
                "active_requests": len(self._in_flight),
                "active_keys": list(self._in_flight.keys()),
            }
