"""
Single-flight guards for background work.

A guard is a non-blocking flag: entering either succeeds at once or reports
that someone else holds it, and the caller skips its work. Guards serialise
use of the external automation session; they do not protect cache memory,
which the caches handle themselves.
"""
import threading
import time
import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

logger = logging.getLogger("refresh.guard")


class SingleFlightGuard:
    """
    At most one holder at a time, never waits.

    Entry is a non-blocking lock acquire, so two threads racing to enter
    can never both succeed.
    """

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()
        self._entered_at: Optional[float] = None

    def try_enter(self) -> bool:
        """
        Take the guard if it is free.

        Returns:
            True if granted; the caller must release() on every exit path
        """
        if not self._lock.acquire(blocking=False):
            logger.debug(f"Guard '{self.name}' busy")
            return False
        self._entered_at = time.monotonic()
        return True

    def release(self) -> None:
        """
        Release the guard.

        Raises:
            RuntimeError: If the guard is not held
        """
        if not self._lock.locked():
            raise RuntimeError(f"Guard '{self.name}' released while not held")
        self._entered_at = None
        self._lock.release()

    @property
    def held(self) -> bool:
        return self._lock.locked()

    @property
    def held_for(self) -> Optional[float]:
        """Seconds the current holder has had the guard, None if free."""
        entered_at = self._entered_at
        if entered_at is None:
            return None
        return time.monotonic() - entered_at

    @contextmanager
    def entered(self) -> Iterator[bool]:
        """
        Try to enter for the duration of a block.

        Usage:
            with guard.entered() as granted:
                if not granted:
                    return
                ...
        """
        granted = self.try_enter()
        try:
            yield granted
        finally:
            if granted:
                self.release()


class RefreshState:
    """
    The process-wide flags.

    - refreshing: held while the primary snapshot is rebuilt
    - draining: held by whoever is using the automation session, i.e. the
      refresh cycle and either enrichment drain
    """

    FLAGS = ("refreshing", "draining")

    def __init__(self):
        self.refreshing = SingleFlightGuard("refreshing")
        self.draining = SingleFlightGuard("draining")

    def guard(self, flag_name: str) -> SingleFlightGuard:
        """
        Look up a guard by flag name.

        Raises:
            KeyError: For an unknown flag name
        """
        if flag_name not in self.FLAGS:
            raise KeyError(flag_name)
        return getattr(self, flag_name)

    def try_enter(self, flag_name: str) -> bool:
        return self.guard(flag_name).try_enter()

    def release(self, flag_name: str) -> None:
        self.guard(flag_name).release()

    def snapshot(self) -> Dict[str, bool]:
        """Which flags are currently held."""
        return {name: self.guard(name).held for name in self.FLAGS}
