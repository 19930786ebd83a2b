"""
Refresh-ahead module: snapshot refresh, enrichment queues and their guards.
"""
from .guard import RefreshState, SingleFlightGuard
from .queue import EnrichmentKind, EnrichmentQueue
from .worker import DrainResult, EnrichmentWorker
from .scheduler import RefreshResult, RefreshScheduler
from .jobs import BackgroundJobs, PeriodicTask

__all__ = [
    # Guards
    "RefreshState",
    "SingleFlightGuard",
    # Queue
    "EnrichmentKind",
    "EnrichmentQueue",
    # Worker
    "DrainResult",
    "EnrichmentWorker",
    # Scheduler
    "RefreshResult",
    "RefreshScheduler",
    # Jobs
    "BackgroundJobs",
    "PeriodicTask",
]
