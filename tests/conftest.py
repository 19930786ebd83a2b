"""
Shared fixtures: a fake fetcher, a controllable clock, and a wired runtime.
"""
import pytest

from app.errors import ResourceAcquisitionError
from app.runtime import build_runtime
from config.settings import Settings
from tests.fakes import FakeClock, FakeFetcher, make_item


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        background_jobs_enabled=False,
        drain_item_delay_seconds=0,
        session_acquire_attempts=1,
        cold_start_timeout_seconds=2.0,
        requests_per_minute=1000,
    )


@pytest.fixture
def fetcher():
    return FakeFetcher(
        items=[
            make_item("v1", "@alpha", viewers=120),
            make_item("v2", "@alpha", viewers=80),
            make_item("v3", "@bravo", viewers=1500),
        ],
        avatars={"@alpha": "https://img/alpha.jpg", "@bravo": "https://img/bravo.jpg"},
        subscribers={"@alpha": 12000, "@bravo": 340},
    )


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def runtime(settings, fetcher, clock, sleeps):
    return build_runtime(settings, fetcher=fetcher, clock=clock, sleep=sleeps.append)


@pytest.fixture
def unreachable():
    return ResourceAcquisitionError("browser unavailable")
