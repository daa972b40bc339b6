"""
Shared fixtures: test settings, a controllable clock, a per-test SQLite file and a wired app.
"""

import os

os.environ["TRACKER_ENV"] = "test"

from datetime import datetime, timedelta  # noqa: E402
from typing import Iterator  # noqa: E402

import pytest  # noqa: E402
from dependency_injector import providers  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.container import ApplicationContainer, get_wire_container  # noqa: E402
from app.create_app import create_app  # noqa: E402


class FrozenClock:
    """Naive UTC clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 15, 9, 30, 0))


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}"


@pytest.fixture
def container(clock: FrozenClock) -> Iterator[ApplicationContainer]:
    container = get_wire_container()
    container.controllers.clock.override(providers.Object(clock))
    yield container
    container.controllers.clock.reset_override()
    container.unwire()


@pytest.fixture
def client(container: ApplicationContainer, database_url: str) -> Iterator[TestClient]:
    app = create_app(database_url)
    with TestClient(app) as test_client:
        yield test_client
