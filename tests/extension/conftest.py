import pytest

from compose_pages import StubTrackerClient
from extension.client import TrackerClientError


@pytest.fixture
def tracker_client() -> StubTrackerClient:
    return StubTrackerClient()


@pytest.fixture
def failing_tracker_client() -> StubTrackerClient:
    return StubTrackerClient(error=TrackerClientError("API error: 500", status=500))
