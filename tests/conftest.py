"""Shared fixtures for the scoreboard tests."""

from datetime import datetime, timezone

import pytest

from scoreboard.models import ServerSettings
from scoreboard.state import default_state
from scoreboard.store import StateStore

START = datetime(2024, 3, 1, 8, 0, 0, tzinfo=timezone.utc)


class FakeWriter:
    """Records every snapshot the router asks to persist."""

    def __init__(self):
        self.snapshots = []

    def schedule(self, state):
        self.snapshots.append(StateStore.serialize(state))


class FakeChannel:
    """Records every view published to clients."""

    def __init__(self):
        self.published = []

    def publish(self, view):
        self.published.append(view)


@pytest.fixture
def state():
    return default_state(now=START)


@pytest.fixture
def settings(tmp_path):
    return ServerSettings(
        admin_password="hunter2",
        session_secret="test-secret",
        state_file=str(tmp_path / "state.json"),
        tick_interval=3600.0,
        base_backoff=0,
    )


@pytest.fixture
def writer():
    return FakeWriter()


@pytest.fixture
def channel():
    return FakeChannel()
