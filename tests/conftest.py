"""Pytest configuration and fixtures."""

import os
import tempfile

# Keep per-run log files out of the working tree; must precede project imports.
os.environ.setdefault("DAYSSINCE_LOG_DIR", tempfile.mkdtemp(prefix="dayssince-logs-"))

from datetime import datetime, timedelta, timezone  # noqa: E402
from pathlib import Path  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402

from services.discord.commands.events import EventCommandHandler  # noqa: E402
from services.discord.logging import DiscordLogAdapter  # noqa: E402
from shared.storage.backends import JsonFileBackend, SqliteBackend  # noqa: E402
from shared.storage.event_store import EventStore  # noqa: E402


class FixedClock:
    """Controllable UTC clock for handler tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture
def start_time() -> datetime:
    return datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(start_time: datetime) -> FixedClock:
    return FixedClock(start_time)


@pytest.fixture(params=["sqlite", "json"])
def backend(request, tmp_path: Path):
    """Each durable backend, rooted in a per-test directory."""
    if request.param == "sqlite":
        return SqliteBackend(tmp_path / "events.db")
    return JsonFileBackend(tmp_path / "events.json")


@pytest.fixture
def store(backend) -> EventStore:
    return EventStore(backend)


@pytest.fixture
def log_adapter() -> MagicMock:
    """Mock DiscordLogAdapter."""
    return MagicMock(spec=DiscordLogAdapter)


@pytest.fixture
def handler(store: EventStore, log_adapter: MagicMock, clock: FixedClock) -> EventCommandHandler:
    return EventCommandHandler(store=store, logger=log_adapter, clock=clock)
