"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from todo_export.config import CONFIG_ENV_VAR, Config  # noqa: E402
from todo_export.export import ExportManager  # noqa: E402
from todo_export.todo import Task  # noqa: E402


FROZEN_NOW = datetime(2025, 1, 15, 9, 30, 0, 123000, tzinfo=timezone.utc)


def fixed_formatter(dt: datetime) -> str:
    """Deterministic stand-in for the locale formatter."""
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M")


class RecordingSink:
    """Delivery sink that keeps payloads in memory."""

    def __init__(self, fail_on=()):
        self.deliveries = []
        self.fail_on = set(fail_on)

    def deliver(self, content, filename, mime_type):
        extension = filename.rsplit(".", 1)[-1]
        if extension in self.fail_on:
            raise OSError(f"disk full while writing {filename}")
        self.deliveries.append((content, filename, mime_type))


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config loader at an empty temp location."""
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "config.yaml"))
    Config.reset()
    yield
    Config.reset()


@pytest.fixture
def frozen_now():
    return FROZEN_NOW


@pytest.fixture
def sample_tasks():
    """One pending task with a deadline and one completed task without."""
    return [
        Task(
            id=1,
            title="Buy milk",
            completed=False,
            created_at=datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc),
            updated_at=datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc),
            due_date=datetime(2025, 1, 10, 18, 0, tzinfo=timezone.utc),
        ),
        Task(
            id=2,
            title="Pay rent",
            completed=True,
            created_at=datetime(2025, 1, 2, 0, 0, tzinfo=timezone.utc),
            updated_at=datetime(2025, 1, 3, 0, 0, tzinfo=timezone.utc),
            due_date=None,
        ),
    ]


@pytest.fixture
def manager(frozen_now):
    return ExportManager(formatter=fixed_formatter, clock=lambda: frozen_now)


@pytest.fixture
def recording_sink():
    return RecordingSink()
