"""Shared pytest fixtures for the log-explorer test suite."""

from datetime import datetime, timezone

import pytest

from log_explorer.generator import generate_logs
from log_explorer.models import LogEntry
from log_explorer.store import LogStore

FIXED_NOW = datetime(2025, 5, 15, 12, 0, 0, tzinfo=timezone.utc)


def _entry(
    id="log-1",
    ts="2025-05-15T10:00:00Z",
    level="info",
    source="application",
    message="test message",
    metadata=None,
    tags=None,
) -> LogEntry:
    """Helper to create a LogEntry for testing."""
    if metadata is None:
        metadata = {
            "applicationId": "app1",
            "applicationName": "User Service",
            "environment": "staging",
            "traceId": "trace-abc123",
        }
    if tags is None:
        tags = [level, source, metadata.get("environment", "unknown")]
    return LogEntry(
        id=id,
        timestamp=ts,
        level=level,
        source=source,
        message=message,
        metadata=metadata,
        tags=tags,
    )


@pytest.fixture
def abc_store() -> LogStore:
    """A (error, newest), B (info, oldest), C (warning, middle), appended out of order."""
    return LogStore([
        _entry(id="A", ts="2025-05-15T03:00:00Z", level="error", message="Database connection timeout"),
        _entry(id="B", ts="2025-05-15T01:00:00Z", level="info", message="User login successful"),
        _entry(id="C", ts="2025-05-15T02:00:00Z", level="warning", message="Slow query performance"),
    ])


@pytest.fixture
def generated_logs() -> list[LogEntry]:
    return generate_logs(count=200, seed=7, now=FIXED_NOW)


@pytest.fixture
def generated_store(generated_logs) -> LogStore:
    return LogStore(generated_logs)
