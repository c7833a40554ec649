"""Deterministic mock log generation for demos and test fixtures.

Every function takes an explicit ``random.Random`` (or a seed) and a fixed
``now`` so the same inputs always yield the same entries.
"""

import random
from datetime import datetime, timedelta, timezone

from log_explorer.models import VALID_LEVELS, LogEntry

APPLICATIONS = [
    ("app1", "User Service"),
    ("app2", "Payment Service"),
    ("app3", "Notification Service"),
]

ENVIRONMENTS = ["development", "staging", "production"]
SOURCES = ["application", "system", "security", "database"]

MESSAGES = {
    "info": [
        "Successfully processed request in {app}",
        "User login successful",
        "Data sync completed",
        "Cache updated successfully",
    ],
    "warning": [
        "High memory usage detected in {app}",
        "Slow query performance",
        "Rate limit approaching threshold",
        "Connection pool running low",
    ],
    "error": [
        "Failed to process request in {app}",
        "Database connection timeout",
        "External API unavailable",
        "Invalid authentication token",
    ],
    "debug": [
        "Processing request parameters",
        "Executing database query",
        "Cache hit ratio: 85%",
        "Request processing time: 235ms",
    ],
}


def derive_tags(level: str, source: str, environment: str) -> list[str]:
    """Base tags plus markers: alert for errors, critical for production, audit for security."""
    tags = [level, source, environment]
    if level == "error":
        tags.append("alert")
    if environment == "production":
        tags.append("critical")
    if source == "security":
        tags.append("audit")
    return tags


def _short_token(rng: random.Random) -> str:
    return "".join(rng.choice("abcdefghijklmnopqrstuvwxyz0123456789") for _ in range(6))


def generate_log_entry(
    rng: random.Random, index: int, now: datetime, days: float = 7
) -> LogEntry:
    """Generate one entry with a timestamp somewhere in the last ``days`` days."""
    app_id, app_name = rng.choice(APPLICATIONS)
    environment = rng.choice(ENVIRONMENTS)
    level = rng.choice(VALID_LEVELS)
    source = rng.choice(SOURCES)
    offset = timedelta(seconds=rng.uniform(0, days * 24 * 60 * 60))

    return LogEntry(
        id=f"log-{index}",
        timestamp=now - offset,
        level=level,
        source=source,
        message=rng.choice(MESSAGES[level]).format(app=app_name),
        metadata={
            "applicationId": app_id,
            "applicationName": app_name,
            "environment": environment,
            "traceId": f"trace-{_short_token(rng)}",
            "requestId": f"req-{_short_token(rng)}",
            "userId": f"user-{rng.randint(0, 9)}",
        },
        tags=derive_tags(level, source, environment),
    )


def generate_logs(
    count: int = 100,
    seed: int = 42,
    now: datetime | None = None,
    days: float = 7,
) -> list[LogEntry]:
    """Generate ``count`` entries from a seeded generator.

    ``now`` defaults to the current UTC time; pass it explicitly when the
    output has to be reproducible.
    """
    rng = random.Random(seed)
    if now is None:
        now = datetime.now(timezone.utc)
    return [generate_log_entry(rng, i, now, days) for i in range(count)]
