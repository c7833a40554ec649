"""Log entry, filter and stats data models."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from log_explorer.errors import InvalidFilterRangeError

VALID_LEVELS = ("debug", "info", "warning", "error")

METADATA_KEYS = (
    "applicationId",
    "applicationName",
    "environment",
    "traceId",
    "requestId",
    "userId",
)

# Fractional seconds after HH:MM:SS, any number of digits
FRACTION_PATTERN = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 instant into a timezone-aware datetime.

    Naive values are taken to be UTC. A trailing ``Z`` is accepted, and
    fractional seconds of any length are padded or truncated to microseconds.
    """
    if isinstance(value, datetime):
        ts = value
    else:
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        text = FRACTION_PATTERN.sub(
            lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text
        )
        ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    utc = ts.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _normalize_level(level: str) -> str:
    normalized = level.strip().lower()
    if normalized not in VALID_LEVELS:
        raise ValueError(f"Unknown log level: {level!r}")
    return normalized


@dataclass(frozen=True)
class LogEntry:
    id: str
    timestamp: datetime
    level: str
    source: str
    message: str
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)
    tags: tuple[str, ...] = ()

    def __post_init__(self):
        # Frozen, so normalize through object.__setattr__
        object.__setattr__(self, "timestamp", parse_timestamp(self.timestamp))
        object.__setattr__(self, "level", _normalize_level(self.level))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "tags", tuple(self.tags))

    @property
    def application_id(self) -> str | None:
        return self.metadata.get("applicationId")

    @property
    def application_name(self) -> str | None:
        return self.metadata.get("applicationName")

    @property
    def environment(self) -> str | None:
        return self.metadata.get("environment")

    @property
    def trace_id(self) -> str | None:
        return self.metadata.get("traceId")

    @classmethod
    def from_dict(cls, d: dict) -> "LogEntry":
        """Build an entry from the camelCase dict shape used on the wire."""
        return cls(
            id=d["id"],
            timestamp=d["timestamp"],
            level=d["level"],
            source=d["source"],
            message=d["message"],
            metadata=d.get("metadata") or {},
            tags=d.get("tags") or (),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": format_timestamp(self.timestamp),
            "level": self.level,
            "source": self.source,
            "message": self.message,
            "metadata": dict(self.metadata),
            "tags": list(self.tags),
        }


def _as_set(values: Iterable[str] | None) -> frozenset[str]:
    if not values:
        return frozenset()
    if isinstance(values, str):
        return frozenset([values])
    return frozenset(values)


@dataclass(frozen=True)
class LogFilter:
    """Optional query constraints. Unset fields do not constrain the result."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    levels: frozenset[str] = frozenset()
    sources: frozenset[str] = frozenset()
    search: str | None = None
    application_id: str | None = None
    environment: str | None = None
    tags: frozenset[str] = frozenset()

    def __post_init__(self):
        if self.start_date is not None:
            object.__setattr__(self, "start_date", parse_timestamp(self.start_date))
        if self.end_date is not None:
            object.__setattr__(self, "end_date", parse_timestamp(self.end_date))
        object.__setattr__(
            self, "levels", frozenset(_normalize_level(l) for l in _as_set(self.levels))
        )
        object.__setattr__(self, "sources", _as_set(self.sources))
        object.__setattr__(self, "tags", _as_set(self.tags))

    def validate(self) -> "LogFilter":
        """Return self, or raise InvalidFilterRangeError on an inverted range."""
        if (
            self.start_date is not None
            and self.end_date is not None
            and self.start_date > self.end_date
        ):
            raise InvalidFilterRangeError(self.start_date, self.end_date)
        return self

    @classmethod
    def from_dict(cls, d: dict) -> "LogFilter":
        """Accept the camelCase keys sent by the presentation layer."""
        return cls(
            start_date=d.get("startDate"),
            end_date=d.get("endDate"),
            levels=d.get("levels") or (),
            sources=d.get("sources") or (),
            search=d.get("search") or None,
            application_id=d.get("applicationId") or None,
            environment=d.get("environment") or None,
            tags=d.get("tags") or (),
        )

    @classmethod
    def last_hours(cls, hours: float = 24, now: datetime | None = None) -> "LogFilter":
        """Filter covering the window ``[now - hours, now]``."""
        end = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
        return cls(start_date=end - timedelta(hours=hours), end_date=end)


@dataclass
class LogStats:
    total_logs: int = 0
    error_count: int = 0
    warning_count: int = 0
    source_distribution: dict[str, int] = field(default_factory=dict)
    level_distribution: dict[str, int] = field(default_factory=dict)
    env_distribution: dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        """Fraction of entries that are not errors. 1.0 for an empty store."""
        if self.total_logs == 0:
            return 1.0
        return 1 - self.error_count / self.total_logs

    def to_dict(self) -> dict:
        return {
            "totalLogs": self.total_logs,
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "sourceDistribution": dict(self.source_distribution),
            "levelDistribution": dict(self.level_distribution),
            "envDistribution": dict(self.env_distribution),
        }
