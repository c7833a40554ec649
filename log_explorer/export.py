"""CSV export of a retrieved result set."""

import csv
import io
from datetime import datetime, timezone
from typing import Iterable

from log_explorer.models import LogEntry, format_timestamp

CSV_COLUMNS = (
    "timestamp",
    "level",
    "source",
    "message",
    "application",
    "environment",
    "traceId",
)


def to_row(entry: LogEntry) -> list[str]:
    """Project an entry onto the export columns."""
    return [
        format_timestamp(entry.timestamp),
        entry.level,
        entry.source,
        entry.message,
        entry.application_name or "",
        entry.environment or "",
        entry.trace_id or "",
    ]


def format_csv(entries: Iterable[LogEntry]) -> str:
    """Render entries as CSV text with a header row.

    Fields containing commas, quotes or line breaks are quoted and embedded
    quotes doubled. An empty input produces the header row alone.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for entry in entries:
        writer.writerow(to_row(entry))
    return buf.getvalue()


def export_filename(now: datetime | None = None) -> str:
    """Suggested download name, e.g. ``logs-2025-05-15T14:30:00.000Z.csv``."""
    if now is None:
        now = datetime.now(timezone.utc)
    return f"logs-{format_timestamp(now)}.csv"
