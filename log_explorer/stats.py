"""Statistics: totals, error/warning counts, source/level/environment distributions."""

import json
from collections import Counter
from typing import Iterable

from log_explorer.models import LogEntry, LogStats
from log_explorer.store import LogStore

UNKNOWN_ENVIRONMENT = "unknown"


def compute_stats(entries: Iterable[LogEntry]) -> LogStats:
    """Consume an entry stream and produce aggregated statistics in one pass."""
    source_counter = Counter()
    level_counter = Counter()
    env_counter = Counter()
    total = 0

    for entry in entries:
        total += 1
        source_counter[entry.source] += 1
        level_counter[entry.level] += 1
        env_counter[entry.environment or UNKNOWN_ENVIRONMENT] += 1

    return LogStats(
        total_logs=total,
        error_count=level_counter["error"],
        warning_count=level_counter["warning"],
        source_distribution=dict(source_counter.most_common()),
        level_distribution=dict(level_counter.most_common()),
        env_distribution=dict(env_counter.most_common()),
    )


def aggregate(store: LogStore) -> LogStats:
    """Summarize the whole (unfiltered) store."""
    return compute_stats(store.snapshot())


def format_stats_text(stats: LogStats) -> str:
    """Human-readable stats summary."""
    lines = []
    lines.append(f"Total logs:   {stats.total_logs}")
    lines.append(f"Errors:       {stats.error_count}")
    lines.append(f"Warnings:     {stats.warning_count}")
    lines.append(f"Success rate: {stats.success_rate * 100:.1f}%")

    sections = (
        ("Levels", stats.level_distribution),
        ("Sources", stats.source_distribution),
        ("Environments", stats.env_distribution),
    )
    for title, distribution in sections:
        lines.append("")
        lines.append(f"{title}:")
        for key, count in distribution.items():
            lines.append(f"  {key:14s} {count}")

    return "\n".join(lines)


def format_stats_json(stats: LogStats) -> str:
    """JSON stats output."""
    payload = stats.to_dict()
    payload["successRate"] = round(stats.success_rate, 4)
    return json.dumps(payload, indent=2)
