"""Filter predicates for log entries: date range, level, source, app, env, tags, search."""

from datetime import datetime
from typing import Callable, Iterable

from log_explorer.models import LogEntry, LogFilter
from log_explorer.store import LogStore


def filter_by_date_range(
    entry: LogEntry, start: datetime | None, end: datetime | None
) -> bool:
    """True if entry's timestamp falls within [start, end] (either bound optional)."""
    if start is not None and entry.timestamp < start:
        return False
    if end is not None and entry.timestamp > end:
        return False
    return True


def filter_by_levels(entry: LogEntry, levels: Iterable[str]) -> bool:
    """True if entry's level is one of the given levels."""
    return entry.level in levels


def filter_by_sources(entry: LogEntry, sources: Iterable[str]) -> bool:
    return entry.source in sources


def filter_by_application(entry: LogEntry, application_id: str) -> bool:
    return entry.application_id == application_id


def filter_by_environment(entry: LogEntry, environment: str) -> bool:
    return entry.environment == environment


def filter_by_tags(entry: LogEntry, tags: Iterable[str]) -> bool:
    """True if the entry carries at least one of the given tags."""
    wanted = set(tags)
    return any(tag in wanted for tag in entry.tags)


def filter_by_search(entry: LogEntry, keyword: str) -> bool:
    """True if keyword appears in message, application name or source (case-insensitive)."""
    needle = keyword.casefold()
    haystacks = (entry.message, entry.application_name or "", entry.source)
    return any(needle in text.casefold() for text in haystacks)


def build_filter_chain(log_filter: LogFilter) -> Callable[[LogEntry], bool]:
    """Combine all active constraints of a filter into a single callable.

    Returns a function that ANDs all active predicates together. Search is
    just one more predicate in the chain.
    """
    predicates = []

    if log_filter.start_date is not None or log_filter.end_date is not None:
        start, end = log_filter.start_date, log_filter.end_date
        predicates.append(lambda entry, s=start, e=end: filter_by_date_range(entry, s, e))

    if log_filter.levels:
        levels = log_filter.levels
        predicates.append(lambda entry, l=levels: filter_by_levels(entry, l))

    if log_filter.sources:
        sources = log_filter.sources
        predicates.append(lambda entry, s=sources: filter_by_sources(entry, s))

    if log_filter.application_id:
        app_id = log_filter.application_id
        predicates.append(lambda entry, a=app_id: filter_by_application(entry, a))

    if log_filter.environment:
        env = log_filter.environment
        predicates.append(lambda entry, e=env: filter_by_environment(entry, e))

    if log_filter.tags:
        tags = log_filter.tags
        predicates.append(lambda entry, t=tags: filter_by_tags(entry, t))

    if log_filter.search:
        keyword = log_filter.search
        predicates.append(lambda entry, k=keyword: filter_by_search(entry, k))

    if not predicates:
        return lambda entry: True

    def combined(entry: LogEntry) -> bool:
        return all(p(entry) for p in predicates)

    return combined


def evaluate(store: LogStore, log_filter: LogFilter) -> list[LogEntry]:
    """Return the entries matching every active constraint, newest first.

    Raises InvalidFilterRangeError if the filter's start date is after its end date.
    """
    log_filter.validate()
    matches = build_filter_chain(log_filter)
    return [entry for entry in store.snapshot() if matches(entry)]
