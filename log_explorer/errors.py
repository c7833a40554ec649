"""Exception types raised by the log explorer core."""

from datetime import datetime


class LogExplorerError(Exception):
    """Base class for all caller-visible log explorer failures."""


class DuplicateIdError(LogExplorerError):
    """Raised when appending an entry whose id is already in the store."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Log entry with id {entry_id!r} already exists")
        self.entry_id = entry_id


class InvalidFilterRangeError(LogExplorerError):
    """Raised when a filter's start date falls after its end date."""

    def __init__(self, start: datetime, end: datetime) -> None:
        super().__init__(
            f"Invalid date range: start {start.isoformat()} is after end {end.isoformat()}"
        )
        self.start = start
        self.end = end


class FetchFailureError(LogExplorerError):
    """Raised when retrieving logs or stats fails."""
