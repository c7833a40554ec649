"""In-memory log store kept in descending timestamp order."""

import bisect
import logging
import threading
from typing import Iterable, Iterator

from log_explorer.errors import DuplicateIdError
from log_explorer.models import LogEntry

logger = logging.getLogger(__name__)


class LogStore:
    """Append-only log collection, newest entry first.

    Entries are placed with a binary search on insert, so ``snapshot()``
    is always in query order and never needs a sort. Entries sharing a
    timestamp keep their insertion order.
    """

    def __init__(self, entries: Iterable[LogEntry] = ()):
        self._entries: list[LogEntry] = []
        # Negated POSIX timestamps, ascending, parallel to _entries
        self._keys: list[float] = []
        self._by_id: dict[str, LogEntry] = {}
        self._lock = threading.Lock()
        self.extend(entries)

    def append(self, entry: LogEntry) -> None:
        """Insert an entry at its ordered position.

        Raises DuplicateIdError (leaving the store unchanged) if the id exists.
        """
        with self._lock:
            if entry.id in self._by_id:
                logger.warning("Rejected duplicate log id %s", entry.id)
                raise DuplicateIdError(entry.id)
            key = -entry.timestamp.timestamp()
            pos = bisect.bisect_right(self._keys, key)
            self._keys.insert(pos, key)
            self._entries.insert(pos, entry)
            self._by_id[entry.id] = entry
        logger.debug("Appended log %s at position %d", entry.id, pos)

    def extend(self, entries: Iterable[LogEntry]) -> None:
        for entry in entries:
            self.append(entry)

    def snapshot(self) -> tuple[LogEntry, ...]:
        """Return an immutable view of all entries, newest first."""
        with self._lock:
            return tuple(self._entries)

    def get(self, entry_id: str) -> LogEntry | None:
        return self._by_id.get(entry_id)

    def __contains__(self, entry_id: str) -> bool:
        return entry_id in self._by_id

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self.snapshot())
