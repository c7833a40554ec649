"""Query scheduler: one-shot and periodic refresh with stale-result arbitration."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from log_explorer.errors import FetchFailureError
from log_explorer.export import format_csv
from log_explorer.models import LogEntry, LogFilter, LogStats
from log_explorer.service import LoggingService

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 5000


class SchedulerState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SCHEDULED = "scheduled"


@dataclass
class QueryView:
    """Caller-visible result of the latest applied fetch."""

    entries: list[LogEntry] = field(default_factory=list)
    stats: LogStats | None = None
    error: str | None = None
    loading: bool = False
    generation: int = 0
    updated_at: datetime | None = None


class QueryScheduler:
    """Drives repeated queries against a LoggingService.

    - IDLE: nothing scheduled and no fetch in flight.
    - FETCHING: a one-shot fetch is in flight, no timer running.
    - SCHEDULED: the periodic timer is running (fetches may be in flight).

    Every fetch, periodic or on demand, takes the next number from a single
    generation counter. A finished fetch is applied to ``view`` only if its
    generation is still the latest issued, so a slow response can never
    overwrite a newer one. Disabling auto-refresh and closing both advance
    the counter, which invalidates whatever is still in flight.
    """

    def __init__(
        self,
        service: LoggingService,
        log_filter: LogFilter | None = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
    ) -> None:
        self.service = service
        self._filter = (log_filter or LogFilter()).validate()
        self._interval_ms = interval_ms
        self.view = QueryView()
        self._generation = 0
        self._inflight: set[asyncio.Task] = set()
        self._timer: asyncio.Task | None = None
        self._closed = False

    @property
    def state(self) -> SchedulerState:
        if self._timer is not None:
            return SchedulerState.SCHEDULED
        if self._inflight:
            return SchedulerState.FETCHING
        return SchedulerState.IDLE

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def generation(self) -> int:
        """Latest generation issued."""
        return self._generation

    @property
    def log_filter(self) -> LogFilter:
        return self._filter

    def set_filter(self, log_filter: LogFilter) -> asyncio.Task:
        """Replace the active filter and fetch immediately.

        Raises InvalidFilterRangeError (keeping the old filter) on an inverted
        date range. The periodic timer, if any, keeps its schedule.
        """
        if self._closed:
            raise RuntimeError("QueryScheduler is closed")
        self._filter = log_filter.validate()
        return self.refresh()

    def refresh(self) -> asyncio.Task:
        """Issue one fetch now and return its task."""
        if self._closed:
            raise RuntimeError("QueryScheduler is closed")
        self._generation += 1
        generation = self._generation
        self.view.loading = True
        task = asyncio.create_task(self._fetch(generation, self._filter))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    def enable_auto_refresh(self, interval_ms: int | None = None) -> None:
        """Start (or restart) the periodic timer."""
        if self._closed:
            raise RuntimeError("QueryScheduler is closed")
        if interval_ms is not None:
            if interval_ms <= 0:
                raise ValueError("interval_ms must be positive")
            self._interval_ms = interval_ms
        self._cancel_timer()
        self._timer = asyncio.create_task(self._tick_loop(self._interval_ms / 1000))
        logger.info("Auto-refresh enabled every %d ms", self._interval_ms)

    def disable_auto_refresh(self) -> None:
        """Stop the periodic timer and discard any fetch still in flight."""
        if self._cancel_timer():
            logger.info("Auto-refresh disabled")
        self._invalidate()

    async def wait_idle(self) -> None:
        """Wait until every fetch issued so far has finished."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel the timer and all in-flight fetches. No callback fires afterwards."""
        if self._closed:
            return
        self._closed = True
        timer = self._timer
        self._cancel_timer()
        self._invalidate()
        pending = list(self._inflight)
        if timer is not None:
            pending.append(timer)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def __aenter__(self) -> "QueryScheduler":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def export(self) -> str:
        """CSV text of the entries currently in view."""
        return format_csv(self.view.entries)

    def _cancel_timer(self) -> bool:
        if self._timer is None:
            return False
        self._timer.cancel()
        self._timer = None
        return True

    def _invalidate(self) -> None:
        self._generation += 1
        self.view.loading = False

    async def _tick_loop(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            logger.debug("Auto-refresh tick")
            # One periodic fetch in flight at a time
            await asyncio.shield(self.refresh())

    async def _fetch(self, generation: int, log_filter: LogFilter) -> None:
        try:
            entries, stats = await asyncio.gather(
                self.service.get_logs(log_filter),
                self.service.get_log_stats(),
            )
        except Exception as exc:
            if generation != self._generation:
                logger.debug("Discarding stale failed fetch %d", generation)
                return
            failure = FetchFailureError(f"Failed to fetch logs: {exc}")
            logger.error("Fetch %d failed: %s", generation, exc)
            self.view.error = str(failure)
            self.view.loading = False
            return

        if generation != self._generation:
            logger.debug(
                "Discarding stale fetch %d (latest is %d)", generation, self._generation
            )
            return

        self.view.entries = entries
        self.view.stats = stats
        self.view.error = None
        self.view.loading = False
        self.view.generation = generation
        self.view.updated_at = datetime.now(timezone.utc)
