"""Async retrieval facade over a LogStore."""

import asyncio
import logging

from log_explorer.config import Config
from log_explorer.filters import evaluate
from log_explorer.models import LogEntry, LogFilter, LogStats
from log_explorer.stats import aggregate
from log_explorer.store import LogStore

logger = logging.getLogger(__name__)


class LoggingService:
    """Query API used by the scheduler and the CLI.

    Each call can be delayed by a configurable latency (milliseconds) to
    mimic a remote backend. Zero latency still yields to the event loop.
    """

    def __init__(
        self,
        store: LogStore,
        logs_latency_ms: int = 0,
        log_by_id_latency_ms: int = 0,
        stats_latency_ms: int = 0,
    ) -> None:
        self.store = store
        self.logs_latency_ms = logs_latency_ms
        self.log_by_id_latency_ms = log_by_id_latency_ms
        self.stats_latency_ms = stats_latency_ms

    @classmethod
    def from_config(cls, store: LogStore, config: Config) -> "LoggingService":
        latency = config["service"]["latency_ms"]
        return cls(
            store,
            logs_latency_ms=int(latency.get("logs", 0)),
            log_by_id_latency_ms=int(latency.get("log_by_id", 0)),
            stats_latency_ms=int(latency.get("stats", 0)),
        )

    async def get_logs(self, log_filter: LogFilter) -> list[LogEntry]:
        await asyncio.sleep(self.logs_latency_ms / 1000)
        results = evaluate(self.store, log_filter)
        logger.debug("Filter matched %d of %d logs", len(results), len(self.store))
        return results

    async def get_log_by_id(self, entry_id: str) -> LogEntry | None:
        await asyncio.sleep(self.log_by_id_latency_ms / 1000)
        return self.store.get(entry_id)

    async def get_log_stats(self) -> LogStats:
        await asyncio.sleep(self.stats_latency_ms / 1000)
        return aggregate(self.store)
