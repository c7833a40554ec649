"""Tests for log_explorer/scheduler.py"""

import asyncio

import pytest
import pytest_asyncio

from log_explorer.errors import InvalidFilterRangeError
from log_explorer.filters import evaluate
from log_explorer.models import LogFilter
from log_explorer.scheduler import QueryScheduler, SchedulerState
from log_explorer.service import LoggingService


class ScriptedService(LoggingService):
    """LoggingService with per-search delays, call counting and failure injection."""

    def __init__(self, store, delays=None):
        super().__init__(store)
        self.delays = delays or {}
        self.calls = 0
        self.fail_with = None

    async def get_logs(self, log_filter):
        self.calls += 1
        await asyncio.sleep(self.delays.get(log_filter.search, 0))
        if self.fail_with is not None:
            raise self.fail_with
        return await super().get_logs(log_filter)


@pytest.fixture
def service(abc_store):
    return ScriptedService(abc_store, delays={"slow": 0.2})


@pytest_asyncio.fixture
async def scheduler(service):
    sched = QueryScheduler(service, interval_ms=20)
    yield sched
    await sched.aclose()


def _ids(entries):
    return [e.id for e in entries]


# ── one-shot fetches ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_refresh_applies_result(scheduler, abc_store):
    assert scheduler.state == SchedulerState.IDLE
    task = scheduler.refresh()
    assert scheduler.state == SchedulerState.FETCHING
    assert scheduler.view.loading is True

    await task

    view = scheduler.view
    assert _ids(view.entries) == ["A", "C", "B"]
    assert view.stats.total_logs == 3
    assert view.error is None
    assert view.loading is False
    assert view.generation == 1
    assert view.updated_at is not None
    assert scheduler.state == SchedulerState.IDLE


@pytest.mark.asyncio
async def test_set_filter_fetches_immediately(scheduler):
    await scheduler.set_filter(LogFilter(levels=["warning", "error"]))
    assert _ids(scheduler.view.entries) == ["A", "C"]
    # Stats always cover the whole store
    assert scheduler.view.stats.total_logs == 3


@pytest.mark.asyncio
async def test_invalid_range_rejected_and_filter_kept(scheduler):
    old = scheduler.log_filter
    bad = LogFilter(start_date="2025-05-16T00:00:00Z", end_date="2025-05-15T00:00:00Z")
    with pytest.raises(InvalidFilterRangeError):
        scheduler.set_filter(bad)
    assert scheduler.log_filter is old
    assert scheduler.generation == 0


def test_invalid_initial_filter_rejected(service):
    bad = LogFilter(start_date="2025-05-16T00:00:00Z", end_date="2025-05-15T00:00:00Z")
    with pytest.raises(InvalidFilterRangeError):
        QueryScheduler(service, bad)


# ── stale response arbitration ──────────────────────────────────


@pytest.mark.asyncio
async def test_newer_filter_wins_over_slow_older_fetch(scheduler, abc_store):
    slow = scheduler.set_filter(LogFilter(search="slow"))
    fast = scheduler.set_filter(LogFilter(levels=["error"]))

    await fast
    assert _ids(scheduler.view.entries) == ["A"]

    await slow
    assert _ids(scheduler.view.entries) == ["A"]
    assert scheduler.view.generation == 2


@pytest.mark.asyncio
async def test_latest_result_applied_regardless_of_completion_order(scheduler, service):
    service.delays = {"slow": 0.05, None: 0.01}
    scheduler.set_filter(LogFilter(levels=["info"]))
    scheduler.set_filter(LogFilter(search="slow"))
    await scheduler.wait_idle()
    # The search was issued last, so its single match wins
    assert _ids(scheduler.view.entries) == ["C"]
    assert scheduler.view.generation == 2


@pytest.mark.asyncio
async def test_stale_failure_does_not_set_error(scheduler, service):
    stale = scheduler.set_filter(LogFilter(search="slow"))
    await scheduler.set_filter(LogFilter())
    service.fail_with = RuntimeError("backend down")
    await stale
    assert scheduler.view.error is None
    assert scheduler.view.generation == 2


# ── failures ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_failure_keeps_previous_state(scheduler, service):
    await scheduler.refresh()
    previous_entries = scheduler.view.entries
    previous_stats = scheduler.view.stats

    service.fail_with = RuntimeError("backend down")
    await scheduler.refresh()

    view = scheduler.view
    assert view.error == "Failed to fetch logs: backend down"
    assert view.entries is previous_entries
    assert view.stats is previous_stats
    assert view.loading is False
    assert view.generation == 1


@pytest.mark.asyncio
async def test_error_cleared_after_success(scheduler, service):
    service.fail_with = RuntimeError("backend down")
    await scheduler.refresh()
    assert scheduler.view.error is not None

    service.fail_with = None
    await scheduler.refresh()
    assert scheduler.view.error is None


# ── auto-refresh ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_auto_refresh_ticks_periodically(scheduler, service):
    scheduler.enable_auto_refresh()
    assert scheduler.state == SchedulerState.SCHEDULED
    assert scheduler.interval_ms == 20

    await asyncio.sleep(0.15)
    assert service.calls >= 3
    assert scheduler.view.generation >= 1


@pytest.mark.asyncio
async def test_auto_refresh_applies_results_when_slower_than_interval(abc_store):
    slow_service = LoggingService(abc_store, logs_latency_ms=50, stats_latency_ms=50)
    async with QueryScheduler(slow_service, interval_ms=30) as sched:
        sched.enable_auto_refresh()
        await asyncio.sleep(0.6)
        assert sched.view.generation > 0
        assert _ids(sched.view.entries) == ["A", "C", "B"]


@pytest.mark.asyncio
async def test_no_fetch_after_disable(scheduler, service):
    scheduler.enable_auto_refresh(10)
    await asyncio.sleep(0.05)
    scheduler.disable_auto_refresh()
    assert scheduler.state in (SchedulerState.IDLE, SchedulerState.FETCHING)

    await scheduler.wait_idle()
    calls = service.calls
    await asyncio.sleep(0.1)  # ten interval periods
    assert service.calls == calls
    assert scheduler.state == SchedulerState.IDLE


@pytest.mark.asyncio
async def test_disable_discards_in_flight_fetch(service):
    async with QueryScheduler(service, LogFilter(search="slow")) as sched:
        task = sched.refresh()
        sched.enable_auto_refresh(1000)
        sched.disable_auto_refresh()
        await task
        assert sched.view.generation == 0
        assert sched.view.entries == []
        assert sched.view.loading is False


@pytest.mark.asyncio
async def test_filter_change_keeps_schedule(scheduler, service):
    scheduler.enable_auto_refresh(30)
    timer = scheduler._timer
    await scheduler.set_filter(LogFilter(levels=["info"]))
    assert scheduler._timer is timer
    assert scheduler.state == SchedulerState.SCHEDULED

    calls = service.calls
    await asyncio.sleep(0.1)
    assert service.calls > calls
    # Periodic ticks use the new filter
    assert _ids(scheduler.view.entries) == ["B"]


@pytest.mark.asyncio
async def test_reenable_replaces_timer(scheduler):
    scheduler.enable_auto_refresh(1000)
    first = scheduler._timer
    scheduler.enable_auto_refresh(20)
    await asyncio.sleep(0)
    assert first.cancelled()
    assert scheduler.interval_ms == 20


@pytest.mark.asyncio
async def test_non_positive_interval_rejected(scheduler):
    with pytest.raises(ValueError):
        scheduler.enable_auto_refresh(0)
    assert scheduler.state == SchedulerState.IDLE


# ── teardown ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_context_manager_stops_everything(service):
    async with QueryScheduler(service, interval_ms=10) as sched:
        sched.enable_auto_refresh()
        sched.set_filter(LogFilter(search="slow"))
        await asyncio.sleep(0.03)

    calls = service.calls
    await asyncio.sleep(0.1)
    assert service.calls == calls
    assert sched.state == SchedulerState.IDLE
    with pytest.raises(RuntimeError):
        sched.refresh()
    with pytest.raises(RuntimeError):
        sched.enable_auto_refresh()


@pytest.mark.asyncio
async def test_set_filter_on_closed_scheduler_keeps_filter(scheduler):
    await scheduler.aclose()
    old = scheduler.log_filter
    with pytest.raises(RuntimeError):
        scheduler.set_filter(LogFilter(levels=["error"]))
    assert scheduler.log_filter is old


@pytest.mark.asyncio
async def test_aclose_is_idempotent(scheduler):
    await scheduler.aclose()
    await scheduler.aclose()


# ── export ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_export_uses_current_view(scheduler):
    assert scheduler.export().count("\n") == 1  # header only before any fetch
    await scheduler.set_filter(LogFilter(levels=["error"]))
    lines = scheduler.export().splitlines()
    assert len(lines) == 2
    assert lines[1].startswith("2025-05-15T03:00:00.000Z,error,application,")


@pytest.mark.asyncio
async def test_view_matches_direct_evaluation(generated_store):
    service = LoggingService(generated_store)
    log_filter = LogFilter(tags=["audit"], search="token")
    async with QueryScheduler(service, log_filter) as sched:
        await sched.refresh()
        assert sched.view.entries == evaluate(generated_store, log_filter)
