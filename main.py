"""log-explorer: filter, summarize, and export an in-memory log store."""

import asyncio
import json
import logging
import os
import sys
from argparse import ArgumentParser
from datetime import datetime, timedelta, timezone
from itertools import islice

from log_explorer.config import Config
from log_explorer.errors import LogExplorerError
from log_explorer.export import export_filename, format_csv
from log_explorer.generator import generate_logs
from log_explorer.models import LogEntry, LogFilter, format_timestamp, parse_timestamp
from log_explorer.scheduler import QueryScheduler
from log_explorer.service import LoggingService
from log_explorer.stats import format_stats_json, format_stats_text
from log_explorer.store import LogStore

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="log-explorer",
        description="Filter, summarize, and export generated application logs.",
    )
    parser.add_argument("--config", help="Path to YAML config (default: $CONFIG_PATH or config.yaml)")
    parser.add_argument(
        "--level", action="append", default=[],
        help="Keep entries at this level (repeatable: debug, info, warning, error)",
    )
    parser.add_argument("--source", action="append", default=[], help="Keep entries from this source (repeatable)")
    parser.add_argument("--tag", action="append", default=[], help="Keep entries carrying this tag (repeatable)")
    parser.add_argument("--search", help="Case-insensitive keyword in message, application or source")
    parser.add_argument("--app", help="Exact application id (e.g. app1)")
    parser.add_argument("--env", help="Exact environment (e.g. production)")
    parser.add_argument("--since", help="Inclusive ISO-8601 start instant")
    parser.add_argument("--until", help="Inclusive ISO-8601 end instant")
    parser.add_argument(
        "--hours", type=float,
        help="Only the last N hours, 0 for all (default from config; ignored with --since/--until)",
    )
    parser.add_argument("--lines", type=int, help="Limit output to N entries")
    parser.add_argument(
        "--output", choices=["text", "json"], default="text",
        help="Output format (default: text)",
    )
    parser.add_argument("--stats", action="store_true", help="Show whole-store statistics instead of entries")
    parser.add_argument(
        "--export", metavar="PATH",
        help="Write matching entries as CSV to PATH ('-' for stdout, '.' for a generated name)",
    )
    parser.add_argument(
        "--watch", type=int, metavar="N",
        help="Keep auto-refreshing and print a summary for N refresh cycles",
    )
    parser.add_argument("--interval-ms", type=int, help="Auto-refresh interval for --watch")
    parser.add_argument("--seed", type=int, help="Seed for generated logs")
    parser.add_argument("--count", type=int, help="Number of generated logs")
    return parser


def build_filter(args, default_hours: float = 0, now: datetime | None = None) -> LogFilter:
    """Translate parsed args into a LogFilter.

    Without --since/--until the window is the last --hours (or
    ``default_hours``) hours; zero means no time window.
    """
    start = parse_timestamp(args.since) if args.since else None
    end = parse_timestamp(args.until) if args.until else None
    hours = args.hours if args.hours is not None else default_hours
    if start is None and end is None and hours > 0:
        end = now or datetime.now(timezone.utc)
        start = end - timedelta(hours=hours)

    return LogFilter(
        start_date=start,
        end_date=end,
        levels=args.level,
        sources=args.source,
        search=args.search,
        application_id=args.app,
        environment=args.env,
        tags=args.tag,
    ).validate()


def build_store(config: Config, args) -> LogStore:
    gen = config["generator"]
    seed = args.seed if args.seed is not None else gen["seed"]
    count = args.count if args.count is not None else gen["count"]
    entries = generate_logs(count=count, seed=seed, days=gen["days"])
    logger.info("Generated %d logs (seed=%d)", count, seed)
    return LogStore(entries)


def format_entry_text(entry: LogEntry) -> str:
    ts = format_timestamp(entry.timestamp)
    app = entry.application_name or "-"
    return f"[{ts}] {entry.level.upper():7s} {entry.source:11s} {app:20s} {entry.message}"


def format_entry_json(entry: LogEntry) -> str:
    """NDJSON, one JSON object per line."""
    return json.dumps(entry.to_dict())


def write_export(entries: list[LogEntry], target: str) -> None:
    csv_text = format_csv(entries)
    if target == "-":
        sys.stdout.write(csv_text)
        return
    path = export_filename() if target == "." else target
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(csv_text)
    logger.info("Exported %d logs to %s", len(entries), path)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )
    # basicConfig is a no-op once handlers exist
    logging.getLogger().setLevel(level)


async def watch(scheduler: QueryScheduler, cycles: int) -> None:
    """Print a one-line summary after each of ``cycles`` applied refreshes."""
    seen = scheduler.view.generation
    scheduler.enable_auto_refresh()
    try:
        for _ in range(cycles):
            while scheduler.view.generation == seen and not scheduler.view.error:
                await asyncio.sleep(scheduler.interval_ms / 4000)
            if scheduler.view.error:
                raise LogExplorerError(scheduler.view.error)
            seen = scheduler.view.generation
            view = scheduler.view
            print(
                f"[{format_timestamp(view.updated_at)}] {len(view.entries)} matching, "
                f"{view.stats.total_logs} total, {view.stats.error_count} errors"
            )
    finally:
        scheduler.disable_auto_refresh()


async def run_query(args, config: Config) -> None:
    """Fetch once through the scheduler, then print, export, or watch."""
    log_filter = build_filter(args, default_hours=config["query"]["default_hours"])
    store = build_store(config, args)
    service = LoggingService.from_config(store, config)
    interval = args.interval_ms or config.refresh_interval_ms

    async with QueryScheduler(service, log_filter, interval_ms=interval) as scheduler:
        await scheduler.refresh()
        view = scheduler.view
        if view.error:
            raise LogExplorerError(view.error)

        if args.watch:
            await watch(scheduler, args.watch)
            return

        if args.stats:
            if args.output == "json":
                print(format_stats_json(view.stats))
            else:
                print(format_stats_text(view.stats))
            return

        entries = view.entries
        if args.lines:
            entries = list(islice(entries, args.lines))

        if args.export:
            write_export(entries, args.export)
            return

        formatter = format_entry_json if args.output == "json" else format_entry_text
        for entry in entries:
            print(formatter(entry))
        print(f"\n--- {len(entries)} of {view.stats.total_logs} log(s) ---", file=sys.stderr)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(os.environ.get("LOG_LEVEL", "INFO").upper())
    config = Config.load(args.config)
    logging.getLogger().setLevel(config.log_level)

    try:
        asyncio.run(run_query(args, config))
    except (LogExplorerError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(0)
    except BrokenPipeError:
        sys.exit(0)
