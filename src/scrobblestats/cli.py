"""Command-line entry point: `scrobblestats <command>`."""

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path
from typing import Any

from scrobblestats import __version__
from scrobblestats.application.services import (
    CsvImportService,
    ListeningStatsService,
    NowPlayingService,
    ScrobbleSyncOrchestrator,
    SyncStatusTracker,
    build_sql_dump,
)
from scrobblestats.config import Settings, get_settings
from scrobblestats.domain.exceptions import ConfigurationError, DomainException
from scrobblestats.domain.value_objects import ScrobbleCsvParser
from scrobblestats.infrastructure.integrations import LastfmClient
from scrobblestats.infrastructure.observability import configure_logging
from scrobblestats.infrastructure.persistence import create_query_executor, init_schema


def _delimiter(value: str) -> str:
    if len(value) != 1:
        raise argparse.ArgumentTypeError(f"must be a single character, got {value!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="scrobblestats",
        description="Ingest Last.fm scrobbles (API or CSV export) and compute listening stats.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables and indexes if absent.")

    imp = sub.add_parser("import-csv", help="Import a scrobble CSV export into the store.")
    imp.add_argument("path", help="Path to the CSV file.")
    imp.add_argument(
        "--delimiter",
        type=_delimiter,
        default=None,
        help="Field delimiter (default: CSV_DELIMITER or ',').",
    )
    imp.add_argument("--force", action="store_true", help="Start even if a sync seems to be running.")

    sync = sub.add_parser("sync", help="Fetch new scrobbles from Last.fm.")
    sync.add_argument("--max-pages", type=int, default=None, help="Page budget (default: SYNC_MAX_PAGES).")
    sync.add_argument("--full", action="store_true", help="Ignore the high-water mark and walk all pages.")
    sync.add_argument("--force", action="store_true", help="Start even if a sync seems to be running.")

    dump = sub.add_parser("export-sql", help="Turn a CSV export into a SQL script for bulk loading.")
    dump.add_argument("path", help="Path to the CSV file.")
    dump.add_argument("-o", "--output", default=None, help="Write to this file instead of stdout.")
    dump.add_argument(
        "--delimiter",
        type=_delimiter,
        default=None,
        help="Field delimiter (default: CSV_DELIMITER or ',').",
    )
    dump.add_argument("--with-schema", action="store_true", help="Prepend CREATE TABLE statements.")

    stats = sub.add_parser("stats", help="Print the statistics payload as JSON.")
    stats.add_argument("--days", type=int, default=None, help="Window in days (default: STATS_WINDOW_DAYS).")

    sub.add_parser("status", help="Print the sync status row as JSON.")

    now = sub.add_parser("now-playing", help="Print the latest Last.fm tracks.")
    now.add_argument("--limit", type=int, default=3, help="Number of lines (default: 3).")

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return p


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


async def _init_db(settings: Settings) -> int:
    executor = create_query_executor(settings.store)
    try:
        await init_schema(executor, int(time.time()))
    finally:
        await executor.close()
    print("Schema ready.")
    return 0


async def _import_csv(settings: Settings, args: argparse.Namespace) -> int:
    path = Path(args.path)
    if not path.is_file():
        print(f"ERROR: input file not found: {path}", file=sys.stderr)
        return 2

    imports = settings.imports
    if args.delimiter:
        imports = imports.model_copy(update={"delimiter": args.delimiter})

    executor = create_query_executor(settings.store)
    try:
        service = CsvImportService(executor, imports, settings.sync.stale_after_seconds)
        result = await service.import_file(path, force=args.force)
    finally:
        await executor.close()

    print("Import complete.")
    print(f"Rows parsed:       {result.rows}")
    print(f"Artists / tracks:  {result.artists} / {result.tracks}")
    print(f"Processed:         {result.processed}")
    print(f"New scrobbles:     {result.inserted}")
    print(f"Errors:            {result.errors}")
    return 0


async def _sync(settings: Settings, args: argparse.Namespace) -> int:
    executor = create_query_executor(settings.store)
    try:
        async with LastfmClient(settings.lastfm) as client:
            orchestrator = ScrobbleSyncOrchestrator(client, executor, settings.sync)
            result = await orchestrator.sync(
                max_pages=args.max_pages,
                incremental=False if args.full else None,
                force=args.force,
            )
    finally:
        await executor.close()

    print("Sync complete.")
    print(f"Pages fetched:  {result.pages_fetched}")
    print(f"Processed:      {result.processed}")
    print(f"New scrobbles:  {result.inserted}")
    print(f"Errors:         {result.errors}")
    print(f"Stopped on:     {result.stop_reason}")
    return 0


def _export_sql(settings: Settings, args: argparse.Namespace) -> int:
    path = Path(args.path)
    if not path.is_file():
        print(f"ERROR: input file not found: {path}", file=sys.stderr)
        return 2

    parser = ScrobbleCsvParser(
        delimiter=args.delimiter or settings.imports.delimiter,
        loose=settings.imports.loose_timestamp_detection,
    )
    rows = parser.parse_file(path)
    lines = build_sql_dump(rows, include_schema=args.with_schema)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as out:
            for line in lines:
                out.write(line + "\n")
        print(f"Wrote {len(rows)} scrobbles to {args.output}", file=sys.stderr)
    else:
        for line in lines:
            print(line)
    return 0


async def _stats(settings: Settings, args: argparse.Namespace) -> int:
    executor = create_query_executor(settings.store)
    try:
        stats = await ListeningStatsService(executor, settings.stats).get_listening_stats(args.days)
    finally:
        await executor.close()
    _print_json(stats.to_dict())
    return 0


async def _status(settings: Settings) -> int:
    executor = create_query_executor(settings.store)
    try:
        meta = await SyncStatusTracker(executor, settings.sync.stale_after_seconds).current()
    finally:
        await executor.close()
    _print_json(meta.to_dict())
    return 0


async def _now_playing(settings: Settings, args: argparse.Namespace) -> int:
    async with LastfmClient(settings.lastfm) as client:
        lines = await NowPlayingService(client).get_summaries(args.limit)
    for line in lines:
        print(line)
    return 0


def _serve(settings: Settings, args: argparse.Namespace) -> int:
    import uvicorn

    from scrobblestats.api import create_app

    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)
    return 0


_REQUIREMENTS: dict[str, tuple[Any, ...]] = {
    "init-db": ("store",),
    "import-csv": ("store",),
    "sync": ("store", "lastfm"),
    "export-sql": (),
    "stats": ("store",),
    "status": ("store",),
    "now-playing": ("lastfm",),
    "serve": (),
}


def run(args: argparse.Namespace, settings: Settings) -> int:
    """Dispatch one parsed command."""
    settings.require(*_REQUIREMENTS[args.command])

    if args.command == "init-db":
        return asyncio.run(_init_db(settings))
    if args.command == "import-csv":
        return asyncio.run(_import_csv(settings, args))
    if args.command == "sync":
        return asyncio.run(_sync(settings, args))
    if args.command == "export-sql":
        return _export_sql(settings, args)
    if args.command == "stats":
        return asyncio.run(_stats(settings, args))
    if args.command == "status":
        return asyncio.run(_status(settings))
    if args.command == "now-playing":
        return asyncio.run(_now_playing(settings, args))
    return _serve(settings, args)


def main(argv: list[str] | None = None, settings: Settings | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    try:
        return run(args, settings)
    except ConfigurationError as e:
        print(e.message, file=sys.stderr)
        for name in e.missing:
            print(f"  - {name}", file=sys.stderr)
        return 1
    except DomainException as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
