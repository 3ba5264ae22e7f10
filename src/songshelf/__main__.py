"""
songshelf command-line entry point.

Usage:
    python -m songshelf [run]          Start the scan worker and keep it running
    python -m songshelf scan           Run a single scan + enrichment pass and exit
    python -m songshelf list           Print the catalog
    python -m songshelf search <text>  Search title/artist/album
"""

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from songshelf.config import Settings
from songshelf.domain.exceptions import ConfigurationError
from songshelf.infrastructure.lifecycle import lifespan

logger = logging.getLogger("songshelf")


def _load_settings(args: argparse.Namespace) -> Settings:
    # Overrides go through the model so a bad --log-level fails like a bad LOG_LEVEL.
    overrides: dict[str, Any] = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        problems = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        raise ConfigurationError(f"Invalid settings: {problems}") from e
    if args.music_dir:
        settings.storage.music_path = Path(args.music_dir)
    return settings


async def cmd_run(args: argparse.Namespace) -> int:
    """Run the scheduled scan worker until SIGINT/SIGTERM."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Windows event loops have no signal handlers, Ctrl+C still raises there.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    async with lifespan(_load_settings(args)) as runtime:
        if args.scan_now:
            await runtime.worker.trigger_scan()
        await stop.wait()
    return 0


async def cmd_scan(args: argparse.Namespace) -> int:
    """Run one pass and print its statistics as JSON."""
    async with lifespan(_load_settings(args), start_worker=False) as runtime:
        stats = await runtime.worker.trigger_scan()
    print(json.dumps(stats.to_dict() if stats else {}, indent=2))
    return 0


async def cmd_list(args: argparse.Namespace) -> int:
    async with lifespan(_load_settings(args), start_worker=False) as runtime:
        if args.query is None:
            songs = await runtime.view.list_songs(limit=args.limit)
        else:
            songs = await runtime.view.search_songs(args.query, limit=args.limit)

    for song in songs:
        flags = "L" if song.has_lyrics else "-"
        flags += "C" if song.has_cover else "-"
        print(f"{song.id:>6}  [{flags}]  {song.artist} - {song.title}  ({song.album}, {song.duration}s)")
    print(f"\n{len(songs)} songs")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="songshelf",
        description="Personal music library with background scanning and lyrics/cover enrichment",
    )
    parser.add_argument("--music-dir", help="Override STORAGE__MUSIC_PATH")
    parser.add_argument("--log-level", help="Override LOG_LEVEL (DEBUG, INFO, ...)")

    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Start the scan worker (default)")
    run_parser.add_argument("--scan-now", action="store_true", help="Scan once right after startup")
    run_parser.set_defaults(func=cmd_run)

    scan_parser = subparsers.add_parser("scan", help="Run one scan pass and exit")
    scan_parser.set_defaults(func=cmd_scan)

    list_parser = subparsers.add_parser("list", help="Print the catalog")
    list_parser.add_argument("--limit", type=int, default=None)
    list_parser.set_defaults(func=cmd_list, query=None)

    search_parser = subparsers.add_parser("search", help="Search title/artist/album")
    search_parser.add_argument("query")
    search_parser.add_argument("--limit", type=int, default=None)
    search_parser.set_defaults(func=cmd_list)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args([*(argv if argv is not None else sys.argv[1:]), "run"])

    try:
        return asyncio.run(args.func(args))
    except ConfigurationError as e:
        logger.critical(e.message)
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
