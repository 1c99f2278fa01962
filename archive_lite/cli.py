"""Command-line entry point for archive-lite."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, List, Sequence

from .archiver import archive_url, ensure_storage_dirs
from .config import CaptureConfig, load_capture_config
from .errors import ArchiveError
from .lookup import get_entry, screenshot_file
from .models import ArchiveEntry
from .store import ArchiveStore

logger = logging.getLogger("archive_lite.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("archive", *argv)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding raw/, assets/ and screenshots/ (default: $ARCHIVE_DATA_DIR or ./data)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite database path (default: $ARCHIVE_DB_PATH or ./archive.db)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Capture web pages, their assets and a screenshot into a local archive.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    archive_parser = subparsers.add_parser("archive", help="Archive one or more URLs")
    archive_parser.add_argument("urls", nargs="+", help="One or more URLs to capture")
    archive_parser.add_argument(
        "--no-screenshot",
        action="store_true",
        help="Skip the headless browser snapshot",
    )
    _add_common_arguments(archive_parser)

    list_parser = subparsers.add_parser("list", help="List archived entries, newest first")
    list_parser.add_argument("--limit", type=int, default=None, help="Show at most this many entries")
    _add_common_arguments(list_parser)

    show_parser = subparsers.add_parser("show", help="Print one archived entry as JSON")
    show_parser.add_argument("id", help="Archive entry identifier")
    show_parser.add_argument(
        "--screenshot",
        action="store_true",
        help="Print the path of the entry's screenshot instead of its metadata",
    )
    _add_common_arguments(show_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _build_config(args: argparse.Namespace) -> CaptureConfig:
    config = load_capture_config()
    if args.data_dir is not None:
        config = dataclasses.replace(
            config,
            storage=dataclasses.replace(config.storage, data_dir=args.data_dir),
        )
    if args.db is not None:
        config = dataclasses.replace(config, db_path=args.db)
    if getattr(args, "no_screenshot", False):
        config = dataclasses.replace(config, screenshots_enabled=False)
    return config


def _open_store(config: CaptureConfig) -> ArchiveStore:
    store = ArchiveStore(config.db_path)
    store.initialize()
    return store


async def _archive_all(
    store: ArchiveStore, urls: Sequence[str], config: CaptureConfig
) -> List[ArchiveEntry]:
    entries: List[ArchiveEntry] = []
    for url in urls:
        try:
            entries.append(await archive_url(store, url, config=config))
        except ArchiveError as exc:
            logger.error("Failed to archive %s: %s", url, exc)
    return entries


def _run_archive(args: argparse.Namespace, config: CaptureConfig) -> int:
    store = _open_store(config)
    ensure_storage_dirs(config.storage)

    overall_start = time.perf_counter()
    entries = asyncio.run(_archive_all(store, args.urls, config))
    total_elapsed = time.perf_counter() - overall_start

    successes = len(entries)
    total_urls = len(args.urls)
    logger.info(
        "Finished in %.2fs (%d/%d succeeded, %d failed)",
        total_elapsed,
        successes,
        total_urls,
        total_urls - successes,
    )
    for entry in entries:
        sys.stdout.write(f"{entry.id}\t{entry.url}\t{entry.storage_path}\n")
    sys.stdout.flush()
    return 0 if successes == total_urls else 1


def _run_list(args: argparse.Namespace, config: CaptureConfig) -> int:
    store = _open_store(config)
    for entry in store.list_entries(limit=args.limit):
        title = entry.title or "-"
        sys.stdout.write(f"{entry.archived_at}\t{entry.id}\t{entry.url}\t{title}\n")
    sys.stdout.flush()
    return 0


def _run_show(args: argparse.Namespace, config: CaptureConfig) -> int:
    store = _open_store(config)
    try:
        if args.screenshot:
            sys.stdout.write(f"{screenshot_file(store, args.id)}\n")
            sys.stdout.flush()
            return 0
        entry = get_entry(store, args.id)
    except ArchiveError as exc:
        logger.error("%s", exc)
        return 1
    sys.stdout.write(json.dumps(entry.to_dict(), indent=2, ensure_ascii=False) + "\n")
    sys.stdout.flush()
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    config = _build_config(args)
    try:
        if args.command == "archive":
            code = _run_archive(args, config)
        elif args.command == "list":
            code = _run_list(args, config)
        else:
            code = _run_show(args, config)
    except ArchiveError as exc:
        logger.error("%s", exc)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
