#!/usr/bin/env python3
"""
mediasort command line.

Usage:
    # Ingest: file new content into the category roots
    mediasort -c cfg.json photo.jpg song.mp3 clip.mp4

    # Rebuild: rescan the library and write snapshots beside the store
    mediasort -c cfg.json --rebuild
    mediasort -c cfg.json --rebuild --root /data/library
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

import structlog

from config.exceptions import ConfigLoadError, StoreLoadError
from config.logging import LOG_LEVELS, configure_from_env
from mediasort.ingest import IngestionDriver
from mediasort.reconciler import Reconciler
from mediasort.session import RunSession

logger = structlog.get_logger("mediasort")

EXIT_OK = 0
EXIT_STARTUP_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mediasort",
        description="Sort files into category folders, skipping content already known",
    )
    parser.add_argument(
        "-c", "--config", default="cfg.json", help="Path to config file (default: cfg.json)"
    )
    parser.add_argument(
        "-u", "--rebuild", action="store_true", help="Re-evaluate hashes for all library files"
    )
    parser.add_argument("--root", help="Rebuild walk root (overrides config)")
    parser.add_argument(
        "--log-level", type=str.upper, choices=LOG_LEVELS, default=None, help="Log level"
    )
    parser.add_argument(
        "--log-format", choices=["json", "console"], default=None, help="Log output format"
    )
    parser.add_argument("files", nargs="*", help="Files to ingest")
    return parser


async def run_ingest(session: RunSession, files: Sequence[str]) -> int:
    report = await IngestionDriver(session).run(files)
    session.persist()
    logger.info("run_summary", mode="ingest", **report.model_dump(exclude={"moved_files"}))
    return EXIT_OK


async def run_rebuild(session: RunSession, root: Optional[str]) -> int:
    report = await Reconciler(session).run(root)
    logger.info("run_summary", mode="rebuild", **report.model_dump(mode="json"))
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.root and not args.rebuild:
        parser.error("--root only applies to --rebuild")
    if args.rebuild and args.files:
        parser.error("--rebuild does not take input files")

    try:
        configure_from_env(level=args.log_level, log_format=args.log_format)
    except ValueError as e:
        parser.error(str(e))

    try:
        session = RunSession.open(args.config)
    except (ConfigLoadError, StoreLoadError) as e:
        logger.error("startup_failed", config=args.config, error=str(e))
        return EXIT_STARTUP_FAILED

    if args.rebuild:
        return asyncio.run(run_rebuild(session, args.root))
    return asyncio.run(run_ingest(session, args.files))


if __name__ == "__main__":
    sys.exit(main())
