"""
Path sources feeding the hash pipeline.

- iter_input_paths: explicit list (ingest mode), input order, once each
- walk_regular_files: lexical depth-first walk (rebuild mode), regular files only
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Iterator, Optional

import structlog

logger = structlog.get_logger(__name__)


class WalkErrors:
    """Errors met during a walk; never fatal."""

    def __init__(self):
        self.count: int = 0
        self.first: Optional[OSError] = None

    def record(self, error: OSError) -> None:
        self.count += 1
        if self.first is None:
            self.first = error

    def __bool__(self) -> bool:
        return self.count > 0


def iter_input_paths(paths: Iterable[str | os.PathLike]) -> Iterator[Path]:
    """Yield each input path once, in input order."""
    for p in paths:
        yield Path(p)


def walk_regular_files(root: str | os.PathLike, errors: Optional[WalkErrors] = None) -> Iterator[Path]:
    """
    Walk root depth-first in lexical order, yielding regular files.

    Directories are descended into, symlinks and special files (FIFOs,
    sockets, devices) are skipped. Entry errors are logged and recorded in
    errors; the walk moves on. The overall result is logged once at the end.

    Args:
        root: Directory to walk
        errors: Accumulator for entry errors (a private one is used if None)
    """
    errors = errors if errors is not None else WalkErrors()
    root = Path(root)

    logger.info("walk_started", root=str(root))
    yield from _walk(root, errors)

    if errors:
        logger.warning(
            "walk_completed_with_errors",
            root=str(root),
            errors=errors.count,
            first_error=str(errors.first),
        )
    else:
        logger.info("walk_completed", root=str(root))


def _walk(directory: Path, errors: WalkErrors) -> Iterator[Path]:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        errors.record(e)
        logger.warning("walk_entry_error", path=str(directory), error=str(e))
        return

    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                is_dir, is_file = True, False
            else:
                is_dir, is_file = False, entry.is_file(follow_symlinks=False)
        except OSError as e:
            errors.record(e)
            logger.warning("walk_entry_error", path=entry.path, error=str(e))
            continue

        if is_dir:
            yield from _walk(Path(entry.path), errors)
        elif is_file:
            yield Path(entry.path)
        else:
            logger.debug("walk_skipped_special_file", path=entry.path)
