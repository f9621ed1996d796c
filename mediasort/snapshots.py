"""
Rebuild snapshot files written beside the store.

Names (for a store "db.json"):
- 2026.10.19.14.03.52.db.json   full map of the rebuild (timestamped)
- duplicates.db.json            duplicates seen during the rebuild
- new_since_last.db.json        hashes absent from the store loaded before it

Timestamped snapshots are pruned to the newest N after each rebuild.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Mapping

import structlog

from config.exceptions import StoreSaveError
from mediasort.store import write_mapping

logger = structlog.get_logger(__name__)

TIMESTAMP_FORMAT = "%Y.%m.%d.%H.%M.%S"
DUPLICATES_PREFIX = "duplicates."
NEW_SINCE_LAST_PREFIX = "new_since_last."
_TIMESTAMP_PREFIX = r"\d{4}\.\d{2}\.\d{2}\.\d{2}\.\d{2}\.\d{2}\."


@dataclass(frozen=True)
class SnapshotPaths:
    full: Path
    duplicates: Path
    new_since_last: Path


def snapshot_paths(store_path: str | os.PathLike, when: datetime) -> SnapshotPaths:
    """Snapshot file names for a store, timestamped with when."""
    store_path = Path(store_path)
    directory, name = store_path.parent, store_path.name
    return SnapshotPaths(
        full=directory / f"{when.strftime(TIMESTAMP_FORMAT)}.{name}",
        duplicates=directory / f"{DUPLICATES_PREFIX}{name}",
        new_since_last=directory / f"{NEW_SINCE_LAST_PREFIX}{name}",
    )


def write_snapshot(path: Path, mapping: Mapping[str, str]) -> bool:
    """
    Write one snapshot. Failures are logged, not raised.

    Returns:
        True if written
    """
    try:
        write_mapping(path, mapping)
    except StoreSaveError as e:
        logger.error("snapshot_save_failed", path=str(path), error=str(e))
        return False
    logger.info("snapshot_saved", path=str(path), entries=len(mapping))
    return True


def timestamped_snapshots(store_path: str | os.PathLike) -> list[Path]:
    """Timestamped snapshots of a store, oldest first."""
    store_path = Path(store_path)
    pattern = re.compile(_TIMESTAMP_PREFIX + re.escape(store_path.name) + "$")
    try:
        candidates = [p for p in store_path.parent.iterdir() if pattern.match(p.name)]
    except OSError as e:
        logger.warning("snapshot_listing_failed", directory=str(store_path.parent), error=str(e))
        return []
    return sorted(candidates, key=lambda p: p.name)


def prune_snapshots(store_path: str | os.PathLike, keep: int) -> list[Path]:
    """
    Delete timestamped snapshots beyond the newest keep.

    Args:
        store_path: Configured store file
        keep: Snapshots to keep; 0 keeps everything

    Returns:
        Snapshots actually removed
    """
    if keep <= 0:
        return []

    snapshots = timestamped_snapshots(store_path)
    removed: list[Path] = []
    for old in snapshots[:-keep]:
        try:
            old.unlink()
        except OSError as e:
            logger.warning("snapshot_prune_failed", path=str(old), error=str(e))
            continue
        removed.append(old)

    if removed:
        logger.info("snapshots_pruned", removed=len(removed), kept=keep)
    return removed
