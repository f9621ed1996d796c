"""
Reconciler: rebuilds the dedup store from a full rescan.

For each hashed file:
- first sighting of a hash -> new_map (and not_present_in_old_map if the
  store loaded at start did not know it)
- later sighting -> duplicate_map (the latest duplicate path wins)

At the end the in-memory store becomes new_map and three snapshots are
written beside the store file. The store file itself is left alone.
"""

from __future__ import annotations

import os
from contextlib import aclosing
from datetime import datetime
from pathlib import Path
from typing import Callable, Mapping, Optional

import structlog

from mediasort.models import FileRecord, RebuildReport, ReconciliationSnapshot
from mediasort.pipeline import HashPipeline
from mediasort.session import RunSession
from mediasort.snapshots import prune_snapshots, snapshot_paths, write_snapshot
from mediasort.source import WalkErrors, walk_regular_files

logger = structlog.get_logger(__name__)


class Reconciler:
    """
    Single-writer aggregator for rebuild mode.

    Attributes:
        session: Run session (config + store)
        previous: Store content as loaded before the rebuild
        snapshot: Maps being built
    """

    def __init__(self, session: RunSession, clock: Callable[[], datetime] = datetime.now):
        self.session = session
        self.clock = clock
        self.previous: Mapping[str, str] = session.store.snapshot()
        self.snapshot = ReconciliationSnapshot()

    async def run(self, root: Optional[str | os.PathLike] = None) -> RebuildReport:
        """
        Walk root (default: config rebuild root), rebuild the store, write snapshots.

        Returns:
            RebuildReport with counters and snapshot paths
        """
        config = self.session.config
        walk_root = Path(root) if root is not None else config.rebuild_root
        walk_errors = WalkErrors()
        pipeline = HashPipeline(
            walk_regular_files(walk_root, walk_errors),
            workers=config.workers,
            chunk_size=config.chunk_size,
        )

        logger.info(
            "rebuild_started",
            root=str(walk_root),
            previous_entries=len(self.previous),
            workers=pipeline.workers,
        )

        scanned = 0
        async with aclosing(pipeline.records()) as records:
            async for record in records:
                scanned += 1
                self.observe(record)

        report = self.finish(walk_root)
        report.scanned = scanned
        report.walk_errors = walk_errors.count
        return report

    def observe(self, record: FileRecord) -> None:
        """Fold one record into the maps."""
        content_hash = record.content_hash
        path = str(record.path)
        snap = self.snapshot

        if content_hash in snap.new_map:
            logger.info(
                "rebuild_duplicate",
                canonical=snap.new_map[content_hash],
                file_path=path,
                content_hash=content_hash,
            )
            snap.duplicate_map[content_hash] = path
            return

        if content_hash not in self.previous:
            logger.debug("rebuild_not_in_previous_store", file_path=path, content_hash=content_hash)
            snap.not_present_in_old_map[content_hash] = path

        snap.new_map[content_hash] = path

    def finish(self, root: Path) -> RebuildReport:
        """Swap the store content and write the three snapshots."""
        config = self.session.config
        snap = self.snapshot

        self.session.store.replace_all(snap.new_map)

        paths = snapshot_paths(config.store_path, self.clock())
        report = RebuildReport(
            root=root,
            unique=len(snap.new_map),
            duplicates=len(snap.duplicate_map),
            new_since_last=len(snap.not_present_in_old_map),
        )
        if write_snapshot(paths.full, snap.new_map):
            report.snapshot_path = paths.full
        if write_snapshot(paths.duplicates, snap.duplicate_map):
            report.duplicates_path = paths.duplicates
        if write_snapshot(paths.new_since_last, snap.not_present_in_old_map):
            report.new_since_last_path = paths.new_since_last

        report.pruned_snapshots = prune_snapshots(config.store_path, config.snapshot_retention)

        logger.info(
            "rebuild_completed",
            unique=report.unique,
            duplicates=report.duplicates,
            new_since_last=report.new_since_last,
            snapshot=str(report.snapshot_path),
        )
        for content_hash, path in snap.duplicate_map.items():
            logger.info("rebuild_duplicate_summary", content_hash=content_hash, file_path=path)

        return report
