"""
Ingestion driver: files new content into category roots.

Single writer: this is the only place the store changes during an ingest run,
so the store needs no locking.
"""

from __future__ import annotations

import os
from contextlib import aclosing
from pathlib import Path
from typing import Optional, Sequence

import structlog

from mediasort.classifier import ExtensionClassifier
from mediasort.models import FileRecord, IngestReport, MoveStatus
from mediasort.mover import FileMover
from mediasort.pipeline import HashPipeline
from mediasort.session import RunSession
from mediasort.source import iter_input_paths

logger = structlog.get_logger(__name__)


class IngestionDriver:
    """
    Consumes hashed files and either rejects them as duplicates or moves them.

    - hash known: log, leave the file where it is, store unchanged
    - hash new: classify, move to <category root>/<file name>, register on success
    """

    def __init__(
        self,
        session: RunSession,
        classifier: Optional[ExtensionClassifier] = None,
        mover: Optional[FileMover] = None,
    ):
        self.session = session
        self.classifier = classifier or ExtensionClassifier(session.config.category_table())
        self.mover = mover or FileMover(chunk_size=session.config.chunk_size)

    async def run(self, paths: Sequence[str | os.PathLike]) -> IngestReport:
        """
        Hash and ingest a batch of files.

        Args:
            paths: Input files, submitted in this order

        Returns:
            IngestReport with counters
        """
        config = self.session.config
        report = IngestReport()
        pipeline = HashPipeline(
            iter_input_paths(paths),
            input_count=len(paths),
            workers=config.workers,
            chunk_size=config.chunk_size,
        )

        logger.info("ingest_started", files=len(paths), workers=pipeline.workers)

        async with aclosing(pipeline.records()) as records:
            async for record in records:
                await self.handle(record, report)

        report.failed += pipeline.failed
        logger.info(
            "ingest_completed",
            received=report.received,
            moved=report.moved,
            duplicates=report.duplicates,
            failed=report.failed,
            removal_failed=report.removal_failed,
            store_entries=len(self.session.store),
        )
        return report

    async def handle(self, record: FileRecord, report: IngestReport) -> None:
        """Process one record."""
        store = self.session.store
        report.received += 1

        canonical = store.get(record.content_hash)
        if canonical is not None:
            report.duplicates += 1
            logger.info(
                "ingest_duplicate",
                canonical=canonical,
                file_path=str(record.path),
                content_hash=record.content_hash,
            )
            return

        category = self.classifier.classify(record.path)
        destination = Path(self.session.config.category_root(category)) / record.path.name

        outcome = await self.mover.move(record.path, destination, expected_hash=record.content_hash)
        if not outcome.success:
            report.failed += 1
            if outcome.status is MoveStatus.source_removal_failed:
                report.removal_failed += 1
            logger.error(
                "ingest_move_failed",
                file_path=str(record.path),
                destination=str(outcome.destination or destination),
                status=outcome.status.value,
                error=outcome.error,
            )
            return

        store.register(record.content_hash, outcome.destination)
        report.moved += 1
        report.moved_files.append((str(record.path), str(outcome.destination)))
        logger.info(
            "ingest_moved",
            file_path=str(record.path),
            destination=str(outcome.destination),
            category=category.value,
        )
