"""
Concurrent hashing pipeline.

One producer task feeds a bounded path queue, P worker tasks hash files
(SHA256, chunked, in a thread each) and feed a bounded result queue, and the
caller consumes FileRecords through HashPipeline.records().

Close is signalled with a sentinel: the producer pushes one per worker after
the last path, and the pool pushes one on the result queue once every worker
has returned (join barrier).

A file that cannot be opened or read yields no FileRecord.
"""

from __future__ import annotations

import asyncio
import hashlib
import heapq
import os
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Iterable, Optional

import structlog

from mediasort.models import FileRecord

logger = structlog.get_logger(__name__)

DEFAULT_CHUNK_SIZE = 65536

_CLOSED = object()


@dataclass(frozen=True)
class HashJob:
    """A path waiting to be hashed."""

    sequence: int
    path: Path


@dataclass(frozen=True)
class HashFailure:
    """Marker for a path that could not be hashed. Never leaves the pipeline."""

    sequence: int
    path: Path
    error: str


def hash_file(path: str | os.PathLike, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    SHA256 of a file's full content (chunked).

    Raises:
        OSError: If the file cannot be opened or read
    """
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def worker_count(input_count: Optional[int] = None, ceiling: Optional[int] = None) -> int:
    """
    Number of hash workers: min(cores, max(1, inputs)).

    Args:
        input_count: Number of paths if known (None for a walk)
        ceiling: Overrides the CPU count
    """
    cores = ceiling or os.cpu_count() or 1
    if input_count is None:
        return cores
    return min(cores, max(1, input_count))


def _cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class HashPipeline:
    """
    Producer -> worker pool -> results, for one batch of paths.

    Attributes:
        workers: Number of worker tasks (P)
        ordered: Deliver records in submission order
        submitted / hashed / failed: Counters, final once records() is exhausted
    """

    def __init__(
        self,
        paths: Iterable[Path],
        input_count: Optional[int] = None,
        workers: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        ordered: bool = True,
    ):
        """
        Args:
            paths: Path source (consumed lazily, off the event loop)
            input_count: Number of paths if known, caps the worker count
            workers: Worker ceiling (defaults to CPU count)
            chunk_size: Read block size
            ordered: Yield records by submission sequence instead of arrival
        """
        self._paths = paths
        self.workers = worker_count(input_count, workers)
        self.chunk_size = chunk_size
        self.ordered = ordered
        self.submitted = 0
        self.hashed = 0
        self.failed = 0

    async def records(self) -> AsyncIterator[FileRecord]:
        """
        Run the pipeline, yielding one FileRecord per successfully hashed file.

        Close with contextlib.aclosing() when stopping early so the producer
        and the workers are cancelled.
        """
        path_queue: asyncio.Queue = asyncio.Queue(maxsize=self.workers)
        result_queue: asyncio.Queue = asyncio.Queue(maxsize=self.workers)

        logger.debug("pipeline_started", workers=self.workers, ordered=self.ordered)

        producer = asyncio.create_task(self._produce(path_queue))
        pool = asyncio.create_task(self._run_pool(path_queue, result_queue))
        try:
            async for record in self._collect(result_queue):
                yield record
            await pool
            await producer
        finally:
            for task in (producer, pool):
                if not task.done():
                    task.cancel()
            await asyncio.gather(producer, pool, return_exceptions=True)

        logger.info(
            "pipeline_completed",
            submitted=self.submitted,
            hashed=self.hashed,
            failed=self.failed,
            workers=self.workers,
        )

    async def _produce(self, path_queue: asyncio.Queue) -> None:
        """Feed (sequence, path) jobs; the walk advances in a thread."""
        iterator = iter(self._paths)
        try:
            while True:
                path = await asyncio.to_thread(next, iterator, _CLOSED)
                if path is _CLOSED:
                    break
                await path_queue.put(HashJob(self.submitted, Path(path)))
                self.submitted += 1
        finally:
            if not _cancelling():
                for _ in range(self.workers):
                    await path_queue.put(_CLOSED)

    async def _run_pool(self, path_queue: asyncio.Queue, result_queue: asyncio.Queue) -> None:
        """Start P workers, wait for all of them, then close the result queue."""
        tasks = [
            asyncio.create_task(self._work(i, path_queue, result_queue))
            for i in range(self.workers)
        ]
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if not _cancelling():
                await result_queue.put(_CLOSED)

    async def _work(
        self, worker_id: int, path_queue: asyncio.Queue, result_queue: asyncio.Queue
    ) -> None:
        while True:
            job = await path_queue.get()
            if job is _CLOSED:
                return

            try:
                digest = await asyncio.to_thread(hash_file, job.path, self.chunk_size)
            except OSError as e:
                self.failed += 1
                logger.error(
                    "hash_failed",
                    file_path=str(job.path),
                    error=str(e),
                    worker=worker_id,
                )
                await result_queue.put(HashFailure(job.sequence, job.path, str(e)))
                continue

            self.hashed += 1
            await result_queue.put(
                FileRecord(path=job.path, content_hash=digest, sequence=job.sequence)
            )

    async def _collect(self, result_queue: asyncio.Queue) -> AsyncIterator[FileRecord]:
        """Drain results, reordering by sequence when ordered."""
        pending: list[tuple[int, object]] = []
        next_sequence = 0

        while True:
            item = await result_queue.get()
            if item is _CLOSED:
                break

            if not self.ordered:
                if isinstance(item, FileRecord):
                    yield item
                continue

            heapq.heappush(pending, (item.sequence, item))
            while pending and pending[0][0] == next_sequence:
                _, ready = heapq.heappop(pending)
                next_sequence += 1
                if isinstance(ready, FileRecord):
                    yield ready

        # Gaps only remain if a worker died mid-job.
        while pending:
            _, ready = heapq.heappop(pending)
            if isinstance(ready, FileRecord):
                yield ready
