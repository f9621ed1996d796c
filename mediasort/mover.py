"""
Verified copy-then-delete relocation of a file.

Each failure kind maps to its own MoveStatus so callers can tell
"nothing happened" apart from "content now exists twice on disk".
"""

import asyncio
import hashlib
import os
import shutil
import uuid
from pathlib import Path
from typing import Optional

import structlog

from config.exceptions import (
    CopyError,
    DestinationConflictError,
    DestinationOpenError,
    MoveError,
    SourceOpenError,
    SourceRemovalError,
)
from mediasort.models import MoveOutcome, MoveStatus
from mediasort.pipeline import hash_file

logger = structlog.get_logger(__name__)

HASH_FRAGMENT_LEN = 12

_STATUS_BY_ERROR = {
    SourceOpenError: MoveStatus.source_open_failed,
    DestinationOpenError: MoveStatus.destination_open_failed,
    CopyError: MoveStatus.copy_failed,
    SourceRemovalError: MoveStatus.source_removal_failed,
    DestinationConflictError: MoveStatus.destination_conflict,
}


class FileMover:
    """
    Moves files via a temp file: copy -> verify -> rename -> delete source.

    The source is only removed once the destination holds the complete copy.
    An existing destination is never overwritten: the name gets a hash
    fragment, and if that is taken too the move fails with a conflict.
    """

    def __init__(self, chunk_size: int = 65536):
        self.chunk_size = chunk_size

    async def move(
        self,
        source: Path,
        destination: Path,
        expected_hash: Optional[str] = None,
    ) -> MoveOutcome:
        """
        Relocate source to destination.

        Args:
            source: File to move
            destination: Wanted destination path
            expected_hash: SHA256 the copied bytes must match (optional)

        Returns:
            MoveOutcome; status is MoveStatus.moved on full success
        """
        source = Path(source)
        destination = Path(destination)
        try:
            final_dest = await asyncio.to_thread(
                self.relocate, source, destination, expected_hash
            )
        except MoveError as e:
            status = _STATUS_BY_ERROR[type(e)]
            return MoveOutcome(
                source=source,
                destination=e.destination,
                status=status,
                error=str(e),
            )

        return MoveOutcome(source=source, destination=final_dest, status=MoveStatus.moved)

    def relocate(
        self,
        source: Path,
        destination: Path,
        expected_hash: Optional[str] = None,
    ) -> Path:
        """
        Blocking relocation.

        Returns:
            Final destination path (may carry a hash fragment)

        Raises:
            SourceOpenError, DestinationOpenError, CopyError,
            DestinationConflictError, SourceRemovalError
        """
        try:
            src = open(source, "rb")
        except OSError as e:
            raise SourceOpenError(
                f"couldn't open source file: {e}", source, destination
            ) from e

        with src:
            final_dest = self._resolve_destination(source, destination, expected_hash)
            tmp_dest = final_dest.parent / f".{final_dest.name}.{uuid.uuid4().hex[:8]}.tmp"

            try:
                final_dest.parent.mkdir(parents=True, exist_ok=True)
                dst = open(tmp_dest, "xb")
            except OSError as e:
                raise DestinationOpenError(
                    f"couldn't open dest file: {e}", source, final_dest
                ) from e

            try:
                with dst:
                    digest = self._copy(src, dst)
                if expected_hash is not None and digest != expected_hash:
                    raise CopyError(
                        f"content changed since hashing: expected {expected_hash}, copied {digest}",
                        source,
                        final_dest,
                    )
                self._copy_stat(source, tmp_dest)
                tmp_dest.rename(final_dest)
            except CopyError:
                self._discard(tmp_dest)
                raise
            except OSError as e:
                self._discard(tmp_dest)
                raise CopyError(
                    f"writing to output file failed: {e}", source, final_dest
                ) from e

        try:
            os.unlink(source)
        except OSError as e:
            logger.error(
                "move_source_removal_failed",
                source=str(source),
                destination=str(final_dest),
                error=str(e),
            )
            raise SourceRemovalError(
                f"failed removing original file: {e}", source, final_dest
            ) from e

        return final_dest

    def _copy(self, src, dst) -> str:
        """Copy src -> dst in chunks, returning the SHA256 of the copied bytes."""
        sha256 = hashlib.sha256()
        while chunk := src.read(self.chunk_size):
            dst.write(chunk)
            sha256.update(chunk)
        return sha256.hexdigest()

    def _resolve_destination(
        self, source: Path, destination: Path, expected_hash: Optional[str]
    ) -> Path:
        """
        Pick a destination that does not exist yet.

        Collisions get "<stem>_<hash fragment><suffix>".
        """
        if not destination.exists():
            return destination

        content_hash = expected_hash
        if content_hash is None:
            try:
                content_hash = hash_file(source, self.chunk_size)
            except OSError as e:
                raise SourceOpenError(
                    f"couldn't read source file: {e}", source, destination
                ) from e

        fragment = content_hash[:HASH_FRAGMENT_LEN]
        alternate = destination.with_name(f"{destination.stem}_{fragment}{destination.suffix}")
        if alternate.exists():
            raise DestinationConflictError(
                f"destination taken: {destination} and {alternate} both exist",
                source,
                alternate,
            )

        logger.info(
            "naming_conflict_resolved",
            original=str(destination),
            renamed=str(alternate),
        )
        return alternate

    @staticmethod
    def _copy_stat(source: Path, dest: Path) -> None:
        try:
            shutil.copystat(source, dest)
        except OSError as e:
            logger.debug("copystat_failed", source=str(source), error=str(e))

    @staticmethod
    def _discard(tmp_dest: Path) -> None:
        try:
            tmp_dest.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("partial_copy_cleanup_failed", path=str(tmp_dest), error=str(e))
