"""
Pydantic models for mediasort.

Models:
- Category: Destination category of a file
- FileRecord: One hashed file produced by the pipeline
- MoveOutcome: Result of a single relocation
- ReconciliationSnapshot: The three maps built during a rebuild pass
- IngestReport / RebuildReport: Run counters
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


class Category(str, Enum):
    """Destination category of a file."""

    image = "image"
    audio = "audio"
    video = "video"
    unknown = "unknown"


class MoveStatus(str, Enum):
    """Outcome kind of a relocation."""

    moved = "moved"
    source_open_failed = "source_open_failed"
    destination_open_failed = "destination_open_failed"
    copy_failed = "copy_failed"
    source_removal_failed = "source_removal_failed"
    destination_conflict = "destination_conflict"


class FileRecord(BaseModel):
    """A file and the SHA256 digest of its full content."""

    path: Path
    content_hash: str = Field(description="SHA256 hex digest (lowercase)")
    sequence: int = Field(
        default=0,
        ge=0,
        description="Submission index of the path in its source",
    )

    @field_validator("content_hash")
    @classmethod
    def validate_content_hash(cls, v: str) -> str:
        """Content hash must be a 64-char lowercase hex digest."""
        if not _SHA256_HEX.match(v):
            raise ValueError(f"content_hash must be a SHA256 hex digest, got: {v!r}")
        return v


class MoveOutcome(BaseModel):
    """Result of a move (copy, verify, remove source)."""

    source: Path
    destination: Optional[Path] = None
    status: MoveStatus
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is MoveStatus.moved

    @property
    def content_duplicated(self) -> bool:
        """True when the copy landed but the source is still on disk."""
        return self.status is MoveStatus.source_removal_failed


class ReconciliationSnapshot(BaseModel):
    """Maps built by one rebuild pass (hash -> path)."""

    new_map: dict[str, str] = Field(default_factory=dict)
    duplicate_map: dict[str, str] = Field(default_factory=dict)
    not_present_in_old_map: dict[str, str] = Field(default_factory=dict)


class IngestReport(BaseModel):
    """Counters for an ingest run."""

    received: int = 0
    moved: int = 0
    duplicates: int = 0
    failed: int = 0
    removal_failed: int = 0
    moved_files: list[tuple[str, str]] = Field(default_factory=list)  # (source, destination)


class RebuildReport(BaseModel):
    """Counters for a rebuild run."""

    root: Path
    scanned: int = 0
    unique: int = 0
    duplicates: int = 0
    new_since_last: int = 0
    walk_errors: int = 0
    snapshot_path: Optional[Path] = None
    duplicates_path: Optional[Path] = None
    new_since_last_path: Optional[Path] = None
    pruned_snapshots: list[Path] = Field(default_factory=list)
