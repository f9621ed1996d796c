"""
mediasort: content-addressed media sorting.

Modules:
- source: Path sources (input list, library walk)
- pipeline: Concurrent SHA256 hashing pipeline
- store: Dedup store (hash -> canonical path) and its persistence
- classifier: Extension -> category
- mover: Verified copy-then-delete relocation
- ingest: Ingest mode aggregator
- reconciler: Rebuild mode aggregator
- snapshots: Rebuild snapshot files and retention
- session: Run context (config + store)
- settings: Configuration model and loading
"""

from mediasort.models import (
    Category,
    FileRecord,
    IngestReport,
    MoveOutcome,
    MoveStatus,
    RebuildReport,
    ReconciliationSnapshot,
)

__all__ = [
    "Category",
    "FileRecord",
    "IngestReport",
    "MoveOutcome",
    "MoveStatus",
    "RebuildReport",
    "ReconciliationSnapshot",
]
