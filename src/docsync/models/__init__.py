"""Data models for docsync."""

from docsync.models.document import (
    Chunk,
    FileMetadata,
    MicroChunk,
    RankedHit,
    SearchHit,
    VectorRecord,
)
from docsync.models.sync import (
    SyncFile,
    SyncFolder,
    SyncOutcome,
    SyncOutcomeKind,
    SyncStatus,
)

__all__ = [
    "Chunk",
    "FileMetadata",
    "MicroChunk",
    "RankedHit",
    "SearchHit",
    "VectorRecord",
    "SyncFile",
    "SyncFolder",
    "SyncOutcome",
    "SyncOutcomeKind",
    "SyncStatus",
]
