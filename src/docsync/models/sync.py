"""Data models for folder and file sync state."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class SyncStatus(str, Enum):
    """Lifecycle of a sync folder.

    pending -> syncing -> synced | error; paused blocks automatic cycles
    until the folder is resumed (which re-enters pending).
    """

    PENDING = "pending"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"
    PAUSED = "paused"


@dataclass(frozen=True)
class SyncFolder:
    """A filesystem path registered against one owning agent."""

    id: str
    character_id: str
    folder_path: str
    display_name: Optional[str] = None
    status: SyncStatus = SyncStatus.PENDING
    file_count: int = 0
    chunk_count: int = 0
    last_synced_at: Optional[str] = None
    last_error: Optional[str] = None
    recursive: bool = True
    include_extensions: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "characterId": self.character_id,
            "folderPath": self.folder_path,
            "displayName": self.display_name,
            "status": self.status.value,
            "fileCount": self.file_count,
            "chunkCount": self.chunk_count,
            "lastSyncedAt": self.last_synced_at,
            "lastError": self.last_error,
        }


@dataclass(frozen=True)
class SyncFile:
    """Per-file bookkeeping inside a sync folder."""

    folder_id: str
    relative_path: str
    file_path: str
    content_hash: Optional[str]
    mtime: float
    size_bytes: int
    chunk_count: int = 0
    last_indexed_at: Optional[str] = None
    error: Optional[str] = None


class SyncOutcomeKind(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class SyncOutcome:
    """What one sync cycle did to a folder."""

    folder_id: str
    kind: SyncOutcomeKind
    added: int = 0
    updated: int = 0
    unchanged: int = 0
    removed: int = 0
    failed: int = 0
    embed_calls: int = 0
    error: Optional[str] = None
    failed_files: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)

    def to_dict(self) -> dict:
        return {
            "folderId": self.folder_id,
            "kind": self.kind.value,
            "added": self.added,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "removed": self.removed,
            "failed": self.failed,
            "failedFiles": list(self.failed_files),
            "error": self.error,
        }
