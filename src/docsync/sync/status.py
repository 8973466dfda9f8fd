"""Read-only aggregation of folder sync state for status reporting."""

from dataclasses import dataclass
from typing import Iterable

from docsync.models import SyncFolder, SyncStatus


@dataclass(frozen=True)
class SyncStatusReport:
    """Snapshot of every folder's sync state, partitioned by status."""

    is_enabled: bool
    active_syncs: tuple[SyncFolder, ...] = ()
    pending_syncs: tuple[SyncFolder, ...] = ()
    recent_errors: tuple[SyncFolder, ...] = ()
    total_folders: int = 0

    @property
    def is_syncing(self) -> bool:
        return bool(self.active_syncs)

    @property
    def total_syncing_or_pending(self) -> int:
        return len(self.active_syncs) + len(self.pending_syncs)

    def to_dict(self) -> dict:
        return {
            "isEnabled": self.is_enabled,
            "isSyncing": self.is_syncing,
            "activeSyncs": [f.to_dict() for f in self.active_syncs],
            "pendingSyncs": [f.to_dict() for f in self.pending_syncs],
            "recentErrors": [f.to_dict() for f in self.recent_errors],
            "totalFolders": self.total_folders,
            "totalSyncingOrPending": self.total_syncing_or_pending,
        }


def aggregate_sync_status(
    folders: Iterable[SyncFolder], is_enabled: bool = True
) -> SyncStatusReport:
    """Partition folders into active, pending and errored.

    When sync is disabled the report is empty regardless of stored state.
    """
    if not is_enabled:
        return SyncStatusReport(is_enabled=False)

    folders = list(folders)
    return SyncStatusReport(
        is_enabled=True,
        active_syncs=tuple(f for f in folders if f.status is SyncStatus.SYNCING),
        pending_syncs=tuple(f for f in folders if f.status is SyncStatus.PENDING),
        recent_errors=tuple(f for f in folders if f.status is SyncStatus.ERROR),
        total_folders=len(folders),
    )
