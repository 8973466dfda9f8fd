"""Folder sync: incremental engine, background scheduling, watching and status."""

from docsync.sync.engine import SyncEngine, chunk_id
from docsync.sync.scheduler import SyncScheduler
from docsync.sync.status import SyncStatusReport, aggregate_sync_status
from docsync.sync.watcher import FolderWatcher

__all__ = [
    "FolderWatcher",
    "SyncEngine",
    "SyncScheduler",
    "SyncStatusReport",
    "aggregate_sync_status",
    "chunk_id",
]
