"""Tests for sync status aggregation."""

from docsync.models import SyncFolder, SyncStatus
from docsync.sync import aggregate_sync_status


def make_folder(folder_id, status, error=None):
    return SyncFolder(
        id=folder_id,
        character_id="agent-1",
        folder_path=f"/data/{folder_id}",
        status=status,
        last_error=error,
    )


FOLDERS = [
    make_folder("a", SyncStatus.SYNCING),
    make_folder("b", SyncStatus.PENDING),
    make_folder("c", SyncStatus.PENDING),
    make_folder("d", SyncStatus.ERROR, error="Folder not found"),
    make_folder("e", SyncStatus.SYNCED),
    make_folder("f", SyncStatus.PAUSED),
]


class TestAggregateSyncStatus:
    """Test aggregate_sync_status()."""

    def test_partitions(self):
        report = aggregate_sync_status(FOLDERS)
        assert [f.id for f in report.active_syncs] == ["a"]
        assert [f.id for f in report.pending_syncs] == ["b", "c"]
        assert [f.id for f in report.recent_errors] == ["d"]

    def test_totals(self):
        report = aggregate_sync_status(FOLDERS)
        assert report.is_enabled is True
        assert report.is_syncing is True
        assert report.total_folders == 6
        assert report.total_syncing_or_pending == 3

    def test_idle(self):
        report = aggregate_sync_status([make_folder("e", SyncStatus.SYNCED)])
        assert report.is_syncing is False
        assert report.total_syncing_or_pending == 0

    def test_no_folders(self):
        report = aggregate_sync_status([])
        assert report.total_folders == 0
        assert report.active_syncs == ()

    def test_disabled_is_empty(self):
        report = aggregate_sync_status(FOLDERS, is_enabled=False)
        assert report.is_enabled is False
        assert report.total_folders == 0
        assert report.total_syncing_or_pending == 0
        assert report.recent_errors == ()

    def test_accepts_generator(self):
        report = aggregate_sync_status(f for f in FOLDERS)
        assert report.total_folders == 6


class TestToDict:
    def test_camel_case_keys(self):
        data = aggregate_sync_status(FOLDERS).to_dict()
        assert set(data) == {
            "isEnabled",
            "isSyncing",
            "activeSyncs",
            "pendingSyncs",
            "recentErrors",
            "totalFolders",
            "totalSyncingOrPending",
        }
        assert data["recentErrors"][0]["lastError"] == "Folder not found"
        assert data["activeSyncs"][0]["status"] == "syncing"
