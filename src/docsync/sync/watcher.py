"""Polling-based watcher that schedules syncs for changed folders."""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from docsync.models import SyncStatus
from docsync.sync.scheduler import SyncScheduler

logger = logging.getLogger(__name__)

Snapshot = dict[str, tuple[float, int]]


class FolderWatcher:
    """Watches registered folders and schedules a sync when files change.

    Polls each folder's tracked files (mtime and size) on a daemon thread.
    A detected change is debounced: the folder is scheduled only once it
    has been quiet for ``debounce_seconds``, so bursts of writes collapse
    into one cycle. Every ``rescan_interval`` seconds, folders in error and
    folders with files whose last attempt failed are scheduled again even
    if nothing on disk changed.

    Args:
        scheduler: Scheduler that runs the resulting sync cycles.
        poll_interval: Seconds between polls.
        debounce_seconds: Quiet period required before scheduling.
        rescan_interval: Seconds between retries of failed work. None or
            zero disables retries.
    """

    def __init__(
        self,
        scheduler: SyncScheduler,
        poll_interval: float = 2.0,
        debounce_seconds: float = 1.0,
        rescan_interval: Optional[float] = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.scheduler = scheduler
        self.poll_interval = poll_interval
        self.debounce_seconds = debounce_seconds
        self.rescan_interval = rescan_interval
        self._clock = clock
        self._last_rescan = clock()
        self._lock = threading.Lock()
        self._snapshots: dict[str, Snapshot] = {}
        self._dirty_since: dict[str, float] = {}
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def watched_folders(self) -> list[str]:
        with self._lock:
            return sorted(self._snapshots)

    def watch(self, folder_id: str) -> None:
        """Start tracking a folder from its current on-disk state."""
        snapshot = self._snapshot(folder_id)
        with self._lock:
            self._snapshots[folder_id] = snapshot or {}
            self._dirty_since.pop(folder_id, None)

    def unwatch(self, folder_id: str) -> None:
        with self._lock:
            self._snapshots.pop(folder_id, None)
            self._dirty_since.pop(folder_id, None)

    def start(self) -> None:
        """Start the watcher in a daemon thread."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop, name="docsync-watcher", daemon=True
        )
        self._thread.start()
        logger.info(f"Watching {len(self.watched_folders)} folder(s)")

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        logger.info("Folder watcher stopped")

    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except Exception as e:
                logger.error(f"Watcher poll failed: {e}")
            self._stop_event.wait(self.poll_interval)

    def poll_once(self) -> list[str]:
        """Check every watched folder once.

        Returns:
            Ids of folders scheduled for sync during this poll.
        """
        now = self._clock()
        scheduled: list[str] = []
        rescan_due = bool(self.rescan_interval) and now - self._last_rescan >= self.rescan_interval
        if rescan_due:
            self._last_rescan = now

        for folder_id in self.watched_folders:
            current = self._snapshot(folder_id)
            if current is None:
                self.unwatch(folder_id)
                logger.debug(f"Stopped watching unregistered folder {folder_id}")
                continue

            with self._lock:
                previous = self._snapshots.get(folder_id)
                if previous is None:
                    continue
                if current != previous:
                    self._snapshots[folder_id] = current
                    self._dirty_since[folder_id] = now
                    continue
                dirty_since = self._dirty_since.get(folder_id)
                changed = dirty_since is not None and now - dirty_since >= self.debounce_seconds
                if changed:
                    del self._dirty_since[folder_id]

            if changed:
                logger.info(f"Changes detected in {folder_id}, scheduling sync")
            elif rescan_due and self._needs_retry(folder_id):
                logger.info(f"Retrying failed sync work in {folder_id}")
            else:
                continue
            if self.scheduler.schedule(folder_id) is not None:
                scheduled.append(folder_id)

        return scheduled

    def _needs_retry(self, folder_id: str) -> bool:
        store = self.scheduler.engine.store
        folder = store.get_folder(folder_id)
        if folder is None or folder.status in (SyncStatus.PAUSED, SyncStatus.SYNCING):
            return False
        return folder.status is SyncStatus.ERROR or store.count_failed_files(folder_id) > 0

    def _snapshot(self, folder_id: str) -> Optional[Snapshot]:
        """Current mtime and size per file, or None if the folder is gone."""
        engine = self.scheduler.engine
        folder = engine.store.get_folder(folder_id)
        if folder is None:
            return None
        if folder.status is SyncStatus.PAUSED:
            # Paused folders keep their last snapshot.
            with self._lock:
                return dict(self._snapshots.get(folder_id, {}))

        root = Path(folder.folder_path)
        if not root.is_dir():
            return {}
        snapshot: Snapshot = {}
        try:
            for metadata in engine.ingester_for(folder).walk(root):
                snapshot[metadata.relative_path] = (metadata.mtime, metadata.size_bytes)
        except OSError as e:
            logger.warning(f"Could not scan {folder.folder_path}: {e}")
        return snapshot
