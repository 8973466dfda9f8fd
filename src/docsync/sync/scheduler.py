"""Background scheduling of folder sync cycles on a bounded worker pool."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Optional

from docsync.models import SyncOutcome, SyncStatus
from docsync.sync.engine import SyncEngine

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Runs SyncEngine cycles as cancellable background tasks.

    At most one task per folder is queued or running. Scheduling a folder
    whose task is still running marks it for one more cycle once the
    current one ends, so changes made mid-cycle are not lost. The pool
    size bounds how many folders hit the embedding gateway at once.
    """

    def __init__(self, engine: SyncEngine, max_workers: int = 2):
        self.engine = engine
        self._executor = ThreadPoolExecutor(
            max_workers=max(max_workers, 1), thread_name_prefix="docsync-sync"
        )
        self._lock = threading.Lock()
        self._tasks: dict[str, tuple[Future, threading.Event]] = {}
        self._rerun: set[str] = set()
        self._closed = False

    def schedule(self, folder_id: str) -> Optional[Future]:
        """Queue a sync cycle for a folder.

        Returns:
            The folder's task future, or None once the scheduler is shut down.
        """
        with self._lock:
            if self._closed:
                return None
            existing = self._tasks.get(folder_id)
            if existing is not None and not existing[0].done():
                if existing[0].running():
                    self._rerun.add(folder_id)
                return existing[0]
            future = self._submit(folder_id)

        future.add_done_callback(lambda f, fid=folder_id: self._on_done(fid, f))
        return future

    def _submit(self, folder_id: str) -> Future:
        # Caller holds self._lock.
        cancel_event = threading.Event()
        future = self._executor.submit(self._run, folder_id, cancel_event)
        self._tasks[folder_id] = (future, cancel_event)
        return future

    def schedule_all(self, character_id: Optional[str] = None) -> list[Future]:
        """Queue every folder that is not paused."""
        futures = []
        for folder in self.engine.store.list_folders(character_id):
            if folder.status is SyncStatus.PAUSED:
                continue
            future = self.schedule(folder.id)
            if future is not None:
                futures.append(future)
        return futures

    def _run(self, folder_id: str, cancel_event: threading.Event) -> SyncOutcome:
        return self.engine.sync_folder(folder_id, cancel_event=cancel_event)

    def _on_done(self, folder_id: str, future: Future) -> None:
        if not future.cancelled() and future.exception() is not None:
            logger.error(f"Sync task for {folder_id} crashed: {future.exception()}")
        follow_up = None
        with self._lock:
            current = self._tasks.get(folder_id)
            if current is not None and current[0] is future:
                del self._tasks[folder_id]
            rerun = folder_id in self._rerun and not future.cancelled()
            self._rerun.discard(folder_id)
            # The task map must not go empty between a cycle and its rerun.
            if rerun and not self._closed and folder_id not in self._tasks:
                logger.debug(f"Re-running sync for {folder_id} after mid-cycle change")
                follow_up = self._submit(folder_id)
        if follow_up is not None:
            follow_up.add_done_callback(lambda f, fid=folder_id: self._on_done(fid, f))

    def is_active(self, folder_id: str) -> bool:
        with self._lock:
            task = self._tasks.get(folder_id)
            return task is not None and not task[0].done()

    def cancel(self, folder_id: str) -> bool:
        """Cancel a folder's queued or running cycle.

        A running cycle stops at the next file boundary.
        """
        with self._lock:
            task = self._tasks.get(folder_id)
            self._rerun.discard(folder_id)
        if task is None:
            return False
        future, cancel_event = task
        cancel_event.set()
        future.cancel()
        return True

    def cancel_all(self) -> None:
        with self._lock:
            folder_ids = list(self._tasks)
        for folder_id in folder_ids:
            self.cancel(folder_id)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until all known tasks finish, including reruns. Returns False on timeout."""
        while True:
            with self._lock:
                futures = [task[0] for task in self._tasks.values()]
            if not futures:
                return True
            _, not_done = wait(futures, timeout=timeout)
            if not_done:
                return False

    def wait_folder(self, folder_id: str, timeout: Optional[float] = None) -> bool:
        """Block until one folder's current task finishes. Returns False on timeout."""
        with self._lock:
            task = self._tasks.get(folder_id)
        if task is None:
            return True
        _, not_done = wait([task[0]], timeout=timeout)
        return not not_done

    def shutdown(self, cancel: bool = False) -> None:
        with self._lock:
            self._closed = True
        if cancel:
            self.cancel_all()
        self._executor.shutdown(wait=True)
