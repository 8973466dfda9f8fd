"""Tests for background sync scheduling."""

import threading

import pytest

from conftest import BlockingEmbedder
from docsync.models import SyncOutcomeKind, SyncStatus
from docsync.sync import SyncEngine, SyncScheduler


class CountingEngine(SyncEngine):
    """Records how many cycles ran and the peak number running at once."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.cycles = 0
        self.in_flight = 0
        self.peak = 0
        self._counter_lock = threading.Lock()

    def _run_cycle(self, folder, outcome, cancel_event):
        with self._counter_lock:
            self.cycles += 1
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            return super()._run_cycle(folder, outcome, cancel_event)
        finally:
            with self._counter_lock:
                self.in_flight -= 1


@pytest.fixture
def blocking():
    return BlockingEmbedder()


@pytest.fixture
def counting_engine(make_engine, blocking):
    return make_engine(blocking, engine_class=CountingEngine)


@pytest.fixture
def scheduler(counting_engine):
    sched = SyncScheduler(counting_engine, max_workers=2)
    yield sched
    sched.shutdown(cancel=True)


class TestSchedule:
    """Test SyncScheduler.schedule()."""

    def test_runs_cycle(self, scheduler, blocking, store, folder):
        blocking.release.set()
        future = scheduler.schedule(folder.id)
        outcome = future.result(timeout=10)
        assert outcome.kind is SyncOutcomeKind.COMPLETED
        assert store.get_folder(folder.id).status is SyncStatus.SYNCED

    def test_same_future_while_running(self, scheduler, blocking, folder):
        first = scheduler.schedule(folder.id)
        assert blocking.started.wait(timeout=5)
        assert scheduler.is_active(folder.id)
        assert scheduler.schedule(folder.id) is first
        blocking.release.set()
        assert scheduler.wait(timeout=10)

    def test_rerun_after_mid_cycle_trigger(self, scheduler, counting_engine, blocking, folder):
        scheduler.schedule(folder.id)
        assert blocking.started.wait(timeout=5)
        scheduler.schedule(folder.id)
        scheduler.schedule(folder.id)
        blocking.release.set()

        assert scheduler.wait(timeout=10)
        assert counting_engine.cycles == 2
        assert counting_engine.peak == 1
        assert not scheduler.is_active(folder.id)

    def test_schedule_all_skips_paused(self, scheduler, blocking, store, folder, tmp_path):
        other_root = tmp_path / "other"
        other_root.mkdir()
        (other_root / "notes.md").write_text("other notes\n")
        other = store.register_folder("agent-1", str(other_root))
        store.pause_folder(other.id)
        blocking.release.set()

        futures = scheduler.schedule_all("agent-1")

        assert len(futures) == 1
        assert scheduler.wait(timeout=10)
        assert store.get_folder(folder.id).status is SyncStatus.SYNCED
        assert store.get_folder(other.id).status is SyncStatus.PAUSED


class TestCancel:
    """Test cancellation of scheduled cycles."""

    def test_cancel_running_cycle(self, scheduler, blocking, store, folder):
        future = scheduler.schedule(folder.id)
        assert blocking.started.wait(timeout=5)

        assert scheduler.cancel(folder.id) is True
        blocking.release.set()

        assert future.result(timeout=10).kind is SyncOutcomeKind.CANCELLED
        assert store.get_folder(folder.id).status is SyncStatus.PENDING

    def test_cancel_unknown(self, scheduler):
        assert scheduler.cancel("missing") is False

    def test_cancel_drops_pending_rerun(self, scheduler, counting_engine, blocking, folder):
        scheduler.schedule(folder.id)
        assert blocking.started.wait(timeout=5)
        scheduler.schedule(folder.id)
        scheduler.cancel(folder.id)
        blocking.release.set()

        assert scheduler.wait(timeout=10)
        assert counting_engine.cycles == 1

    def test_wait_folder(self, scheduler, blocking, folder):
        future = scheduler.schedule(folder.id)
        assert blocking.started.wait(timeout=5)
        scheduler.cancel(folder.id)
        assert scheduler.wait_folder(folder.id, timeout=0.1) is False

        blocking.release.set()

        assert scheduler.wait_folder(folder.id, timeout=10) is True
        assert future.done()

    def test_wait_folder_idle(self, scheduler):
        assert scheduler.wait_folder("missing", timeout=0) is True


class TestShutdown:
    def test_schedule_after_shutdown(self, counting_engine, blocking, folder):
        blocking.release.set()
        sched = SyncScheduler(counting_engine)
        sched.shutdown()
        assert sched.schedule(folder.id) is None

    def test_shutdown_waits_for_running(self, counting_engine, blocking, store, folder):
        blocking.release.set()
        sched = SyncScheduler(counting_engine)
        sched.schedule(folder.id)
        sched.shutdown()
        assert store.get_folder(folder.id).status is SyncStatus.SYNCED
