"""Tests for component wiring and the MCP result formatting."""

import logging
import threading

from conftest import BlockingEmbedder, FakeEmbedder
from docsync.config import Config
from docsync.models import SearchHit, SyncStatus
from docsync.search import HybridSearcher
from docsync.server.mcp_server import format_hits
from docsync.services import Services, open_services
from docsync.sync import SyncScheduler


class RenamedEmbedder(FakeEmbedder):
    @property
    def model_name(self) -> str:
        return "other-model"


class TestOpenServices:
    """Test open_services()."""

    def test_records_embedding_model(self, db_path):
        services = open_services(Config(db_path=db_path), embedder=FakeEmbedder())
        try:
            assert services.store.get_metadata("embedding_model") == "fake-bow"
        finally:
            services.close()

    def test_warns_on_model_change(self, db_path, caplog):
        open_services(Config(db_path=db_path), embedder=FakeEmbedder()).close()
        with caplog.at_level(logging.WARNING):
            services = open_services(Config(db_path=db_path), embedder=RenamedEmbedder())
        services.close()
        assert "fake-bow" in caplog.text
        assert services.store.get_metadata("embedding_model") == "fake-bow"

    def test_resets_interrupted_syncs(self, db_path, store, folder):
        store.try_begin_sync(folder.id)
        services = open_services(Config(db_path=db_path), embedder=FakeEmbedder())
        try:
            assert services.store.get_folder(folder.id).status is SyncStatus.PENDING
        finally:
            services.close()

    def test_unregister_and_status(self, db_path, folder):
        services = open_services(Config(db_path=db_path), embedder=FakeEmbedder())
        try:
            assert services.status().total_folders == 1
            assert services.unregister(folder) is True
            assert services.status().total_folders == 0
        finally:
            services.close()


class TestUnregister:
    def test_waits_for_running_cycle(self, db_path, store, vector_store, make_engine, folder):
        embedder = BlockingEmbedder()
        engine = make_engine(embedder)
        services = Services(
            config=Config(db_path=db_path),
            store=store,
            vector_store=vector_store,
            embedder=embedder,
            engine=engine,
            scheduler=SyncScheduler(engine),
            searcher=HybridSearcher(vector_store, embedder),
        )
        try:
            services.scheduler.schedule(folder.id)
            assert embedder.started.wait(timeout=5)
            results = []
            worker = threading.Thread(target=lambda: results.append(services.unregister(folder)))
            worker.start()
            worker.join(timeout=0.2)
            assert worker.is_alive()

            embedder.release.set()
            worker.join(timeout=10)

            assert results == [True]
            assert vector_store.count(folder.id) == 0
            assert store.get_folder(folder.id) is None
        finally:
            embedder.release.set()
            services.close()


class TestFormatHits:
    def test_no_hits(self):
        assert format_hits("widgets", []) == "No results found for: widgets"

    def test_location_and_snippet(self):
        hits = [
            SearchHit(
                id="1",
                score=0.5,
                text="def slugify(name):\n    return name",
                file_path="/data/src/util.py",
                relative_path="src/util.py",
                chunk_index=0,
                folder_id="f1",
                start_line=1,
                end_line=2,
            )
        ]
        output = format_hits("slugify", hits)
        assert "1. [0.500] src/util.py:1-2" in output
        assert "def slugify(name):     return name" in output
