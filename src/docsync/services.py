"""Wiring of stores, embedder, engine, scheduler and searcher for one process."""

import logging
from dataclasses import dataclass
from typing import Optional

from docsync.config import Config, load_config
from docsync.embedders import SentenceTransformerEmbedder
from docsync.models import SyncFolder
from docsync.protocols import EmbeddingProvider
from docsync.search import HybridSearcher
from docsync.storage import SQLiteVectorStore, SyncStore
from docsync.sync import (
    FolderWatcher,
    SyncEngine,
    SyncScheduler,
    SyncStatusReport,
    aggregate_sync_status,
)

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Process-wide components sharing one database file."""

    config: Config
    store: SyncStore
    vector_store: SQLiteVectorStore
    embedder: EmbeddingProvider
    engine: SyncEngine
    scheduler: SyncScheduler
    searcher: HybridSearcher

    def status(self, character_id: Optional[str] = None) -> SyncStatusReport:
        return aggregate_sync_status(
            self.store.list_folders(character_id), is_enabled=self.config.enabled
        )

    def watcher(self) -> FolderWatcher:
        """Watcher over every registered folder."""
        watcher = FolderWatcher(
            self.scheduler,
            poll_interval=self.config.sync.poll_interval,
            debounce_seconds=self.config.sync.debounce_seconds,
            rescan_interval=self.config.sync.rescan_interval,
        )
        for folder in self.store.list_folders():
            watcher.watch(folder.id)
        return watcher

    def unregister(self, folder: SyncFolder) -> bool:
        """Cancel any running cycle, then drop the folder and its vectors."""
        self.scheduler.cancel(folder.id)
        self.scheduler.wait_folder(folder.id)
        return self.engine.unregister_folder(folder.id)

    def close(self, cancel: bool = True) -> None:
        self.scheduler.shutdown(cancel=cancel)


def open_services(
    config: Optional[Config] = None,
    embedder: Optional[EmbeddingProvider] = None,
) -> Services:
    """Open the database and build every component from ``config``.

    Folders left in ``syncing`` by a crashed process are returned to
    ``pending`` so they can be picked up again.
    """
    config = config or load_config()
    store = SyncStore(config.db_path)
    store.initialize()
    vector_store = SQLiteVectorStore(config.db_path)

    if embedder is None:
        embedder = SentenceTransformerEmbedder(
            config.embedding_model, batch_size=config.sync.embed_batch_size
        )

    previous_model = store.get_metadata("embedding_model")
    if previous_model is None:
        store.set_metadata("embedding_model", embedder.model_name)
    elif previous_model != embedder.model_name:
        logger.warning(
            f"Index was built with {previous_model}, now using {embedder.model_name}; "
            "dense scores are unreliable until folders are removed and re-added"
        )

    recovered = store.reset_stuck_syncs()
    if recovered:
        logger.info(f"Reset {recovered} interrupted sync(s) to pending")

    engine = SyncEngine(store, vector_store, embedder, config=config.sync)
    return Services(
        config=config,
        store=store,
        vector_store=vector_store,
        embedder=embedder,
        engine=engine,
        scheduler=SyncScheduler(engine, max_workers=config.sync.max_workers),
        searcher=HybridSearcher(vector_store, embedder, config.search),
    )
