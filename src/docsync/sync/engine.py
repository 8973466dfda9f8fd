"""Incremental folder sync: discover, diff, re-chunk, embed and store."""

import logging
import threading
import time
import uuid
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from docsync.chunkers import TokenChunker
from docsync.config import SyncConfig
from docsync.errors import FolderNotFoundError, UnknownFolderError
from docsync.ingesters import FolderIngester
from docsync.models import (
    FileMetadata,
    MicroChunk,
    SyncFile,
    SyncFolder,
    SyncOutcome,
    SyncOutcomeKind,
    VectorRecord,
)
from docsync.protocols import ChunkingStrategy, EmbeddingProvider, VectorStore
from docsync.storage.store import SyncStore, utc_now
from docsync.utils.retry import call_with_retry

logger = logging.getLogger(__name__)

_ID_NAMESPACE = uuid.UUID("6f1c5a52-3f0e-4b8e-9d0a-2f4d1f6b7c11")


def chunk_id(folder_id: str, relative_path: str, index: int) -> str:
    """Stable vector id for one chunk of one file."""
    return str(uuid.uuid5(_ID_NAMESPACE, f"{folder_id}\x00{relative_path}\x00{index}"))


class SyncEngine:
    """Keeps one folder's vectors consistent with what is on disk.

    A cycle only starts if SyncStore.try_begin_sync() wins the folder, so
    concurrent triggers for the same folder collapse into one cycle. Work
    is checked for cancellation between files; every file finished before
    cancellation stays fully indexed.
    """

    def __init__(
        self,
        store: SyncStore,
        vector_store: VectorStore,
        embedder: EmbeddingProvider,
        chunker: Optional[ChunkingStrategy] = None,
        config: Optional[SyncConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.vector_store = vector_store
        self.embedder = embedder
        self.config = config or SyncConfig()
        self.chunker = chunker or TokenChunker(
            window_tokens=self.config.window_tokens,
            stride_tokens=self.config.stride_tokens,
        )
        self._sleep = sleep

    def ingester_for(self, folder: SyncFolder) -> FolderIngester:
        cfg = self.config
        return FolderIngester(
            exclude_patterns=(*cfg.exclude_patterns, *folder.exclude_patterns),
            include_extensions=folder.include_extensions or cfg.include_extensions,
            max_depth=cfg.max_depth,
            max_entries=cfg.max_entries,
            recursive=folder.recursive,
            max_file_bytes=cfg.max_file_bytes,
        )

    def sync_folder(
        self, folder_id: str, cancel_event: Optional[threading.Event] = None
    ) -> SyncOutcome:
        """Run one sync cycle for a folder.

        Never raises for file- or folder-level failures: those end up in
        SyncFile.error, SyncFolder.last_error and the returned outcome.
        """
        if not self.store.try_begin_sync(folder_id):
            logger.debug(f"Sync for {folder_id} not started (running, paused or unknown)")
            return SyncOutcome(folder_id=folder_id, kind=SyncOutcomeKind.SKIPPED)

        outcome = SyncOutcome(folder_id=folder_id, kind=SyncOutcomeKind.COMPLETED)
        try:
            folder = self.store.require_folder(folder_id)
            logger.info(f"Syncing {folder.display_name or folder.folder_path}")
            finished = self._run_cycle(folder, outcome, cancel_event)
            files, chunks = self.store.folder_totals(folder_id)
            if not finished:
                self.store.release_sync(folder_id, files, chunks)
                outcome.kind = SyncOutcomeKind.CANCELLED
                logger.info(f"Sync of {folder_id} cancelled")
                return outcome
            self.store.finish_sync(folder_id, files, chunks)
        except UnknownFolderError:
            logger.info(f"Folder {folder_id} was unregistered during sync")
            outcome.kind = SyncOutcomeKind.CANCELLED
            outcome.error = "folder unregistered"
            return outcome
        except Exception as e:
            logger.error(f"Sync of {folder_id} failed: {e}")
            outcome.kind = SyncOutcomeKind.FAILED
            outcome.error = str(e)
            try:
                self.store.fail_sync(folder_id, str(e))
            except Exception as store_error:
                # reset_stuck_syncs() clears the SYNCING state on next start.
                logger.error(f"Could not record failure for {folder_id}: {store_error}")
            return outcome

        logger.info(
            f"Synced {folder.folder_path}: {outcome.added} added, {outcome.updated} updated, "
            f"{outcome.removed} removed, {outcome.failed} failed ({files} files, {chunks} chunks)"
        )
        return outcome

    def _run_cycle(
        self,
        folder: SyncFolder,
        outcome: SyncOutcome,
        cancel_event: Optional[threading.Event],
    ) -> bool:
        """Index changes and drop vanished files. Returns False if cancelled."""
        root = Path(folder.folder_path)
        if not root.is_dir():
            raise FolderNotFoundError(folder.folder_path)

        ingester = self.ingester_for(folder)
        tracked = self.store.list_files(folder.id)
        seen: set[str] = set()

        for metadata in ingester.walk(root):
            if _cancelled(cancel_event):
                return False
            seen.add(metadata.relative_path)
            previous = tracked.get(metadata.relative_path)
            try:
                self._sync_file(folder, ingester, metadata, previous, outcome)
            except UnknownFolderError:
                raise
            except Exception as e:
                logger.warning(f"Failed to index {metadata.relative_path}: {e}")
                outcome.failed += 1
                outcome.failed_files.append(metadata.relative_path)
                self._record_file_error(folder, metadata, previous, str(e))

        for relative_path in sorted(set(tracked) - seen):
            if _cancelled(cancel_event):
                return False
            self.vector_store.delete_by_file(folder.id, relative_path)
            self.store.delete_file(folder.id, relative_path)
            outcome.removed += 1
            logger.debug(f"Removed {relative_path} from index")

        return True

    def _sync_file(
        self,
        folder: SyncFolder,
        ingester: FolderIngester,
        metadata: FileMetadata,
        previous: Optional[SyncFile],
        outcome: SyncOutcome,
    ) -> None:
        if (
            previous is not None
            and previous.error is None
            and previous.content_hash is not None
            and previous.mtime == metadata.mtime
            and previous.size_bytes == metadata.size_bytes
        ):
            outcome.unchanged += 1
            return

        text, digest = ingester.read(metadata)

        if (
            previous is not None
            and previous.error is None
            and previous.content_hash == digest
        ):
            # Touched but identical: refresh stat fields only.
            self.store.upsert_file(
                SyncFile(
                    folder_id=folder.id,
                    relative_path=metadata.relative_path,
                    file_path=metadata.path,
                    content_hash=digest,
                    mtime=metadata.mtime,
                    size_bytes=metadata.size_bytes,
                    chunk_count=previous.chunk_count,
                    last_indexed_at=previous.last_indexed_at,
                )
            )
            outcome.unchanged += 1
            return

        records = self._build_records(folder, metadata, text, outcome) if text else []

        # Old chunks are superseded, never patched in place.
        self.vector_store.replace_file(folder.id, metadata.relative_path, records)
        self.store.upsert_file(
            SyncFile(
                folder_id=folder.id,
                relative_path=metadata.relative_path,
                file_path=metadata.path,
                content_hash=digest,
                mtime=metadata.mtime,
                size_bytes=metadata.size_bytes,
                chunk_count=len(records),
                last_indexed_at=utc_now(),
            )
        )
        if previous is None:
            outcome.added += 1
        else:
            outcome.updated += 1

    def _build_records(
        self,
        folder: SyncFolder,
        metadata: FileMetadata,
        text: str,
        outcome: SyncOutcome,
    ) -> list[VectorRecord]:
        chunks = list(self.chunker.chunk(text))
        if not chunks:
            return []
        vectors = self._embed([c.text for c in chunks], outcome)
        if len(vectors) != len(chunks):
            raise ValueError(
                f"embedder returned {len(vectors)} vectors for {len(chunks)} chunks"
            )
        records = []
        for chunk, vector in zip(chunks, vectors):
            lines = (
                (chunk.start_line, chunk.end_line, chunk.token_offset)
                if isinstance(chunk, MicroChunk)
                else (None, None, None)
            )
            records.append(
                VectorRecord(
                    id=chunk_id(folder.id, metadata.relative_path, chunk.index),
                    vector=vector,
                    character_id=folder.character_id,
                    folder_id=folder.id,
                    file_path=metadata.path,
                    relative_path=metadata.relative_path,
                    chunk_index=chunk.index,
                    text=chunk.text,
                    token_count=chunk.token_count,
                    start_line=lines[0],
                    end_line=lines[1],
                    token_offset=lines[2],
                )
            )
        return records

    def _embed(self, texts: list[str], outcome: SyncOutcome) -> np.ndarray:
        cfg = self.config
        batch_size = max(cfg.embed_batch_size, 1)
        batches = []
        for start in range(0, len(texts), batch_size):
            batch = texts[start : start + batch_size]

            def embed_batch(batch: list[str] = batch) -> np.ndarray:
                outcome.embed_calls += 1
                return np.asarray(self.embedder.embed(batch), dtype=np.float32)

            batches.append(
                call_with_retry(
                    embed_batch,
                    retries=cfg.embed_retries,
                    delays=cfg.embed_retry_delays,
                    sleep=self._sleep,
                )
            )
        return np.vstack(batches)

    def _record_file_error(
        self,
        folder: SyncFolder,
        metadata: FileMetadata,
        previous: Optional[SyncFile],
        error: str,
    ) -> None:
        # A NULL hash makes the next cycle retry this file. The chunk count
        # is read back because the failure may have come after the swap.
        chunk_count = self.vector_store.count(folder.id, metadata.relative_path)
        self.store.upsert_file(
            SyncFile(
                folder_id=folder.id,
                relative_path=metadata.relative_path,
                file_path=metadata.path,
                content_hash=None,
                mtime=metadata.mtime,
                size_bytes=metadata.size_bytes,
                chunk_count=chunk_count,
                last_indexed_at=previous.last_indexed_at if previous else None,
                error=error,
            )
        )

    def unregister_folder(self, folder_id: str) -> bool:
        """Delete a folder's records (files cascade) and then its vectors.

        Dropping the folder row first makes any in-flight replace_file()
        for it fail, so no vectors are written after the sweep below.
        """
        deleted = self.store.delete_folder(folder_id)
        removed = self.vector_store.delete_by_folder(folder_id)
        if deleted:
            logger.info(f"Unregistered {folder_id} ({removed} vectors removed)")
        return deleted


def _cancelled(event: Optional[threading.Event]) -> bool:
    return event is not None and event.is_set()
