"""SQLite persistence for sync state and chunk vectors."""

from docsync.storage.store import SQLiteDatabase, SyncStore
from docsync.storage.vector_store import SQLiteVectorStore

__all__ = ["SQLiteDatabase", "SQLiteVectorStore", "SyncStore"]
