"""SQLite-backed storage for folder and file sync state."""

import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Optional

from docsync.errors import SyncConflictError, UnknownFolderError
from docsync.models import SyncFile, SyncFolder, SyncStatus
from docsync.storage.schema import SCHEMA

# Busy timeout for concurrent writers from sync worker threads.
CONNECT_TIMEOUT = 30.0


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteDatabase:
    """Shared connection handling for the docsync database file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.path, timeout=CONNECT_TIMEOUT)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create schema if not exists."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA)

    def set_metadata(self, key: str, value: str) -> None:
        """Store a metadata key-value pair."""
        with self.connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_metadata(self, key: str) -> Optional[str]:
        """Retrieve a metadata value by key."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT value FROM metadata WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None


def _folder_from_row(row: sqlite3.Row) -> SyncFolder:
    return SyncFolder(
        id=row["id"],
        character_id=row["character_id"],
        folder_path=row["folder_path"],
        display_name=row["display_name"],
        status=SyncStatus(row["status"]),
        file_count=row["file_count"],
        chunk_count=row["chunk_count"],
        last_synced_at=row["last_synced_at"],
        last_error=row["last_error"],
        recursive=bool(row["recursive"]),
        include_extensions=tuple(json.loads(row["include_extensions"])),
        exclude_patterns=tuple(json.loads(row["exclude_patterns"])),
    )


def _file_from_row(row: sqlite3.Row) -> SyncFile:
    return SyncFile(
        folder_id=row["folder_id"],
        relative_path=row["relative_path"],
        file_path=row["file_path"],
        content_hash=row["content_hash"],
        mtime=row["mtime"],
        size_bytes=row["size_bytes"],
        chunk_count=row["chunk_count"],
        last_indexed_at=row["last_indexed_at"],
        error=row["error"],
    )


class SyncStore(SQLiteDatabase):
    """Persistent SyncFolder and SyncFile records.

    Status transitions that start a cycle go through try_begin_sync(),
    a single conditional UPDATE, so at most one caller wins per folder.
    """

    # Folder registration

    def register_folder(
        self,
        character_id: str,
        folder_path: str,
        display_name: Optional[str] = None,
        recursive: bool = True,
        include_extensions: Iterable[str] = (),
        exclude_patterns: Iterable[str] = (),
        folder_id: Optional[str] = None,
    ) -> SyncFolder:
        """Register a folder in ``pending`` state.

        Raises:
            SyncConflictError: If the agent already has this folder registered.
        """
        folder_id = folder_id or str(uuid.uuid4())
        now = utc_now()
        resolved = str(Path(folder_path).expanduser().resolve())
        try:
            with self.connection() as conn:
                conn.execute(
                    """INSERT INTO sync_folders
                       (id, character_id, folder_path, display_name, status,
                        recursive, include_extensions, exclude_patterns,
                        created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        folder_id,
                        character_id,
                        resolved,
                        display_name or Path(resolved).name,
                        SyncStatus.PENDING.value,
                        1 if recursive else 0,
                        json.dumps(list(include_extensions)),
                        json.dumps(list(exclude_patterns)),
                        now,
                        now,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise SyncConflictError(
                f"{resolved} is already registered for {character_id}"
            ) from e
        return self.require_folder(folder_id)

    def get_folder(self, folder_id: str) -> Optional[SyncFolder]:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM sync_folders WHERE id = ?", (folder_id,)
            ).fetchone()
            return _folder_from_row(row) if row else None

    def require_folder(self, folder_id: str) -> SyncFolder:
        folder = self.get_folder(folder_id)
        if folder is None:
            raise UnknownFolderError(folder_id)
        return folder

    def list_folders(self, character_id: Optional[str] = None) -> list[SyncFolder]:
        with self.connection() as conn:
            if character_id is None:
                cursor = conn.execute("SELECT * FROM sync_folders ORDER BY created_at, id")
            else:
                cursor = conn.execute(
                    "SELECT * FROM sync_folders WHERE character_id = ? ORDER BY created_at, id",
                    (character_id,),
                )
            return [_folder_from_row(row) for row in cursor]

    def delete_folder(self, folder_id: str) -> bool:
        """Delete a folder and, by cascade, its file rows."""
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM sync_folders WHERE id = ?", (folder_id,))
            return cursor.rowcount > 0

    # Status transitions

    def try_begin_sync(self, folder_id: str) -> bool:
        """Atomically move a folder into ``syncing``.

        Returns False when the folder is already syncing, paused, or unknown.
        """
        with self.connection() as conn:
            cursor = conn.execute(
                """UPDATE sync_folders SET status = ?, updated_at = ?
                   WHERE id = ? AND status NOT IN (?, ?)""",
                (
                    SyncStatus.SYNCING.value,
                    utc_now(),
                    folder_id,
                    SyncStatus.SYNCING.value,
                    SyncStatus.PAUSED.value,
                ),
            )
            return cursor.rowcount == 1

    def finish_sync(self, folder_id: str, file_count: int, chunk_count: int) -> None:
        now = utc_now()
        with self.connection() as conn:
            conn.execute(
                """UPDATE sync_folders
                   SET status = ?, file_count = ?, chunk_count = ?,
                       last_synced_at = ?, last_error = NULL, updated_at = ?
                   WHERE id = ?""",
                (SyncStatus.SYNCED.value, file_count, chunk_count, now, now, folder_id),
            )

    def fail_sync(self, folder_id: str, error: str) -> None:
        with self.connection() as conn:
            conn.execute(
                """UPDATE sync_folders SET status = ?, last_error = ?, updated_at = ?
                   WHERE id = ?""",
                (SyncStatus.ERROR.value, error, utc_now(), folder_id),
            )

    def release_sync(self, folder_id: str, file_count: int, chunk_count: int) -> None:
        """Return an interrupted cycle's folder to ``pending``, keeping counts current."""
        with self.connection() as conn:
            conn.execute(
                """UPDATE sync_folders
                   SET status = ?, file_count = ?, chunk_count = ?, updated_at = ?
                   WHERE id = ? AND status = ?""",
                (
                    SyncStatus.PENDING.value,
                    file_count,
                    chunk_count,
                    utc_now(),
                    folder_id,
                    SyncStatus.SYNCING.value,
                ),
            )

    def pause_folder(self, folder_id: str) -> bool:
        """Suspend automatic cycles. A running cycle is not interrupted."""
        with self.connection() as conn:
            cursor = conn.execute(
                "UPDATE sync_folders SET status = ?, updated_at = ? WHERE id = ? AND status != ?",
                (SyncStatus.PAUSED.value, utc_now(), folder_id, SyncStatus.SYNCING.value),
            )
            return cursor.rowcount == 1

    def resume_folder(self, folder_id: str) -> bool:
        with self.connection() as conn:
            cursor = conn.execute(
                "UPDATE sync_folders SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
                (SyncStatus.PENDING.value, utc_now(), folder_id, SyncStatus.PAUSED.value),
            )
            return cursor.rowcount == 1

    def reset_stuck_syncs(self) -> int:
        """Move folders left ``syncing`` by a dead process back to ``pending``.

        Only safe at process start, before any cycle is scheduled.
        """
        with self.connection() as conn:
            cursor = conn.execute(
                "UPDATE sync_folders SET status = ?, updated_at = ? WHERE status = ?",
                (SyncStatus.PENDING.value, utc_now(), SyncStatus.SYNCING.value),
            )
            return cursor.rowcount

    # File bookkeeping

    def list_files(self, folder_id: str) -> dict[str, SyncFile]:
        """Tracked files of a folder keyed by relative path."""
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM sync_files WHERE folder_id = ? ORDER BY relative_path",
                (folder_id,),
            )
            return {row["relative_path"]: _file_from_row(row) for row in cursor}

    def upsert_file(self, record: SyncFile) -> None:
        with self.connection() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO sync_files
                   (folder_id, relative_path, file_path, content_hash, mtime,
                    size_bytes, chunk_count, last_indexed_at, error)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.folder_id,
                    record.relative_path,
                    record.file_path,
                    record.content_hash,
                    record.mtime,
                    record.size_bytes,
                    record.chunk_count,
                    record.last_indexed_at,
                    record.error,
                ),
            )

    def delete_file(self, folder_id: str, relative_path: str) -> bool:
        with self.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM sync_files WHERE folder_id = ? AND relative_path = ?",
                (folder_id, relative_path),
            )
            return cursor.rowcount > 0

    def folder_totals(self, folder_id: str) -> tuple[int, int]:
        """(file_count, chunk_count) summed over the folder's tracked files."""
        with self.connection() as conn:
            row = conn.execute(
                """SELECT COUNT(*) AS files, COALESCE(SUM(chunk_count), 0) AS chunks
                   FROM sync_files WHERE folder_id = ?""",
                (folder_id,),
            ).fetchone()
            return int(row["files"]), int(row["chunks"])

    def count_failed_files(self, folder_id: str) -> int:
        """Tracked files whose last indexing attempt failed."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM sync_files WHERE folder_id = ? AND error IS NOT NULL",
                (folder_id,),
            ).fetchone()
            return int(row["n"])
