"""SQLite-backed vector store with exact dense and hashed lexical search."""

import logging
import sqlite3
from typing import Iterable, Optional, Sequence

import numpy as np

from docsync.errors import UnknownFolderError
from docsync.models import SearchHit, VectorRecord
from docsync.search.lexical import (
    decode_sparse,
    encode_sparse,
    lexical_similarity,
    lexical_vector,
)
from docsync.storage.store import SQLiteDatabase, utc_now
from docsync.utils.vectors import from_blob, normalize_embedding, to_blob

logger = logging.getLogger(__name__)

_HIT_COLUMNS = """id, folder_id, file_path, relative_path, chunk_index, text,
                  token_count, start_line, end_line, token_offset"""


def _hit_from_row(row: sqlite3.Row, score: float) -> SearchHit:
    return SearchHit(
        id=row["id"],
        score=score,
        text=row["text"],
        file_path=row["file_path"],
        relative_path=row["relative_path"],
        chunk_index=row["chunk_index"],
        folder_id=row["folder_id"],
        start_line=row["start_line"],
        end_line=row["end_line"],
        token_offset=row["token_offset"],
        token_count=row["token_count"],
    )


def _scope_clause(
    character_id: Optional[str], folder_ids: Optional[Sequence[str]]
) -> tuple[str, list]:
    clauses: list[str] = []
    params: list = []
    if character_id is not None:
        clauses.append("character_id = ?")
        params.append(character_id)
    if folder_ids:
        clauses.append(f"folder_id IN ({', '.join('?' for _ in folder_ids)})")
        params.extend(folder_ids)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


def _rows(records: Iterable[VectorRecord]) -> list[tuple]:
    now = utc_now()
    return [
        (
            r.id,
            r.character_id,
            r.folder_id,
            r.file_path,
            r.relative_path,
            r.chunk_index,
            r.text,
            r.token_count,
            r.start_line,
            r.end_line,
            r.token_offset,
            to_blob(normalize_embedding(r.vector)),
            encode_sparse(lexical_vector(r.text)),
            now,
        )
        for r in records
    ]


class SQLiteVectorStore(SQLiteDatabase):
    """Vector store kept in the same SQLite file as the sync state.

    Dense queries are exact cosine scans over float32 blobs; lexical
    queries score hashed term vectors. Both scan the scoped rows in full,
    which is adequate for per-agent folder indexes.
    """

    def upsert(self, record: VectorRecord) -> None:
        self.upsert_many([record])

    def upsert_many(self, records: Iterable[VectorRecord]) -> int:
        rows = _rows(records)
        if not rows:
            return 0
        with self.connection() as conn:
            self._insert(conn, rows)
        return len(rows)

    def replace_file(
        self, folder_id: str, relative_path: str, records: Iterable[VectorRecord]
    ) -> int:
        """Swap a file's chunks for ``records`` in one transaction.

        Either every old chunk is replaced or nothing changes.

        Raises:
            UnknownFolderError: If the folder was unregistered meanwhile.
        """
        rows = _rows(records)
        with self.connection() as conn:
            # Deleting first takes the write lock the folder check relies on.
            conn.execute(
                "DELETE FROM vectors WHERE folder_id = ? AND relative_path = ?",
                (folder_id, relative_path),
            )
            if conn.execute(
                "SELECT 1 FROM sync_folders WHERE id = ?", (folder_id,)
            ).fetchone() is None:
                raise UnknownFolderError(folder_id)
            if rows:
                self._insert(conn, rows)
        return len(rows)

    def _insert(self, conn: sqlite3.Connection, rows: list[tuple]) -> None:
        conn.executemany(
            """INSERT OR REPLACE INTO vectors
               (id, character_id, folder_id, file_path, relative_path,
                chunk_index, text, token_count, start_line, end_line,
                token_offset, embedding, lexical, indexed_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            rows,
        )

    def delete_by_folder(self, folder_id: str) -> int:
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM vectors WHERE folder_id = ?", (folder_id,))
            return cursor.rowcount

    def delete_by_file(self, folder_id: str, relative_path: str) -> int:
        with self.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM vectors WHERE folder_id = ? AND relative_path = ?",
                (folder_id, relative_path),
            )
            return cursor.rowcount

    def count(self, folder_id: Optional[str] = None, relative_path: Optional[str] = None) -> int:
        where, params = _scope_clause(None, [folder_id] if folder_id else None)
        if relative_path is not None:
            where = f"{where} AND relative_path = ?" if where else "WHERE relative_path = ?"
            params.append(relative_path)
        with self.connection() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS n FROM vectors {where}", params).fetchone()
            return int(row["n"])

    def query_dense(
        self,
        vector: np.ndarray,
        top_k: int,
        character_id: Optional[str] = None,
        folder_ids: Optional[Sequence[str]] = None,
    ) -> list[SearchHit]:
        """Return the ``top_k`` rows most cosine-similar to ``vector``."""
        if top_k <= 0:
            return []
        query = normalize_embedding(vector)
        where, params = _scope_clause(character_id, folder_ids)
        with self.connection() as conn:
            rows = conn.execute(
                f"SELECT {_HIT_COLUMNS}, embedding FROM vectors {where}", params
            ).fetchall()

        rows = [row for row in rows if len(row["embedding"]) == query.nbytes]
        if not rows:
            return []

        # Stored embeddings are normalised at write time.
        matrix = np.vstack([from_blob(row["embedding"]) for row in rows])
        scores = matrix @ query
        order = np.argsort(-scores, kind="stable")[:top_k]
        return [_hit_from_row(rows[i], float(scores[i])) for i in order]

    def query_lexical(
        self,
        terms: str,
        top_k: int,
        character_id: Optional[str] = None,
        folder_ids: Optional[Sequence[str]] = None,
    ) -> list[SearchHit]:
        """Return the ``top_k`` rows sharing the most weighted terms with ``terms``.

        Rows with no term in common are not returned.
        """
        query = lexical_vector(terms)
        if top_k <= 0 or not query:
            return []
        where, params = _scope_clause(character_id, folder_ids)
        with self.connection() as conn:
            rows = conn.execute(
                f"SELECT {_HIT_COLUMNS}, lexical FROM vectors {where}", params
            ).fetchall()

        scored = []
        for position, row in enumerate(rows):
            score = lexical_similarity(query, decode_sparse(row["lexical"]))
            if score > 0:
                scored.append((-score, position, row))
        scored.sort(key=lambda item: (item[0], item[1]))
        return [_hit_from_row(row, -neg) for neg, _, row in scored[:top_k]]

    def get_embeddings(self, ids: Sequence[str]) -> dict[str, np.ndarray]:
        """Fetch stored (normalised) embeddings for the given chunk ids."""
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        with self.connection() as conn:
            rows = conn.execute(
                f"SELECT id, embedding FROM vectors WHERE id IN ({placeholders})",
                list(ids),
            ).fetchall()
        return {row["id"]: from_blob(row["embedding"]) for row in rows}
