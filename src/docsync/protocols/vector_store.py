"""Protocol for vector storage backends."""

from typing import Iterable, Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from docsync.models import SearchHit, VectorRecord


@runtime_checkable
class VectorStore(Protocol):
    """Persists chunk vectors and answers dense and lexical queries.

    Query results are ordered best-first; ``SearchHit.score`` carries the
    backend's raw similarity for that retrieval mode.
    """

    def upsert(self, record: VectorRecord) -> None:
        ...

    def upsert_many(self, records: Iterable[VectorRecord]) -> int:
        ...

    def delete_by_folder(self, folder_id: str) -> int:
        ...

    def delete_by_file(self, folder_id: str, relative_path: str) -> int:
        ...

    def replace_file(
        self, folder_id: str, relative_path: str, records: Iterable[VectorRecord]
    ) -> int:
        """Atomically swap one file's chunks for ``records``."""
        ...

    def count(self, folder_id: Optional[str] = None, relative_path: Optional[str] = None) -> int:
        ...

    def query_dense(
        self,
        vector: np.ndarray,
        top_k: int,
        character_id: Optional[str] = None,
        folder_ids: Optional[Sequence[str]] = None,
    ) -> list[SearchHit]:
        ...

    def query_lexical(
        self,
        terms: str,
        top_k: int,
        character_id: Optional[str] = None,
        folder_ids: Optional[Sequence[str]] = None,
    ) -> list[SearchHit]:
        ...

    def get_embeddings(self, ids: Sequence[str]) -> dict[str, np.ndarray]:
        ...
