"""Core data models for chunks, candidates and search hits."""

from dataclasses import dataclass, replace
from typing import Literal, Optional


@dataclass(frozen=True)
class FileMetadata:
    """Metadata for a file discovered inside a sync folder."""

    path: str
    relative_path: str
    size_bytes: int
    mtime: float
    extension: str


@dataclass(frozen=True)
class Chunk:
    """A character-window chunk of a source text."""

    index: int
    text: str
    token_count: int


@dataclass(frozen=True)
class MicroChunk:
    """A token-aligned micro-chunk with line provenance.

    Line numbers are 1-based and inclusive.
    """

    index: int
    text: str
    start_line: int
    end_line: int
    token_offset: int
    token_count: int


@dataclass(frozen=True)
class RankedHit:
    """One entry of a ranked candidate list fed into fusion."""

    id: str
    rank: int
    score: float
    source: Literal["dense", "lexical"]


@dataclass(frozen=True)
class SearchHit:
    """A retrieval result returned to callers."""

    id: str
    score: float
    text: str
    file_path: str
    relative_path: str
    chunk_index: int
    folder_id: str
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    token_offset: Optional[int] = None
    token_count: Optional[int] = None

    def with_score(self, score: float) -> "SearchHit":
        return replace(self, score=score)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "score": self.score,
            "text": self.text,
            "filePath": self.file_path,
            "relativePath": self.relative_path,
            "chunkIndex": self.chunk_index,
            "folderId": self.folder_id,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "tokenOffset": self.token_offset,
            "tokenCount": self.token_count,
        }


@dataclass(frozen=True)
class VectorRecord:
    """A chunk ready to be written to a vector store."""

    id: str
    vector: object  # np.ndarray
    character_id: str
    folder_id: str
    file_path: str
    relative_path: str
    chunk_index: int
    text: str
    token_count: int
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    token_offset: Optional[int] = None
