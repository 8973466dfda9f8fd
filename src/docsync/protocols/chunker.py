"""Protocol for text chunking strategies."""

from typing import Protocol, Sequence, Union, runtime_checkable

from docsync.models import Chunk, MicroChunk


@runtime_checkable
class ChunkingStrategy(Protocol):
    """Protocol for text chunking strategies.

    Implementations are pure: the same text always yields the same chunks,
    and text with nothing to index yields an empty list rather than an error.
    """

    def chunk(self, text: str) -> Sequence[Union[Chunk, MicroChunk]]:
        """Split text into chunks with contiguous, increasing indices."""
        ...
