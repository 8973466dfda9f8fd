"""Character-window chunking with overlap and soft boundaries."""

import math
from typing import Optional

from docsync.models import Chunk

DEFAULT_MAX_CHARACTERS = 1500
DEFAULT_OVERLAP_CHARACTERS = 200

# A boundary is only pulled back if the cut stays past this share of the window.
MIN_CUT_RATIO = 0.5


def estimate_chunk_count(
    text_length: int, max_characters: int, overlap_characters: int
) -> int:
    """Number of windows needed to cover ``text_length`` characters."""
    if text_length <= max_characters:
        return 1
    stride = max(max_characters - overlap_characters, 1)
    return math.ceil((text_length - max_characters) / stride) + 1


def _clamp_overlap(max_characters: int, overlap_characters: int) -> int:
    if overlap_characters >= max_characters:
        return max_characters // 4
    return overlap_characters


def chunk_text(
    text: str,
    max_characters: int = DEFAULT_MAX_CHARACTERS,
    overlap_characters: int = DEFAULT_OVERLAP_CHARACTERS,
    max_chunks: int = 0,
) -> list[Chunk]:
    """Split text into overlapping character windows.

    Each window that does not reach the end of the text is pulled back to
    the last newline or ". " inside it, provided that cut point lies past
    half of the window. The next window starts ``overlap_characters``
    before the end of the previous chunk, so chunks always cover the text.

    When ``max_chunks`` is positive the window is widened (the overlap is
    not) until the text fits within that many chunks.

    Args:
        text: Source text. Leading and trailing whitespace is ignored.
        max_characters: Window size in characters.
        overlap_characters: Characters shared by consecutive windows.
        max_chunks: Optional ceiling on the number of chunks (0 = none).

    Returns:
        Chunks with indices 0..n-1. Empty or whitespace-only text and
        a non-positive window both yield an empty list.
    """
    trimmed = text.strip() if text else ""
    if not trimmed or max_characters <= 0:
        return []

    overlap_characters = _clamp_overlap(max_characters, max(overlap_characters, 0))
    length = len(trimmed)

    if max_chunks > 0:
        estimated = estimate_chunk_count(length, max_characters, overlap_characters)
        if estimated > max_chunks:
            min_window = math.ceil(
                (length + (max_chunks - 1) * overlap_characters) / max_chunks
            )
            max_characters = max(max_characters, min_window)
        # Widening can leave a previously clamped overlap inconsistent.
        overlap_characters = _clamp_overlap(max_characters, overlap_characters)

    chunks: list[Chunk] = []
    position = 0

    while position < length:
        last_allowed = max_chunks > 0 and len(chunks) == max_chunks - 1
        slice_end = length if last_allowed else min(position + max_characters, length)
        window = trimmed[position:slice_end]

        if slice_end < length:
            cutoff = max(window.rfind("\n"), window.rfind(". "))
            if cutoff > max_characters * MIN_CUT_RATIO:
                window = window[: cutoff + 1]

        chunk_end = position + len(window)
        normalized = window.strip()
        if normalized:
            chunks.append(
                Chunk(
                    index=len(chunks),
                    text=normalized,
                    token_count=round(len(normalized) / 4),
                )
            )

        if chunk_end >= length:
            break

        position = max(chunk_end - overlap_characters, position + 1)

    return chunks


class CharacterChunker:
    """ChunkingStrategy wrapper around chunk_text().

    Used for coarse document summarization paths where line provenance
    is not needed.
    """

    def __init__(
        self,
        max_characters: int = DEFAULT_MAX_CHARACTERS,
        overlap_characters: int = DEFAULT_OVERLAP_CHARACTERS,
        max_chunks: Optional[int] = None,
    ):
        self.max_characters = max_characters
        self.overlap_characters = overlap_characters
        self.max_chunks = max_chunks or 0

    def chunk(self, text: str) -> list[Chunk]:
        return chunk_text(
            text,
            max_characters=self.max_characters,
            overlap_characters=self.overlap_characters,
            max_chunks=self.max_chunks,
        )
