"""Token-aligned micro-chunking with line number mapping."""

from bisect import bisect_right
from typing import Optional, Sequence

import tiktoken

from docsync.models import MicroChunk
from docsync.protocols import Tokenizer

DEFAULT_WINDOW_TOKENS = 16
DEFAULT_STRIDE_TOKENS = 8
DEFAULT_ENCODING = "cl100k_base"


class TiktokenTokenizer:
    """Tokenizer backed by a tiktoken encoding.

    The encoding is loaded on first use; loading may download the BPE file.
    """

    def __init__(self, encoding_name: str = DEFAULT_ENCODING):
        self.encoding_name = encoding_name
        self._encoding: Optional[tiktoken.Encoding] = None

    @property
    def encoding(self) -> tiktoken.Encoding:
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self.encoding_name)
        return self._encoding

    def encode(self, text: str) -> list[int]:
        return self.encoding.encode(text, disallowed_special=())

    def decode(self, tokens: Sequence[int]) -> str:
        return self.encoding.decode(list(tokens))

    def token_offsets(self, tokens: Sequence[int]) -> list[int]:
        _, offsets = self.encoding.decode_with_offsets(list(tokens))
        return offsets


_default_tokenizer: Optional[TiktokenTokenizer] = None


def get_default_tokenizer() -> TiktokenTokenizer:
    """Process-wide tokenizer shared by every chunker that is not given one."""
    global _default_tokenizer
    if _default_tokenizer is None:
        _default_tokenizer = TiktokenTokenizer()
    return _default_tokenizer


def build_line_starts(text: str) -> list[int]:
    """Character offsets at which each line begins (always starts with 0)."""
    starts = [0]
    for i, ch in enumerate(text):
        if ch == "\n":
            starts.append(i + 1)
    return starts


def line_number(line_starts: list[int], char_offset: int) -> int:
    """1-based line containing ``char_offset``: the largest line start <= offset."""
    return max(bisect_right(line_starts, char_offset), 1)


def chunk_by_tokens(
    text: str,
    window_tokens: int = DEFAULT_WINDOW_TOKENS,
    stride_tokens: int = DEFAULT_STRIDE_TOKENS,
    tokenizer: Optional[Tokenizer] = None,
) -> list[MicroChunk]:
    """Slide a token window across text, producing micro-chunks.

    The text is tokenized once. Windows start every ``stride_tokens``
    tokens; the last one may be shorter and ends the sequence. Token
    offsets are mapped back to characters and then to 1-based lines.

    Returns an empty list for blank text or non-positive window/stride.
    """
    if not text or not text.strip():
        return []
    if window_tokens <= 0 or stride_tokens <= 0:
        return []

    tokenizer = tokenizer or get_default_tokenizer()
    tokens = tokenizer.encode(text)
    total = len(tokens)
    if total == 0:
        return []

    offsets = tokenizer.token_offsets(tokens)
    line_starts = build_line_starts(text)
    text_length = len(text)

    def char_offset(token_index: int) -> int:
        if token_index >= total:
            return text_length
        return offsets[token_index]

    chunks: list[MicroChunk] = []
    for token_start in range(0, total, stride_tokens):
        token_end = min(token_start + window_tokens, total)
        start_char = char_offset(token_start)
        end_char = char_offset(token_end)

        start_line = line_number(line_starts, start_char)
        # end_char is exclusive; a window ending on "\n" stays on its line.
        end_line = line_number(line_starts, max(start_char, end_char - 1))

        chunks.append(
            MicroChunk(
                index=len(chunks),
                text=tokenizer.decode(tokens[token_start:token_end]),
                start_line=start_line,
                end_line=end_line,
                token_offset=token_start,
                token_count=token_end - token_start,
            )
        )

        if token_end >= total:
            break

    return chunks


class TokenChunker:
    """ChunkingStrategy producing token-aligned micro-chunks.

    The default retrieval unit: small windows give line-level citations.
    """

    def __init__(
        self,
        window_tokens: int = DEFAULT_WINDOW_TOKENS,
        stride_tokens: int = DEFAULT_STRIDE_TOKENS,
        tokenizer: Optional[Tokenizer] = None,
    ):
        self.window_tokens = window_tokens
        self.stride_tokens = stride_tokens
        self.tokenizer = tokenizer

    def chunk(self, text: str) -> list[MicroChunk]:
        return chunk_by_tokens(
            text,
            window_tokens=self.window_tokens,
            stride_tokens=self.stride_tokens,
            tokenizer=self.tokenizer,
        )
