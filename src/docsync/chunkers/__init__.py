"""Chunking strategies that turn raw text into indexable units."""

from docsync.chunkers.character_chunker import CharacterChunker, chunk_text
from docsync.chunkers.token_chunker import (
    TiktokenTokenizer,
    TokenChunker,
    chunk_by_tokens,
    get_default_tokenizer,
)

__all__ = [
    "CharacterChunker",
    "TiktokenTokenizer",
    "TokenChunker",
    "chunk_by_tokens",
    "chunk_text",
    "get_default_tokenizer",
]
