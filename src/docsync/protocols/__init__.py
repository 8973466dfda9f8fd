"""Protocol definitions for extensible components."""

from docsync.protocols.chunker import ChunkingStrategy
from docsync.protocols.embedder import EmbeddingProvider
from docsync.protocols.tokenizer import Tokenizer
from docsync.protocols.vector_store import VectorStore

__all__ = ["ChunkingStrategy", "EmbeddingProvider", "Tokenizer", "VectorStore"]
