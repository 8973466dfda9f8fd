"""SentenceTransformer-based embedding gateway."""

import logging
import threading

import numpy as np
from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    """Embedding provider using the sentence-transformers library.

    Uses all-MiniLM-L6-v2 by default - a fast, lightweight model that
    produces good quality embeddings for semantic search. The model is
    shared by every sync worker, so loading is guarded by a lock.
    """

    DEFAULT_MODEL = "all-MiniLM-L6-v2"

    def __init__(self, model_name: str | None = None, batch_size: int = 64):
        """Initialize the embedder.

        Args:
            model_name: Name of the sentence-transformers model to use.
                       Defaults to all-MiniLM-L6-v2.
            batch_size: Batch size passed to SentenceTransformer.encode.
        """
        self._model_name = model_name or self.DEFAULT_MODEL
        self._batch_size = batch_size
        self._model: SentenceTransformer | None = None
        self._lock = threading.Lock()

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the model on first access."""
        if self._model is None:
            with self._lock:
                if self._model is None:
                    logger.info(f"Loading embedding model {self._model_name}...")
                    self._model = SentenceTransformer(self._model_name)
        return self._model

    @property
    def dimension(self) -> int:
        """Return the embedding dimension."""
        return self.model.get_sentence_embedding_dimension()

    @property
    def model_name(self) -> str:
        """Return identifier for the model used."""
        return self._model_name

    def embed(self, texts: list[str]) -> np.ndarray:
        """Embed a batch of texts into L2-normalised float32 vectors.

        Returns:
            numpy array of shape (len(texts), embedding_dim)
        """
        if not texts:
            return np.zeros((0, 0), dtype=np.float32)

        embeddings = self.model.encode(
            texts,
            batch_size=self._batch_size,
            convert_to_numpy=True,
            normalize_embeddings=True,  # For cosine similarity
            show_progress_bar=False,
        )
        return embeddings.astype(np.float32)
