"""Vector math shared by storage and search."""

import numpy as np


def normalize_embedding(vector: np.ndarray) -> np.ndarray:
    """Scale a vector to unit length; zero or non-finite norms are returned as-is."""
    vector = np.asarray(vector, dtype=np.float32)
    norm = float(np.linalg.norm(vector))
    if norm == 0 or not np.isfinite(norm):
        return vector
    return vector / norm


def to_blob(vector: np.ndarray) -> bytes:
    return np.asarray(vector, dtype=np.float32).tobytes()


def from_blob(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=np.float32)
