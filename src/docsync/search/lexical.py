"""Hashed lexical vectors for keyword retrieval.

Tokens are hashed into LEX_DIM buckets (the hashing trick) and the
resulting term-frequency vector is L2-normalised, so lexical similarity
is a cosine over shared, code-aware terms. Vectors are kept sparse as
{bucket: weight} mappings.
"""

import math
import re
from collections import Counter

LEX_DIM = 4096

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "is", "are", "was", "were", "be", "been",
        "being", "have", "has", "had", "do", "does", "did", "will",
        "would", "could", "should", "may", "might", "must", "shall",
        "can", "need", "to", "of", "in", "for", "on", "with", "at", "by",
        "from", "as", "into", "through", "during", "before", "after",
        "above", "below", "between", "under", "again", "further", "then",
        "once", "if", "or", "and", "but", "not", "so", "than", "too",
        "very", "just", "only", "own", "same", "that", "this",
        # Code keywords that appear everywhere and carry no signal.
        "function", "return", "const", "let", "var", "import", "export",
        "default", "class", "interface", "type", "extends", "def", "self",
    }
)

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_SPLIT = re.compile(r"[_\-\s./\\:;,(){}\[\]<>\"'`=+*&|!?@#$%^~]+")

SparseVector = dict[int, float]


def tokenize_for_lex(text: str) -> list[str]:
    """Tokenize text for lexical matching.

    Splits camelCase and snake_case identifiers and path-like strings,
    lowercases, and drops single characters and stop words.
    """
    spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", text)
    tokens = (t.strip().lower() for t in _SPLIT.split(spaced))
    return [t for t in tokens if len(t) > 1 and t not in STOP_WORDS]


def djb2_hash(token: str) -> int:
    """DJB2-xor hash folded to 32 bits, stable across processes."""
    h = 5381
    for ch in token:
        h = (((h << 5) + h) ^ ord(ch)) & 0xFFFFFFFF
    return h


def lexical_vector(text: str) -> SparseVector:
    """Build the normalised hashed term-frequency vector for ``text``."""
    counts: Counter[int] = Counter(djb2_hash(t) % LEX_DIM for t in tokenize_for_lex(text))
    norm = math.sqrt(sum(v * v for v in counts.values()))
    if norm == 0:
        return {}
    return {bucket: count / norm for bucket, count in counts.items()}


def lexical_similarity(a: SparseVector, b: SparseVector) -> float:
    """Dot product of two normalised sparse vectors (their cosine)."""
    if not a or not b:
        return 0.0
    if len(a) > len(b):
        a, b = b, a
    return sum(weight * b.get(bucket, 0.0) for bucket, weight in a.items())


def encode_sparse(vector: SparseVector) -> str:
    return ",".join(f"{bucket}:{weight:.6g}" for bucket, weight in sorted(vector.items()))


def decode_sparse(raw: str) -> SparseVector:
    if not raw:
        return {}
    result: SparseVector = {}
    for pair in raw.split(","):
        bucket, _, weight = pair.partition(":")
        result[int(bucket)] = float(weight)
    return result
