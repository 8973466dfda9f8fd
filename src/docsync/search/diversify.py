"""Maximal Marginal Relevance diversification."""

from typing import Mapping, Optional, Sequence

import numpy as np

from docsync.models import SearchHit
from docsync.utils.vectors import normalize_embedding

DEFAULT_LAMBDA = 0.3


def mmr_diversify(
    hits: Sequence[SearchHit],
    embeddings: Mapping[str, np.ndarray],
    lam: float = DEFAULT_LAMBDA,
    top_k: int = 10,
) -> list[SearchHit]:
    """Greedily pick hits that are relevant but unlike those already picked.

    The first pick is the most relevant hit. Each later pick maximises
    ``lam * relevance - (1 - lam) * max_sim``, where ``max_sim`` is the
    highest cosine similarity to an already selected hit (floored at 0).
    A hit without an embedding, or compared against selections without
    one, gets ``max_sim = 0``. Ties go to the earlier hit in ``hits``.

    Args:
        hits: Candidates; ``SearchHit.score`` is the relevance.
        embeddings: Hit id -> embedding vector.
        lam: Trade-off in [0, 1]; higher favours relevance.
        top_k: Maximum number of hits to return.

    Returns:
        Hits in selection order.
    """
    if not hits or top_k <= 0:
        return []

    vectors: dict[str, Optional[np.ndarray]] = {
        hit.id: normalize_embedding(embeddings[hit.id]) if hit.id in embeddings else None
        for hit in hits
    }

    remaining = list(range(len(hits)))
    first = max(remaining, key=lambda i: (hits[i].score, -i))
    selected = [first]
    remaining.remove(first)

    # Running max similarity of each remaining candidate to the selection.
    max_sim = {i: 0.0 for i in remaining}

    while len(selected) < top_k and remaining:
        last = vectors[hits[selected[-1]].id]
        if last is not None:
            for i in remaining:
                vec = vectors[hits[i].id]
                if vec is not None and vec.shape == last.shape:
                    max_sim[i] = max(max_sim[i], float(np.dot(vec, last)))

        best = remaining[0]
        best_score = -np.inf
        for i in remaining:
            score = lam * hits[i].score - (1 - lam) * max_sim[i]
            if score > best_score:
                best, best_score = i, score

        selected.append(best)
        remaining.remove(best)

    return [hits[i] for i in selected]
