"""Reciprocal Rank Fusion of dense and lexical candidate lists.

Dense cosine scores and lexical term scores live on different scales, so
fusion works purely in rank space: each list contributes
``weight / (k + rank + 1)`` for every id it contains.
"""

import logging
import math
from typing import Mapping, Optional, Sequence

from docsync.models import RankedHit, SearchHit

logger = logging.getLogger(__name__)

DEFAULT_K = 30


def _best_ranks(hits: Sequence[RankedHit]) -> dict[str, int]:
    ranks: dict[str, int] = {}
    for hit in hits:
        if hit.id not in ranks or hit.rank < ranks[hit.id]:
            ranks[hit.id] = hit.rank
    return ranks


def rrf_fusion(
    dense_hits: Sequence[RankedHit],
    lexical_hits: Sequence[RankedHit],
    k: float = DEFAULT_K,
    dense_weight: float = 1.0,
    lexical_weight: float = 1.0,
) -> dict[str, float]:
    """Combine two ranked lists into one score per id.

    An id found in both lists receives both terms. Should an id appear
    twice in one list, only its best rank counts.

    Returns:
        Mapping id -> combined score, in first-seen order (dense first).
    """
    scores: dict[str, float] = {}
    for ranks, weight in (
        (_best_ranks(dense_hits), dense_weight),
        (_best_ranks(lexical_hits), lexical_weight),
    ):
        for hit_id, rank in ranks.items():
            scores[hit_id] = scores.get(hit_id, 0.0) + weight / (k + rank + 1)
    return scores


def rank_fused(
    scores: Mapping[str, float],
    dense_hits: Sequence[RankedHit] = (),
    lexical_hits: Sequence[RankedHit] = (),
) -> list[tuple[str, float]]:
    """Order fused scores best-first with a deterministic tie-break.

    Ties prefer the better dense rank, then the better lexical rank, then
    the order in which ids were first inserted into ``scores``.
    """
    dense_ranks = _best_ranks(dense_hits)
    lexical_ranks = _best_ranks(lexical_hits)
    order = {hit_id: i for i, hit_id in enumerate(scores)}

    def key(item: tuple[str, float]) -> tuple:
        hit_id, score = item
        return (
            -score,
            dense_ranks.get(hit_id, math.inf),
            lexical_ranks.get(hit_id, math.inf),
            order[hit_id],
        )

    return sorted(scores.items(), key=key)


def sort_by_fused_score(
    scores: Mapping[str, float],
    hit_map: Mapping[str, SearchHit],
    top_k: int,
    dense_hits: Sequence[RankedHit] = (),
    lexical_hits: Sequence[RankedHit] = (),
) -> list[SearchHit]:
    """Materialise the ``top_k`` best fused ids as hits carrying their fused score.

    Ids without a hit in ``hit_map`` are dropped.
    """
    if top_k <= 0:
        return []
    results: list[SearchHit] = []
    for hit_id, score in rank_fused(scores, dense_hits, lexical_hits):
        hit: Optional[SearchHit] = hit_map.get(hit_id)
        if hit is None:
            logger.debug(f"Fused id {hit_id} has no hit payload; dropping")
            continue
        results.append(hit.with_score(score))
        if len(results) >= top_k:
            break
    return results


def to_ranked(hits: Sequence[SearchHit], source: str) -> list[RankedHit]:
    """Turn a best-first hit list into RankedHits with zero-based ranks."""
    return [
        RankedHit(id=hit.id, rank=i, score=hit.score, source=source)  # type: ignore[arg-type]
        for i, hit in enumerate(hits)
    ]
