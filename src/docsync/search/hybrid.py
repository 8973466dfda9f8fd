"""Hybrid search: dense + lexical retrieval, RRF fusion and MMR diversification."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Callable, Optional, Sequence

from docsync.config import SearchConfig
from docsync.errors import ErrorKind, classify_error
from docsync.models import SearchHit
from docsync.protocols import EmbeddingProvider, VectorStore
from docsync.result import Err, Ok, Result, unwrap_or
from docsync.search.diversify import mmr_diversify
from docsync.search.expansion import expand_query
from docsync.search.fusion import rrf_fusion, sort_by_fused_score, to_ranked

logger = logging.getLogger(__name__)


def merge_hits_by_score(hits: Sequence[SearchHit]) -> list[SearchHit]:
    """Deduplicate hits by id, keeping each id's best score, best-first."""
    merged: dict[str, SearchHit] = {}
    for hit in hits:
        existing = merged.get(hit.id)
        if existing is None or hit.score > existing.score:
            merged[hit.id] = hit
    return sorted(merged.values(), key=lambda h: h.score, reverse=True)


class HybridSearcher:
    """Runs a query against a VectorStore in both retrieval modes.

    The dense and lexical candidate fetches are independent and run
    concurrently; fusion and diversification run on the caller's thread
    once both have returned.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedder: EmbeddingProvider,
        config: Optional[SearchConfig] = None,
    ):
        self.vector_store = vector_store
        self.embedder = embedder
        self.config = config or SearchConfig()

    def search(self, query: str, **kwargs) -> list[SearchHit]:
        """Like try_search(), but an error yields an empty list."""
        result = self.try_search(query, **kwargs)
        if not result.ok:
            logger.warning(f"Search failed ({result.kind.value}): {result.message}")
        return unwrap_or(result, [])

    def try_search(
        self,
        query: str,
        character_id: Optional[str] = None,
        folder_ids: Optional[Sequence[str]] = None,
        top_k: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Result[list[SearchHit]]:
        """Search for ``query`` and return at most ``top_k`` hits.

        Args:
            query: Natural language or keyword query.
            character_id: Restrict to one agent's folders.
            folder_ids: Restrict to specific folders.
            top_k: Result count; defaults to the configured top_k.
            cancel_event: Checked between stages.
        """
        cfg = self.config
        top_k = cfg.top_k if top_k is None else top_k
        if not query or not query.strip() or top_k <= 0:
            return Ok([])

        queries = expand_query(query) if cfg.enable_query_expansion else [query]

        try:
            vectors = self.embedder.embed(queries)
        except Exception as e:
            logger.warning(f"Query embedding failed: {e}")
            return Err(classify_error(e), f"embedding failed: {e}")

        if _cancelled(cancel_event):
            return Err(ErrorKind.CANCELLED, "search cancelled")

        if not cfg.enable_hybrid:
            logger.debug("Hybrid search disabled; running dense search only")
            hits = [
                h
                for h in self._search_dense(vectors, top_k, character_id, folder_ids)
                if h.score >= cfg.min_score
            ]
            return Ok(hits[:top_k])

        candidate_limit = top_k * cfg.candidate_multiplier
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="docsync-search") as pool:
            dense_future = pool.submit(
                self._search_dense, vectors, candidate_limit, character_id, folder_ids
            )
            lexical_future = pool.submit(
                self._search_lexical, queries, candidate_limit, character_id, folder_ids
            )
            dense, dense_error = _collect(dense_future.result)
            lexical, lexical_error = _collect(lexical_future.result)

        if dense_error and lexical_error:
            return Err(classify_error(dense_error), f"retrieval failed: {dense_error}")
        if _cancelled(cancel_event):
            return Err(ErrorKind.CANCELLED, "search cancelled")

        floor = min(cfg.min_score, 0.01)
        dense = [h for h in dense if h.score >= floor]
        logger.debug(f"Dense: {len(dense)}, Lexical: {len(lexical)}")

        if not dense:
            candidates = lexical
        elif not lexical:
            candidates = dense
        else:
            dense_ranked = to_ranked(dense, "dense")
            lexical_ranked = to_ranked(lexical, "lexical")
            scores = rrf_fusion(
                dense_ranked,
                lexical_ranked,
                k=cfg.rrf_k,
                dense_weight=cfg.dense_weight,
                lexical_weight=cfg.lexical_weight,
            )
            hit_map: dict[str, SearchHit] = {}
            for hit in [*dense, *lexical]:
                hit_map.setdefault(hit.id, hit)
            candidates = sort_by_fused_score(
                scores, hit_map, candidate_limit, dense_ranked, lexical_ranked
            )

        if cfg.enable_diversification and len(candidates) > 1:
            candidates = self._diversify(candidates, top_k)

        return Ok(candidates[:top_k])

    def _search_dense(self, vectors, top_k, character_id, folder_ids) -> list[SearchHit]:
        hits: list[SearchHit] = []
        for vector in vectors:
            hits.extend(
                self.vector_store.query_dense(
                    vector, top_k, character_id=character_id, folder_ids=folder_ids
                )
            )
        return merge_hits_by_score(hits)[:top_k]

    def _search_lexical(self, queries, top_k, character_id, folder_ids) -> list[SearchHit]:
        hits: list[SearchHit] = []
        for query in queries:
            hits.extend(
                self.vector_store.query_lexical(
                    query, top_k, character_id=character_id, folder_ids=folder_ids
                )
            )
        return merge_hits_by_score(hits)[:top_k]

    def _diversify(self, candidates: list[SearchHit], top_k: int) -> list[SearchHit]:
        try:
            embeddings = self.vector_store.get_embeddings([h.id for h in candidates])
        except Exception as e:
            logger.warning(f"Could not load embeddings for diversification: {e}")
            return candidates

        # Relevance rescaled to [0, 1], the range MMR compares against cosine similarity.
        top = max(h.score for h in candidates)
        if top <= 0:
            return candidates
        scaled = [replace(h, score=h.score / top) for h in candidates]
        by_id = {h.id: h for h in candidates}
        picked = mmr_diversify(scaled, embeddings, self.config.mmr_lambda, top_k)
        return [by_id[h.id] for h in picked]


def _collect(fetch: Callable[[], list[SearchHit]]) -> tuple[list[SearchHit], Optional[Exception]]:
    try:
        return fetch(), None
    except Exception as e:
        logger.warning(f"Candidate fetch failed: {e}")
        return [], e


def _cancelled(event: Optional[threading.Event]) -> bool:
    return event is not None and event.is_set()
