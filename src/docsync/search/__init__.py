"""Retrieval: lexical vectors, rank fusion, diversification and hybrid search."""

from docsync.search.diversify import mmr_diversify
from docsync.search.expansion import TTLCache, clear_expansion_cache, expand_query
from docsync.search.fusion import rank_fused, rrf_fusion, sort_by_fused_score
from docsync.search.hybrid import HybridSearcher, merge_hits_by_score
from docsync.search.lexical import lexical_similarity, lexical_vector, tokenize_for_lex

__all__ = [
    "HybridSearcher",
    "TTLCache",
    "clear_expansion_cache",
    "expand_query",
    "lexical_similarity",
    "lexical_vector",
    "merge_hits_by_score",
    "mmr_diversify",
    "rank_fused",
    "rrf_fusion",
    "sort_by_fused_score",
    "tokenize_for_lex",
]
