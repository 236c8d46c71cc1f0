"""Retrieval orchestration components."""

from .vector_index import VectorIndex
from .engine import RetrievalDefaults, RetrievalEngine
from .similarity import SearchResult, cosine_similarity, rank_nearest

__all__ = [
    "VectorIndex",
    "RetrievalEngine",
    "RetrievalDefaults",
    "SearchResult",
    "cosine_similarity",
    "rank_nearest",
]
