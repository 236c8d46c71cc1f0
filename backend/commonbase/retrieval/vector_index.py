"""Vector index abstraction."""

from __future__ import annotations

import logging
from typing import Iterator, Sequence

from commonbase.core.errors import DimensionMismatch
from commonbase.retrieval.similarity import SearchResult, rank_nearest
from commonbase.store.base import VectorStore

logger = logging.getLogger(__name__)


class VectorIndex:
    """Cosine-similarity index over a :class:`VectorStore`.

    The store only persists vectors; dimensionality checks and the linear
    similarity scan live here so every backend ranks identically.
    """

    def __init__(self, store: VectorStore, dim: int) -> None:
        self.store = store
        self.dim = dim

    @property
    def size(self) -> int:
        return self.store.count()

    def upsert(self, entry_id: str, vector: Sequence[float]) -> None:
        self._check_dim(vector)
        self.store.put(entry_id, [float(value) for value in vector])

    def remove(self, entry_id: str) -> None:
        self.store.delete(entry_id)

    def get(self, entry_id: str) -> list[float] | None:
        embedding = self.store.fetch(entry_id)
        return embedding.vector if embedding is not None else None

    def nearest(
        self,
        vector: Sequence[float],
        limit: int,
        min_similarity: float | None = None,
        exclude_id: str | None = None,
    ) -> list[SearchResult]:
        self._check_dim(vector)
        return rank_nearest(
            vector,
            self._scan(),
            limit=limit,
            min_similarity=min_similarity,
            exclude_id=exclude_id,
        )

    def _scan(self) -> Iterator[tuple[str, list[float]]]:
        for embedding in self.store.items():
            if embedding.dim != self.dim:
                logger.warning(
                    "Skipping stored vector %s with dimension %s (index dimension %s)",
                    embedding.id,
                    embedding.dim,
                    self.dim,
                )
                continue
            yield embedding.id, embedding.vector

    def _check_dim(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dim:
            raise DimensionMismatch(self.dim, len(vector))


__all__ = ["VectorIndex", "SearchResult"]
