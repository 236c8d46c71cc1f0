"""Retrieval engine tying the entry store, vector index and embedding provider together."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Sequence

from commonbase.core.config import Settings
from commonbase.core.errors import EmbeddingError, StoreError, ValidationError
from commonbase.core.logging import get_logger
from commonbase.core.metrics import EMBEDDING_FAILURES, INDEX_SIZE, REQUEST_COUNT, REQUEST_LATENCY
from commonbase.ingest.embeddings import EmbeddingProvider
from commonbase.models.entities import BACKLINKS_KEY, LINKS_KEY, Entry, ScoredEntry
from commonbase.retrieval.similarity import SearchResult
from commonbase.retrieval.vector_index import VectorIndex
from commonbase.store.base import EntryStore

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RetrievalDefaults:
    """Per-call fallbacks for omitted ``limit``/``threshold`` arguments."""

    threshold: float = 0.7
    search_limit: int = 20
    similar_limit: int = 5
    random_limit: int = 10
    list_limit: int = 50

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetrievalDefaults":
        return cls(
            threshold=settings.default_threshold,
            search_limit=settings.default_limit,
            similar_limit=settings.similar_limit,
            random_limit=settings.random_limit,
            list_limit=settings.list_limit,
        )


class RetrievalEngine:
    """Coordinates entry persistence, embeddings and retrieval.

    Holds no entries or vectors between calls; every query reads the stores.
    The entry store and the vector index are never written atomically:
    entries are inserted before their vector and vectors are removed before
    their entry, so a vector never outlives its entry.
    """

    def __init__(
        self,
        entries: EntryStore,
        index: VectorIndex,
        embedder: EmbeddingProvider,
        defaults: RetrievalDefaults | None = None,
    ) -> None:
        self.entries = entries
        self.index = index
        self.embedder = embedder
        self.defaults = defaults or RetrievalDefaults()

    # Mutations --------------------------------------------------------

    def add_entry(
        self,
        data: str,
        metadata: dict[str, Any] | None = None,
        vector: Sequence[float] | None = None,
    ) -> Entry:
        if data is None or not data.strip():
            raise ValidationError("Entry data must not be empty")
        with _observe("add_entry"):
            entry = self.entries.insert(data, dict(metadata or {}))
            if vector is not None and len(vector) != self.index.dim:
                logger.warning(
                    "Ignoring supplied vector of length %s for entry %s; generating a new one",
                    len(vector),
                    entry.id,
                )
                vector = None
            self._store_embedding(entry.id, data, stage="ingest", vector=vector)
            return entry

    def update_entry(
        self,
        entry_id: str,
        data: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Entry | None:
        if data is not None and not data.strip():
            raise ValidationError("Entry data must not be empty")
        with _observe("update_entry"):
            existing = self.entries.get(entry_id)
            if existing is None:
                return None
            updated = self.entries.update(entry_id, data=data, metadata=metadata)
            if updated is None:
                # deleted between the read and the write
                return None
            if data is not None and data != existing.data:
                self._store_embedding(entry_id, data, stage="update")
            return updated

    def delete_entry(self, entry_id: str) -> bool:
        with _observe("delete_entry"):
            self.index.remove(entry_id)
            removed = self.entries.delete(entry_id)
            self._update_index_metric()
            return removed

    def link_entries(self, parent_id: str, child_id: str) -> None:
        """Record ``parent -> child`` as a link on the parent and a backlink on the child.

        Either side that no longer exists is skipped; the other side is still written.
        """
        with _observe("link_entries"):
            parent = self.entries.get(parent_id)
            if parent is None:
                logger.info("Link parent %s not found; skipping links update", parent_id)
            else:
                self._add_reference(parent, LINKS_KEY, child_id)
            child = self.entries.get(child_id)
            if child is None:
                logger.info("Link child %s not found; skipping backlinks update", child_id)
            else:
                self._add_reference(child, BACKLINKS_KEY, parent_id)

    # Reads ------------------------------------------------------------

    def get_entry(self, entry_id: str) -> Entry | None:
        return self.entries.get(entry_id)

    def list_entries(self, offset: int = 0, limit: int | None = None) -> list[Entry]:
        if offset < 0:
            raise ValidationError("offset must be >= 0")
        with _observe("list_entries"):
            return self.entries.list(offset, self._limit(limit, self.defaults.list_limit))

    def search_entries(self, query: str, limit: int | None = None) -> list[Entry]:
        if query is None or not query.strip():
            raise ValidationError("Search query must not be empty")
        with _observe("search_entries"):
            return self.entries.search(query.strip(), self._limit(limit, self.defaults.search_limit))

    def semantic_search(
        self,
        query: str,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[ScoredEntry]:
        if query is None or not query.strip():
            raise ValidationError("Search query must not be empty")
        top_k = self._limit(limit, self.defaults.search_limit)
        min_similarity = self._threshold(threshold)
        with _observe("semantic_search"):
            try:
                query_vector = self.embedder.embed(query)
                hits = self.index.nearest(query_vector, limit=top_k, min_similarity=min_similarity)
            except EmbeddingError as exc:
                EMBEDDING_FAILURES.labels(stage="query", reason=type(exc).__name__).inc()
                raise
            return self._hydrate(hits)

    def get_similar_entries(
        self,
        entry_id: str,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[ScoredEntry]:
        top_k = self._limit(limit, self.defaults.similar_limit)
        min_similarity = self._threshold(threshold)
        with _observe("get_similar_entries"):
            vector = self.index.get(entry_id)
            if vector is None:
                return []
            if len(vector) != self.index.dim:
                logger.warning("Stored vector for %s has stale dimension %s", entry_id, len(vector))
                return []
            hits = self.index.nearest(
                vector,
                limit=top_k,
                min_similarity=min_similarity,
                exclude_id=entry_id,
            )
            return self._hydrate(hits)

    def get_random_entries(self, limit: int | None = None) -> list[Entry]:
        with _observe("get_random_entries"):
            return self.entries.random_sample(self._limit(limit, self.defaults.random_limit))

    # Internal helpers -------------------------------------------------

    def _store_embedding(
        self,
        entry_id: str,
        data: str,
        stage: str,
        vector: Sequence[float] | None = None,
    ) -> bool:
        """Embed and index ``data``; embedding failures are logged and leave any previous vector in place.

        Store failures from the index still propagate.
        """
        try:
            if vector is None:
                vector = self.embedder.embed(data)
            self.index.upsert(entry_id, vector)
        except StoreError:
            raise
        except Exception as exc:
            EMBEDDING_FAILURES.labels(stage=stage, reason=type(exc).__name__).inc()
            logger.warning(
                "Embedding failed for entry %s; stored without vector: %s",
                entry_id,
                exc,
                extra={"cb_entry_id": entry_id, "cb_stage": stage},
            )
            return False
        self._update_index_metric()
        return True

    def _add_reference(self, entry: Entry, key: str, target_id: str) -> None:
        current = entry.metadata.get(key) or []
        if target_id in current:
            return
        metadata = dict(entry.metadata)
        metadata[key] = [*current, target_id]
        self.entries.update(entry.id, metadata=metadata)

    def _hydrate(self, hits: Sequence[SearchResult]) -> list[ScoredEntry]:
        results: list[ScoredEntry] = []
        for hit in hits:
            entry = self.entries.get(hit.entry_id)
            if entry is None:
                logger.debug("Indexed entry %s no longer exists; skipping", hit.entry_id)
                continue
            results.append(ScoredEntry(entry=entry, similarity=hit.score))
        return results

    def _update_index_metric(self) -> None:
        INDEX_SIZE.set(self.index.size)

    @staticmethod
    def _limit(value: int | None, default: int) -> int:
        if value is None:
            return default
        if value <= 0:
            raise ValidationError("limit must be > 0")
        return value

    def _threshold(self, value: float | None) -> float:
        if value is None:
            return self.defaults.threshold
        if not 0.0 <= value <= 1.0:
            raise ValidationError("threshold must be within [0, 1]")
        return float(value)


@contextmanager
def _observe(operation: str) -> Iterator[None]:
    start = time.perf_counter()
    status = "ok"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        REQUEST_LATENCY.labels(operation=operation).observe(time.perf_counter() - start)
        REQUEST_COUNT.labels(operation=operation, status=status).inc()


__all__ = ["RetrievalEngine", "RetrievalDefaults"]
