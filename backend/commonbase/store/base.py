"""Capability interfaces every storage backend must satisfy."""

from __future__ import annotations

from typing import Any, Iterator, Sequence

from commonbase.models.entities import Embedding, Entry


class EntryStore:
    """Durable key-value store of entries.

    Implementations assign ids and timestamps on insert, refresh ``updated``
    on every mutation so that it strictly increases, order listings by
    ``created`` descending (insertion order breaks ties) and translate backend
    failures into :class:`~commonbase.core.errors.StoreError`.
    """

    def insert(self, data: str, metadata: dict[str, Any]) -> Entry:  # pragma: no cover - interface
        raise NotImplementedError

    def get(self, entry_id: str) -> Entry | None:  # pragma: no cover - interface
        raise NotImplementedError

    def update(
        self,
        entry_id: str,
        data: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Entry | None:  # pragma: no cover - interface
        raise NotImplementedError

    def delete(self, entry_id: str) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    def list(self, offset: int, limit: int) -> list[Entry]:  # pragma: no cover - interface
        raise NotImplementedError

    def search(self, text_query: str, limit: int) -> list[Entry]:  # pragma: no cover - interface
        raise NotImplementedError

    def random_sample(self, limit: int) -> list[Entry]:  # pragma: no cover - interface
        raise NotImplementedError

    def count(self) -> int:  # pragma: no cover - interface
        raise NotImplementedError


class VectorStore:
    """Raw persistence for embedding vectors keyed by entry id."""

    def put(self, entry_id: str, vector: Sequence[float]) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def delete(self, entry_id: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def fetch(self, entry_id: str) -> Embedding | None:  # pragma: no cover - interface
        raise NotImplementedError

    def items(self) -> Iterator[Embedding]:  # pragma: no cover - interface
        raise NotImplementedError

    def count(self) -> int:  # pragma: no cover - interface
        raise NotImplementedError


__all__ = ["EntryStore", "VectorStore"]
