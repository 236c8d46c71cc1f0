"""In-memory stores used by tests and ephemeral sessions."""

from __future__ import annotations

import copy
import itertools
import random
from dataclasses import dataclass
from typing import Any, Iterator, Sequence

import orjson

from commonbase.models.entities import Embedding, Entry
from commonbase.store.base import EntryStore, VectorStore
from commonbase.utils.ids import new_entry_id
from commonbase.utils.time import now_us, us_to_datetime


@dataclass(slots=True)
class _Row:
    seq: int
    id: str
    data: str
    metadata: dict[str, Any]
    created_us: int
    updated_us: int


class InMemoryEntryStore(EntryStore):
    """Dictionary-backed entry store with the same ordering rules as SQLite."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rows: dict[str, _Row] = {}
        self._seq = itertools.count()
        self._rng = rng or random.Random()

    def insert(self, data: str, metadata: dict[str, Any]) -> Entry:
        now = now_us()
        row = _Row(
            seq=next(self._seq),
            id=new_entry_id(),
            data=data,
            metadata=copy.deepcopy(metadata),
            created_us=now,
            updated_us=now,
        )
        self._rows[row.id] = row
        return _to_entry(row)

    def get(self, entry_id: str) -> Entry | None:
        row = self._rows.get(entry_id)
        return _to_entry(row) if row else None

    def update(
        self,
        entry_id: str,
        data: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Entry | None:
        row = self._rows.get(entry_id)
        if row is None:
            return None
        if data is not None:
            row.data = data
        if metadata is not None:
            row.metadata = copy.deepcopy(metadata)
        row.updated_us = max(now_us(), row.updated_us + 1)
        return _to_entry(row)

    def delete(self, entry_id: str) -> bool:
        return self._rows.pop(entry_id, None) is not None

    def list(self, offset: int, limit: int) -> list[Entry]:
        return [_to_entry(row) for row in self._ordered()[offset : offset + limit]]

    def search(self, text_query: str, limit: int) -> list[Entry]:
        needle = text_query.casefold()
        matches = [
            row
            for row in self._ordered()
            if needle in row.data.casefold() or needle in orjson.dumps(row.metadata).decode("utf-8").casefold()
        ]
        return [_to_entry(row) for row in matches[:limit]]

    def random_sample(self, limit: int) -> list[Entry]:
        rows = list(self._rows.values())
        picked = self._rng.sample(rows, min(limit, len(rows)))
        return [_to_entry(row) for row in picked]

    def count(self) -> int:
        return len(self._rows)

    def _ordered(self) -> list[_Row]:
        return sorted(self._rows.values(), key=lambda row: (row.created_us, row.seq), reverse=True)


class InMemoryVectorStore(VectorStore):
    """Dictionary-backed vector store.

    Has no cascade of its own; the engine removes vectors on entry delete.
    """

    def __init__(self) -> None:
        self._vectors: dict[str, list[float]] = {}

    def put(self, entry_id: str, vector: Sequence[float]) -> None:
        self._vectors[entry_id] = [float(value) for value in vector]

    def delete(self, entry_id: str) -> None:
        self._vectors.pop(entry_id, None)

    def fetch(self, entry_id: str) -> Embedding | None:
        vector = self._vectors.get(entry_id)
        return Embedding(id=entry_id, vector=list(vector)) if vector is not None else None

    def items(self) -> Iterator[Embedding]:
        for entry_id, vector in list(self._vectors.items()):
            yield Embedding(id=entry_id, vector=list(vector))

    def count(self) -> int:
        return len(self._vectors)


def _to_entry(row: _Row) -> Entry:
    return Entry(
        id=row.id,
        data=row.data,
        metadata=copy.deepcopy(row.metadata),
        created=us_to_datetime(row.created_us),
        updated=us_to_datetime(row.updated_us),
    )


__all__ = ["InMemoryEntryStore", "InMemoryVectorStore"]
