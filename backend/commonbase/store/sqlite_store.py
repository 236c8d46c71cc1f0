"""SQLite-backed entry and vector stores."""

from __future__ import annotations

import sqlite3
from array import array
from typing import Any, Iterator, Sequence

import orjson

from commonbase.db.sqlite import FOLD_FUNCTION, SQLiteDatabase
from commonbase.models.entities import Embedding, Entry
from commonbase.store.base import EntryStore, VectorStore
from commonbase.utils.ids import new_entry_id
from commonbase.utils.time import now_us, us_to_datetime

_ENTRY_COLUMNS = "id, data, metadata_json, created_us, updated_us"


class SQLiteEntryStore(EntryStore):
    """Entries persisted in the ``entries`` table."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def insert(self, data: str, metadata: dict[str, Any]) -> Entry:
        entry_id = new_entry_id()
        now = now_us()
        with self.db.lock:
            self.db.execute(
                f"INSERT INTO entries ({_ENTRY_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                [entry_id, data, _dump_metadata(metadata), now, now],
            )
            self.db.commit()
        return Entry(
            id=entry_id,
            data=data,
            metadata=dict(metadata),
            created=us_to_datetime(now),
            updated=us_to_datetime(now),
        )

    def get(self, entry_id: str) -> Entry | None:
        row = self.db.query_one(f"SELECT {_ENTRY_COLUMNS} FROM entries WHERE id = ?", [entry_id])
        return _row_to_entry(row) if row else None

    def update(
        self,
        entry_id: str,
        data: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Entry | None:
        updates = ["updated_us = ?"]
        params: list[Any] = []
        if data is not None:
            updates.append("data = ?")
            params.append(data)
        if metadata is not None:
            updates.append("metadata_json = ?")
            params.append(_dump_metadata(metadata))
        with self.db.lock:
            row = self.db.query_one("SELECT updated_us FROM entries WHERE id = ?", [entry_id])
            if row is None:
                return None
            stamp = max(now_us(), int(row["updated_us"]) + 1)
            self.db.execute(f"UPDATE entries SET {', '.join(updates)} WHERE id = ?", [stamp, *params, entry_id])
            self.db.commit()
            return self.get(entry_id)

    def delete(self, entry_id: str) -> bool:
        with self.db.lock:
            cursor = self.db.execute("DELETE FROM entries WHERE id = ?", [entry_id])
            removed = cursor.rowcount > 0
            self.db.commit()
        return removed

    def list(self, offset: int, limit: int) -> list[Entry]:
        rows = self.db.query(
            f"SELECT {_ENTRY_COLUMNS} FROM entries ORDER BY created_us DESC, rowid DESC LIMIT ? OFFSET ?",
            [limit, offset],
        )
        return [_row_to_entry(row) for row in rows]

    def search(self, text_query: str, limit: int) -> list[Entry]:
        needle = text_query.casefold()
        rows = self.db.query(
            f"""
            SELECT {_ENTRY_COLUMNS} FROM entries
            WHERE instr({FOLD_FUNCTION}(data), ?) > 0 OR instr({FOLD_FUNCTION}(metadata_json), ?) > 0
            ORDER BY created_us DESC, rowid DESC
            LIMIT ?
            """,
            [needle, needle, limit],
        )
        return [_row_to_entry(row) for row in rows]

    def random_sample(self, limit: int) -> list[Entry]:
        rows = self.db.query(f"SELECT {_ENTRY_COLUMNS} FROM entries ORDER BY RANDOM() LIMIT ?", [limit])
        return [_row_to_entry(row) for row in rows]

    def count(self) -> int:
        row = self.db.query_one("SELECT COUNT(*) AS count FROM entries")
        return int(row["count"]) if row else 0


class SQLiteVectorStore(VectorStore):
    """Vectors persisted as packed float64 blobs in the ``embeddings`` table.

    The foreign key on ``embeddings.id`` cascades entry deletes; the engine
    still removes vectors explicitly so other backends behave the same.
    """

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def put(self, entry_id: str, vector: Sequence[float]) -> None:
        with self.db.lock:
            self.db.execute(
                """
                INSERT INTO embeddings (id, dim, vector) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET dim = excluded.dim, vector = excluded.vector
                """,
                [entry_id, len(vector), _pack(vector)],
            )
            self.db.commit()

    def delete(self, entry_id: str) -> None:
        with self.db.lock:
            self.db.execute("DELETE FROM embeddings WHERE id = ?", [entry_id])
            self.db.commit()

    def fetch(self, entry_id: str) -> Embedding | None:
        row = self.db.query_one("SELECT id, vector FROM embeddings WHERE id = ?", [entry_id])
        if row is None:
            return None
        return Embedding(id=row["id"], vector=_unpack(row["vector"]))

    def items(self) -> Iterator[Embedding]:
        for row in self.db.query("SELECT id, vector FROM embeddings"):
            yield Embedding(id=row["id"], vector=_unpack(row["vector"]))

    def count(self) -> int:
        row = self.db.query_one("SELECT COUNT(*) AS count FROM embeddings")
        return int(row["count"]) if row else 0


def _dump_metadata(metadata: dict[str, Any]) -> str:
    return orjson.dumps(metadata).decode("utf-8")


def _row_to_entry(row: sqlite3.Row) -> Entry:
    metadata = orjson.loads(row["metadata_json"]) if row["metadata_json"] else {}
    return Entry(
        id=row["id"],
        data=row["data"],
        metadata=metadata,
        created=us_to_datetime(row["created_us"]),
        updated=us_to_datetime(row["updated_us"]),
    )


def _pack(vector: Sequence[float]) -> bytes:
    return array("d", vector).tobytes()


def _unpack(blob: bytes) -> list[float]:
    floats = array("d")
    floats.frombytes(blob)
    return list(floats)


__all__ = ["SQLiteEntryStore", "SQLiteVectorStore"]
