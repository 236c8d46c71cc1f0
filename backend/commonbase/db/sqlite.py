"""SQLite management utilities."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence

from commonbase.core.errors import StoreError

DEFAULT_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA foreign_keys=ON;",
    "PRAGMA temp_store=MEMORY;",
)

MEMORY_PATH = ":memory:"
FOLD_FUNCTION = "cb_fold"


class SQLiteDatabase:
    """Thin wrapper around sqlite3 providing pragmatic defaults.

    Every ``sqlite3.Error`` raised through this wrapper is re-raised as
    :class:`StoreError` with the original exception chained. The single
    connection is shared across threads; every call holds ``lock``, and
    callers issuing several statements as one unit hold it themselves.
    Connections register ``cb_fold(text)``, Python's ``str.casefold``.
    """

    def __init__(self, db_path: Path | str, read_only: bool = False) -> None:
        self.db_path = db_path if str(db_path) == MEMORY_PATH else Path(db_path).expanduser()
        self.read_only = read_only
        self._connection: sqlite3.Connection | None = None
        self.lock = threading.RLock()

    @property
    def in_memory(self) -> bool:
        return str(self.db_path) == MEMORY_PATH

    def connect(self) -> sqlite3.Connection:
        with self.lock:
            if self._connection is None:
                with _store_errors("connect"):
                    conn = self._open()
                    conn.row_factory = sqlite3.Row
                    conn.create_function(FOLD_FUNCTION, 1, _fold, deterministic=True)
                    for pragma in DEFAULT_PRAGMAS:
                        conn.execute(pragma)
                self._connection = conn
            return self._connection

    def _open(self) -> sqlite3.Connection:
        if self.in_memory:
            return sqlite3.connect(MEMORY_PATH, check_same_thread=False)
        if self.read_only:
            uri = f"file:{self.db_path}?mode=ro"
            return sqlite3.connect(uri, uri=True, check_same_thread=False)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path, check_same_thread=False)

    def close(self) -> None:
        with self.lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def __enter__(self) -> "SQLiteDatabase":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        self.close()

    def commit(self) -> None:
        with self.lock:
            if self._connection is None:
                return
            with _store_errors("commit"):
                self._connection.commit()

    def rollback(self) -> None:
        with self.lock:
            if self._connection is None:
                return
            with _store_errors("rollback"):
                self._connection.rollback()

    def executescript(self, script: str) -> None:
        with self.lock, _store_errors("executescript"):
            self.connect().executescript(script)

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        with self.lock, _store_errors("execute"):
            return self.connect().execute(sql, params or [])

    def executemany(self, sql: str, seq_of_params: Iterable[Sequence[Any]]) -> sqlite3.Cursor:
        with self.lock, _store_errors("executemany"):
            return self.connect().executemany(sql, seq_of_params)

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
        with self.lock:
            cursor = self.execute(sql, params)
            with _store_errors("fetch"):
                return cursor.fetchall()

    def query_one(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Row | None:
        with self.lock:
            cursor = self.execute(sql, params)
            with _store_errors("fetch"):
                return cursor.fetchone()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        with self.lock:
            conn = self.connect()
            cursor = conn.cursor()
            try:
                with _store_errors("transaction"):
                    yield cursor
                    conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def ensure_schema(self, schema_sql: str | None = None) -> None:
        if schema_sql is None:
            schema_path = Path(__file__).with_name("schema.sql")
            schema_sql = schema_path.read_text(encoding="utf-8")
        self.executescript(schema_sql)


def _fold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StoreError(f"SQLite {action} failed: {exc}") from exc


__all__ = ["SQLiteDatabase", "MEMORY_PATH", "FOLD_FUNCTION"]
