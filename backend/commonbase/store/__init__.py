"""Entry and vector storage backends."""

from .base import EntryStore, VectorStore
from .memory import InMemoryEntryStore, InMemoryVectorStore
from .sqlite_store import SQLiteEntryStore, SQLiteVectorStore

__all__ = [
    "EntryStore",
    "VectorStore",
    "InMemoryEntryStore",
    "InMemoryVectorStore",
    "SQLiteEntryStore",
    "SQLiteVectorStore",
]
