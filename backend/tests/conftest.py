"""Test fixtures for commonbase."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from commonbase.core.errors import EmbeddingProviderError  # noqa: E402
from commonbase.db.sqlite import MEMORY_PATH, SQLiteDatabase  # noqa: E402
from commonbase.ingest.embeddings import EmbeddingProvider, HashedEmbeddingProvider  # noqa: E402
from commonbase.retrieval import RetrievalDefaults, RetrievalEngine, VectorIndex  # noqa: E402
from commonbase.store import (  # noqa: E402
    InMemoryEntryStore,
    InMemoryVectorStore,
    SQLiteEntryStore,
    SQLiteVectorStore,
)

DIM = 1536


def vec(*head: float, dim: int = DIM) -> list[float]:
    """Vector of length ``dim`` whose leading components are ``head``."""
    return [*head, *([0.0] * (dim - len(head)))]


class FakeEmbeddingProvider(EmbeddingProvider):
    """Scripted provider: known texts map to fixed vectors, others are hashed."""

    name = "fake"

    def __init__(self, dim: int = DIM) -> None:
        super().__init__(dim=dim)
        self.vectors: dict[str, Sequence[float]] = {}
        self.failure: Exception | None = None
        self.calls: list[str] = []
        self._fallback = HashedEmbeddingProvider(dim=dim)

    def script(self, text: str, vector: Sequence[float]) -> None:
        self.vectors[text] = vector

    def fail_with(self, exc: Exception | None = None) -> None:
        self.failure = exc or EmbeddingProviderError("upstream unavailable")

    def recover(self) -> None:
        self.failure = None

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.failure is not None:
            raise self.failure
        if text in self.vectors:
            return list(self.vectors[text])
        return self._fallback.embed(text)


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("CB_DB_PATH", str(tmp_path / "commonbase.db"))
    monkeypatch.setenv("CB_EMBEDDING_BACKEND", "hashed")
    for name in ("CB_CONFIG", "CB_EMBEDDING_API_KEY", "OPENAI_API_KEY", "CB_DEFAULT_THRESHOLD"):
        monkeypatch.delenv(name, raising=False)

    from commonbase.api import dependencies as deps

    deps.reset_state()
    yield
    deps.reset_state()


@pytest.fixture
def provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def sqlite_db() -> SQLiteDatabase:
    db = SQLiteDatabase(MEMORY_PATH)
    db.ensure_schema()
    yield db
    db.close()


@pytest.fixture(params=["memory", "sqlite"])
def stores(request: pytest.FixtureRequest, sqlite_db: SQLiteDatabase):
    """(entry store, vector store) pair for each backend."""
    if request.param == "memory":
        return InMemoryEntryStore(), InMemoryVectorStore()
    return SQLiteEntryStore(sqlite_db), SQLiteVectorStore(sqlite_db)


@pytest.fixture
def engine(stores, provider: FakeEmbeddingProvider) -> RetrievalEngine:
    entry_store, vector_store = stores
    return RetrievalEngine(
        entries=entry_store,
        index=VectorIndex(vector_store, dim=provider.dim),
        embedder=provider,
        defaults=RetrievalDefaults(),
    )


@pytest.fixture(scope="session")
def sample_text() -> str:
    return "Title\n\nParagraph one.\n\nParagraph two is here."
