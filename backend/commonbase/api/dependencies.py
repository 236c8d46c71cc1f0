"""Shared FastAPI dependencies; the composition root of the service."""

from __future__ import annotations

import threading
from functools import lru_cache

from commonbase.core.config import Settings, get_settings
from commonbase.db.sqlite import SQLiteDatabase
from commonbase.ingest.describer import build_image_describer
from commonbase.ingest.embeddings import EmbeddingProvider, build_embedding_provider
from commonbase.ingest.extractors import ContentExtractor
from commonbase.ingest.pipeline import IngestPipeline
from commonbase.retrieval import RetrievalDefaults, RetrievalEngine, VectorIndex
from commonbase.store import SQLiteEntryStore, SQLiteVectorStore

_DB: SQLiteDatabase | None = None
_EMBEDDER: EmbeddingProvider | None = None
_ENGINE: RetrievalEngine | None = None
_PIPELINE: IngestPipeline | None = None
_LOCK = threading.RLock()


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    with _LOCK:
        if _DB is None:
            db = SQLiteDatabase(get_app_settings().db_path)
            db.ensure_schema()
            _DB = db
        return _DB


def get_embedding_provider() -> EmbeddingProvider:
    global _EMBEDDER
    with _LOCK:
        if _EMBEDDER is None:
            _EMBEDDER = build_embedding_provider(get_app_settings())
        return _EMBEDDER


def get_engine() -> RetrievalEngine:
    global _ENGINE
    with _LOCK:
        if _ENGINE is None:
            db = get_database()
            embedder = get_embedding_provider()
            _ENGINE = RetrievalEngine(
                entries=SQLiteEntryStore(db),
                index=VectorIndex(SQLiteVectorStore(db), dim=embedder.dim),
                embedder=embedder,
                defaults=RetrievalDefaults.from_settings(get_app_settings()),
            )
        return _ENGINE


def get_ingest_pipeline() -> IngestPipeline:
    global _PIPELINE
    with _LOCK:
        if _PIPELINE is None:
            describer = build_image_describer(get_app_settings())
            _PIPELINE = IngestPipeline(engine=get_engine(), extractor=ContentExtractor(describer))
        return _PIPELINE


def reset_state() -> None:
    """Drop every cached component so the next request rebuilds from fresh settings."""
    global _DB, _EMBEDDER, _ENGINE, _PIPELINE
    with _LOCK:
        if _DB is not None:
            _DB.close()
        get_settings.cache_clear()
        get_app_settings.cache_clear()
        _DB = None
        _EMBEDDER = None
        _ENGINE = None
        _PIPELINE = None


__all__ = [
    "get_app_settings",
    "get_database",
    "get_embedding_provider",
    "get_engine",
    "get_ingest_pipeline",
    "reset_state",
]
