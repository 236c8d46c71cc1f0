"""Ingest pipeline orchestration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Sequence

from commonbase.core.errors import StoreError
from commonbase.core.logging import get_logger
from commonbase.ingest.extractors import ContentExtractor
from commonbase.ingest.types import IngestResult, IngestStats
from commonbase.models.entities import Entry
from commonbase.retrieval.engine import RetrievalEngine

logger = get_logger(__name__)


class IngestPipeline:
    """Feed user text and extracted file content into the retrieval engine."""

    def __init__(self, engine: RetrievalEngine, extractor: ContentExtractor | None = None) -> None:
        self.engine = engine
        self.extractor = extractor or ContentExtractor()

    def add_text(
        self,
        data: str,
        metadata: dict[str, Any] | None = None,
        vector: Sequence[float] | None = None,
    ) -> Entry:
        payload = dict(metadata or {})
        payload.setdefault("type", "text")
        return self.engine.add_entry(data, payload, vector=vector)

    def add_file(self, path: Path) -> Entry:
        extracted = self.extractor.parse(path)
        return self.engine.add_entry(extracted.text, extracted.metadata)

    def ingest_paths(self, paths: Sequence[Path]) -> dict[str, object]:
        stats = IngestStats()
        results: list[IngestResult] = []
        for path in paths:
            for file_path in _expand(Path(path).expanduser()):
                outcome = self._process_path(file_path)
                results.append(outcome)
                _update_stats(stats, outcome)
        logger.info("Ingested %s files (%s failed)", stats.processed, stats.failed)
        return {"stats": stats.to_dict(), "results": [result.to_dict() for result in results]}

    # Internal helpers -------------------------------------------------

    def _process_path(self, path: Path) -> IngestResult:
        try:
            entry = self.add_file(path)
        except StoreError:
            raise
        except Exception as exc:
            logger.exception("Failed to ingest %s: %s", path, exc)
            return IngestResult(path=path, status="error", detail=str(exc))
        embedded = self.engine.index.get(entry.id) is not None
        return IngestResult(path=path, status="processed", entry_id=entry.id, embedded=embedded)


def _expand(path: Path) -> Iterable[Path]:
    if path.is_dir():
        for file_path in sorted(path.rglob("*")):
            hidden = any(part.startswith(".") for part in file_path.relative_to(path).parts)
            if file_path.is_file() and not hidden:
                yield file_path
    else:
        yield path


def _update_stats(stats: IngestStats, result: IngestResult) -> None:
    if result.status == "processed":
        stats.processed += 1
        if result.embedded:
            stats.embedded += 1
    elif result.status == "error":
        stats.failed += 1


__all__ = ["IngestPipeline"]
