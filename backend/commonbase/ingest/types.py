"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class ExtractedContent:
    """Text and metadata produced by a content extractor."""

    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class IngestStats:
    """Aggregated ingest statistics."""

    processed: int = 0
    failed: int = 0
    embedded: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "embedded": self.embedded,
        }


@dataclass(slots=True)
class IngestResult:
    """Outcome for a single processed path."""

    path: Path
    status: str
    entry_id: str | None = None
    embedded: bool = False
    detail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "status": self.status,
            "entry_id": self.entry_id,
            "embedded": self.embedded,
            "detail": self.detail,
        }


__all__ = ["ExtractedContent", "IngestStats", "IngestResult"]
