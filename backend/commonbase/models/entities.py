"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

LINKS_KEY = "links"
BACKLINKS_KEY = "backlinks"


@dataclass(slots=True)
class Entry:
    id: str
    data: str
    metadata: dict[str, Any] = field(default_factory=dict)
    created: datetime | None = None
    updated: datetime | None = None

    @property
    def links(self) -> list[str]:
        return list(self.metadata.get(LINKS_KEY) or [])

    @property
    def backlinks(self) -> list[str]:
        return list(self.metadata.get(BACKLINKS_KEY) or [])


@dataclass(slots=True)
class Embedding:
    id: str
    vector: list[float]

    @property
    def dim(self) -> int:
        return len(self.vector)


@dataclass(slots=True)
class ScoredEntry:
    """Entry annotated with its cosine similarity to a query."""

    entry: Entry
    similarity: float


__all__ = ["Entry", "Embedding", "ScoredEntry", "LINKS_KEY", "BACKLINKS_KEY"]
