"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from commonbase.models.entities import Entry, ScoredEntry


class EntryCreateRequest(BaseModel):
    data: str = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)
    vector: list[float] | None = Field(default=None, description="Precomputed embedding")


class EntryUpdateRequest(BaseModel):
    data: str | None = None
    metadata: dict[str, Any] | None = None


class EntryResponse(BaseModel):
    id: str
    data: str
    metadata: dict[str, Any]
    created: datetime
    updated: datetime

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntryResponse":
        return cls(
            id=entry.id,
            data=entry.data,
            metadata=entry.metadata,
            created=entry.created,
            updated=entry.updated,
        )


class ScoredEntryResponse(EntryResponse):
    similarity: float

    @classmethod
    def from_scored(cls, scored: ScoredEntry) -> "ScoredEntryResponse":
        entry = scored.entry
        return cls(
            id=entry.id,
            data=entry.data,
            metadata=entry.metadata,
            created=entry.created,
            updated=entry.updated,
            similarity=scored.similarity,
        )


class DeleteResponse(BaseModel):
    deleted: bool


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    limit: int | None = Field(default=None, ge=1, le=500)


class SemanticSearchRequest(SearchRequest):
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class IngestFileRequest(BaseModel):
    path: str


class IngestRequest(BaseModel):
    paths: list[str] = Field(min_length=1, description="Files or directories to ingest")


class IngestResponse(BaseModel):
    stats: dict[str, int]
    results: list[dict[str, Any]]


__all__ = [
    "EntryCreateRequest",
    "EntryUpdateRequest",
    "EntryResponse",
    "ScoredEntryResponse",
    "DeleteResponse",
    "SearchRequest",
    "SemanticSearchRequest",
    "IngestFileRequest",
    "IngestRequest",
    "IngestResponse",
]
