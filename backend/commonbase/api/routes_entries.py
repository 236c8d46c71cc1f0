"""Entry CRUD, listing, linking and similarity routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from commonbase.api.dependencies import get_engine, get_ingest_pipeline
from commonbase.ingest.pipeline import IngestPipeline
from commonbase.models.dto import (
    DeleteResponse,
    EntryCreateRequest,
    EntryResponse,
    EntryUpdateRequest,
    ScoredEntryResponse,
)
from commonbase.retrieval.engine import RetrievalEngine

router = APIRouter()


@router.post("", response_model=EntryResponse, status_code=status.HTTP_201_CREATED, summary="Add an entry")
def add_entry(
    request: EntryCreateRequest,
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> EntryResponse:
    entry = pipeline.add_text(request.data, request.metadata, vector=request.vector)
    return EntryResponse.from_entry(entry)


@router.get("", response_model=list[EntryResponse], summary="List entries, newest first")
def list_entries(
    offset: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, ge=1, le=500),
    engine: RetrievalEngine = Depends(get_engine),
) -> list[EntryResponse]:
    return [EntryResponse.from_entry(entry) for entry in engine.list_entries(offset, limit)]


@router.get("/random", response_model=list[EntryResponse], summary="Random selection of entries")
def random_entries(
    limit: int | None = Query(default=None, ge=1, le=500),
    engine: RetrievalEngine = Depends(get_engine),
) -> list[EntryResponse]:
    return [EntryResponse.from_entry(entry) for entry in engine.get_random_entries(limit)]


@router.get("/{entry_id}", response_model=EntryResponse, summary="Fetch one entry")
def get_entry(entry_id: str, engine: RetrievalEngine = Depends(get_engine)) -> EntryResponse:
    entry = engine.get_entry(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return EntryResponse.from_entry(entry)


@router.patch("/{entry_id}", response_model=EntryResponse, summary="Update data and/or metadata")
def update_entry(
    entry_id: str,
    request: EntryUpdateRequest,
    engine: RetrievalEngine = Depends(get_engine),
) -> EntryResponse:
    entry = engine.update_entry(entry_id, data=request.data, metadata=request.metadata)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return EntryResponse.from_entry(entry)


@router.delete("/{entry_id}", response_model=DeleteResponse, summary="Delete an entry and its embedding")
def delete_entry(entry_id: str, engine: RetrievalEngine = Depends(get_engine)) -> DeleteResponse:
    return DeleteResponse(deleted=engine.delete_entry(entry_id))


@router.post(
    "/{parent_id}/links/{child_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Link parent to child (adds backlink on child)",
)
def link_entries(
    parent_id: str,
    child_id: str,
    engine: RetrievalEngine = Depends(get_engine),
) -> Response:
    engine.link_entries(parent_id, child_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{entry_id}/similar", response_model=list[ScoredEntryResponse], summary="Entries similar to one entry")
def similar_entries(
    entry_id: str,
    limit: int | None = Query(default=None, ge=1, le=500),
    threshold: float | None = Query(default=None, ge=0.0, le=1.0),
    engine: RetrievalEngine = Depends(get_engine),
) -> list[ScoredEntryResponse]:
    results = engine.get_similar_entries(entry_id, limit=limit, threshold=threshold)
    return [ScoredEntryResponse.from_scored(item) for item in results]


__all__ = ["router"]
