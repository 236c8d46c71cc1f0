"""Search API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from commonbase.api.dependencies import get_engine
from commonbase.models.dto import EntryResponse, ScoredEntryResponse, SearchRequest, SemanticSearchRequest
from commonbase.retrieval.engine import RetrievalEngine

router = APIRouter()


@router.post("", response_model=list[EntryResponse], summary="Keyword search over data and metadata")
def keyword_search(
    request: SearchRequest,
    engine: RetrievalEngine = Depends(get_engine),
) -> list[EntryResponse]:
    return [EntryResponse.from_entry(entry) for entry in engine.search_entries(request.query, request.limit)]


@router.post("/semantic", response_model=list[ScoredEntryResponse], summary="Embedding similarity search")
def semantic_search(
    request: SemanticSearchRequest,
    engine: RetrievalEngine = Depends(get_engine),
) -> list[ScoredEntryResponse]:
    results = engine.semantic_search(request.query, limit=request.limit, threshold=request.threshold)
    return [ScoredEntryResponse.from_scored(item) for item in results]


__all__ = ["router"]
