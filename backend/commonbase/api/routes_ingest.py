"""Ingest API routes."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, status

from commonbase.api.dependencies import get_ingest_pipeline
from commonbase.ingest.pipeline import IngestPipeline
from commonbase.models.dto import EntryResponse, IngestFileRequest, IngestRequest, IngestResponse

router = APIRouter()


@router.post("", response_model=IngestResponse, summary="Ingest files or directories")
def trigger_ingest(
    request: IngestRequest,
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> IngestResponse:
    paths = [Path(path).expanduser() for path in request.paths]
    payload = pipeline.ingest_paths(paths)
    return IngestResponse(**payload)


@router.post(
    "/file",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Extract one file and store it as an entry",
)
def ingest_file(
    request: IngestFileRequest,
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> EntryResponse:
    entry = pipeline.add_file(Path(request.path))
    return EntryResponse.from_entry(entry)


__all__ = ["router"]
