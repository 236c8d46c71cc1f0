"""FastAPI application setup for commonbase."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from commonbase.api.dependencies import (
    get_app_settings,
    get_database,
    get_embedding_provider,
    get_engine,
    get_ingest_pipeline,
)
from commonbase.api.routes_admin import router as admin_router
from commonbase.api.routes_entries import router as entries_router
from commonbase.api.routes_ingest import router as ingest_router
from commonbase.api.routes_search import router as search_router
from commonbase.core.errors import (
    CommonbaseError,
    EmbeddingProviderError,
    EmbeddingUnavailable,
    NotFound,
    StoreError,
    ValidationError,
)
from commonbase.core.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="commonbase",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:5174",
        "http://localhost:5174",
    ],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.include_router(entries_router, prefix="/entries", tags=["entries"])
app.include_router(search_router, prefix="/search", tags=["search"])
app.include_router(ingest_router, prefix="/ingest", tags=["ingest"])
app.include_router(admin_router, prefix="", tags=["admin"])

_STATUS_BY_ERROR: tuple[tuple[type[CommonbaseError], int], ...] = (
    (ValidationError, 422),
    (NotFound, 404),
    (EmbeddingUnavailable, 503),
    (EmbeddingProviderError, 502),
    (StoreError, 500),
)


@app.exception_handler(CommonbaseError)
async def handle_commonbase_error(request: Request, exc: CommonbaseError) -> JSONResponse:
    status_code = next((code for kind, code in _STATUS_BY_ERROR if isinstance(exc, kind)), 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_database()
    get_embedding_provider()
    get_engine()
    get_ingest_pipeline()
