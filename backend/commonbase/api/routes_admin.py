"""Administrative routes for commonbase."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from commonbase.api.dependencies import get_app_settings, get_engine, reset_state
from commonbase.core.config import Settings
from commonbase.core.logging import get_logger
from commonbase.core.metrics import metrics_response

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", summary="Liveness check")
async def health() -> dict[str, bool]:
    return {"ok": True}


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


@router.get("/settings", summary="Effective settings (API key redacted)")
async def read_settings(settings: Settings = Depends(get_app_settings)) -> dict[str, Any]:
    return settings.public_dict()


@router.post("/settings/reload", summary="Re-read configuration and rebuild the engine")
def reload_settings() -> dict[str, Any]:
    reset_state()
    get_engine()
    logger.info("Settings reloaded")
    return get_app_settings().public_dict()


__all__ = ["router"]
