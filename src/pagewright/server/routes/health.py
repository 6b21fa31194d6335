"""Health and metrics routes."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from ...observability.metrics import MetricsRegistry
from ...version import DOCUMENT_SCHEMA_VERSION, __version__


def build_health_router(metrics: MetricsRegistry) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @router.get("/api/version")
    def api_version() -> Dict[str, str]:
        return {"version": __version__, "documentSchemaVersion": DOCUMENT_SCHEMA_VERSION}

    @router.get("/api/metrics")
    def api_metrics() -> Dict[str, Any]:
        return {"metrics": metrics.snapshot()}

    return router


__all__ = ["build_health_router"]
