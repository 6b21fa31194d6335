"""Page resolution routes."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from fastapi import APIRouter, HTTPException

from ...errors import DocumentError
from ...renderer import PageRenderer
from ..schemas import ResolvePageRequest

log = logging.getLogger("pagewright.server")


def build_pages_router(renderer_for: Callable[..., PageRenderer]) -> APIRouter:
    router = APIRouter()

    @router.post("/api/pages/resolve")
    async def api_resolve_page(payload: ResolvePageRequest) -> Dict[str, Any]:
        try:
            renderer = renderer_for(payload)
        except DocumentError as exc:
            raise HTTPException(
                status_code=400, detail={"message": exc.message, "code": exc.code, "diagnostics": exc.diagnostics}
            ) from exc
        await renderer.render()
        log.info("Resolved page %s (%s top-level nodes)", renderer.document.id, len(renderer.tree))
        return renderer.to_dict()

    return router


__all__ = ["build_pages_router"]
