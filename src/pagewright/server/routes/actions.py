"""Action execution routes."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from fastapi import APIRouter, HTTPException

from ...actions import RecordingCollaborators
from ...errors import DocumentError
from ...renderer import PageRenderer
from ..schemas import RunActionsRequest

log = logging.getLogger("pagewright.server")

# Form scope used when the request names no node inside a form.
REQUEST_FORM_SCOPE = "__request__"


def build_actions_router(renderer_for: Callable[..., PageRenderer]) -> APIRouter:
    router = APIRouter()

    @router.post("/api/actions/run")
    async def api_run_actions(payload: RunActionsRequest) -> Dict[str, Any]:
        collaborators = RecordingCollaborators(session={"user": payload.user})
        try:
            renderer = renderer_for(payload, cart=collaborators, navigator=collaborators)
        except DocumentError as exc:
            raise HTTPException(
                status_code=400, detail={"message": exc.message, "code": exc.code, "diagnostics": exc.diagnostics}
            ) from exc
        await renderer.render()

        binding = renderer.resolver.bindings.get(payload.node_id) if payload.node_id else None
        form_scope_id = (binding.form_scope_id if binding else None) or REQUEST_FORM_SCOPE
        if payload.form_data:
            form = renderer.session.form(form_scope_id)
            form.values.update(payload.form_data)
        trace = await renderer.run_actions(
            payload.actions,
            payload.node_id,
            payload.context,
            base_context=binding.context if binding else None,
            form_scope_id=form_scope_id,
        )
        session = renderer.session.snapshot()
        return {
            "trace": trace.to_dict(),
            "overrides": session["overrides"],
            "states": session["states"],
            "forms": session["forms"],
            "calls": collaborators.calls(),
        }

    return router


__all__ = ["build_actions_router"]
