"""Application factory for the page API."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI

from ..config import RuntimeConfig, load_config
from ..data.transport import HttpClient, QueryTransport, UrllibHttpClient
from ..observability.metrics import MetricsRegistry, default_metrics
from ..renderer import PageRenderer
from ..resolution.environment import Environment
from ..version import __version__
from .routes import build_actions_router, build_health_router, build_pages_router
from .schemas import ResolvePageRequest

log = logging.getLogger("pagewright.server")


def create_app(
    config: RuntimeConfig | None = None,
    transport: QueryTransport | None = None,
    http: HttpClient | None = None,
    metrics: MetricsRegistry | None = None,
) -> FastAPI:
    """
    Build the FastAPI app. Every request gets a fresh page session; the
    HTTP client and query transport are shared.
    """

    config = config or load_config()
    metrics = metrics or default_metrics
    http = http or UrllibHttpClient(config, metrics=metrics)

    def renderer_for(payload: ResolvePageRequest, **collaborators: Any) -> PageRenderer:
        environment = Environment.for_viewport(
            payload.viewport_width,
            locale=payload.locale or config.default_locale,
            breakpoint=payload.breakpoint,
        )
        return PageRenderer(
            payload.page,
            environment=environment,
            config=config,
            http=http,
            transport=transport,
            user=payload.user,
            site=payload.site,
            site_info=payload.site_info,
            route_params=payload.route_params,
            initial_data=payload.data,
            metrics=metrics,
            **collaborators,
        )

    app = FastAPI(title="pagewright", version=__version__)
    app.include_router(build_health_router(metrics))
    app.include_router(build_pages_router(renderer_for))
    app.include_router(build_actions_router(renderer_for))
    log.debug("Page API ready (query endpoint: %s)", config.query_endpoint or "none")
    return app


__all__ = ["create_app"]
