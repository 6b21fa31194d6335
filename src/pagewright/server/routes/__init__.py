"""Route builders for the page API."""

from .actions import build_actions_router
from .health import build_health_router
from .pages import build_pages_router

__all__ = ["build_actions_router", "build_health_router", "build_pages_router"]
