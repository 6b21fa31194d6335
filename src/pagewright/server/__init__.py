"""HTTP surface for resolving pages and running actions."""

from .app import create_app

__all__ = ["create_app"]
