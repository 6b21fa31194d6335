"""Per-page-session mutable stores."""

from .stores import FormState, InternalStateStore, OverrideStore, PageSession

__all__ = ["FormState", "InternalStateStore", "OverrideStore", "PageSession"]
