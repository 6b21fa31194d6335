"""Per-node resolution: overrides, visibility, repeaters and the node pipeline."""

from .environment import DEFAULT_BREAKPOINTS, Environment, detect_breakpoint, negotiate_locale
from .merge import deep_merge
from .overrides import resolve_effective_node, resolve_requirement_sources
from .repeater import RepeaterExpansion, expand_repeater
from .visibility import evaluate_visibility

__all__ = [
    "DEFAULT_BREAKPOINTS",
    "Environment",
    "RepeaterExpansion",
    "deep_merge",
    "detect_breakpoint",
    "evaluate_visibility",
    "expand_repeater",
    "negotiate_locale",
    "resolve_effective_node",
    "resolve_requirement_sources",
]
