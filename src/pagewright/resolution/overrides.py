"""
Effective-node computation: base definition plus live patch, responsive and
locale overrides, in that order.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from ..document.loader import thaw
from ..expressions.templates import resolve_data_bindings_in_object, resolve_data_bindings_in_string
from .environment import negotiate_locale
from .merge import deep_merge

PROTECTED_KEYS = frozenset({"id", "type"})
OVERRIDE_MAP_KEYS = frozenset({"responsiveOverrides", "localeOverrides"})

GLOBAL_SCOPES = ("data", "site", "page", "user", "siteInfo")


def _strip(patch: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in patch.items() if key not in PROTECTED_KEYS and key not in OVERRIDE_MAP_KEYS}


def resolve_effective_node(
    node: Mapping[str, Any],
    breakpoint: Optional[str] = None,
    locale: Optional[str] = None,
    live_patch: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Return a new dict; `node` is left untouched. Precedence, lowest first:
    base, live patch, responsive override, locale override.
    """

    effective = thaw(node)
    if live_patch:
        effective = deep_merge(effective, _strip(live_patch))
    responsive = node.get("responsiveOverrides") or {}
    if breakpoint and isinstance(responsive.get(breakpoint), Mapping):
        effective = deep_merge(effective, _strip(responsive[breakpoint]))
    localized = node.get("localeOverrides") or {}
    if locale and localized:
        # `fr-CA` falls back to an `fr` or `fr-FR` override.
        matched = negotiate_locale(locale, localized, default="")
        if isinstance(localized.get(matched), Mapping):
            effective = deep_merge(effective, _strip(localized[matched]))
    return effective


def global_scope(context: Mapping[str, Any]) -> Dict[str, Any]:
    return {name: context[name] for name in GLOBAL_SCOPES if name in context}


def resolve_requirement_sources(
    requirements: List[Mapping[str, Any]] | None, context: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    """
    Resolve templated requirement sources against the global scopes only;
    node-level data cannot feed its own requirements.
    """

    scope = global_scope(context)
    resolved: List[Dict[str, Any]] = []
    for requirement in requirements or []:
        entry = thaw(requirement)
        source = entry.get("source") or {}
        if source.get("type") == "rql":
            queries = {}
            for name, query in (source.get("queries") or {}).items():
                queries[name] = resolve_data_bindings_in_object(query, scope)
            source["queries"] = queries
        else:
            if isinstance(source.get("query"), str):
                source["query"] = resolve_data_bindings_in_string(source["query"], scope)
            if source.get("variables") is not None:
                source["variables"] = resolve_data_bindings_in_object(source["variables"], scope)
        entry["source"] = source
        resolved.append(entry)
    return resolved
