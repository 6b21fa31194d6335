"""
Repeater expansion: one template node plus a source collection becomes N
concrete children with deterministic ids.

Only the repeater's own meta-fields (`source`, `filter`, `sort`, `limit`)
are resolved here. The template is cloned untouched for every item and its
bindings are resolved later against the per-item context.
"""

from __future__ import annotations

import functools
import logging
import math
import unicodedata
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..document.loader import thaw
from ..expressions.paths import get_path
from ..expressions.templates import evaluate_template, has_bindings, resolve_data_bindings_in_object
from ..expressions.values import UNDEFINED, is_nullish, is_sequence, js_string, to_number
from .conditions import apply_operator

log = logging.getLogger("pagewright.resolution")

FILTER_OPERATORS = {"equals", "notEquals", "greaterThan", "lessThan", "contains", "notContains", "exists", "notExists"}


@dataclass
class RepeatedChild:
    node: Dict[str, Any]
    item: Any
    index: int


@dataclass
class RepeaterExpansion:
    is_collection: bool
    children: List[RepeatedChild] = field(default_factory=list)
    diagnostic: Optional[str] = None


def resolve_source(source: Any, context: Mapping[str, Any]) -> Any:
    if isinstance(source, str):
        if has_bindings(source):
            return evaluate_template(source, context)
        return get_path(context, source.strip(), UNDEFINED)
    return source


def filter_items(items: List[Any], config: Optional[Mapping[str, Any]]) -> List[Any]:
    if not config or not config.get("field"):
        return items
    operator = str(config.get("operator") or "equals")
    if operator not in FILTER_OPERATORS:
        log.warning("Unknown repeater filter operator '%s'; filter ignored", operator)
        return items
    field_path = str(config["field"])
    expected = config.get("value")
    return [item for item in items if apply_operator(operator, get_path(item, field_path), expected)]


def _compare_values(a: Any, b: Any) -> int:
    if _numeric(a) and _numeric(b):
        diff = to_number(a) - to_number(b)
        return (diff > 0) - (diff < 0)
    left, right = collation_key(js_string(a)), collation_key(js_string(b))
    return (left > right) - (left < right)


def collation_key(text: str) -> tuple:
    """
    Locale-style ordering independent of the process locale: letters first by
    base character, then by accent, then lowercase before uppercase.
    """

    folded = text.casefold()
    base = "".join(ch for ch in unicodedata.normalize("NFKD", folded) if not unicodedata.combining(ch))
    return (base, folded, tuple(ch.isupper() for ch in text))


def _numeric(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return not math.isnan(to_number(value))


def sort_items(items: List[Any], config: Optional[Mapping[str, Any]]) -> List[Any]:
    if not config or not config.get("field"):
        return items
    field_path = str(config["field"])
    multiplier = -1 if str(config.get("direction") or "asc").lower() == "desc" else 1

    def _cmp(left: Any, right: Any) -> int:
        a, b = get_path(left, field_path), get_path(right, field_path)
        # Missing values trail the list whichever way it is sorted.
        if is_nullish(a) and is_nullish(b):
            return 0
        if is_nullish(a):
            return 1
        if is_nullish(b):
            return -1
        return _compare_values(a, b) * multiplier

    return sorted(items, key=functools.cmp_to_key(_cmp))


def resolve_limit(limit: Any, context: Mapping[str, Any]) -> Optional[int]:
    if isinstance(limit, str) and has_bindings(limit):
        limit = evaluate_template(limit, context)
    if is_nullish(limit) or isinstance(limit, bool):
        return None
    value = to_number(limit)
    if math.isnan(value) or value <= 0:
        return None
    return int(value)


def assign_repeated_ids(node: Dict[str, Any], new_id: str, separator: str) -> Dict[str, Any]:
    """Rename a cloned template and chain its static descendants under the new id."""

    node["id"] = new_id
    children = node.get("children")
    if isinstance(children, list):
        node["children"] = [
            assign_repeated_ids(child, f"{new_id}{separator}{child.get('id')}", separator)
            for child in children
            if isinstance(child, dict)
        ]
    return node


def repeated_id(
    container_id: str,
    index: int,
    strategy: Optional[Mapping[str, Any]],
    enclosing_item_id: Optional[str] = None,
) -> str:
    strategy = strategy or {}
    separator = str(strategy.get("separator") or "_")
    prefix = str(strategy.get("prefix") or "")
    base = container_id
    if strategy.get("includeParentIds") and enclosing_item_id and not container_id.startswith(enclosing_item_id):
        base = f"{enclosing_item_id}{separator}{container_id}"
    if prefix:
        base = f"{prefix}{separator}{base}"
    return f"{base}{separator}{index}"


def expand_repeater(
    container_id: str,
    repeater: Mapping[str, Any],
    context: Mapping[str, Any],
) -> RepeaterExpansion:
    meta = {
        "filter": resolve_data_bindings_in_object(repeater.get("filter"), context),
        "sort": resolve_data_bindings_in_object(repeater.get("sort"), context),
    }
    source = resolve_source(repeater.get("source"), context)
    if not is_sequence(source):
        message = f"Repeater source for '{container_id}' is not a list (got {type(source).__name__ if source is not UNDEFINED else 'undefined'})"
        log.warning(message)
        return RepeaterExpansion(is_collection=False, diagnostic=message)

    items = filter_items(list(source), meta["filter"])
    items = sort_items(items, meta["sort"])
    limit = resolve_limit(repeater.get("limit"), context)
    if limit is not None:
        items = items[:limit]

    template = repeater.get("template")
    if not isinstance(template, Mapping):
        message = f"Repeater on '{container_id}' has no template"
        log.warning(message)
        return RepeaterExpansion(is_collection=True, diagnostic=message)

    strategy = thaw(repeater.get("idStrategy")) or {}
    separator = str(strategy.get("separator") or "_")
    enclosing = context.get("repeater", {}).get("nodeId") if isinstance(context.get("repeater"), Mapping) else None
    children = []
    for index, item in enumerate(items):
        clone = thaw(template)
        assign_repeated_ids(clone, repeated_id(container_id, index, strategy, enclosing), separator)
        children.append(RepeatedChild(node=clone, item=item, index=index))
    return RepeaterExpansion(is_collection=True, children=children)
