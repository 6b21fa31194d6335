"""
Operator-based conditions shared by legacy visibility rules, action guards
and repeater filters.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from typing import Any, Iterable

from ..expressions.paths import get_path
from ..expressions.templates import resolve_data_bindings_in_object
from ..expressions.values import is_nullish, is_sequence, js_string, loose_equals, strict_equals, to_number

log = logging.getLogger("pagewright.resolution")

NUMERIC_OPERATORS = {
    "greaterThan": lambda a, b: a > b,
    "greaterThanOrEqual": lambda a, b: a >= b,
    "lessThan": lambda a, b: a < b,
    "lessThanOrEqual": lambda a, b: a <= b,
}


def _contains(container: Any, value: Any) -> bool | None:
    """None when `container` is neither a list nor a string."""

    if is_sequence(container):
        return any(strict_equals(item, value) for item in container)
    if isinstance(container, str):
        return js_string(value) in container
    return None


def apply_operator(operator: str, actual: Any, expected: Any = None) -> bool:
    if operator == "exists":
        return not is_nullish(actual)
    if operator == "notExists":
        return is_nullish(actual)
    if is_nullish(actual):
        return False
    if operator == "equals":
        return loose_equals(actual, expected)
    if operator == "notEquals":
        return not loose_equals(actual, expected)
    if operator in NUMERIC_OPERATORS:
        a, b = to_number(actual), to_number(expected)
        if math.isnan(a) or math.isnan(b):
            return False
        return NUMERIC_OPERATORS[operator](a, b)
    if operator in {"contains", "notContains"}:
        found = _contains(actual, expected)
        if found is None:
            return False
        return found if operator == "contains" else not found
    if operator == "regex":
        try:
            return re.search(js_string(expected), js_string(actual)) is not None
        except re.error as exc:
            log.warning("Invalid regex pattern %r: %s", expected, exc)
            return False
    log.warning("Unknown condition operator '%s'", operator)
    return False


def evaluate_condition(condition: Mapping[str, Any], context: Mapping[str, Any]) -> bool:
    path = condition.get("contextPath") or condition.get("field") or ""
    actual = get_path(context, str(path))
    expected = resolve_data_bindings_in_object(condition.get("value"), context)
    return apply_operator(str(condition.get("operator") or ""), actual, expected)


def evaluate_conditions(conditions: Iterable[Mapping[str, Any]], logic: str | None, context: Mapping[str, Any]) -> bool:
    results = [evaluate_condition(condition, context) for condition in conditions]
    if (logic or "AND").upper() == "OR":
        return any(results)
    return all(results)
