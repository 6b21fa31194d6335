"""
`{{ ... }}` placeholder resolution for strings and nested structures.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from ..errors import ExpressionError
from ..observability.metrics import default_metrics
from .evaluator import evaluate_ast
from .parser import parse_expression
from .values import UNDEFINED, is_nullish, is_sequence, stringify_for_template

log = logging.getLogger("pagewright.expressions")

PLACEHOLDER_RE = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)

_FAILED = object()


def has_bindings(value: Any) -> bool:
    return isinstance(value, str) and "{{" in value


def evaluate_expression(source: str, context: Mapping[str, Any]) -> Any:
    """
    Evaluate the text of one placeholder. Returns UNDEFINED (never raises)
    when the expression is malformed or fails at evaluation time.
    """

    result = _evaluate(source, context)
    return UNDEFINED if result is _FAILED else result


def _evaluate(source: str, context: Mapping[str, Any]) -> Any:
    text = source.strip()
    try:
        return evaluate_ast(parse_expression(text), context)
    except ExpressionError as exc:
        log.warning("Could not evaluate binding '{{ %s }}': %s", text, exc)
    except (TypeError, ValueError, ArithmeticError, RecursionError) as exc:
        log.warning("Binding '{{ %s }}' raised %s: %s", text, type(exc).__name__, exc)
    default_metrics.record_expression_failure()
    return _FAILED


def _single_placeholder(template: str) -> str | None:
    stripped = template.strip()
    matches = list(PLACEHOLDER_RE.finditer(stripped))
    if len(matches) == 1 and matches[0].start() == 0 and matches[0].end() == len(stripped):
        return matches[0].group(1)
    return None


def evaluate_template(template: str, context: Mapping[str, Any]) -> Any:
    """
    Resolve a template string. The internal `undefined` sentinel is kept so
    callers such as repeater limits can tell "missing" from an explicit null.
    """

    if not has_bindings(template):
        return template
    single = _single_placeholder(template)
    if single is not None:
        result = _evaluate(single, context)
        if result is _FAILED:
            return UNDEFINED
        if is_nullish(result):
            log.debug("Binding '%s' resolved to nothing", template)
        return result

    def _replace(match: re.Match[str]) -> str:
        result = _evaluate(match.group(1), context)
        if result is _FAILED:
            return match.group(0)
        return stringify_for_template(result)

    return PLACEHOLDER_RE.sub(_replace, template)


def resolve_data_bindings_in_string(template: str, context: Mapping[str, Any]) -> Any:
    """
    A lone placeholder keeps the native type of its value; mixed text is
    stringified. Missing values come back as None.
    """

    result = evaluate_template(template, context)
    return None if result is UNDEFINED else result


def resolve_data_bindings_in_object(value: Any, context: Mapping[str, Any]) -> Any:
    """Resolve every string leaf of a nested structure into a new structure."""

    if isinstance(value, str):
        return resolve_data_bindings_in_string(value, context)
    if isinstance(value, Mapping):
        return {key: resolve_data_bindings_in_object(item, context) for key, item in value.items()}
    if is_sequence(value):
        return [resolve_data_bindings_in_object(item, context) for item in value]
    return value
