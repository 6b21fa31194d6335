from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from ..expressions.templates import evaluate_expression, evaluate_template, has_bindings
from ..expressions.values import truthy
from ..runtime.deprecation import warn_deprecated
from .conditions import evaluate_conditions


def evaluate_visibility(
    config: Optional[Mapping[str, Any]],
    context: Mapping[str, Any],
    *,
    loading: bool = False,
) -> bool:
    """
    Decide whether a node renders. A loading node is always visible so its
    placeholder shows; otherwise `expression` wins over the legacy
    `conditions` list, which wins over the static `hidden` flag.
    """

    if loading or not config:
        return True
    expression = config.get("expression")
    if isinstance(expression, str) and expression.strip():
        if has_bindings(expression):
            return truthy(evaluate_template(expression, context))
        return truthy(evaluate_expression(expression, context))
    conditions = config.get("conditions") or []
    if conditions:
        warn_deprecated(
            "visibility.conditions",
            remove_in="1.0.0",
            code="PW-DEPR-001",
            details="Use visibility.expression instead.",
        )
        return evaluate_conditions(conditions, config.get("conditionLogic"), context)
    return not bool(config.get("hidden", False))
