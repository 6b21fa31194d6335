"""
Tree-walking evaluator for parsed binding expressions.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict

from ..errors import ExpressionError
from . import ast_nodes
from .paths import get_member, get_path
from .values import (
    UNDEFINED,
    compare,
    is_nullish,
    is_number,
    is_sequence,
    js_string,
    loose_equals,
    strict_equals,
    to_number,
    truthy,
)


def _helper_get(obj: Any = UNDEFINED, path: Any = UNDEFINED, fallback: Any = UNDEFINED) -> Any:
    return get_path(obj, path, fallback)


def _helper_to_fixed(num: Any = UNDEFINED, digits: Any = 0) -> Any:
    if not is_number(num):
        return num
    places = int(to_number(digits) or 0)
    if math.isnan(num) or math.isinf(num):
        return js_string(num)
    try:
        quantum = Decimal(1).scaleb(-places)
        # Exact binary value, so 1.005 rounds down like it does in a browser.
        exact = Decimal(num) if num else Decimal(0)
        return str(exact.quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return f"{num:.{places}f}"


def _helper_round(num: Any = UNDEFINED, digits: Any = 0) -> Any:
    if not is_number(num):
        return num
    places = int(to_number(digits) or 0)
    factor = 10**places
    rounded = math.floor(num * factor + 0.5) / factor
    return int(rounded) if places <= 0 else rounded


def _helper_upper(value: Any = UNDEFINED) -> str:
    return js_string(value).upper()


def _helper_lower(value: Any = UNDEFINED) -> str:
    return js_string(value).lower()


def _helper_len(value: Any = UNDEFINED) -> int:
    if not truthy(value):
        return 0
    if isinstance(value, str) or is_sequence(value):
        return len(value)
    return 0


def _helper_includes(container: Any = UNDEFINED, value: Any = UNDEFINED) -> bool:
    if isinstance(container, str):
        if not container:
            return False
        return js_string(value) in container
    if is_sequence(container):
        return any(strict_equals(item, value) for item in container)
    return False


HELPERS: Dict[str, Callable[..., Any]] = {
    "get": _helper_get,
    "toFixed": _helper_to_fixed,
    "round": _helper_round,
    "toUpperCase": _helper_upper,
    "toLowerCase": _helper_lower,
    "len": _helper_len,
    "includes": _helper_includes,
}

# Helpers that may also be called as methods: `price.toFixed(2)`, `name.toUpperCase()`.
METHOD_HELPERS = {"toFixed", "toUpperCase", "toLowerCase", "includes"}


class Evaluator:
    """
    Evaluate an AST against a scope mapping. Raises ExpressionError for calls to
    unknown functions; everything else degrades to `undefined`.
    """

    def __init__(self, scope: Mapping[str, Any]) -> None:
        self.scope = scope

    def evaluate(self, node: ast_nodes.Expr) -> Any:
        if isinstance(node, ast_nodes.Literal):
            return node.value
        if isinstance(node, ast_nodes.Identifier):
            return self._lookup(node.name)
        if isinstance(node, ast_nodes.Member):
            obj = self.evaluate(node.obj)
            if is_nullish(obj):
                return UNDEFINED
            key = self.evaluate(node.prop)
            if is_number(key) and isinstance(key, float) and key.is_integer():
                key = int(key)
            return get_member(obj, key)
        if isinstance(node, ast_nodes.Call):
            return self._call(node)
        if isinstance(node, ast_nodes.UnaryOp):
            value = self.evaluate(node.operand)
            if node.op == "!":
                return not truthy(value)
            if node.op == "-":
                return -to_number(value)
            return to_number(value)
        if isinstance(node, ast_nodes.LogicalOp):
            left = self.evaluate(node.left)
            if node.op == "||":
                return left if truthy(left) else self.evaluate(node.right)
            return self.evaluate(node.right) if truthy(left) else left
        if isinstance(node, ast_nodes.Conditional):
            branch = node.consequent if truthy(self.evaluate(node.test)) else node.alternate
            return self.evaluate(branch)
        if isinstance(node, ast_nodes.BinaryOp):
            return self._binary(node.op, self.evaluate(node.left), self.evaluate(node.right))
        raise ExpressionError(f"Unsupported expression node {type(node).__name__}")

    def _lookup(self, name: str) -> Any:
        if name == "undefined":
            return UNDEFINED
        if name in self.scope:
            return self.scope[name]
        return UNDEFINED

    def _call(self, node: ast_nodes.Call) -> Any:
        callee = node.callee
        if isinstance(callee, ast_nodes.Identifier) and callee.name in HELPERS and callee.name not in self.scope:
            args = [self.evaluate(arg) for arg in node.args]
            return HELPERS[callee.name](*args)
        if isinstance(callee, ast_nodes.Member) and not callee.computed and isinstance(callee.prop, ast_nodes.Literal):
            method = callee.prop.value
            if method in METHOD_HELPERS:
                receiver = self.evaluate(callee.obj)
                if is_nullish(receiver):
                    return UNDEFINED
                args = [self.evaluate(arg) for arg in node.args]
                return HELPERS[method](receiver, *args)
        raise ExpressionError("Only the built-in helper functions can be called")

    def _binary(self, op: str, left: Any, right: Any) -> Any:
        if op == "==":
            return loose_equals(left, right)
        if op == "!=":
            return not loose_equals(left, right)
        if op == "===":
            return strict_equals(left, right)
        if op == "!==":
            return not strict_equals(left, right)
        if op in {"<", ">", "<=", ">="}:
            return compare(left, right, op)
        if op == "+":
            if isinstance(left, str) or isinstance(right, str) or not _is_primitive(left) or not _is_primitive(right):
                return js_string(left) + js_string(right)
            return to_number(left) + to_number(right)
        a, b = to_number(left), to_number(right)
        if op == "-":
            return a - b
        if op == "*":
            return a * b
        if op == "/":
            return _divide(a, b)
        if op == "%":
            if b == 0 or math.isnan(a) or math.isnan(b) or math.isinf(a):
                return math.nan
            return math.fmod(a, b) if isinstance(a, float) or isinstance(b, float) else int(math.fmod(a, b))
        raise ExpressionError(f"Unknown operator '{op}'")


def _is_primitive(value: Any) -> bool:
    return is_nullish(value) or isinstance(value, bool) or is_number(value)


def _divide(a: float | int, b: float | int) -> float:
    if math.isnan(a) or math.isnan(b):
        return math.nan
    if b == 0:
        if a == 0:
            return math.nan
        negative = (a < 0) != (math.copysign(1.0, b) < 0)
        return -math.inf if negative else math.inf
    return a / b


def evaluate_ast(node: ast_nodes.Expr, scope: Mapping[str, Any]) -> Any:
    return Evaluator(scope).evaluate(node)
