"""
Value semantics shared by the evaluator, conditions and repeater filters.

Bindings follow the loose rules page authors expect from the browser: `||`
falls back on any falsy value, `==` coerces numbers and strings, and `+`
concatenates as soon as either side is a string.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping, Sequence
from typing import Any


class _Undefined:
    """Sentinel for a missing value, distinct from an explicit null."""

    _instance: "_Undefined | None" = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):  # pragma: no cover - pickling keeps the singleton
        return (_Undefined, ())


UNDEFINED = _Undefined()


def is_nullish(value: Any) -> bool:
    return value is None or value is UNDEFINED


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def truthy(value: Any) -> bool:
    if is_nullish(value):
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return len(value) > 0
    return True


def to_number(value: Any) -> float | int:
    if value is None:
        return 0
    if value is UNDEFINED:
        return math.nan
    if isinstance(value, bool):
        return 1 if value else 0
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return math.nan
    if is_sequence(value) and len(value) == 0:
        return 0
    if is_sequence(value) and len(value) == 1:
        return to_number(value[0])
    return math.nan


def format_number(value: float | int) -> str:
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def to_plain(value: Any) -> Any:
    """Convert frozen containers and the undefined sentinel to plain JSON values."""

    if value is UNDEFINED:
        return None
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if is_sequence(value):
        return [to_plain(v) for v in value]
    return value


def js_string(value: Any) -> str:
    """String conversion used by `+` concatenation and string helpers."""

    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return value
    if is_sequence(value):
        return ",".join("" if is_nullish(item) else js_string(item) for item in value)
    if isinstance(value, Mapping):
        return "[object Object]"
    return str(value)


def stringify_for_template(value: Any) -> str:
    """String conversion for one placeholder inside mixed literal text."""

    if is_nullish(value):
        return ""
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(to_plain(value), indent=2, ensure_ascii=False)
    return js_string(value)


def loose_equals(left: Any, right: Any) -> bool:
    if is_nullish(left) or is_nullish(right):
        return is_nullish(left) and is_nullish(right)
    if isinstance(left, bool) and isinstance(right, bool):
        return left == right
    if isinstance(left, bool):
        left = int(left)
    if isinstance(right, bool):
        right = int(right)
    if is_number(left) and is_number(right):
        return left == right
    if is_number(left) and isinstance(right, str):
        return left == to_number(right)
    if isinstance(left, str) and is_number(right):
        return to_number(left) == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, (Mapping, list, tuple)) or isinstance(right, (Mapping, list, tuple)):
        if isinstance(left, (Mapping, list, tuple)) and isinstance(right, (Mapping, list, tuple)):
            return left is right or to_plain(left) == to_plain(right)
        return js_string(left) == js_string(right)
    return left == right


def strict_equals(left: Any, right: Any) -> bool:
    if left is UNDEFINED or right is UNDEFINED:
        return left is right
    if left is None or right is None:
        return left is right
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if type(left) is not type(right) and not (
        isinstance(left, (Mapping, list, tuple)) and isinstance(right, (Mapping, list, tuple))
    ):
        return False
    if isinstance(left, (Mapping, list, tuple)):
        return left is right or to_plain(left) == to_plain(right)
    return left == right


def compare(left: Any, right: Any, op: str) -> bool:
    """Relational comparison: string ordering for two strings, numeric otherwise."""

    if isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        a, b = to_number(left), to_number(right)
        if math.isnan(a) or math.isnan(b):
            return False
    if op == "<":
        return a < b
    if op == ">":
        return a > b
    if op == "<=":
        return a <= b
    if op == ">=":
        return a >= b
    raise ValueError(f"Unknown comparison operator '{op}'")
