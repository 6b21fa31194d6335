"""Binding expression language used inside page documents."""

from .evaluator import HELPERS, evaluate_ast
from .parser import parse_expression
from .paths import get_path, split_path
from .templates import (
    evaluate_expression,
    evaluate_template,
    has_bindings,
    resolve_data_bindings_in_object,
    resolve_data_bindings_in_string,
)
from .values import UNDEFINED, loose_equals, to_number, to_plain, truthy

__all__ = [
    "HELPERS",
    "UNDEFINED",
    "evaluate_ast",
    "evaluate_expression",
    "evaluate_template",
    "get_path",
    "has_bindings",
    "loose_equals",
    "parse_expression",
    "resolve_data_bindings_in_object",
    "resolve_data_bindings_in_string",
    "split_path",
    "to_number",
    "to_plain",
    "truthy",
]
