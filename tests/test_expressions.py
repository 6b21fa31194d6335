import math

import pytest

from pagewright.errors import ExpressionError
from pagewright.expressions import (
    UNDEFINED,
    evaluate_expression,
    evaluate_template,
    get_path,
    parse_expression,
    resolve_data_bindings_in_object,
    resolve_data_bindings_in_string,
    split_path,
)
from pagewright.expressions.lexer import Lexer
from pagewright.observability.metrics import default_metrics


CONTEXT = {
    "data": {"product": {"name": "Lamp", "price": 3.14159, "tags": ["new", "sale"]}},
    "user": {"name": "Ada", "address": None},
    "items": [1, 2, 3],
    "count": 0,
    "flag": "1",
}


def test_strings_without_placeholders_are_returned_unchanged():
    assert resolve_data_bindings_in_string("just text", CONTEXT) == "just text"
    assert resolve_data_bindings_in_string("", CONTEXT) == ""
    assert resolve_data_bindings_in_string("{ single braces }", CONTEXT) == "{ single braces }"


def test_missing_user_falls_back_to_guest():
    assert resolve_data_bindings_in_string('{{ data.user.name || "Guest" }}', {"data": {}}) == "Guest"


def test_single_placeholder_keeps_native_type():
    assert resolve_data_bindings_in_string("{{ items }}", CONTEXT) == [1, 2, 3]
    assert resolve_data_bindings_in_string("{{ items.length * 2 }}", CONTEXT) == 6
    assert resolve_data_bindings_in_string("{{ count > 0 }}", CONTEXT) is False


def test_mixed_text_is_stringified():
    assert resolve_data_bindings_in_string("Hello {{ user.name }}!", CONTEXT) == "Hello Ada!"
    assert resolve_data_bindings_in_string("Count: {{ items.length }}", CONTEXT) == "Count: 3"
    assert resolve_data_bindings_in_string("Missing: [{{ user.nickname }}]", CONTEXT) == "Missing: []"


def test_mixed_text_with_object_renders_json():
    rendered = resolve_data_bindings_in_string("Tags: {{ data.product.tags }}", CONTEXT)
    assert rendered.startswith("Tags: [")
    assert '"sale"' in rendered


def test_missing_paths_resolve_to_none_without_raising():
    assert resolve_data_bindings_in_string("{{ nothing.here.at.all }}", CONTEXT) is None
    assert resolve_data_bindings_in_string("{{ user.address.city }}", CONTEXT) is None


def test_loose_and_strict_equality():
    ctx = {"a": 1, "s": "1", "t": True}
    assert evaluate_expression("a == s", ctx) is True
    assert evaluate_expression("a === s", ctx) is False
    assert evaluate_expression("a !== s", ctx) is True
    assert evaluate_expression("t == 1", ctx) is True
    assert evaluate_expression("null == undefined", ctx) is True
    assert evaluate_expression("null === undefined", ctx) is False


def test_plus_concatenates_with_strings():
    assert evaluate_expression("'n' + 1", {}) == "n1"
    assert evaluate_expression("1 + 2", {}) == 3
    assert evaluate_expression("'total: ' + (1 + 2)", {}) == "total: 3"


def test_ternary_and_logical_operators():
    assert evaluate_expression("count > 0 ? 'some' : 'none'", CONTEXT) == "none"
    assert evaluate_expression("user.name && user.name.length", CONTEXT) == 3
    assert evaluate_expression("!count", CONTEXT) is True


def test_member_access_forms():
    assert evaluate_expression("items[0]", CONTEXT) == 1
    assert evaluate_expression("user['name']", CONTEXT) == "Ada"
    assert evaluate_expression("data.product.tags[1]", CONTEXT) == "sale"
    assert evaluate_expression("items[10]", CONTEXT) is UNDEFINED


def test_helpers():
    assert evaluate_expression("toFixed(data.product.price, 2)", CONTEXT) == "3.14"
    assert evaluate_expression("data.product.price.toFixed(1)", CONTEXT) == "3.1"
    assert evaluate_expression("toFixed(1.005, 2)", {}) == "1.00"
    assert evaluate_expression("toFixed(-1.5, 0)", {}) == "-2"
    assert evaluate_expression("toFixed(0, 2)", {}) == "0.00"
    assert evaluate_expression("round(2.5)", {}) == 3
    assert evaluate_expression("user.name.toUpperCase()", CONTEXT) == "ADA"
    assert evaluate_expression("toLowerCase('ABC')", {}) == "abc"
    assert evaluate_expression("len(items)", CONTEXT) == 3
    assert evaluate_expression("len(missing)", CONTEXT) == 0
    assert evaluate_expression("includes(data.product.tags, 'sale')", CONTEXT) is True
    assert evaluate_expression("get(user, 'address.city', 'n/a')", CONTEXT) == "n/a"


def test_division_by_zero_is_infinite():
    assert math.isinf(evaluate_expression("1 / 0", {}))
    assert math.isnan(evaluate_expression("0 / 0", {}))


def test_unknown_function_degrades_to_undefined():
    before = default_metrics.get_expression_failures()
    assert evaluate_expression("alert(1)", {}) is UNDEFINED
    assert default_metrics.get_expression_failures() == before + 1


def test_malformed_expression_keeps_literal_in_mixed_text():
    assert resolve_data_bindings_in_string("{{ a + }}", {"a": 1}) is None
    assert resolve_data_bindings_in_string("x {{ a + }} y", {"a": 1}) == "x {{ a + }} y"


def test_parser_reports_column():
    with pytest.raises(ExpressionError) as excinfo:
        parse_expression("a + ")
    assert excinfo.value.code == "PW-1001"


def test_lexer_rejects_unterminated_string():
    with pytest.raises(ExpressionError):
        Lexer("'open").tokenize()


def test_evaluate_template_keeps_undefined_sentinel():
    assert evaluate_template("{{ nothing }}", {}) is UNDEFINED


def test_resolve_object_returns_new_structure():
    original = {"title": "{{ user.name }}", "list": ["{{ count }}", "static"], "n": 4}
    resolved = resolve_data_bindings_in_object(original, CONTEXT)
    assert resolved == {"title": "Ada", "list": [0, "static"], "n": 4}
    assert original["title"] == "{{ user.name }}"


def test_split_and_get_path():
    assert split_path("a.b[0]['c-d']") == ["a", "b", "0", "c-d"]
    assert get_path({"a": {"b": [{"c-d": 7}]}}, "a.b[0]['c-d']") == 7
    assert get_path({"a": None}, "a.b", "fallback") == "fallback"
    assert get_path({"a": None}, "a") is None
    assert get_path(None, "a", 5) == 5
