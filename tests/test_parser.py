"""Unit tests for parser module."""

from decimal import Decimal

import pytest

from calcgraph_pkg.nodes import Binary, FunctionCall, Number, Unary, Variable, to_source
from calcgraph_pkg.evaluator import Evaluator
from calcgraph_pkg.parser import _parse_cached, check_balanced, parse, parse_ast
from calcgraph_pkg.tokenizer import tokenize
from calcgraph_pkg.types import ExpressionParseError


def num(value):
    return Number(Decimal(value))


class TestGrammar:
    """Precedence, associativity and node shapes."""

    def test_multiplication_binds_tighter(self):
        assert parse_ast("2 + 3 * 4") == Binary("+", num(2), Binary("*", num(3), num(4)))

    def test_parentheses_override(self):
        assert parse_ast("(2+3)*4 - 5") == Binary(
            "-", Binary("*", Binary("+", num(2), num(3)), num(4)), num(5)
        )

    def test_power_is_right_associative(self):
        assert parse_ast("2^3^2") == Binary("^", num(2), Binary("^", num(3), num(2)))

    def test_double_star_is_power(self):
        assert parse_ast("x**2") == parse_ast("x^2")

    def test_left_associative_subtraction(self):
        assert parse_ast("8 - 3 - 1") == Binary("-", Binary("-", num(8), num(3)), num(1))

    def test_unary_minus(self):
        assert parse_ast("-x") == Unary("-", Variable("x"))

    def test_unary_binds_inside_power_base(self):
        # the base of ^ is a unary, so -3^2 is (-3)^2
        assert parse_ast("-3^2") == Binary("^", Unary("-", num(3)), num(2))

    def test_function_call_arguments(self):
        assert parse_ast("max(1, 2, 3)") == FunctionCall("max", (num(1), num(2), num(3)))

    def test_constant_is_a_variable_node(self):
        assert parse_ast("pi") == Variable("pi")

    def test_relation_at_top_level(self):
        assert parse_ast("x + 1 = 3") == Binary(
            "=", Binary("+", Variable("x"), num(1)), num(3)
        )

    def test_parse_returns_tokens(self):
        tokens, node = parse("1 + 2")
        assert [t.text for t in tokens] == ["1", "+", "2"]
        assert node == Binary("+", num(1), num(2))


class TestParseErrors:
    @pytest.mark.parametrize(
        "text",
        ["(1+2", "1+2)", "()", "sin()", "1 2", "1 +", "* 2", "sin 2", "--x", "2 3 +"],
    )
    def test_malformed_input(self, text):
        with pytest.raises(ExpressionParseError):
            parse_ast(text)

    def test_empty_input(self):
        with pytest.raises(ExpressionParseError) as exc_info:
            parse_ast("   ")
        assert exc_info.value.code == "EMPTY_INPUT"

    def test_unbalanced_positions(self):
        with pytest.raises(ExpressionParseError) as exc_info:
            parse_ast("(1+2")
        assert exc_info.value.position == 0

        with pytest.raises(ExpressionParseError) as exc_info:
            parse_ast("1+2)")
        assert exc_info.value.position == 3

    def test_missing_operand_position(self):
        with pytest.raises(ExpressionParseError) as exc_info:
            parse_ast("* 2")
        assert exc_info.value.position == 0

    def test_deep_nesting_rejected(self):
        text = "(" * 150 + "1" + ")" * 150
        with pytest.raises(ExpressionParseError) as exc_info:
            parse_ast(text)
        assert exc_info.value.code == "TOO_COMPLEX"

    def test_long_flat_sum_accepted(self):
        node = parse_ast("+".join(["1"] * 150))
        assert Evaluator().evaluate(node) == 150

    def test_longest_chain_evaluates_and_prints(self):
        # 500 terms, 999 characters: the most the input length limit allows
        node = parse_ast("-".join(["2"] * 500))
        assert Evaluator().evaluate(node) == 2 - 2 * 499
        assert to_source(node) == " - ".join(["2"] * 500)


class TestHelpers:
    def test_check_balanced(self):
        check_balanced(tokenize("(1 + (2))"))
        with pytest.raises(ExpressionParseError):
            check_balanced(tokenize(")("))

    def test_memoized(self):
        parse("7 * y + 11")
        hits = _parse_cached.cache_info().hits
        first = parse_ast("7 * y + 11")
        assert _parse_cached.cache_info().hits == hits + 1
        assert first == parse_ast("7 * y + 11")


@pytest.mark.parametrize(
    "text",
    [
        "2 + 3 * 4",
        "(2+3)*4 - 5",
        "-x^2",
        "2^3^2",
        "(2^3)^2",
        "a - (b - c)",
        "a / (b * c)",
        "sin(x)^2 + cos(x)^2",
        "max(1, -2, 3)",
        "-(x + 1)",
        "x % 3",
        "1.50",
        "1e3 * y",
        "2*-3",
        "(-2)^2",
        "2 = x",
        "x + 1 <= 2*y",
    ],
)
def test_printer_round_trip(text):
    """Printing a tree and parsing the text again gives an equal tree."""
    node = parse_ast(text)
    assert parse_ast(to_source(node)) == node
