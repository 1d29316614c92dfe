"""Tests for the calculator service facade."""

from decimal import Decimal

import pytest

from calcgraph_pkg.models import Expression
from calcgraph_pkg.service import CalculatorService
from calcgraph_pkg.types import (
    CalculationError,
    CalculatorType,
    ExpressionParseError,
    ExpressionType,
    ResultFormat,
    UnsupportedOperationError,
    ValidationError,
)


@pytest.fixture
def service():
    return CalculatorService()


class TestParseExpression:
    def test_valid(self, service):
        expression = service.parse_expression("x^2 + 1")
        assert expression.is_valid
        assert expression.type == ExpressionType.ARITHMETIC
        assert expression.ast is not None
        assert [t.text for t in expression.tokens] == ["x", "^", "2", "+", "1"]

    def test_scientific_mode(self, service):
        expression = service.parse_expression("2 + 2", CalculatorType.SCIENTIFIC)
        assert expression.type == ExpressionType.SCIENTIFIC

    def test_invalid_character(self, service):
        with pytest.raises(ExpressionParseError) as exc_info:
            service.parse_expression("2 $ 3")
        assert exc_info.value.position == 2

    def test_relational_needs_equation(self, service):
        with pytest.raises(ExpressionParseError):
            service.parse_expression("x < 3")

    def test_matrix_is_not_parsed(self, service):
        with pytest.raises(ExpressionParseError):
            service.parse_expression("[1, 2]")

    def test_non_string(self, service):
        with pytest.raises(ExpressionParseError):
            service.parse_expression(42)


class TestEvaluate:
    def test_basic(self, service):
        result = service.evaluate_string("2 + 3 * 4")
        assert result.value == 14
        assert result.display_value == "14"
        assert result.is_exact

    def test_parentheses(self, service):
        assert service.evaluate_string("(2+3)*4 - 5").value == 15

    def test_rounded_to_precision(self, service):
        result = service.evaluate_string("1/3")
        assert result.value == Decimal("0.3333333333")
        assert result.display_value == "0.3333333333"
        assert not result.is_exact

    def test_trigonometric_sum_is_clean(self, service):
        assert service.evaluate_string("sin(pi/2) + cos(0)").display_value == "2"

    def test_per_call_precision(self, service):
        result = service.evaluate_string("1/3", precision=3)
        assert result.value == Decimal("0.333")
        assert result.precision == 3
        assert service.precision == 10

    def test_exponential_notation(self, service):
        result = service.evaluate_string("12345", notation="exponential")
        assert result.format == ResultFormat.SCIENTIFIC
        assert "e+" in result.display_value

    def test_expression_bindings_and_overrides(self, service):
        expression = service.parse_expression("x^2")
        expression.set_variable("x", 2)
        assert service.evaluate(expression).value == 4
        assert service.evaluate(expression, {"x": 3}).value == 9

    def test_computation_time_recorded(self, service):
        result = service.evaluate_string("2^20")
        assert result.computation_time >= 0

    def test_invalid_expression(self, service):
        with pytest.raises(CalculationError) as exc_info:
            service.evaluate(Expression(input="2 +"))
        assert exc_info.value.code == "INVALID_EXPRESSION"

    def test_error_carries_expression(self, service):
        expression = service.parse_expression("1/0")
        with pytest.raises(CalculationError) as exc_info:
            service.evaluate(expression)
        assert exc_info.value.code == "DIVIDE_BY_ZERO"
        assert exc_info.value.expression is expression

    def test_unexpected_error_is_wrapped(self, service, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(service.evaluator, "evaluate", boom)
        with pytest.raises(CalculationError, match="failed unexpectedly"):
            service.evaluate_string("1 + 1")

    def test_set_precision(self, service):
        service.set_precision(4)
        assert service.evaluate_string("2/3").value == Decimal("0.6667")
        with pytest.raises(ValidationError):
            service.set_precision(60)


class TestSymbolic:
    def test_simplify(self, service):
        expression = service.parse_expression("x + x")
        expression.set_variable("x", 1)
        simplified = service.simplify(expression)
        assert simplified.input == "2*x"
        assert simplified.is_valid
        assert simplified.variables == {"x": 1}

    def test_derivative(self, service):
        assert service.derivative(service.parse_expression("x^3"), "x").input == "3*x^2"

    def test_antiderivative(self, service):
        assert service.integrate(service.parse_expression("cos(x)")).input == "sin(x)"

    def test_definite_integral(self, service):
        value = service.integrate(service.parse_expression("x^2"), "x", (0, 3))
        assert value == 9

    def test_equation_rejected_for_calculus(self, service):
        equation = service.parse_expression("x = 1")
        with pytest.raises(UnsupportedOperationError):
            service.derivative(equation)
        with pytest.raises(UnsupportedOperationError):
            service.integrate(equation)

    def test_solve(self, service):
        assert service.solve(service.parse_expression("2*x + 1 = 5")) == [Decimal(2)]


def test_supported_names(service):
    assert "sin" in service.supported_functions()
    assert "^" in service.supported_operators()
    assert "pi" in service.supported_constants()
