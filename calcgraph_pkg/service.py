"""Calculator facade: parsing, evaluation, simplification, solving and calculus.

Each operation either returns its result or raises exactly one of the typed
errors in ``types``. Unexpected internal failures are logged with a
traceback and re-raised as ``CalculationError``.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Mapping
from decimal import Context, Decimal
from typing import Any, TypeVar

from . import calculus
from .classifier import classify, first_invalid_character
from .config import DEFAULT_PRECISION, INTEGRATION_INTERVALS, MAX_COMPUTATION_TIME_MS
from .evaluator import SUPPORTED_OPERATORS, Evaluator, supported_functions
from .logging_config import get_logger
from .mathutils import CONSTANT_ALIASES
from .models import Expression, Result
from .nodes import Binary, Node, to_source
from .parser import parse
from .solver import solve_linear
from .types import (
    CalculationError,
    CalculatorType,
    ExpressionParseError,
    ExpressionType,
    RenderError,
    UnsupportedFunctionError,
    UnsupportedOperationError,
    ValidationError,
)

logger = get_logger("service")

EQUATION_OPERATORS = frozenset({"=", "=="})

_TYPED_ERRORS = (
    CalculationError,
    ExpressionParseError,
    RenderError,
    UnsupportedFunctionError,
    UnsupportedOperationError,
    ValidationError,
)

F = TypeVar("F", bound=Callable[..., Any])


def typed_errors(operation: str) -> Callable[[F], F]:
    """Let typed errors through; log anything else and raise CalculationError."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except _TYPED_ERRORS:
                raise
            except Exception as e:
                logger.error(f"Unexpected {operation} error: {e}", exc_info=True)
                raise CalculationError(f"{operation.capitalize()} failed unexpectedly") from e

        return wrapper  # type: ignore[return-value]

    return decorator


def _require_valid(expression: Expression) -> Node:
    if not expression.is_valid or expression.ast is None:
        raise CalculationError(
            f"Invalid expression: {expression.error_message or expression.input}",
            code="INVALID_EXPRESSION",
            expression=expression,
        )
    return expression.ast


def _reject_types(expression: Expression, operation: str, *types: ExpressionType) -> None:
    if expression.type in types:
        raise UnsupportedOperationError(
            f"{operation.capitalize()} is not supported for {expression.type.value} expressions",
            operation=operation,
        )


class CalculatorService:
    """Stateless calculator operations over one Evaluator.

    Args:
        precision: Significant digits for results (1-50)
    """

    def __init__(self, precision: int = DEFAULT_PRECISION):
        self.evaluator = Evaluator(precision)

    @property
    def precision(self) -> int:
        return self.evaluator.precision

    def set_precision(self, precision: int) -> None:
        self.evaluator.set_precision(precision)

    def _round(self, value: Decimal, evaluator: Evaluator | None = None) -> Decimal:
        evaluator = evaluator or self.evaluator
        return Context(prec=evaluator.precision, rounding=evaluator.rounding).plus(value)

    @typed_errors("parse")
    def parse_expression(
        self, text: str, calculator_type: CalculatorType = CalculatorType.BASIC
    ) -> Expression:
        """Classify, validate and parse ``text`` into an Expression.

        Raises:
            ExpressionParseError: If the text contains invalid characters or
                is not a well-formed expression.
        """
        if not isinstance(text, str):
            raise ExpressionParseError(f"Expression must be a string, got {type(text).__name__}")

        expression_type = classify(text, calculator_type)
        invalid = first_invalid_character(text, expression_type)
        if invalid is not None:
            raise ExpressionParseError(f"Invalid character {text[invalid]!r}", invalid)

        tokens, ast = parse(text)
        logger.debug("Parsed %r as %s", text, expression_type.value)
        return Expression(
            input=text,
            type=expression_type,
            tokens=tokens,
            ast=ast,
            is_valid=True,
        )

    def _from_node(self, node: Node, source: Expression) -> Expression:
        expression = self.parse_expression(to_source(node))
        expression.variables = dict(source.variables)
        return expression

    @typed_errors("evaluation")
    def evaluate(
        self,
        expression: Expression,
        variables: Mapping[str, Any] | None = None,
        precision: int | None = None,
        notation: str | None = None,
        unit: str | None = None,
    ) -> Result:
        """Evaluate a parsed expression.

        Args:
            expression: Parsed expression; its own bindings apply first
            variables: Extra bindings that override the expression's
            precision: Significant digits for this call only
            notation: "exponential" selects scientific display
            unit: Optional unit label carried on the result

        Returns:
            Result with value, display text, exactness and timing

        Raises:
            CalculationError: On invalid expressions or evaluation failure.
        """
        ast = _require_valid(expression)
        evaluator = self.evaluator
        if precision is not None and precision != evaluator.precision:
            evaluator = Evaluator(precision, evaluator.rounding)

        bindings = {**expression.variables, **(variables or {})}
        start = time.perf_counter()
        try:
            value = evaluator.evaluate(ast, bindings)
        except CalculationError as e:
            e.expression = expression
            raise
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug(
            "Evaluated %s", expression.input, extra={"elapsed_ms": round(elapsed, 3)}
        )
        if elapsed > MAX_COMPUTATION_TIME_MS:
            raise CalculationError(
                f"Computation exceeded {MAX_COMPUTATION_TIME_MS}ms", expression=expression
            )

        result = Result.create(
            expression.id,
            self._round(value, evaluator),
            precision=evaluator.precision,
            notation=notation,
            unit=unit,
        )
        result.set_computation_time(elapsed)
        return result

    def evaluate_string(
        self, text: str, variables: Mapping[str, Any] | None = None, **options: Any
    ) -> Result:
        return self.evaluate(self.parse_expression(text), variables, **options)

    @typed_errors("simplification")
    def simplify(self, expression: Expression) -> Expression:
        """Rewrite with the simplification rules; the result is re-parsed from its source."""
        ast = _require_valid(expression)
        return self._from_node(calculus.simplify(ast), expression)

    @typed_errors("solve")
    def solve(self, expression: Expression, variable: str = "x") -> list[Decimal]:
        """Solve a linear equation ``lhs = rhs`` for ``variable``.

        Raises:
            UnsupportedOperationError: If the expression is not an equation
                or is not linear in ``variable``.
            CalculationError: If there is no solution or infinitely many.
        """
        ast = _require_valid(expression)
        if expression.type != ExpressionType.EQUATION or not (
            isinstance(ast, Binary) and ast.op in EQUATION_OPERATORS
        ):
            raise UnsupportedOperationError(
                "Solving requires an equation of the form lhs = rhs", operation="solve"
            )
        roots = solve_linear(self.evaluator, ast.left, ast.right, variable, expression.variables)
        return [self._round(root) for root in roots]

    @typed_errors("derivative")
    def derivative(self, expression: Expression, variable: str = "x") -> Expression:
        ast = _require_valid(expression)
        _reject_types(expression, "derivative", ExpressionType.EQUATION, ExpressionType.MATRIX)
        return self._from_node(calculus.derivative(ast, variable), expression)

    @typed_errors("integration")
    def integrate(
        self,
        expression: Expression,
        variable: str = "x",
        bounds: tuple[Any, Any] | None = None,
    ) -> Expression | Decimal:
        """Antiderivative, or a definite integral when ``bounds`` is given.

        Definite integrals use the composite Simpson rule with
        INTEGRATION_INTERVALS sub-intervals.
        """
        ast = _require_valid(expression)
        _reject_types(expression, "integration", ExpressionType.EQUATION, ExpressionType.MATRIX)
        if bounds is None:
            return self._from_node(calculus.integral(ast, variable), expression)

        lower, upper = bounds
        value = calculus.numerical_integral(
            self.evaluator,
            ast,
            variable,
            lower,
            upper,
            INTEGRATION_INTERVALS,
            expression.variables,
        )
        return self._round(value)

    def supported_functions(self) -> list[str]:
        return supported_functions()

    def supported_operators(self) -> list[str]:
        return list(SUPPORTED_OPERATORS)

    def supported_constants(self) -> list[str]:
        return list(CONSTANT_ALIASES)
