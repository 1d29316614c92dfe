"""Public API for calcgraph - returns structured objects without side effects."""

from __future__ import annotations

import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from .config import DEFAULT_RESOLUTION, SPECIAL_POINT_RESOLUTION, SPECIAL_POINT_TOLERANCE
from .logging_config import get_logger
from .nodes import format_decimal
from .renderer import GraphRenderer
from .service import CalculatorService
from .types import (
    AngleUnit,
    CalculationError,
    EvalResult,
    ExpressionParseError,
    FunctionType,
    GraphResult,
    RenderError,
    SolveResult,
    UnsupportedFunctionError,
    UnsupportedOperationError,
    ValidationError,
)

logger = get_logger("api")

_EXPECTED_ERRORS = (
    CalculationError,
    ExpressionParseError,
    RenderError,
    UnsupportedFunctionError,
    UnsupportedOperationError,
    ValidationError,
)


def _service(precision: int | None = None) -> CalculatorService:
    return CalculatorService() if precision is None else CalculatorService(precision)


def _unexpected(operation: str, e: Exception) -> tuple[str, str]:
    logger.error(f"Unexpected {operation} error: {e}", exc_info=True)
    return f"{operation.capitalize()} failed unexpectedly", "INTERNAL_ERROR"


def evaluate(
    expression: str,
    variables: Mapping[str, Any] | None = None,
    precision: int | None = None,
    notation: str | None = None,
) -> EvalResult:
    """Evaluate a mathematical expression.

    Args:
        expression: Mathematical expression string (e.g., "2+2", "sin(pi/2)")
        variables: Optional variable bindings (e.g., {"x": 2})
        precision: Significant digits (1-50)
        notation: "exponential" for scientific display

    Returns:
        EvalResult with result, display text and exactness

    Example:
        >>> from calcgraph_pkg.api import evaluate
        >>> evaluate("2 + 3 * 4").result
        '14'
    """
    try:
        service = _service(precision)
        result = service.evaluate(service.parse_expression(expression), variables, notation=notation)
    except _EXPECTED_ERRORS as e:
        return EvalResult(ok=False, error=str(e), code=e.code)
    except Exception as e:
        error, code = _unexpected("evaluation", e)
        return EvalResult(ok=False, error=error, code=code)
    return EvalResult(
        ok=True,
        result=format_decimal(result.value),
        display=result.display_value,
        is_exact=result.is_exact,
    )


def validate_expression(expression: str) -> tuple[bool, str | None]:
    """Check that an expression parses.

    Args:
        expression: Expression string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        _service().parse_expression(expression)
    except ExpressionParseError as e:
        return False, str(e)
    return True, None


def simplify_expr(expression: str) -> EvalResult:
    """Simplify with the rewrite rules (e.g., "x + x" -> "2*x")."""
    try:
        service = _service()
        simplified = service.simplify(service.parse_expression(expression))
    except _EXPECTED_ERRORS as e:
        return EvalResult(ok=False, error=str(e), code=e.code)
    except Exception as e:
        error, code = _unexpected("simplification", e)
        return EvalResult(ok=False, error=error, code=code)
    return EvalResult(ok=True, result=simplified.input)


def solve_equation(equation: str, variable: str = "x") -> SolveResult:
    """Solve a linear equation.

    Args:
        equation: Equation string (e.g., "2*x + 1 = 5")
        variable: Variable to solve for

    Returns:
        SolveResult with solutions

    Example:
        >>> from calcgraph_pkg.api import solve_equation
        >>> solve_equation("2*x + 1 = 5").exact
        ['2']
    """
    try:
        service = _service()
        roots = service.solve(service.parse_expression(equation), variable)
    except _EXPECTED_ERRORS as e:
        return SolveResult(ok=False, error=str(e), code=e.code)
    except Exception as e:
        error, code = _unexpected("solve", e)
        return SolveResult(ok=False, error=error, code=code)
    return SolveResult(ok=True, exact=[format_decimal(root.normalize()) for root in roots])


def diff(expression: str, variable: str = "x") -> EvalResult:
    """Differentiate an expression with respect to a variable.

    Args:
        expression: Expression string (e.g., "x^3")
        variable: Variable to differentiate with respect to

    Returns:
        EvalResult with derivative as result
    """
    try:
        service = _service()
        derived = service.derivative(service.parse_expression(expression), variable)
    except _EXPECTED_ERRORS as e:
        return EvalResult(ok=False, error=str(e), code=e.code)
    except Exception as e:
        error, code = _unexpected("differentiation", e)
        return EvalResult(ok=False, error=error, code=code)
    return EvalResult(ok=True, result=derived.input)


def integrate_expr(
    expression: str, variable: str = "x", bounds: tuple[Any, Any] | None = None
) -> EvalResult:
    """Integrate an expression: antiderivative, or a definite integral with ``bounds``.

    Args:
        expression: Expression string (e.g., "x^2")
        variable: Variable to integrate with respect to
        bounds: Optional (lower, upper) for a definite integral

    Returns:
        EvalResult with the integral as result
    """
    try:
        service = _service()
        integrated = service.integrate(service.parse_expression(expression), variable, bounds)
    except _EXPECTED_ERRORS as e:
        return EvalResult(ok=False, error=str(e), code=e.code)
    except Exception as e:
        error, code = _unexpected("integration", e)
        return EvalResult(ok=False, error=error, code=code)
    if isinstance(integrated, Decimal):
        return EvalResult(ok=True, result=format_decimal(integrated))
    return EvalResult(ok=True, result=integrated.input)


def plot(
    expression: str,
    function_type: str = FunctionType.FUNCTION_2D.value,
    domain: tuple[float, float] | None = None,
    resolution: int = DEFAULT_RESOLUTION,
    angle_unit: str = AngleUnit.RADIAN.value,
) -> GraphResult:
    """Sample a function into graph data.

    Args:
        expression: Function expression (in x for "2d", theta for "polar")
        function_type: "2d" or "polar"
        domain: x range for "2d" (default -10..10), angle range for "polar" (default one turn)
        resolution: Number of steps across the domain
        angle_unit: "radian" or "degree" for polar angle ranges

    Returns:
        GraphResult whose graph is the Graph record as a dictionary
    """
    try:
        renderer = GraphRenderer()
        if function_type == FunctionType.FUNCTION_2D.value:
            graph = renderer.render_2d(expression, domain or (-10.0, 10.0), resolution=resolution)
        elif function_type == FunctionType.POLAR.value:
            unit = AngleUnit(angle_unit)
            full_turn = 360.0 if unit == AngleUnit.DEGREE else 2 * math.pi
            graph = renderer.render_polar(
                expression, domain or (0.0, full_turn), resolution=resolution, angle_unit=unit
            )
        else:
            raise UnsupportedFunctionError(
                f"plot supports 2d and polar graphs, not {function_type}", function_type
            )
    except _EXPECTED_ERRORS as e:
        return GraphResult(ok=False, error=str(e), code=e.code)
    except Exception as e:
        error, code = _unexpected("plot", e)
        return GraphResult(ok=False, error=error, code=code)
    return GraphResult(ok=True, graph=graph.to_dict())


def special_points(
    expression: str,
    domain: tuple[float, float] = (-10.0, 10.0),
    tolerance: float = SPECIAL_POINT_TOLERANCE,
    resolution: int = SPECIAL_POINT_RESOLUTION,
) -> GraphResult:
    """Find zeros and extrema of y = f(x) over ``domain``.

    Example:
        >>> from calcgraph_pkg.api import special_points
        >>> result = special_points("x^2 - 4", (-5, 5))
        >>> [p["type"] for p in result.special_points][-1]
        'minimum'
    """
    try:
        points = GraphRenderer().find_special_points(expression, domain, tolerance, resolution)
    except _EXPECTED_ERRORS as e:
        return GraphResult(ok=False, error=str(e), code=e.code)
    except Exception as e:
        error, code = _unexpected("analysis", e)
        return GraphResult(ok=False, error=error, code=code)
    return GraphResult(ok=True, special_points=[point.to_dict() for point in points])
