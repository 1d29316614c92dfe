"""Linear equation solving.

An equation ``lhs = rhs`` is rewritten as ``f = lhs - rhs`` and probed at
three points. Equal first differences mean f is linear in the variable and
the single root is ``-f(0) / slope``.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from .evaluator import Evaluator
from .logging_config import get_logger
from .nodes import Binary, Node, to_source
from .types import DIVIDE_BY_ZERO, DOMAIN_ERROR, CalculationError, UnsupportedOperationError

logger = get_logger("solver")

PROBE_POINTS = (0, 1, 2)


def _linearity_tolerance(evaluator: Evaluator, values: list[Decimal]) -> Decimal:
    magnitude = max([Decimal(1)] + [abs(value) for value in values])
    return magnitude.scaleb(-evaluator.precision)


def solve_linear(
    evaluator: Evaluator,
    lhs: Node,
    rhs: Node,
    variable: str,
    variables: Mapping[str, Any] | None = None,
) -> list[Decimal]:
    """Solve ``lhs = rhs`` for ``variable`` when the equation is linear.

    Args:
        evaluator: Evaluator to probe with
        lhs: Left-hand side tree
        rhs: Right-hand side tree
        variable: Unknown to solve for
        variables: Bindings for any other names in the equation

    Returns:
        A one-element list with the solution

    Raises:
        UnsupportedOperationError: If the equation is not linear in ``variable``.
        CalculationError: If the equation has no solution or infinitely many.
    """
    difference = Binary("-", lhs, rhs)
    ctx = evaluator.context
    bindings = dict(variables or {})

    values: list[Decimal] = []
    for probe in PROBE_POINTS:
        bindings[variable] = probe
        try:
            values.append(evaluator.evaluate(difference, bindings))
        except CalculationError as e:
            if e.code in (DIVIDE_BY_ZERO, DOMAIN_ERROR):
                raise UnsupportedOperationError(
                    f"Equation is not linear in {variable}: {e.message}", operation="solve"
                ) from e
            raise

    f0, f1, f2 = values
    slope = ctx.subtract(f1, f0)
    curvature = ctx.subtract(ctx.subtract(f2, f1), slope)
    if abs(curvature) > _linearity_tolerance(evaluator, values):
        raise UnsupportedOperationError(
            f"Only linear equations are supported: {to_source(lhs)} = {to_source(rhs)}",
            operation="solve",
        )

    if slope.is_zero():
        if f0.is_zero():
            raise CalculationError("Equation has infinitely many solutions")
        raise CalculationError("Equation has no solution")

    root = ctx.divide(ctx.minus(f0), slope)
    logger.debug("Solved %s = %s for %s: %s", to_source(lhs), to_source(rhs), variable, root)
    return [root]
