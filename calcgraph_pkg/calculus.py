"""Rule-based simplification, differentiation and integration on AST nodes.

Only a small set of rewrite rules is supported; anything outside it raises
UnsupportedOperationError rather than guessing.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Context, Decimal
from typing import Any

from .config import INTEGRATION_INTERVALS
from .evaluator import Evaluator, to_decimal
from .logging_config import get_logger
from .nodes import Binary, FunctionCall, Node, Number, Unary, Variable, to_source, variables_in
from .types import UnsupportedOperationError

logger = get_logger("calculus")

ZERO = Number(Decimal(0))
ONE = Number(Decimal(1))
TWO = Number(Decimal(2))

_FOLD_CONTEXT = Context(prec=50)


def number_value(node: Node) -> Decimal | None:
    """Value of a literal, including a negated literal; None otherwise."""
    if isinstance(node, Number):
        return node.value
    if isinstance(node, Unary) and isinstance(node.operand, Number):
        return node.operand.value if node.op == "+" else -node.operand.value
    return None


def make_number(value: Decimal) -> Node:
    """Literal node; negative values become a negated literal so they print and re-parse identically."""
    if value.is_signed() and not value.is_zero():
        return Unary("-", Number(-value))
    return Number(abs(value) if value.is_zero() else value)


def _split_term(node: Node) -> tuple[Decimal, Node]:
    """Split ``c*base`` into (c, base); anything else is (1, node)."""
    if isinstance(node, Binary) and node.op == "*":
        coefficient = number_value(node.left)
        if coefficient is not None and number_value(node.right) is None:
            return coefficient, node.right
    return Decimal(1), node


def _scaled(coefficient: Decimal, base: Node) -> Node:
    if coefficient.is_zero():
        return ZERO
    if coefficient == 1:
        return base
    return Binary("*", make_number(coefficient), base)


def _simplify_binary(op: str, left: Node, right: Node) -> Node:
    left_value = number_value(left)
    right_value = number_value(right)

    if left_value is not None and right_value is not None and op in ("+", "-", "*"):
        if op == "+":
            return make_number(_FOLD_CONTEXT.add(left_value, right_value))
        if op == "-":
            return make_number(_FOLD_CONTEXT.subtract(left_value, right_value))
        return make_number(_FOLD_CONTEXT.multiply(left_value, right_value))

    if op == "+":
        if left_value is not None and left_value.is_zero():
            return right
        if right_value is not None and right_value.is_zero():
            return left
        left_coefficient, left_base = _split_term(left)
        right_coefficient, right_base = _split_term(right)
        if left_base == right_base and number_value(left_base) is None:
            return _scaled(_FOLD_CONTEXT.add(left_coefficient, right_coefficient), left_base)

    elif op == "-":
        if right_value is not None and right_value.is_zero():
            return left
        if left == right:
            return ZERO

    elif op == "*":
        if (left_value is not None and left_value.is_zero()) or (
            right_value is not None and right_value.is_zero()
        ):
            return ZERO
        if left_value == 1:
            return right
        if right_value == 1:
            return left
        if left_value is not None:
            inner_coefficient, base = _split_term(right)
            if base is not right:
                return _scaled(_FOLD_CONTEXT.multiply(left_value, inner_coefficient), base)

    elif op == "/":
        if right_value == 1:
            return left

    elif op == "^":
        if right_value == 1:
            return left
        if right_value is not None and right_value.is_zero():
            return ONE

    return Binary(op, left, right)


def _simplify_once(node: Node) -> Node:
    if isinstance(node, Binary):
        return _simplify_binary(node.op, _simplify_once(node.left), _simplify_once(node.right))
    if isinstance(node, Unary):
        operand = _simplify_once(node.operand)
        if node.op == "+":
            return operand
        if isinstance(operand, Unary) and operand.op == "-":
            return operand.operand
        if isinstance(operand, Number) and operand.value.is_zero():
            return ZERO
        return Unary(node.op, operand)
    if isinstance(node, FunctionCall):
        return FunctionCall(node.name, tuple(_simplify_once(arg) for arg in node.args))
    return node


def simplify(node: Node) -> Node:
    """Apply the rewrite rules bottom-up until nothing changes.

    Rules: 0+x, x+0, x-0, 1*x, x*1, x/1, x^1 -> x; 0*x, x*0, x-x -> 0;
    x^0 -> 1; +x -> x; -(-x) -> x; x+x -> 2*x; c*x+x, x+c*x, a*x+b*x ->
    (sum)*x; c*(d*x) -> (c*d)*x; numeric folding of +, - and *.
    """
    while True:
        simplified = _simplify_once(node)
        if simplified == node:
            return node
        node = simplified


def _depends_on(node: Node, variable: str) -> bool:
    return variable in variables_in(node)


def _is_call_of(node: Node, name: str, variable: str) -> bool:
    return (
        isinstance(node, FunctionCall)
        and node.name.lower() == name
        and node.args == (Variable(variable),)
    )


def _unsupported(kind: str, node: Node) -> UnsupportedOperationError:
    return UnsupportedOperationError(
        f"{kind} of {to_source(node)} is not supported", operation=kind.lower()
    )


def _derive(node: Node, variable: str) -> Node:
    if not _depends_on(node, variable):
        return ZERO
    if node == Variable(variable):
        return ONE

    if isinstance(node, Unary):
        inner = _derive(node.operand, variable)
        return Unary("-", inner) if node.op == "-" else inner

    if isinstance(node, Binary):
        if node.op in ("+", "-"):
            return Binary(node.op, _derive(node.left, variable), _derive(node.right, variable))
        if node.op == "*":
            if not _depends_on(node.left, variable):
                return Binary("*", node.left, _derive(node.right, variable))
            if not _depends_on(node.right, variable):
                return Binary("*", _derive(node.left, variable), node.right)
        if node.op == "/" and not _depends_on(node.right, variable):
            return Binary("/", _derive(node.left, variable), node.right)
        if node.op == "^" and node.left == Variable(variable):
            exponent = number_value(node.right)
            if exponent is not None:
                return Binary(
                    "*",
                    make_number(exponent),
                    Binary("^", node.left, make_number(exponent - 1)),
                )

    if _is_call_of(node, "sin", variable):
        return FunctionCall("cos", node.args)
    if _is_call_of(node, "cos", variable):
        return Unary("-", FunctionCall("sin", node.args))
    if _is_call_of(node, "exp", variable):
        return node

    raise _unsupported("Derivative", node)


def derivative(node: Node, variable: str) -> Node:
    """d/d(variable) of ``node`` under the basic rules, simplified."""
    return simplify(_derive(node, variable))


def _integrate(node: Node, variable: str) -> Node:
    var = Variable(variable)
    if not _depends_on(node, variable):
        return Binary("*", node, var)
    if node == var:
        return Binary("/", Binary("^", var, TWO), TWO)

    if isinstance(node, Unary):
        inner = _integrate(node.operand, variable)
        return Unary("-", inner) if node.op == "-" else inner

    if isinstance(node, Binary):
        if node.op in ("+", "-"):
            return Binary(
                node.op, _integrate(node.left, variable), _integrate(node.right, variable)
            )
        if node.op == "*":
            if not _depends_on(node.left, variable):
                return Binary("*", node.left, _integrate(node.right, variable))
            if not _depends_on(node.right, variable):
                return Binary("*", _integrate(node.left, variable), node.right)
        if node.op == "/" and not _depends_on(node.right, variable):
            return Binary("/", _integrate(node.left, variable), node.right)
        if node.op == "^" and node.left == var:
            exponent = number_value(node.right)
            if exponent is not None and exponent != -1:
                raised = make_number(exponent + 1)
                return Binary("/", Binary("^", var, raised), raised)

    if _is_call_of(node, "sin", variable):
        return Unary("-", FunctionCall("cos", node.args))
    if _is_call_of(node, "cos", variable):
        return FunctionCall("sin", node.args)
    if _is_call_of(node, "exp", variable):
        return node

    raise _unsupported("Integral", node)


def integral(node: Node, variable: str) -> Node:
    """Antiderivative of ``node`` under the basic rules (no constant), simplified."""
    return simplify(_integrate(node, variable))


def numerical_integral(
    evaluator: Evaluator,
    node: Node,
    variable: str,
    lower: Any,
    upper: Any,
    intervals: int = INTEGRATION_INTERVALS,
    variables: Mapping[str, Any] | None = None,
) -> Decimal:
    """Definite integral by the composite Simpson rule in Decimal arithmetic.

    Args:
        evaluator: Evaluator providing precision and function dispatch
        node: Integrand
        variable: Integration variable
        lower: Lower bound
        upper: Upper bound
        intervals: Number of sub-intervals (rounded up to an even number)
        variables: Other bindings the integrand needs

    Raises:
        CalculationError: If the integrand cannot be evaluated at a sample.
    """
    if intervals < 2:
        intervals = 2
    if intervals % 2:
        intervals += 1

    ctx = evaluator.context
    low = to_decimal(lower)
    high = to_decimal(upper)
    step = ctx.divide(ctx.subtract(high, low), intervals)
    bindings = dict(variables or {})

    total = Decimal(0)
    for i in range(intervals + 1):
        bindings[variable] = ctx.add(low, ctx.multiply(step, i))
        value = evaluator.evaluate(node, bindings)
        if i == 0 or i == intervals:
            weight = 1
        elif i % 2:
            weight = 4
        else:
            weight = 2
        total = ctx.add(total, ctx.multiply(value, weight))

    logger.debug("Simpson integration over %d intervals of %s", intervals, to_source(node))
    return ctx.divide(ctx.multiply(total, step), 3)
