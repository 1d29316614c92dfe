"""Decimal evaluation of parsed expressions.

Each Evaluator owns its own ``decimal.Context``, so instances configured with
different precisions never interfere. Evaluation is a pure function of the
tree, the explicit variable bindings and the instance's context. Angles are
always radians; callers convert other units before binding values.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Context, Decimal, DecimalException
from typing import Any

from .config import DEFAULT_PRECISION, GUARD_DIGITS, MAX_PRECISION, MIN_PRECISION
from .logging_config import get_logger
from .mathutils import CONSTANT_ALIASES, constant_value, factorial, mp_apply
from .nodes import Binary, FunctionCall, Node, Number, Unary, Variable
from .types import (
    ARITY,
    DIVIDE_BY_ZERO,
    DOMAIN_ERROR,
    NUMERIC_ERROR,
    UNDEFINED_VARIABLE,
    UNSUPPORTED,
    CalculationError,
    ValidationError,
)

logger = get_logger("evaluator")

# Widest context a modulo may use for its integer quotient
MAX_REMAINDER_DIGITS = 10000


def to_decimal(value: Any) -> Decimal:
    """Convert a binding value to Decimal without binary floating-point noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(str(value))


@dataclass(frozen=True)
class FunctionSpec:
    """Dispatch entry: ``max_args`` of None means variadic."""

    min_args: int
    max_args: int | None
    impl: Callable[[list[Decimal], Context], Decimal]


def _check_unit_interval(name: str, value: Decimal) -> None:
    if value < -1 or value > 1:
        raise CalculationError(f"{name} argument must be between -1 and 1", DOMAIN_ERROR)


def _asin(args: list[Decimal], ctx: Context) -> Decimal:
    _check_unit_interval("asin", args[0])
    return mp_apply("asin", args[0], ctx)


def _acos(args: list[Decimal], ctx: Context) -> Decimal:
    _check_unit_interval("acos", args[0])
    return mp_apply("acos", args[0], ctx)


def _ln(args: list[Decimal], ctx: Context) -> Decimal:
    if args[0] <= 0:
        raise CalculationError("ln argument must be greater than 0", DOMAIN_ERROR)
    return ctx.ln(args[0])


def _log10(args: list[Decimal], ctx: Context) -> Decimal:
    if args[0] <= 0:
        raise CalculationError("log argument must be greater than 0", DOMAIN_ERROR)
    return ctx.log10(args[0])


def _sqrt(args: list[Decimal], ctx: Context) -> Decimal:
    if args[0] < 0:
        raise CalculationError("sqrt argument must not be negative", DOMAIN_ERROR)
    return ctx.sqrt(args[0])


def _power(base: Decimal, exponent: Decimal, ctx: Context) -> Decimal:
    if base.is_zero() and exponent.is_signed() and not exponent.is_zero():
        raise CalculationError("Zero cannot be raised to a negative power", DIVIDE_BY_ZERO)
    if base.is_signed() and not base.is_zero() and exponent != exponent.to_integral_value():
        raise CalculationError(
            "Negative base requires an integer exponent", DOMAIN_ERROR
        )
    return ctx.power(base, exponent)


def _remainder(left: Decimal, right: Decimal, ctx: Context) -> Decimal:
    """Truncated remainder, sign of the dividend.

    The integer quotient may need more digits than ``ctx`` holds, so the
    remainder is taken in a context wide enough for it and rounded back.
    """
    digits = max(ctx.prec, left.adjusted() - right.adjusted() + ctx.prec + 2)
    if digits > MAX_REMAINDER_DIGITS:
        raise CalculationError("Modulo quotient too large", NUMERIC_ERROR)
    wide = ctx.copy()
    wide.prec = digits
    return ctx.plus(wide.remainder(left, right))


def _apply(op: str, left: Decimal, right: Decimal, ctx: Context) -> Decimal:
    if op == "+":
        return ctx.add(left, right)
    if op == "-":
        return ctx.subtract(left, right)
    if op == "*":
        return ctx.multiply(left, right)
    if op == "/":
        if right.is_zero():
            raise CalculationError("Division by zero", DIVIDE_BY_ZERO)
        return ctx.divide(left, right)
    if op in ("^", "**"):
        return _power(left, right, ctx)
    if op == "%":
        if right.is_zero():
            raise CalculationError("Modulo by zero", DIVIDE_BY_ZERO)
        return _remainder(left, right, ctx)
    raise CalculationError(f"Unsupported operator: {op}", UNSUPPORTED)


FUNCTIONS: dict[str, FunctionSpec] = {
    "sin": FunctionSpec(1, 1, lambda a, c: mp_apply("sin", a[0], c)),
    "cos": FunctionSpec(1, 1, lambda a, c: mp_apply("cos", a[0], c)),
    "tan": FunctionSpec(1, 1, lambda a, c: mp_apply("tan", a[0], c)),
    "asin": FunctionSpec(1, 1, _asin),
    "acos": FunctionSpec(1, 1, _acos),
    "atan": FunctionSpec(1, 1, lambda a, c: mp_apply("atan", a[0], c)),
    "ln": FunctionSpec(1, 1, _ln),
    "log": FunctionSpec(1, 1, _log10),
    "sqrt": FunctionSpec(1, 1, _sqrt),
    "abs": FunctionSpec(1, 1, lambda a, c: c.abs(a[0])),
    "ceil": FunctionSpec(1, 1, lambda a, c: a[0].to_integral_value(rounding=ROUND_CEILING)),
    "floor": FunctionSpec(1, 1, lambda a, c: a[0].to_integral_value(rounding=ROUND_FLOOR)),
    "round": FunctionSpec(1, 1, lambda a, c: a[0].to_integral_value(rounding=ROUND_HALF_UP)),
    "exp": FunctionSpec(1, 1, lambda a, c: c.exp(a[0])),
    "pow": FunctionSpec(2, 2, lambda a, c: _power(a[0], a[1], c)),
    "max": FunctionSpec(2, None, lambda a, c: max(a)),
    "min": FunctionSpec(2, None, lambda a, c: min(a)),
    "factorial": FunctionSpec(1, 1, lambda a, c: factorial(a[0], c)),
}

SUPPORTED_OPERATORS = ("+", "-", "*", "/", "^", "**", "%")


class Evaluator:
    """Evaluates AST nodes with Decimal arithmetic at a fixed precision.

    Args:
        precision: Significant digits requested by the caller (1-50). The
            working context carries GUARD_DIGITS extra digits.
        rounding: Decimal rounding mode for the working context.
    """

    def __init__(self, precision: int = DEFAULT_PRECISION, rounding: str = ROUND_HALF_UP):
        self._rounding = rounding
        self._precision = precision
        self._context = self._make_context(precision, rounding)

    @staticmethod
    def _make_context(precision: int, rounding: str) -> Context:
        if precision < MIN_PRECISION or precision > MAX_PRECISION:
            raise ValidationError(
                f"Precision must be between {MIN_PRECISION} and {MAX_PRECISION}",
                "INVALID_PRECISION",
            )
        return Context(prec=precision + GUARD_DIGITS, rounding=rounding)

    @property
    def precision(self) -> int:
        return self._precision

    @property
    def rounding(self) -> str:
        return self._rounding

    @property
    def context(self) -> Context:
        return self._context

    def set_precision(self, precision: int) -> None:
        # Replace rather than mutate the context; an evaluation already running
        # keeps the context it started with.
        self._context = self._make_context(precision, self._rounding)
        self._precision = precision
        logger.debug("Evaluator precision set to %d", precision)

    def evaluate(self, node: Node, variables: Mapping[str, Any] | None = None) -> Decimal:
        """Evaluate ``node`` with the given variable bindings.

        Args:
            node: Parsed expression tree
            variables: Mapping of variable name to number (int, float, str or Decimal)

        Returns:
            Decimal result rounded to the working context

        Raises:
            CalculationError: On domain errors, division by zero, undefined
                variables, unknown functions/operators or wrong arity.
        """
        ctx = self._context
        try:
            bindings = {name: to_decimal(value) for name, value in (variables or {}).items()}
            for name, value in bindings.items():
                if not value.is_finite():
                    raise CalculationError(
                        f"Variable {name} is not a finite number", NUMERIC_ERROR
                    )
            result = self._eval(node, bindings, ctx)
        except DecimalException as e:
            raise CalculationError(f"Numeric error: {type(e).__name__}", NUMERIC_ERROR) from e
        except RecursionError as e:
            raise CalculationError("Expression nested too deeply", NUMERIC_ERROR) from e
        if not result.is_finite():
            raise CalculationError("Result is not a finite number", NUMERIC_ERROR)
        return result

    def _eval(self, node: Node, bindings: dict[str, Decimal], ctx: Context) -> Decimal:
        if isinstance(node, Number):
            return node.value
        if isinstance(node, Variable):
            return self._variable(node.name, bindings, ctx)
        if isinstance(node, Binary):
            return self._binary(node, bindings, ctx)
        if isinstance(node, Unary):
            operand = self._eval(node.operand, bindings, ctx)
            if node.op == "+":
                return ctx.plus(operand)
            if node.op == "-":
                return ctx.minus(operand)
            raise CalculationError(f"Unsupported unary operator: {node.op}", UNSUPPORTED)
        if isinstance(node, FunctionCall):
            return self._call(node, bindings, ctx)
        raise CalculationError(f"Unsupported node type: {type(node).__name__}", UNSUPPORTED)

    def _variable(self, name: str, bindings: dict[str, Decimal], ctx: Context) -> Decimal:
        if name in CONSTANT_ALIASES:
            return constant_value(name, ctx)
        try:
            return bindings[name]
        except KeyError:
            raise CalculationError(f"Undefined variable: {name}", UNDEFINED_VARIABLE) from None

    def _binary(self, node: Binary, bindings: dict[str, Decimal], ctx: Context) -> Decimal:
        # Left-associative chains (1 + 2 + ... + n) are folded in a loop, not by recursion
        spine = [node]
        while isinstance(spine[-1].left, Binary):
            spine.append(spine[-1].left)
        value = self._eval(spine[-1].left, bindings, ctx)
        for link in reversed(spine):
            value = _apply(link.op, value, self._eval(link.right, bindings, ctx), ctx)
        return value

    def _call(self, node: FunctionCall, bindings: dict[str, Decimal], ctx: Context) -> Decimal:
        name = node.name.lower()
        spec = FUNCTIONS.get(name)
        if spec is None:
            raise CalculationError(f"Unsupported function: {node.name}", UNSUPPORTED)

        count = len(node.args)
        if spec.max_args is None:
            if count < spec.min_args:
                raise CalculationError(
                    f"{name} requires at least {spec.min_args} arguments, got {count}", ARITY
                )
        elif not spec.min_args <= count <= spec.max_args:
            raise CalculationError(
                f"{name} requires {spec.min_args} argument{'s' if spec.min_args != 1 else ''}, got {count}",
                ARITY,
            )

        args = [self._eval(arg, bindings, ctx) for arg in node.args]
        return ctx.plus(spec.impl(args, ctx))

    def evaluate_float(self, node: Node, variables: Mapping[str, Any] | None = None) -> float:
        """Evaluate and convert to float, as the samplers need."""
        return float(self.evaluate(node, variables))


def supported_functions() -> list[str]:
    return list(FUNCTIONS)
