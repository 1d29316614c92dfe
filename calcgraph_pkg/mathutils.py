"""Numeric helpers shared by the evaluator and the samplers.

Decimal covers the field operations, square roots, exponentials and
logarithms natively. Trigonometric functions and the irrational constants
are computed with mpmath at the working precision of the caller's context
and converted back to Decimal.
"""

from __future__ import annotations

import math
from decimal import Context, Decimal

import mpmath

from .config import MAX_FACTORIAL_ARGUMENT
from .types import DOMAIN_ERROR, NUMERIC_ERROR, AngleUnit, CalculationError

# Spellings accepted for each constant
CONSTANT_ALIASES = {
    "pi": "pi",
    "π": "pi",
    "e": "e",
    "phi": "phi",
    "φ": "phi",
}

_MP_CONSTANTS = {
    "pi": lambda: +mpmath.pi,
    "e": lambda: +mpmath.e,
    "phi": lambda: +mpmath.phi,
}

_EXTRA_DIGITS = 3


def decimal_to_mpf(value: Decimal) -> mpmath.mpf:
    if not value.is_finite():
        raise CalculationError("Argument is not a finite number", NUMERIC_ERROR)
    return mpmath.mpf(str(value).lower())


def mpf_to_decimal(value: mpmath.mpf, context: Context) -> Decimal:
    """Convert an mpmath result to Decimal, rounding with ``context``."""
    if not mpmath.isfinite(value):
        raise CalculationError("Result is not a finite number", NUMERIC_ERROR)
    text = mpmath.nstr(value, context.prec + _EXTRA_DIGITS, strip_zeros=False)
    return context.create_decimal(text)


def constant_value(name: str, context: Context) -> Decimal:
    """Return the named constant (any alias in CONSTANT_ALIASES) at ``context`` precision."""
    canonical = CONSTANT_ALIASES[name]
    with mpmath.workdps(context.prec + _EXTRA_DIGITS):
        return mpf_to_decimal(_MP_CONSTANTS[canonical](), context)


def mp_apply(func_name: str, value: Decimal, context: Context) -> Decimal:
    """Apply the mpmath function ``func_name`` (sin, cos, asin, ...) to a Decimal."""
    func = getattr(mpmath, func_name)
    with mpmath.workdps(context.prec + _EXTRA_DIGITS):
        return mpf_to_decimal(func(decimal_to_mpf(value)), context)


def factorial(value: Decimal, context: Context) -> Decimal:
    """Factorial of a non-negative integral Decimal."""
    if value.is_signed() and not value.is_zero():
        raise CalculationError("factorial requires a non-negative integer", DOMAIN_ERROR)
    if value != value.to_integral_value():
        raise CalculationError("factorial requires a non-negative integer", DOMAIN_ERROR)
    n = int(value)
    if n > MAX_FACTORIAL_ARGUMENT:
        raise CalculationError(
            f"factorial argument too large (max {MAX_FACTORIAL_ARGUMENT})", NUMERIC_ERROR
        )
    return context.create_decimal(math.factorial(n))


def convert_angle(value: float, from_unit: AngleUnit, to_unit: AngleUnit) -> float:
    """Convert an angle between degrees, radians and gradians."""
    if from_unit == to_unit:
        return value

    if from_unit == AngleUnit.DEGREE:
        radians = value * math.pi / 180
    elif from_unit == AngleUnit.GRADIAN:
        radians = value * math.pi / 200
    else:
        radians = value

    if to_unit == AngleUnit.DEGREE:
        return radians * 180 / math.pi
    if to_unit == AngleUnit.GRADIAN:
        return radians * 200 / math.pi
    return radians


def to_radians(value: float, unit: AngleUnit) -> float:
    return convert_angle(value, unit, AngleUnit.RADIAN)