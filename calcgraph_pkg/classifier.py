"""Heuristic tagging of raw input, used to choose validation rules and operations."""

from __future__ import annotations

import re

from .types import CalculatorType, ExpressionType

SCIENTIFIC_FUNCTIONS = ("sin", "cos", "tan", "ln", "log", "sqrt", "abs")

CALL_SHAPE_RE = re.compile(r"[A-Za-z]\(")

_BASE_CHARSET = frozenset("0123456789.+-*/^%() \t")
_IDENTIFIER_CHARSET = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_,πφ"
)

VALIDATION_CHARSETS: dict[ExpressionType, frozenset[str]] = {
    ExpressionType.ARITHMETIC: _BASE_CHARSET | _IDENTIFIER_CHARSET,
    ExpressionType.SCIENTIFIC: _BASE_CHARSET | _IDENTIFIER_CHARSET,
    ExpressionType.FUNCTION: _BASE_CHARSET | _IDENTIFIER_CHARSET,
    ExpressionType.EQUATION: _BASE_CHARSET | _IDENTIFIER_CHARSET | frozenset("=<>!"),
    ExpressionType.MATRIX: _BASE_CHARSET | _IDENTIFIER_CHARSET | frozenset("[];"),
}


def classify(text: str, calculator_type: CalculatorType = CalculatorType.BASIC) -> ExpressionType:
    """Tag raw input as equation, scientific, matrix, function or arithmetic.

    Args:
        text: Raw expression string
        calculator_type: Mode the input came from; SCIENTIFIC forces the scientific tag

    Returns:
        The first matching ExpressionType, checked in that order
    """
    stripped = text.strip()

    if "=" in stripped:
        return ExpressionType.EQUATION

    if calculator_type == CalculatorType.SCIENTIFIC or any(
        name in stripped for name in SCIENTIFIC_FUNCTIONS
    ):
        return ExpressionType.SCIENTIFIC

    if CALL_SHAPE_RE.search(stripped):
        return ExpressionType.FUNCTION

    if "[" in stripped and "]" in stripped:
        return ExpressionType.MATRIX

    return ExpressionType.ARITHMETIC


def validation_charset(expression_type: ExpressionType) -> frozenset[str]:
    """Characters downstream validators accept for the given tag."""
    return VALIDATION_CHARSETS[expression_type]


def first_invalid_character(text: str, expression_type: ExpressionType) -> int | None:
    """Index of the first character outside the tag's charset, or None."""
    allowed = validation_charset(expression_type)
    for index, char in enumerate(text):
        if char not in allowed and not char.isspace():
            return index
    return None
