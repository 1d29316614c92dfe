"""Type definitions, error classes and result dataclasses for consistent API responses."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class TokenKind(str, Enum):
    NUMBER = "number"
    VARIABLE = "variable"
    FUNCTION = "function"
    CONSTANT = "constant"
    OPERATOR = "operator"
    LPAREN = "lparen"
    RPAREN = "rparen"
    COMMA = "comma"


class ExpressionType(str, Enum):
    ARITHMETIC = "arithmetic"
    SCIENTIFIC = "scientific"
    MATRIX = "matrix"
    EQUATION = "equation"
    FUNCTION = "function"


class CalculatorType(str, Enum):
    """Calculator mode the input was typed in; only SCIENTIFIC affects classification."""

    BASIC = "basic"
    SCIENTIFIC = "scientific"
    GRAPHING = "graphing"
    MATRIX = "matrix"
    EQUATION = "equation"


class ResultFormat(str, Enum):
    DECIMAL = "decimal"
    SCIENTIFIC = "scientific"
    FRACTION = "fraction"
    PERCENTAGE = "percentage"
    BINARY = "binary"
    HEXADECIMAL = "hexadecimal"


class AngleUnit(str, Enum):
    DEGREE = "degree"
    RADIAN = "radian"
    GRADIAN = "gradian"


class FunctionType(str, Enum):
    FUNCTION_2D = "2d"  # y = f(x)
    FUNCTION_3D = "3d"  # z = f(x, y)
    PARAMETRIC_2D = "parametric2d"  # x = f(t), y = g(t)
    PARAMETRIC_3D = "parametric3d"  # x = f(t), y = g(t), z = h(t)
    POLAR = "polar"  # r = f(theta)
    IMPLICIT = "implicit"  # f(x, y) = c


class SpecialPointType(str, Enum):
    ZERO = "zero"
    MAXIMUM = "maximum"
    MINIMUM = "minimum"


# Error codes carried by CalculationError
DIVIDE_BY_ZERO = "DIVIDE_BY_ZERO"
DOMAIN_ERROR = "DOMAIN_ERROR"
UNDEFINED_VARIABLE = "UNDEFINED_VARIABLE"
UNSUPPORTED = "UNSUPPORTED"
ARITY = "ARITY"
NUMERIC_ERROR = "NUMERIC_ERROR"


class ValidationError(Exception):
    """Raised when a record invariant or a configuration bound is violated."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class ExpressionParseError(Exception):
    """Raised by the tokenizer and parser; ``position`` is a character offset."""

    def __init__(
        self, message: str, position: int | None = None, code: str = "PARSE_ERROR"
    ):
        self.message = message
        self.position = position
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} (at position {self.position})"


class CalculationError(Exception):
    """Raised when evaluating a parsed expression fails."""

    def __init__(
        self,
        message: str,
        code: str = NUMERIC_ERROR,
        expression: Any = None,
    ):
        self.message = message
        self.code = code
        self.expression = expression
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class UnsupportedOperationError(Exception):
    """Raised when an operation does not apply to the expression's classification."""

    def __init__(self, message: str, operation: str | None = None):
        self.message = message
        self.operation = operation
        self.code = "UNSUPPORTED_OPERATION"
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class RenderError(Exception):
    """Raised when sampling yields no valid point or the input cannot be rendered."""

    def __init__(self, message: str, expression: Any = None, code: str = "RENDER_ERROR"):
        self.message = message
        self.expression = expression
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class OperationCancelledError(RenderError):
    """Raised when a sampling run is cancelled or exceeds its deadline."""

    def __init__(self, message: str = "Operation cancelled", expression: Any = None):
        super().__init__(message, expression, code="CANCELLED")


class UnsupportedFunctionError(Exception):
    """Raised when a renderer does not implement the requested function type."""

    def __init__(self, message: str, function_type: str | None = None):
        self.message = message
        self.function_type = function_type
        self.code = "UNSUPPORTED_FUNCTION"
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


@dataclass
class EvalResult:
    """Result of evaluating, simplifying or transforming an expression."""

    ok: bool
    result: str | None = None
    display: str | None = None
    is_exact: bool | None = None
    error: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result_dict: dict[str, Any] = {"ok": self.ok}
        if self.result is not None:
            result_dict["result"] = self.result
        if self.display is not None:
            result_dict["display"] = self.display
        if self.is_exact is not None:
            result_dict["is_exact"] = self.is_exact
        if self.error is not None:
            result_dict["error"] = self.error
        if self.code is not None:
            result_dict["code"] = self.code
        return result_dict

    def __repr__(self) -> str:
        if not self.ok:
            return f"EvalResult(ok=False, error={self.error!r}, code={self.code!r})"
        parts = [f"ok={self.ok}"]
        if self.result is not None:
            parts.append(f"result={self.result!r}")
        if self.display is not None:
            parts.append(f"display={self.display!r}")
        return f"EvalResult({', '.join(parts)})"


@dataclass
class SolveResult:
    """Result of solving an equation."""

    ok: bool
    result_type: str = "equation"
    exact: list[str] | None = None
    error: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result_dict: dict[str, Any] = {"ok": self.ok, "type": self.result_type}
        if self.exact is not None:
            result_dict["exact"] = self.exact
        if self.error is not None:
            result_dict["error"] = self.error
        if self.code is not None:
            result_dict["code"] = self.code
        return result_dict


@dataclass
class GraphResult:
    """Result of sampling an expression into a graph or of analyzing one."""

    ok: bool
    graph: dict[str, Any] | None = None
    special_points: list[dict[str, Any]] | None = None
    error: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result_dict: dict[str, Any] = {"ok": self.ok}
        if self.graph is not None:
            result_dict["graph"] = self.graph
        if self.special_points is not None:
            result_dict["special_points"] = self.special_points
        if self.error is not None:
            result_dict["error"] = self.error
        if self.code is not None:
            result_dict["code"] = self.code
        return result_dict
