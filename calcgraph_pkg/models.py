"""Core records: Range, Point3D, Expression and Result.

All records serialize to JSON-compatible dictionaries with ``to_dict`` and
rebuild with ``from_dict``. Decimal values travel as strings so that a round
trip is lossless.
"""

from __future__ import annotations

import json
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Context, Decimal
from fractions import Fraction
from typing import Any

from .config import DEFAULT_PRECISION, MAX_COMPUTATION_TIME_MS, MAX_PRECISION, MIN_PRECISION
from .nodes import Node, node_from_dict, node_to_dict
from .tokenizer import Token
from .types import ExpressionType, ResultFormat, TokenKind, ValidationError


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:16]}"


def encode_number(value: Any) -> Any:
    """Encode a binding value for JSON; Decimals become tagged strings."""
    if isinstance(value, Decimal):
        return {"decimal": str(value)}
    return value


def decode_number(value: Any) -> Any:
    if isinstance(value, dict) and "decimal" in value:
        return Decimal(value["decimal"])
    return value


@dataclass(frozen=True)
class Range:
    min: float
    max: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.min) and math.isfinite(self.max)):
            raise ValidationError("Range bounds must be finite", "INVALID_RANGE")
        if self.min >= self.max:
            raise ValidationError(
                f"Range minimum must be less than maximum (got {self.min}, {self.max})",
                "INVALID_RANGE",
            )

    @property
    def span(self) -> float:
        return self.max - self.min

    @classmethod
    def of(cls, value: Any) -> "Range":
        """Accept a Range, a (min, max) pair or a {"min", "max"} mapping."""
        if isinstance(value, Range):
            return value
        if isinstance(value, dict):
            return cls(float(value["min"]), float(value["max"]))
        low, high = value
        return cls(float(low), float(high))

    def to_dict(self) -> dict[str, float]:
        return {"min": self.min, "max": self.max}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Range":
        return cls.of(data)


@dataclass(frozen=True)
class Point3D:
    x: float
    y: float
    z: float = 0.0

    def distance_to(self, other: "Point3D") -> float:
        return math.sqrt(
            (self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2
        )

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Point3D":
        return cls(float(data["x"]), float(data["y"]), float(data.get("z", 0.0)))


@dataclass
class Expression:
    """A parsed (or failed) expression together with its variable bindings."""

    input: str
    type: ExpressionType = ExpressionType.ARITHMETIC
    tokens: list[Token] = field(default_factory=list)
    ast: Node | None = None
    is_valid: bool = False
    error_message: str | None = None
    variables: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: new_id("expr"))
    created_at: datetime = field(default_factory=datetime.now)

    def set_variable(self, name: str, value: Any) -> None:
        self.variables[name] = value

    def get_variable(self, name: str) -> Any:
        return self.variables.get(name)

    def clear_variables(self) -> None:
        self.variables.clear()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "input": self.input,
            "tokens": [
                {"kind": token.kind.value, "text": token.text, "position": token.position}
                for token in self.tokens
            ],
            "ast": node_to_dict(self.ast) if self.ast is not None else None,
            "is_valid": self.is_valid,
            "error_message": self.error_message,
            "type": self.type.value,
            "variables": {name: encode_number(value) for name, value in self.variables.items()},
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Expression":
        return cls(
            input=data["input"],
            type=ExpressionType(data.get("type", ExpressionType.ARITHMETIC.value)),
            tokens=[
                Token(TokenKind(token["kind"]), token["text"], int(token["position"]))
                for token in data.get("tokens", [])
            ],
            ast=node_from_dict(data["ast"]) if data.get("ast") is not None else None,
            is_valid=bool(data.get("is_valid", False)),
            error_message=data.get("error_message"),
            variables={
                name: decode_number(value) for name, value in data.get("variables", {}).items()
            },
            id=data["id"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> "Expression":
        return cls.from_dict(json.loads(text))


def _fixed(value: Decimal, places: int) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    context = Context(prec=max(value.adjusted(), 0) + places + 2, rounding=ROUND_HALF_UP)
    return value.quantize(exponent, context=context)


def _strip_zeros(text: str) -> str:
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def simple_fraction(value: Decimal) -> Fraction | None:
    """Fraction for values with at most 4 decimal places and a denominator <= 100."""
    if not value.is_finite():
        return None
    fraction = Fraction(value)
    # at most 4 decimal places <=> the denominator divides 10^4
    if 10_000 % fraction.denominator or fraction.denominator > 100:
        return None
    return fraction


@dataclass
class Result:
    """Outcome of one evaluation, with its display rendering."""

    expression_id: str
    value: Decimal | None
    display_value: str = ""
    format: ResultFormat = ResultFormat.DECIMAL
    precision: int = DEFAULT_PRECISION
    unit: str | None = None
    is_exact: bool = False
    computation_time: float = 0.0  # milliseconds
    id: str = field(default_factory=lambda: new_id("result"))
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def create(
        cls,
        expression_id: str,
        value: Decimal | None,
        precision: int = DEFAULT_PRECISION,
        notation: str | None = None,
        unit: str | None = None,
    ) -> "Result":
        """Build a result, deriving format, exactness and display text from the value."""
        result_format = ResultFormat.SCIENTIFIC if notation == "exponential" else ResultFormat.DECIMAL
        result = cls(
            expression_id=expression_id,
            value=value,
            format=result_format,
            precision=precision,
            unit=unit,
        )
        result.is_exact = result.determine_exactness()
        result.display_value = result.format_value()
        return result

    @classmethod
    def error(cls, expression_id: str, message: str) -> "Result":
        return cls(expression_id=expression_id, value=None, display_value=f"Error: {message}")

    def validate(self) -> None:
        if not self.expression_id or not self.expression_id.strip():
            raise ValidationError("Result must reference an expression id", "INVALID_RESULT")
        if not MIN_PRECISION <= self.precision <= MAX_PRECISION:
            raise ValidationError(
                f"Precision must be between {MIN_PRECISION} and {MAX_PRECISION}",
                "INVALID_PRECISION",
            )
        if self.computation_time < 0:
            raise ValidationError("Computation time cannot be negative", "INVALID_RESULT")
        if self.computation_time > MAX_COMPUTATION_TIME_MS:
            raise ValidationError(
                f"Computation time exceeds limit: {self.computation_time}ms", "INVALID_RESULT"
            )

    def determine_exactness(self) -> bool:
        if self.value is None:
            return False
        if self.value == self.value.to_integral_value():
            return True
        return simple_fraction(self.value) is not None

    def format_value(self) -> str:
        value = self.value
        if value is None:
            return "Error"

        if self.format == ResultFormat.SCIENTIFIC:
            return format(value, f".{self.precision}e")

        if self.format == ResultFormat.FRACTION:
            fraction = simple_fraction(value)
            if fraction is not None:
                return f"{fraction.numerator}/{fraction.denominator}"
            return format(_fixed(value, self.precision), "f")

        if self.format == ResultFormat.PERCENTAGE:
            return format(_fixed(value * 100, self.precision), "f") + "%"

        if self.format == ResultFormat.BINARY:
            integer = int(value.to_integral_value(rounding=ROUND_FLOOR))
            return f"0b{integer:b}" if integer >= 0 else f"-0b{-integer:b}"

        if self.format == ResultFormat.HEXADECIMAL:
            integer = int(value.to_integral_value(rounding=ROUND_FLOOR))
            return f"0x{integer:X}" if integer >= 0 else f"-0x{-integer:X}"

        return _strip_zeros(format(_fixed(value, self.precision), "f"))

    def update_format(self, result_format: ResultFormat, precision: int | None = None) -> None:
        self.format = result_format
        if precision is not None:
            self.precision = precision
        self.validate()
        self.display_value = self.format_value()

    def set_computation_time(self, milliseconds: float) -> None:
        previous = self.computation_time
        self.computation_time = milliseconds
        try:
            self.validate()
        except ValidationError:
            self.computation_time = previous
            raise

    def numeric_value(self) -> float | None:
        return float(self.value) if self.value is not None else None

    def equals(self, other: "Result") -> bool:
        return self.expression_id == other.expression_id and self.value == other.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "expression_id": self.expression_id,
            "value": str(self.value) if self.value is not None else None,
            "display_value": self.display_value,
            "format": self.format.value,
            "precision": self.precision,
            "unit": self.unit,
            "is_exact": self.is_exact,
            "computation_time": self.computation_time,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Result":
        value = data.get("value")
        return cls(
            expression_id=data["expression_id"],
            value=Decimal(value) if value is not None else None,
            display_value=data.get("display_value", ""),
            format=ResultFormat(data.get("format", ResultFormat.DECIMAL.value)),
            precision=int(data.get("precision", DEFAULT_PRECISION)),
            unit=data.get("unit"),
            is_exact=bool(data.get("is_exact", False)),
            computation_time=float(data.get("computation_time", 0.0)),
            id=data["id"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> "Result":
        return cls.from_dict(json.loads(text))
