"""Abstract syntax tree node types.

The tree is a closed union of five frozen dataclasses. Nodes compare
structurally and are hashable, so parsed trees can be cached and compared
directly in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Union


@dataclass(frozen=True)
class Number:
    value: Decimal


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class Binary:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Unary:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: tuple["Node", ...]


Node = Union[Number, Variable, Binary, Unary, FunctionCall]

# Binding strength used by the printer; mirrors the parser's grammar levels.
_RELATION = 0
_ADDITIVE = 1
_MULTIPLICATIVE = 2
_POWER = 3
_UNARY = 4
_PRIMARY = 5

_BINARY_PRECEDENCE = {
    "+": _ADDITIVE,
    "-": _ADDITIVE,
    "*": _MULTIPLICATIVE,
    "/": _MULTIPLICATIVE,
    "%": _MULTIPLICATIVE,
    "^": _POWER,
}


def _precedence(node: Node) -> int:
    if isinstance(node, Binary):
        return _BINARY_PRECEDENCE.get(node.op, _RELATION)
    if isinstance(node, Unary):
        return _UNARY
    if isinstance(node, Number) and node.value.is_signed():
        return _UNARY
    return _PRIMARY


def _wrap(node: Node, minimum: int) -> str:
    text = to_source(node)
    if _precedence(node) < minimum:
        return f"({text})"
    return text


def format_decimal(value: Decimal) -> str:
    """Plain positional notation without an exponent."""
    text = format(value, "f")
    if text in ("-0", "-0.0"):
        return text[1:]
    return text


def to_source(node: Node) -> str:
    """Print ``node`` as expression text that parses back to an equal tree."""
    if isinstance(node, Number):
        return format_decimal(node.value)
    if isinstance(node, Variable):
        return node.name
    if isinstance(node, FunctionCall):
        return f"{node.name}({', '.join(to_source(arg) for arg in node.args)})"
    if isinstance(node, Unary):
        return f"{node.op}{_wrap(node.operand, _PRIMARY)}"
    if isinstance(node, Binary):
        level = _BINARY_PRECEDENCE.get(node.op, _RELATION)
        if node.op == "^":
            # right-associative: base must be a unary, exponent a factor
            left = _wrap(node.left, _UNARY)
            right = _wrap(node.right, _POWER)
            return f"{left}^{right}"
        if level == _RELATION:
            return f"{_wrap(node.left, _ADDITIVE)} {node.op} {_wrap(node.right, _ADDITIVE)}"
        spine = [node]
        while isinstance(spine[-1].left, Binary) and _precedence(spine[-1].left) == level:
            spine.append(spine[-1].left)
        parts = [_wrap(spine[-1].left, level)]
        for link in reversed(spine):
            right = _wrap(link.right, level + 1)
            parts.append(f"*{right}" if link.op == "*" else f" {link.op} {right}")
        return "".join(parts)
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def variables_in(node: Node) -> set[str]:
    """Names of all Variable nodes (constants included) in the tree."""
    if isinstance(node, Variable):
        return {node.name}
    if isinstance(node, Binary):
        return variables_in(node.left) | variables_in(node.right)
    if isinstance(node, Unary):
        return variables_in(node.operand)
    if isinstance(node, FunctionCall):
        names: set[str] = set()
        for arg in node.args:
            names |= variables_in(arg)
        return names
    return set()


def node_to_dict(node: Node) -> dict[str, Any]:
    """Convert a tree into JSON-compatible dictionaries."""
    if isinstance(node, Number):
        return {"type": "number", "value": str(node.value)}
    if isinstance(node, Variable):
        return {"type": "variable", "name": node.name}
    if isinstance(node, Binary):
        return {
            "type": "binary",
            "op": node.op,
            "left": node_to_dict(node.left),
            "right": node_to_dict(node.right),
        }
    if isinstance(node, Unary):
        return {"type": "unary", "op": node.op, "operand": node_to_dict(node.operand)}
    if isinstance(node, FunctionCall):
        return {
            "type": "function",
            "name": node.name,
            "args": [node_to_dict(arg) for arg in node.args],
        }
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def node_from_dict(data: dict[str, Any]) -> Node:
    """Inverse of :func:`node_to_dict`."""
    kind = data.get("type")
    if kind == "number":
        return Number(Decimal(data["value"]))
    if kind == "variable":
        return Variable(data["name"])
    if kind == "binary":
        return Binary(data["op"], node_from_dict(data["left"]), node_from_dict(data["right"]))
    if kind == "unary":
        return Unary(data["op"], node_from_dict(data["operand"]))
    if kind == "function":
        return FunctionCall(data["name"], tuple(node_from_dict(arg) for arg in data["args"]))
    raise ValueError(f"Unknown node type: {kind!r}")
