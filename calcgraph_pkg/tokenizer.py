"""Lexical analysis: turn an expression string into a sequence of tokens."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .config import MAX_INPUT_LENGTH
from .mathutils import CONSTANT_ALIASES
from .types import ExpressionParseError, TokenKind

# Identifiers the tokenizer classifies as functions; everything else that is
# not a constant is a variable.
RESERVED_FUNCTIONS = frozenset(
    {
        "sin",
        "cos",
        "tan",
        "asin",
        "acos",
        "atan",
        "ln",
        "log",
        "sqrt",
        "abs",
        "ceil",
        "floor",
        "round",
        "exp",
        "pow",
        "max",
        "min",
        "factorial",
    }
)
RESERVED_CONSTANTS = frozenset(CONSTANT_ALIASES)

# Longest operators first so "**" wins over "*" and "<=" over "<"
OPERATORS = ("**", "==", "!=", "<=", ">=", "+", "-", "*", "/", "^", "%", "=", "<", ">")
RELATIONAL_OPERATORS = frozenset({"=", "==", "!=", "<", ">", "<=", ">="})

NUMBER_RE = re.compile(r"(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
SINGLE_CHAR_IDENTIFIERS = frozenset({"π", "φ"})


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    position: int


def classify_identifier(name: str) -> TokenKind:
    """Map an identifier to FUNCTION, CONSTANT or VARIABLE using the reserved tables."""
    if name.lower() in RESERVED_FUNCTIONS:
        return TokenKind.FUNCTION
    if name in RESERVED_CONSTANTS:
        return TokenKind.CONSTANT
    return TokenKind.VARIABLE


def tokenize(text: str) -> list[Token]:
    """Split ``text`` into tokens.

    Args:
        text: Expression string (e.g., "2 + sin(pi/2)")

    Returns:
        Ordered list of tokens with their character positions

    Raises:
        ExpressionParseError: On characters outside the supported set or
            input longer than MAX_INPUT_LENGTH.
    """
    if len(text) > MAX_INPUT_LENGTH:
        raise ExpressionParseError(
            f"Input too long (max {MAX_INPUT_LENGTH} characters)", code="TOO_LONG"
        )

    tokens: list[Token] = []
    pos = 0
    length = len(text)

    while pos < length:
        char = text[pos]

        if char.isspace():
            pos += 1
            continue

        if char.isdigit() or (char == "." and pos + 1 < length and text[pos + 1].isdigit()):
            match = NUMBER_RE.match(text, pos)
            tokens.append(Token(TokenKind.NUMBER, match.group(0), pos))
            pos = match.end()
            continue

        if char.isascii() and (char.isalpha() or char == "_"):
            match = IDENTIFIER_RE.match(text, pos)
            name = match.group(0)
            tokens.append(Token(classify_identifier(name), name, pos))
            pos = match.end()
            continue

        if char in SINGLE_CHAR_IDENTIFIERS:
            tokens.append(Token(TokenKind.CONSTANT, char, pos))
            pos += 1
            continue

        if char == "(":
            tokens.append(Token(TokenKind.LPAREN, char, pos))
            pos += 1
            continue
        if char == ")":
            tokens.append(Token(TokenKind.RPAREN, char, pos))
            pos += 1
            continue
        if char == ",":
            tokens.append(Token(TokenKind.COMMA, char, pos))
            pos += 1
            continue

        for op in OPERATORS:
            if text.startswith(op, pos):
                tokens.append(Token(TokenKind.OPERATOR, op, pos))
                pos += len(op)
                break
        else:
            raise ExpressionParseError(f"Unexpected character {char!r}", position=pos)

    return tokens
