"""Recursive-descent parser producing AST nodes.

Grammar, lowest to highest precedence::

    relation := expr (relop expr)?
    expr     := term (('+' | '-') term)*
    term     := factor (('*' | '/' | '%') factor)*
    factor   := unary (('^' | '**') factor)?        right-associative
    unary    := ('+' | '-')? primary
    primary  := number | constant | identifier
              | identifier '(' expr (',' expr)* ')'
              | '(' expr ')'

Function arity is not checked here; the evaluator does it.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from .config import CACHE_SIZE_PARSE, MAX_EXPRESSION_DEPTH
from .nodes import Binary, FunctionCall, Node, Number, Unary, Variable
from .tokenizer import RELATIONAL_OPERATORS, Token, tokenize
from .types import ExpressionParseError, TokenKind

ADDITIVE_OPERATORS = frozenset({"+", "-"})
MULTIPLICATIVE_OPERATORS = frozenset({"*", "/", "%"})
POWER_OPERATORS = frozenset({"^", "**"})


def check_balanced(tokens: list[Token]) -> None:
    """Raise ExpressionParseError at the first unmatched parenthesis."""
    open_positions: list[int] = []
    for token in tokens:
        if token.kind == TokenKind.LPAREN:
            open_positions.append(token.position)
        elif token.kind == TokenKind.RPAREN:
            if not open_positions:
                raise ExpressionParseError("Unbalanced parentheses", token.position)
            open_positions.pop()
    if open_positions:
        raise ExpressionParseError("Unbalanced parentheses", open_positions[0])


class Parser:
    """Parses one token list; create a new instance per input."""

    def __init__(self, tokens: list[Token], source_length: int = 0):
        self.tokens = tokens
        self.index = 0
        self.nesting = 0
        self.source_length = source_length

    def parse(self) -> Node:
        if not self.tokens:
            raise ExpressionParseError("Expression is empty", code="EMPTY_INPUT")
        check_balanced(self.tokens)

        node = self._relation()
        if self.index < len(self.tokens):
            token = self.tokens[self.index]
            raise ExpressionParseError(f"Unexpected token {token.text!r}", token.position)

        return node

    # token helpers

    def _peek(self) -> Token | None:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def _peek_operator(self, operators: frozenset[str]) -> str | None:
        token = self._peek()
        if token is not None and token.kind == TokenKind.OPERATOR and token.text in operators:
            return token.text
        return None

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _end_position(self) -> int:
        if not self.tokens:
            return 0
        last = self.tokens[-1]
        return max(self.source_length, last.position + len(last.text))

    def _expect(self, kind: TokenKind, description: str) -> Token:
        token = self._peek()
        if token is None:
            raise ExpressionParseError(f"Expected {description}", self._end_position())
        if token.kind != kind:
            raise ExpressionParseError(
                f"Expected {description} but found {token.text!r}", token.position
            )
        return self._advance()

    def _enter(self, position: int) -> None:
        self.nesting += 1
        if self.nesting > MAX_EXPRESSION_DEPTH:
            raise ExpressionParseError(
                f"Expression nested too deeply (> {MAX_EXPRESSION_DEPTH})",
                position,
                code="TOO_COMPLEX",
            )

    # grammar

    def _relation(self) -> Node:
        left = self._expr()
        op = self._peek_operator(RELATIONAL_OPERATORS)
        if op is None:
            return left
        self._advance()
        right = self._expr()
        return Binary(op, left, right)

    def _expr(self) -> Node:
        node = self._term()
        while (op := self._peek_operator(ADDITIVE_OPERATORS)) is not None:
            self._advance()
            node = Binary(op, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._factor()
        while (op := self._peek_operator(MULTIPLICATIVE_OPERATORS)) is not None:
            self._advance()
            node = Binary(op, node, self._factor())
        return node

    def _factor(self) -> Node:
        base = self._unary()
        if self._peek_operator(POWER_OPERATORS) is not None:
            token = self._advance()
            self._enter(token.position)
            exponent = self._factor()
            self.nesting -= 1
            return Binary("^", base, exponent)
        return base

    def _unary(self) -> Node:
        op = self._peek_operator(ADDITIVE_OPERATORS)
        if op is not None:
            self._advance()
            return Unary(op, self._primary())
        return self._primary()

    def _primary(self) -> Node:
        token = self._peek()
        if token is None:
            previous = self.tokens[self.index - 1] if self.index else None
            suffix = f" after {previous.text!r}" if previous is not None else ""
            raise ExpressionParseError(
                f"Unexpected end of expression{suffix}", self._end_position()
            )

        if token.kind == TokenKind.NUMBER:
            self._advance()
            return Number(Decimal(token.text))

        if token.kind == TokenKind.CONSTANT:
            self._advance()
            return Variable(token.text)

        if token.kind in (TokenKind.FUNCTION, TokenKind.VARIABLE):
            self._advance()
            following = self._peek()
            if following is not None and following.kind == TokenKind.LPAREN:
                return self._call(token)
            if token.kind == TokenKind.FUNCTION:
                raise ExpressionParseError(
                    f"Function {token.text!r} requires an argument list", token.position
                )
            return Variable(token.text)

        if token.kind == TokenKind.LPAREN:
            self._advance()
            following = self._peek()
            if following is not None and following.kind == TokenKind.RPAREN:
                raise ExpressionParseError("Empty parentheses", token.position)
            self._enter(token.position)
            node = self._expr()
            self._expect(TokenKind.RPAREN, "')'")
            self.nesting -= 1
            return node

        if token.kind == TokenKind.OPERATOR:
            raise ExpressionParseError(f"Missing operand before {token.text!r}", token.position)

        raise ExpressionParseError(f"Unexpected token {token.text!r}", token.position)

    def _call(self, name_token: Token) -> Node:
        open_paren = self._advance()
        following = self._peek()
        if following is not None and following.kind == TokenKind.RPAREN:
            raise ExpressionParseError(
                f"Empty argument list for {name_token.text!r}", open_paren.position
            )
        self._enter(open_paren.position)
        args = [self._expr()]
        while (comma := self._peek()) is not None and comma.kind == TokenKind.COMMA:
            self._advance()
            args.append(self._expr())
        self._expect(TokenKind.RPAREN, "')'")
        self.nesting -= 1
        return FunctionCall(name_token.text, tuple(args))


def parse_tokens(tokens: list[Token], source_length: int = 0) -> Node:
    return Parser(tokens, source_length).parse()


@lru_cache(maxsize=CACHE_SIZE_PARSE)
def _parse_cached(text: str) -> tuple[tuple[Token, ...], Node]:
    tokens = tokenize(text)
    return tuple(tokens), parse_tokens(tokens, len(text))


def parse(text: str) -> tuple[list[Token], Node]:
    """Tokenize and parse ``text``.

    Args:
        text: Expression string (e.g., "(2+3)*4 - 5")

    Returns:
        Tuple of (tokens, ast)

    Raises:
        ExpressionParseError: If the text is not a well-formed expression.
    """
    tokens, node = _parse_cached(text.strip())
    return list(tokens), node


def parse_ast(text: str) -> Node:
    return parse(text)[1]
