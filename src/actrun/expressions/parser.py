# expressions/parser.py
"""
Recursive-descent parser for conditional expressions.

Precedence, lowest to highest:

    or        a || b
    and       a && b
    equality  a == b, a != b
    relation  a < b, a > b, a <= b, a >= b
    unary     !a
    primary   literal | path | call(args) | ( expr )

There are no arithmetic operators.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Tuple, Union

from .errors import ExpressionSyntaxError
from .tokenizer import Token, TokenType, tokenize


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class ContextAccess:
    path: str


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: Tuple["Node", ...]


Node = Union[Literal, ContextAccess, BinaryOp, UnaryOp, FunctionCall]

_EQUALITY = (TokenType.EQ, TokenType.NEQ)
_RELATIONAL = (TokenType.LT, TokenType.GT, TokenType.LTE, TokenType.GTE)


class _Parser:
    def __init__(self, tokens: List[Token], source: str):
        self.tokens = tokens
        self.source = source
        self.pos = 0

    # ---- cursor ----

    def current(self) -> Token:
        if self.pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.current()
        self.pos += 1
        return tok

    def error(self, message: str, tok: Token | None = None) -> ExpressionSyntaxError:
        tok = tok or self.current()
        return ExpressionSyntaxError(message, self.source, tok.position)

    # ---- grammar ----

    def parse(self) -> Node:
        node = self.parse_or()
        if self.current().type is not TokenType.EOF:
            raise self.error(f"unexpected token {self.current().value!r}")
        return node

    def parse_or(self) -> Node:
        left = self.parse_and()
        while self.current().type is TokenType.OR:
            self.advance()
            left = BinaryOp("||", left, self.parse_and())
        return left

    def parse_and(self) -> Node:
        left = self.parse_equality()
        while self.current().type is TokenType.AND:
            self.advance()
            left = BinaryOp("&&", left, self.parse_equality())
        return left

    def parse_equality(self) -> Node:
        left = self.parse_relational()
        while self.current().type in _EQUALITY:
            op = self.advance().value
            left = BinaryOp(op, left, self.parse_relational())
        return left

    def parse_relational(self) -> Node:
        left = self.parse_unary()
        while self.current().type in _RELATIONAL:
            op = self.advance().value
            left = BinaryOp(op, left, self.parse_unary())
        return left

    def parse_unary(self) -> Node:
        if self.current().type is TokenType.NOT:
            self.advance()
            return UnaryOp("!", self.parse_unary())
        return self.parse_primary()

    def parse_primary(self) -> Node:
        tok = self.current()

        if tok.type is TokenType.STRING:
            self.advance()
            return Literal(tok.value)

        if tok.type is TokenType.NUMBER:
            self.advance()
            return Literal(float(tok.value))

        if tok.type is TokenType.BOOL:
            self.advance()
            return Literal(tok.value == "true")

        if tok.type is TokenType.NULL:
            self.advance()
            return Literal(None)

        if tok.type is TokenType.IDENT:
            self.advance()
            if self.current().type is TokenType.LPAREN:
                return self.parse_call(tok)
            return ContextAccess(tok.value)

        if tok.type is TokenType.LPAREN:
            self.advance()
            node = self.parse_or()
            if self.current().type is not TokenType.RPAREN:
                raise self.error("unclosed group, expected ')'")
            self.advance()
            return node

        if tok.type is TokenType.EOF:
            raise self.error("unexpected end of expression")
        raise self.error(f"unexpected token {tok.value!r}")

    def parse_call(self, name: Token) -> Node:
        self.advance()  # '('
        args: List[Node] = []

        if self.current().type is TokenType.RPAREN:
            self.advance()
            return FunctionCall(name.value, ())

        while True:
            if self.current().type is TokenType.EOF:
                raise self.error(f"unclosed call to {name.value}()", name)
            args.append(self.parse_or())

            if self.current().type is TokenType.COMMA:
                self.advance()
                continue
            if self.current().type is TokenType.RPAREN:
                self.advance()
                return FunctionCall(name.value, tuple(args))
            if self.current().type is TokenType.EOF:
                raise self.error(f"unclosed call to {name.value}()", name)
            raise self.error(f"expected ',' or ')' in call to {name.value}()")


def parse_tokens(tokens: List[Token], source: str = "") -> Node:
    return _Parser(tokens, source).parse()


def parse_expression(expr: str) -> Node:
    """Tokenize and parse a bare expression (no ${{ }} wrapper)."""
    return parse_tokens(tokenize(expr), expr)
