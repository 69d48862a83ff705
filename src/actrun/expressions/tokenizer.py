# expressions/tokenizer.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List

from .errors import ExpressionSyntaxError


class TokenType(str, Enum):
    IDENT = "ident"
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    NULL = "null"
    LPAREN = "("
    RPAREN = ")"
    COMMA = ","
    EQ = "=="
    NEQ = "!="
    AND = "&&"
    OR = "||"
    NOT = "!"
    LT = "<"
    GT = ">"
    LTE = "<="
    GTE = ">="
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    position: int = 0


# Longest operators first so "<=" is never read as "<" followed by "=".
_TWO_CHAR = {
    "==": TokenType.EQ,
    "!=": TokenType.NEQ,
    "&&": TokenType.AND,
    "||": TokenType.OR,
    "<=": TokenType.LTE,
    ">=": TokenType.GTE,
}

_ONE_CHAR = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ",": TokenType.COMMA,
    "!": TokenType.NOT,
    "<": TokenType.LT,
    ">": TokenType.GT,
}

_KEYWORDS = {
    "true": TokenType.BOOL,
    "false": TokenType.BOOL,
    "null": TokenType.NULL,
}


def _is_digit(ch: str) -> bool:
    # str.isdigit also accepts superscripts and other non-ASCII digits.
    return "0" <= ch <= "9"


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_."


def tokenize(expr: str) -> List[Token]:
    """
    Lex an expression (without its ${{ }} wrapper) into tokens.

    The returned list always ends with an EOF token. Identifiers keep their
    dots, so `steps.build.outputs.version` is a single IDENT token.

    Raises:
        ExpressionSyntaxError: on an unterminated string or an unknown character.
    """
    tokens: List[Token] = []
    i = 0
    n = len(expr)

    while i < n:
        ch = expr[i]

        if ch.isspace():
            i += 1
            continue

        two = expr[i:i + 2]
        if two in _TWO_CHAR:
            tokens.append(Token(_TWO_CHAR[two], two, i))
            i += 2
            continue

        if ch in _ONE_CHAR:
            tokens.append(Token(_ONE_CHAR[ch], ch, i))
            i += 1
            continue

        if ch == "'":
            start = i
            end = expr.find("'", i + 1)
            if end == -1:
                raise ExpressionSyntaxError("unterminated string", expr, start)
            tokens.append(Token(TokenType.STRING, expr[i + 1:end], start))
            i = end + 1
            continue

        if _is_digit(ch) or (ch == "-" and i + 1 < n and _is_digit(expr[i + 1])):
            start = i
            i += 1
            seen_dot = False
            while i < n:
                c = expr[i]
                if _is_digit(c):
                    i += 1
                elif c == "." and not seen_dot and i + 1 < n and _is_digit(expr[i + 1]):
                    seen_dot = True
                    i += 1
                else:
                    break
            tokens.append(Token(TokenType.NUMBER, expr[start:i], start))
            continue

        if _is_ident_start(ch):
            start = i
            while i < n and _is_ident_char(expr[i]):
                i += 1
            value = expr[start:i]
            kind = _KEYWORDS.get(value.lower())
            if kind is TokenType.BOOL:
                tokens.append(Token(kind, value.lower(), start))
            elif kind is TokenType.NULL:
                tokens.append(Token(kind, "null", start))
            else:
                tokens.append(Token(TokenType.IDENT, value, start))
            continue

        raise ExpressionSyntaxError(f"unexpected character {ch!r}", expr, i)

    tokens.append(Token(TokenType.EOF, "", n))
    return tokens
