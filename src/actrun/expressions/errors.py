"""Errors raised while tokenizing, parsing, or evaluating ${{ }} expressions."""

from __future__ import annotations

from ..errors import ActrunError


class ExpressionError(ActrunError):
    def __init__(self, message: str, expression: str | None = None):
        self.expression = expression
        super().__init__(message)


class ExpressionSyntaxError(ExpressionError):
    """Lexical or syntax error. The message names the offending input."""

    def __init__(self, message: str, expression: str, position: int | None = None):
        self.position = position
        if position is not None:
            full = f"{message} at position {position} in {expression!r}"
        else:
            full = f"{message} in {expression!r}"
        super().__init__(full, expression=expression)


class ExpressionEvaluationError(ExpressionError):
    """Unknown function or wrong arity."""
