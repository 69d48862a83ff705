from .errors import ExpressionError, ExpressionEvaluationError, ExpressionSyntaxError
from .evaluator import (
    EvaluationResult,
    Evaluator,
    call_function,
    format_value,
    strip_wrapper,
    to_bool,
    to_float,
    to_str,
)
from .parser import BinaryOp, ContextAccess, FunctionCall, Literal, Node, UnaryOp, parse_expression
from .tokenizer import Token, TokenType, tokenize

__all__ = [
    "ExpressionError",
    "ExpressionEvaluationError",
    "ExpressionSyntaxError",
    "EvaluationResult",
    "Evaluator",
    "call_function",
    "format_value",
    "strip_wrapper",
    "to_bool",
    "to_float",
    "to_str",
    "BinaryOp",
    "ContextAccess",
    "FunctionCall",
    "Literal",
    "Node",
    "UnaryOp",
    "parse_expression",
    "Token",
    "TokenType",
    "tokenize",
]
