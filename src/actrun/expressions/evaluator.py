# expressions/evaluator.py
"""
Expression evaluator.

Every node evaluates to an EvaluationResult carrying both the value and a
trace string, e.g.

    github.ref == 'refs/heads/main'
    -> github.ref -> 'refs/heads/main' == 'refs/heads/main' -> true

Coercion rules:
  - == / != compare the string forms of both operands (1 == '1' is true).
  - < > <= >= compare float forms; anything non-numeric is 0.
  - && || ! use truthiness: false, '', null and 0 are falsy, all else truthy.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from .errors import ExpressionEvaluationError, ExpressionSyntaxError
from .parser import BinaryOp, ContextAccess, FunctionCall, Literal, Node, UnaryOp, parse_expression

_WRAPPER = re.compile(r"^\$\{\{(.*)\}\}$", re.DOTALL)


class Lookup(Protocol):
    def lookup(self, path: str) -> Tuple[Any, bool]:
        ...


@dataclass(frozen=True)
class EvaluationResult:
    value: Any
    trace: str


# ---------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------

def to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def to_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float)):
        return value != 0
    return True


def to_float(value: Any) -> float:
    # bool is an int subclass; true/false are not numbers here.
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


def format_value(value: Any) -> str:
    """Render a value for traces: strings quoted, null spelled out."""
    if value is None:
        return "null"
    if isinstance(value, str):
        return f"'{value}'"
    return to_str(value)


# ---------------------------------------------------------------------
# Built-in functions
# ---------------------------------------------------------------------

def _arity(name: str, args: List[Any], low: int, high: Optional[int] = None) -> None:
    high = low if high is None else high
    if len(args) < low or (high >= 0 and len(args) > high):
        if low == high:
            expected = f"{low} argument(s)"
        elif high < 0:
            expected = f"at least {low} argument(s)"
        else:
            expected = f"{low} to {high} argument(s)"
        raise ExpressionEvaluationError(f"{name}() requires {expected}, got {len(args)}")


def _contains(args: List[Any]) -> Any:
    _arity("contains", args, 2)
    return to_str(args[1]) in to_str(args[0])


def _starts_with(args: List[Any]) -> Any:
    _arity("startsWith", args, 2)
    return to_str(args[0]).startswith(to_str(args[1]))


def _ends_with(args: List[Any]) -> Any:
    _arity("endsWith", args, 2)
    return to_str(args[0]).endswith(to_str(args[1]))


def _format(args: List[Any]) -> Any:
    _arity("format", args, 1, -1)
    result = to_str(args[0])
    for i, arg in enumerate(args[1:]):
        result = result.replace("{%d}" % i, to_str(arg))
    return result


def _join(args: List[Any]) -> Any:
    _arity("join", args, 1, 2)
    sep = to_str(args[1]) if len(args) == 2 else ","
    items = args[0]
    if isinstance(items, (list, tuple)):
        return sep.join(to_str(item) for item in items)
    return to_str(items)


FUNCTIONS: Dict[str, Callable[[List[Any]], Any]] = {
    "contains": _contains,
    "startsWith": _starts_with,
    "endsWith": _ends_with,
    "format": _format,
    "join": _join,
    "always": lambda args: True,
    # Static analysis assumes earlier steps succeeded.
    "success": lambda args: True,
    "failure": lambda args: False,
    "cancelled": lambda args: False,
}


def call_function(name: str, args: List[Any]) -> Any:
    fn = FUNCTIONS.get(name)
    if fn is None:
        raise ExpressionEvaluationError(f"unknown function: {name}")
    return fn(args)


def apply_binary(op: str, left: Any, right: Any) -> bool:
    if op == "==":
        return to_str(left) == to_str(right)
    if op == "!=":
        return to_str(left) != to_str(right)
    if op == "&&":
        return to_bool(left) and to_bool(right)
    if op == "||":
        return to_bool(left) or to_bool(right)
    if op == "<":
        return to_float(left) < to_float(right)
    if op == ">":
        return to_float(left) > to_float(right)
    if op == "<=":
        return to_float(left) <= to_float(right)
    if op == ">=":
        return to_float(left) >= to_float(right)
    raise ExpressionEvaluationError(f"unknown operator: {op}")


# ---------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------

def strip_wrapper(expr: str) -> str:
    """Remove a surrounding ${{ }} if present; whitespace inside is ignored."""
    expr = expr.strip()
    m = _WRAPPER.match(expr)
    if m:
        return m.group(1).strip()
    return expr


class Evaluator:
    """
    Evaluates expressions against anything with a lookup(path) method
    (normally a TriggerContext).

    The evaluator holds no mutable state of its own, so one instance can be
    shared between threads as long as the context is not being written to.
    """

    def __init__(self, context: Lookup):
        self.context = context

    def evaluate(self, expr: str) -> EvaluationResult:
        """
        Evaluate an expression string, with or without its ${{ }} wrapper.

        Raises:
            ExpressionSyntaxError: malformed expression.
            ExpressionEvaluationError: unknown function or wrong arity.
        """
        source = strip_wrapper(expr)
        if not source:
            raise ExpressionSyntaxError("empty expression", expr)
        try:
            return self.eval_node(parse_expression(source))
        except RecursionError:
            raise ExpressionSyntaxError("expression nested too deeply", source) from None

    def eval_node(self, node: Node) -> EvaluationResult:
        if isinstance(node, Literal):
            return EvaluationResult(node.value, format_value(node.value))

        if isinstance(node, ContextAccess):
            value, found = self.context.lookup(node.path)
            if not found:
                value = None
            return EvaluationResult(value, f"{node.path} -> {format_value(value)}")

        if isinstance(node, UnaryOp):
            operand = self.eval_node(node.operand)
            value = not to_bool(operand.value)
            return EvaluationResult(value, f"!{operand.trace} -> {format_value(value)}")

        if isinstance(node, BinaryOp):
            left = self.eval_node(node.left)
            right = self.eval_node(node.right)
            value = apply_binary(node.op, left.value, right.value)
            trace = f"{left.trace} {node.op} {right.trace} -> {format_value(value)}"
            return EvaluationResult(value, trace)

        if isinstance(node, FunctionCall):
            results = [self.eval_node(arg) for arg in node.args]
            value = call_function(node.name, [r.value for r in results])
            arg_traces = ", ".join(r.trace for r in results)
            return EvaluationResult(value, f"{node.name}({arg_traces}) -> {format_value(value)}")

        raise ExpressionEvaluationError(f"unknown node type: {type(node).__name__}")
