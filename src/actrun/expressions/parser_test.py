from __future__ import annotations

import pytest

from actrun.expressions import (
    BinaryOp,
    ContextAccess,
    ExpressionSyntaxError,
    FunctionCall,
    Literal,
    UnaryOp,
    parse_expression,
)


class TestPrimary:
    def test_literals(self):
        assert parse_expression("'x'") == Literal("x")
        assert parse_expression("12") == Literal(12.0)
        assert parse_expression("true") == Literal(True)
        assert parse_expression("null") == Literal(None)

    def test_path(self):
        assert parse_expression("github.ref") == ContextAccess("github.ref")

    def test_call(self):
        assert parse_expression("startsWith(github.ref, 'refs/tags/')") == FunctionCall(
            "startsWith", (ContextAccess("github.ref"), Literal("refs/tags/"))
        )

    def test_call_without_args(self):
        assert parse_expression("always()") == FunctionCall("always", ())

    def test_group(self):
        assert parse_expression("(a)") == ContextAccess("a")


class TestPrecedence:
    def test_and_binds_tighter_than_or(self):
        node = parse_expression("a || b && c")
        assert node == BinaryOp("||", ContextAccess("a"), BinaryOp("&&", ContextAccess("b"), ContextAccess("c")))

    def test_equality_binds_tighter_than_and(self):
        node = parse_expression("a == 'x' && b != 'y'")
        assert node == BinaryOp(
            "&&",
            BinaryOp("==", ContextAccess("a"), Literal("x")),
            BinaryOp("!=", ContextAccess("b"), Literal("y")),
        )

    def test_relational_binds_tighter_than_equality(self):
        node = parse_expression("a < 1 == true")
        assert node == BinaryOp("==", BinaryOp("<", ContextAccess("a"), Literal(1.0)), Literal(True))

    def test_not_binds_tightest(self):
        node = parse_expression("!a && b")
        assert node == BinaryOp("&&", UnaryOp("!", ContextAccess("a")), ContextAccess("b"))

    def test_left_associative(self):
        node = parse_expression("a || b || c")
        assert node == BinaryOp("||", BinaryOp("||", ContextAccess("a"), ContextAccess("b")), ContextAccess("c"))

    def test_parentheses_override(self):
        node = parse_expression("(a || b) && c")
        assert node == BinaryOp("&&", BinaryOp("||", ContextAccess("a"), ContextAccess("b")), ContextAccess("c"))

    def test_nested_call_arguments(self):
        node = parse_expression("contains(format('{0}', a), 'x')")
        assert node == FunctionCall(
            "contains",
            (FunctionCall("format", (Literal("{0}"), ContextAccess("a"))), Literal("x")),
        )


class TestErrors:
    @pytest.mark.parametrize(
        "expr,message",
        [
            ("(a", "unclosed group"),
            ("contains(a, 'b'", "unclosed call"),
            ("contains(a,", "unclosed call"),
            ("a ==", "unexpected end"),
            ("a b", "unexpected token"),
            (")", "unexpected token"),
            ("a == == b", "unexpected token"),
        ],
    )
    def test_syntax_errors(self, expr, message):
        with pytest.raises(ExpressionSyntaxError, match=message):
            parse_expression(expr)

    def test_error_carries_expression(self):
        with pytest.raises(ExpressionSyntaxError) as exc:
            parse_expression("(a")
        assert exc.value.expression == "(a"
