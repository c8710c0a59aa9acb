"""Tests for the Concorde parser."""

from __future__ import annotations

import pytest

from concorde.ast_nodes import (
    AccessExpr,
    ArrayLit,
    Assignment,
    BinaryExpr,
    BooleanLit,
    Break,
    CallExpr,
    ClassDef,
    Closure,
    Continue,
    DestructureTarget,
    DictEntry,
    DictLit,
    ExprStmt,
    ForLoop,
    Grouping,
    IfExpr,
    IndexExpr,
    MethodDef,
    NilLit,
    NumberLit,
    Param,
    PathExpr,
    Program,
    Return,
    StringLit,
    TupleLit,
    UnaryExpr,
    UseDecl,
    Variable,
    WhileLoop,
)
from concorde.errors import ErrorKind, ParseError
from concorde.frontend import parse
from concorde.lexer import Lexer
from concorde.parser import DEFAULT_MAX_DEPTH, Parser
from concorde.source import Span
from concorde.tokens import Token, TokenKind
from tests.helpers import expr, parse_fails, parse_ok, stmt

# Spans are excluded from node equality, so expected trees carry none.


def v(name):
    return Variable(name, None)


def n(text):
    return NumberLit(text, None)


def bin_(left, op, right):
    return BinaryExpr(left, op, right, None)


def un(op, operand):
    return UnaryExpr(op, operand, None)


def es(e):
    return ExprStmt(e, None)


class TestProgram:
    def test_empty_program(self):
        assert parse_ok("").body == []

    def test_blank_lines_and_comments(self):
        program = parse_ok("\n\n# just a comment\n\n")
        assert program.body == []

    def test_statements_in_order(self):
        program = parse_ok("a = 1\nb = 2\nprint(a + b)\n")
        assert len(program.body) == 3
        assert isinstance(program.body[0], Assignment)
        assert isinstance(program.body[2], ExprStmt)

    def test_structural_equality_ignores_layout(self):
        assert parse_ok("x = 1 + 2") == parse_ok("x  =  1+2   # sum\n")

    def test_parser_accepts_token_list(self):
        tokens = Lexer("x = 1", "<t>").lex()
        program = Parser(tokens, "<t>").parse()
        assert program.body == [Assignment(v("x"), "=", n("1"), None)]

    def test_parser_accepts_stream_without_eof(self):
        span = Span("<t>", 1, 1, 1, 1)
        tokens = iter([
            Token(TokenKind.IDENT, "x", span),
            Token(TokenKind.NEWLINE, "\n", span),
        ])
        program = Parser(tokens, "<t>").parse()
        assert program.body == [es(v("x"))]

    def test_program_span(self):
        program = parse_ok("a\nb\n")
        assert program.span.start_line == 1
        assert program.span.file == "<test>"


class TestLiterals:
    def test_number(self):
        assert expr("42") == n("42")

    def test_float(self):
        assert expr("3.5") == n("3.5")

    def test_negative_literal(self):
        assert expr("-2") == n("-2")

    def test_negation_of_literal(self):
        assert expr("- 2") == un("-", n("2"))

    def test_string(self):
        assert expr("'hi'") == StringLit("hi", "'", None)

    def test_booleans(self):
        assert expr("true") == BooleanLit(True, None)
        assert expr("false") == BooleanLit(False, None)

    def test_nil(self):
        assert expr("nil") == NilLit(None)


class TestPrecedence:
    def test_multiplication_binds_tighter(self):
        assert expr("1 + 2 * 3") == bin_(n("1"), "+", bin_(n("2"), "*", n("3")))

    def test_subtraction_left_assoc(self):
        assert expr("1 - 2 - 3") == bin_(bin_(n("1"), "-", n("2")), "-", n("3"))

    def test_binary_minus_without_spaces(self):
        assert expr("a -1") == bin_(v("a"), "-", n("1"))

    def test_factor_left_assoc(self):
        assert expr("10 % 3 / 2") == bin_(bin_(n("10"), "%", n("3")), "/", n("2"))

    def test_and_binds_tighter_than_or(self):
        assert expr("a or b and c") == bin_(v("a"), "or", bin_(v("b"), "and", v("c")))

    def test_comparison_binds_tighter_than_equality(self):
        assert expr("a == b < c") == bin_(v("a"), "==", bin_(v("b"), "<", v("c")))

    def test_comparison_left_fold(self):
        assert expr("a < b < c") == bin_(bin_(v("a"), "<", v("b")), "<", v("c"))

    def test_not_binds_tighter_than_comparison(self):
        assert expr("not a < b") == bin_(un("not", v("a")), "<", v("b"))

    def test_not_wraps_unary_minus(self):
        assert expr("not -x") == un("not", un("-", v("x")))

    def test_repeated_not(self):
        assert expr("not not a") == un("not", un("not", v("a")))

    def test_repeated_minus(self):
        assert expr("- -x") == un("-", un("-", v("x")))

    def test_unary_minus_binds_tighter_than_factor(self):
        assert expr("-a * b") == bin_(un("-", v("a")), "*", v("b"))

    def test_grouping_overrides(self):
        assert expr("(1 + 2) * 3") == bin_(
            Grouping(bin_(n("1"), "+", n("2")), None), "*", n("3"),
        )

    def test_all_comparisons(self):
        for op in (">", ">=", "<", "<=", "==", "!="):
            assert expr(f"a {op} b") == bin_(v("a"), op, v("b"))


class TestCollections:
    def test_grouping(self):
        assert expr("(1)") == Grouping(n("1"), None)

    def test_empty_tuple(self):
        assert expr("()") == TupleLit([], None)

    def test_one_tuple(self):
        assert expr("(1,)") == TupleLit([n("1")], None)

    def test_pair(self):
        assert expr("(1, 2)") == TupleLit([n("1"), n("2")], None)

    def test_tuple_over_lines(self):
        assert expr("(\n  1,\n  2\n)") == TupleLit([n("1"), n("2")], None)

    def test_empty_array(self):
        assert expr("[]") == ArrayLit([], None)

    def test_array_trailing_comma(self):
        assert expr("[1, 2,]") == ArrayLit([n("1"), n("2")], None)

    def test_array_of_names(self):
        assert expr("[a, b]") == ArrayLit([v("a"), v("b")], None)

    def test_empty_dict(self):
        assert expr("[:]") == DictLit([], None)

    def test_dict(self):
        assert expr("[a: 1, b: 'x']") == DictLit([
            DictEntry("a", n("1"), None),
            DictEntry("b", StringLit("x", "'", None), None),
        ], None)

    def test_dict_over_lines(self):
        e = expr("[\n  a: 1,\n  b: 2\n]")
        assert isinstance(e, DictLit)
        assert [entry.key for entry in e.entries] == ["a", "b"]

    def test_dict_entries_cannot_mix_with_values(self):
        parse_fails("[a: 1, 2]", "E201")

    def test_unclosed_array(self):
        err = parse_fails("[1, 2", "E201")
        assert "']'" in err.message


class TestPostfix:
    def test_path(self):
        assert expr("a::b::c") == PathExpr(["a", "b", "c"], None)

    def test_path_call(self):
        assert expr("Point::new(1)") == CallExpr(
            PathExpr(["Point", "new"], None), [n("1")], None,
        )

    def test_access(self):
        assert expr("a.b") == AccessExpr(v("a"), "b", None)

    def test_method_call(self):
        assert expr("a.b()") == CallExpr(AccessExpr(v("a"), "b", None), [], None)

    def test_chained_access_call(self):
        assert expr("a.b.c(1)") == CallExpr(
            AccessExpr(AccessExpr(v("a"), "b", None), "c", None), [n("1")], None,
        )

    def test_call_then_access(self):
        assert expr("f(x).y") == AccessExpr(CallExpr(v("f"), [v("x")], None), "y", None)

    def test_curried_call(self):
        assert expr("f(1)(2)") == CallExpr(CallExpr(v("f"), [n("1")], None), [n("2")], None)

    def test_call_args_over_lines(self):
        assert expr("f(\n  1,\n  2\n)") == CallExpr(v("f"), [n("1"), n("2")], None)

    def test_index(self):
        assert expr("a[0]") == IndexExpr(v("a"), n("0"), None)

    def test_nested_index(self):
        assert expr("a[0][1]") == IndexExpr(IndexExpr(v("a"), n("0"), None), n("1"), None)

    def test_index_of_access(self):
        assert expr("a.b[0]") == IndexExpr(AccessExpr(v("a"), "b", None), n("0"), None)

    def test_negated_index(self):
        assert expr("-a[0]") == un("-", IndexExpr(v("a"), n("0"), None))

    def test_access_after_index_needs_grouping(self):
        parse_fails("a[0].b", "E201")
        assert expr("(a[0]).b") == AccessExpr(
            Grouping(IndexExpr(v("a"), n("0"), None), None), "b", None,
        )

    def test_unclosed_call(self):
        err = parse_fails("f(1, 2", "E201")
        assert err.message == "expected ',' or ')', found end of input"


class TestClosures:
    def test_inline_closure(self):
        assert expr("fn x -> x + 1 end") == Closure(
            ["x"], [es(bin_(v("x"), "+", n("1")))], True, None,
        )

    def test_block_closure(self):
        e = expr("fn a, b -> do\n  return a\nend")
        assert e == Closure(["a", "b"], [Return(v("a"), None)], False, None)

    def test_closure_as_argument(self):
        e = expr("items.map(fn x -> x * 2 end)")
        assert isinstance(e, CallExpr)
        assert isinstance(e.args[0], Closure)

    def test_closure_needs_parameter(self):
        parse_fails("fn -> 1 end", "E201")

    def test_closure_needs_end(self):
        parse_fails("fn x -> x", "E201")


class TestIf:
    def test_inline_if_else(self):
        assert stmt("if a then b else c") == es(
            IfExpr(v("a"), [es(v("b"))], [es(v("c"))], True, None),
        )

    def test_inline_if_without_else(self):
        e = expr("if done then return")
        assert e == IfExpr(v("done"), [Return(None, None)], None, True, None)

    def test_inline_if_with_short_statements(self):
        e = expr("if a then x += 1 else break")
        assert e.then_body == [Assignment(v("x"), "+=", n("1"), None)]
        assert e.else_body == [Break(None)]

    def test_block_if(self):
        e = expr("if a\n  x = 1\nelse\n  x = 2\nend")
        assert e == IfExpr(
            v("a"),
            [Assignment(v("x"), "=", n("1"), None)],
            [Assignment(v("x"), "=", n("2"), None)],
            False,
            None,
        )

    def test_empty_block_if(self):
        assert expr("if a\nend") == IfExpr(v("a"), [], None, False, None)

    def test_if_as_value(self):
        s = stmt("x = if a then 1 else 2")
        assert isinstance(s, Assignment)
        assert s.value == IfExpr(v("a"), [es(n("1"))], [es(n("2"))], True, None)

    def test_parenthesized_if_in_expression(self):
        e = expr("1 + (if a then 1 else 2)")
        assert isinstance(e.right, Grouping)
        assert isinstance(e.right.expr, IfExpr)

    def test_bare_if_in_expression_rejected(self):
        err = parse_fails("1 + if a then 1 else 2", "E200")
        assert "parenthesized" in err.diagnostic.notes[0]

    def test_condition_needs_then_or_newline(self):
        err = parse_fails("if a b", "E200")
        assert err.message == (
            "expected 'then' or end of line after if condition, found identifier 'b'"
        )

    def test_no_else_if_chain(self):
        err = parse_fails("if a\n  1\nelse if b\n  2\nend", "E201")
        assert err.diagnostic.notes

    def test_unclosed_block_if(self):
        parse_fails("if a\n  x = 1\n", "E201")

    def test_inline_if_as_call_argument(self):
        assert expr("f(if c then a else b, 1)") == CallExpr(
            v("f"),
            [IfExpr(v("c"), [es(v("a"))], [es(v("b"))], True, None), n("1")],
            None,
        )

    def test_inline_if_without_else_as_argument(self):
        e = expr("f(if c then a, 1)")
        assert e.args == [IfExpr(v("c"), [es(v("a"))], None, True, None), n("1")]

    def test_inline_if_as_array_element(self):
        s = stmt("x = [if c then a else b, 2]")
        assert s.value == ArrayLit(
            [IfExpr(v("c"), [es(v("a"))], [es(v("b"))], True, None), n("2")], None,
        )

    def test_inline_if_as_tuple_element(self):
        e = expr("(if c then a, b)")
        assert e == TupleLit([IfExpr(v("c"), [es(v("a"))], None, True, None), v("b")], None)

    def test_inline_if_branch_destructures_on_its_own_line(self):
        e = expr("if c then a, b = pair")
        assert e.then_body == [
            Assignment(DestructureTarget(["a", "b"], None), "=", v("pair"), None),
        ]

    def test_bare_return_closed_by_paren(self):
        s = stmt("g = fn x -> (if x then return) end")
        assert s.value == Closure(
            ["x"],
            [es(Grouping(IfExpr(v("x"), [Return(None, None)], None, True, None), None))],
            True,
            None,
        )

    def test_bare_return_closed_by_comma_and_bracket(self):
        e = expr("[if x then return, if y then return]")
        assert e == ArrayLit([
            IfExpr(v("x"), [Return(None, None)], None, True, None),
            IfExpr(v("y"), [Return(None, None)], None, True, None),
        ], None)

    def test_bare_return_as_last_argument(self):
        e = expr("f(if x then return)")
        assert e.args == [IfExpr(v("x"), [Return(None, None)], None, True, None)]


class TestStatements:
    def test_use(self):
        assert stmt("use std::io") == UseDecl(["std", "io"], None)

    def test_use_with_dots(self):
        s = stmt("use std.io.file")
        assert s.path == ["std", "io", "file"]
        assert s.dotted == "std::io::file"

    def test_class(self):
        s = stmt("class Point(x, y = 0)\n  def norm() = x * x + y * y\nend")
        assert isinstance(s, ClassDef)
        assert s.name == "Point"
        assert s.fields == [Param("x", None, None), Param("y", n("0"), None)]
        assert len(s.body) == 1
        method = s.body[0]
        assert isinstance(method, MethodDef)
        assert method.name == "norm"
        assert method.params == []
        assert method.body == bin_(
            bin_(v("x"), "*", v("x")), "+", bin_(v("y"), "*", v("y")),
        )
        assert not method.is_static

    def test_class_without_params(self):
        s = stmt("class Empty\nend")
        assert s == ClassDef("Empty", None, [], None)

    def test_class_with_empty_params(self):
        assert stmt("class Empty()\nend").fields == []

    def test_static_method(self):
        s = stmt("def self::create(n)\n  return Point(n, n)\nend")
        assert isinstance(s, MethodDef)
        assert s.is_static
        assert s.name == "create"
        assert s.body == [Return(CallExpr(v("Point"), [v("n"), v("n")], None), None)]

    def test_method_named_self(self):
        s = stmt("def self() = 1")
        assert s.name == "self"
        assert not s.is_static

    def test_expression_method(self):
        s = stmt("def add(a, b) = a + b")
        assert s == MethodDef(
            "add", [Param("a", None, None), Param("b", None, None)],
            bin_(v("a"), "+", v("b")), False, None,
        )

    def test_method_needs_param_list(self):
        err = parse_fails("def go\nend", "E201")
        assert err.diagnostic.notes

    def test_for(self):
        s = stmt("for x in items\n  print(x)\nend")
        assert s == ForLoop(["x"], v("items"), [es(CallExpr(v("print"), [v("x")], None))], None)

    def test_for_destructuring(self):
        assert stmt("for k, v in pairs\nend").bindings == ["k", "v"]

    def test_while(self):
        s = stmt("while i < 10\n  i += 1\n  if i == 5 then break else continue\nend")
        assert isinstance(s, WhileLoop)
        assert s.condition == bin_(v("i"), "<", n("10"))
        assert s.body[0] == Assignment(v("i"), "+=", n("1"), None)
        assert s.body[1].expr.then_body == [Break(None)]
        assert s.body[1].expr.else_body == [Continue(None)]

    def test_return_value(self):
        assert stmt("return 1") == Return(n("1"), None)

    def test_return_empty(self):
        assert stmt("return") == Return(None, None)

    def test_unclosed_class(self):
        err = parse_fails("class A\n  x = 1\n", "E201")
        assert err.message == "expected 'end' to close class, found end of input"

    def test_stray_end(self):
        err = parse_fails("end", "E200")
        assert err.message == "expected expression, found 'end'"

    def test_two_expressions_on_a_line(self):
        err = parse_fails("1 2", "E201")
        assert err.message == "expected end of line after statement, found number 2"


class TestAssignment:
    @pytest.mark.parametrize("op", ["=", "+=", "-=", "*=", "/="])
    def test_operators(self, op):
        assert stmt(f"x {op} 1") == Assignment(v("x"), op, n("1"), None)

    def test_negative_value(self):
        assert stmt("x = -1") == Assignment(v("x"), "=", n("-1"), None)

    def test_member_target(self):
        assert stmt("a.b = 1").target == AccessExpr(v("a"), "b", None)

    def test_index_target(self):
        assert stmt("a[0] = 1").target == IndexExpr(v("a"), n("0"), None)

    def test_destructuring(self):
        s = stmt("a, b = pair")
        assert s == Assignment(DestructureTarget(["a", "b"], None), "=", v("pair"), None)

    def test_parenthesized_destructuring(self):
        assert stmt("(a, b) = pair").target == DestructureTarget(["a", "b"], None)

    def test_destructuring_needs_names(self):
        parse_fails("a, 1 = x", "E201")

    def test_destructuring_needs_operator(self):
        parse_fails("a, b", "E200")

    @pytest.mark.parametrize("source", ["1 = x", "f() = 1", "(a) = 1", "a::b = 1", "(a, 1) = x"])
    def test_invalid_target(self, source):
        err = parse_fails(source, "E203")
        assert err.message == "invalid assignment target"

    def test_invalid_target_span(self):
        err = parse_fails("x = 1\nf() = 1", "E203")
        assert err.span.start_line == 2
        assert err.span.start_col == 1

    def test_missing_value(self):
        err = parse_fails("x =", "E200")
        assert err.message == "expected expression, found end of line"


class TestErrors:
    def test_syntax_error_kind(self):
        err = parse_fails("x = )", "E200")
        assert err.kind == ErrorKind.SYNTAX
        assert err.span.start_col == 5

    def test_lexical_error_from_parse(self):
        err = parse_fails("x = 1 @ 2", "E100", ErrorKind.LEXICAL)
        assert err.span.start_col == 7

    def test_first_error_wins(self):
        err = parse_fails("x = )\ny = (", "E200")
        assert err.span.start_line == 1

    def test_error_string(self):
        with pytest.raises(ParseError) as exc:
            parse("x = )", "main.cdr")
        assert str(exc.value) == "main.cdr:1:5: syntax error: expected expression, found ')'"


class TestDepthLimit:
    def test_default_limit(self):
        deep = "(" * 40 + "1" + ")" * 40
        err = parse_fails(deep, "E202")
        assert str(DEFAULT_MAX_DEPTH) in err.message

    def test_moderate_nesting_ok(self):
        source = "(" * 20 + "1" + ")" * 20
        assert isinstance(expr(source), Grouping)

    def test_raised_limit(self):
        deep = "(" * 40 + "1" + ")" * 40
        program = parse(deep, max_depth=64)
        assert isinstance(program.body[0].expr, Grouping)

    def test_lowered_limit(self):
        assert parse("x = 1", max_depth=2).body
        with pytest.raises(ParseError) as exc:
            parse("x = (1)", max_depth=2)
        assert exc.value.code == "E202"

    def test_nested_blocks(self):
        source = "if a\n" * 20 + "end\n" * 20
        parse_fails(source, "E202")

    def test_limit_beyond_interpreter_stack(self):
        deep = "x = " + "(" * 2000 + "1" + ")" * 2000
        with pytest.raises(ParseError) as exc:
            parse(deep, max_depth=5000)
        assert exc.value.code == "E202"
        assert exc.value.kind == ErrorKind.SYNTAX
        assert "max_depth" in exc.value.diagnostic.notes[0]

    def test_long_operator_chain_is_not_nesting(self):
        e = expr(" + ".join(["1"] * 1500))
        assert isinstance(e, BinaryExpr)
        assert e.op == "+"

    def test_parse_result_is_program(self):
        assert isinstance(parse_ok("x = 1"), Program)
