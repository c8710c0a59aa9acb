"""Shared test helpers for the Concorde front-end test suite."""

from __future__ import annotations

import pytest

from concorde.ast_nodes import Expr, Program, Stmt
from concorde.errors import ErrorKind, ParseError
from concorde.frontend import parse


def parse_ok(source: str) -> Program:
    """Parse source, failing the test with the error if there is one."""
    try:
        return parse(source, "<test>")
    except ParseError as e:
        pytest.fail(f"unexpected parse error: {e}")


def stmt(source: str) -> Stmt:
    """Parse a single-statement program and return the statement."""
    program = parse_ok(source)
    assert len(program.body) == 1, program.body
    return program.body[0]


def expr(source: str) -> Expr:
    """Parse a single expression statement and return the expression."""
    return stmt(source).expr


def parse_fails(source: str, code: str, kind: ErrorKind = ErrorKind.SYNTAX) -> ParseError:
    """Parse source, asserting it fails with the given code and kind."""
    with pytest.raises(ParseError) as exc:
        parse(source, "<test>")
    err = exc.value
    assert err.code == code, f"expected {code}, got {err.code}: {err.message}"
    assert err.kind == kind
    return err
