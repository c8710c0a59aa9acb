"""Parser for the Concorde scripting language.

Transforms a token stream into an AST by recursive descent. Expressions
follow a fixed precedence ladder, each level a left fold over the next
tighter one. Tokens are pulled lazily; the few overlapping shapes
(tuple vs grouping, empty dict vs array, inline vs block ``if``) are
decided by peeking at most two tokens ahead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import TypeVar

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
    Expr,
    ExprStmt,
    ForLoop,
    Grouping,
    IfExpr,
    IndexExpr,
    LValue,
    MethodDef,
    NilLit,
    NumberLit,
    Param,
    PathExpr,
    Program,
    Return,
    Stmt,
    StringLit,
    TupleLit,
    UnaryExpr,
    UseDecl,
    Variable,
    WhileLoop,
)
from concorde.errors import ErrorKind, ParseError
from concorde.source import Span
from concorde.tokens import (
    ASSIGN_OPS,
    KEYWORD_KINDS,
    KEYWORDS,
    ONE_CHAR_TOKENS,
    TWO_CHAR_OPERATORS,
    Token,
    TokenKind,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_DEPTH = 32

# Binary levels from loosest to tightest; all left-associative.
_BINARY_LEVELS: list[dict[TokenKind, str]] = [
    {TokenKind.OR: "or"},
    {TokenKind.AND: "and"},
    {TokenKind.EQUAL: "==", TokenKind.NOT_EQUAL: "!="},
    {
        TokenKind.GREATER: ">", TokenKind.GREATER_EQUAL: ">=",
        TokenKind.LESS: "<", TokenKind.LESS_EQUAL: "<=",
    },
    {TokenKind.PLUS: "+", TokenKind.MINUS: "-"},
    {TokenKind.STAR: "*", TokenKind.SLASH: "/", TokenKind.PERCENT: "%"},
]

_KIND_NAMES: dict[TokenKind, str] = {
    **{kind: f"'{text}'" for text, kind in ONE_CHAR_TOKENS.items()},
    **{kind: f"'{text}'" for text, kind in TWO_CHAR_OPERATORS.items()},
    **{kind: f"'{text}'" for text, kind in KEYWORDS.items() if kind in KEYWORD_KINDS},
    TokenKind.IDENT: "identifier",
    TokenKind.NUMBER: "number",
    TokenKind.STRING: "string literal",
    TokenKind.BOOL: "boolean",
    TokenKind.NIL: "'nil'",
    TokenKind.NEWLINE: "end of line",
    TokenKind.EOF: "end of input",
}

# Tokens that end a `return` with no value.
_RETURN_STOP = frozenset({
    TokenKind.NEWLINE, TokenKind.EOF, TokenKind.ELSE, TokenKind.END,
    TokenKind.RPAREN, TokenKind.RBRACKET, TokenKind.COMMA,
})


def describe(tok: Token) -> str:
    """Human-readable description of a token for error messages."""
    if tok.kind == TokenKind.IDENT:
        return f"identifier {tok.value!r}"
    if tok.kind == TokenKind.NUMBER:
        return f"number {tok.value}"
    if tok.kind == TokenKind.STRING:
        return f"string {tok.quote}{tok.value}{tok.quote}"
    if tok.kind == TokenKind.BOOL:
        return f"'{tok.value}'"
    return _KIND_NAMES.get(tok.kind, tok.kind.name)


class Parser:
    """Parses a stream of tokens into a Concorde AST."""

    def __init__(
        self,
        tokens: Iterable[Token],
        filename: str = "<stdin>",
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._stream: Iterator[Token] = iter(tokens)
        self._buffer: list[Token] = []
        self._previous: Token | None = None
        self._last_span = Span(filename, 1, 1, 1, 1)
        self.filename = filename
        self.max_depth = max_depth
        self.depth = 0

    # ── Token access ─────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> Token:
        while len(self._buffer) <= offset:
            if self._buffer and self._buffer[-1].kind == TokenKind.EOF:
                self._buffer.append(self._buffer[-1])
                continue
            tok = next(self._stream, None)
            if tok is None:
                tok = Token(TokenKind.EOF, "", self._last_span)
            self._last_span = tok.span
            self._buffer.append(tok)
        return self._buffer[offset]

    def _current(self) -> Token:
        return self._peek(0)

    def _at(self, kind: TokenKind) -> bool:
        return self._current().kind == kind

    def _at_any(self, *kinds: TokenKind) -> bool:
        return self._current().kind in kinds

    def _advance(self) -> Token:
        tok = self._current()
        if tok.kind != TokenKind.EOF:
            self._buffer.pop(0)
        self._previous = tok
        return tok

    def _expect(self, kind: TokenKind, what: str | None = None) -> Token:
        if self._current().kind == kind:
            return self._advance()
        raise self._unexpected(what or _KIND_NAMES.get(kind, kind.name), code="E201")

    def _skip_newlines(self) -> None:
        while self._at(TokenKind.NEWLINE):
            self._advance()

    def _error(
        self, code: str, message: str, span: Span,
        *, notes: list[str] | None = None,
    ) -> ParseError:
        logger.debug("syntax error %s at %s: %s", code, span, message)
        return ParseError(ErrorKind.SYNTAX, code, message, span, notes=notes)

    def _unexpected(
        self, expected: str, *, code: str = "E200", notes: list[str] | None = None,
    ) -> ParseError:
        tok = self._current()
        return self._error(
            code, f"expected {expected}, found {describe(tok)}", tok.span, notes=notes,
        )

    def _span_from(self, start: Span) -> Span:
        end = self._previous.span if self._previous is not None else start
        return start.to(end)

    @contextmanager
    def _nested(self) -> Iterator[None]:
        """Count one level of block or expression nesting."""
        self.depth += 1
        try:
            if self.depth > self.max_depth:
                raise self._error(
                    "E202", f"nesting too deep (limit is {self.max_depth})",
                    self._current().span,
                )
            yield
        finally:
            self.depth -= 1

    # ── Top-level parsing ────────────────────────────────────────

    def parse(self) -> Program:
        """Parse the whole token stream into a Program."""
        try:
            body = self._parse_block(frozenset({TokenKind.EOF}), "end of input")
        except RecursionError:
            # max_depth set above what the interpreter stack can hold
            raise self._error(
                "E202", "nesting too deep for the interpreter stack",
                self._current().span,
                notes=[f"lower max_depth (currently {self.max_depth})"],
            ) from None
        end = self._current().span
        span = Span(self.filename, 1, 1, end.end_line, end.end_col, 0)
        logger.debug("parsed %d top-level statements from %s", len(body), self.filename)
        return Program(body=body, span=span)

    def _parse_block(self, terminators: frozenset[TokenKind], expected: str) -> list[Stmt]:
        """Parse newline-terminated statements until one of ``terminators``.

        The terminator itself is left for the caller to consume.
        """
        stmts: list[Stmt] = []
        with self._nested():
            while True:
                if self._at(TokenKind.NEWLINE):
                    self._advance()
                    continue
                if self._current().kind in terminators:
                    return stmts
                if self._at(TokenKind.EOF):
                    raise self._unexpected(expected, code="E201")
                stmts.append(self._parse_statement())
                self._expect_line_end()

    def _expect_line_end(self) -> None:
        if self._at(TokenKind.NEWLINE):
            self._advance()
            return
        notes = None
        if self._at(TokenKind.ELSE):
            notes = ["use `if COND then STMT else STMT` for a one-line if"]
        raise self._unexpected("end of line after statement", code="E201", notes=notes)

    # ── Statements ───────────────────────────────────────────────

    def _parse_statement(self) -> Stmt:
        kind = self._current().kind
        if kind == TokenKind.USE:
            return self._parse_use()
        if kind == TokenKind.CLASS:
            return self._parse_class()
        if kind == TokenKind.DEF:
            return self._parse_def()
        if kind == TokenKind.FOR:
            return self._parse_for()
        if kind == TokenKind.WHILE:
            return self._parse_while()
        return self._parse_short_statement(line=True)

    def _parse_short_statement(self, *, line: bool = False) -> Stmt:
        """Parse a statement allowed as a branch of an inline ``if``.

        ``line`` is set when the statement fills a whole line; only then
        may a bare ``a, b = ...`` destructure, since elsewhere a comma
        separates list items.
        """
        tok = self._current()
        if tok.kind == TokenKind.BREAK:
            self._advance()
            return Break(tok.span)
        if tok.kind == TokenKind.CONTINUE:
            self._advance()
            return Continue(tok.span)
        if tok.kind == TokenKind.RETURN:
            self._advance()
            value = None
            if self._current().kind not in _RETURN_STOP:
                value = self._parse_expression()
            return Return(value, self._span_from(tok.span))
        return self._parse_assignment_or_expr(line)

    def _parse_assignment_or_expr(self, line: bool) -> Stmt:
        start = self._current().span
        expr = self._parse_expression(line=line)

        # `a, b = pair` destructures without parentheses.
        if line and self._at(TokenKind.COMMA) and isinstance(expr, Variable):
            names = [expr.name]
            while self._at(TokenKind.COMMA):
                self._advance()
                names.append(self._expect(TokenKind.IDENT, "variable name").value)
            target: LValue = DestructureTarget(names, self._span_from(start))
            if self._current().kind not in ASSIGN_OPS:
                raise self._unexpected("assignment operator after destructuring target")
            return self._finish_assignment(target, start)

        if self._current().kind in ASSIGN_OPS:
            return self._finish_assignment(self._to_lvalue(expr), start)

        return ExprStmt(expr, expr.span)

    def _finish_assignment(self, target: LValue, start: Span) -> Assignment:
        op = ASSIGN_OPS[self._advance().kind]
        value = self._parse_expression()
        return Assignment(target, op, value, self._span_from(start))

    def _to_lvalue(self, expr: Expr) -> LValue:
        if isinstance(expr, (Variable, AccessExpr, IndexExpr)):
            return expr
        if (isinstance(expr, TupleLit) and expr.elements
                and all(isinstance(e, Variable) for e in expr.elements)):
            return DestructureTarget([e.name for e in expr.elements], expr.span)
        raise self._error(
            "E203", "invalid assignment target", expr.span,
            notes=[
                "only a variable, a member access, an index expression"
                " or a tuple of variables can be assigned",
            ],
        )

    def _parse_use(self) -> UseDecl:
        start = self._advance().span  # 'use'
        path = [self._expect(TokenKind.IDENT, "module path").value]
        while self._at_any(TokenKind.DOUBLE_COLON, TokenKind.DOT):
            self._advance()
            path.append(self._expect(TokenKind.IDENT, "module path segment").value)
        return UseDecl(path, self._span_from(start))

    def _parse_class(self) -> ClassDef:
        start = self._advance().span  # 'class'
        name = self._expect(TokenKind.IDENT, "class name").value
        fields = None
        if self._at(TokenKind.LPAREN):
            fields = self._parse_param_list()
        self._expect(TokenKind.NEWLINE, "end of line after class header")
        body = self._parse_block(frozenset({TokenKind.END}), "'end' to close class")
        self._advance()  # 'end'
        return ClassDef(name, fields, body, self._span_from(start))

    def _parse_def(self) -> MethodDef:
        start = self._advance().span  # 'def'
        is_static = False
        if (self._at(TokenKind.IDENT) and self._current().value == "self"
                and self._peek(1).kind == TokenKind.DOUBLE_COLON):
            self._advance()
            self._advance()
            is_static = True
        name = self._expect(TokenKind.IDENT, "method name").value
        if not self._at(TokenKind.LPAREN):
            raise self._unexpected(
                "parameter list", code="E201",
                notes=["methods without parameters are written `def name()`"],
            )
        params = self._parse_param_list()

        body: list[Stmt] | Expr
        if self._at(TokenKind.ASSIGN):
            self._advance()
            body = self._parse_expression()
        else:
            self._expect(TokenKind.NEWLINE, "'=' or end of line after method header")
            body = self._parse_block(frozenset({TokenKind.END}), "'end' to close method")
            self._advance()  # 'end'
        return MethodDef(name, params, body, is_static, self._span_from(start))

    def _parse_param_list(self) -> list[Param]:
        self._advance()  # (
        params, _, _ = self._parse_delimited(TokenKind.RPAREN, self._parse_param)
        return params

    def _parse_param(self) -> Param:
        name_tok = self._expect(TokenKind.IDENT, "parameter name")
        default = None
        if self._at(TokenKind.ASSIGN):
            self._advance()
            default = self._parse_expression()
        return Param(name_tok.value, default, self._span_from(name_tok.span))

    def _parse_binding(self) -> list[str]:
        names = [self._expect(TokenKind.IDENT, "variable name").value]
        while self._at(TokenKind.COMMA):
            self._advance()
            names.append(self._expect(TokenKind.IDENT, "variable name").value)
        return names

    def _parse_for(self) -> ForLoop:
        start = self._advance().span  # 'for'
        bindings = self._parse_binding()
        self._expect(TokenKind.IN)
        iterable = self._parse_expression()
        self._expect(TokenKind.NEWLINE, "end of line after for header")
        body = self._parse_block(frozenset({TokenKind.END}), "'end' to close for loop")
        self._advance()  # 'end'
        return ForLoop(bindings, iterable, body, self._span_from(start))

    def _parse_while(self) -> WhileLoop:
        start = self._advance().span  # 'while'
        condition = self._parse_expression()
        self._expect(TokenKind.NEWLINE, "end of line after while condition")
        body = self._parse_block(frozenset({TokenKind.END}), "'end' to close while loop")
        self._advance()  # 'end'
        return WhileLoop(condition, body, self._span_from(start))

    # ── Expressions ──────────────────────────────────────────────

    def _parse_expression(self, *, line: bool = False) -> Expr:
        with self._nested():
            if self._at(TokenKind.IF):
                return self._parse_if(line)
            return self._parse_binary(0)

    def _parse_if(self, line: bool = False) -> IfExpr:
        start = self._advance().span  # 'if'
        condition = self._parse_expression()

        if self._at(TokenKind.THEN):
            self._advance()
            then_body = [self._parse_short_statement(line=line)]
            else_body = None
            if self._at(TokenKind.ELSE):
                self._advance()
                else_body = [self._parse_short_statement(line=line)]
            return IfExpr(condition, then_body, else_body, True, self._span_from(start))

        if not self._at(TokenKind.NEWLINE):
            raise self._unexpected("'then' or end of line after if condition")
        self._advance()
        then_body = self._parse_block(
            frozenset({TokenKind.ELSE, TokenKind.END}), "'else' or 'end' to close if",
        )
        else_body = None
        if self._at(TokenKind.ELSE):
            self._advance()
            if not self._at(TokenKind.NEWLINE):
                notes = None
                if self._at(TokenKind.IF):
                    notes = ["nest a new `if` block inside the else branch"]
                raise self._unexpected("end of line after 'else'", code="E201", notes=notes)
            self._advance()
            else_body = self._parse_block(frozenset({TokenKind.END}), "'end' to close if")
        self._advance()  # 'end'
        return IfExpr(condition, then_body, else_body, False, self._span_from(start))

    def _parse_binary(self, level: int) -> Expr:
        if level == len(_BINARY_LEVELS):
            return self._parse_not()
        ops = _BINARY_LEVELS[level]
        left = self._parse_binary(level + 1)
        while self._current().kind in ops:
            op = ops[self._advance().kind]
            right = self._parse_binary(level + 1)
            left = BinaryExpr(left, op, right, left.span.to(right.span))
        return left

    def _parse_not(self) -> Expr:
        prefixes: list[Token] = []
        while self._at(TokenKind.NOT):
            prefixes.append(self._advance())
        expr = self._parse_minus()
        for tok in reversed(prefixes):
            expr = UnaryExpr("not", expr, tok.span.to(expr.span))
        return expr

    def _parse_minus(self) -> Expr:
        prefixes: list[Token] = []
        while self._at(TokenKind.MINUS):
            prefixes.append(self._advance())
        expr = self._parse_index()
        for tok in reversed(prefixes):
            expr = UnaryExpr("-", expr, tok.span.to(expr.span))
        return expr

    def _parse_index(self) -> Expr:
        expr = self._parse_access()
        while self._at(TokenKind.LBRACKET):
            self._advance()
            index = self._parse_expression()
            self._expect(TokenKind.RBRACKET)
            expr = IndexExpr(expr, index, self._span_from(expr.span))
        return expr

    def _parse_access(self) -> Expr:
        expr = self._parse_calls(self._parse_primary())
        while self._at(TokenKind.DOT):
            self._advance()
            member = self._expect(TokenKind.IDENT, "member name after '.'")
            expr = self._parse_calls(
                AccessExpr(expr, member.value, expr.span.to(member.span)),
            )
        return expr

    def _parse_calls(self, target: Expr) -> Expr:
        while self._at(TokenKind.LPAREN):
            self._advance()
            args, _, end = self._parse_delimited(TokenKind.RPAREN, self._parse_expression)
            target = CallExpr(target, args, target.span.to(end.span))
        return target

    def _parse_delimited(
        self, close: TokenKind, parse_item: Callable[[], T],
    ) -> tuple[list[T], bool, Token]:
        """Parse comma-separated items up to ``close``, consuming it.

        Newlines are allowed after the opening bracket, around items and
        before the closing bracket; a trailing comma is allowed. Returns
        the items, whether any comma was seen, and the closing token.
        """
        items: list[T] = []
        saw_comma = False
        self._skip_newlines()
        while not self._at(close):
            items.append(parse_item())
            self._skip_newlines()
            if not self._at(TokenKind.COMMA):
                break
            saw_comma = True
            self._advance()
            self._skip_newlines()
        end = self._expect(close, f"',' or {_KIND_NAMES[close]}")
        return items, saw_comma, end

    # ── Primaries ────────────────────────────────────────────────

    def _parse_primary(self) -> Expr:
        tok = self._current()

        if tok.kind == TokenKind.NUMBER:
            self._advance()
            return NumberLit(tok.value, tok.span)
        if tok.kind == TokenKind.STRING:
            self._advance()
            return StringLit(tok.value, tok.quote, tok.span)
        if tok.kind == TokenKind.BOOL:
            self._advance()
            return BooleanLit(tok.value == "true", tok.span)
        if tok.kind == TokenKind.NIL:
            self._advance()
            return NilLit(tok.span)
        if tok.kind == TokenKind.IDENT:
            return self._parse_path()
        if tok.kind == TokenKind.LPAREN:
            return self._parse_paren()
        if tok.kind == TokenKind.LBRACKET:
            return self._parse_bracket()
        if tok.kind == TokenKind.FN:
            return self._parse_closure()

        if tok.kind == TokenKind.IF:
            raise self._unexpected(
                "expression",
                notes=["an `if` expression must be parenthesized inside another expression"],
            )
        raise self._unexpected("expression")

    def _parse_path(self) -> Expr:
        first = self._advance()
        segments = [first.value]
        while self._at(TokenKind.DOUBLE_COLON):
            self._advance()
            segments.append(self._expect(TokenKind.IDENT, "name after '::'").value)
        if len(segments) == 1:
            return Variable(first.value, first.span)
        return PathExpr(segments, self._span_from(first.span))

    def _parse_paren(self) -> Expr:
        start = self._advance().span  # (
        items, saw_comma, _ = self._parse_delimited(TokenKind.RPAREN, self._parse_expression)
        span = self._span_from(start)
        # (), (e,) and (e1, e2, ...) are tuples; (e) only groups.
        if not items or saw_comma:
            return TupleLit(items, span)
        return Grouping(items[0], span)

    def _parse_bracket(self) -> Expr:
        start = self._advance().span  # [
        self._skip_newlines()
        if self._at(TokenKind.COLON):
            self._advance()
            self._skip_newlines()
            self._expect(TokenKind.RBRACKET, "']' to close empty dictionary")
            return DictLit([], self._span_from(start))
        if self._at(TokenKind.IDENT) and self._peek(1).kind == TokenKind.COLON:
            entries, _, _ = self._parse_delimited(TokenKind.RBRACKET, self._parse_dict_entry)
            return DictLit(entries, self._span_from(start))
        elements, _, _ = self._parse_delimited(TokenKind.RBRACKET, self._parse_expression)
        return ArrayLit(elements, self._span_from(start))

    def _parse_dict_entry(self) -> DictEntry:
        key = self._expect(TokenKind.IDENT, "dictionary key")
        self._expect(TokenKind.COLON, "':' after dictionary key")
        value = self._parse_expression()
        return DictEntry(key.value, value, key.span.to(value.span))

    def _parse_closure(self) -> Closure:
        start = self._advance().span  # 'fn'
        params = self._parse_binding()
        self._expect(TokenKind.ARROW, "'->' after closure parameters")
        if self._at(TokenKind.DO):
            self._advance()
            self._expect(TokenKind.NEWLINE, "end of line after 'do'")
            body = self._parse_block(frozenset({TokenKind.END}), "'end' to close closure")
            inline = False
        else:
            body = [self._parse_short_statement()]
            inline = True
        self._expect(TokenKind.END, "'end' to close closure")
        return Closure(params, body, inline, self._span_from(start))
