"""AST-walking pretty-printer for Concorde source code.

Produces canonical formatting for .cdr files: one statement per line,
block bodies indented, a blank line around top-level classes and
methods. Inline and block forms of ``if`` and closures are kept as
written, as are parenthesized groupings, so reparsing the output gives
an equal tree.

Limitation: comments and blank lines are not preserved (the lexer
discards comments).
"""

from __future__ import annotations

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

_DIGITS = frozenset("0123456789")


def _is_declaration(stmt: Stmt) -> bool:
    return isinstance(stmt, (ClassDef, MethodDef))


class ConcordeFormatter:
    """Format a parsed Concorde Program back to canonical source text."""

    def __init__(self, indent: int = 2) -> None:
        self.indent = indent

    # ── Public API ─────────────────────────────────────────────

    def format(self, program: Program) -> str:
        """Format a program to canonical source text."""
        lines: list[str] = []
        prev: Stmt | None = None
        for stmt in program.body:
            if prev is not None and (_is_declaration(stmt) or _is_declaration(prev)):
                lines.append("")
            lines.append(self._format_stmt(stmt, 0))
            prev = stmt
        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    # ── Layout helpers ─────────────────────────────────────────

    def _pad(self, level: int) -> str:
        return " " * (self.indent * level)

    def _block(self, header: str, body: list[Stmt], level: int) -> str:
        """A header line, its indented body, and the closing ``end``."""
        lines = [header]
        lines.extend(self._body_lines(body, level + 1))
        lines.append(f"{self._pad(level)}end")
        return "\n".join(lines)

    def _body_lines(self, body: list[Stmt], level: int) -> list[str]:
        return [f"{self._pad(level)}{self._format_stmt(s, level)}" for s in body]

    # ── Statements ─────────────────────────────────────────────

    def _format_stmt(self, stmt: Stmt, level: int) -> str:
        """Format a statement; continuation lines carry their own indent."""
        if isinstance(stmt, ExprStmt):
            return self._format_expr(stmt.expr, level)
        if isinstance(stmt, Assignment):
            target = self._format_lvalue(stmt.target, level)
            return f"{target} {stmt.op} {self._format_expr(stmt.value, level)}"
        if isinstance(stmt, Return):
            if stmt.value is None:
                return "return"
            return f"return {self._format_expr(stmt.value, level)}"
        if isinstance(stmt, Break):
            return "break"
        if isinstance(stmt, Continue):
            return "continue"
        if isinstance(stmt, UseDecl):
            return f"use {stmt.dotted}"
        if isinstance(stmt, ClassDef):
            header = f"class {stmt.name}"
            if stmt.fields is not None:
                header += self._format_params(stmt.fields, level)
            return self._block(header, stmt.body, level)
        if isinstance(stmt, MethodDef):
            return self._format_method(stmt, level)
        if isinstance(stmt, ForLoop):
            header = (
                f"for {', '.join(stmt.bindings)} in "
                f"{self._format_expr(stmt.iterable, level)}"
            )
            return self._block(header, stmt.body, level)
        if isinstance(stmt, WhileLoop):
            header = f"while {self._format_expr(stmt.condition, level)}"
            return self._block(header, stmt.body, level)
        raise TypeError(f"cannot format statement {type(stmt).__name__}")

    def _format_method(self, md: MethodDef, level: int) -> str:
        prefix = "self::" if md.is_static else ""
        header = f"def {prefix}{md.name}{self._format_params(md.params, level)}"
        if isinstance(md.body, list):
            return self._block(header, md.body, level)
        return f"{header} = {self._format_expr(md.body, level)}"

    def _format_params(self, params: list[Param], level: int) -> str:
        parts = []
        for p in params:
            if p.default is None:
                parts.append(p.name)
            else:
                parts.append(f"{p.name} = {self._format_expr(p.default, level)}")
        return f"({', '.join(parts)})"

    def _format_lvalue(self, target: LValue, level: int) -> str:
        if isinstance(target, DestructureTarget):
            return ", ".join(target.names)
        return self._format_expr(target, level)

    # ── Expressions ────────────────────────────────────────────

    def _format_expr(self, expr: Expr, level: int) -> str:
        if isinstance(expr, NumberLit):
            return expr.value
        if isinstance(expr, StringLit):
            return f"{expr.quote}{expr.value}{expr.quote}"
        if isinstance(expr, BooleanLit):
            return "true" if expr.value else "false"
        if isinstance(expr, NilLit):
            return "nil"
        if isinstance(expr, Variable):
            return expr.name
        if isinstance(expr, PathExpr):
            return "::".join(expr.segments)
        if isinstance(expr, Grouping):
            return f"({self._format_expr(expr.expr, level)})"
        if isinstance(expr, TupleLit):
            items = [self._format_expr(e, level) for e in expr.elements]
            if len(items) == 1:
                return f"({items[0]},)"
            return f"({', '.join(items)})"
        if isinstance(expr, ArrayLit):
            return f"[{', '.join(self._format_expr(e, level) for e in expr.elements)}]"
        if isinstance(expr, DictLit):
            if not expr.entries:
                return "[:]"
            entries = ", ".join(
                f"{e.key}: {self._format_expr(e.value, level)}" for e in expr.entries
            )
            return f"[{entries}]"
        if isinstance(expr, UnaryExpr):
            return self._format_unary(expr, level)
        if isinstance(expr, BinaryExpr):
            return self._format_binary(expr, level)
        if isinstance(expr, (IndexExpr, AccessExpr, CallExpr)):
            return self._format_postfix(expr, level)
        if isinstance(expr, Closure):
            return self._format_closure(expr, level)
        if isinstance(expr, IfExpr):
            return self._format_if(expr, level)
        raise TypeError(f"cannot format expression {type(expr).__name__}")

    # Chains the parser folds in a loop are walked in a loop.

    def _format_unary(self, expr: UnaryExpr, level: int) -> str:
        ops: list[str] = []
        node: Expr = expr
        while isinstance(node, UnaryExpr):
            ops.append(node.op)
            node = node.operand
        text = self._format_expr(node, level)
        for op in reversed(ops):
            if op == "not":
                text = f"not {text}"
            elif text[:1] in _DIGITS:
                # "-1" would lex back as a negative literal, not a negation.
                text = f"- {text}"
            else:
                text = f"-{text}"
        return text

    def _format_binary(self, expr: BinaryExpr, level: int) -> str:
        spine: list[BinaryExpr] = []
        node: Expr = expr
        while isinstance(node, BinaryExpr):
            spine.append(node)
            node = node.left
        parts = [self._format_expr(node, level)]
        for b in reversed(spine):
            parts.append(b.op)
            parts.append(self._format_expr(b.right, level))
        return " ".join(parts)

    def _format_postfix(self, expr: IndexExpr | AccessExpr | CallExpr, level: int) -> str:
        suffixes: list[str] = []
        node: Expr = expr
        while isinstance(node, (IndexExpr, AccessExpr, CallExpr)):
            if isinstance(node, IndexExpr):
                suffixes.append(f"[{self._format_expr(node.index, level)}]")
            elif isinstance(node, AccessExpr):
                suffixes.append(f".{node.member}")
            else:
                args = ", ".join(self._format_expr(a, level) for a in node.args)
                suffixes.append(f"({args})")
            node = node.target
        return self._format_expr(node, level) + "".join(reversed(suffixes))

    def _format_closure(self, closure: Closure, level: int) -> str:
        params = ", ".join(closure.params)
        if closure.inline:
            return f"fn {params} -> {self._format_stmt(closure.body[0], level)} end"
        return self._block(f"fn {params} -> do", closure.body, level)

    def _format_if(self, expr: IfExpr, level: int) -> str:
        condition = self._format_expr(expr.condition, level)
        if expr.inline:
            text = f"if {condition} then {self._format_stmt(expr.then_body[0], level)}"
            if expr.else_body:
                text += f" else {self._format_stmt(expr.else_body[0], level)}"
            return text

        lines = [f"if {condition}"]
        lines.extend(self._body_lines(expr.then_body, level + 1))
        if expr.else_body is not None:
            lines.append(f"{self._pad(level)}else")
            lines.extend(self._body_lines(expr.else_body, level + 1))
        lines.append(f"{self._pad(level)}end")
        return "\n".join(lines)
