"""AST node definitions for the Concorde language.

Every node carries its source span, excluded from equality so that two
trees compare equal when they have the same shape and payloads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from concorde.source import Span

# ── Literals ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class NumberLit:
    value: str  # lexeme, including a leading '-'
    span: Span = field(compare=False)


@dataclass(frozen=True)
class StringLit:
    value: str
    quote: str
    span: Span = field(compare=False)


@dataclass(frozen=True)
class BooleanLit:
    value: bool
    span: Span = field(compare=False)


@dataclass(frozen=True)
class NilLit:
    span: Span = field(compare=False)


@dataclass(frozen=True)
class TupleLit:
    elements: list[Expr]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ArrayLit:
    elements: list[Expr]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class DictEntry:
    key: str
    value: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class DictLit:
    entries: list[DictEntry]
    span: Span = field(compare=False)


# ── Names ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Variable:
    name: str
    span: Span = field(compare=False)


@dataclass(frozen=True)
class PathExpr:
    segments: list[str]  # two or more, joined by '::'
    span: Span = field(compare=False)


# ── Compound expressions ─────────────────────────────────────────


@dataclass(frozen=True)
class Grouping:
    expr: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class Closure:
    params: list[str]
    body: list[Stmt]
    inline: bool  # `-> stmt end` rather than `-> do ... end`
    span: Span = field(compare=False)


@dataclass(frozen=True)
class IfExpr:
    condition: Expr
    then_body: list[Stmt]
    else_body: list[Stmt] | None
    inline: bool  # `if c then a else b` rather than the block form
    span: Span = field(compare=False)


@dataclass(frozen=True)
class UnaryExpr:
    op: str  # 'not' or '-'
    operand: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class BinaryExpr:
    left: Expr
    op: str
    right: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class IndexExpr:
    target: Expr
    index: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class AccessExpr:
    target: Expr
    member: str
    span: Span = field(compare=False)


@dataclass(frozen=True)
class CallExpr:
    target: Expr
    args: list[Expr]
    span: Span = field(compare=False)


Expr = Union[
    NumberLit, StringLit, BooleanLit, NilLit,
    TupleLit, ArrayLit, DictLit,
    Variable, PathExpr, Grouping, Closure, IfExpr,
    UnaryExpr, BinaryExpr, IndexExpr, AccessExpr, CallExpr,
]


# ── Assignment targets ───────────────────────────────────────────


@dataclass(frozen=True)
class DestructureTarget:
    names: list[str]
    span: Span = field(compare=False)


LValue = Union[DestructureTarget, Variable, AccessExpr, IndexExpr]


# ── Statements ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Param:
    name: str
    default: Expr | None
    span: Span = field(compare=False)


@dataclass(frozen=True)
class UseDecl:
    path: list[str]
    span: Span = field(compare=False)

    @property
    def dotted(self) -> str:
        return "::".join(self.path)


@dataclass(frozen=True)
class ClassDef:
    name: str
    fields: list[Param] | None  # None when the class has no parameter list
    body: list[Stmt]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class MethodDef:
    name: str
    params: list[Param]
    body: list[Stmt] | Expr  # an Expr for the `= expr` shorthand
    is_static: bool  # declared as `def self::name`
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ForLoop:
    bindings: list[str]
    iterable: Expr
    body: list[Stmt]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class WhileLoop:
    condition: Expr
    body: list[Stmt]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class Break:
    span: Span = field(compare=False)


@dataclass(frozen=True)
class Continue:
    span: Span = field(compare=False)


@dataclass(frozen=True)
class Return:
    value: Expr | None
    span: Span = field(compare=False)


@dataclass(frozen=True)
class Assignment:
    target: LValue
    op: str  # '=', '+=', '-=', '*=' or '/='
    value: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ExprStmt:
    expr: Expr
    span: Span = field(compare=False)


Stmt = Union[
    UseDecl, ClassDef, MethodDef, ForLoop, WhileLoop,
    Break, Continue, Return, Assignment, ExprStmt,
]


@dataclass(frozen=True)
class Program:
    body: list[Stmt]
    span: Span = field(compare=False)
