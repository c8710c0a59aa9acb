"""Concorde Language Server: pygls-based LSP for .cdr files.

Provides diagnostics, hover, completion, document symbols and
formatting via stdio transport.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer
from pygls.uris import to_fs_path

from concorde import __version__
from concorde.ast_nodes import (
    Assignment,
    ClassDef,
    DestructureTarget,
    ExprStmt,
    ForLoop,
    IfExpr,
    MethodDef,
    Param,
    Program,
    Stmt,
    UseDecl,
    Variable,
    WhileLoop,
)
from concorde.config import ConcordeConfig, config_for
from concorde.errors import Diagnostic, ParseError
from concorde.formatter import ConcordeFormatter
from concorde.frontend import parse
from concorde.lexer import is_ident_continue
from concorde.source import Span
from concorde.tokens import KEYWORDS

logger = logging.getLogger(__name__)

# ── Conversion helpers ────────────────────────────────────────────

_KEYWORD_COMPLETIONS = sorted(KEYWORDS.keys())


def span_to_range(span: Span) -> lsp.Range:
    """Convert a 1-indexed Concorde Span to a 0-indexed LSP Range."""
    return lsp.Range(
        start=lsp.Position(line=span.start_line - 1, character=span.start_col - 1),
        end=lsp.Position(line=span.end_line - 1, character=span.end_col),
    )


def _params_display(params: list[Param] | None) -> str:
    if params is None:
        return ""
    return "(" + ", ".join(p.name for p in params) + ")"


def _method_display(md: MethodDef) -> str:
    prefix = "self::" if md.is_static else ""
    return f"def {prefix}{md.name}{_params_display(md.params)}"


# ── Per-document state ────────────────────────────────────────────


@dataclass
class DocumentState:
    """Cached analysis results for a single open document."""

    source: str = ""
    program: Program | None = None
    diagnostics: list[lsp.Diagnostic] = field(default_factory=list)


# ── Server ────────────────────────────────────────────────────────

server = LanguageServer(
    "concorde-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
_state: dict[str, DocumentState] = {}


def _compile_diag(d: Diagnostic) -> lsp.Diagnostic:
    """Convert a concorde Diagnostic to an LSP Diagnostic."""
    message = d.message
    if d.notes:
        message += "\n" + "\n".join(f"note: {n}" for n in d.notes)
    return lsp.Diagnostic(
        range=span_to_range(d.span),
        severity=lsp.DiagnosticSeverity.Error,
        source="concorde",
        code=d.code,
        message=f"[{d.code}] {message}",
    )


def _config_for_uri(uri: str) -> ConcordeConfig:
    """The concorde.toml governing a document, or defaults for non-file URIs."""
    path = to_fs_path(uri) if uri.startswith("file:") else None
    if path is None:
        return ConcordeConfig()
    return config_for(Path(path))


def _analyze(uri: str, source: str) -> DocumentState:
    """Lex and parse a document, cache results, return state."""
    ds = DocumentState(source=source)
    config = _config_for_uri(uri)
    try:
        ds.program = parse(source, uri, max_depth=config.parser.max_depth)
    except ParseError as e:
        ds.diagnostics = [_compile_diag(d) for d in e.diagnostics]
    except Exception as e:
        logger.exception("internal error analyzing %s", uri)
        ds.diagnostics = [lsp.Diagnostic(
            range=lsp.Range(start=lsp.Position(0, 0), end=lsp.Position(0, 0)),
            severity=lsp.DiagnosticSeverity.Error, source="concorde",
            message=f"[internal] parser error: {e}",
        )]
    _state[uri] = ds
    return ds


def _get_word_at(source: str, line: int, character: int) -> str:
    """Extract the identifier at the given 0-indexed position."""
    lines = source.splitlines()
    if line < 0 or line >= len(lines):
        return ""
    text = lines[line]
    if character < 0 or character >= len(text):
        # Cursor may sit right after the word
        if 0 < character <= len(text):
            character -= 1
        else:
            return ""

    start = character
    while start > 0 and is_ident_continue(text[start - 1]):
        start -= 1
    end = character
    while end < len(text) and is_ident_continue(text[end]):
        end += 1

    return text[start:end]


def _walk(stmts: list[Stmt]) -> Iterator[Stmt]:
    """Yield statements depth-first through block bodies."""
    for stmt in stmts:
        yield stmt
        if isinstance(stmt, (ClassDef, ForLoop, WhileLoop)):
            yield from _walk(stmt.body)
        elif isinstance(stmt, MethodDef) and isinstance(stmt.body, list):
            yield from _walk(stmt.body)
        elif isinstance(stmt, ExprStmt) and isinstance(stmt.expr, IfExpr):
            yield from _walk(stmt.expr.then_body)
            yield from _walk(stmt.expr.else_body or [])


def _defined_names(program: Program) -> dict[str, lsp.CompletionItemKind]:
    """Names introduced anywhere in the document, with a completion kind."""
    names: dict[str, lsp.CompletionItemKind] = {}
    for stmt in _walk(program.body):
        if isinstance(stmt, ClassDef):
            names[stmt.name] = lsp.CompletionItemKind.Class
            for p in stmt.fields or []:
                names.setdefault(p.name, lsp.CompletionItemKind.Field)
        elif isinstance(stmt, MethodDef):
            names[stmt.name] = lsp.CompletionItemKind.Method
            for p in stmt.params:
                names.setdefault(p.name, lsp.CompletionItemKind.Variable)
        elif isinstance(stmt, ForLoop):
            for name in stmt.bindings:
                names.setdefault(name, lsp.CompletionItemKind.Variable)
        elif isinstance(stmt, Assignment):
            if isinstance(stmt.target, Variable):
                names.setdefault(stmt.target.name, lsp.CompletionItemKind.Variable)
            elif isinstance(stmt.target, DestructureTarget):
                for name in stmt.target.names:
                    names.setdefault(name, lsp.CompletionItemKind.Variable)
    return names


# ── LSP Feature Handlers ─────────────────────────────────────────


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    ds = _analyze(uri, params.text_document.text)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Full sync: take last content change
    source = params.content_changes[-1].text if params.content_changes else ""
    ds = _analyze(uri, source)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    _state.pop(params.text_document.uri, None)


def _hover_text(program: Program, word: str) -> str | None:
    for stmt in _walk(program.body):
        if isinstance(stmt, ClassDef) and stmt.name == word:
            return f"**class** `{stmt.name}{_params_display(stmt.fields)}`"
        if isinstance(stmt, MethodDef) and stmt.name == word:
            return f"**method** `{_method_display(stmt)}`"
    return None


@server.feature(lsp.TEXT_DOCUMENT_HOVER)
def hover(params: lsp.HoverParams) -> lsp.Hover | None:
    ds = _state.get(params.text_document.uri)
    if ds is None or ds.program is None:
        return None

    word = _get_word_at(ds.source, params.position.line, params.position.character)
    if not word:
        return None

    content = _hover_text(ds.program, word)
    if content is None:
        return None
    return lsp.Hover(contents=lsp.MarkupContent(
        kind=lsp.MarkupKind.Markdown,
        value=content,
    ))


def _completion_items(ds: DocumentState | None) -> list[lsp.CompletionItem]:
    items = [
        lsp.CompletionItem(label=kw, kind=lsp.CompletionItemKind.Keyword)
        for kw in _KEYWORD_COMPLETIONS
    ]
    if ds is not None and ds.program is not None:
        for name, kind in sorted(_defined_names(ds.program).items()):
            items.append(lsp.CompletionItem(label=name, kind=kind))

    # Deduplicate by label
    seen: set[str] = set()
    unique: list[lsp.CompletionItem] = []
    for item in items:
        if item.label not in seen:
            seen.add(item.label)
            unique.append(item)
    return unique


@server.feature(
    lsp.TEXT_DOCUMENT_COMPLETION,
    lsp.CompletionOptions(trigger_characters=[".", ":"]),
)
def completion(params: lsp.CompletionParams) -> lsp.CompletionList:
    ds = _state.get(params.text_document.uri)
    return lsp.CompletionList(is_incomplete=False, items=_completion_items(ds))


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    ds = _state.get(params.text_document.uri)
    if ds is None or ds.program is None:
        return []

    symbols: list[lsp.DocumentSymbol] = []
    for stmt in ds.program.body:
        sym = _stmt_to_symbol(stmt)
        if sym is not None:
            symbols.append(sym)
    return symbols


def _stmt_to_symbol(stmt: Stmt) -> lsp.DocumentSymbol | None:
    """Convert a top-level or class-level statement to a DocumentSymbol."""
    if isinstance(stmt, ClassDef):
        children: list[lsp.DocumentSymbol] = []
        for p in stmt.fields or []:
            children.append(lsp.DocumentSymbol(
                name=p.name,
                kind=lsp.SymbolKind.Field,
                range=span_to_range(p.span),
                selection_range=span_to_range(p.span),
            ))
        for sub in stmt.body:
            child = _stmt_to_symbol(sub)
            if child is not None:
                children.append(child)
        return lsp.DocumentSymbol(
            name=stmt.name,
            kind=lsp.SymbolKind.Class,
            range=span_to_range(stmt.span),
            selection_range=span_to_range(stmt.span),
            detail=_params_display(stmt.fields) or None,
            children=children if children else None,
        )
    if isinstance(stmt, MethodDef):
        return lsp.DocumentSymbol(
            name=f"self::{stmt.name}" if stmt.is_static else stmt.name,
            kind=lsp.SymbolKind.Method,
            range=span_to_range(stmt.span),
            selection_range=span_to_range(stmt.span),
            detail=_method_display(stmt),
        )
    if isinstance(stmt, UseDecl):
        return lsp.DocumentSymbol(
            name=stmt.dotted,
            kind=lsp.SymbolKind.Module,
            range=span_to_range(stmt.span),
            selection_range=span_to_range(stmt.span),
        )
    if isinstance(stmt, Assignment) and isinstance(stmt.target, Variable):
        return lsp.DocumentSymbol(
            name=stmt.target.name,
            kind=lsp.SymbolKind.Variable,
            range=span_to_range(stmt.span),
            selection_range=span_to_range(stmt.target.span),
        )
    return None


@server.feature(lsp.TEXT_DOCUMENT_FORMATTING)
def formatting(params: lsp.DocumentFormattingParams) -> list[lsp.TextEdit] | None:
    ds = _state.get(params.text_document.uri)
    if ds is None or ds.program is None:
        return None

    indent = params.options.tab_size if params.options.insert_spaces else 2
    return _format_edits(ds, indent)


def _format_edits(ds: DocumentState, indent: int) -> list[lsp.TextEdit] | None:
    """A single edit replacing the whole document, or None if already formatted."""
    formatted = ConcordeFormatter(indent=indent).format(ds.program)
    if formatted == ds.source:
        return None

    lines = ds.source.splitlines()
    if not lines or ds.source.endswith("\n"):
        end = lsp.Position(line=len(lines), character=0)
    else:
        end = lsp.Position(line=len(lines) - 1, character=len(lines[-1]))

    return [lsp.TextEdit(
        range=lsp.Range(start=lsp.Position(line=0, character=0), end=end),
        new_text=formatted,
    )]


# ── Entry point ──────────────────────────────────────────────────


def main() -> None:
    """Start the Concorde language server on stdio."""
    server.start_io()
