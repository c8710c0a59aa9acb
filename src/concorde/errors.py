"""Rust-style colored diagnostic rendering and front-end errors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from concorde.source import Span


class ErrorKind(Enum):
    LEXICAL = "lexical"
    SYNTAX = "syntax"


# ANSI color codes
_RED = "\033[1;31m"
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass
class Diagnostic:
    """A single error message pointing at one source location."""

    code: str
    message: str
    span: Span
    notes: list[str] = field(default_factory=list)


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors.

    Source lines come from texts registered with :meth:`add_source`
    (in-memory units) and otherwise from the file named by the span.
    """

    def __init__(self, *, color: bool = True) -> None:
        self.color = color
        self._file_cache: dict[str, list[str]] = {}

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def add_source(self, filename: str, text: str) -> None:
        self._file_cache[filename] = text.splitlines()

    def _get_source_line(self, filename: str, line_num: int) -> str | None:
        """Load and cache source file, return the 1-indexed line."""
        if filename not in self._file_cache:
            try:
                path = Path(filename)
                if path.is_file():
                    self._file_cache[filename] = path.read_text().splitlines()
                else:
                    self._file_cache[filename] = []
            except OSError:
                self._file_cache[filename] = []
        lines = self._file_cache[filename]
        if 1 <= line_num <= len(lines):
            return lines[line_num - 1]
        return None

    def render(self, diag: Diagnostic) -> str:
        lines: list[str] = []
        span = diag.span

        # Header: error[E200]: message
        lines.append(
            f"{self._c(_RED)}error[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )
        lines.append(f"  {self._c(_BLUE)}-->{self._c(_RESET)} {span}")
        gutter = f"{span.start_line:>4}"
        lines.append(f"  {self._c(_BLUE)}   |{self._c(_RESET)}")

        source_line = self._get_source_line(span.file, span.start_line)
        if source_line is not None:
            lines.append(
                f"  {self._c(_BLUE)}{gutter} |{self._c(_RESET)} {source_line}"
            )

        if span.start_line == span.end_line:
            caret_len = max(1, span.end_col - span.start_col + 1)
            padding = " " * (span.start_col - 1)
            carets = "^" * caret_len
            lines.append(
                f"  {self._c(_BLUE)}   |{self._c(_RESET)} "
                f"{padding}{self._c(_RED)}{carets}{self._c(_RESET)}"
            )
        elif source_line is None:
            lines.append(f"  {self._c(_BLUE)}{gutter} |{self._c(_RESET)}")

        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        return "\n".join(lines)


class CompileError(Exception):
    """Error carrying one or more diagnostics."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        messages = [d.message for d in diagnostics]
        super().__init__(f"{len(diagnostics)} error(s): {'; '.join(messages)}")


class ParseError(CompileError):
    """The first lexical or syntax error found in a source unit.

    Carries the structured ``kind``/``message``/``span`` triple plus the
    single diagnostic used for rendering.
    """

    def __init__(
        self,
        kind: ErrorKind,
        code: str,
        message: str,
        span: Span,
        *,
        notes: list[str] | None = None,
    ) -> None:
        self.kind = kind
        self.code = code
        self.message = message
        self.span = span
        super().__init__([Diagnostic(code, message, span, list(notes or []))])

    @property
    def diagnostic(self) -> Diagnostic:
        return self.diagnostics[0]

    def __str__(self) -> str:
        return f"{self.span}: {self.kind.value} error: {self.message}"
