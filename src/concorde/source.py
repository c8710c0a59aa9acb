"""Source span tracking for diagnostics."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Span:
    """A range within a source unit.

    Lines and columns are 1-indexed and inclusive. ``offset`` is the
    code-point index of the first character in the source text.
    """

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    offset: int = field(default=0, compare=False)

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"

    def to(self, other: Span) -> Span:
        """Return a span covering this span through ``other``."""
        return Span(
            self.file,
            self.start_line, self.start_col,
            other.end_line, other.end_col,
            self.offset,
        )
