"""Concorde language front end: lexer, parser and AST."""

from __future__ import annotations

__version__ = "0.1.0"

from concorde.errors import ErrorKind, ParseError  # noqa: E402
from concorde.frontend import ParseResult, parse, parse_many, try_parse  # noqa: E402

__all__ = [
    "ErrorKind",
    "ParseError",
    "ParseResult",
    "__version__",
    "parse",
    "parse_many",
    "try_parse",
]
