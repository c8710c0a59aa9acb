"""Entry points for turning Concorde source text into an AST.

``parse`` raises :class:`ParseError`; ``try_parse`` returns the error as
a value. Each call builds its own lexer and parser, so independent
units can be parsed from several threads at once (``parse_many``).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from concorde.ast_nodes import Program
from concorde.errors import ParseError
from concorde.lexer import Lexer
from concorde.parser import DEFAULT_MAX_DEPTH, Parser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing one source unit: a program or the first error."""

    filename: str
    program: Program | None = None
    error: ParseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse(
    source: str, filename: str = "<input>", *, max_depth: int = DEFAULT_MAX_DEPTH,
) -> Program:
    """Parse one source unit, raising ParseError on the first error."""
    logger.debug("parsing %s (%d chars)", filename, len(source))
    tokens = Lexer(source, filename).tokens()
    return Parser(tokens, filename, max_depth=max_depth).parse()


def try_parse(
    source: str, filename: str = "<input>", *, max_depth: int = DEFAULT_MAX_DEPTH,
) -> ParseResult:
    """Parse one source unit, returning the error instead of raising it."""
    try:
        program = parse(source, filename, max_depth=max_depth)
    except ParseError as e:
        logger.debug("%s failed with %s error", filename, e.kind.value)
        return ParseResult(filename, error=e)
    return ParseResult(filename, program=program)


def parse_many(
    sources: Mapping[str, str],
    *,
    max_workers: int | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, ParseResult]:
    """Parse independent units concurrently, keyed by name in input order.

    A failing unit does not affect the others.
    """
    names = list(sources)
    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        results = list(ex.map(
            lambda name: try_parse(sources[name], name, max_depth=max_depth),
            names,
        ))
    failed = sum(1 for r in results if not r.ok)
    logger.debug("parsed %d units, %d failed", len(results), failed)
    return dict(zip(names, results))
