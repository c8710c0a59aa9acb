"""Lexer for the Concorde scripting language.

Produces a lazy stream of tokens from source text. Spaces separate
tokens; line breaks are significant and come out as NEWLINE tokens.
The first lexical error stops tokenization of the unit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from concorde.errors import ErrorKind, ParseError
from concorde.source import Span
from concorde.tokens import (
    KEYWORDS,
    ONE_CHAR_TOKENS,
    OPERAND_END,
    TWO_CHAR_OPERATORS,
    Token,
    TokenKind,
)

logger = logging.getLogger(__name__)

_DIGITS = frozenset("0123456789")
_QUOTES = frozenset("\"'")


def is_ident_start(ch: str) -> bool:
    return ch == "_" or ch.isidentifier()


def is_ident_continue(ch: str) -> bool:
    return ch in ("_", "?") or ("a" + ch).isidentifier()


class Lexer:
    """Tokenizes Concorde source code."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.col = 1
        self.prev_token: Token | None = None
        self.count = 0

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list."""
        return list(self.tokens())

    def tokens(self) -> Iterator[Token]:
        """Yield tokens on demand, ending with EOF."""
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == " ":
                self._advance()
            elif ch == "#":
                self._skip_line_comment()
            elif ch == "\n" or (ch == "\r" and self._peek(1) == "\n"):
                yield self._lex_newline()
            elif ch in _QUOTES:
                yield self._lex_string()
            elif ch in _DIGITS or (ch == "-" and self._starts_negative_number()):
                yield self._lex_number()
            elif is_ident_start(ch):
                yield self._lex_identifier()
            else:
                yield self._lex_operator_or_punct()

        # The last line is always terminated.
        if self.prev_token is not None and self.prev_token.kind != TokenKind.NEWLINE:
            yield self._emit_at(TokenKind.NEWLINE, "", self.line, self.col, self.pos)

        yield self._emit_at(TokenKind.EOF, "", self.line, self.col, self.pos)
        logger.debug("lexed %d tokens from %s", self.count, self.filename)

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return "\0"

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _emit(
        self, kind: TokenKind, value: str,
        start_line: int, start_col: int, start_pos: int, quote: str = "",
    ) -> Token:
        end_col = self.col - 1 if self.col > 1 else 1
        span = Span(self.filename, start_line, start_col, self.line, end_col, start_pos)
        return self._remember(Token(kind, value, span, quote))

    def _emit_at(
        self, kind: TokenKind, value: str, line: int, col: int, pos: int,
    ) -> Token:
        """Emit a token whose span is the single position (line, col)."""
        span = Span(self.filename, line, col, line, col, pos)
        return self._remember(Token(kind, value, span))

    def _remember(self, tok: Token) -> Token:
        self.prev_token = tok
        self.count += 1
        return tok

    def _error(
        self, code: str, message: str, line: int, col: int, pos: int,
        *, notes: list[str] | None = None,
    ) -> ParseError:
        span = Span(self.filename, line, col, line, col, pos)
        logger.debug("lexical error %s at %s: %s", code, span, message)
        return ParseError(ErrorKind.LEXICAL, code, message, span, notes=notes)

    # ── Newlines and comments ────────────────────────────────────

    def _lex_newline(self) -> Token:
        line, col, pos = self.line, self.col, self.pos
        if self.source[self.pos] == "\r":
            self._advance()
        self._advance()
        return self._emit_at(TokenKind.NEWLINE, "\n", line, col, pos)

    def _skip_line_comment(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos] != "\n":
            if self.source[self.pos] == "\r" and self._peek(1) == "\n":
                return
            self._advance()

    # ── Strings ──────────────────────────────────────────────────

    def _lex_string(self) -> Token:
        start_line, start_col, start_pos = self.line, self.col, self.pos
        quote = self._advance()
        text = []
        # No escape sequences: a backslash is an ordinary character.
        while self.pos < len(self.source) and self.source[self.pos] != quote:
            text.append(self._advance())

        if self.pos >= len(self.source):
            raise self._error(
                "E101", "unterminated string literal",
                start_line, start_col, start_pos,
                notes=[f"string opened with {quote} is never closed"],
            )

        self._advance()  # closing quote
        return self._emit(
            TokenKind.STRING, "".join(text),
            start_line, start_col, start_pos, quote,
        )

    # ── Numbers ──────────────────────────────────────────────────

    def _starts_negative_number(self) -> bool:
        if self._peek(1) not in _DIGITS:
            return False
        return self.prev_token is None or self.prev_token.kind not in OPERAND_END

    def _lex_number(self) -> Token:
        start_line, start_col, start_pos = self.line, self.col, self.pos
        text = []
        if self.source[self.pos] == "-":
            text.append(self._advance())

        first = self._advance()
        text.append(first)
        if first == "0":
            if self._peek() in _DIGITS:
                raise self._error(
                    "E102", "redundant leading zero in number literal",
                    start_line, start_col, start_pos,
                )
        else:
            while self._peek() in _DIGITS:
                text.append(self._advance())

        # Fractional part needs at least one digit after the dot.
        if self._peek() == "." and self._peek(1) in _DIGITS:
            text.append(self._advance())
            while self._peek() in _DIGITS:
                text.append(self._advance())

        return self._emit(TokenKind.NUMBER, "".join(text), start_line, start_col, start_pos)

    # ── Identifiers and Keywords ─────────────────────────────────

    def _lex_identifier(self) -> Token:
        start_line, start_col, start_pos = self.line, self.col, self.pos
        text = [self._advance()]
        while self.pos < len(self.source) and is_ident_continue(self.source[self.pos]):
            text.append(self._advance())
        word = "".join(text)

        kind = KEYWORDS.get(word, TokenKind.IDENT)
        return self._emit(kind, word, start_line, start_col, start_pos)

    # ── Operators and Punctuation ────────────────────────────────

    def _lex_operator_or_punct(self) -> Token:
        start_line, start_col, start_pos = self.line, self.col, self.pos
        ch = self.source[self.pos]

        two = self.source[self.pos:self.pos + 2]
        if two in TWO_CHAR_OPERATORS:
            self._advance()
            self._advance()
            return self._emit(TWO_CHAR_OPERATORS[two], two, start_line, start_col, start_pos)

        if ch in ONE_CHAR_TOKENS:
            self._advance()
            return self._emit(ONE_CHAR_TOKENS[ch], ch, start_line, start_col, start_pos)

        notes = None
        if ch == "\t":
            notes = ["only spaces may separate tokens"]
        raise self._error(
            "E100", f"unexpected character: {ch!r}",
            start_line, start_col, start_pos, notes=notes,
        )
