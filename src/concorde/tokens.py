"""Token kinds and token representation for the Concorde lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from concorde.source import Span


class TokenKind(Enum):
    # Literals
    IDENT = auto()
    NUMBER = auto()
    STRING = auto()
    BOOL = auto()
    NIL = auto()

    # Keywords
    CLASS = auto()
    DEF = auto()
    END = auto()
    IF = auto()
    ELSE = auto()
    FOR = auto()
    IN = auto()
    WHILE = auto()
    AND = auto()
    OR = auto()
    NOT = auto()
    BREAK = auto()
    CONTINUE = auto()
    RETURN = auto()
    THEN = auto()
    DO = auto()
    FN = auto()
    USE = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LBRACE = auto()
    RBRACE = auto()
    COMMA = auto()
    DOT = auto()
    COLON = auto()
    SEMICOLON = auto()
    ARROW = auto()
    DOUBLE_COLON = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    ASSIGN = auto()
    EQUAL = auto()
    NOT_EQUAL = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    LESS = auto()
    LESS_EQUAL = auto()
    PLUS_ASSIGN = auto()
    MINUS_ASSIGN = auto()
    STAR_ASSIGN = auto()
    SLASH_ASSIGN = auto()

    # Layout
    NEWLINE = auto()
    EOF = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    span: Span
    quote: str = ""  # opening quote of a STRING token


KEYWORDS: dict[str, TokenKind] = {
    "class": TokenKind.CLASS,
    "true": TokenKind.BOOL,
    "false": TokenKind.BOOL,
    "nil": TokenKind.NIL,
    "def": TokenKind.DEF,
    "end": TokenKind.END,
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "for": TokenKind.FOR,
    "in": TokenKind.IN,
    "while": TokenKind.WHILE,
    "and": TokenKind.AND,
    "or": TokenKind.OR,
    "not": TokenKind.NOT,
    "break": TokenKind.BREAK,
    "continue": TokenKind.CONTINUE,
    "return": TokenKind.RETURN,
    "then": TokenKind.THEN,
    "do": TokenKind.DO,
    "fn": TokenKind.FN,
    "use": TokenKind.USE,
}

KEYWORD_KINDS: frozenset[TokenKind] = frozenset(
    kind for kind in KEYWORDS.values()
    if kind not in (TokenKind.BOOL, TokenKind.NIL)
)

# Two-character operators, checked before their one-character prefixes.
TWO_CHAR_OPERATORS: dict[str, TokenKind] = {
    "==": TokenKind.EQUAL,
    "!=": TokenKind.NOT_EQUAL,
    ">=": TokenKind.GREATER_EQUAL,
    "<=": TokenKind.LESS_EQUAL,
    "+=": TokenKind.PLUS_ASSIGN,
    "-=": TokenKind.MINUS_ASSIGN,
    "*=": TokenKind.STAR_ASSIGN,
    "/=": TokenKind.SLASH_ASSIGN,
    "::": TokenKind.DOUBLE_COLON,
    "->": TokenKind.ARROW,
}

ONE_CHAR_TOKENS: dict[str, TokenKind] = {
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    ",": TokenKind.COMMA,
    ".": TokenKind.DOT,
    ":": TokenKind.COLON,
    ";": TokenKind.SEMICOLON,
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "*": TokenKind.STAR,
    "/": TokenKind.SLASH,
    "%": TokenKind.PERCENT,
    "=": TokenKind.ASSIGN,
    ">": TokenKind.GREATER,
    "<": TokenKind.LESS,
}

# Tokens after which a '-' followed by a digit is the binary operator,
# not the sign of a number literal.
OPERAND_END: frozenset[TokenKind] = frozenset({
    TokenKind.IDENT,
    TokenKind.NUMBER,
    TokenKind.STRING,
    TokenKind.BOOL,
    TokenKind.NIL,
    TokenKind.RPAREN,
    TokenKind.RBRACKET,
    TokenKind.END,
})

ASSIGN_OPS: dict[TokenKind, str] = {
    TokenKind.ASSIGN: "=",
    TokenKind.PLUS_ASSIGN: "+=",
    TokenKind.MINUS_ASSIGN: "-=",
    TokenKind.STAR_ASSIGN: "*=",
    TokenKind.SLASH_ASSIGN: "/=",
}
