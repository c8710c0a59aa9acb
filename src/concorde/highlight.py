"""Pygments lexer for the Concorde scripting language."""

from pygments.lexer import RegexLexer, words
from pygments.token import (
    Comment,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
)


class ConcordeLexer(RegexLexer):
    """Pygments lexer for the Concorde scripting language."""

    name = "Concorde"
    aliases = ["concorde"]
    filenames = ["*.cdr"]
    mimetypes = ["text/x-concorde"]

    tokens = {
        "root": [
            # Whitespace
            (r"\s+", Text),
            # Line comments (# ...)
            (r"#.*$", Comment.Single),
            # Strings: no escape sequences, may span lines
            (r'"[^"]*"', String.Double),
            (r"'[^']*'", String.Single),
            # Numbers
            (r"(0|[1-9][0-9]*)\.[0-9]+", Number.Float),
            (r"0|[1-9][0-9]*", Number.Integer),
            # Declaration keywords
            (
                words(("class", "def", "fn", "use"), prefix=r"\b", suffix=r"\b"),
                Keyword.Declaration,
            ),
            # Word operators
            (words(("and", "or", "not"), prefix=r"\b", suffix=r"\b"), Operator.Word),
            # Core keywords
            (
                words(
                    (
                        "if",
                        "then",
                        "else",
                        "end",
                        "for",
                        "in",
                        "while",
                        "do",
                        "break",
                        "continue",
                        "return",
                    ),
                    prefix=r"\b",
                    suffix=r"\b",
                ),
                Keyword,
            ),
            # Constants
            (r"\b(true|false|nil)\b", Keyword.Constant),
            (r"\bself\b", Name.Builtin.Pseudo),
            # Operators (multi-char before single-char)
            (r"==|!=|<=|>=|\+=|-=|\*=|/=|->|::", Operator),
            (r"[+\-*/%<>=]", Operator),
            (r"\.", Operator),
            # Class names (PascalCase)
            (r"[A-Z][a-zA-Z0-9_]*\??", Name.Class),
            # Dictionary keys (word followed by colon, not '::')
            (r"[a-z_][a-zA-Z0-9_]*\??(?=:(?!:))", Name.Attribute),
            # Identifiers
            (r"[a-z_][a-zA-Z0-9_]*\??", Name),
            # Punctuation
            (r"[(),;\[\]{}:]", Punctuation),
        ],
    }
