"""Pygments support for annotated source."""

from __future__ import annotations

from collections.abc import Iterable

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexer import RegexLexer
from pygments.token import (
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
)

from tokensink.tokens import Token


class AnnotatedSourceLexer(RegexLexer):
    """Pygments lexer for annotated source text."""

    name = "Annotated Source"
    aliases = ["tokensink", "annotated"]
    filenames = ["*.sink"]
    mimetypes = ["text/x-tokensink"]

    tokens = {
        "root": [
            # Whitespace
            (r"\s+", Text),
            # Annotations (@Test, @Case, ...)
            (r"@[A-Za-z_][A-Za-z0-9_]*", Name.Decorator),
            # Character lists with escape support
            (r'"', String, "char_list"),
            # Symbols
            (r":[A-Za-z_][A-Za-z0-9_]*", String.Symbol),
            # Numbers
            (r"[0-9]+\.[0-9]+", Number.Float),
            (r"[0-9]+", Number.Integer),
            # Identifiers
            (r"[A-Za-z_][A-Za-z0-9_]*", Name),
            # Operators (multi-char before single-char)
            (r"==", Operator),
            (r"[+\-*/=$.]", Operator),
            # Groups and separators
            (r"[{}()\[\],;]", Punctuation),
        ],
        "char_list": [
            (r"\\.", String.Escape),
            (r'[^"\\]+', String),
            (r'"', String, "#pop"),
        ],
    }


def highlight_tokens(tokens: Iterable[Token], *, color: bool = True) -> str:
    """Render a token run back to source text, optionally colored for a terminal."""
    text = "".join(tok.text for tok in tokens)
    if not color or not text:
        return text
    return highlight(text, AnnotatedSourceLexer(), TerminalFormatter()).rstrip("\n")
