"""Lexer for annotated source text.

Produces a lossless stream of tokens: every character of the input belongs
to exactly one token, whitespace runs included, so the token texts
concatenate back to the source.
"""

from __future__ import annotations

from tokensink.errors import Diagnostic, DiagnosticLabel, LexError, Severity
from tokensink.source import Span
from tokensink.tokens import PUNCTUATION, Token, TokenType

_WHITESPACE = " \t\r\n"


class Lexer:
    """Tokenizes annotated source text."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: list[Token] = []
        self.diagnostics: list[Diagnostic] = []

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list."""
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in _WHITESPACE:
                self._lex_whitespace()
            elif ch == '@':
                self._lex_annotation()
            elif ch == '"':
                self._lex_char_list()
            elif ch == ':' and self._is_ident_start(self._peek(1)):
                self._lex_symbol()
            elif ch.isdigit():
                self._lex_number()
            elif self._is_ident_start(ch):
                self._lex_identifier()
            else:
                self._lex_punctuation()

        if self.diagnostics:
            raise LexError(self.diagnostics)
        return self.tokens

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    @staticmethod
    def _is_ident_start(ch: str) -> bool:
        return ch.isalpha() or ch == '_'

    def _is_ident_char(self) -> bool:
        ch = self.source[self.pos]
        return ch.isalnum() or ch == '_'

    def _emit(self, kind: TokenType, text: str, start_line: int, start_col: int) -> Token:
        end_col = self.col - 1 if self.col > 1 else 1
        span = Span(self.filename, start_line, start_col, self.line, end_col)
        tok = Token(kind, text, span)
        self.tokens.append(tok)
        return tok

    def _error(self, code: str, message: str, line: int, col: int) -> None:
        span = Span(self.filename, line, col, line, col)
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code=code,
                message=message,
                labels=[DiagnosticLabel(span=span)],
            )
        )

    # ── Whitespace ───────────────────────────────────────────────

    def _lex_whitespace(self) -> None:
        start_line = self.line
        start_col = self.col
        text = []
        while self.pos < len(self.source) and self.source[self.pos] in _WHITESPACE:
            text.append(self._advance())
        self._emit(TokenType.WHITESPACE, ''.join(text), start_line, start_col)

    # ── Annotations ──────────────────────────────────────────────

    def _lex_annotation(self) -> None:
        start_line = self.line
        start_col = self.col
        text = [self._advance()]  # @
        if not self._is_ident_start(self._peek()):
            self._error("E101", "expected an annotation name after '@'", start_line, start_col)
            return
        while self.pos < len(self.source) and self._is_ident_char():
            text.append(self._advance())
        self._emit(TokenType.ANNOTATION, ''.join(text), start_line, start_col)

    # ── Literals ─────────────────────────────────────────────────

    def _lex_char_list(self) -> None:
        start_line = self.line
        start_col = self.col
        text = [self._advance()]  # opening "
        while self.pos < len(self.source) and self.source[self.pos] != '"':
            if self.source[self.pos] == '\\' and self.pos + 1 < len(self.source):
                text.append(self._advance())
            text.append(self._advance())

        if self.pos >= len(self.source):
            self._error("E102", "unterminated character list", start_line, start_col)
            return

        text.append(self._advance())  # closing "
        self._emit(TokenType.CHAR_LIST, ''.join(text), start_line, start_col)

    def _lex_symbol(self) -> None:
        start_line = self.line
        start_col = self.col
        text = [self._advance()]  # :
        while self.pos < len(self.source) and self._is_ident_char():
            text.append(self._advance())
        self._emit(TokenType.SYMBOL, ''.join(text), start_line, start_col)

    def _lex_number(self) -> None:
        start_line = self.line
        start_col = self.col
        text = []
        while self.pos < len(self.source) and self.source[self.pos].isdigit():
            text.append(self._advance())

        # Decimal point only when a digit follows, so `5.` stays NUMBER PERIOD
        if self._peek() == '.' and self._peek(1).isdigit():
            text.append(self._advance())
            while self.pos < len(self.source) and self.source[self.pos].isdigit():
                text.append(self._advance())
        self._emit(TokenType.NUMBER, ''.join(text), start_line, start_col)

    # ── Identifiers ──────────────────────────────────────────────

    def _lex_identifier(self) -> None:
        start_line = self.line
        start_col = self.col
        text = []
        while self.pos < len(self.source) and self._is_ident_char():
            text.append(self._advance())
        self._emit(TokenType.IDENTIFIER, ''.join(text), start_line, start_col)

    # ── Operators and Punctuation ────────────────────────────────

    def _lex_punctuation(self) -> None:
        start_line = self.line
        start_col = self.col

        if self.source.startswith('==', self.pos):
            self._advance()
            self._advance()
            self._emit(TokenType.EQUALITY, '==', start_line, start_col)
            return

        ch = self._advance()
        kind = PUNCTUATION.get(ch)
        if kind is None:
            self._error("E100", f"unexpected character: {ch!r}", start_line, start_col)
            return
        self._emit(kind, ch, start_line, start_col)


def lex(source: str, filename: str = "<stdin>") -> list[Token]:
    """Tokenize ``source``. Raises LexError on malformed input."""
    return Lexer(source, filename).lex()
