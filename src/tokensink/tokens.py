"""Token kinds and token representation for annotated source."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tokensink.source import Span


class TokenType(Enum):
    # Markers
    ANNOTATION = auto()

    # Whitespace (newlines included)
    WHITESPACE = auto()

    # Literals
    NUMBER = auto()
    CHAR_LIST = auto()
    SYMBOL = auto()

    # Identifiers
    IDENTIFIER = auto()

    # Operators
    PLUS_SIGN = auto()
    SUBTRACTION_SIGN = auto()
    MULTIPLICATION_SIGN = auto()
    DIVISION_SIGN = auto()
    EQUALITY = auto()
    PAIR = auto()
    PERIOD = auto()
    COMMA = auto()
    SUBEXPRESSION = auto()
    VALUE = auto()

    # Groups
    START_EXPRESSION = auto()
    END_EXPRESSION = auto()
    START_GROUP = auto()
    END_GROUP = auto()
    START_SIDE_EFFECT = auto()
    END_SIDE_EFFECT = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenType
    text: str
    span: Span

    @property
    def has_newline(self) -> bool:
        return "\n" in self.text


GROUP_OPENERS: frozenset[TokenType] = frozenset({
    TokenType.START_EXPRESSION,
    TokenType.START_GROUP,
    TokenType.START_SIDE_EFFECT,
})

GROUP_CLOSERS: frozenset[TokenType] = frozenset({
    TokenType.END_EXPRESSION,
    TokenType.END_GROUP,
    TokenType.END_SIDE_EFFECT,
})

PUNCTUATION: dict[str, TokenType] = {
    "+": TokenType.PLUS_SIGN,
    "-": TokenType.SUBTRACTION_SIGN,
    "*": TokenType.MULTIPLICATION_SIGN,
    "/": TokenType.DIVISION_SIGN,
    "=": TokenType.PAIR,
    ".": TokenType.PERIOD,
    ",": TokenType.COMMA,
    ";": TokenType.SUBEXPRESSION,
    "$": TokenType.VALUE,
    "{": TokenType.START_EXPRESSION,
    "}": TokenType.END_EXPRESSION,
    "(": TokenType.START_GROUP,
    ")": TokenType.END_GROUP,
    "[": TokenType.START_SIDE_EFFECT,
    "]": TokenType.END_SIDE_EFFECT,
}


def token_type_named(name: str) -> TokenType:
    """Look up a TokenType by name, ignoring case. Raises KeyError."""
    return TokenType[name.strip().upper()]
