"""Collected blocks: the output of a collection pass."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from tokensink.tokens import Token


@dataclass(frozen=True)
class Block:
    """An annotation and the token parts captured after it.

    Anonymous blocks (empty ``annotation_text``) hold a run of tokens that
    no sink claimed, as a single part.
    """

    annotation_text: str
    parts: tuple[tuple[Token, ...], ...] = ()
    nested: tuple[Block, ...] = ()

    @classmethod
    def lone(cls, annotation_text: str) -> Block:
        return cls(annotation_text)

    @classmethod
    def anonymous(cls, tokens: Iterable[Token]) -> Block:
        return cls("", (tuple(tokens),))

    @property
    def is_anonymous(self) -> bool:
        return self.annotation_text == ""

    @property
    def tokens(self) -> tuple[Token, ...]:
        """Tokens of every part, in order."""
        return tuple(tok for part in self.parts for tok in part)

    def iter_tokens(self) -> Iterator[Token]:
        """Own parts first, then nested blocks depth-first."""
        yield from self.tokens
        for child in self.nested:
            yield from child.iter_tokens()

    def text(self) -> str:
        return "".join(tok.text for tok in self.tokens)

    def to_dict(self) -> dict[str, Any]:
        return {
            "annotation": self.annotation_text,
            "parts": [
                [
                    {
                        "type": tok.kind.name,
                        "text": tok.text,
                        "line": tok.span.start_line,
                        "col": tok.span.start_col,
                    }
                    for tok in part
                ]
                for part in self.parts
            ],
            "nested": [child.to_dict() for child in self.nested],
        }


def render_forest(blocks: Iterable[Block]) -> str:
    """Readable indented dump of a block forest."""
    lines: list[str] = []

    def _dump(block: Block, depth: int) -> None:
        indent = "  " * depth
        name = block.annotation_text or "<anonymous>"
        lines.append(f"{indent}{name}")
        for i, part in enumerate(block.parts):
            text = "".join(tok.text for tok in part)
            lines.append(f"{indent}  part {i}: {text!r}")
        for child in block.nested:
            _dump(child, depth + 1)

    for block in blocks:
        _dump(block, 0)
    return "\n".join(lines)
