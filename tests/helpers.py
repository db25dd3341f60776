"""Shared test helpers for the tokensink test suite."""

from __future__ import annotations

from collections.abc import Iterable

from tokensink.blocks import Block
from tokensink.collector import Collector
from tokensink.sinks import Sink
from tokensink.tokens import Token


def collect(source: str, *sinks: Sink) -> list[Block]:
    """Lex and collect source with the given sinks."""
    return Collector(sinks).collect_from_text(source, "<test>")


def texts(tokens: Iterable[Token]) -> list[str]:
    return [t.text for t in tokens]


def part_texts(block: Block) -> list[list[str]]:
    """Token texts of each part of a block."""
    return [texts(part) for part in block.parts]


def all_tokens(blocks: Iterable[Block]) -> list[Token]:
    """Every token reachable from a forest, in source order.

    Depth-first traversal yields a block's own parts before its nested
    blocks, while in the source the children sit inside the parent's parts.
    Sorting by position puts the two back in line.
    """
    found = [tok for block in blocks for tok in block.iter_tokens()]
    return sorted(found, key=lambda t: (t.span.start_line, t.span.start_col))
