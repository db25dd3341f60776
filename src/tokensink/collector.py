"""Single-pass grouping of a token stream into a forest of blocks.

The collector walks the tokens once. Annotation tokens with a registered
sink either emit an empty block (lone sinks) or open a frame that captures
the following tokens into parts until each part's rule is satisfied. Frames
nest: a registered annotation met while a frame is open becomes a child of
that frame's block. Frames still open at the end of input are closed with
whatever they captured so far.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from tokensink.blocks import Block
from tokensink.lexer import lex
from tokensink.sinks import (
    PartSpec,
    Sink,
    SinkRegistry,
    TerminationRule,
    TokenCount,
    UntilAnnotation,
    UntilNewline,
    UntilToken,
)
from tokensink.tokens import GROUP_CLOSERS, GROUP_OPENERS, Token, TokenType

logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    """In-progress state of one block."""

    sink: Sink
    depth: int
    parts: list[tuple[Token, ...]] = field(default_factory=list)
    nested: list[Block] = field(default_factory=list)
    buffer: list[Token] = field(default_factory=list)
    count: int = 0
    ended: bool = False

    @property
    def active_part(self) -> PartSpec:
        return self.sink.parts[len(self.parts)]

    def commit(self) -> None:
        self.parts.append(tuple(self.buffer))
        self.buffer = []
        self.count = 0
        self.ended = len(self.parts) == len(self.sink.parts)

    def close(self) -> Block:
        return Block(self.sink.annotation_text, tuple(self.parts), tuple(self.nested))


class _Forest:
    """Root-level output; consecutive unclaimed tokens share one anonymous block."""

    def __init__(self) -> None:
        self.blocks: list[Block] = []
        self._run: list[Token] = []

    def add_token(self, token: Token) -> None:
        self._run.append(token)

    def add_block(self, block: Block) -> None:
        self._flush()
        self.blocks.append(block)

    def finish(self) -> list[Block]:
        self._flush()
        return self.blocks

    def _flush(self) -> None:
        if self._run:
            self.blocks.append(Block.anonymous(self._run))
            self._run = []


def _part_ends(rule: TerminationRule, token: Token, depth: int, frame: _Frame) -> bool:
    match rule:
        case UntilNewline():
            return token.has_newline
        case TokenCount(count=count):
            return frame.count >= count
        case UntilToken(kind=kind):
            return token.kind is kind and depth == frame.depth
        case UntilAnnotation(text=text):
            # The closing annotation is kept in the part, never opened as a block
            return token.kind is TokenType.ANNOTATION and token.text == text
    raise TypeError(f"unknown termination rule: {rule!r}")


class Collector:
    """Groups tokens into blocks according to a sink registry.

    A collector holds no per-call state, so one instance may serve any
    number of concurrent ``collect`` calls.
    """

    def __init__(self, registry: SinkRegistry | Iterable[Sink]) -> None:
        if not isinstance(registry, SinkRegistry):
            registry = SinkRegistry(registry)
        self.registry = registry

    def collect(self, tokens: Iterable[Token]) -> list[Block]:
        """Group ``tokens`` into an ordered forest of blocks."""
        forest = _Forest()
        stack: list[_Frame] = []
        depth = 0

        for token in tokens:
            depth = self._step(token, depth, stack, forest)

        while stack:
            frame = stack.pop()
            if frame.buffer:
                frame.commit()
            logger.debug(
                "closing %s at end of input with %d of %d part(s)",
                frame.sink.annotation_text, len(frame.parts), len(frame.sink.parts),
            )
            self._attach(frame.close(), stack, forest)

        return forest.finish()

    def collect_from_text(self, source: str, filename: str = "<stdin>") -> list[Block]:
        """Lex ``source`` and collect it. LexError propagates unchanged."""
        return self.collect(lex(source, filename))

    # ── Per-token step ───────────────────────────────────────────

    def _step(self, token: Token, depth: int, stack: list[_Frame], forest: _Forest) -> int:
        """Consume one token and return the nesting depth after it."""
        if token.kind in GROUP_OPENERS:
            depth += 1
        elif token.kind in GROUP_CLOSERS:
            depth -= 1

        if stack:
            self._step_frame(token, depth, stack, forest)
        else:
            self._step_root(token, depth, stack, forest)
        return depth

    def _step_root(self, token: Token, depth: int, stack: list[_Frame], forest: _Forest) -> None:
        sink = self._sink_for(token)
        if sink is None:
            forest.add_token(token)
        elif sink.is_lone:
            forest.add_block(Block.lone(token.text))
        else:
            self._open(sink, depth, token, stack)

    def _step_frame(self, token: Token, depth: int, stack: list[_Frame], forest: _Forest) -> None:
        frame = stack[-1]
        spec = frame.active_part

        closes_part = (
            isinstance(spec.rule, UntilAnnotation)
            and token.kind is TokenType.ANNOTATION
            and token.text == spec.rule.text
        )
        opener: Sink | None = None
        sink = None if closes_part else self._sink_for(token)
        if sink is None:
            frame.buffer.append(token)
        elif sink.is_lone:
            frame.nested.append(Block.lone(token.text))
        else:
            opener = sink

        # A nested block's marker counts as a single token for its parent
        if token.kind not in spec.exclude:
            frame.count += 1

        if _part_ends(spec.rule, token, depth, frame):
            frame.commit()

        if opener is not None:
            self._open(opener, depth, token, stack)

        # A child can end on the same token as its parent; unwind all of them
        while stack and stack[-1].ended:
            done = stack.pop()
            logger.debug("closed %s", done.sink.annotation_text)
            self._attach(done.close(), stack, forest)

    # ── Helpers ──────────────────────────────────────────────────

    def _sink_for(self, token: Token) -> Sink | None:
        if token.kind is not TokenType.ANNOTATION:
            return None
        return self.registry.find(token.text)

    @staticmethod
    def _open(sink: Sink, depth: int, token: Token, stack: list[_Frame]) -> None:
        logger.debug("opening %s at %s (depth %d)", sink.annotation_text, token.span, depth)
        stack.append(_Frame(sink, depth))

    @staticmethod
    def _attach(block: Block, stack: Sequence[_Frame], forest: _Forest) -> None:
        if stack:
            stack[-1].nested.append(block)
        else:
            forest.add_block(block)


def collect(tokens: Iterable[Token], sinks: SinkRegistry | Iterable[Sink]) -> list[Block]:
    """Shorthand for ``Collector(sinks).collect(tokens)``."""
    return Collector(sinks).collect(tokens)
