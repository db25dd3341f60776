"""Sink definitions: which annotation opens a block and how its parts end.

A ``Sink`` names the annotation text it reacts to and an ordered tuple of
``PartSpec`` values. Each part ends according to its termination rule:

- ``UntilNewline``: the current token's text contains a newline.
- ``TokenCount(n)``: ``n`` significant tokens have been seen.
- ``UntilToken(kind)``: a token of ``kind`` occurs at the nesting depth the
  block was opened at.
- ``UntilAnnotation(text)``: an annotation with exactly ``text`` occurs; that
  annotation is kept in the part instead of opening a block.

A Sink without parts is a lone marker: it produces an empty block.
All values here are immutable; ``with_*`` methods return new instances.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace

from tokensink.tokens import TokenType


@dataclass(frozen=True)
class UntilNewline:
    pass


@dataclass(frozen=True)
class TokenCount:
    count: int

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError(f"token count must be at least 1, got {self.count}")


@dataclass(frozen=True)
class UntilToken:
    kind: TokenType


@dataclass(frozen=True)
class UntilAnnotation:
    text: str


TerminationRule = UntilNewline | TokenCount | UntilToken | UntilAnnotation


@dataclass(frozen=True)
class PartSpec:
    """Termination rule for one captured span of a block.

    ``exclude`` lists token types that are not counted as significant.
    """

    rule: TerminationRule
    exclude: frozenset[TokenType] = field(default_factory=frozenset)

    def excluding(self, *kinds: TokenType) -> PartSpec:
        return replace(self, exclude=self.exclude | frozenset(kinds))


@dataclass(frozen=True)
class Sink:
    annotation_text: str
    parts: tuple[PartSpec, ...] = ()

    @property
    def is_lone(self) -> bool:
        return not self.parts

    def with_part(self, spec: PartSpec) -> Sink:
        return replace(self, parts=(*self.parts, spec))

    # ── Single-part shorthands ───────────────────────────────────

    @classmethod
    def lone(cls, annotation_text: str) -> Sink:
        return cls(annotation_text)

    @classmethod
    def until_newline(cls, annotation_text: str) -> Sink:
        return cls(annotation_text, (PartSpec(UntilNewline()),))

    @classmethod
    def count(
        cls,
        annotation_text: str,
        count: int,
        exclude: Iterable[TokenType] = (TokenType.WHITESPACE,),
    ) -> Sink:
        """Single part of ``count`` tokens; whitespace is not counted by default."""
        return cls(annotation_text, (PartSpec(TokenCount(count), frozenset(exclude)),))

    @classmethod
    def until_token(cls, annotation_text: str, kind: TokenType) -> Sink:
        return cls(annotation_text, (PartSpec(UntilToken(kind)),))

    @classmethod
    def until_annotation(cls, annotation_text: str, end_text: str) -> Sink:
        return cls(annotation_text, (PartSpec(UntilAnnotation(end_text)),))


class SinkRegistry:
    """Ordered, immutable collection of sinks.

    Lookup returns the first sink registered for an annotation text, so a
    duplicate registration is never reachable.
    """

    def __init__(self, sinks: Iterable[Sink] = ()) -> None:
        self._sinks: tuple[Sink, ...] = tuple(sinks)

    def __iter__(self) -> Iterator[Sink]:
        return iter(self._sinks)

    def __len__(self) -> int:
        return len(self._sinks)

    def __repr__(self) -> str:
        names = ", ".join(s.annotation_text for s in self._sinks)
        return f"SinkRegistry([{names}])"

    def find(self, annotation_text: str) -> Sink | None:
        for sink in self._sinks:
            if sink.annotation_text == annotation_text:
                return sink
        return None

    def with_sink(self, sink: Sink) -> SinkRegistry:
        return SinkRegistry((*self._sinks, sink))
