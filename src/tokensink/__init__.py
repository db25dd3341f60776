"""Group token streams into forests of annotated blocks."""

from tokensink.blocks import Block
from tokensink.collector import Collector, collect
from tokensink.errors import LexError
from tokensink.sinks import (
    PartSpec,
    Sink,
    SinkRegistry,
    TokenCount,
    UntilAnnotation,
    UntilNewline,
    UntilToken,
)

__version__ = "0.1.0"

__all__ = [
    "Block",
    "Collector",
    "LexError",
    "PartSpec",
    "Sink",
    "SinkRegistry",
    "TokenCount",
    "UntilAnnotation",
    "UntilNewline",
    "UntilToken",
    "collect",
]
