"""TOML config loading for tokensink.toml.

Example::

    [[sink]]
    annotation = "@Test"

      [[sink.part]]
      until = "annotation"
      annotation = "@End"

    [[sink]]
    annotation = "@Case"

      [[sink.part]]
      until = "newline"

    [[sink]]
    annotation = "@Skip"   # no parts: lone marker

    [output]
    format = "json"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tokensink.errors import ConfigError, Diagnostic, Severity
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
from tokensink.tokens import TokenType, token_type_named

CONFIG_NAME = "tokensink.toml"
_RULES = ("newline", "count", "token", "annotation")
_FORMATS = ("tree", "json")


@dataclass
class OutputConfig:
    format: str = "tree"
    color: bool = True


@dataclass
class CollectorConfig:
    registry: SinkRegistry = field(default_factory=SinkRegistry)
    output: OutputConfig = field(default_factory=OutputConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find tokensink.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")
        path = parent


def _fail(path: Path, message: str, *notes: str) -> ConfigError:
    return ConfigError(
        Diagnostic(
            severity=Severity.ERROR,
            code="E200",
            message=f"{path}: {message}",
            notes=list(notes),
        )
    )


def _token_type(path: Path, name: Any, where: str) -> TokenType:
    try:
        return token_type_named(str(name))
    except KeyError:
        raise _fail(
            path, f"{where}: unknown token type {name!r}",
            "known types: " + ", ".join(t.name.lower() for t in TokenType),
        ) from None


def _parse_rule(path: Path, part: dict[str, Any], where: str) -> TerminationRule:
    until = part.get("until")
    match until:
        case "newline":
            return UntilNewline()
        case "count":
            count = part.get("count")
            if not isinstance(count, int) or isinstance(count, bool) or count < 1:
                raise _fail(path, f"{where}: 'count' must be a positive integer")
            return TokenCount(count)
        case "token":
            if "token" not in part:
                raise _fail(path, f"{where}: 'token' is required when until = \"token\"")
            return UntilToken(_token_type(path, part["token"], where))
        case "annotation":
            text = part.get("annotation")
            if not isinstance(text, str) or not text:
                raise _fail(path, f"{where}: 'annotation' must be a non-empty string")
            return UntilAnnotation(text)
    raise _fail(
        path, f"{where}: unknown part rule {until!r}",
        "expected one of: " + ", ".join(_RULES),
    )


def _parse_sink(path: Path, data: Any, index: int) -> Sink:
    where = f"sink #{index + 1}"
    if not isinstance(data, dict):
        raise _fail(path, f"{where}: expected a table")
    annotation = data.get("annotation")
    if not isinstance(annotation, str) or not annotation:
        raise _fail(path, f"{where}: 'annotation' must be a non-empty string")

    parts = data.get("part", [])
    if not isinstance(parts, list):
        raise _fail(path, f"{where} ({annotation}): 'part' must be an array of tables")

    sink = Sink(annotation)
    for i, part in enumerate(parts):
        part_where = f"{where} ({annotation}) part #{i + 1}"
        if not isinstance(part, dict):
            raise _fail(path, f"{part_where}: expected a table")
        rule = _parse_rule(path, part, part_where)
        names = part.get("exclude", [])
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            raise _fail(path, f"{part_where}: 'exclude' must be a list of token type names")
        exclude = frozenset(_token_type(path, name, part_where) for name in names)
        sink = sink.with_part(PartSpec(rule, exclude))
    return sink


def load_config(path: Path) -> CollectorConfig:
    """Parse a tokensink.toml file into a CollectorConfig."""
    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise _fail(path, f"invalid TOML: {e}") from e

    config = CollectorConfig()

    entries = data.get("sink", [])
    if not isinstance(entries, list):
        raise _fail(path, "'sink' must be an array of tables", "write each sink as [[sink]]")
    sinks = [_parse_sink(path, s, i) for i, s in enumerate(entries)]
    config.registry = SinkRegistry(sinks)

    if "output" in data:
        out = data["output"]
        if not isinstance(out, dict):
            raise _fail(path, "'output' must be a table", "write it as [output]")
        fmt = out.get("format", "tree")
        if fmt not in _FORMATS:
            raise _fail(
                path, f"unknown output format {fmt!r}",
                "expected one of: " + ", ".join(_FORMATS),
            )
        color = out.get("color", True)
        if not isinstance(color, bool):
            raise _fail(path, f"output: 'color' must be true or false, not {color!r}")
        config.output = OutputConfig(format=fmt, color=color)

    return config


def load_registry(path: Path) -> SinkRegistry:
    return load_config(path).registry
