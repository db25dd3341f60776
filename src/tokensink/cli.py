"""tokensink CLI."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

import click

from tokensink import __version__
from tokensink.blocks import Block, render_forest
from tokensink.collector import Collector
from tokensink.config import CollectorConfig, find_config, load_config
from tokensink.errors import ConfigError, DiagnosticRenderer, LexError
from tokensink.highlight import highlight_tokens
from tokensink.lexer import Lexer
from tokensink.tokens import Token


def _load(file: Path, config_path: str | None, *, color: bool = True) -> CollectorConfig:
    """Load the explicit config, or the nearest tokensink.toml above ``file``."""
    try:
        path = Path(config_path) if config_path else find_config(file)
        return load_config(path)
    except FileNotFoundError:
        click.echo("error: no tokensink.toml found", err=True)
        raise SystemExit(1)
    except ConfigError as e:
        click.echo(DiagnosticRenderer(color=color).render(e.diagnostic), err=True)
        raise SystemExit(1)


def _lex_file(file: Path, *, color: bool = True) -> list[Token]:
    source = file.read_text()
    filename = str(file)
    try:
        return Lexer(source, filename).lex()
    except LexError as e:
        renderer = DiagnosticRenderer(color=color)
        renderer.add_source(filename, source)
        for diag in e.diagnostics:
            click.echo(renderer.render(diag), err=True)
        raise SystemExit(1)


def _select(blocks: Iterable[Block], annotation: str | None) -> Iterator[Block]:
    """Blocks carrying ``annotation`` at any depth, or all root blocks."""
    for block in blocks:
        if annotation is None:
            yield block
        elif block.annotation_text == annotation:
            yield block
        else:
            yield from _select(block.nested, annotation)


@click.group()
@click.version_option(__version__, prog_name="tokensink")
@click.option("-v", "--verbose", is_flag=True, help="Log collector activity.")
def main(verbose: bool) -> None:
    """Collect annotated blocks from token streams."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              help="Sink definitions (default: nearest tokensink.toml).")
@click.option("--format", "fmt", type=click.Choice(["tree", "json"]), default=None,
              help="Output format (default: from config, else tree).")
@click.option("--annotation", default=None, help="Only blocks with this annotation.")
def collect(file: str, config_path: str | None, fmt: str | None,
            annotation: str | None) -> None:
    """Collect the annotated blocks of FILE."""
    path = Path(file)
    config = _load(path, config_path)
    tokens = _lex_file(path, color=config.output.color)
    blocks = list(_select(Collector(config.registry).collect(tokens), annotation))

    if fmt is None:
        fmt = config.output.format
    if fmt == "json":
        click.echo(json.dumps([b.to_dict() for b in blocks], indent=2))
    elif blocks:
        click.echo(render_forest(blocks))


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def tokens(file: str) -> None:
    """Dump the tokens of FILE."""
    for tok in _lex_file(Path(file)):
        click.echo(f"{tok.span}  {tok.kind.name:<20} {tok.text!r}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              help="Sink definitions (default: nearest tokensink.toml).")
@click.option("--annotation", default=None, help="Only blocks with this annotation.")
@click.option("--no-color", is_flag=True, help="Print without highlighting or colored diagnostics.")
def show(file: str, config_path: str | None, annotation: str | None,
         no_color: bool) -> None:
    """Print the source captured by each annotated block of FILE."""
    path = Path(file)
    config = _load(path, config_path, color=not no_color)
    color = config.output.color and not no_color
    blocks = Collector(config.registry).collect(_lex_file(path, color=color))

    def _show(block: Block, depth: int) -> None:
        indent = "  " * depth
        click.echo(f"{indent}{block.annotation_text}")
        for part in block.parts:
            for line in highlight_tokens(part, color=color).splitlines():
                click.echo(f"{indent}  | {line}")
        for child in block.nested:
            _show(child, depth + 1)

    for block in _select(blocks, annotation):
        if not block.is_anonymous:
            _show(block, 0)
