"""Tests for the tokensink CLI, config, error rendering, and highlighting."""

from __future__ import annotations

import json

import pytest
from pygments.token import Name

from tests.conftest import SAMPLE_CONFIG
from tokensink.cli import main
from tokensink.config import find_config, load_config, load_registry
from tokensink.errors import (
    ConfigError,
    Diagnostic,
    DiagnosticLabel,
    DiagnosticRenderer,
    LexError,
    Severity,
)
from tokensink.highlight import AnnotatedSourceLexer, highlight_tokens
from tokensink.lexer import lex
from tokensink.sinks import (
    PartSpec,
    Sink,
    TokenCount,
    UntilAnnotation,
    UntilNewline,
    UntilToken,
)
from tokensink.source import Span
from tokensink.tokens import TokenType

# --- CLI tests ---


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "collect" in result.output
        assert "tokens" in result.output
        assert "show" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_collect_tree(self, runner, tmp_project):
        source = tmp_project / "src" / "cases.sink"
        result = runner.invoke(main, ["collect", str(source)])
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "@Test"
        assert "  @Case" in lines
        assert "  @Skip" in lines
        assert "part 0: ' 10+10\\n'" in result.output

    def test_collect_json(self, runner, tmp_project):
        source = tmp_project / "src" / "cases.sink"
        result = runner.invoke(main, ["collect", str(source), "--format", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [b["annotation"] for b in data] == ["@Test", ""]
        assert [c["annotation"] for c in data[0]["nested"]] == ["@Case", "@Skip", "@Case"]
        assert data[0]["parts"][0][-1] == {
            "type": "ANNOTATION", "text": "@End", "line": 5, "col": 1,
        }

    def test_collect_filter_by_annotation(self, runner, tmp_project):
        source = tmp_project / "src" / "cases.sink"
        result = runner.invoke(
            main, ["collect", str(source), "--format", "json", "--annotation", "@Case"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert len(data) == 2
        assert all(b["annotation"] == "@Case" for b in data)

    def test_collect_format_from_config(self, runner, tmp_project):
        config = tmp_project / "tokensink.toml"
        config.write_text(SAMPLE_CONFIG + '\n[output]\nformat = "json"\n')
        source = tmp_project / "src" / "cases.sink"
        result = runner.invoke(main, ["collect", str(source)])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)[0]["annotation"] == "@Test"

    def test_collect_explicit_config(self, runner, tmp_path):
        config = tmp_path / "other.toml"
        config.write_text('[[sink]]\nannotation = "@Mark"\n')
        source = tmp_path / "input.sink"
        source.write_text("1 @Mark 2")
        result = runner.invoke(main, ["collect", str(source), "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == [
            "<anonymous>",
            "  part 0: '1 '",
            "@Mark",
            "<anonymous>",
            "  part 0: ' 2'",
        ]

    def test_collect_without_config(self, runner, tmp_path, monkeypatch):
        source = tmp_path / "input.sink"
        source.write_text("1")
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(main, ["collect", "input.sink"])
        assert result.exit_code == 1
        assert "no tokensink.toml found" in result.output

    def test_collect_invalid_config(self, runner, tmp_path):
        (tmp_path / "tokensink.toml").write_text(
            '[[sink]]\nannotation = "@A"\n[[sink.part]]\nuntil = "forever"\n'
        )
        source = tmp_path / "input.sink"
        source.write_text("1")
        result = runner.invoke(main, ["collect", str(source)])
        assert result.exit_code == 1
        assert "error[E200]" in result.output
        assert "unknown part rule 'forever'" in result.output

    def test_collect_misshapen_config(self, runner, tmp_path):
        (tmp_path / "tokensink.toml").write_text('output = "json"\n')
        source = tmp_path / "input.sink"
        source.write_text("1")
        result = runner.invoke(main, ["collect", str(source)])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "error[E200]" in result.output
        assert "'output' must be a table" in result.output

    def test_collect_lex_error(self, runner, tmp_project):
        source = tmp_project / "src" / "bad.sink"
        source.write_text("@Test 5 ? 5\n")
        result = runner.invoke(main, ["collect", str(source)])
        assert result.exit_code == 1
        assert "E100" in result.output
        assert "unexpected character" in result.output

    def test_tokens_command(self, runner, tmp_project):
        source = tmp_project / "src" / "cases.sink"
        result = runner.invoke(main, ["tokens", str(source)])
        assert result.exit_code == 0, result.output
        first = result.output.splitlines()[0]
        assert first.endswith("'@Test'")
        assert "ANNOTATION" in first
        assert ":1:1" in first

    def test_show_plain(self, runner, tmp_project):
        source = tmp_project / "src" / "cases.sink"
        result = runner.invoke(main, ["show", str(source), "--no-color", "--annotation", "@Case"])
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == [
            "@Case",
            "  |  10+10",
            "@Case",
            "  |  20+20",
        ]

    def test_show_nested(self, runner, tmp_project):
        source = tmp_project / "src" / "cases.sink"
        result = runner.invoke(main, ["show", str(source), "--no-color"])
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "@Test"
        assert "  @Case" in lines
        assert "    |  10+10" in lines
        assert "\x1b[" not in result.output

    def test_lex_error_colored_by_default(self, runner, tmp_project):
        source = tmp_project / "src" / "bad.sink"
        source.write_text("@Test 5 ? 5\n")
        result = runner.invoke(main, ["collect", str(source)], color=True)
        assert result.exit_code == 1
        assert "\x1b[1;31merror[E100]" in result.output

    def test_no_color_applies_to_lex_errors(self, runner, tmp_project):
        source = tmp_project / "src" / "bad.sink"
        source.write_text("@Test 5 ? 5\n")
        result = runner.invoke(main, ["show", str(source), "--no-color"], color=True)
        assert result.exit_code == 1
        assert "error[E100]" in result.output
        assert "\x1b[" not in result.output

    def test_no_color_applies_to_config_errors(self, runner, tmp_path):
        (tmp_path / "tokensink.toml").write_text("sink = 3\n")
        source = tmp_path / "input.sink"
        source.write_text("1")
        result = runner.invoke(main, ["show", str(source), "--no-color"], color=True)
        assert result.exit_code == 1
        assert "error[E200]" in result.output
        assert "\x1b[" not in result.output

    def test_config_color_applies_to_lex_errors(self, runner, tmp_project):
        config = tmp_project / "tokensink.toml"
        config.write_text(SAMPLE_CONFIG + "\n[output]\ncolor = false\n")
        source = tmp_project / "src" / "bad.sink"
        source.write_text("@Test 5 ? 5\n")
        result = runner.invoke(main, ["collect", str(source)], color=True)
        assert result.exit_code == 1
        assert "error[E100]" in result.output
        assert "\x1b[" not in result.output


# --- Config tests ---


class TestConfig:
    def test_load_config(self, tmp_project):
        config = load_config(tmp_project / "tokensink.toml")
        registry = config.registry
        assert [s.annotation_text for s in registry] == ["@Test", "@Case", "@Skip"]
        assert registry.find("@Test") == Sink.until_annotation("@Test", "@End")
        assert registry.find("@Case") == Sink.until_newline("@Case")
        assert registry.find("@Skip").is_lone
        assert config.output.format == "tree"
        assert config.output.color is True

    def test_load_all_rules(self, tmp_path):
        toml = tmp_path / "tokensink.toml"
        toml.write_text(
            '[[sink]]\nannotation = "@Fn"\n'
            '[[sink.part]]\nuntil = "count"\ncount = 2\nexclude = ["whitespace", "Comma"]\n'
            '[[sink.part]]\nuntil = "token"\ntoken = "end_expression"\n'
            '[[sink.part]]\nuntil = "newline"\n'
            '[[sink.part]]\nuntil = "annotation"\nannotation = "@End"\n'
        )
        sink = load_registry(toml).find("@Fn")
        assert sink.parts == (
            PartSpec(TokenCount(2), frozenset({TokenType.WHITESPACE, TokenType.COMMA})),
            PartSpec(UntilToken(TokenType.END_EXPRESSION)),
            PartSpec(UntilNewline()),
            PartSpec(UntilAnnotation("@End")),
        )

    def test_load_config_defaults(self, tmp_path):
        toml = tmp_path / "tokensink.toml"
        toml.write_text("")
        config = load_config(toml)
        assert len(config.registry) == 0
        assert config.output.format == "tree"

    def test_output_section(self, tmp_path):
        toml = tmp_path / "tokensink.toml"
        toml.write_text('[output]\nformat = "json"\ncolor = false\n')
        config = load_config(toml)
        assert config.output.format == "json"
        assert config.output.color is False

    @pytest.mark.parametrize("body, message", [
        ('[[sink]]\nannotation = ""\n', "'annotation' must be a non-empty string"),
        ('[[sink]]\nannotation = "@A"\n[[sink.part]]\nuntil = "count"\ncount = 0\n',
         "'count' must be a positive integer"),
        ('[[sink]]\nannotation = "@A"\n[[sink.part]]\nuntil = "token"\ntoken = "bogus"\n',
         "unknown token type 'bogus'"),
        ('[[sink]]\nannotation = "@A"\n[[sink.part]]\nuntil = "token"\n',
         "'token' is required"),
        ('[[sink]]\nannotation = "@A"\n[[sink.part]]\nuntil = "annotation"\n',
         "'annotation' must be a non-empty string"),
        ('[output]\nformat = "xml"\n', "unknown output format 'xml'"),
        ("[[sink]\n", "invalid TOML"),
        ("sink = 3\n", "'sink' must be an array of tables"),
        ('sink = ["@A"]\n', "sink #1: expected a table"),
        ('[[sink]]\nannotation = "@A"\npart = 5\n', "'part' must be an array of tables"),
        ('[[sink]]\nannotation = "@A"\n[[sink.part]]\nuntil = "newline"\nexclude = "whitespace"\n',
         "'exclude' must be a list of token type names"),
        ('[[sink]]\nannotation = "@A"\n[[sink.part]]\nuntil = "newline"\nexclude = [1]\n',
         "'exclude' must be a list of token type names"),
        ('output = "json"\n', "'output' must be a table"),
        ('[output]\ncolor = "no"\n', "'color' must be true or false"),
    ])
    def test_invalid_config(self, tmp_path, body, message):
        toml = tmp_path / "tokensink.toml"
        toml.write_text(body)
        with pytest.raises(ConfigError, match=message) as exc_info:
            load_config(toml)
        assert exc_info.value.diagnostic.code == "E200"

    def test_find_config(self, tmp_project):
        # find_config from a subdirectory should find tokensink.toml in parent
        found = find_config(tmp_project / "src")
        assert found == tmp_project / "tokensink.toml"

    def test_find_config_from_file(self, tmp_project):
        found = find_config(tmp_project / "src" / "cases.sink")
        assert found == tmp_project / "tokensink.toml"

    def test_find_config_not_found(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(FileNotFoundError, match="No tokensink.toml found"):
            find_config(empty)


# --- Error rendering tests ---


class TestDiagnostics:
    def test_render_error(self):
        span = Span("cases.sink", 3, 9, 3, 9)
        diag = Diagnostic(
            severity=Severity.ERROR,
            code="E100",
            message="unexpected character: '?'",
            labels=[DiagnosticLabel(span=span)],
            notes=["annotations start with '@'"],
        )
        output = DiagnosticRenderer(color=False).render(diag)
        assert "error[E100]: unexpected character: '?'" in output
        assert "--> cases.sink:3:9" in output
        assert "note: annotations start with '@'" in output

    def test_render_warning(self):
        diag = Diagnostic(severity=Severity.WARNING, code="W001", message="unused sink")
        output = DiagnosticRenderer(color=False).render(diag)
        assert output == "warning[W001]: unused sink"

    def test_render_with_registered_source(self):
        renderer = DiagnosticRenderer(color=False)
        renderer.add_source("<test>", "@Test 5 ? 5\n")
        with pytest.raises(LexError) as exc_info:
            lex("@Test 5 ? 5\n", "<test>")
        output = renderer.render(exc_info.value.diagnostics[0])
        lines = output.splitlines()
        assert "     1 | @Test 5 ? 5" in lines
        assert "     |         ^" in lines

    def test_color_codes(self):
        diag = Diagnostic(severity=Severity.ERROR, code="E100", message="bad")
        assert "\033[1;31m" in DiagnosticRenderer(color=True).render(diag)

    def test_lex_error_message(self):
        diags = [
            Diagnostic(severity=Severity.ERROR, code="E100", message="first"),
            Diagnostic(severity=Severity.ERROR, code="E102", message="second"),
        ]
        err = LexError(diags)
        assert str(err) == "2 error(s): first; second"
        assert err.diagnostics == diags


# --- Highlighting tests ---


class TestHighlight:
    def test_annotation_is_decorator(self):
        tokens = list(AnnotatedSourceLexer().get_tokens("@Test 5"))
        assert tokens[0] == (Name.Decorator, "@Test")

    def test_plain_text_round_trip(self):
        assert highlight_tokens(lex("@Test {5 + 5}"), color=False) == "@Test {5 + 5}"

    def test_colored_output(self):
        out = highlight_tokens(lex('@Test "x" 5'), color=True)
        assert "\x1b[" in out
        assert "@Test" in out

    def test_empty_run(self):
        assert highlight_tokens([], color=True) == ""
