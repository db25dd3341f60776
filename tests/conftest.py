"""Shared pytest fixtures for the tokensink test suite."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

SAMPLE_CONFIG = """\
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
annotation = "@Skip"
"""

SAMPLE_SOURCE = "@Test 5+5\n@Case 10+10\n@Skip\n@Case 20+20\n@End\n"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tmp_project(tmp_path):
    """A directory holding a tokensink.toml and one annotated source file."""
    (tmp_path / "tokensink.toml").write_text(SAMPLE_CONFIG)
    src = tmp_path / "src"
    src.mkdir()
    (src / "cases.sink").write_text(SAMPLE_SOURCE)
    return tmp_path
