"""Shared pytest fixtures for the Chtholly test suite."""

from __future__ import annotations

import pytest
from click.testing import CliRunner


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tmp_project(tmp_path):
    """Create a minimal chtholly project in a temp dir."""
    (tmp_path / "chtholly.toml").write_text(
        '[package]\nname = "testproj"\nversion = "1.0.0"\n'
        "[format]\nindent_width = 2\n"
        "[diagnostics]\ncolor = false\n"
    )
    src = tmp_path / "src"
    src.mkdir()
    (src / "main.cns").write_text("let x: int = 5;\nlet y = x * 2;\n")
    return tmp_path
