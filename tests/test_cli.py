"""
Tests for the crashview CLI.

Copyright (c) 2025 Graziano Labs Corp.
"""

import pytest
from click.testing import CliRunner
from crashview.cli.main import cli


@pytest.fixture
def runner(monkeypatch, tmp_path):
    for name in ("DEBUG_CONTEXT_BUDGET", "DEBUG_SHOW_SOURCE", "DEBUG_CONTEXT_LINES"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DEBUG_PROJECT_ROOT", str(tmp_path))
    return CliRunner()


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "module.py"
    path.write_text("a = 1\nb = 2\nc = 3\nd = 4\ne = 5\n")
    return path


def test_config_summary(runner, tmp_path):
    """config prints the resolved settings."""
    result = runner.invoke(cli, ["config"])
    assert result.exit_code == 0
    assert "crashview Configuration Summary" in result.output
    assert str(tmp_path) in result.output


def test_config_invalid(runner, monkeypatch):
    """Invalid settings abort with an error."""
    monkeypatch.setenv("DEBUG_CONTEXT_BUDGET", "0")
    result = runner.invoke(cli, ["config"])
    assert result.exit_code != 0
    assert "context_budget_bytes must be positive" in result.output


def test_excerpt_marks_target_line(runner, source):
    """excerpt prints numbered lines with a marker on the target."""
    result = runner.invoke(cli, ["excerpt", str(source), "3", "-c", "1"])
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "  2 | b = 2",
        "> 3 | c = 3",
        "  4 | d = 4",
    ]


def test_excerpt_root_option(runner, source, tmp_path):
    """--root overrides the project root."""
    other = tmp_path / "elsewhere"
    other.mkdir()
    result = runner.invoke(cli, ["excerpt", str(source), "1", "--root", str(other)])
    assert result.exit_code == 1
    assert "File is outside the project root" in result.output


def test_excerpt_traversal_rejected(runner, source, tmp_path):
    """Traversal paths are refused."""
    path = str(tmp_path / "x" / ".." / "module.py")
    result = runner.invoke(cli, ["excerpt", path, "1"])
    assert result.exit_code == 1
    assert "Path traversal is not allowed" in result.output


def test_serve_runs_demo(runner, monkeypatch):
    """serve hands the demo app to uvicorn."""
    calls = {}

    def fake_run(app, host, port):
        calls.update(app=app, host=host, port=port)

    monkeypatch.setattr("uvicorn.run", fake_run)
    result = runner.invoke(cli, ["serve", "--port", "9001"])
    assert result.exit_code == 0
    assert calls["port"] == 9001
    assert calls["host"] == "127.0.0.1"
    assert any(getattr(r, "path", None) == "/boom" for r in calls["app"].routes)
