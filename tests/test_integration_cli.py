"""Integration tests for CLI functionality."""

import json
import subprocess
import sys

import pytest

from calcgraph_pkg.cli import main_entry, parse_variables
from calcgraph_pkg.config import VERSION


def run_cli(*args, timeout=30):
    return subprocess.run(
        [sys.executable, "-m", "calcgraph_pkg.cli", *args],
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def test_cli_version():
    """Test --version flag."""
    result = run_cli("--version")
    assert result.returncode == 0
    assert result.stdout.strip() == VERSION


def test_cli_eval_json():
    """Test CLI evaluation with JSON output."""
    result = run_cli("--eval", "2+2", "--format", "json")
    assert result.returncode == 0
    data = json.loads(result.stdout.strip())
    assert data["ok"] is True
    assert data["result"] == "4"


def test_cli_eval_human():
    """Test CLI evaluation with human output."""
    result = run_cli("-e", "2 + 3 * 4")
    assert result.returncode == 0
    assert result.stdout.strip() == "14"


def test_cli_error_exit_code():
    result = run_cli("-e", "1/0")
    assert result.returncode == 1
    assert result.stdout.startswith("Error:")


def test_package_main():
    result = subprocess.run(
        [sys.executable, "-m", "calcgraph_pkg", "-e", "(2+3)*4 - 5"],
        capture_output=True,
        text=True,
        timeout=30,
    )
    assert result.returncode == 0
    assert result.stdout.strip() == "15"


class TestMainEntry:
    """In-process CLI runs."""

    def test_variables(self, capsys):
        assert main_entry(["-e", "x^2 + y", "--var", "x=3", "--var", "y=1"]) == 0
        assert capsys.readouterr().out.strip() == "10"

    def test_bad_variable(self, capsys):
        assert main_entry(["-e", "x^2", "--var", "x"]) == 1
        assert "Invalid variable binding" in capsys.readouterr().out

    def test_parse_error(self, capsys):
        assert main_entry(["-e", "2 +"]) == 1
        assert capsys.readouterr().out.startswith("Error:")

    def test_empty_input(self, capsys):
        assert main_entry(["-e", "   "]) == 1
        assert "Empty input" in capsys.readouterr().out

    def test_bad_precision(self, capsys):
        assert main_entry(["-p", "99", "-e", "1"]) == 1

    def test_precision_and_notation(self, capsys):
        assert main_entry(["-p", "4", "-e", "2/3"]) == 0
        assert capsys.readouterr().out.strip() == "0.6667"
        assert main_entry(["-e", "12345", "--notation", "exponential"]) == 0
        assert "e+" in capsys.readouterr().out

    def test_solve(self, capsys):
        assert main_entry(["-e", "2*x + 1 = 5", "--solve", "x"]) == 0
        assert capsys.readouterr().out.strip() == "Solution: 2"

    def test_diff(self, capsys):
        assert main_entry(["-e", "x^3", "--diff", "x"]) == 0
        assert capsys.readouterr().out.strip() == "3*x^2"

    def test_integrate(self, capsys):
        assert main_entry(["-e", "x^2", "--integrate", "x"]) == 0
        assert capsys.readouterr().out.strip() == "x^3 / 3"
        assert main_entry(["-e", "x^2", "--integrate", "x", "--bounds", "0", "3"]) == 0
        assert float(capsys.readouterr().out.strip()) == 9

    def test_simplify(self, capsys):
        assert main_entry(["-e", "x + x", "--simplify"]) == 0
        assert capsys.readouterr().out.strip() == "2*x"

    def test_special_points(self, capsys):
        assert main_entry(["-e", "x^2 - 4", "--special-points", "--domain", "-5", "5"]) == 0
        out = capsys.readouterr().out
        assert "Minimum:" in out
        assert "-4.000" in out

    def test_plot_json(self, capsys):
        args = ["-e", "x^2", "--plot", "2d", "--domain", "-1", "1", "--resolution", "4"]
        assert main_entry(args + ["--format", "json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["ok"] is True
        assert len(data["graph"]["points"]) == 5

    def test_plot_human(self, capsys):
        args = ["-e", "x", "--plot", "2d", "--domain", "0", "1", "--resolution", "2"]
        assert main_entry(args) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[0] == "3 points (2d)"
        assert lines[2] == "0.5\t0.5"

    def test_repl(self, capsys, monkeypatch):
        lines = iter(["2 + 2", "let x 3", "vars", "x * 2", "2*x = 4", "help", "", "quit"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
        assert main_entry([]) == 0
        out = capsys.readouterr().out
        assert "4" in out
        assert "x = 3" in out
        assert "6" in out
        assert "Solution: 2" in out
        assert "Commands:" in out

    def test_repl_eof(self, capsys, monkeypatch):
        def eof(prompt=""):
            raise EOFError

        monkeypatch.setattr("builtins.input", eof)
        assert main_entry([]) == 0


def test_parse_variables():
    assert parse_variables(["x=2", " y = 0.5 "]) == {"x": "2", "y": "0.5"}
    assert parse_variables(None) == {}
    with pytest.raises(ValueError):
        parse_variables(["=3"])
