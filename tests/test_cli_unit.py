"""Tests for the interactive CLI."""

import math

import zof_cli


def _feed(monkeypatch, answers):
    replies = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(replies))


class TestFormatValue:
    def test_missing_values(self):
        assert zof_cli._format_value(None) == "--"
        assert zof_cli._format_value(math.nan) == "--"

    def test_numbers(self):
        assert zof_cli._format_value(1.23456789) == "1.23457"
        assert zof_cli._format_value(3) == "3"


class TestMain:
    def test_bisection_session(self, monkeypatch, capsys):
        _feed(monkeypatch, ["1", "x^3 - x - 2", "", "", "-2", "2", "n"])
        zof_cli.main()
        out = capsys.readouterr().out
        assert "Detailed Iterations" in out
        assert "Status        : Converged" in out
        assert "Estimated root: 1.52138" in out
        assert "Thanks for using the ZOF Solver!" in out

    def test_newton_shows_derivative(self, monkeypatch, capsys):
        _feed(monkeypatch, ["4", "x^2 - 2", "1e-10", "20", "1", "n"])
        zof_cli.main()
        out = capsys.readouterr().out
        assert "Derivative    : 2*x" in out
        assert "f'(x)" in out

    def test_fixed_point_prompts_for_g(self, monkeypatch, capsys):
        _feed(monkeypatch, ["3", "cos(x)", "", "", "1", "n"])
        zof_cli.main()
        out = capsys.readouterr().out
        assert "g(x)" in out
        assert "Converged" in out

    def test_failure_shows_kind(self, monkeypatch, capsys):
        _feed(monkeypatch, ["1", "x", "", "", "1", "2", "n"])
        zof_cli.main()
        out = capsys.readouterr().out
        assert "InvalidBracket: f(a) and f(b) must have opposite signs." in out

    def test_failure_shows_partial_history(self, monkeypatch, capsys):
        _feed(monkeypatch, ["3", "2*x", "", "", "1", "n"])
        zof_cli.main()
        out = capsys.readouterr().out
        assert "DivergenceDetected" in out
        assert "Detailed Iterations" in out

    def test_invalid_expression_is_reprompted(self, monkeypatch, capsys):
        _feed(monkeypatch, ["5", "x +", "x^3 - x - 2", "", "", "1", "2", "n"])
        zof_cli.main()
        out = capsys.readouterr().out
        assert "Input error: Invalid function expression: x +" in out
        assert "Converged" in out

    def test_invalid_options_reported(self, monkeypatch, capsys):
        _feed(monkeypatch, ["1", "x^3 - x - 2", "0", "", "-2", "2", "n"])
        zof_cli.main()
        assert "Input error: Tolerance must be a positive number." in capsys.readouterr().out

    def test_bad_menu_choice_then_exit(self, monkeypatch, capsys):
        _feed(monkeypatch, ["9", "abc", "0"])
        zof_cli.main()
        out = capsys.readouterr().out
        assert out.count("Invalid selection") == 2
        assert "Goodbye!" in out
