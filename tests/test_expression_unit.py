"""Tests for the SymPy-backed expression evaluator."""

import math

import pytest

import zof_expression
from zof_expression import (
    ExpressionParseError,
    SympyEvaluator,
    compile_expression,
    validate_expression,
)
from zof_sampler import sample_function


@pytest.fixture
def evaluator():
    return SympyEvaluator()


# ── evaluate ────────────────────────────────────────────────────────────

class TestEvaluate:
    def test_caret_is_power(self, evaluator):
        assert evaluator.evaluate("x^3 - x - 2", 2) == pytest.approx(4.0)

    def test_functions_and_constants(self, evaluator):
        assert evaluator.evaluate("sin(x) + cos(x)", 0) == pytest.approx(1.0)
        assert evaluator.evaluate("ln(e) + pi", 0) == pytest.approx(1 + math.pi)

    def test_constant_expression(self, evaluator):
        assert evaluator.evaluate("5", 123.0) == 5.0

    def test_division_by_zero_is_nan(self, evaluator):
        assert math.isnan(evaluator.evaluate("1/x", 0))

    def test_domain_error_is_nan(self, evaluator):
        assert math.isnan(evaluator.evaluate("log(x)", -1))
        assert math.isnan(evaluator.evaluate("sqrt(x)", -4))

    def test_negative_base_fractional_power_is_nan(self, evaluator):
        assert math.isnan(evaluator.evaluate("x^(1/3)", -8))

    def test_overflow_is_nan(self, evaluator):
        assert math.isnan(evaluator.evaluate("exp(x)", 1000))

    def test_parse_error_is_nan(self, evaluator):
        assert math.isnan(evaluator.evaluate("x +* 2", 1))
        assert math.isnan(evaluator.evaluate("", 1))

    def test_unknown_symbol_is_nan(self, evaluator):
        assert math.isnan(evaluator.evaluate("x + y", 1))


# ── derive ──────────────────────────────────────────────────────────────

class TestDerive:
    def test_polynomial(self, evaluator):
        assert evaluator.derive("x^3 - x - 2") == "3*x**2 - 1"

    def test_derivative_text_is_evaluable(self, evaluator):
        derivative = evaluator.derive("sin(x)*x")
        assert evaluator.evaluate(derivative, 0) == pytest.approx(0.0)
        assert evaluator.evaluate(derivative, math.pi) == pytest.approx(-math.pi)

    def test_invalid_expression_raises(self, evaluator):
        with pytest.raises(ExpressionParseError):
            evaluator.derive("x +")


# ── validation and caching ──────────────────────────────────────────────

class TestValidation:
    def test_strips_whitespace(self):
        assert validate_expression("  x^2 - 2 ") == "x^2 - 2"

    @pytest.mark.parametrize("expr", ["", "   ", "x +", "x = 2", "x + y"])
    def test_rejects_bad_input(self, expr):
        with pytest.raises(ExpressionParseError):
            validate_expression(expr)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_expression("(((")

    def test_compile_is_cached_by_text(self):
        assert compile_expression("x^2 + 1") is compile_expression("x^2 + 1")

    def test_failed_parse_is_cached(self, monkeypatch):
        calls = []
        original = zof_expression._parse

        def counting_parse(expr):
            calls.append(expr)
            return original(expr)

        zof_expression._compile.cache_clear()
        monkeypatch.setattr(zof_expression, "_parse", counting_parse)
        sampled = sample_function("cos(x) +", 0, 1)
        assert len(sampled.samples) == 500
        assert all(math.isnan(y) for _, y in sampled.samples)
        assert calls == ["cos(x) +"]
        zof_expression._compile.cache_clear()


# ── untrusted input ─────────────────────────────────────────────────────

class TestUntrustedInput:
    @pytest.mark.parametrize("expr", [
        "x + 0*len(__import__('os').listdir('/'))",
        "x + open('f', 'w')",
        "__import__('os').system('id')",
        "x.__class__",
        "[x for x in (1,)]",
        "{1: 2}",
        "x; 1",
        "lambda: 1",
        'x + "1"',
    ])
    def test_code_is_never_executed(self, expr, evaluator):
        with pytest.raises(ExpressionParseError):
            validate_expression(expr)
        assert math.isnan(evaluator.evaluate(expr, 1.0))

    @pytest.mark.parametrize("char", ["_", "'", '"', "[", "]", "{", "}", ";", ":"])
    def test_rejects_disallowed_characters(self, char):
        with pytest.raises(ExpressionParseError, match="Invalid character"):
            validate_expression(f"x {char} 1")

    @pytest.mark.parametrize("name", ["len", "eval", "exec", "open", "getattr", "Symbol"])
    def test_rejects_unknown_names(self, name):
        with pytest.raises(ExpressionParseError, match="Unknown name"):
            validate_expression(f"{name}(x)")

    def test_rejects_overlong_text(self):
        with pytest.raises(ExpressionParseError, match="longer than"):
            validate_expression("x" + " + x" * 100)


# ── implicit multiplication ─────────────────────────────────────────────

class TestImplicitMultiplication:
    def test_coefficient_before_variable(self, evaluator):
        assert validate_expression("2x - 4") == "2x - 4"
        assert evaluator.evaluate("2x - 4", 2) == pytest.approx(0.0)

    def test_coefficient_before_function(self, evaluator):
        assert evaluator.evaluate("2sin(x)", math.pi / 2) == pytest.approx(2.0)

    def test_derivative_of_implicit_product(self, evaluator):
        assert evaluator.derive("x^3 - 5x + 2") == "3*x**2 - 5"
