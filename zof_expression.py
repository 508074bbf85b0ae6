"""
Expression evaluation for the ZOF engine.

The solvers only need two things from a formula: its value at a point and,
for Newton-Raphson, the text of its derivative. Both are expressed by the
`Evaluator` protocol so the numerical code never touches a parser directly.
`SympyEvaluator` is the default implementation.

Users can enter expressions such as:
    "x^3 - 5x + 2", "sin(x) - x/2", "exp(-x) - x", "ln(x) + e"

Formula text often comes straight from a web request, so it is screened
against an allow-list of characters and names before it reaches
`parse_expr`, and parsed without access to Python builtins.
"""

from __future__ import annotations

import logging
import math
import re
from functools import lru_cache
from tokenize import TokenError
from typing import Callable, Optional, Protocol, Tuple

import sympy as sp
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication_application,
    parse_expr,
    standard_transformations,
)

from zof_config import MAX_EXPRESSION_LENGTH

logger = logging.getLogger(__name__)

X_SYMBOL = sp.symbols("x")

TRANSFORMATIONS = standard_transformations + (
    implicit_multiplication_application,
    convert_xor,
)

_FUNCTIONS = {
    name: getattr(sp, name)
    for name in (
        "sin", "cos", "tan", "cot", "sec", "csc",
        "asin", "acos", "atan", "sinh", "cosh", "tanh",
        "asinh", "acosh", "atanh", "exp", "log", "sqrt", "cbrt",
        "Abs", "sign", "floor", "ceiling",
    )
}

# Every name a formula may mention; derivative text uses the same vocabulary.
_NAMES = dict(_FUNCTIONS, x=X_SYMBOL, e=sp.E, E=sp.E, pi=sp.pi, ln=sp.log, abs=sp.Abs)

# Only the constructors the parser's own transformations emit
_PARSER_GLOBALS = {
    "__builtins__": {},
    "Integer": sp.Integer,
    "Float": sp.Float,
    "Rational": sp.Rational,
    "Number": sp.Number,
    "Symbol": sp.Symbol,
    "Function": sp.Function,
}

_ALLOWED_CHARACTERS = set(
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "0123456789"
    " \t+-*/^().,"
)
_NAME_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9]*")


class ExpressionParseError(ValueError):
    """Raised when a user-supplied expression cannot be parsed."""


class Evaluator(Protocol):
    def evaluate(self, expr: str, x: float) -> float:
        ...

    def derive(self, expr: str, variable: str = "x") -> str:
        ...


def _screen(expr: str) -> None:
    """Reject text outside the formula vocabulary before it is parsed."""
    if len(expr) > MAX_EXPRESSION_LENGTH:
        raise ExpressionParseError(
            f"Expression is longer than {MAX_EXPRESSION_LENGTH} characters."
        )
    bad = set(expr) - _ALLOWED_CHARACTERS
    if bad:
        raise ExpressionParseError(f"Invalid character(s): {' '.join(sorted(bad))}")
    unknown = sorted(set(_NAME_PATTERN.findall(expr)) - set(_NAMES))
    if unknown:
        raise ExpressionParseError(f"Unknown name(s) in {expr!r}: {', '.join(unknown)}")


def _parse(expr: str) -> sp.Expr:
    if not expr or not expr.strip():
        raise ExpressionParseError("Function expression cannot be empty.")
    _screen(expr)
    try:
        parsed = parse_expr(
            expr,
            local_dict=dict(_NAMES),
            global_dict=dict(_PARSER_GLOBALS),
            transformations=TRANSFORMATIONS,
        )
    except (TokenError, SyntaxError, TypeError, ValueError, NameError, AttributeError) as exc:
        raise ExpressionParseError(f"Invalid function expression: {expr}") from exc
    if not isinstance(parsed, sp.Expr):
        raise ExpressionParseError(f"Not a numeric expression: {expr}")
    unknown = parsed.free_symbols - {X_SYMBOL}
    if unknown:
        names = ", ".join(sorted(str(symbol) for symbol in unknown))
        raise ExpressionParseError(f"Unknown symbol(s) in {expr!r}: {names}")
    return parsed


def _to_float(value) -> float:
    """Convert a lambdified result into a float, NaN when not a finite real."""
    if isinstance(value, complex):
        if abs(value.imag) > 1e-9:
            return math.nan
        value = value.real
    result = float(value)
    return result if math.isfinite(result) else math.nan


@lru_cache(maxsize=256)
def _compile(expr: str) -> Tuple[Optional[Callable[[float], float]], str]:
    # failures are cached too, so a bad formula is parsed once per text
    try:
        return sp.lambdify(X_SYMBOL, _parse(expr), "math"), ""
    except ExpressionParseError as exc:
        return None, str(exc)


def compile_expression(expr: str) -> Callable[[float], float]:
    """
    Convert an input string into a callable f(x).

    Results are cached by formula text; the callable holds no state, so a
    cache hit behaves exactly like a fresh compile.
    """
    func, error = _compile(expr)
    if func is None:
        raise ExpressionParseError(error)
    return func


def validate_expression(expr: str) -> str:
    """Return the stripped formula, or raise `ExpressionParseError`."""
    text = (expr or "").strip()
    compile_expression(text)
    return text


class SympyEvaluator:
    """Evaluator backed by `sympy` parsing and `sympy.lambdify`."""

    def evaluate(self, expr: str, x: float) -> float:
        try:
            func = compile_expression(expr)
            return _to_float(func(float(x)))
        except Exception as exc:  # parse, domain and overflow errors all mean "undefined here"
            logger.debug("f(%r) undefined for %r: %s", x, expr, exc)
            return math.nan

    def derive(self, expr: str, variable: str = "x") -> str:
        """Differentiate the expression; the result is itself a valid formula."""
        symbol = X_SYMBOL if variable == "x" else sp.Symbol(variable)
        return str(sp.diff(_parse(expr), symbol))


default_evaluator = SympyEvaluator()


def resolve_evaluator(evaluator: Optional[Evaluator]) -> Evaluator:
    return default_evaluator if evaluator is None else evaluator
