"""
Core numerical methods for the Zero of Functions (ZOF) engine.

This module centralizes:
    - The option, error and result types every solver shares.
    - Implementations of five classical root-finding algorithms.
    - A thin façade (`run_method`) that normalizes inputs/outputs so both the
      CLI and Flask web layers can consume the same API.

Each solver returns a `SolveResult` with:
    iterations: List[Dict[str, float]]   # one row per step, "iter" is 1-based
    summary: Summary                     # root, count, convergence, curve
    columns: List[str]                   # keys to display for each row
    message: str

Row values are rounded to 10 decimals for display; the loops themselves
always run on full-precision floats.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from zof_config import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    DISPLAY_DECIMALS,
    DIVERGENCE_LIMIT,
    EPSILON,
)
from zof_expression import Evaluator, ExpressionParseError, resolve_evaluator
from zof_sampler import sample_function

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Options and errors
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class Options:
    tol: float = DEFAULT_TOLERANCE
    max_iter: int = DEFAULT_MAX_ITERATIONS

    def __post_init__(self) -> None:
        if not self.tol > 0:
            raise ValueError("Tolerance must be a positive number.")
        if not isinstance(self.max_iter, int) or self.max_iter < 1:
            raise ValueError("Maximum iterations must be a whole number of at least 1.")


class RootFindingError(ValueError):
    """
    Base class for solver failures.

    `kind` names the failure for display; `iterations` holds the rows
    recorded before the failure (empty when a precondition failed).
    """

    kind = "RootFindingError"

    def __init__(self, message: str, iterations: Optional[Sequence[Dict[str, float]]] = None):
        super().__init__(message)
        self.iterations: List[Dict[str, float]] = list(iterations or [])


class InvalidBracketError(RootFindingError):
    kind = "InvalidBracket"


class NonFiniteEvaluationError(RootFindingError):
    kind = "NonFiniteEvaluation"


class ZeroDerivativeError(RootFindingError):
    kind = "ZeroDerivative"


class ZeroDenominatorError(RootFindingError):
    kind = "ZeroDenominator"


class DivergenceError(RootFindingError):
    """The iterate escaped +/-1e10; the formulation will not converge."""

    kind = "DivergenceDetected"


# --------------------------------------------------------------------------- #
# Result container
# --------------------------------------------------------------------------- #


@dataclass
class Summary:
    root: float
    iterations: int
    converged: bool
    plot_range: Tuple[float, float]
    samples: List[Tuple[float, float]]
    y_min: float
    y_max: float
    extras: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SolveResult:
    method: str
    iterations: List[Dict[str, float]]
    summary: Summary
    columns: List[str]
    message: str

    @property
    def converged(self) -> bool:
        return self.summary.converged

    @property
    def root(self) -> float:
        return self.summary.root

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe rendering; NaN and infinities become None."""
        summary = self.summary
        payload: Dict[str, Any] = {
            "root": _json_number(summary.root),
            "iterations": summary.iterations,
            "converged": summary.converged,
            "plotRange": list(summary.plot_range),
            "samples": [{"x": x, "y": _json_number(y)} for x, y in summary.samples],
            "yMin": summary.y_min,
            "yMax": summary.y_max,
        }
        for key, value in summary.extras.items():
            payload[_camel_case(key)] = value
        return {
            "method": self.method,
            "message": self.message,
            "columns": list(self.columns),
            "iterations": json_rows(self.iterations),
            "summary": payload,
        }


def _json_number(value):
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def json_rows(rows: Sequence[Dict[str, float]]) -> List[Dict[str, Any]]:
    """Copy iteration rows with non-finite values replaced by None."""
    return [{key: _json_number(value) for key, value in row.items()} for row in rows]


def _camel_case(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _record(**fields: float) -> Dict[str, float]:
    """Rounded copy of one step for display."""
    return {
        key: value if key == "iter" else round(float(value), DISPLAY_DECIMALS)
        for key, value in fields.items()
    }


def _assemble(
    method: str,
    expr: str,
    iterations: List[Dict[str, float]],
    columns: List[str],
    *,
    root: float,
    converged: bool,
    message: str,
    plot_range: Tuple[float, float],
    evaluator: Evaluator,
    extras: Optional[Dict[str, Any]] = None,
) -> SolveResult:
    sampled = sample_function(expr, plot_range[0], plot_range[1], evaluator=evaluator)
    if converged:
        logger.info("%s converged to %.10g in %d iterations", method, root, len(iterations))
    else:
        logger.info("%s stopped without convergence: %s", method, message)
    return SolveResult(
        method=method,
        iterations=iterations,
        summary=Summary(
            root=root,
            iterations=len(iterations),
            converged=converged,
            plot_range=plot_range,
            samples=sampled.samples,
            y_min=sampled.y_min,
            y_max=sampled.y_max,
            extras=extras or {},
        ),
        columns=list(columns),
        message=message,
    )


def _converged_message(i: int) -> str:
    return f"Converged in {i} iterations."


def _non_finite_message(i: int) -> str:
    return f"Stopped at iteration {i}: the function is not finite there."


EXHAUSTED_MESSAGE = "Maximum iterations reached without convergence."

# Row keys per method, in display order
METHOD_COLUMNS = {
    "bisection": ["iter", "a", "b", "mid", "fx", "width", "error"],
    "regula_falsi": ["iter", "a", "b", "fa", "fb", "c", "fc", "width", "error"],
    "fixed_point": ["iter", "x", "gx", "diff"],
    "newton_raphson": ["iter", "x", "fx", "dfx", "xnext", "error", "diff"],
    "secant": ["iter", "xprev", "x", "fprev", "fx", "xnext", "error", "diff"],
}


# --------------------------------------------------------------------------- #
# Numerical methods
# --------------------------------------------------------------------------- #


def _check_bracket(evaluator: Evaluator, expr: str, a: float, b: float) -> Tuple[float, float]:
    fa, fb = evaluator.evaluate(expr, a), evaluator.evaluate(expr, b)
    if not (math.isfinite(fa) and math.isfinite(fb)):
        raise NonFiniteEvaluationError(
            f"f(a) or f(b) is not finite: f({a:g}) = {fa}, f({b:g}) = {fb}."
        )
    if fa * fb > 0:
        raise InvalidBracketError("f(a) and f(b) must have opposite signs.")
    return fa, fb


def _check_divergence(method: str, x_next: float, iterations: List[Dict[str, float]]) -> None:
    if abs(x_next) > DIVERGENCE_LIMIT:
        logger.warning("%s diverged after %d iterations", method, len(iterations))
        raise DivergenceError(
            f"Iterate {x_next:.6g} exceeds {DIVERGENCE_LIMIT:g}; the method is diverging.",
            iterations,
        )


def solve_bisection(
    expr: str,
    a0: float,
    b0: float,
    options: Optional[Options] = None,
    evaluator: Optional[Evaluator] = None,
) -> SolveResult:
    options = options or Options()
    evaluator = resolve_evaluator(evaluator)
    a, b = float(a0), float(b0)
    fa, _ = _check_bracket(evaluator, expr, a, b)

    iterations: List[Dict[str, float]] = []
    mid = a
    converged = False
    message = EXHAUSTED_MESSAGE
    for i in range(1, options.max_iter + 1):
        mid = (a + b) / 2.0
        fmid = evaluator.evaluate(expr, mid)
        width = abs(b - a)
        iterations.append(
            _record(iter=i, a=a, b=b, mid=mid, fx=fmid, width=width, error=abs(fmid))
        )
        if not math.isfinite(fmid):
            message = _non_finite_message(i)
            break
        if abs(fmid) < options.tol or width / 2 < options.tol:
            converged = True
            message = _converged_message(i)
            break
        if fa * fmid <= 0:
            b = mid
        else:
            a, fa = mid, fmid

    return _assemble(
        "bisection",
        expr,
        iterations,
        METHOD_COLUMNS["bisection"],
        root=mid,
        converged=converged,
        message=message,
        plot_range=(float(a0) - 1, float(b0) + 1),
        evaluator=evaluator,
        extras={"initial_interval": [float(a0), float(b0)]},
    )


def solve_false_position(
    expr: str,
    a0: float,
    b0: float,
    options: Optional[Options] = None,
    evaluator: Optional[Evaluator] = None,
) -> SolveResult:
    options = options or Options()
    evaluator = resolve_evaluator(evaluator)
    a, b = float(a0), float(b0)
    fa, fb = _check_bracket(evaluator, expr, a, b)

    iterations: List[Dict[str, float]] = []
    c = a
    converged = False
    message = EXHAUSTED_MESSAGE
    for i in range(1, options.max_iter + 1):
        denominator = fb - fa
        # equal values inside a valid bracket means both endpoints are roots
        c = a if denominator == 0 else (a * fb - b * fa) / denominator
        fc = evaluator.evaluate(expr, c)
        iterations.append(
            _record(
                iter=i, a=a, b=b, fa=fa, fb=fb, c=c, fc=fc,
                width=abs(b - a), error=abs(fc),
            )
        )
        if not math.isfinite(fc):
            message = _non_finite_message(i)
            break
        if abs(fc) < options.tol:
            converged = True
            message = _converged_message(i)
            break
        if fa * fc <= 0:
            b, fb = c, fc
        else:
            a, fa = c, fc

    return _assemble(
        "regula_falsi",
        expr,
        iterations,
        METHOD_COLUMNS["regula_falsi"],
        root=c,
        converged=converged,
        message=message,
        plot_range=(float(a0) - 1, float(b0) + 1),
        evaluator=evaluator,
        extras={"initial_interval": [float(a0), float(b0)]},
    )


def solve_fixed_point(
    g_expr: str,
    x0: float,
    options: Optional[Options] = None,
    evaluator: Optional[Evaluator] = None,
) -> SolveResult:
    """Iterate x <- g(x) until successive iterates agree within `tol`."""
    options = options or Options()
    evaluator = resolve_evaluator(evaluator)
    x = float(x0)

    iterations: List[Dict[str, float]] = []
    converged = False
    message = EXHAUSTED_MESSAGE
    for i in range(1, options.max_iter + 1):
        x_next = evaluator.evaluate(g_expr, x)
        diff = abs(x_next - x)
        iterations.append(_record(iter=i, x=x, gx=x_next, diff=diff))
        if not math.isfinite(x_next):
            message = _non_finite_message(i)
            break
        _check_divergence("fixed_point", x_next, iterations)
        x = x_next
        if diff < options.tol:
            converged = True
            message = _converged_message(i)
            break

    return _assemble(
        "fixed_point",
        g_expr,
        iterations,
        METHOD_COLUMNS["fixed_point"],
        root=x,
        converged=converged,
        message=message,
        plot_range=(float(x0) - 5, float(x0) + 5),
        evaluator=evaluator,
    )


def solve_newton(
    expr: str,
    x0: float,
    options: Optional[Options] = None,
    evaluator: Optional[Evaluator] = None,
) -> SolveResult:
    """
    Newton-Raphson with a symbolic derivative.

    The derivative text is derived once up front and reported in
    ``summary.extras["derivative"]``. Raises `ExpressionParseError` when the
    formula cannot be differentiated.
    """
    options = options or Options()
    evaluator = resolve_evaluator(evaluator)
    derivative = evaluator.derive(expr, "x")
    x = float(x0)

    iterations: List[Dict[str, float]] = []
    converged = False
    message = EXHAUSTED_MESSAGE
    for i in range(1, options.max_iter + 1):
        fx = evaluator.evaluate(expr, x)
        dfx = evaluator.evaluate(derivative, x)
        if not (math.isfinite(fx) and math.isfinite(dfx)):
            iterations.append(_record(iter=i, x=x, fx=fx, dfx=dfx))
            message = _non_finite_message(i)
            break
        if abs(dfx) < EPSILON:
            logger.warning("newton_raphson hit a zero derivative at x=%.10g", x)
            raise ZeroDerivativeError(
                f"Zero derivative encountered at x = {x:.10g}; Newton-Raphson cannot proceed.",
                iterations,
            )
        x_next = x - fx / dfx
        error = abs(fx)
        diff = abs(x_next - x)
        iterations.append(
            _record(iter=i, x=x, fx=fx, dfx=dfx, xnext=x_next, error=error, diff=diff)
        )
        if not math.isfinite(x_next):
            message = _non_finite_message(i)
            break
        _check_divergence("newton_raphson", x_next, iterations)
        x = x_next
        if diff < options.tol or error < options.tol:
            converged = True
            message = _converged_message(i)
            break

    return _assemble(
        "newton_raphson",
        expr,
        iterations,
        METHOD_COLUMNS["newton_raphson"],
        root=x,
        converged=converged,
        message=message,
        plot_range=(float(x0) - 5, float(x0) + 5),
        evaluator=evaluator,
        extras={"derivative": derivative},
    )


def solve_secant(
    expr: str,
    x0: float,
    x1: float,
    options: Optional[Options] = None,
    evaluator: Optional[Evaluator] = None,
) -> SolveResult:
    options = options or Options()
    evaluator = resolve_evaluator(evaluator)
    x_prev, x = float(x0), float(x1)
    f_prev, fx = evaluator.evaluate(expr, x_prev), evaluator.evaluate(expr, x)

    iterations: List[Dict[str, float]] = []
    converged = False
    message = EXHAUSTED_MESSAGE
    for i in range(1, options.max_iter + 1):
        if not (math.isfinite(fx) and math.isfinite(f_prev)):
            iterations.append(_record(iter=i, xprev=x_prev, x=x, fprev=f_prev, fx=fx))
            message = _non_finite_message(i)
            break
        denominator = fx - f_prev
        if abs(denominator) < EPSILON:
            logger.warning("secant hit a flat secant line at x=%.10g", x)
            raise ZeroDenominatorError(
                "Division by zero encountered in Secant method: f(x) - f(x_prev) is ~0.",
                iterations,
            )
        x_next = x - fx * (x - x_prev) / denominator
        error = abs(fx)
        diff = abs(x_next - x)
        iterations.append(
            _record(
                iter=i, xprev=x_prev, x=x, fprev=f_prev, fx=fx,
                xnext=x_next, error=error, diff=diff,
            )
        )
        if not math.isfinite(x_next):
            message = _non_finite_message(i)
            break
        _check_divergence("secant", x_next, iterations)
        x_prev, f_prev = x, fx
        x = x_next
        if diff < options.tol or error < options.tol:
            converged = True
            message = _converged_message(i)
            break
        fx = evaluator.evaluate(expr, x)

    low, high = min(float(x0), float(x1)), max(float(x0), float(x1))
    return _assemble(
        "secant",
        expr,
        iterations,
        METHOD_COLUMNS["secant"],
        root=x,
        converged=converged,
        message=message,
        plot_range=(low - 5, high + 5),
        evaluator=evaluator,
        extras={"initial_guesses": [float(x0), float(x1)]},
    )


# --------------------------------------------------------------------------- #
# Public runner
# --------------------------------------------------------------------------- #

MethodParams = Dict[str, float]


def run_method(
    method: str,
    *,
    function_expr: Optional[str],
    params: MethodParams,
    g_expr: Optional[str] = None,
    evaluator: Optional[Evaluator] = None,
) -> SolveResult:
    """
    Dispatch helper that evaluates the chosen numerical method.

    Parameters
    ----------
    method : Literal key identifying the algorithm (see `METHOD_LABELS`).
    function_expr : f(x) expression supplied by the user.
    params : numeric values needed by the specific method, plus optional
        "tolerance" and "max_iterations".
    g_expr : g(x) expression for Fixed Point iteration.
    """

    method = method.lower()
    options = Options(
        tol=float(params.get("tolerance", DEFAULT_TOLERANCE)),
        max_iter=int(params.get("max_iterations", DEFAULT_MAX_ITERATIONS)),
    )

    if method == "fixed_point":
        if not g_expr or not g_expr.strip():
            raise ExpressionParseError("g(x) expression is required for Fixed Point.")
        return solve_fixed_point(
            g_expr, params["initial_guess"], options, evaluator=evaluator
        )

    if not function_expr or not function_expr.strip():
        raise ExpressionParseError("Function expression cannot be empty.")
    if method == "bisection":
        return solve_bisection(
            function_expr, params["lower"], params["upper"], options, evaluator=evaluator
        )
    if method == "regula_falsi":
        return solve_false_position(
            function_expr, params["lower"], params["upper"], options, evaluator=evaluator
        )
    if method == "newton_raphson":
        return solve_newton(
            function_expr, params["initial_guess"], options, evaluator=evaluator
        )
    if method == "secant":
        return solve_secant(
            function_expr, params["x0"], params["x1"], options, evaluator=evaluator
        )

    raise ValueError(f"Unknown method: {method}")


# Mapping useful for UI layers
METHOD_LABELS = {
    "bisection": "Bisection Method",
    "regula_falsi": "Regula Falsi (False Position)",
    "fixed_point": "Fixed Point Iteration",
    "newton_raphson": "Newton–Raphson Method",
    "secant": "Secant Method",
}
