"""
Flask JSON API for the Zero of Functions (ZOF) engine.

Clients can:
    - List the available methods and the default form values.
    - POST f(x) (or g(x)) plus method-specific parameters and receive the
      full iteration trace, summary and sampled curve.
    - POST a formula and a range to sample it for plotting.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Optional

from flask import Flask, jsonify, request

from zof_config import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    MAX_ITERATIONS_LIMIT,
    MAX_SAMPLE_POINTS,
    SAMPLE_POINTS,
    configure_logging,
)
from zof_expression import ExpressionParseError, validate_expression
from zof_sampler import sample_function
from zof_solver import METHOD_LABELS, RootFindingError, json_rows, run_method

app = Flask(__name__)

DEFAULTS = {
    "function_expr": "x^3 - x - 2",
    "g_expr": "cos(x)",
    "lower": "-2",
    "upper": "2",
    "x0": "1",
    "x1": "2",
    "initial_guess": "1",
    "tolerance": str(DEFAULT_TOLERANCE),
    "max_iterations": str(DEFAULT_MAX_ITERATIONS),
}


def _float_from_form(name: str, form: Mapping[str, Any], default: Optional[float] = None) -> float:
    raw = form.get(name)
    if raw is None or str(raw).strip() == "":
        if default is None:
            raise ValueError(f"{name.replace('_', ' ').title()} is required.")
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name.replace('_', ' ').title()} must be numeric.") from exc
    if not math.isfinite(value):
        raise ValueError(f"{name.replace('_', ' ').title()} must be finite.")
    return value


def _int_from_form(
    name: str,
    form: Mapping[str, Any],
    default: Optional[int] = None,
    minimum: int = 1,
    maximum: Optional[int] = None,
) -> int:
    label = name.replace("_", " ").title()
    raw = form.get(name)
    if raw is None or str(raw).strip() == "":
        if default is None:
            raise ValueError(f"{label} is required.")
        return default
    # JSON true/false and 2.9 would otherwise pass through int()
    if isinstance(raw, bool):
        raise ValueError(f"{label} must be an integer.")
    try:
        number = float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label} must be an integer.") from exc
    if not math.isfinite(number) or not number.is_integer():
        raise ValueError(f"{label} must be an integer.")
    value = int(number)
    if value < minimum or (maximum is not None and value > maximum):
        bound = f"between {minimum} and {maximum}" if maximum is not None else f"at least {minimum}"
        raise ValueError(f"{label} must be {bound}.")
    return value


def _collect_params(method: str, form: Mapping[str, Any]) -> Dict[str, float]:
    params: Dict[str, float] = {
        "tolerance": _float_from_form("tolerance", form, default=DEFAULT_TOLERANCE),
        "max_iterations": _int_from_form(
            "max_iterations",
            form,
            default=DEFAULT_MAX_ITERATIONS,
            maximum=MAX_ITERATIONS_LIMIT,
        ),
    }

    if method in {"bisection", "regula_falsi"}:
        params["lower"] = _float_from_form("lower", form)
        params["upper"] = _float_from_form("upper", form)
    elif method == "secant":
        params["x0"] = _float_from_form("x0", form)
        params["x1"] = _float_from_form("x1", form)
    elif method in {"newton_raphson", "fixed_point"}:
        params["initial_guess"] = _float_from_form("initial_guess", form)
    else:
        raise ValueError(f"Unsupported method: {method}")

    return params


def _json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _error(message: str, status: int, kind: str = "InvalidInput", **extra):
    body = {"error": message, "kind": kind}
    body.update(extra)
    return jsonify(body), status


@app.route("/", methods=["GET"])
def index():
    return jsonify({"methods": METHOD_LABELS, "defaults": DEFAULTS})


@app.route("/api/solve", methods=["POST"])
def solve():
    payload = _json_body()
    method = str(payload.get("method", "bisection")).lower()
    params_in = payload.get("params")
    if not isinstance(params_in, dict):
        params_in = {}

    try:
        params = _collect_params(method, params_in)
        if method == "fixed_point":
            function_expr = None
            g_expr = validate_expression(str(payload.get("g_expr") or ""))
        else:
            function_expr = validate_expression(str(payload.get("function_expr") or ""))
            g_expr = None
        result = run_method(
            method,
            function_expr=function_expr,
            params=params,
            g_expr=g_expr,
        )
    except RootFindingError as exc:
        app.logger.info("%s failed with %s: %s", method, exc.kind, exc)
        return _error(
            str(exc),
            422,
            kind=exc.kind,
            iterations=json_rows(exc.iterations),
        )
    except ExpressionParseError as exc:
        return _error(str(exc), 400, kind="ExpressionParseError")
    except ValueError as exc:
        return _error(str(exc), 400)

    return jsonify(result.to_dict())


@app.route("/api/sample", methods=["POST"])
def sample():
    payload = _json_body()
    try:
        expr = validate_expression(str(payload.get("function_expr") or ""))
        start = _float_from_form("start", payload, default=-5.0)
        stop = _float_from_form("stop", payload, default=5.0)
        n = _int_from_form(
            "n", payload, default=SAMPLE_POINTS, minimum=2, maximum=MAX_SAMPLE_POINTS
        )
        sampled = sample_function(expr, start, stop, n)
    except ExpressionParseError as exc:
        return _error(str(exc), 400, kind="ExpressionParseError")
    except ValueError as exc:
        return _error(str(exc), 400)

    return jsonify(
        {
            "samples": [
                {"x": x, "y": y if math.isfinite(y) else None} for x, y in sampled.samples
            ],
            "yMin": sampled.y_min,
            "yMax": sampled.y_max,
        }
    )


def main() -> None:
    configure_logging()
    app.run(debug=True)


if __name__ == "__main__":
    main()
