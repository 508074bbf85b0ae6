"""
Command-Line Interface for the Zero of Functions (ZOF) engine.

The CLI walks beginners through:
    1. Choosing any of the five supported numerical methods.
    2. Entering the required function and initial parameters.
    3. Viewing per-iteration diagnostics plus the final estimated root.

The same numerical core is shared with the Flask JSON API to keep the
project maintainable.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional, Sequence, Union

from zof_config import DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE, configure_logging
from zof_expression import ExpressionParseError, validate_expression
from zof_solver import (
    METHOD_COLUMNS,
    METHOD_LABELS,
    RootFindingError,
    SolveResult,
    run_method,
)

logger = logging.getLogger(__name__)

Number = Union[int, float]

# Display headers for the record keys
COLUMN_HEADERS = {
    "iter": "n",
    "fx": "f(x)",
    "dfx": "f'(x)",
    "gx": "g(x)",
    "xnext": "x_next",
    "xprev": "x_prev",
    "fprev": "f(x_prev)",
    "fa": "f(a)",
    "fb": "f(b)",
    "fc": "f(c)",
}


def _format_value(value) -> str:
    """Six significant digits for numbers, "--" for missing or undefined cells."""
    if value is None:
        return "--"
    if isinstance(value, (int, float)):
        return "--" if math.isnan(value) else f"{value:.6g}"
    return str(value)


def _table_lines(columns: Sequence[str], iterations: Sequence[Dict[str, float]]) -> List[str]:
    grid = [[COLUMN_HEADERS.get(col, col) for col in columns]]
    grid.extend([_format_value(row.get(col)) for col in columns] for row in iterations)
    widths = [max(map(len, cells)) for cells in zip(*grid)]
    lines = [" | ".join(cell.ljust(w) for cell, w in zip(cells, widths)) for cells in grid]
    rule = "-" * max(len(line) for line in lines)
    return [rule, lines[0], rule, *lines[1:], rule]


def _print_iterations(columns: Sequence[str], iterations: Sequence[Dict[str, float]]) -> None:
    if not iterations:
        print("No iteration details to display.")
        return
    print("\nDetailed Iterations")
    print("\n".join(_table_lines(columns, iterations)))


def _prompt_number(
    message: str,
    cast: Callable[[str], Number],
    default: Optional[Number] = None,
) -> Number:
    """Ask until `cast` accepts the reply; an empty reply takes the default."""
    suffix = f"[default: {default}] " if default is not None else ""
    while True:
        raw = input(f"{message} {suffix}").strip()
        if not raw and default is not None:
            return default
        if not raw:
            print("Value is required. Please try again.")
            continue
        try:
            value = cast(raw)
        except ValueError:
            print(f"Invalid {'integer' if cast is int else 'number'}: {raw!r}")
            continue
        if math.isfinite(value):
            return value
        print("Please enter a finite number.")


def _prompt_expression(prompt: str) -> str:
    while True:
        try:
            return validate_expression(input(prompt))
        except ExpressionParseError as exc:
            print(f"Input error: {exc}")


def _collect_method_params(method_key: str) -> Dict[str, Number]:
    params: Dict[str, Number] = {
        "tolerance": _prompt_number("Enter tolerance (e.g., 1e-6):", float, DEFAULT_TOLERANCE),
        "max_iterations": _prompt_number(
            "Enter maximum iterations:", int, DEFAULT_MAX_ITERATIONS
        ),
    }

    if method_key in {"bisection", "regula_falsi"}:
        params["lower"] = _prompt_number("Enter lower bound (a):", float)
        params["upper"] = _prompt_number("Enter upper bound (b):", float)
    elif method_key == "secant":
        params["x0"] = _prompt_number("Enter first initial guess (x0):", float)
        params["x1"] = _prompt_number("Enter second initial guess (x1):", float)
    elif method_key in {"newton_raphson", "fixed_point"}:
        params["initial_guess"] = _prompt_number("Enter initial guess (x0):", float)
    else:
        raise ValueError(f"Unsupported method {method_key}")

    return params


def _display_summary(result: SolveResult) -> None:
    summary = result.summary
    print("\nSummary")
    print("-------")
    print(f"Status        : {'Converged' if result.converged else 'Did not converge'}")
    print(f"Estimated root: {_format_value(summary.root)}")
    print(f"Iterations    : {summary.iterations}")
    if "derivative" in summary.extras:
        print(f"Derivative    : {summary.extras['derivative']}")
    print(f"Plot range    : [{_format_value(summary.plot_range[0])}, "
          f"{_format_value(summary.plot_range[1])}]")
    print(f"Message       : {result.message}")


def _display_failure(exc: RootFindingError, columns: Sequence[str]) -> None:
    print(f"\n{exc.kind}: {exc}")
    if exc.iterations:
        _print_iterations(columns, exc.iterations)


def main() -> None:
    configure_logging()
    print("=" * 70)
    print("Zero of Functions (ZOF) Solver - CLI")
    print("Enter equations using the variable x. Example: x^3 - 5*x + 2 or sin(x)")
    print("=" * 70)

    method_keys = list(METHOD_LABELS.keys())

    while True:
        print("\nAvailable Methods:")
        for idx, key in enumerate(method_keys, start=1):
            print(f"  {idx}. {METHOD_LABELS[key]}")
        print("  0. Exit")

        choice_raw = input("\nSelect a method by number: ").strip()
        if choice_raw == "0":
            print("Goodbye!")
            break
        try:
            choice = int(choice_raw)
            if choice < 1:
                raise IndexError(choice)
            method_key = method_keys[choice - 1]
        except (ValueError, IndexError):
            print("Invalid selection. Please choose a valid method number.")
            continue

        if method_key == "fixed_point":
            function_expr = None
            g_expr = _prompt_expression("Enter g(x) for x = g(x) (e.g., cos(x)): ")
        else:
            function_expr = _prompt_expression("Enter f(x): ")
            g_expr = None

        params = _collect_method_params(method_key)
        try:
            result = run_method(
                method_key,
                function_expr=function_expr,
                params=params,  # type: ignore[arg-type]
                g_expr=g_expr,
            )
        except RootFindingError as exc:
            logger.debug("%s failed: %s", method_key, exc)
            _display_failure(exc, METHOD_COLUMNS[method_key])
        except (ExpressionParseError, ValueError) as exc:
            print(f"Input error: {exc}")
        else:
            _print_iterations(result.columns, result.iterations)
            _display_summary(result)

        again = input("\nWould you like to solve another equation? (y/n): ").strip()
        if again.lower() not in {"y", "yes"}:
            print("Thanks for using the ZOF Solver!")
            break


if __name__ == "__main__":
    main()
