"""Curve sampling for plotting a formula next to its iteration trace."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from zof_config import CLAMP_LIMIT, SAMPLE_POINTS, Y_PADDING
from zof_expression import Evaluator, resolve_evaluator


@dataclass
class SampleSet:
    samples: List[Tuple[float, float]]
    y_min: float
    y_max: float


def sample_function(
    expr: str,
    start: float,
    stop: float,
    n: int = SAMPLE_POINTS,
    evaluator: Optional[Evaluator] = None,
) -> SampleSet:
    """
    Evaluate `expr` at `n` evenly spaced points of [start, stop].

    Undefined points are kept as NaN so a renderer can split the curve at
    them. Values beyond +/-1e6 are clamped, and the y-range is padded by 10%
    on both sides.
    """
    if n < 2:
        raise ValueError("At least two sample points are required.")
    evaluator = resolve_evaluator(evaluator)

    samples: List[Tuple[float, float]] = []
    y_min = math.inf
    y_max = -math.inf
    for i in range(n):
        x = start + (i / (n - 1)) * (stop - start)
        y = evaluator.evaluate(expr, x)
        if math.isfinite(y):
            if abs(y) > CLAMP_LIMIT:
                y = math.copysign(CLAMP_LIMIT, y)
            y_min = min(y_min, y)
            y_max = max(y_max, y)
        else:
            y = math.nan
        samples.append((x, y))

    if y_min == math.inf:
        y_min, y_max = -1.0, 1.0
    elif y_min == y_max:
        y_min, y_max = y_min - 1, y_max + 1

    padding = (y_max - y_min) * Y_PADDING
    return SampleSet(samples=samples, y_min=y_min - padding, y_max=y_max + padding)
