"""Defaults and logging setup shared by the ZOF front ends."""

from __future__ import annotations

import logging
import os

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

DEFAULT_TOLERANCE = float(os.environ.get("ZOF_TOLERANCE", "1e-6"))
DEFAULT_MAX_ITERATIONS = int(os.environ.get("ZOF_MAX_ITERATIONS", "50"))

# Request limits for the web API
MAX_EXPRESSION_LENGTH = 200
MAX_SAMPLE_POINTS = 10000
MAX_ITERATIONS_LIMIT = 10000

# Curve sampling
SAMPLE_POINTS = 500
CLAMP_LIMIT = 1e6
Y_PADDING = 0.1

# Solver guards
EPSILON = 1e-12
DIVERGENCE_LIMIT = 1e10
DISPLAY_DECIMALS = 10


def configure_logging(level: str | None = None) -> None:
    """Install the root handler; called by the CLI and web entry points only."""
    effective = (level or LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, effective, logging.INFO),
        format=LOG_FORMAT,
    )
