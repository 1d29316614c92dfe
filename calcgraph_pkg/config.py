"""Centralized configuration for calcgraph.

This module defines:
- Decimal precision bounds used by the evaluator
- Input validation limits (length, depth)
- Cache sizes for parsing
- Graph sampling caps (resolution, point and annotation counts)
- Analysis and numerical integration defaults

Configuration can be overridden via:
- CLI flags (see cli.py)
- Environment variables (prefixed with CALCGRAPH_)
"""

import os

try:
    import importlib.metadata

    VERSION = importlib.metadata.version("calcgraph")
except Exception:
    # Fallback if package not installed
    VERSION = "1.0.0"

# Decimal precision (significant digits shown to the caller)
DEFAULT_PRECISION = int(os.getenv("CALCGRAPH_DEFAULT_PRECISION", "10"))
MIN_PRECISION = 1
MAX_PRECISION = 50
GUARD_DIGITS = int(
    os.getenv("CALCGRAPH_GUARD_DIGITS", "5")
)  # extra working digits on top of the requested precision

# Input validation limits
MAX_INPUT_LENGTH = int(os.getenv("CALCGRAPH_MAX_INPUT_LENGTH", "1000"))  # characters
MAX_EXPRESSION_DEPTH = int(
    os.getenv("CALCGRAPH_MAX_EXPRESSION_DEPTH", "100")
)  # nesting depth accepted by the parser

# Cache configuration
CACHE_SIZE_PARSE = int(os.getenv("CALCGRAPH_CACHE_SIZE_PARSE", "1024"))

# Graph limits
MAX_RESOLUTION = int(os.getenv("CALCGRAPH_MAX_RESOLUTION", "10000"))
MAX_POINTS = int(os.getenv("CALCGRAPH_MAX_POINTS", "50000"))
MAX_ANNOTATIONS = int(os.getenv("CALCGRAPH_MAX_ANNOTATIONS", "100"))
DEFAULT_RESOLUTION = int(os.getenv("CALCGRAPH_DEFAULT_RESOLUTION", "100"))

# Special point analysis
SPECIAL_POINT_RESOLUTION = int(
    os.getenv("CALCGRAPH_SPECIAL_POINT_RESOLUTION", "1000")
)  # samples used when analyzing an expression over a domain
SPECIAL_POINT_TOLERANCE = float(
    os.getenv("CALCGRAPH_SPECIAL_POINT_TOLERANCE", "0.001")
)  # |y| below this counts as a zero

# Numerical integration (composite Simpson rule)
INTEGRATION_INTERVALS = int(os.getenv("CALCGRAPH_INTEGRATION_INTERVALS", "1000"))

# Evaluator guards
MAX_FACTORIAL_ARGUMENT = int(os.getenv("CALCGRAPH_MAX_FACTORIAL_ARGUMENT", "1000"))

# Result constraints
MAX_COMPUTATION_TIME_MS = int(os.getenv("CALCGRAPH_MAX_COMPUTATION_TIME_MS", "30000"))

# Screen hit-testing: a sampled point closer than this is "on" the function
POINT_HIT_DISTANCE = float(os.getenv("CALCGRAPH_POINT_HIT_DISTANCE", "0.1"))

# Default screen size for math <-> screen mapping
DEFAULT_SCREEN_WIDTH = 800
DEFAULT_SCREEN_HEIGHT = 600

# Implicit contours: a flagged cell's center is kept when |f(center) - c| is within this
IMPLICIT_TOLERANCE = float(os.getenv("CALCGRAPH_IMPLICIT_TOLERANCE", "0.1"))
DEFAULT_3D_RESOLUTION = int(os.getenv("CALCGRAPH_DEFAULT_3D_RESOLUTION", "50"))
