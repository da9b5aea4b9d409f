"""Constants and enumerations for the temporal transform pipeline.

Window alignment and aggregation methods are closed sets: callers pick an enum
member (or its string value) instead of passing free-form strings through.
"""

from enum import Enum


class Alignment(str, Enum):
    """Where the output sits relative to its window.

    Only right alignment exists: output[i] consumes inputs at positions <= i.
    Centered or left alignment would pull future values into past positions.
    """

    RIGHT = "right"


class AggMethod(str, Enum):
    """Aggregations available to rolling windows."""

    MEAN = "mean"
    MEDIAN = "median"


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_WINDOW_SIZE = 7
DEFAULT_EWMA_ALPHA = 0.3
DEFAULT_DIFF_ORDER = 1
DEFAULT_LAG = 1

# Monthly data: one seasonal cycle per year
SEASONAL_PERIODS = {
    "air_passengers": 12,
    "eu_stock_markets": 260,
}

# =============================================================================
# Exploration Feature Specs
# =============================================================================
# Named groups of derived columns built by config.pipelines. Window sizes are
# plain ints here; the pipeline builder turns them into Window objects.

TRANSFORM_SPECS = {
    "differences": {"orders": (1, 2)},
    "lags": {"lags": (1, 12), "source": "level"},
    "lagged_changes": {"lags": (1,), "source": "diff"},
    "rolling": {"windows": (DEFAULT_WINDOW_SIZE,), "methods": ("mean", "median")},
    "ewma": {"alphas": (DEFAULT_EWMA_ALPHA,)},
    "geomean": {"windows": (DEFAULT_WINDOW_SIZE,)},
}

# Significance level for stationarity and normality tests
SIGNIFICANCE_LEVEL = 0.05
