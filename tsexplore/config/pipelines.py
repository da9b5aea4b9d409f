"""Pipeline builder functions for exploratory feature sets.

Contains the exploration pipeline used by the CLI report and notebooks, built
from the named groups in TRANSFORM_SPECS.
"""

from __future__ import annotations

from sklearn.pipeline import Pipeline  # noqa: F401 (used in return type annotations)

from tsexplore.config.transforms import TRANSFORM_SPECS


def exploration_pipeline(
    columns, specs: dict | None = None, log_scale: bool = False
) -> "Pipeline":
    """Derived-series pipeline for exploratory analysis.

    Returns an sklearn Pipeline that:
    1. Optionally log-transforms the columns (multiplicative seasonality)
    2. Adds differences, lags, lagged changes, rolling mean/median, EWMA and
       rolling geometric means according to `specs`

    Args:
        columns: Column names or wildcard patterns to derive from.
        specs: Spec groups (default: TRANSFORM_SPECS). Missing groups are skipped.
        log_scale: Prepend a LogTransformer and derive from the `_log` columns.

    Returns:
        Unfitted sklearn Pipeline.
    """
    from sklearn.pipeline import Pipeline

    from tsexplore.features.transforms import LogTransformer
    from tsexplore.features.ts_transforms import (
        DifferenceTransformer,
        EWMATransformer,
        GeometricMeanTransformer,
        LagTransformer,
        RollingStatsTransformer,
    )

    specs = TRANSFORM_SPECS if specs is None else specs
    columns = [columns] if isinstance(columns, str) else list(columns)
    steps = []

    if log_scale:
        steps.append(("log", LogTransformer(columns=columns)))
        columns = [f"{c}_log" for c in columns]

    if "differences" in specs:
        steps.append(("differences", DifferenceTransformer(columns, **specs["differences"])))
    if "lags" in specs:
        steps.append(("lags", LagTransformer(columns, **specs["lags"])))
    if "lagged_changes" in specs:
        steps.append(("lagged_changes", LagTransformer(columns, **specs["lagged_changes"])))
    if "rolling" in specs:
        steps.append(("rolling", RollingStatsTransformer(columns, **specs["rolling"])))
    if "ewma" in specs:
        steps.append(("ewma", EWMATransformer(columns, **specs["ewma"])))
    if "geomean" in specs:
        steps.append(("geomean", GeometricMeanTransformer(columns, **specs["geomean"])))

    return Pipeline(steps)
