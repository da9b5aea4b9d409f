"""Leak-free temporal transforms.

Pure operations over TimeSeries:
- difference: k-th order differencing, first `order` positions missing
- lag: shift by k >= 1 periods, first `k` positions missing
- rolling_aggregate: right-aligned rolling mean/median
- exponential_moving_average: recursive EWMA, holds last estimate on missing input
- geometric_mean_rolling: right-aligned rolling geometric mean

Every output keeps the input's index and length; output[i] never depends on
input[j] for j > i.

DataFrame transformers (sklearn BaseEstimator/TransformerMixin) apply the same
operations column-wise:
- DifferenceTransformer, LagTransformer, RollingStatsTransformer,
  EWMATransformer, GeometricMeanTransformer
"""

import math

from loguru import logger
import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin

from tsexplore.config.transforms import AggMethod
from tsexplore.features.series import (
    DomainError,
    InvalidConfiguration,
    TimeSeries,
    Window,
)

_AGG_FUNCS = {
    AggMethod.MEAN: np.mean,
    AggMethod.MEDIAN: np.median,
}


def _check_positive_int(value, label):
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
        raise InvalidConfiguration(f"{label} must be an integer >= 1, got {value!r}")
    return int(value)


def _coerce_method(method) -> AggMethod:
    try:
        return AggMethod(method)
    except ValueError:
        valid = [m.value for m in AggMethod]
        raise InvalidConfiguration(f"Unknown aggregation {method!r}. Valid: {valid}") from None


def _complete_windows(values, size):
    """Right-aligned windows ending at positions size-1 .. n-1, plus a has-missing mask."""
    windows = np.lib.stride_tricks.sliding_window_view(values, size)
    has_missing = np.isnan(windows).any(axis=1)
    return windows, has_missing


# ============================================================================
# PURE OPERATIONS
# ============================================================================


def difference(series: TimeSeries, order: int = 1):
    """Apply first differencing `order` times.

    output[i] = series[i] - series[i-1] for order 1. Missing inputs propagate
    through the subtraction; the first `order` positions are always missing.
    """
    order = _check_positive_int(order, "Difference order")
    values = series.values
    for _ in range(order):
        shifted = np.full(len(values), np.nan)
        shifted[1:] = values[:-1]
        values = values - shifted
    return series.derive(values, f"diff{order}", min_history=min(order, len(series)))


def lag(series: TimeSeries, k: int = 1):
    """Shift values forward in time: output[i] = series[i-k]."""
    k = _check_positive_int(k, "Lag")
    values = np.full(len(series), np.nan)
    if k < len(series):
        values[k:] = series.values[:-k]
    return series.derive(values, f"lag{k}", min_history=min(k, len(series)))


def rolling_aggregate(series: TimeSeries, window, method=AggMethod.MEAN):
    """Right-aligned rolling aggregate.

    output[i] = agg(series[i-k+1 .. i]) for i >= k-1, missing before that.
    A missing value anywhere in the window makes that output missing.
    A window larger than the series yields an entirely missing output.
    """
    window = Window.coerce(window)
    method = _coerce_method(method)
    k = window.size
    n = len(series)
    result = np.full(n, np.nan)

    if k <= n:
        windows, has_missing = _complete_windows(series.values, k)
        filled = np.where(np.isnan(windows), 0.0, windows)
        aggregated = _AGG_FUNCS[method](filled, axis=1)
        aggregated[has_missing] = np.nan
        result[k - 1 :] = aggregated

    return series.derive(result, f"roll{k}_{method.value}", min_history=min(k - 1, n))


def exponential_moving_average(series: TimeSeries, alpha: float):
    """Recursive exponentially weighted moving average.

    out[f] = series[f] at the first non-missing position f, then
    out[i] = alpha * series[i] + (1 - alpha) * out[i-1].

    A missing series[i] holds the previous estimate (out[i] = out[i-1]) rather
    than breaking the recursion. Positions before the first observation stay
    missing because no estimate exists yet.
    """
    if isinstance(alpha, bool) or not isinstance(alpha, (int, float, np.number)):
        raise InvalidConfiguration(f"Decay factor must be a number, got {alpha!r}")
    alpha = float(alpha)
    if math.isnan(alpha) or not 0.0 < alpha <= 1.0:
        raise InvalidConfiguration(f"Decay factor must be in (0, 1], got {alpha}")

    values = series.values
    result = np.full(len(values), np.nan)
    estimate = math.nan
    first = None

    for i, x in enumerate(values):
        if math.isnan(x):
            result[i] = estimate
            continue
        if first is None:
            first = i
            estimate = x
        else:
            estimate = alpha * x + (1.0 - alpha) * estimate
        result[i] = estimate

    min_history = first if first is not None else len(values)
    return series.derive(result, f"ewma_{alpha:g}", min_history=min_history)


def geometric_mean_rolling(series: TimeSeries, window):
    """Right-aligned rolling geometric mean: exp(mean(log(window))).

    Missing values follow the rolling_aggregate policy.

    Raises:
        DomainError: If any non-missing value inside a complete window is <= 0.
    """
    window = Window.coerce(window)
    k = window.size
    n = len(series)
    result = np.full(n, np.nan)

    if k <= n:
        values = series.values
        bad = np.flatnonzero(~np.isnan(values) & (values <= 0))
        if len(bad) > 0:
            i = int(bad[0])
            raise DomainError(
                f"Geometric mean requires positive values; got {values[i]} at position {i} "
                f"({series.index[i]})",
                index=i,
                timestamp=series.index[i],
            )

        windows, has_missing = _complete_windows(values, k)
        filled = np.where(np.isnan(windows), 1.0, windows)
        aggregated = np.exp(np.mean(np.log(filled), axis=1))
        aggregated[has_missing] = np.nan
        result[k - 1 :] = aggregated

    return series.derive(result, f"geomean{k}", min_history=min(k - 1, n))


# ============================================================================
# DATAFRAME TRANSFORMERS
# ============================================================================


def _resolve_columns(columns, X):
    """Resolve column patterns (with wildcards) to actual column names.

    Args:
        columns: List of column names or wildcard patterns (e.g., "price_*").
        X: DataFrame to resolve against.

    Returns:
        List of resolved column names.
    """
    if isinstance(columns, str):
        columns = [columns]
    resolved = []
    for pattern in columns:
        if "*" in pattern:
            prefix = pattern.replace("*", "")
            matched = [c for c in X.columns if str(c).startswith(prefix)]
            if not matched:
                logger.warning(f"No columns matched pattern '{pattern}'")
            resolved.extend(matched)
        else:
            resolved.append(pattern)
    return resolved


def _check_frame(X):
    if not X.index.is_unique or not X.index.is_monotonic_increasing:
        raise ValueError("Index must be sorted ascending with unique timestamps")


class _ColumnTransformer(BaseEstimator, TransformerMixin):
    """Shared column loop: resolve patterns, apply per-column, log what was created."""

    _label = "derived"

    def fit(self, X, y=None):
        return self

    def transform(self, X):
        X = X.copy()
        _check_frame(X)
        created = []

        for col in _resolve_columns(self.columns, X):
            if col not in X.columns:
                logger.warning(f"Column '{col}' not found, skipping {self._label}")
                continue

            series = TimeSeries.from_pandas(X[col], name=str(col))
            for new_col, derived in self._derive(col, series):
                X[new_col] = derived.values
                created.append(new_col)

        logger.info(f"Created {len(created)} {self._label} features")
        return X

    def _derive(self, col, series):
        raise NotImplementedError


class DifferenceTransformer(_ColumnTransformer):
    """Add differenced columns.

    Parameters:
        columns: Column names or wildcard patterns.
        orders: Differencing orders; each creates `{col}_diff{order}`.
    """

    _label = "difference"

    def __init__(self, columns, orders=(1,)):
        self.columns = columns
        self.orders = orders

    def _derive(self, col, series):
        for order in self.orders:
            yield f"{col}_diff{order}", difference(series, order)


class LagTransformer(_ColumnTransformer):
    """Add lagged columns.

    Parameters:
        columns: Column names or wildcard patterns.
        lags: Shifts k >= 1; each creates `{col}_lag{k}`.
        source: "level" lags the raw column; "diff" lags its first difference,
            creating `{col}_diff1_lag{k}` (the change k periods ago).
    """

    _label = "lag"

    def __init__(self, columns, lags=(1,), source="level"):
        self.columns = columns
        self.lags = lags
        self.source = source

    def _derive(self, col, series):
        if self.source == "level":
            base, prefix = series, f"{col}"
        elif self.source == "diff":
            base, prefix = difference(series, 1), f"{col}_diff1"
        else:
            raise InvalidConfiguration(
                f"Unknown lag source '{self.source}'. Use 'level' or 'diff'"
            )

        for k in self.lags:
            yield f"{prefix}_lag{k}", lag(base, k)


class RollingStatsTransformer(_ColumnTransformer):
    """Add right-aligned rolling statistics.

    Parameters:
        columns: Column names or wildcard patterns.
        windows: Window objects or integer sizes.
        methods: Aggregations ("mean", "median").
        overwrite: If True (with exactly 1 window and 1 method), replace the
            original column instead of creating `{col}_roll{k}_{method}`.
    """

    _label = "rolling window"

    def __init__(self, columns, windows, methods=("mean",), overwrite=False):
        self.columns = columns
        self.windows = windows
        self.methods = methods
        self.overwrite = overwrite

    def transform(self, X):
        if self.overwrite and (len(self.windows) != 1 or len(self.methods) != 1):
            raise ValueError(
                f"overwrite=True requires exactly 1 window and 1 method, got "
                f"{len(self.windows)} windows and {len(self.methods)} methods"
            )
        return super().transform(X)

    def _derive(self, col, series):
        for window in self.windows:
            window = Window.coerce(window)
            for method in self.methods:
                derived = rolling_aggregate(series, window, method)
                if self.overwrite:
                    yield col, derived
                else:
                    yield f"{col}_roll{window.size}_{_coerce_method(method).value}", derived


class EWMATransformer(_ColumnTransformer):
    """Add exponentially weighted moving averages.

    Parameters:
        columns: Column names or wildcard patterns.
        alphas: Decay factors in (0, 1]; each creates `{col}_ewma_{alpha}`.
    """

    _label = "EWMA"

    def __init__(self, columns, alphas=(0.3,)):
        self.columns = columns
        self.alphas = alphas

    def _derive(self, col, series):
        for alpha in self.alphas:
            yield f"{col}_ewma_{alpha:g}", exponential_moving_average(series, alpha)


class GeometricMeanTransformer(_ColumnTransformer):
    """Add rolling geometric means (`{col}_geomean{k}`); inputs must be positive."""

    _label = "geometric mean"

    def __init__(self, columns, windows):
        self.columns = columns
        self.windows = windows

    def _derive(self, col, series):
        for window in self.windows:
            window = Window.coerce(window)
            yield f"{col}_geomean{window.size}", geometric_mean_rolling(series, window)
