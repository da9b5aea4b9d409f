"""Seasonal decomposition and seasonal tables.

decompose() splits a series into trend, seasonal and remainder components with
statsmodels (STL or classical moving averages). These are descriptive tools:
both methods smooth with centered windows, so the components are not causal
and must not be fed back into the transform pipeline as features.
"""

from dataclasses import dataclass

from loguru import logger
import numpy as np
import pandas as pd
from statsmodels.tsa.seasonal import STL, seasonal_decompose

from tsexplore.features.series import InvalidConfiguration, TimeSeries

_METHODS = ("stl", "classical")
_MODELS = ("additive", "multiplicative")


@dataclass(frozen=True)
class Decomposition:
    """Components sharing the observed series' index.

    Additive: observed = trend + seasonal + remainder.
    Multiplicative: observed = trend * seasonal * remainder.
    """

    observed: TimeSeries
    trend: TimeSeries
    seasonal: TimeSeries
    remainder: TimeSeries
    model: str

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "observed": self.observed.values,
                "trend": self.trend.values,
                "seasonal": self.seasonal.values,
                "remainder": self.remainder.values,
            },
            index=self.observed.index,
        )


def decompose(
    series: TimeSeries,
    period: int,
    method: str = "stl",
    model: str = "additive",
    robust: bool = False,
) -> Decomposition:
    """Seasonal-trend decomposition.

    Args:
        series: Series without missing values.
        period: Observations per seasonal cycle (12 for monthly data).
        method: "stl" (LOESS) or "classical" (moving averages).
        model: "additive" or "multiplicative". STL is additive only, so the
            multiplicative variant decomposes log(series) and exponentiates.
        robust: Robust STL fitting (downweights outliers).

    Raises:
        InvalidConfiguration: Unknown method/model or period < 2.
        ValueError: Missing values, or non-positive values with model="multiplicative".
    """
    if method not in _METHODS:
        raise InvalidConfiguration(f"Unknown decomposition method '{method}'. Valid: {_METHODS}")
    if model not in _MODELS:
        raise InvalidConfiguration(f"Unknown decomposition model '{model}'. Valid: {_MODELS}")
    if isinstance(period, bool) or not isinstance(period, (int, np.integer)) or period < 2:
        raise InvalidConfiguration(f"Period must be an integer >= 2, got {period!r}")
    if series.n_missing:
        raise ValueError(f"Series '{series.name}' has {series.n_missing} missing values")
    if model == "multiplicative" and (series.values <= 0).any():
        raise ValueError("Multiplicative decomposition requires positive values")

    values = pd.Series(series.values, index=series.index)

    if method == "stl":
        target = np.log(values) if model == "multiplicative" else values
        fit = STL(target.to_numpy(), period=int(period), robust=robust).fit()
        trend, seasonal, remainder = fit.trend, fit.seasonal, fit.resid
        if model == "multiplicative":
            trend, seasonal, remainder = np.exp(trend), np.exp(seasonal), np.exp(remainder)
    else:
        fit = seasonal_decompose(values.to_numpy(), model=model, period=int(period))
        trend, seasonal, remainder = fit.trend, fit.seasonal, fit.resid

    logger.info(f"Decomposed '{series.name}' ({method}, {model}, period={period})")

    def component(values, label):
        name = f"{series.name}_{label}" if series.name else label
        return TimeSeries(series.index, np.asarray(values, dtype=float), name)

    return Decomposition(
        observed=series,
        trend=component(trend, "trend"),
        seasonal=component(seasonal, "seasonal"),
        remainder=component(remainder, "remainder"),
        model=model,
    )


def seasonal_table(series: TimeSeries) -> pd.DataFrame:
    """Year x month pivot of a monthly series, for seasonal plots.

    Raises:
        TypeError: If the series is not indexed by timestamps.
    """
    if not isinstance(series.index, pd.DatetimeIndex):
        raise TypeError("Seasonal table requires a DatetimeIndex")

    df = pd.DataFrame(
        {"year": series.index.year, "month": series.index.month, "value": series.values}
    )
    return df.pivot_table(
        index="year", columns="month", values="value", aggfunc="mean", dropna=False
    )
