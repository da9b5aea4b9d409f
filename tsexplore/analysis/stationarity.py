"""Stationarity testing.

Augmented Dickey-Fuller test via statsmodels, plus a search for the smallest
differencing order that makes a series stationary.
"""

from dataclasses import dataclass

from loguru import logger
import numpy as np
from statsmodels.tsa.stattools import adfuller

from tsexplore.config.transforms import SIGNIFICANCE_LEVEL
from tsexplore.features.series import TimeSeries
from tsexplore.features.ts_transforms import difference


@dataclass(frozen=True)
class StationarityResult:
    """Outcome of an ADF test.

    Attributes:
        statistic: ADF test statistic.
        p_value: MacKinnon approximate p-value.
        used_lag: Number of lags used in the regression.
        n_obs: Observations used.
        critical_values: Critical values keyed by "1%", "5%", "10%".
        is_stationary: p_value <= significance (unit root rejected).
    """

    statistic: float
    p_value: float
    used_lag: int
    n_obs: int
    critical_values: dict
    is_stationary: bool


def adf_test(
    series: TimeSeries,
    regression: str = "c",
    autolag: str | None = "AIC",
    significance: float = SIGNIFICANCE_LEVEL,
) -> StationarityResult:
    """Augmented Dickey-Fuller test for a unit root.

    Missing values are not dropped here; filter them explicitly (e.g.
    `series.dropna()`) before testing.

    Args:
        series: Series to test.
        regression: Deterministic terms: "c", "ct", "ctt" or "n".
        autolag: Lag selection criterion ("AIC", "BIC", "t-stat") or None.
        significance: Threshold for rejecting the unit root.

    Raises:
        ValueError: If the series contains missing values.
    """
    if series.n_missing:
        raise ValueError(
            f"Series '{series.name}' has {series.n_missing} missing values; "
            f"filter them explicitly before the ADF test"
        )

    result = adfuller(np.asarray(series.values), regression=regression, autolag=autolag)
    statistic, p_value, used_lag, n_obs, critical_values = result[:5]

    outcome = StationarityResult(
        statistic=float(statistic),
        p_value=float(p_value),
        used_lag=int(used_lag),
        n_obs=int(n_obs),
        critical_values=dict(critical_values),
        is_stationary=bool(p_value <= significance),
    )
    logger.info(
        f"ADF '{series.name}': statistic={outcome.statistic:.4f}, p={outcome.p_value:.4f} "
        f"({'stationary' if outcome.is_stationary else 'non-stationary'})"
    )
    return outcome


def differencing_order(
    series: TimeSeries, max_order: int = 2, significance: float = SIGNIFICANCE_LEVEL
) -> int:
    """Smallest differencing order d <= max_order whose ADF test rejects a unit root.

    Returns max_order (with a warning) if no order up to it is stationary.
    """
    for order in range(max_order + 1):
        candidate = series if order == 0 else difference(series, order).trimmed()
        if adf_test(candidate, significance=significance).is_stationary:
            logger.info(f"'{series.name}' is stationary after {order} difference(s)")
            return order

    logger.warning(f"'{series.name}' still non-stationary after {max_order} differences")
    return max_order
