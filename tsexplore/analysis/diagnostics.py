"""Distribution and dependence diagnostics.

- autocorrelation / partial_autocorrelation: statsmodels ACF/PACF with confidence bounds
- normality: Shapiro-Wilk (scipy) and Jarque-Bera (statsmodels)
- box_cox_lambda: fitted Box-Cox lambda (scikit-learn PowerTransformer)
- lagged_change_correlation: does the change k periods ago predict today's change?
- summary: basic descriptive statistics
- coverage: observed span of each derived column (Gantt input)
"""

from dataclasses import dataclass

from loguru import logger
import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.stattools import jarque_bera
from statsmodels.tsa.stattools import acf, pacf

from tsexplore.config.transforms import SIGNIFICANCE_LEVEL
from tsexplore.features.series import InvalidConfiguration, TimeSeries, align
from tsexplore.features.transforms import BoxCoxTransformer
from tsexplore.features.ts_transforms import difference, lag


def _require_complete(series, what):
    if series.n_missing:
        raise ValueError(
            f"{what} needs a complete series; '{series.name}' has {series.n_missing} "
            f"missing values (filter them explicitly first)"
        )


def _correlogram(coefficients, confint):
    lags = np.arange(len(coefficients))
    return pd.DataFrame(
        {"coefficient": coefficients, "lower": confint[:, 0], "upper": confint[:, 1]},
        index=pd.Index(lags, name="lag"),
    )


def autocorrelation(series: TimeSeries, nlags: int = 24, alpha: float = SIGNIFICANCE_LEVEL):
    """Sample ACF for lags 0..nlags with (1 - alpha) confidence bounds."""
    _require_complete(series, "ACF")
    if nlags < 1 or nlags >= len(series):
        raise InvalidConfiguration(f"nlags must be in [1, {len(series) - 1}], got {nlags}")

    coefficients, confint = acf(np.asarray(series.values), nlags=nlags, alpha=alpha, fft=True)
    return _correlogram(coefficients, confint)


def partial_autocorrelation(
    series: TimeSeries, nlags: int = 24, alpha: float = SIGNIFICANCE_LEVEL, method: str = "ywm"
):
    """Sample PACF for lags 0..nlags; statsmodels requires nlags < n // 2."""
    _require_complete(series, "PACF")
    if nlags < 1 or nlags >= len(series) // 2:
        raise InvalidConfiguration(f"nlags must be in [1, {len(series) // 2 - 1}], got {nlags}")

    values = np.asarray(series.values)
    coefficients, confint = pacf(values, nlags=nlags, alpha=alpha, method=method)
    return _correlogram(coefficients, confint)


@dataclass(frozen=True)
class NormalityResult:
    shapiro_statistic: float
    shapiro_p_value: float
    jarque_bera_statistic: float
    jarque_bera_p_value: float
    skew: float
    kurtosis: float
    is_normal: bool


def normality(series: TimeSeries, significance: float = SIGNIFICANCE_LEVEL) -> NormalityResult:
    """Shapiro-Wilk and Jarque-Bera tests.

    is_normal is True only when neither test rejects normality.
    """
    _require_complete(series, "Normality test")
    if len(series) < 3:
        raise ValueError(f"Normality tests need at least 3 observations, got {len(series)}")

    values = np.asarray(series.values)
    shapiro_stat, shapiro_p = stats.shapiro(values)
    jb_stat, jb_p, skew, kurtosis = jarque_bera(values)

    result = NormalityResult(
        shapiro_statistic=float(shapiro_stat),
        shapiro_p_value=float(shapiro_p),
        jarque_bera_statistic=float(jb_stat),
        jarque_bera_p_value=float(jb_p),
        skew=float(skew),
        kurtosis=float(kurtosis),
        is_normal=bool(shapiro_p > significance and jb_p > significance),
    )
    logger.info(
        f"Normality '{series.name}': Shapiro p={result.shapiro_p_value:.4f}, "
        f"Jarque-Bera p={result.jarque_bera_p_value:.4f}"
    )
    return result


def box_cox_lambda(series: TimeSeries) -> float:
    """Maximum-likelihood Box-Cox lambda (missing values are ignored in the fit)."""
    column = series.name or "value"
    frame = series.to_pandas().rename(column).to_frame()
    transformer = BoxCoxTransformer(columns=[column]).fit(frame)
    return float(transformer.lambdas_[column])


def lagged_change_correlation(series: TimeSeries, k: int = 1) -> float:
    """Pearson correlation between today's change and the change k periods earlier.

    Rows where either change is missing are filtered explicitly before
    correlating. Returns NaN if fewer than 3 complete pairs remain.
    """
    change = difference(series, 1)
    past_change = lag(change, k)
    pairs = align(change, past_change).dropna()

    if len(pairs) < 3:
        logger.warning(f"Only {len(pairs)} complete pairs for lag {k}; correlation undefined")
        return float("nan")

    return float(pairs.iloc[:, 0].corr(pairs.iloc[:, 1]))


def summary(series: TimeSeries) -> dict:
    """Count, missing count and moments of the non-missing values."""
    present = series.dropna().values
    if len(present) == 0:
        return {
            "count": 0,
            "missing": series.n_missing,
            "mean": np.nan,
            "std": np.nan,
            "min": np.nan,
            "max": np.nan,
        }
    return {
        "count": int(len(present)),
        "missing": series.n_missing,
        "mean": float(np.mean(present)),
        "std": float(np.std(present, ddof=1)) if len(present) > 1 else np.nan,
        "min": float(np.min(present)),
        "max": float(np.max(present)),
    }


def coverage(frame: pd.DataFrame) -> pd.DataFrame:
    """First and last non-missing timestamp per column, as Gantt tasks.

    Columns with no observations are reported with NaT bounds.
    """
    rows = []
    for col in frame.columns:
        values = frame[col]
        rows.append(
            {
                "task": str(col),
                "start": values.first_valid_index(),
                "end": values.last_valid_index(),
                "missing": int(values.isna().sum()),
            }
        )
    return pd.DataFrame(rows, columns=["task", "start", "end", "missing"])
