"""sklearn-compatible variance-stabilising and housekeeping transformers.

This module provides:
- LogTransformer: pointwise natural log (multiplicative -> additive seasonality)
- BoxCoxTransformer: Box-Cox power transform with a fitted lambda
- ColumnDropper: remove intermediate columns by name or wildcard pattern

Usage:
    from sklearn.pipeline import Pipeline
    from tsexplore.features.transforms import LogTransformer, ColumnDropper
    from tsexplore.features.ts_transforms import DifferenceTransformer

    pipeline = Pipeline([
        ("log", LogTransformer(columns=["passengers"])),
        ("diff", DifferenceTransformer(columns=["passengers_log"])),
        ("drop", ColumnDropper(exclude=["passengers_log"])),
    ])
    result = pipeline.fit_transform(df)
"""

from loguru import logger
import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.preprocessing import PowerTransformer

from tsexplore.features.series import DomainError


def _resolve(X, patterns):
    resolved = []
    for pattern in patterns:
        if "*" in pattern:
            prefix = pattern.replace("*", "")
            resolved.extend([c for c in X.columns if str(c).startswith(prefix)])
        elif pattern in X.columns:
            resolved.append(pattern)
    return list(dict.fromkeys(resolved))


def _check_positive(X, columns, label):
    """Raise DomainError at the first non-positive, non-missing value."""
    for col in columns:
        values = X[col].to_numpy(dtype=float)
        bad = np.flatnonzero(~np.isnan(values) & (values <= 0))
        if len(bad) > 0:
            i = int(bad[0])
            raise DomainError(
                f"{label} requires positive values; column '{col}' has {values[i]} "
                f"at position {i} ({X.index[i]})",
                index=i,
                timestamp=X.index[i],
            )


class LogTransformer(BaseEstimator, TransformerMixin):
    """Natural log of positive columns, written to `{col}{suffix}`.

    Parameters:
        columns: Column names or wildcard patterns.
        suffix: Output suffix (default "_log").
        keep_original: Whether to keep the source columns.
    """

    def __init__(self, columns, suffix="_log", keep_original=True):
        self.columns = columns
        self.suffix = suffix
        self.keep_original = keep_original

    def fit(self, X, y=None):
        return self

    def transform(self, X):
        X = X.copy()
        columns = _resolve(X, self.columns)
        _check_positive(X, columns, "Log transform")

        for col in columns:
            X[f"{col}{self.suffix}"] = np.log(X[col])

        if not self.keep_original:
            X = X.drop(columns=columns)

        logger.info(f"LogTransformer: Transformed {len(columns)} columns")
        return X

    def inverse_transform(self, y):
        return np.exp(y)


class BoxCoxTransformer(BaseEstimator, TransformerMixin):
    """Box-Cox power transform with lambda fitted per column.

    Wraps sklearn's PowerTransformer without standardisation, so lambda=0
    reproduces the log transform. Missing values are ignored when fitting and
    stay missing.

    Parameters:
        columns: Column names or wildcard patterns.
        suffix: Output suffix (default "_boxcox").
        keep_original: Whether to keep the source columns.
    """

    def __init__(self, columns, suffix="_boxcox", keep_original=True):
        self.columns = columns
        self.suffix = suffix
        self.keep_original = keep_original

    def fit(self, X, y=None):
        self.columns_ = _resolve(X, self.columns)
        if not self.columns_:
            raise ValueError(f"No columns found matching patterns: {self.columns}")

        _check_positive(X, self.columns_, "Box-Cox")
        self.scaler_ = PowerTransformer(method="box-cox", standardize=False)
        self.scaler_.fit(X[self.columns_].to_numpy(dtype=float))
        self.lambdas_ = dict(zip(self.columns_, self.scaler_.lambdas_))

        lambdas = ", ".join(f"{c}={lam:.3f}" for c, lam in self.lambdas_.items())
        logger.info(f"BoxCoxTransformer: Fitted lambdas {lambdas}")
        return self

    def transform(self, X):
        if not hasattr(self, "scaler_"):
            raise ValueError("Must call fit() before transform()")

        X = X.copy()
        _check_positive(X, self.columns_, "Box-Cox")
        transformed = self.scaler_.transform(X[self.columns_].to_numpy(dtype=float))
        for i, col in enumerate(self.columns_):
            X[f"{col}{self.suffix}"] = transformed[:, i]

        if not self.keep_original:
            X = X.drop(columns=self.columns_)
        return X

    def inverse_transform(self, y):
        """Reverse the transformation for an array shaped like the fitted columns."""
        if not hasattr(self, "scaler_"):
            raise ValueError("Must call fit() before inverse_transform()")
        return self.scaler_.inverse_transform(y)


class ColumnDropper(BaseEstimator, TransformerMixin):
    """Drop specified columns from the dataset.

    Supports both exact column names and wildcard patterns (e.g., 'value_lag*').
    Include overrides exclude.

    Parameters:
        exclude: List of column names or patterns to drop.
        include: List of exact column names to keep even if they match exclude patterns.
    """

    def __init__(self, exclude=None, include=None):
        self.exclude = exclude
        self.include = include

    def fit(self, X, y=None):
        return self

    def transform(self, X):
        exclude = self.exclude or []
        include = self.include or []

        to_drop = [c for c in _resolve(X, exclude) if c not in include]
        if to_drop:
            X = X.drop(columns=to_drop)
            logger.info(f"Dropped {len(to_drop)} columns")
        else:
            logger.info("No columns to drop (none found in dataset)")
        return X
