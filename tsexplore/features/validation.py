"""Lookahead validation for transform pipelines.

Walks pipeline steps and verifies that each transformer is configured
causally, then optionally probes the whole pipeline by perturbing future
values and checking that no earlier output moves.
"""

from loguru import logger
import numpy as np
import pandas as pd
from sklearn.base import clone

from tsexplore.features.series import InvalidConfiguration, TimeSeries, Window
from tsexplore.features.transforms import BoxCoxTransformer, ColumnDropper, LogTransformer
from tsexplore.features.ts_transforms import (
    DifferenceTransformer,
    EWMATransformer,
    GeometricMeanTransformer,
    LagTransformer,
    RollingStatsTransformer,
)

# Pointwise transformers: output[i] depends on input[i] only
_POINTWISE = (ColumnDropper, LogTransformer)


def _cut_points(n, n_cuts):
    """Evenly spaced positions t with at least one later value to perturb."""
    if n < 2:
        return []
    return sorted({int(t) for t in np.linspace(0, n - 2, num=min(n_cuts, n - 1))})


def _perturb_after(values, t):
    """Replace every value after position t, keeping positives positive."""
    perturbed = np.array(values, dtype=float)
    perturbed[t + 1 :] = np.abs(perturbed[t + 1 :]) * 3.0 + 7.0
    return perturbed


def _prefix_changed(before, after, t):
    a = np.asarray(before, dtype=float)[: t + 1]
    b = np.asarray(after, dtype=float)[: t + 1]
    return not np.allclose(a, b, rtol=0.0, atol=1e-9, equal_nan=True)


def check_no_lookahead(fn, series: TimeSeries, n_cuts: int = 5):
    """Probe a single-series transform for lookahead.

    For each cut point t, every value after t is replaced; fn's outputs at
    positions <= t must not change.

    Args:
        fn: Callable taking a TimeSeries and returning a TimeSeries.
        series: Probe input.
        n_cuts: Number of cut points to test.

    Raises:
        ValueError: If any output at or before a cut point changed.
    """
    baseline = fn(series).values
    leaking = []

    for t in _cut_points(len(series), n_cuts):
        perturbed = TimeSeries(series.index, _perturb_after(series.values, t), series.name)
        if _prefix_changed(baseline, fn(perturbed).values, t):
            leaking.append(t)

    if leaking:
        msg = f"Lookahead detected: perturbing values after positions {leaking} changed outputs"
        logger.error(msg)
        raise ValueError(msg)


def validate_pipeline_leakage(pipeline, probe: pd.DataFrame | None = None, n_cuts: int = 5):
    """Validate that a pipeline never uses future values.

    Walks through pipeline steps and checks:
    1. LagTransformer: every lag >= 1
    2. DifferenceTransformer: every order >= 1
    3. RollingStatsTransformer / GeometricMeanTransformer: valid right-aligned windows
    4. EWMATransformer: decay factors in (0, 1]
    5. BoxCoxTransformer: flagged with a warning (lambda is fitted on the full sample)
    6. If `probe` is given, perturbation check on the fitted pipeline output

    Args:
        pipeline: sklearn Pipeline to validate.
        probe: Optional DataFrame to run the perturbation check on.
        n_cuts: Number of cut points for the perturbation check.

    Raises:
        ValueError: If any leakage violations are found.
    """
    violations = []

    for step_name, transformer in pipeline.steps:
        if isinstance(transformer, LagTransformer):
            _check_positive(step_name, "lag", transformer.lags, violations)
        elif isinstance(transformer, DifferenceTransformer):
            _check_positive(step_name, "order", transformer.orders, violations)
        elif isinstance(transformer, (RollingStatsTransformer, GeometricMeanTransformer)):
            _check_windows(step_name, transformer.windows, violations)
        elif isinstance(transformer, EWMATransformer):
            _check_alphas(step_name, transformer.alphas, violations)
        elif isinstance(transformer, BoxCoxTransformer):
            logger.warning(
                f"[{step_name}] BoxCoxTransformer fits lambda on the full sample; "
                f"transformed values carry information from later observations"
            )
        elif isinstance(transformer, _POINTWISE):
            continue
        else:
            name = type(transformer).__name__
            logger.warning(f"[{step_name}] Unknown transformer {name}, not checked")

    if probe is not None and not violations:
        _check_perturbation(pipeline, probe, n_cuts, violations)

    if violations:
        msg = "Pipeline leakage violations found:\n" + "\n".join(f"  - {v}" for v in violations)
        logger.error(msg)
        raise ValueError(msg)

    logger.info("Pipeline leakage validation passed")


def _check_positive(step_name, label, values, violations):
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
            violations.append(f"[{step_name}] {label}={value!r} must be an integer >= 1")


def _check_windows(step_name, windows, violations):
    for window in windows:
        try:
            Window.coerce(window)
        except InvalidConfiguration as e:
            violations.append(f"[{step_name}] window {window!r}: {e}")


def _check_alphas(step_name, alphas, violations):
    for alpha in alphas:
        if isinstance(alpha, bool) or not isinstance(alpha, (int, float, np.number)):
            violations.append(f"[{step_name}] alpha={alpha!r} must be a number in (0, 1]")
        elif not 0.0 < alpha <= 1.0:
            violations.append(f"[{step_name}] alpha={alpha!r} must be in (0, 1]")


def _check_perturbation(pipeline, probe, n_cuts, violations):
    """Refit the pipeline on perturbed copies of the probe and compare prefixes."""
    numeric = probe.select_dtypes(include="number").columns
    baseline = clone(pipeline).fit_transform(probe)

    for t in _cut_points(len(probe), n_cuts):
        perturbed = probe.copy()
        for col in numeric:
            perturbed[col] = _perturb_after(probe[col].to_numpy(), t)

        output = clone(pipeline).fit_transform(perturbed)
        shared = [c for c in baseline.select_dtypes(include="number") if c in output.columns]
        changed = [c for c in shared if _prefix_changed(baseline[c], output[c], t)]
        if changed:
            violations.append(
                f"Perturbing values after position {t} changed earlier outputs of {changed}"
            )
