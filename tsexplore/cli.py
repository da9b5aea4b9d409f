"""Unified CLI entry point for exploratory time series analysis.

Provides subcommands for the main workflows: derived-series transforms,
stationarity testing, decomposition, and the full figure report.
"""

from pathlib import Path
import sys

from loguru import logger
import typer

from tsexplore.config import LOG_LEVEL, get_path
from tsexplore.config.datasets import DATASETS
from tsexplore.config.transforms import (
    DEFAULT_DIFF_ORDER,
    DEFAULT_EWMA_ALPHA,
    DEFAULT_LAG,
    DEFAULT_WINDOW_SIZE,
    SEASONAL_PERIODS,
)
from tsexplore.features.series import TransformError, combine

app = typer.Typer(help="Exploratory time series CLI.")

OPERATIONS = ["diff", "lag", "rolling", "ewma", "geomean"]


@app.callback()
def main(
    log_level: str = typer.Option(
        LOG_LEVEL, "--log-level", help="Loguru level (DEBUG, INFO, ...)."
    ),
):
    """Configure logging for all subcommands."""
    logger.remove()
    logger.add(sys.stderr, level=log_level.upper())


def _load_series(dataset: str, column: str | None):
    from tsexplore.data.datasets import get_series

    if dataset not in DATASETS:
        raise typer.BadParameter(f"Unknown dataset '{dataset}'. Use one of {DATASETS}.")
    try:
        return get_series(dataset, column)
    except KeyError as e:
        raise typer.BadParameter(str(e)) from e


def _use_agg_backend():
    import matplotlib

    matplotlib.use("Agg")


@app.command()
def transform(
    dataset: str = typer.Argument("air_passengers", help=f"Dataset: one of {DATASETS}."),
    op: str = typer.Option("diff", "--op", help=f"Operation: {', '.join(OPERATIONS)}."),
    column: str = typer.Option(None, "--column", "-c", help="Column (default: first)."),
    order: int = typer.Option(DEFAULT_DIFF_ORDER, help="Differencing order (diff)."),
    k: int = typer.Option(DEFAULT_LAG, "--k", help="Lag in periods (lag)."),
    window: int = typer.Option(DEFAULT_WINDOW_SIZE, help="Window size (rolling, geomean)."),
    method: str = typer.Option("mean", help="Rolling aggregation: 'mean' or 'median'."),
    alpha: float = typer.Option(DEFAULT_EWMA_ALPHA, help="EWMA decay factor in (0, 1]."),
    output: Path = typer.Option(None, "--output", "-o", help="CSV output path (default: stdout)."),
):
    """Derive a series (difference, lag, rolling stat, EWMA, geometric mean)."""
    from tsexplore.features.ts_transforms import (
        difference,
        exponential_moving_average,
        geometric_mean_rolling,
        lag,
        rolling_aggregate,
    )

    if op not in OPERATIONS:
        raise typer.BadParameter(f"Unknown operation '{op}'. Use one of {OPERATIONS}.")

    series = _load_series(dataset, column)
    operations = {
        "diff": lambda: difference(series, order),
        "lag": lambda: lag(series, k),
        "rolling": lambda: rolling_aggregate(series, window, method),
        "ewma": lambda: exponential_moving_average(series, alpha),
        "geomean": lambda: geometric_mean_rolling(series, window),
    }
    try:
        derived = operations[op]()
    except TransformError as e:
        raise typer.BadParameter(str(e)) from e

    frame = combine(**{series.name: series, derived.name: derived})
    if output is None:
        typer.echo(frame.to_csv())
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(output)
    logger.success(f"Wrote {derived.name} ({len(frame)} rows) to {output}")


@app.command()
def stationarity(
    dataset: str = typer.Argument("air_passengers", help="Dataset name."),
    column: str = typer.Option(None, "--column", "-c", help="Column to test (default: first)."),
    diff: int = typer.Option(0, "--diff", help="Difference this many times before testing."),
):
    """Run the augmented Dickey-Fuller test, optionally after differencing."""
    from tsexplore.analysis.stationarity import adf_test
    from tsexplore.features.ts_transforms import difference

    series = _load_series(dataset, column)
    if diff < 0:
        raise typer.BadParameter("--diff must be >= 0")
    if diff >= len(series):
        raise typer.BadParameter(f"--diff must be < series length ({len(series)}), got {diff}")
    if diff > 0:
        series = difference(series, diff).trimmed()

    try:
        result = adf_test(series)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    typer.echo(f"ADF statistic: {result.statistic:.4f}")
    typer.echo(f"p-value: {result.p_value:.4f}")
    for level, value in result.critical_values.items():
        typer.echo(f"Critical value ({level}): {value:.4f}")
    typer.echo("stationary" if result.is_stationary else "non-stationary")


@app.command()
def decompose(
    dataset: str = typer.Argument("air_passengers", help="Dataset name."),
    column: str = typer.Option(None, "--column", "-c", help="Column (default: first)."),
    period: int = typer.Option(None, help="Seasonal period (default: dataset's natural period)."),
    method: str = typer.Option("stl", help="'stl' or 'classical'."),
    model: str = typer.Option("additive", help="'additive' or 'multiplicative'."),
    output: Path = typer.Option(None, "--output", "-o", help="Figure path."),
):
    """Seasonal decomposition figure."""
    _use_agg_backend()
    from tsexplore.analysis.decomposition import decompose as run_decomposition
    from tsexplore.plots import plot_decomposition

    series = _load_series(dataset, column)
    period = period if period is not None else SEASONAL_PERIODS[dataset]
    try:
        result = run_decomposition(series, period, method=method, model=model)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    path = output or get_path("decomposition", dataset)
    plot_decomposition(result, path=path)
    logger.success(f"Decomposition written to {path}")


@app.command()
def report(
    dataset: str = typer.Argument("air_passengers", help="Dataset name."),
    column: str = typer.Option(None, "--column", "-c", help="Column to analyse (default: first)."),
    window: int = typer.Option(DEFAULT_WINDOW_SIZE, help="Rolling window size."),
):
    """Full exploratory report: derived series CSV plus the figure set."""
    _use_agg_backend()
    from tsexplore import plots
    from tsexplore.analysis.decomposition import decompose as run_decomposition
    from tsexplore.analysis.diagnostics import coverage, lagged_change_correlation, normality
    from tsexplore.analysis.stationarity import differencing_order
    from tsexplore.config.pipelines import exploration_pipeline
    from tsexplore.data.datasets import load_dataset
    from tsexplore.features.ts_transforms import difference, rolling_aggregate
    from tsexplore.features.validation import validate_pipeline_leakage

    series = _load_series(dataset, column)
    frame = load_dataset(dataset)

    # Derived series
    pipeline = exploration_pipeline([series.name])
    probe = frame[[series.name]]
    validate_pipeline_leakage(pipeline, probe=probe)
    derived = pipeline.fit_transform(probe)
    derived_path = get_path("derived", dataset)
    derived_path.parent.mkdir(parents=True, exist_ok=True)
    derived.to_csv(derived_path)
    logger.info(f"Derived series written to {derived_path}")

    # Figures
    plots.plot_series(
        series,
        rolling_aggregate(series, window, "mean"),
        rolling_aggregate(series, window, "median"),
        title=f"{series.name} with {window}-period rolling mean and median",
        path=get_path("rolling", dataset),
    )
    decomposition = run_decomposition(series, SEASONAL_PERIODS[dataset])
    plots.plot_decomposition(decomposition, path=get_path("decomposition", dataset))
    plots.plot_seasonal(series, path=get_path("seasonal", dataset))

    changes = difference(series, 1).trimmed()
    plots.plot_histogram(changes, path=get_path("histogram", dataset))
    plots.plot_qq(changes, path=get_path("qq", dataset))
    plots.plot_acf_pacf(changes, path=get_path("acf_pacf", dataset))

    tasks = coverage(derived).dropna(subset=["start", "end"])
    plots.plot_gantt(
        tasks, title="Observed span of derived series", path=get_path("gantt", dataset)
    )

    if len(frame.columns) >= 3:
        x, y, z = frame.columns[:3]
        plots.plot_scatter_3d(frame, x, y, z, path=get_path("scatter_3d", dataset))

    # Diagnostics
    d = differencing_order(series)
    normal = normality(changes)
    rho = lagged_change_correlation(series, 1)
    typer.echo(f"Differencing order for stationarity: {d}")
    typer.echo(
        f"First differences normal: {normal.is_normal} "
        f"(Shapiro p={normal.shapiro_p_value:.4f})"
    )
    typer.echo(f"Correlation of change with previous change: {rho:.4f}")
    logger.success(f"Report for {dataset} complete")


if __name__ == "__main__":
    app()
