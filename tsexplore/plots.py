"""Matplotlib figures for exploratory time series analysis.

Every function returns the Figure; pass `path` to also save it (the figure is
then closed). Series passed together are joined with align(), so misaligned
inputs raise LengthMismatch instead of being silently re-indexed.
"""

from pathlib import Path

from loguru import logger
import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from statsmodels.graphics.gofplots import qqplot
from statsmodels.graphics.tsaplots import plot_acf, plot_pacf

from tsexplore.analysis.decomposition import Decomposition, seasonal_table
from tsexplore.features.series import TimeSeries, align

GANTT_COLUMNS = ["task", "start", "end"]


def save_figure(fig, path: Path | None):
    """Save and close `fig` if a path is given; return the figure either way."""
    if path is None:
        return fig
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=120, bbox_inches="tight")
    plt.close(fig)
    logger.info(f"Saved figure to {path}")
    return fig


def plot_series(*series, title=None, xlabel="Time", ylabel=None, path=None):
    """Line chart of one or more aligned series."""
    frame = align(*series)
    fig, ax = plt.subplots(figsize=(12, 5))
    for col in frame.columns:
        ax.plot(frame.index, frame[col], label=col)

    ax.set_title(title or ", ".join(map(str, frame.columns)))
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel or "")
    if len(frame.columns) > 1:
        ax.legend()
    fig.tight_layout()
    return save_figure(fig, path)


def plot_decomposition(decomposition: Decomposition, title=None, path=None):
    """Observed, trend, seasonal and remainder panels."""
    frame = decomposition.to_frame()
    fig, axes = plt.subplots(4, 1, figsize=(12, 10), sharex=True)
    for ax, col in zip(axes, frame.columns):
        ax.plot(frame.index, frame[col])
        ax.set_ylabel(col.capitalize())

    name = decomposition.observed.name or "series"
    fig.suptitle(title or f"{decomposition.model.capitalize()} decomposition of {name}")
    fig.tight_layout()
    return save_figure(fig, path)


def plot_seasonal(series: TimeSeries, title=None, path=None):
    """One line per year across months (seasonal plot)."""
    table = seasonal_table(series)
    fig, ax = plt.subplots(figsize=(10, 6))
    colors = plt.cm.viridis(np.linspace(0, 1, len(table.index)))

    for color, (year, row) in zip(colors, table.iterrows()):
        ax.plot(row.index, row.values, marker="o", color=color, label=str(year))

    ax.set_xticks(range(1, 13))
    ax.set_xlabel("Month")
    ax.set_ylabel(series.name or "")
    ax.set_title(title or f"Seasonal plot: {series.name}")
    ax.legend(ncol=2, fontsize="small", loc="upper left")
    fig.tight_layout()
    return save_figure(fig, path)


def plot_histogram(series: TimeSeries, bins: int = 20, title=None, path=None):
    """Histogram of the non-missing values."""
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.hist(series.dropna().values, bins=bins, edgecolor="black")
    ax.set_xlabel(series.name or "value")
    ax.set_ylabel("Count")
    ax.set_title(title or f"Distribution of {series.name}")
    fig.tight_layout()
    return save_figure(fig, path)


def plot_qq(series: TimeSeries, title=None, path=None):
    """Normal QQ plot of the non-missing values with a standardized reference line."""
    fig, ax = plt.subplots(figsize=(6, 6))
    qqplot(series.dropna().values, line="s", ax=ax)
    ax.set_title(title or f"Normal QQ plot: {series.name}")
    fig.tight_layout()
    return save_figure(fig, path)


def plot_acf_pacf(series: TimeSeries, nlags: int = 24, title=None, path=None):
    """ACF and PACF side by side."""
    values = series.dropna().values
    nlags = min(nlags, len(values) // 2 - 1)

    fig, axes = plt.subplots(1, 2, figsize=(14, 5))
    plot_acf(values, lags=nlags, ax=axes[0], title=f"ACF - {series.name}")
    plot_pacf(values, lags=nlags, ax=axes[1], method="ywm", title=f"PACF - {series.name}")
    if title:
        fig.suptitle(title)
    fig.tight_layout()
    return save_figure(fig, path)


def plot_scatter_3d(frame: pd.DataFrame, x: str, y: str, z: str, title=None, path=None):
    """3-D scatter of three columns, colored by time order."""
    missing = [c for c in (x, y, z) if c not in frame.columns]
    if missing:
        raise KeyError(f"Columns {missing} not found. Available: {list(frame.columns)}")

    data = frame[[x, y, z]].dropna()
    fig = plt.figure(figsize=(9, 7))
    ax = fig.add_subplot(projection="3d")
    ax.scatter(data[x], data[y], data[z], c=np.arange(len(data)), cmap="viridis", s=6)
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_zlabel(z)
    ax.set_title(title or f"{x} vs {y} vs {z}")
    return save_figure(fig, path)


def plot_gantt(tasks: pd.DataFrame, title=None, path=None):
    """Horizontal bars from `start` to `end` for each `task`.

    Raises:
        KeyError: If task/start/end columns are missing.
        ValueError: If any task ends before it starts.
    """
    missing = [c for c in GANTT_COLUMNS if c not in tasks.columns]
    if missing:
        raise KeyError(f"Gantt tasks need columns {GANTT_COLUMNS}; missing {missing}")

    start = pd.to_datetime(tasks["start"])
    end = pd.to_datetime(tasks["end"])
    if (end < start).any():
        bad = tasks.loc[end < start, "task"].tolist()
        raise ValueError(f"Tasks end before they start: {bad}")

    left = mdates.date2num(start)
    width = mdates.date2num(end) - left

    fig, ax = plt.subplots(figsize=(12, max(2, 0.5 * len(tasks) + 1)))
    ax.barh(tasks["task"].astype(str), width, left=left, height=0.5)
    ax.xaxis_date()
    ax.invert_yaxis()
    ax.set_xlabel("Time")
    ax.set_title(title or "Timeline")
    fig.tight_layout()
    return save_figure(fig, path)
