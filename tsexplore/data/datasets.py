"""Loaders for the built-in datasets.

AirPassengers ships with the package; EuStockMarkets is downloaded once from
the Rdatasets mirror and cached under RAW_DATA_DIR.
"""

from pathlib import Path

from loguru import logger
import pandas as pd
from statsmodels.datasets import get_rdataset

from tsexplore.config import RAW_DATA_DIR
from tsexplore.config.datasets import (
    AIR_PASSENGERS,
    AIR_PASSENGERS_FREQ,
    AIR_PASSENGERS_START,
    DATASETS,
    EU_STOCK_MARKETS_COLUMNS,
    EU_STOCK_MARKETS_RDATASET,
    EU_STOCK_MARKETS_START,
)
from tsexplore.features.series import TimeSeries


def load_air_passengers() -> TimeSeries:
    """Monthly airline passengers (thousands), January 1949 to December 1960."""
    return TimeSeries.from_values(
        AIR_PASSENGERS, start=AIR_PASSENGERS_START, freq=AIR_PASSENGERS_FREQ, name="passengers"
    )


def load_eu_stock_markets(cache_dir: Path | None = None) -> pd.DataFrame:
    """Daily closing prices of DAX, SMI, CAC and FTSE on a business-day index.

    Args:
        cache_dir: Download cache directory (default: RAW_DATA_DIR / "rdatasets").

    Returns:
        DataFrame with one column per index.
    """
    cache_dir = Path(cache_dir) if cache_dir is not None else RAW_DATA_DIR / "rdatasets"
    cache_dir.mkdir(parents=True, exist_ok=True)

    name, package = EU_STOCK_MARKETS_RDATASET
    logger.info(f"Loading {package}::{name} (cache: {cache_dir})")
    raw = get_rdataset(name, package, cache=str(cache_dir)).data

    missing = [c for c in EU_STOCK_MARKETS_COLUMNS if c not in raw.columns]
    if missing:
        raise ValueError(f"{name} is missing columns {missing}; got {list(raw.columns)}")

    df = raw[EU_STOCK_MARKETS_COLUMNS].astype(float).reset_index(drop=True)
    df.index = pd.bdate_range(start=EU_STOCK_MARKETS_START, periods=len(df), name="date")
    logger.info(f"Loaded {name}: {len(df)} rows, {df.index[0].date()} to {df.index[-1].date()}")
    return df


def load_dataset(name: str) -> pd.DataFrame:
    """Load a built-in dataset as a DataFrame.

    Args:
        name: One of "air_passengers", "eu_stock_markets".

    Returns:
        DataFrame indexed by timestamp.
    """
    if name == "air_passengers":
        return load_air_passengers().to_pandas().rename_axis("month").to_frame()
    if name == "eu_stock_markets":
        return load_eu_stock_markets()
    raise KeyError(f"Unknown dataset '{name}'. Valid: {DATASETS}")


def get_series(name: str, column: str | None = None) -> TimeSeries:
    """Load one column of a built-in dataset as a TimeSeries (default: first column)."""
    df = load_dataset(name)
    column = column or df.columns[0]
    if column not in df.columns:
        raise KeyError(f"Column '{column}' not in {name}. Valid: {list(df.columns)}")
    return TimeSeries.from_pandas(df[column], name=column)
