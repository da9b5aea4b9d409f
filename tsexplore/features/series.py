"""Immutable time-indexed containers for the temporal transform pipeline.

Provides:
- TimeSeries: sorted, unique-index sequence of float values (NaN = missing)
- DerivedSeries: output of a transform, same index and length as its input
- Window: validated rolling window configuration (right-aligned only)
- align()/combine(): join series for plotting or correlation
- Error types raised by the transforms

Missing values are never errors. They are carried as NaN and propagate through
transforms under each operation's documented policy.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from tsexplore.config.transforms import Alignment

# =============================================================================
# Errors
# =============================================================================


class TransformError(ValueError):
    """Base class for temporal transform failures."""


class InvalidConfiguration(TransformError):
    """Bad window size, lag, order, aggregation method or decay factor."""


class DomainError(TransformError):
    """Input value outside an operation's mathematical domain.

    Attributes:
        index: Integer position of the first offending value.
        timestamp: Index label at that position.
    """

    def __init__(self, message, index=None, timestamp=None):
        super().__init__(message)
        self.index = index
        self.timestamp = timestamp


class LengthMismatch(TransformError):
    """Series with unequal length or different timestamps were combined."""


# =============================================================================
# Window
# =============================================================================


@dataclass(frozen=True)
class Window:
    """Rolling window configuration.

    Parameters:
        size: Number of observations in the window (>= 1).
        alignment: Always Alignment.RIGHT; the string "right" is accepted.
    """

    size: int
    alignment: Alignment = Alignment.RIGHT

    def __post_init__(self):
        if isinstance(self.size, bool) or not isinstance(self.size, (int, np.integer)):
            raise InvalidConfiguration(f"Window size must be an integer, got {self.size!r}")
        if self.size <= 0:
            raise InvalidConfiguration(f"Window size must be positive, got {self.size}")
        try:
            alignment = Alignment(self.alignment)
        except ValueError:
            raise InvalidConfiguration(
                f"Unsupported window alignment {self.alignment!r}. Only 'right' is allowed"
            ) from None
        object.__setattr__(self, "size", int(self.size))
        object.__setattr__(self, "alignment", alignment)

    @classmethod
    def coerce(cls, window) -> "Window":
        """Accept a Window or a bare integer size."""
        if isinstance(window, Window):
            return window
        return cls(window)


# =============================================================================
# Series containers
# =============================================================================


@dataclass(frozen=True, eq=False)
class TimeSeries:
    """Ordered (timestamp, value) sequence.

    The index must be strictly ascending and unique. Values are stored as a
    read-only float64 copy; None and NaN both mean "missing".
    """

    index: pd.Index
    values: np.ndarray
    name: str | None = None

    def __post_init__(self):
        index = pd.Index(self.index)
        values = np.array(self.values, dtype=float)

        if values.ndim != 1:
            raise ValueError(f"Values must be one-dimensional, got shape {values.shape}")
        if len(index) != len(values):
            raise LengthMismatch(
                f"Index has {len(index)} timestamps but {len(values)} values were given"
            )
        if not index.is_unique:
            raise ValueError("Timestamps must be unique")
        if not index.is_monotonic_increasing:
            raise ValueError("Timestamps must be sorted ascending")

        values.flags.writeable = False
        object.__setattr__(self, "index", index)
        object.__setattr__(self, "values", values)

    @classmethod
    def from_pandas(cls, series: pd.Series, name: str | None = None) -> "TimeSeries":
        """Build from a pandas Series (index is used as timestamps)."""
        values = series.to_numpy(dtype=float, na_value=np.nan)
        return cls(series.index, values, name or series.name)

    @classmethod
    def from_values(cls, values, start=None, freq: str | None = None, name: str | None = None):
        """Build from raw values.

        With freq=None the index is positional (0..n-1); otherwise a
        DatetimeIndex of len(values) periods starting at `start`.
        """
        values = list(values)
        if freq is None:
            index = pd.RangeIndex(len(values))
        else:
            index = pd.date_range(start=start, periods=len(values), freq=freq)
        return cls(index, values, name)

    def __len__(self):
        return len(self.values)

    def __getitem__(self, position):
        return float(self.values[position])

    def __repr__(self):
        if len(self) == 0:
            return f"{type(self).__name__}(name={self.name!r}, length=0)"
        return (
            f"{type(self).__name__}(name={self.name!r}, length={len(self)}, "
            f"start={self.index[0]}, end={self.index[-1]}, missing={self.n_missing})"
        )

    @property
    def n_missing(self) -> int:
        return int(np.isnan(self.values).sum())

    def is_missing(self) -> np.ndarray:
        """Boolean mask, True where the value is missing."""
        return np.isnan(self.values)

    def items(self):
        """Iterate (timestamp, value) pairs."""
        return zip(self.index, self.values.tolist())

    def equals(self, other: "TimeSeries") -> bool:
        """Same index and values, treating missing positions as equal."""
        return (
            len(self) == len(other)
            and self.index.equals(other.index)
            and np.array_equal(self.values, other.values, equal_nan=True)
        )

    def to_pandas(self) -> pd.Series:
        return pd.Series(self.values.copy(), index=self.index, name=self.name)

    def dropna(self) -> "TimeSeries":
        """Explicitly filter out missing positions, returning a new TimeSeries."""
        keep = ~self.is_missing()
        return TimeSeries(self.index[keep], self.values[keep], self.name)

    def derive(self, values, transform: str, min_history: int = 0) -> "DerivedSeries":
        """Wrap transform output on this series' index."""
        name = f"{self.name}_{transform}" if self.name else transform
        return DerivedSeries(
            self.index, values, name, transform=transform, min_history=min_history
        )


@dataclass(frozen=True, eq=False, repr=False)
class DerivedSeries(TimeSeries):
    """Transform output.

    Attributes:
        transform: Short label of the producing transform (e.g. "diff1", "roll7_mean").
        min_history: Leading positions that are missing for lack of history.
    """

    transform: str = ""
    min_history: int = 0

    def trimmed(self) -> TimeSeries:
        """Drop the leading positions left missing for lack of history."""
        start = self.min_history
        return TimeSeries(self.index[start:], self.values[start:], self.name)


def _as_pandas(series, position):
    if isinstance(series, TimeSeries):
        return series.to_pandas()
    if isinstance(series, pd.Series):
        return series
    raise TypeError(f"Argument {position} is {type(series).__name__}, expected TimeSeries")


def combine(**named_series) -> pd.DataFrame:
    """Join aligned series into a DataFrame keyed by the given names.

    Raises:
        LengthMismatch: If lengths or timestamps differ between series.
    """
    if not named_series:
        return pd.DataFrame()

    columns = {}
    reference_name, reference = None, None
    for i, (name, series) in enumerate(named_series.items()):
        s = _as_pandas(series, i)
        if reference is None:
            reference_name, reference = name, s
        elif len(s) != len(reference):
            raise LengthMismatch(
                f"'{name}' has {len(s)} values, '{reference_name}' has {len(reference)}"
            )
        elif not s.index.equals(reference.index):
            raise LengthMismatch(f"'{name}' timestamps are not aligned with '{reference_name}'")
        columns[name] = s.to_numpy()

    return pd.DataFrame(columns, index=reference.index)


def align(*series) -> pd.DataFrame:
    """Positional variant of combine(); columns are named after each series."""
    named = {}
    for i, s in enumerate(series):
        key = getattr(s, "name", None) or f"series_{i}"
        if key in named:
            key = f"{key}_{i}"
        named[key] = s
    return combine(**named)
