"""Tests for the pure temporal transforms in tsexplore.features.ts_transforms.

Tests cover:
  - Reference values on the first AirPassengers observations
  - Differencing identities (reconstruction, second differences of squares)
  - Lag and rolling-window edge cases (k > n, missing values, bad configuration)
  - EWMA recursion and missing-value policy
  - Geometric mean values and DomainError reporting
  - No output depends on later inputs (perturbation check)
"""

from __future__ import annotations

import math
import unittest

import numpy as np

from tsexplore.config.transforms import AggMethod
from tsexplore.features.series import (
    DomainError,
    InvalidConfiguration,
    TimeSeries,
    Window,
)
from tsexplore.features.ts_transforms import (
    difference,
    exponential_moving_average,
    geometric_mean_rolling,
    lag,
    rolling_aggregate,
)
from tsexplore.features.validation import check_no_lookahead

FIRST_SIX = [112.0, 118.0, 132.0, 129.0, 121.0, 135.0]


def _make_series(values, name="passengers") -> TimeSeries:
    return TimeSeries.from_values(values, start="1949-01-01", freq="MS", name=name)


def _make_random_walk(n=60, seed=0) -> TimeSeries:
    rng = np.random.default_rng(seed)
    return _make_series(100.0 + np.cumsum(rng.normal(size=n)), name="walk")


# ===========================================================================
# difference
# ===========================================================================


class TestDifference(unittest.TestCase):
    def test_first_difference_reference_values(self):
        result = difference(_make_series(FIRST_SIX), 1)
        np.testing.assert_allclose(
            result.values, [np.nan, 6.0, 14.0, -3.0, -8.0, 14.0], equal_nan=True
        )
        self.assertEqual(result.name, "passengers_diff1")
        self.assertEqual(result.min_history, 1)

    def test_output_keeps_index_and_length(self):
        series = _make_series(FIRST_SIX)
        result = difference(series, 2)
        self.assertEqual(len(result), len(series))
        self.assertTrue(result.index.equals(series.index))
        self.assertTrue(np.isnan(result.values[:2]).all())

    def test_change_plus_previous_value_is_current_value(self):
        series = _make_random_walk()
        changes = difference(series, 1).values
        np.testing.assert_allclose(changes[1:] + series.values[:-1], series.values[1:])

    def test_cumulative_sum_reconstructs_series(self):
        series = _make_random_walk()
        changes = difference(series, 1).values
        rebuilt = series[0] + np.concatenate([[0.0], np.cumsum(changes[1:])])
        np.testing.assert_allclose(rebuilt, series.values)

    def test_second_difference_of_squares_is_constant(self):
        series = _make_series([float(i**2) for i in range(10)])
        result = difference(series, 2)
        np.testing.assert_allclose(result.values[2:], 2.0)

    def test_missing_value_propagates(self):
        result = difference(_make_series([1.0, None, 3.0, 4.0]), 1)
        np.testing.assert_allclose(result.values, [np.nan, np.nan, np.nan, 1.0], equal_nan=True)

    def test_invalid_order_rejected(self):
        for order in (0, -1, 1.5, True):
            with self.subTest(order=order):
                with self.assertRaises(InvalidConfiguration):
                    difference(_make_series(FIRST_SIX), order)

    def test_input_is_not_modified(self):
        series = _make_series(FIRST_SIX)
        difference(series, 2)
        np.testing.assert_array_equal(series.values, FIRST_SIX)

    def test_empty_series(self):
        result = difference(TimeSeries.from_values([]), 1)
        self.assertEqual(len(result), 0)


# ===========================================================================
# lag
# ===========================================================================


class TestLag(unittest.TestCase):
    def test_shift_by_one(self):
        result = lag(_make_series([1.0, 2.0, 3.0]), 1)
        np.testing.assert_allclose(result.values, [np.nan, 1.0, 2.0], equal_nan=True)
        self.assertEqual(result.name, "passengers_lag1")

    def test_zero_lag_rejected(self):
        with self.assertRaises(InvalidConfiguration):
            lag(_make_series(FIRST_SIX), 0)

    def test_negative_lag_rejected(self):
        with self.assertRaises(InvalidConfiguration):
            lag(_make_series(FIRST_SIX), -2)

    def test_lag_longer_than_series_is_all_missing(self):
        result = lag(_make_series([1.0, 2.0, 3.0]), 5)
        self.assertEqual(len(result), 3)
        self.assertEqual(result.n_missing, 3)

    def test_lag_equal_to_length_is_all_missing(self):
        result = lag(_make_series([1.0, 2.0, 3.0]), 3)
        self.assertEqual(result.n_missing, 3)


# ===========================================================================
# rolling_aggregate
# ===========================================================================


class TestRollingAggregate(unittest.TestCase):
    def test_rolling_mean_reference_values(self):
        result = rolling_aggregate(_make_series(FIRST_SIX), 3, "mean")
        expected = [np.nan, np.nan, 362 / 3, 379 / 3, 382 / 3, 385 / 3]
        np.testing.assert_allclose(result.values, expected, equal_nan=True)
        self.assertEqual(result.name, "passengers_roll3_mean")
        self.assertEqual(result.min_history, 2)

    def test_rolling_median(self):
        series = _make_series([1.0, 9.0, 2.0, 8.0])
        result = rolling_aggregate(series, Window(3), AggMethod.MEDIAN)
        np.testing.assert_allclose(result.values, [np.nan, np.nan, 2.0, 8.0], equal_nan=True)

    def test_window_of_one_is_identity(self):
        series = _make_series(FIRST_SIX)
        result = rolling_aggregate(series, 1, "mean")
        np.testing.assert_allclose(result.values, series.values)

    def test_missing_value_blanks_windows_containing_it(self):
        result = rolling_aggregate(_make_series([1.0, 2.0, None, 4.0, 5.0, 6.0]), 2, "mean")
        np.testing.assert_allclose(
            result.values, [np.nan, 1.5, np.nan, np.nan, 4.5, 5.5], equal_nan=True
        )

    def test_window_larger_than_series_is_all_missing(self):
        result = rolling_aggregate(_make_series([1.0, 2.0]), 5, "mean")
        self.assertEqual(result.n_missing, 2)

    def test_invalid_window_rejected(self):
        for window in (0, -3, 2.5):
            with self.subTest(window=window):
                with self.assertRaises(InvalidConfiguration):
                    rolling_aggregate(_make_series(FIRST_SIX), window, "mean")

    def test_unknown_method_rejected(self):
        with self.assertRaises(InvalidConfiguration):
            rolling_aggregate(_make_series(FIRST_SIX), 3, "max")

    def test_earlier_outputs_ignore_later_changes(self):
        series = _make_series(FIRST_SIX)
        changed = _make_series(FIRST_SIX[:4] + [1000.0, -50.0])
        before = rolling_aggregate(series, 3, "mean").values
        after = rolling_aggregate(changed, 3, "mean").values
        np.testing.assert_allclose(before[:4], after[:4], equal_nan=True)


# ===========================================================================
# exponential_moving_average
# ===========================================================================


class TestExponentialMovingAverage(unittest.TestCase):
    def test_recursion(self):
        result = exponential_moving_average(_make_series([10.0, 20.0, 30.0]), 0.5)
        np.testing.assert_allclose(result.values, [10.0, 15.0, 22.5])
        self.assertEqual(result.name, "passengers_ewma_0.5")

    def test_missing_input_holds_last_estimate(self):
        result = exponential_moving_average(_make_series([10.0, None, 20.0]), 0.5)
        np.testing.assert_allclose(result.values, [10.0, 10.0, 15.0])

    def test_leading_missing_values_stay_missing(self):
        result = exponential_moving_average(_make_series([None, None, 4.0, 8.0]), 0.25)
        np.testing.assert_allclose(result.values, [np.nan, np.nan, 4.0, 5.0], equal_nan=True)
        self.assertEqual(result.min_history, 2)

    def test_alpha_one_reproduces_input(self):
        series = _make_series(FIRST_SIX)
        result = exponential_moving_average(series, 1.0)
        np.testing.assert_allclose(result.values, series.values)

    def test_invalid_alpha_rejected(self):
        for alpha in (0.0, -0.1, 1.5, math.nan, True, "0.3"):
            with self.subTest(alpha=alpha):
                with self.assertRaises(InvalidConfiguration):
                    exponential_moving_average(_make_series(FIRST_SIX), alpha)

    def test_all_missing_series(self):
        result = exponential_moving_average(_make_series([None, None]), 0.3)
        self.assertEqual(result.n_missing, 2)


# ===========================================================================
# geometric_mean_rolling
# ===========================================================================


class TestGeometricMeanRolling(unittest.TestCase):
    def test_reference_values(self):
        result = geometric_mean_rolling(_make_series([1.0, 2.0, 4.0, 8.0]), 2)
        expected = [np.nan, math.sqrt(2), math.sqrt(8), math.sqrt(32)]
        np.testing.assert_allclose(result.values, expected, equal_nan=True)
        self.assertEqual(result.name, "passengers_geomean2")

    def test_not_above_arithmetic_mean(self):
        series = _make_series(FIRST_SIX)
        geo = geometric_mean_rolling(series, 3).values[2:]
        arith = rolling_aggregate(series, 3, "mean").values[2:]
        self.assertTrue((geo <= arith + 1e-9).all())

    def test_non_positive_value_raises_with_position(self):
        series = _make_series([3.0, 2.0, 0.0, 5.0])
        with self.assertRaises(DomainError) as ctx:
            geometric_mean_rolling(series, 2)
        self.assertEqual(ctx.exception.index, 2)
        self.assertEqual(ctx.exception.timestamp, series.index[2])

    def test_negative_value_raises(self):
        with self.assertRaises(DomainError):
            geometric_mean_rolling(_make_series([1.0, -4.0, 2.0]), 2)

    def test_missing_values_follow_rolling_policy(self):
        result = geometric_mean_rolling(_make_series([1.0, 4.0, None, 9.0, 1.0]), 2)
        np.testing.assert_allclose(
            result.values, [np.nan, 2.0, np.nan, np.nan, 3.0], equal_nan=True
        )

    def test_window_larger_than_series_is_all_missing(self):
        result = geometric_mean_rolling(_make_series([1.0, 2.0]), 4)
        self.assertEqual(result.n_missing, 2)


# ===========================================================================
# No lookahead
# ===========================================================================


class TestNoLookahead(unittest.TestCase):
    def test_every_operation_is_causal(self):
        series = _make_random_walk(n=40, seed=3)
        operations = {
            "difference": lambda s: difference(s, 2),
            "lag": lambda s: lag(s, 3),
            "lagged_change": lambda s: lag(difference(s, 1), 1),
            "rolling_mean": lambda s: rolling_aggregate(s, 5, "mean"),
            "rolling_median": lambda s: rolling_aggregate(s, 5, "median"),
            "ewma": lambda s: exponential_moving_average(s, 0.3),
            "geomean": lambda s: geometric_mean_rolling(s, 4),
        }
        for name, fn in operations.items():
            with self.subTest(operation=name):
                check_no_lookahead(fn, series, n_cuts=8)

    def test_centered_smoother_is_detected(self):
        def centered_mean(series):
            values = series.to_pandas().rolling(3, center=True).mean().to_numpy()
            return series.derive(values, "centered3")

        with self.assertRaises(ValueError):
            check_no_lookahead(centered_mean, _make_random_walk())


if __name__ == "__main__":
    unittest.main()
