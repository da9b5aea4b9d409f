"""Tests for the typer CLI (tsexplore.cli).

Output paths are redirected to a temp directory by patching get_path.
"""

from __future__ import annotations

from pathlib import Path
import sys
import tempfile
import unittest
from unittest.mock import patch

from loguru import logger
from typer.testing import CliRunner

from tsexplore.cli import app


class TestCli(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self._tmp = tempfile.TemporaryDirectory()
        self.out = Path(self._tmp.name)

    def tearDown(self):
        # The CLI callback rebinds loguru to the runner's captured stderr
        logger.remove()
        logger.add(sys.stderr)
        self._tmp.cleanup()

    def _get_path(self, name, dataset="air_passengers"):
        suffix = ".csv" if name == "derived" else ".png"
        return self.out / f"{dataset}_{name}{suffix}"

    def test_transform_to_stdout(self):
        result = self.runner.invoke(app, ["transform", "air_passengers", "--op", "diff"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("passengers_diff1", result.stdout)
        self.assertIn("1949-02-01,118.0,6.0", result.stdout)

    def test_transform_to_file(self):
        path = self.out / "ewma.csv"
        args = ["transform", "air_passengers", "--op", "ewma", "--alpha", "0.5", "-o", str(path)]
        result = self.runner.invoke(app, args)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("passengers_ewma_0.5", path.read_text())

    def test_transform_rejects_bad_configuration(self):
        for args in (
            ["--op", "lag", "--k", "0"],
            ["--op", "rolling", "--window", "0"],
            ["--op", "rolling", "--method", "max"],
            ["--op", "ewma", "--alpha", "1.5"],
            ["--op", "centered"],
        ):
            with self.subTest(args=args):
                result = self.runner.invoke(app, ["transform", "air_passengers", *args])
                self.assertEqual(result.exit_code, 2)

    def test_unknown_dataset(self):
        result = self.runner.invoke(app, ["transform", "sunspots"])
        self.assertEqual(result.exit_code, 2)

    def test_unknown_column(self):
        result = self.runner.invoke(app, ["transform", "air_passengers", "-c", "revenue"])
        self.assertEqual(result.exit_code, 2)

    def test_stationarity(self):
        result = self.runner.invoke(app, ["stationarity", "air_passengers", "--diff", "1"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("ADF statistic:", result.stdout)
        self.assertIn("Critical value (5%)", result.stdout)

    def test_stationarity_level_is_non_stationary(self):
        result = self.runner.invoke(app, ["stationarity", "air_passengers"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("non-stationary", result.stdout)

    def test_stationarity_rejects_order_beyond_length(self):
        result = self.runner.invoke(app, ["stationarity", "air_passengers", "--diff", "200"])
        self.assertEqual(result.exit_code, 2)

    def test_stationarity_rejects_too_short_remainder(self):
        result = self.runner.invoke(app, ["stationarity", "air_passengers", "--diff", "143"])
        self.assertEqual(result.exit_code, 2)

    def test_decompose(self):
        with patch("tsexplore.cli.get_path", side_effect=self._get_path):
            args = ["decompose", "air_passengers", "--model", "multiplicative"]
            result = self.runner.invoke(app, args)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(self._get_path("decomposition").exists())

    def test_decompose_rejects_bad_method(self):
        with patch("tsexplore.cli.get_path", side_effect=self._get_path):
            result = self.runner.invoke(app, ["decompose", "air_passengers", "--method", "x11"])
        self.assertEqual(result.exit_code, 2)

    def test_decompose_rejects_explicit_zero_period(self):
        path = self.out / "period0.png"
        args = ["decompose", "air_passengers", "--period", "0", "-o", str(path)]
        result = self.runner.invoke(app, args)
        self.assertEqual(result.exit_code, 2)
        self.assertFalse(path.exists())

    def test_report(self):
        with patch("tsexplore.cli.get_path", side_effect=self._get_path):
            args = ["--log-level", "WARNING", "report", "air_passengers"]
            result = self.runner.invoke(app, args)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Differencing order for stationarity", result.stdout)
        outputs = ("derived", "rolling", "decomposition", "seasonal", "histogram", "qq")
        for name in (*outputs, "acf_pacf", "gantt"):
            with self.subTest(output=name):
                self.assertTrue(self._get_path(name).exists())
        self.assertIn("passengers_geomean7", self._get_path("derived").read_text())


if __name__ == "__main__":
    unittest.main()
