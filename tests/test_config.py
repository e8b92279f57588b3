import os
import tempfile
import unittest
from unittest.mock import patch

from heatcheck.config import AnalyticsConfig, load_dotenv


class TestAnalyticsConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        config = AnalyticsConfig.from_env({})
        self.assertEqual(config, AnalyticsConfig())
        self.assertEqual(config.kde_points, 100)
        self.assertEqual(config.top_defense_rank, 10)

    def test_overrides(self) -> None:
        config = AnalyticsConfig.from_env(
            {
                "HEATCHECK_KDE_POINTS": "200",
                "HEATCHECK_VOLATILITY_LOW": "25.5",
                "HEATCHECK_LOG_LEVEL": "DEBUG",
                "HEATCHECK_STREAK_WINDOW": " ",
            }
        )
        self.assertEqual(config.kde_points, 200)
        self.assertEqual(config.volatility_low, 25.5)
        self.assertEqual(config.log_level, "DEBUG")
        self.assertEqual(config.streak_window, 10)

    def test_invalid_value(self) -> None:
        with self.assertRaises(ValueError):
            AnalyticsConfig.from_env({"HEATCHECK_BATCH_WORKERS": "many"})

    def test_reads_os_environ(self) -> None:
        with patch.dict(os.environ, {"HEATCHECK_MIN_SHARED_GAMES": "5"}):
            self.assertEqual(AnalyticsConfig.from_env().min_shared_games, 5)


class TestLoadDotenv(unittest.TestCase):
    def test_does_not_override(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, ".env")
            with open(path, "w", encoding="utf-8") as handle:
                handle.write("# comment\nHEATCHECK_KDE_POINTS='50'\nHEATCHECK_LOG_LEVEL=WARNING\n")
            with patch.dict(os.environ, {"HEATCHECK_LOG_LEVEL": "ERROR"}, clear=False):
                os.environ.pop("HEATCHECK_KDE_POINTS", None)
                load_dotenv(path)
                self.assertEqual(os.environ["HEATCHECK_KDE_POINTS"], "50")
                self.assertEqual(os.environ["HEATCHECK_LOG_LEVEL"], "ERROR")

    def test_missing_file(self) -> None:
        load_dotenv("/nonexistent/.env")


if __name__ == "__main__":
    unittest.main()
