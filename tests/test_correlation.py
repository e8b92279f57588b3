import unittest

import numpy as np

from heatcheck.config import AnalyticsConfig
from heatcheck.correlation import (
    PropDescriptor,
    PropSeries,
    classify_relationship,
    compute_correlation_matrix,
    suggest_parlay_groups,
)
from heatcheck.game_logs import Observation
from heatcheck.stats import pearson


def make_series(player_id: str, values: list[float], days: list[int] | None = None, **prop_kwargs) -> PropSeries:
    days = days or list(range(1, len(values) + 1))
    observations = [
        Observation(
            date=f"2024-01-{day:02d}",
            opponent="BOS",
            is_home=True,
            is_back_to_back=False,
            rest_days=1,
            opponent_defense_rank=15,
            value=value,
        )
        for value, day in zip(values, days)
    ]
    prop = PropDescriptor(player_id=player_id, stat=prop_kwargs.pop("stat", "points"), line=10.5, **prop_kwargs)
    return PropSeries(prop=prop, observations=observations)


class TestCorrelationMatrix(unittest.TestCase):
    def test_matrix_properties(self) -> None:
        series = [
            make_series("a", [10.0, 14.0, 9.0, 20.0, 17.0]),
            make_series("b", [4.0, 6.0, 5.0, 9.0, 7.0]),
            make_series("c", [12.0, 8.0, 13.0, 3.0, 6.0]),
        ]
        result = compute_correlation_matrix(series)
        self.assertEqual(result.correlations.shape, (3, 3))
        np.testing.assert_array_equal(np.diag(result.correlations), np.ones(3))
        np.testing.assert_allclose(result.correlations, result.correlations.T)
        self.assertTrue(np.all(result.correlations <= 1.0))
        self.assertTrue(np.all(result.correlations >= -1.0))
        expected = np.corrcoef([10.0, 14.0, 9.0, 20.0, 17.0], [4.0, 6.0, 5.0, 9.0, 7.0])[0, 1]
        self.assertAlmostEqual(result.correlations[0, 1], expected)

    def test_aligns_by_date(self) -> None:
        first = make_series("a", [1.0, 2.0, 3.0, 4.0], days=[1, 2, 3, 4])
        # same games listed newest-first, plus one game the other player missed
        second = make_series("b", [50.0, 8.0, 6.0, 4.0, 2.0], days=[9, 4, 3, 2, 1])
        result = compute_correlation_matrix([first, second])
        self.assertAlmostEqual(result.correlations[0, 1], 1.0)
        self.assertEqual(result.sample_sizes[0, 1], 4)
        self.assertEqual(result.pairs[0].sample_size, 4)

    def test_agrees_with_pearson_on_shared_dates(self) -> None:
        first = make_series("a", [12.0, 18.0, 9.0, 25.0, 14.0, 30.0], days=[1, 2, 3, 4, 5, 6])
        second = make_series("b", [40.0, 6.0, 9.0, 4.0, 11.0, 7.0], days=[9, 6, 5, 4, 2, 1])
        result = compute_correlation_matrix([first, second])
        # shared dates 1, 2, 4, 5, 6 in chronological order
        expected = pearson([12.0, 18.0, 25.0, 14.0, 30.0], [7.0, 11.0, 4.0, 9.0, 6.0])
        self.assertAlmostEqual(result.correlations[0, 1], expected)
        self.assertAlmostEqual(result.pairs[0].correlation, round(expected, 3))
        self.assertEqual(result.sample_sizes[0, 1], 5)

    def test_insufficient_overlap_is_zero(self) -> None:
        first = make_series("a", [1.0, 2.0, 3.0], days=[1, 2, 3])
        second = make_series("b", [5.0, 9.0], days=[3, 7])
        result = compute_correlation_matrix([first, second])
        self.assertEqual(result.correlations[0, 1], 0.0)
        self.assertEqual(result.pairs[0].relationship, "weak")

    def test_min_shared_games_from_config(self) -> None:
        first = make_series("a", [1.0, 2.0, 3.0])
        second = make_series("b", [2.0, 4.0, 6.0])
        strict = compute_correlation_matrix([first, second], config=AnalyticsConfig(min_shared_games=10))
        self.assertEqual(strict.correlations[0, 1], 0.0)

    def test_constant_series_is_zero(self) -> None:
        result = compute_correlation_matrix([make_series("a", [5.0, 5.0, 5.0]), make_series("b", [1.0, 2.0, 3.0])])
        self.assertEqual(result.correlations[0, 1], 0.0)
        self.assertEqual(result.correlations[0, 0], 1.0)

    def test_empty_observations(self) -> None:
        result = compute_correlation_matrix([make_series("a", []), make_series("b", [])])
        np.testing.assert_array_equal(result.correlations, np.eye(2))

    def test_single_series(self) -> None:
        result = compute_correlation_matrix([make_series("a", [3.0, 4.0])])
        np.testing.assert_array_equal(result.correlations, np.array([[1.0]]))
        self.assertEqual(result.pairs, ())

    def test_requires_series(self) -> None:
        with self.assertRaises(ValueError):
            compute_correlation_matrix([])

    def test_duplicate_dates_warn(self) -> None:
        series = make_series("a", [1.0, 2.0, 3.0], days=[1, 1, 2])
        with self.assertLogs("heatcheck.correlation", level="WARNING"):
            compute_correlation_matrix([series, make_series("b", [1.0, 2.0])])

    def test_pairs_and_insights(self) -> None:
        series = [
            make_series("a", [1.0, 2.0, 3.0, 4.0, 5.0], player_name="Alpha"),
            make_series("b", [2.0, 4.0, 6.0, 8.0, 10.0], player_name="Bravo"),
            make_series("c", [5.0, 4.0, 3.0, 2.0, 1.0], player_name="Charlie"),
            make_series("d", [3.0, 1.0, 4.0, 1.0, 5.0], player_name="Delta"),
        ]
        result = compute_correlation_matrix(series)
        magnitudes = [abs(pair.correlation) for pair in result.pairs]
        self.assertEqual(magnitudes, sorted(magnitudes, reverse=True))
        kinds = {(insight.kind, insight.players) for insight in result.insights}
        self.assertIn(("stack", ("Alpha", "Bravo")), kinds)
        self.assertIn(("fade", ("Alpha", "Charlie")), kinds)
        top = result.pairs[0]
        self.assertEqual(abs(top.correlation), 1.0)
        self.assertIn("r=", top.insight)

    def test_idempotent(self) -> None:
        series = [make_series("a", [3.0, 9.0, 4.0]), make_series("b", [1.0, 5.0, 2.0])]
        first = compute_correlation_matrix(series)
        second = compute_correlation_matrix(series)
        np.testing.assert_array_equal(first.correlations, second.correlations)
        self.assertEqual(first.pairs, second.pairs)


class TestRelationshipAndGroups(unittest.TestCase):
    def test_classify_relationship(self) -> None:
        self.assertEqual(classify_relationship(0.75), "strong_positive")
        self.assertEqual(classify_relationship(-0.7), "strong_negative")
        self.assertEqual(classify_relationship(0.45), "moderate_positive")
        self.assertEqual(classify_relationship(-0.4), "moderate_negative")
        self.assertEqual(classify_relationship(0.1), "weak")

    def test_suggest_parlay_groups(self) -> None:
        props = [
            PropDescriptor("p1", "points", 24.5, team="LAL", direction="over"),
            PropDescriptor("p2", "assists", 7.5, team="LAL", direction="under"),
            PropDescriptor("p3", "rebounds", 9.5, team="BOS", direction="over"),
            PropDescriptor("p4", "points", 19.5, team="BOS", direction="over", odds=100.0),
            PropDescriptor("p5", "points", 12.5, team="MIA", direction="over"),
            PropDescriptor("p6", "points", 12.5),
        ]
        stacks, warnings = suggest_parlay_groups(props)
        self.assertEqual([stack.team for stack in stacks], ["LAL", "BOS"])
        self.assertTrue(stacks[0].mixed_directions)
        self.assertFalse(stacks[1].mixed_directions)
        self.assertEqual(warnings, ("Mixed over/under for LAL players. These may be negatively correlated.",))
        self.assertAlmostEqual(stacks[0].payout.decimal_odds, (1 + 100 / 110) ** 2)
        self.assertEqual(stacks[0].payout.payout, 36.45)
        self.assertAlmostEqual(stacks[1].payout.decimal_odds, (1 + 100 / 110) * 2)

    def test_matrix_carries_stacks(self) -> None:
        series = [
            make_series("a", [1.0, 2.0, 3.0], team="DEN", direction="over"),
            make_series("b", [3.0, 1.0, 2.0], team="DEN", direction="under"),
        ]
        result = compute_correlation_matrix(series)
        self.assertEqual(len(result.stacks), 1)
        self.assertEqual(len(result.warnings), 1)


if __name__ == "__main__":
    unittest.main()
