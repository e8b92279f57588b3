import unittest

from heatcheck.config import AnalyticsConfig
from heatcheck.criteria import (
    Condition,
    Criteria,
    FeatureContext,
    build_context_values,
    evaluate_condition,
    evaluate_criteria,
    evaluate_criteria_batch,
    load_criteria,
)
from heatcheck.game_logs import Observation

MATCHED_AT = "2024-03-01T12:00:00+00:00"


def make_context(player_id: str, stat: str = "points", sport: str = "nba", **values) -> FeatureContext:
    return FeatureContext(
        player_id=player_id,
        sport=sport,
        stat=stat,
        line=20.5,
        game_id=f"game-{player_id}",
        values=values,
    )


def make_criteria(criteria_id: str, *conditions: Condition, stat: str = "points", is_active: bool = True) -> Criteria:
    return Criteria(
        id=criteria_id,
        sport="nba",
        stat=stat,
        direction="over",
        conditions=tuple(conditions),
        is_active=is_active,
    )


class TestEvaluateCondition(unittest.TestCase):
    def test_comparisons(self) -> None:
        values = {"rest_days": 2, "opponent_def_rank": 25}
        self.assertTrue(evaluate_condition(Condition("rest_days", "gte", 2), values))
        self.assertFalse(evaluate_condition(Condition("rest_days", "gt", 2), values))
        self.assertTrue(evaluate_condition(Condition("opponent_def_rank", "lte", 25), values))
        self.assertTrue(evaluate_condition(Condition("opponent_def_rank", "lt", 26), values))

    def test_missing_and_null_never_match(self) -> None:
        self.assertFalse(evaluate_condition(Condition("rest_days", "gte", 0), {}))
        self.assertFalse(evaluate_condition(Condition("rest_days", "gte", 0), {"rest_days": None}))
        self.assertFalse(evaluate_condition(Condition("rest_days", "lte", 5), {"rest_days": float("nan")}))

    def test_strict_equality(self) -> None:
        self.assertTrue(evaluate_condition(Condition("is_back_to_back", "eq", True), {"is_back_to_back": True}))
        self.assertFalse(evaluate_condition(Condition("is_back_to_back", "eq", 1), {"is_back_to_back": True}))
        self.assertFalse(evaluate_condition(Condition("rest_days", "eq", "2"), {"rest_days": 2}))
        self.assertTrue(evaluate_condition(Condition("rest_days", "eq", 2.0), {"rest_days": 2}))
        self.assertTrue(evaluate_condition(Condition("home_away", "eq", "home"), {"home_away": "home"}))

    def test_between_is_inclusive(self) -> None:
        condition = Condition("game_total", "between", (220, 230))
        self.assertTrue(evaluate_condition(condition, {"game_total": 220}))
        self.assertTrue(evaluate_condition(condition, {"game_total": 230}))
        self.assertFalse(evaluate_condition(condition, {"game_total": 231}))
        self.assertFalse(evaluate_condition(Condition("game_total", "between", 220), {"game_total": 225}))

    def test_in(self) -> None:
        condition = Condition("streak_direction", "in", ("hot", "neutral"))
        self.assertTrue(evaluate_condition(condition, {"streak_direction": "hot"}))
        self.assertFalse(evaluate_condition(condition, {"streak_direction": "cold"}))

    def test_non_numeric_operands(self) -> None:
        self.assertFalse(evaluate_condition(Condition("rest_days", "gt", 1), {"rest_days": "3"}))
        self.assertFalse(evaluate_condition(Condition("rest_days", "gt", 1), {"rest_days": True}))

    def test_unknown_field_or_operator(self) -> None:
        with self.assertRaises(ValueError):
            Condition("shoe_size", "eq", 12)
        with self.assertRaises(ValueError):
            Condition("rest_days", "approx", 2)


class TestEvaluateCriteria(unittest.TestCase):
    def test_all_conditions_must_hold(self) -> None:
        criteria = make_criteria(
            "c1",
            Condition("rest_days", "gte", 2),
            Condition("home_away", "eq", "home"),
        )
        self.assertTrue(evaluate_criteria(criteria, make_context("p1", rest_days=2, home_away="home")))
        self.assertFalse(evaluate_criteria(criteria, make_context("p1", rest_days=2, home_away="away")))

    def test_sport_and_stat_must_match(self) -> None:
        criteria = make_criteria("c1", Condition("rest_days", "gte", 2))
        self.assertFalse(evaluate_criteria(criteria, make_context("p1", stat="rebounds", rest_days=3)))
        self.assertFalse(evaluate_criteria(criteria, make_context("p1", sport="mlb", rest_days=3)))

    def test_no_conditions_matches(self) -> None:
        self.assertTrue(evaluate_criteria(make_criteria("c1"), make_context("p1")))


class TestEvaluateCriteriaBatch(unittest.TestCase):
    def setUp(self) -> None:
        self.criteria = [
            make_criteria("rested", Condition("rest_days", "gte", 2)),
            make_criteria("inactive", Condition("rest_days", "gte", 0), is_active=False),
            make_criteria("weak_defense", Condition("opponent_def_rank", "gte", 21)),
        ]
        self.contexts = [
            make_context("p1", rest_days=2, opponent_def_rank=25),
            make_context("p2", rest_days=1, opponent_def_rank=28),
            make_context("p3", rest_days=3, opponent_def_rank=4),
        ]

    def test_matches_and_ordering(self) -> None:
        matches = evaluate_criteria_batch(self.criteria, self.contexts, matched_at=MATCHED_AT)
        self.assertEqual(
            [(match.criteria_id, match.player_id) for match in matches],
            [("rested", "p1"), ("rested", "p3"), ("weak_defense", "p1"), ("weak_defense", "p2")],
        )
        first = matches[0]
        self.assertEqual(first.matched_at, MATCHED_AT)
        self.assertEqual(first.game_id, "game-p1")
        self.assertEqual(first.direction, "over")
        self.assertEqual(first.line, 20.5)
        self.assertEqual(first.matched_conditions, 1)

    def test_idempotent(self) -> None:
        self.assertEqual(
            evaluate_criteria_batch(self.criteria, self.contexts, matched_at=MATCHED_AT),
            evaluate_criteria_batch(self.criteria, self.contexts, matched_at=MATCHED_AT),
        )

    def test_parallel_matches_serial(self) -> None:
        config = AnalyticsConfig(batch_workers=4, parallel_threshold=1)
        self.assertEqual(
            evaluate_criteria_batch(self.criteria, self.contexts, matched_at=MATCHED_AT, config=config),
            evaluate_criteria_batch(self.criteria, self.contexts, matched_at=MATCHED_AT),
        )

    def test_default_timestamp(self) -> None:
        matches = evaluate_criteria_batch(self.criteria[:1], self.contexts[:1])
        self.assertEqual(len(matches), 1)
        self.assertTrue(matches[0].matched_at)

    def test_empty(self) -> None:
        self.assertEqual(evaluate_criteria_batch([], self.contexts, matched_at=MATCHED_AT), [])
        self.assertEqual(evaluate_criteria_batch(self.criteria, [], matched_at=MATCHED_AT), [])


class TestMappingsAndContextValues(unittest.TestCase):
    def test_from_mapping(self) -> None:
        criteria = Criteria.from_mapping(
            {
                "id": "c9",
                "sport": "nba",
                "stat": "points",
                "name": "Totals band",
                "conditions": [{"field": "game_total", "operator": "between", "value": [220, 230]}],
            }
        )
        self.assertEqual(criteria.direction, "over")
        self.assertTrue(criteria.is_active)
        self.assertEqual(criteria.conditions[0].value, (220, 230))
        context = FeatureContext.from_mapping(
            {"player_id": 7, "sport": "nba", "stat": "points", "line": "22.5", "game_id": 99, "values": {"game_total": 225}}
        )
        self.assertEqual(context.player_id, "7")
        self.assertEqual(context.line, 22.5)
        self.assertTrue(evaluate_criteria(criteria, context))

    def test_load_criteria_skips_invalid_rows(self) -> None:
        rows = [
            {"id": "retired", "sport": "nba", "stat": "points",
             "conditions": [{"field": "usage_rate", "operator": "gte", "value": 30}]},
            {"id": "rested", "sport": "nba", "stat": "points",
             "conditions": [{"field": "rest_days", "operator": "gte", "value": 2}]},
            {"sport": "nba", "stat": "points"},
        ]
        with self.assertLogs("heatcheck.criteria", level="WARNING") as logs:
            criteria = load_criteria(rows)
        self.assertEqual([item.id for item in criteria], ["rested"])
        self.assertEqual(len(logs.records), 2)
        self.assertIn("retired", logs.output[0])

    def test_build_context_values(self) -> None:
        observation = Observation(
            date="2024-03-01",
            opponent="CHA",
            is_home=False,
            is_back_to_back=True,
            rest_days=0,
            opponent_defense_rank=29,
            value=0.0,
        )
        values = build_context_values(
            observation,
            line=20.5,
            season_average=23.0,
            convergence_score=6,
            hit_rate_l10=0.7,
            streak_direction="hot",
            game_total=231.5,
            extra={"is_primetime": True},
        )
        self.assertEqual(values["home_away"], "away")
        self.assertEqual(values["opponent_def_rank"], 29)
        self.assertTrue(values["is_back_to_back"])
        self.assertAlmostEqual(values["hit_rate_l10"], 70.0)
        self.assertAlmostEqual(values["season_avg_vs_line"], 2.5)
        self.assertIsNone(values["team_spread"])
        self.assertTrue(values["is_primetime"])
        with self.assertRaises(ValueError):
            build_context_values(observation, extra={"shoe_size": 12})


if __name__ == "__main__":
    unittest.main()
