from __future__ import annotations

import logging
import math
import numbers
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from .config import AnalyticsConfig
from .game_logs import Observation

logger = logging.getLogger(__name__)

OPERATORS = ("eq", "gt", "gte", "lt", "lte", "between", "in")


@dataclass(frozen=True)
class FieldSpec:
    label: str
    category: str
    kind: str
    options: tuple[Any, ...] = ()
    min: float | None = None
    max: float | None = None


CRITERIA_FIELDS: dict[str, FieldSpec] = {
    "home_away": FieldSpec("Home / Away", "general", "select", options=("home", "away")),
    "is_back_to_back": FieldSpec("Back-to-Back", "general", "boolean"),
    "rest_days": FieldSpec("Rest Days", "general", "number", min=0, max=10),
    "convergence_score": FieldSpec("Convergence Score", "performance", "number", min=0, max=9),
    "hit_rate_l10": FieldSpec("L10 Hit Rate", "performance", "number", min=0, max=100),
    "season_avg_vs_line": FieldSpec("Avg vs Line Margin", "performance", "number", min=-20, max=20),
    "streak_direction": FieldSpec("Streak Direction", "performance", "select", options=("hot", "cold", "neutral")),
    "opponent_def_rank": FieldSpec("Opp Defense Rank", "matchup", "number", min=1, max=30),
    "team_spread": FieldSpec("Team Spread", "matchup", "number", min=-20, max=20),
    "game_total": FieldSpec("Game Total", "matchup", "number", min=0, max=280),
    "pitcher_hand": FieldSpec("Pitcher Hand", "mlb", "select", options=("R", "L")),
    "wind_speed": FieldSpec("Wind Speed (mph)", "mlb", "number", min=0, max=40),
    "temperature": FieldSpec("Temperature (F)", "mlb", "number", min=30, max=110),
    "is_indoor": FieldSpec("Indoor Game", "nfl", "boolean"),
    "is_primetime": FieldSpec("Primetime Game", "nfl", "boolean"),
    "is_divisional": FieldSpec("Divisional Game", "nfl", "boolean"),
}


@dataclass(frozen=True)
class Condition:
    field: str
    operator: str
    value: Any

    def __post_init__(self) -> None:
        if self.field not in CRITERIA_FIELDS:
            raise ValueError(f"Unknown criteria field: {self.field}")
        if self.operator not in OPERATORS:
            raise ValueError(f"Unsupported operator: {self.operator}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Condition:
        value = data.get("value")
        if isinstance(value, list):
            value = tuple(value)
        return cls(field=str(data["field"]), operator=str(data["operator"]), value=value)


@dataclass(frozen=True)
class Criteria:
    id: str
    sport: str
    stat: str
    direction: str
    conditions: tuple[Condition, ...]
    is_active: bool = True
    name: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Criteria:
        return cls(
            id=str(data["id"]),
            sport=str(data["sport"]),
            stat=str(data["stat"]),
            direction=str(data.get("direction") or "over"),
            conditions=tuple(Condition.from_mapping(item) for item in data.get("conditions", [])),
            is_active=bool(data.get("is_active", True)),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class FeatureContext:
    player_id: str
    sport: str
    stat: str
    line: float
    game_id: str
    values: Mapping[str, Any] = field(default_factory=dict)
    player_name: str | None = None
    team: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> FeatureContext:
        return cls(
            player_id=str(data["player_id"]),
            sport=str(data["sport"]),
            stat=str(data["stat"]),
            line=float(data["line"]),
            game_id=str(data["game_id"]),
            values=dict(data.get("values", {})),
            player_name=data.get("player_name"),
            team=data.get("team"),
        )


@dataclass(frozen=True)
class Match:
    criteria_id: str
    player_id: str
    stat: str
    line: float
    direction: str
    matched_at: str
    game_id: str
    criteria_name: str | None = None
    player_name: str | None = None
    team: str | None = None
    matched_conditions: int = 0


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return not math.isnan(value)


def _strict_equal(actual: Any, expected: Any) -> bool:
    # True == 1 in Python; booleans only equal booleans here
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if _is_number(actual) and _is_number(expected):
        return actual == expected
    if _is_number(actual) or _is_number(expected):
        return False
    return type(actual) is type(expected) and actual == expected


def load_criteria(rows: Sequence[Mapping[str, Any]]) -> list[Criteria]:
    """Build criteria from stored rows, skipping any that no longer validate.

    A row naming a retired field or operator, or missing a required key, is
    logged and left out so the rest of the batch still runs.
    """
    criteria = []
    for row in rows:
        try:
            criteria.append(Criteria.from_mapping(row))
        except (KeyError, ValueError) as exc:
            logger.warning("Skipping criteria %s: %s", row.get("id", "<unknown>"), exc)
    return criteria


def evaluate_condition(condition: Condition, values: Mapping[str, Any]) -> bool:
    """True when the context value satisfies the condition.

    Missing, null and NaN values never match. Numeric operators are false for
    non-numeric operands.
    """
    actual = values.get(condition.field)
    if actual is None:
        return False
    if isinstance(actual, float) and math.isnan(actual):
        return False
    op = condition.operator
    expected = condition.value

    if op == "eq":
        return _strict_equal(actual, expected)
    if op in ("gt", "gte", "lt", "lte"):
        if not (_is_number(actual) and _is_number(expected)):
            return False
        if op == "gt":
            return actual > expected
        if op == "gte":
            return actual >= expected
        if op == "lt":
            return actual < expected
        return actual <= expected
    if op == "between":
        if not _is_number(actual) or not isinstance(expected, (list, tuple)) or len(expected) != 2:
            return False
        low, high = expected
        if not (_is_number(low) and _is_number(high)):
            return False
        return low <= actual <= high
    if op == "in":
        if not isinstance(expected, (list, tuple, set, frozenset)):
            return False
        return any(_strict_equal(actual, item) for item in expected)
    return False


def evaluate_criteria(criteria: Criteria, context: FeatureContext) -> bool:
    """All conditions must hold, and sport and stat must match."""
    if criteria.sport != context.sport or criteria.stat != context.stat:
        return False
    return all(evaluate_condition(condition, context.values) for condition in criteria.conditions)


def _matches_for(criteria: Criteria, contexts: Sequence[FeatureContext], matched_at: str) -> list[Match]:
    return [
        Match(
            criteria_id=criteria.id,
            player_id=context.player_id,
            stat=context.stat,
            line=context.line,
            direction=criteria.direction,
            matched_at=matched_at,
            game_id=context.game_id,
            criteria_name=criteria.name,
            player_name=context.player_name,
            team=context.team,
            matched_conditions=len(criteria.conditions),
        )
        for context in contexts
        if evaluate_criteria(criteria, context)
    ]


def evaluate_criteria_batch(
    criteria: Sequence[Criteria],
    contexts: Sequence[FeatureContext],
    *,
    matched_at: str | None = None,
    config: AnalyticsConfig | None = None,
) -> list[Match]:
    """Evaluate every active criterion against every context.

    Matches come back grouped by criterion in input order, then by context.
    Large batches fan out per criterion over a thread pool when
    ``config.batch_workers`` is above one.
    """
    config = config or AnalyticsConfig()
    matched_at = matched_at or datetime.now(timezone.utc).isoformat()
    active = [item for item in criteria if item.is_active]
    if len(active) != len(criteria):
        logger.debug("Skipping %d inactive criteria", len(criteria) - len(active))
    contexts = list(contexts)

    workload = len(active) * len(contexts)
    if config.batch_workers > 1 and workload >= config.parallel_threshold:
        with ThreadPoolExecutor(max_workers=config.batch_workers) as executor:
            grouped = list(executor.map(lambda item: _matches_for(item, contexts, matched_at), active))
    else:
        grouped = [_matches_for(item, contexts, matched_at) for item in active]
    return [match for group in grouped for match in group]


def build_context_values(
    observation: Observation,
    *,
    line: float | None = None,
    season_average: float | None = None,
    convergence_score: int | None = None,
    hit_rate_l10: float | None = None,
    streak_direction: str = "neutral",
    team_spread: float | None = None,
    game_total: float | None = None,
    extra: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Assemble a criteria context mapping from a game and derived features.

    ``hit_rate_l10`` is a fraction and is stored as a percentage. Sport-specific
    fields (pitcher hand, weather, NFL flags) come through ``extra``.
    """
    values: dict[str, Any] = {
        "home_away": "home" if observation.is_home else "away",
        "opponent_def_rank": observation.opponent_defense_rank,
        "rest_days": observation.rest_days,
        "is_back_to_back": observation.is_back_to_back,
        "team_spread": team_spread,
        "convergence_score": convergence_score,
        "hit_rate_l10": None if hit_rate_l10 is None else hit_rate_l10 * 100,
        "season_avg_vs_line": (
            season_average - line if season_average is not None and line is not None else None
        ),
        "streak_direction": streak_direction,
        "game_total": game_total,
    }
    if extra:
        unknown = set(extra) - set(CRITERIA_FIELDS)
        if unknown:
            raise ValueError(f"Unknown criteria fields: {sorted(unknown)}")
        values.update(extra)
    return values
