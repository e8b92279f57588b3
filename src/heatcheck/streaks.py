from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import pandas as pd

from .config import AnalyticsConfig
from .game_logs import Observation, observations_from_logs
from .stats import mean

logger = logging.getLogger(__name__)

HOT_HIT_RATE = 0.7
COLD_HIT_RATE = 0.3
HOT_MIN_GAMES = 5
COLD_MIN_GAMES = 7


@dataclass(frozen=True)
class HeatRingGame:
    date: str
    opponent: str
    opponent_defense_rank: int
    is_home: bool
    is_back_to_back: bool
    value: float
    line: float
    margin: float
    is_hit: bool
    game_id: str | None = None


@dataclass(frozen=True)
class StreakRow:
    stat: str
    line: float
    games: tuple[HeatRingGame, ...]
    hit_games: tuple[bool, ...]
    hit_count: int
    hit_rate: float
    window_average: float
    season_average: float
    average_margin: float
    consecutive_streak: int

    @property
    def total_games(self) -> int:
        return len(self.hit_games)


def consecutive_streak(hits: Sequence[bool], newest_first: bool = True) -> int:
    """Signed run length ending at the most recent game.

    Positive counts consecutive hits, negative counts consecutive misses. Pass
    ``newest_first=False`` for a chronological (oldest-first) sequence.
    """
    if len(hits) == 0:
        return 0
    if not newest_first:
        hits = list(reversed(hits))
    first = bool(hits[0])
    run = 0
    for hit in hits:
        if bool(hit) != first:
            break
        run += 1
    return run if first else -run


def rolling_hit_rate(hits: Sequence[bool], window: int) -> list[float]:
    """Trailing hit rate per game for a newest-first sequence.

    Each entry covers that game and up to ``window - 1`` games before it.
    """
    if window <= 0:
        raise ValueError("window must be positive")
    if len(hits) == 0:
        return []
    chronological = pd.Series([float(bool(hit)) for hit in reversed(hits)])
    rates = chronological.rolling(window, min_periods=1).mean()
    return [float(rate) for rate in reversed(rates.tolist())]


def compute_streak_row(
    game_log_window: Sequence[Observation] | pd.DataFrame,
    stat: str,
    line: float,
    season_average: float,
    *,
    window: int | None = None,
    config: AnalyticsConfig | None = None,
) -> StreakRow:
    """Hit/miss sequence and aggregates for the most recent games against a line.

    Args:
        game_log_window: Newest-first observations, or a game-log table with a
            ``stat`` column.
        stat: Stat key; selects the column when a table is passed.
        line: Threshold; a tie is a miss.
        season_average: Full-season average, passed through untouched.
        window: Games to keep from the front of the log (config default).
    """
    config = config or AnalyticsConfig()
    window = config.streak_window if window is None else window
    if window <= 0:
        raise ValueError("window must be positive")
    if isinstance(game_log_window, pd.DataFrame):
        game_log_window = observations_from_logs(game_log_window, stat)

    games = tuple(
        HeatRingGame(
            date=obs.date,
            opponent=obs.opponent,
            opponent_defense_rank=obs.opponent_defense_rank,
            is_home=obs.is_home,
            is_back_to_back=obs.is_back_to_back,
            value=float(obs.value),
            line=line,
            margin=float(obs.value) - line,
            is_hit=float(obs.value) > line,
            game_id=obs.game_id,
        )
        for obs in list(game_log_window)[:window]
    )
    hit_games = tuple(game.is_hit for game in games)
    hit_count = sum(hit_games)
    if not games:
        logger.debug("compute_streak_row called with no games for %s", stat)

    return StreakRow(
        stat=stat,
        line=line,
        games=games,
        hit_games=hit_games,
        hit_count=hit_count,
        hit_rate=hit_count / len(games) if games else 0.0,
        window_average=mean([game.value for game in games]),
        season_average=season_average,
        average_margin=mean([game.margin for game in games]),
        consecutive_streak=consecutive_streak(hit_games),
    )


def streak_direction(row: StreakRow) -> str:
    """Classify a heat ring as hot, cold or neutral."""
    if row.total_games >= HOT_MIN_GAMES and row.hit_rate >= HOT_HIT_RATE:
        return "hot"
    if row.total_games >= COLD_MIN_GAMES and row.hit_rate <= COLD_HIT_RATE:
        return "cold"
    return "neutral"
