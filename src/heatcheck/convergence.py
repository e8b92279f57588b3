"""Transparent vote-count convergence scoring.

Every signal is an explicit, named vote (over, under or neutral) with an
explicit weight, 1.0 unless the caller says otherwise. The verdict keeps the
full list of signals so the result can be audited vote by vote.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from .game_logs import Observation
from .stats import mean
from .streaks import consecutive_streak

logger = logging.getLogger(__name__)

OVER = "over"
UNDER = "under"
NEUTRAL = "neutral"
TOSS_UP = "toss-up"
VOTES = (OVER, UNDER, NEUTRAL)

SPORT_MEDIAN_TOTALS = {"nba": 224.0, "mlb": 8.5, "nfl": 44.0}


@dataclass(frozen=True)
class Signal:
    key: str
    name: str
    vote: str
    weight: float = 1.0
    strength: float = 0.0
    detail: str = ""

    def __post_init__(self) -> None:
        if self.vote not in VOTES:
            raise ValueError(f"Unsupported vote: {self.vote}")
        if self.weight < 0:
            raise ValueError(f"Signal weight must be non-negative: {self.key}")


@dataclass(frozen=True)
class ConvergenceVerdict:
    score: int
    direction: str
    confidence_pct: int
    over_votes: int
    under_votes: int
    neutral_votes: int
    contributing_signals: tuple[Signal, ...]


@dataclass(frozen=True)
class GameContext:
    """The upcoming game a prop is evaluated for."""

    is_home: bool
    opponent: str
    opponent_defense_rank: int
    sport: str = "nba"
    game_total: float | None = None
    spread: float | None = None
    rest_days: int | None = None
    is_back_to_back: bool | None = None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_convergence(signals: Sequence[Signal]) -> ConvergenceVerdict:
    """Tally signal votes into a score, a direction and a confidence percentage.

    The score is the number of signals voting with the winning side (the larger
    side on a tie). Direction and confidence use the weighted totals, so with
    the default weight of 1.0 confidence is majority votes over all signals.
    """
    signals = tuple(signals)
    over = [signal for signal in signals if signal.vote == OVER]
    under = [signal for signal in signals if signal.vote == UNDER]
    over_weight = sum(signal.weight for signal in over)
    under_weight = sum(signal.weight for signal in under)
    total_weight = sum(signal.weight for signal in signals)

    if over_weight > under_weight:
        direction = OVER
        score = len(over)
    elif under_weight > over_weight:
        direction = UNDER
        score = len(under)
    else:
        direction = TOSS_UP
        score = max(len(over), len(under))

    if total_weight > 0:
        confidence = _round_half_up(100 * max(over_weight, under_weight) / total_weight)
    else:
        confidence = 0
        direction = TOSS_UP

    return ConvergenceVerdict(
        score=score,
        direction=direction,
        confidence_pct=confidence,
        over_votes=len(over),
        under_votes=len(under),
        neutral_votes=len(signals) - len(over) - len(under),
        contributing_signals=signals,
    )


def _values(observations: Sequence[Observation]) -> list[float]:
    return [float(obs.value) for obs in observations]


def _gap_vote(gap: float, threshold: float) -> str:
    if gap > threshold:
        return OVER
    if gap < -threshold:
        return UNDER
    return NEUTRAL


def recent_trend_signal(observations: Sequence[Observation], line: float, window: int = 10) -> Signal:
    recent = _values(observations[:window])
    if recent:
        hit_rate = sum(1 for v in recent if v > line) / len(recent)
        avg = mean(recent)
    else:
        hit_rate = 0.5
        avg = line
    if hit_rate > 0.55:
        vote = OVER
    elif hit_rate < 0.45:
        vote = UNDER
    else:
        vote = NEUTRAL
    margin_strength = min(1.0, abs(avg - line) / max(1.0, line * 0.3))
    strength = min(1.0, abs(hit_rate - 0.5) * 2 * 0.6 + margin_strength * 0.4)
    return Signal(
        key="recent_trend",
        name="Recent Trend",
        vote=vote,
        strength=strength,
        detail=f"{_round_half_up(hit_rate * 100)}% hit rate in last {len(recent)} games (avg {avg:.1f})",
    )


def season_average_signal(season_average: float, line: float) -> Signal:
    gap = season_average - line
    threshold = max(1.0, line * 0.15)
    return Signal(
        key="season_avg",
        name="Season Average",
        vote=_gap_vote(gap, threshold),
        strength=min(1.0, abs(gap) / (threshold * 2.5)),
        detail=f"Season average: {season_average:.1f} vs line {line}",
    )


def matchup_signal(opponent_defense_rank: int) -> Signal:
    rank = opponent_defense_rank
    if rank >= 21:
        vote, strength = OVER, (rank - 20) / 10
    elif 0 < rank <= 10:
        vote, strength = UNDER, (11 - rank) / 10
    else:
        vote, strength = NEUTRAL, 0.2
    return Signal(
        key="matchup",
        name="Opponent Defense",
        vote=vote,
        strength=min(1.0, strength),
        detail=f"Opponent defense rank #{rank}",
    )


def venue_signal(observations: Sequence[Observation], line: float, is_home: bool, season_average: float) -> Signal:
    venue_values = _values([obs for obs in observations if obs.is_home == is_home])
    venue_avg = mean(venue_values) if venue_values else season_average
    gap = venue_avg - line
    threshold = max(0.8, line * 0.12)
    return Signal(
        key="venue",
        name="Home/Away Split",
        vote=_gap_vote(gap, threshold),
        strength=min(1.0, abs(gap) / (threshold * 2.5)),
        detail=f"{'Home' if is_home else 'Away'} avg: {venue_avg:.1f} ({len(venue_values)} games)",
    )


def rest_signal(
    observations: Sequence[Observation],
    season_average: float,
    rest_days: int,
    is_back_to_back: bool,
) -> Signal:
    if is_back_to_back:
        b2b = _values([obs for obs in observations if obs.is_back_to_back])
        b2b_avg = mean(b2b) if b2b else season_average
        return Signal(
            key="rest",
            name="Rest / Fatigue",
            vote=UNDER,
            strength=min(1.0, abs(season_average - b2b_avg) / 4),
            detail=f"Back-to-back. B2B avg: {b2b_avg:.1f} vs season {season_average:.1f}",
        )
    rested = _values([obs for obs in observations if obs.rest_days >= 2])
    rested_avg = mean(rested) if rested else season_average
    if rest_days >= 2:
        vote, strength = OVER, min(1.0, abs(rested_avg - season_average) / 4)
    else:
        vote, strength = NEUTRAL, 0.1
    return Signal(
        key="rest",
        name="Rest / Fatigue",
        vote=vote,
        strength=strength,
        detail=f"{rest_days} days rest. Rested avg: {rested_avg:.1f}",
    )


def head_to_head_signal(observations: Sequence[Observation], line: float, opponent: str, min_games: int = 3) -> Signal:
    h2h = _values([obs for obs in observations if obs.opponent == opponent])
    if len(h2h) < min_games:
        return Signal(
            key="h2h",
            name="Head-to-Head",
            vote=NEUTRAL,
            detail=f"Limited H2H data ({len(h2h)} games)",
        )
    hit_rate = sum(1 for v in h2h if v > line) / len(h2h)
    if hit_rate > 0.6:
        vote = OVER
    elif hit_rate < 0.4:
        vote = UNDER
    else:
        vote = NEUTRAL
    return Signal(
        key="h2h",
        name="Head-to-Head",
        vote=vote,
        strength=abs(hit_rate - 0.5) * 2,
        detail=f"{_round_half_up(hit_rate * 100)}% hit rate vs {opponent} ({len(h2h)} games)",
    )


def momentum_signal(observations: Sequence[Observation], line: float) -> Signal:
    streak = consecutive_streak([float(obs.value) > line for obs in observations])
    if streak >= 3:
        vote = OVER
    elif streak <= -3:
        vote = UNDER
    else:
        vote = NEUTRAL
    if streak > 0:
        detail = f"{streak}-game over streak"
    elif streak < 0:
        detail = f"{-streak}-game under streak"
    else:
        detail = "No active streak"
    return Signal(key="momentum", name="Momentum", vote=vote, strength=min(1.0, abs(streak) / 7), detail=detail)


def minutes_trend_signal(observations: Sequence[Observation], stat: str) -> Signal:
    minutes = [obs.minutes for obs in observations[:10] if obs.minutes is not None and obs.minutes > 0]
    if len(minutes) < 5 or stat == "minutes":
        detail = "N/A (analyzing minutes prop)" if stat == "minutes" else "Insufficient minutes data"
        return Signal(key="minutes_trend", name="Minutes Trend", vote=NEUTRAL, detail=detail)
    recent = mean(minutes[:5])
    older = mean(minutes[5:]) if len(minutes) > 5 else recent
    delta = recent - older
    return Signal(
        key="minutes_trend",
        name="Minutes Trend",
        vote=_gap_vote(delta, 2.0),
        strength=min(1.0, abs(delta) / 5),
        detail=f"L5 avg: {recent:.1f} min vs prior: {older:.1f} min",
    )


def game_environment_signal(game_total: float | None, sport: str, is_home: bool, spread: float | None = None) -> Signal:
    if game_total is None or game_total <= 0:
        return Signal(key="game_environment", name="Game Environment", vote=NEUTRAL, detail="Game total unavailable")
    median_total = SPORT_MEDIAN_TOTALS.get(sport, SPORT_MEDIAN_TOTALS["nba"])
    delta = game_total - median_total
    threshold = median_total * 0.05
    spread = spread or 0.0
    implied = game_total / 2 - spread / 2 if is_home else game_total / 2 + spread / 2
    return Signal(
        key="game_environment",
        name="Game Environment",
        vote=_gap_vote(delta, threshold),
        strength=min(1.0, abs(delta) / (threshold * 3)),
        detail=f"Game total: {game_total} (median: {median_total}). Team implied: {implied:.1f}",
    )


def build_convergence_signals(
    observations: Sequence[Observation],
    line: float,
    stat: str,
    season_average: float,
    game: GameContext,
) -> list[Signal]:
    """Run the nine standard factors for one prop.

    ``observations`` are newest-first. Rest inputs come from ``game`` when set,
    otherwise from the most recent observation.
    """
    latest = observations[0] if observations else None
    rest_days = game.rest_days
    if rest_days is None:
        rest_days = latest.rest_days if latest else 1
    is_back_to_back = game.is_back_to_back
    if is_back_to_back is None:
        is_back_to_back = latest.is_back_to_back if latest else False

    return [
        recent_trend_signal(observations, line),
        season_average_signal(season_average, line),
        matchup_signal(game.opponent_defense_rank),
        venue_signal(observations, line, game.is_home, season_average),
        rest_signal(observations, season_average, rest_days, is_back_to_back),
        head_to_head_signal(observations, line, game.opponent),
        momentum_signal(observations, line),
        minutes_trend_signal(observations, stat),
        game_environment_signal(game.game_total, game.sport, game.is_home, game.spread),
    ]
