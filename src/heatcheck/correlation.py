from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from .config import AnalyticsConfig
from .game_logs import Observation
from .odds import ParlayPayout, parlay_payout

logger = logging.getLogger(__name__)

STRONG_CORRELATION = 0.7
MODERATE_CORRELATION = 0.4
MAX_INSIGHTS_PER_KIND = 3


@dataclass(frozen=True)
class PropDescriptor:
    player_id: str
    stat: str
    line: float
    team: str | None = None
    direction: str = "over"
    player_name: str | None = None
    odds: float | None = None

    @property
    def label(self) -> str:
        return self.player_name or self.player_id


@dataclass(frozen=True)
class PropSeries:
    prop: PropDescriptor
    observations: Sequence[Observation]


@dataclass(frozen=True)
class CorrelationPair:
    first: int
    second: int
    correlation: float
    sample_size: int
    relationship: str
    insight: str


@dataclass(frozen=True)
class ParlayInsight:
    kind: str
    players: tuple[str, str]
    correlation: float
    explanation: str


@dataclass(frozen=True)
class ParlayGroup:
    team: str
    props: tuple[PropDescriptor, ...]
    payout: ParlayPayout
    mixed_directions: bool


@dataclass(frozen=True)
class CorrelationMatrix:
    props: tuple[PropDescriptor, ...]
    correlations: np.ndarray
    sample_sizes: np.ndarray
    pairs: tuple[CorrelationPair, ...]
    insights: tuple[ParlayInsight, ...]
    stacks: tuple[ParlayGroup, ...]
    warnings: tuple[str, ...]


def classify_relationship(r: float) -> str:
    magnitude = abs(r)
    if magnitude >= STRONG_CORRELATION:
        return "strong_positive" if r > 0 else "strong_negative"
    if magnitude >= MODERATE_CORRELATION:
        return "moderate_positive" if r > 0 else "moderate_negative"
    return "weak"


def describe_pair(first: PropDescriptor, second: PropDescriptor, r: float, relationship: str) -> str:
    a, b = first.label, second.label
    if relationship == "strong_positive":
        return f"When {a} goes over, {b} tends to as well (r={r:.2f}). Good parlay stack."
    if relationship == "strong_negative":
        return f"{a} and {b} perform inversely (r={r:.2f}). Consider fading one when betting the other."
    if relationship == "moderate_positive":
        return f"Moderate positive correlation between {a} and {b} (r={r:.2f})."
    if relationship == "moderate_negative":
        return f"Moderate negative correlation (r={r:.2f}). Their outputs tend to move in opposite directions."
    return f"Weak correlation (r={r:.2f}). These props are largely independent."


def _series_by_date(series: PropSeries) -> pd.Series:
    values = pd.Series(
        [float(obs.value) for obs in series.observations],
        index=[obs.date for obs in series.observations],
        dtype=float,
    )
    duplicated = values.index.duplicated(keep="first")
    if duplicated.any():
        logger.warning(
            "%s %s: %d duplicate game dates dropped before alignment",
            series.prop.label,
            series.prop.stat,
            int(duplicated.sum()),
        )
        values = values[~duplicated]
    return values


def align_series(series: Sequence[PropSeries]) -> pd.DataFrame:
    """Wide table of stat values indexed by game date, one column per prop."""
    columns = {idx: _series_by_date(item) for idx, item in enumerate(series)}
    frame = pd.DataFrame(columns)
    return frame.sort_index()


def suggest_parlay_groups(
    props: Sequence[PropDescriptor],
    wager: float = 10.0,
) -> tuple[tuple[ParlayGroup, ...], tuple[str, ...]]:
    """Group props by team into same-game stacks and flag mixed directions.

    Teams with two or more props become stacks. A team mixing overs and unders
    gets a warning but stays stacked.
    """
    by_team: dict[str, list[PropDescriptor]] = {}
    for prop in props:
        if not prop.team:
            continue
        by_team.setdefault(prop.team, []).append(prop)

    stacks = []
    warnings = []
    for team, team_props in by_team.items():
        directions = {prop.direction for prop in team_props}
        mixed = "over" in directions and "under" in directions
        if len(team_props) >= 2:
            stacks.append(
                ParlayGroup(
                    team=team,
                    props=tuple(team_props),
                    payout=parlay_payout((prop.odds for prop in team_props), wager=wager),
                    mixed_directions=mixed,
                )
            )
        if mixed:
            warnings.append(f"Mixed over/under for {team} players. These may be negatively correlated.")
    return tuple(stacks), tuple(warnings)


def _parlay_insights(
    pairs: Sequence[CorrelationPair],
    props: Sequence[PropDescriptor],
) -> tuple[ParlayInsight, ...]:
    insights = []
    for kind, relationship in (("stack", "strong_positive"), ("fade", "strong_negative")):
        selected = [pair for pair in pairs if pair.relationship == relationship]
        for pair in selected[:MAX_INSIGHTS_PER_KIND]:
            insights.append(
                ParlayInsight(
                    kind=kind,
                    players=(props[pair.first].label, props[pair.second].label),
                    correlation=pair.correlation,
                    explanation=pair.insight,
                )
            )
    return tuple(insights)


def compute_correlation_matrix(
    series: Sequence[PropSeries],
    *,
    wager: float = 10.0,
    config: AnalyticsConfig | None = None,
) -> CorrelationMatrix:
    """Pairwise Pearson correlations between date-aligned prop series.

    Series are joined on game date; each pair uses only the dates both props
    share. Pairs with fewer shared dates than ``min_shared_games``, or with a
    constant series, correlate at 0. The diagonal is always 1.
    """
    if len(series) == 0:
        raise ValueError("series must be non-empty")
    config = config or AnalyticsConfig()
    props = tuple(item.prop for item in series)
    size = len(series)

    frame = align_series(series)
    min_periods = max(2, config.min_shared_games)
    if frame.empty:
        correlations = np.zeros((size, size))
        sample_sizes = np.zeros((size, size), dtype=int)
    else:
        corr = frame.corr(method="pearson", min_periods=min_periods)
        correlations = np.clip(np.nan_to_num(corr.to_numpy(dtype=float), nan=0.0), -1.0, 1.0)
        present = frame.notna().to_numpy(dtype=int)
        sample_sizes = present.T @ present
    np.fill_diagonal(correlations, 1.0)

    pairs = []
    for i in range(size):
        for j in range(i + 1, size):
            r = round(float(correlations[i, j]), 3)
            relationship = classify_relationship(r)
            pairs.append(
                CorrelationPair(
                    first=i,
                    second=j,
                    correlation=r,
                    sample_size=int(sample_sizes[i, j]),
                    relationship=relationship,
                    insight=describe_pair(props[i], props[j], r, relationship),
                )
            )
    pairs.sort(key=lambda pair: abs(pair.correlation), reverse=True)

    stacks, warnings = suggest_parlay_groups(props, wager=wager)
    return CorrelationMatrix(
        props=props,
        correlations=correlations,
        sample_sizes=sample_sizes,
        pairs=tuple(pairs),
        insights=_parlay_insights(pairs, props),
        stacks=stacks,
        warnings=warnings,
    )
