from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .config import AnalyticsConfig
from .game_logs import Observation
from .stats import (
    DensityPoint,
    coefficient_of_variation,
    gaussian_kde,
    mean,
    median,
    silverman_bandwidth,
    std_dev,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitPredicate:
    """A named boolean filter over observations that produces one overlay."""

    name: str
    predicate: Callable[[Observation], bool]


@dataclass(frozen=True)
class Overlay:
    name: str
    curve: tuple[DensityPoint, ...]
    mean: float
    games: int


@dataclass(frozen=True)
class DistributionResult:
    values: tuple[float, ...]
    mean: float
    median: float
    std_dev: float
    min: float
    max: float
    bandwidth: float
    curve: tuple[DensityPoint, ...]
    over_fraction: float
    under_fraction: float
    volatility_tier: str
    volatility_score: float
    overlays: tuple[Overlay, ...]

    def overlay(self, name: str) -> Overlay | None:
        return next((item for item in self.overlays if item.name == name), None)


def default_splits(top_defense_rank: int = 10, bottom_defense_rank: int = 21) -> tuple[SplitPredicate, ...]:
    """Home/away and strong/weak opposing defense splits."""
    return (
        SplitPredicate("home", lambda obs: obs.is_home),
        SplitPredicate("away", lambda obs: not obs.is_home),
        SplitPredicate("vs_top_defense", lambda obs: 0 < obs.opponent_defense_rank <= top_defense_rank),
        SplitPredicate("vs_bottom_defense", lambda obs: obs.opponent_defense_rank >= bottom_defense_rank),
    )


def classify_volatility(cv: float, config: AnalyticsConfig | None = None) -> str:
    config = config or AnalyticsConfig()
    if cv < config.volatility_low:
        return "low"
    if cv < config.volatility_medium:
        return "medium"
    return "high"


def _empty_overlay(name: str) -> Overlay:
    return Overlay(name=name, curve=(), mean=0.0, games=0)


def build_overlay(
    name: str,
    values: Sequence[float],
    parent_bandwidth: float,
    x_min: float,
    x_max: float,
    config: AnalyticsConfig | None = None,
) -> Overlay:
    """Density overlay for a conditioned subset, evaluated on the parent's domain.

    Subsets below ``overlay_min_games`` yield an empty overlay with zero games.
    """
    config = config or AnalyticsConfig()
    if len(values) < config.overlay_min_games:
        return _empty_overlay(name)
    if len(values) >= config.bandwidth_min_samples:
        bandwidth = silverman_bandwidth(values, min_samples=config.bandwidth_min_samples)
    else:
        bandwidth = parent_bandwidth
    curve = gaussian_kde(values, bandwidth, x_min, x_max, config.kde_points)
    return Overlay(name=name, curve=tuple(curve), mean=mean(values), games=len(values))


def empty_distribution(splits: Iterable[SplitPredicate] = ()) -> DistributionResult:
    return DistributionResult(
        values=(),
        mean=0.0,
        median=0.0,
        std_dev=0.0,
        min=0.0,
        max=0.0,
        bandwidth=0.0,
        curve=(),
        over_fraction=0.0,
        under_fraction=0.0,
        volatility_tier="low",
        volatility_score=0.0,
        overlays=tuple(_empty_overlay(split.name) for split in splits),
    )


def compute_distribution(
    observations: Sequence[Observation],
    line: float,
    splits: Sequence[SplitPredicate] | None = None,
    *,
    config: AnalyticsConfig | None = None,
) -> DistributionResult:
    """Summarise a stat's historical distribution against a threshold line.

    Args:
        observations: Historical games; order does not matter.
        line: Threshold; a game is "over" when its value is strictly greater.
        splits: Named predicates, one overlay each. Defaults to home/away and
            top/bottom opposing defense.
    """
    config = config or AnalyticsConfig()
    if splits is None:
        splits = default_splits(config.top_defense_rank, config.bottom_defense_rank)
    if len(observations) == 0:
        logger.debug("compute_distribution called with no observations")
        return empty_distribution(splits)

    values = [float(obs.value) for obs in observations]
    m = mean(values)
    sd = std_dev(values)
    min_val = min(values)
    max_val = max(values)

    bandwidth = silverman_bandwidth(values, min_samples=config.bandwidth_min_samples)
    x_min = min_val - bandwidth * 2
    if min_val >= 0:
        x_min = max(0.0, x_min)
    x_max = max_val + bandwidth * 2
    curve = gaussian_kde(values, bandwidth, x_min, x_max, config.kde_points)

    over_fraction = sum(1 for v in values if v > line) / len(values)

    cv = coefficient_of_variation(values)
    overlays = tuple(
        build_overlay(
            split.name,
            [float(obs.value) for obs in observations if split.predicate(obs)],
            bandwidth,
            x_min,
            x_max,
            config,
        )
        for split in splits
    )

    return DistributionResult(
        values=tuple(values),
        mean=m,
        median=median(values),
        std_dev=sd,
        min=min_val,
        max=max_val,
        bandwidth=bandwidth,
        curve=tuple(curve),
        over_fraction=over_fraction,
        under_fraction=1 - over_fraction,
        volatility_tier=classify_volatility(cv, config),
        volatility_score=min(100.0, cv * 2),
        overlays=overlays,
    )
