from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping

ENV_PREFIX = "HEATCHECK_"


def load_dotenv(path: str = ".env") -> None:
    """Populate os.environ from a dotenv file without overriding existing keys."""
    if not os.path.exists(path):
        return
    with open(path, "r", encoding="utf-8") as handle:
        for raw in handle:
            line = raw.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@dataclass(frozen=True)
class AnalyticsConfig:
    """Tunable constants for the analytics core.

    Attributes:
        kde_points: Grid size for every density curve.
        bandwidth_min_samples: Below this many values Silverman's rule is skipped.
        overlay_min_games: Conditioned overlays need at least this many games.
        top_defense_rank: Opponent ranks at or below this are strong defenses.
        bottom_defense_rank: Opponent ranks at or above this are weak defenses.
        volatility_low: Coefficient of variation (percent) under which volatility is low.
        volatility_medium: Coefficient of variation (percent) under which volatility is medium.
        streak_window: Default number of recent games in a heat ring.
        min_shared_games: Shared dates a pair needs before it gets a non-zero correlation.
        batch_workers: Thread count for criteria batch evaluation; 1 runs inline.
        parallel_threshold: Minimum criteria x contexts product before fanning out.
        log_level: Level used by the command-line scripts.
    """

    kde_points: int = 100
    bandwidth_min_samples: int = 5
    overlay_min_games: int = 3
    top_defense_rank: int = 10
    bottom_defense_rank: int = 21
    volatility_low: float = 30.0
    volatility_medium: float = 60.0
    streak_window: int = 10
    min_shared_games: int = 2
    batch_workers: int = 1
    parallel_threshold: int = 2000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AnalyticsConfig:
        """Build a config from HEATCHECK_* variables, e.g. HEATCHECK_KDE_POINTS=200."""
        environ = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for field in fields(cls):
            key = f"{ENV_PREFIX}{field.name.upper()}"
            raw = environ.get(key)
            if raw is None or raw.strip() == "":
                continue
            cast = type(field.default)
            try:
                overrides[field.name] = cast(raw.strip())
            except ValueError as exc:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from exc
        return cls(**overrides)
