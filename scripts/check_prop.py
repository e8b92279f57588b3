from __future__ import annotations

import argparse
import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Sequence

import numpy as np
import pandas as pd

from heatcheck.config import AnalyticsConfig, load_dotenv
from heatcheck.convergence import GameContext, build_convergence_signals, score_convergence
from heatcheck.distribution import compute_distribution
from heatcheck.game_logs import Observation, observations_from_logs
from heatcheck.stats import mean
from heatcheck.streaks import compute_streak_row, streak_direction

logger = logging.getLogger("check_prop")


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {item.name: _to_jsonable(getattr(value, item.name)) for item in dataclasses.fields(value)}
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, dict):
        return {str(key): _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


def build_report(
    observations: Sequence[Observation],
    stat: str,
    line: float,
    season_average: float,
    game: GameContext,
    window: int | None = None,
    config: AnalyticsConfig | None = None,
) -> dict[str, Any]:
    config = config or AnalyticsConfig()
    distribution = compute_distribution(observations, line, config=config)
    streak = compute_streak_row(observations, stat, line, season_average, window=window, config=config)
    verdict = score_convergence(build_convergence_signals(observations, line, stat, season_average, game))
    return {
        "stat": stat,
        "line": line,
        "games": len(observations),
        "distribution": _to_jsonable(distribution),
        "heat_ring": {**_to_jsonable(streak), "direction": streak_direction(streak)},
        "verdict": _to_jsonable(verdict),
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Analyze a player prop from a game-log CSV.")
    parser.add_argument("--logs", required=True, help="Game-log CSV with date, opponent and stat columns.")
    parser.add_argument("--stat", required=True, help="Stat column to analyze, e.g. points.")
    parser.add_argument("--line", type=float, required=True, help="Prop line.")
    parser.add_argument("--season-average", type=float, default=None, help="Defaults to the mean of the log.")
    parser.add_argument("--window", type=int, default=None, help="Heat ring games (default from config).")
    parser.add_argument("--opponent", default="", help="Upcoming opponent abbreviation.")
    parser.add_argument("--opponent-rank", type=int, default=15, help="Opponent defense rank vs position.")
    parser.add_argument("--away", action="store_true", help="Upcoming game is on the road.")
    parser.add_argument("--sport", default="nba", help="Sport key (nba, mlb, nfl).")
    parser.add_argument("--game-total", type=float, default=None, help="Game over/under total.")
    parser.add_argument("--spread", type=float, default=None, help="Team spread.")
    parser.add_argument("--output", default=None, help="Optional JSON output path.")
    parser.add_argument("--log-level", default=None, help="Logging level.")
    args = parser.parse_args()

    load_dotenv()
    config = AnalyticsConfig.from_env()
    logging.basicConfig(level=(args.log_level or config.log_level).upper(), format="%(levelname)s %(name)s: %(message)s")

    logs_path = Path(args.logs)
    if not logs_path.exists():
        raise SystemExit(f"Game log not found: {logs_path}")
    observations = observations_from_logs(pd.read_csv(logs_path), args.stat)
    if not observations:
        logger.warning("No %s values found in %s", args.stat, logs_path)
    season_average = args.season_average
    if season_average is None:
        season_average = mean([obs.value for obs in observations])

    game = GameContext(
        is_home=not args.away,
        opponent=args.opponent,
        opponent_defense_rank=args.opponent_rank,
        sport=args.sport,
        game_total=args.game_total,
        spread=args.spread,
    )
    report = build_report(observations, args.stat, args.line, season_average, game, args.window, config)
    text = json.dumps(report, indent=2)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Wrote report to {args.output}")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
