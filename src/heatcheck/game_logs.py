from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

logger = logging.getLogger(__name__)

HOME_VALUES = {"H", "Home", "HOME", "home"}


@dataclass(frozen=True)
class Observation:
    """One game's recorded value for a single stat."""

    date: str
    opponent: str
    is_home: bool
    is_back_to_back: bool
    rest_days: int
    opponent_defense_rank: int
    value: float
    minutes: float | None = None
    team: str | None = None
    game_id: str | None = None


def add_is_home_flag(
    data: pd.DataFrame,
    location_col: str = "location",
    output_col: str = "is_home",
) -> pd.DataFrame:
    """Add a boolean home indicator if the location column exists."""
    if location_col not in data.columns:
        return data
    result = data.copy()
    result[output_col] = result[location_col].isin(HOME_VALUES)
    return result


def add_rest_days(
    data: pd.DataFrame,
    date_col: str = "date",
    player_id_col: str = "player_id",
) -> pd.DataFrame:
    """Add rest_days and is_back_to_back columns from gaps between game dates.

    Rows come back newest-first. Rest is the number of idle days before a game;
    a one-day gap is a back-to-back. A player's oldest game has no predecessor
    and gets one rest day.
    """
    if date_col not in data.columns:
        raise ValueError(f"Missing required column: {date_col}")
    result = data.copy()
    result[date_col] = pd.to_datetime(result[date_col])
    sort_cols = [date_col]
    if player_id_col in result.columns:
        sort_cols = [player_id_col, date_col]
        grouped = result.sort_values(sort_cols).groupby(player_id_col)[date_col]
        gaps = grouped.diff()
    else:
        gaps = result.sort_values(sort_cols)[date_col].diff()
    gap_days = gaps.dt.days.reindex(result.index)
    result["rest_days"] = (gap_days - 1).clip(lower=0).fillna(1).astype(int)
    result["is_back_to_back"] = (gap_days <= 1).fillna(False).astype(bool)
    return result.sort_values(date_col, ascending=False)


def observations_from_logs(
    logs: pd.DataFrame,
    stat: str,
    date_col: str = "date",
    opponent_col: str = "opponent",
    defense_rank_col: str = "opponent_def_rank",
    minutes_col: str = "minutes",
    team_col: str = "team",
    game_id_col: str = "game_id",
) -> list[Observation]:
    """Convert a game-log table into newest-first observations for one stat.

    Rows missing the stat are dropped. Home and rest columns are derived when
    the table does not carry them already.
    """
    if stat not in logs.columns:
        raise ValueError(f"Missing required stat column: {stat}")
    if date_col not in logs.columns:
        raise ValueError(f"Missing required column: {date_col}")
    frame = logs.dropna(subset=[stat])
    dropped = len(logs) - len(frame)
    if dropped:
        logger.debug("Dropped %d rows missing %s", dropped, stat)
    if "is_home" not in frame.columns:
        frame = add_is_home_flag(frame)
    if "rest_days" not in frame.columns or "is_back_to_back" not in frame.columns:
        frame = add_rest_days(frame, date_col=date_col)
    frame = frame.copy()
    frame[date_col] = pd.to_datetime(frame[date_col])
    frame = frame.sort_values(date_col, ascending=False)

    def _optional(row: pd.Series, col: str) -> object | None:
        if col not in row.index or pd.isna(row[col]):
            return None
        return row[col]

    observations = []
    for _, row in frame.iterrows():
        minutes = _optional(row, minutes_col)
        team = _optional(row, team_col)
        game_id = _optional(row, game_id_col)
        rank = _optional(row, defense_rank_col)
        observations.append(
            Observation(
                date=row[date_col].date().isoformat(),
                opponent=str(_optional(row, opponent_col) or ""),
                is_home=bool(row["is_home"]) if "is_home" in row.index else False,
                is_back_to_back=bool(row["is_back_to_back"]),
                rest_days=int(row["rest_days"]),
                opponent_defense_rank=int(rank) if rank is not None else 0,
                value=float(row[stat]),
                minutes=float(minutes) if minutes is not None else None,
                team=str(team) if team is not None else None,
                game_id=str(game_id) if game_id is not None else None,
            )
        )
    return observations
