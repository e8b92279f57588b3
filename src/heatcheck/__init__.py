"""Statistical analytics core for player prop research."""

from .cache import fingerprint, memoize
from .config import AnalyticsConfig, load_dotenv
from .convergence import (
    ConvergenceVerdict,
    GameContext,
    Signal,
    build_convergence_signals,
    score_convergence,
)
from .correlation import (
    CorrelationMatrix,
    CorrelationPair,
    ParlayGroup,
    ParlayInsight,
    PropDescriptor,
    PropSeries,
    compute_correlation_matrix,
    suggest_parlay_groups,
)
from .criteria import (
    CRITERIA_FIELDS,
    Condition,
    Criteria,
    FeatureContext,
    Match,
    build_context_values,
    evaluate_condition,
    evaluate_criteria,
    evaluate_criteria_batch,
    load_criteria,
)
from .distribution import (
    DistributionResult,
    Overlay,
    SplitPredicate,
    compute_distribution,
    default_splits,
)
from .game_logs import Observation, add_is_home_flag, add_rest_days, observations_from_logs
from .odds import ParlayPayout, american_to_decimal, american_to_prob, decimal_to_american, parlay_payout
from .stats import (
    DensityPoint,
    coefficient_of_variation,
    gaussian_kde,
    mean,
    median,
    moving_average,
    pearson,
    percentile,
    silverman_bandwidth,
    std_dev,
)
from .streaks import HeatRingGame, StreakRow, compute_streak_row, consecutive_streak, rolling_hit_rate, streak_direction

__all__ = [
    "mean",
    "median",
    "std_dev",
    "percentile",
    "coefficient_of_variation",
    "moving_average",
    "pearson",
    "silverman_bandwidth",
    "gaussian_kde",
    "DensityPoint",
    "Observation",
    "add_is_home_flag",
    "add_rest_days",
    "observations_from_logs",
    "SplitPredicate",
    "Overlay",
    "DistributionResult",
    "default_splits",
    "compute_distribution",
    "PropDescriptor",
    "PropSeries",
    "CorrelationPair",
    "ParlayInsight",
    "ParlayGroup",
    "CorrelationMatrix",
    "compute_correlation_matrix",
    "suggest_parlay_groups",
    "ParlayPayout",
    "american_to_decimal",
    "decimal_to_american",
    "american_to_prob",
    "parlay_payout",
    "HeatRingGame",
    "StreakRow",
    "compute_streak_row",
    "consecutive_streak",
    "rolling_hit_rate",
    "streak_direction",
    "Signal",
    "GameContext",
    "ConvergenceVerdict",
    "score_convergence",
    "build_convergence_signals",
    "CRITERIA_FIELDS",
    "Condition",
    "Criteria",
    "FeatureContext",
    "Match",
    "evaluate_condition",
    "evaluate_criteria",
    "evaluate_criteria_batch",
    "build_context_values",
    "load_criteria",
    "AnalyticsConfig",
    "load_dotenv",
    "fingerprint",
    "memoize",
]
