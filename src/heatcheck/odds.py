from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

DEFAULT_LEG_ODDS = -110.0


@dataclass(frozen=True)
class ParlayPayout:
    legs: int
    decimal_odds: float
    american_odds: float
    payout: float
    implied_probability: float


def american_to_decimal(odds: float) -> float:
    """Convert American odds to decimal odds (stake included)."""
    if odds == 0:
        raise ValueError("odds cannot be zero")
    if odds < 0:
        return 1 + 100 / abs(odds)
    return 1 + odds / 100


def decimal_to_american(decimal_odds: float) -> float:
    """Convert decimal odds back to American odds."""
    if decimal_odds <= 1:
        raise ValueError("decimal odds must be greater than 1")
    if decimal_odds >= 2:
        return (decimal_odds - 1) * 100
    return -100 / (decimal_odds - 1)


def american_to_prob(odds: float) -> float:
    """Convert American odds to implied probability."""
    return 1 / american_to_decimal(odds)


def parlay_payout(leg_odds: Iterable[float | None], wager: float = 10.0) -> ParlayPayout:
    """Combine per-leg American odds into parlay odds and payout.

    Legs without a price are assumed to be -110.
    """
    odds = [DEFAULT_LEG_ODDS if price is None else float(price) for price in leg_odds]
    if not odds:
        return ParlayPayout(legs=0, decimal_odds=0.0, american_odds=0.0, payout=0.0, implied_probability=0.0)
    product = 1.0
    for price in odds:
        product *= american_to_decimal(price)
    return ParlayPayout(
        legs=len(odds),
        decimal_odds=product,
        american_odds=float(round(decimal_to_american(product))),
        payout=round(wager * product, 2),
        implied_probability=1 / product,
    )
