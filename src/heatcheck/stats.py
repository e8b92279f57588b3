from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.stats import norm

logger = logging.getLogger(__name__)

SILVERMAN_MIN_SAMPLES = 5


@dataclass(frozen=True)
class DensityPoint:
    x: float
    y: float


def _as_array(values: Sequence[float] | np.ndarray) -> np.ndarray:
    return np.asarray(values, dtype=float).ravel()


def mean(values: Sequence[float] | np.ndarray) -> float:
    """Arithmetic mean, 0.0 for an empty input."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(np.mean(arr))


def median(values: Sequence[float] | np.ndarray) -> float:
    """Median, 0.0 for an empty input."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(np.median(arr))


def std_dev(values: Sequence[float] | np.ndarray) -> float:
    """Population standard deviation (ddof=0), 0.0 for fewer than two values."""
    arr = _as_array(values)
    if arr.size <= 1:
        return 0.0
    return float(np.std(arr, ddof=0))


def percentile(values: Sequence[float] | np.ndarray, p: float) -> float:
    """Percentile with linear interpolation between closest ranks."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(np.percentile(arr, p))


def coefficient_of_variation(values: Sequence[float] | np.ndarray) -> float:
    """Standard deviation over mean, scaled to percent. 0.0 when the mean is not positive."""
    m = mean(values)
    if m <= 0:
        return 0.0
    return std_dev(values) / m * 100


def moving_average(values: Sequence[float] | np.ndarray, window: int) -> list[float]:
    """Trailing moving average; the first entries average over fewer values."""
    if window <= 0:
        raise ValueError("window must be positive")
    arr = _as_array(values)
    if arr.size == 0:
        return []
    cumsum = np.concatenate(([0.0], np.cumsum(arr)))
    idx = np.arange(1, arr.size + 1)
    start = np.maximum(0, idx - window)
    return [float(v) for v in (cumsum[idx] - cumsum[start]) / (idx - start)]


def pearson(xs: Sequence[float] | np.ndarray, ys: Sequence[float] | np.ndarray) -> float:
    """Pearson correlation coefficient.

    Returns 0.0 instead of NaN when the series differ in length, hold fewer
    than two points, or either series has zero variance.
    """
    x = _as_array(xs)
    y = _as_array(ys)
    if x.size != y.size or x.size < 2:
        return 0.0
    dx = x - x.mean()
    dy = y - y.mean()
    denom = float(np.sqrt(np.sum(dx * dx) * np.sum(dy * dy)))
    if denom == 0:
        return 0.0
    r = float(np.sum(dx * dy)) / denom
    return min(1.0, max(-1.0, r))


def silverman_bandwidth(
    values: Sequence[float] | np.ndarray,
    min_samples: int = SILVERMAN_MIN_SAMPLES,
) -> float:
    """Silverman's rule of thumb: 0.9 * min(sd, IQR / 1.34) * n^(-1/5).

    Small samples (n < min_samples) and degenerate spreads fall back to half the
    standard deviation, or 1.0 when that is zero as well.
    """
    arr = _as_array(values)
    sd = std_dev(arr)
    fallback = sd * 0.5 or 1.0
    if arr.size < min_samples:
        return fallback
    iqr = percentile(arr, 75) - percentile(arr, 25)
    bandwidth = 0.9 * min(sd, iqr / 1.34) * arr.size ** (-0.2)
    if bandwidth <= 0:
        logger.warning("Silverman bandwidth degenerate (sd=%.3f, iqr=%.3f); using %.3f", sd, iqr, fallback)
        return fallback
    return float(bandwidth)


def gaussian_kde(
    values: Sequence[float] | np.ndarray,
    bandwidth: float,
    x_min: float,
    x_max: float,
    num_points: int = 100,
) -> list[DensityPoint]:
    """Evaluate a Gaussian kernel density estimate on an evenly spaced grid.

    Each grid point's density is the mean of per-observation normal kernels
    centred on the observations with standard deviation ``bandwidth``.
    """
    if bandwidth <= 0:
        raise ValueError("bandwidth must be positive")
    if num_points < 1:
        raise ValueError("num_points must be at least 1")
    if x_max < x_min:
        raise ValueError("x_max must be >= x_min")
    if num_points > 1 and x_max == x_min:
        raise ValueError("x_max must be > x_min when num_points > 1")
    arr = _as_array(values)
    if arr.size == 0:
        return []
    grid = np.linspace(x_min, x_max, num_points)
    density = norm.pdf(grid[:, None], loc=arr[None, :], scale=bandwidth).mean(axis=1)
    return [DensityPoint(x=float(x), y=float(y)) for x, y in zip(grid, density)]
