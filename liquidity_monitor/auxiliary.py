## auxiliary.py

import math
from typing import Sequence

import numpy as np

from liquidity_monitor.models import OrderBookLevel


def log_returns(prices: np.ndarray) -> np.ndarray:
    """
    Calculate log returns between consecutive prices.

    Args:
      prices: A NumPy array of prices.

    Returns:
      A NumPy array of length ``len(prices) - 1`` with ``ln(p[i] / p[i-1])``.
      Non-finite values (zero or negative prices) are left in place for the
      caller to filter.
    """
    prices = np.asarray(prices, dtype=np.float64)
    if len(prices) < 2:
        return np.empty(0, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.log(prices[1:] / prices[:-1])


def ols_slope(x: np.ndarray, y: np.ndarray) -> float:
    """
    Ordinary least-squares slope of y on x, ``cov(x, y) / var(x)``.

    Args:
      x: Independent variable.
      y: Dependent variable, same length as x.

    Returns:
      The slope, or 0.0 when fewer than two points are given, x has no
      variance, or the result is not finite.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if len(x) != len(y) or len(x) < 2:
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    numerator = float(dx @ dy)
    denominator = float(dx @ dx)
    if denominator == 0.0 or not (math.isfinite(numerator) and math.isfinite(denominator)):
        return 0.0
    return numerator / denominator


def sample_variance(v: np.ndarray) -> float:
    """
    Sample variance with divisor ``max(1, n - 1)``.

    Args:
      v: A NumPy array of numerical values.

    Returns:
      The variance (0.0 for an empty array).
    """
    v = np.asarray(v, dtype=np.float64)
    if len(v) == 0:
        return 0.0
    dev = v - v.mean()
    return float(dev @ dev) / max(1, len(v) - 1)


def annualized_volatility(variance: float, periods_per_year: float) -> float | None:
    """
    Annualised volatility in percent, ``sqrt(variance × periods) × 100``.

    Returns None if the variance is negative or not finite.
    """
    if not math.isfinite(variance) or variance < 0:
        return None
    return math.sqrt(variance * periods_per_year) * 100


def rank_percentile(v: Sequence[float], q: float) -> float:
    """
    Value at rank ``int(n × q)`` of the ascending-sorted sample.

    The rank is clamped to the last element, so ``q = 1`` returns the
    maximum.  Unlike :func:`numpy.percentile` there is no interpolation.

    Args:
      v: A non-empty sequence of values.
      q: Quantile in ``(0, 1]``.

    Returns:
      The selected value.
    """
    ordered = np.sort(np.asarray(v, dtype=np.float64))
    idx = min(int(len(ordered) * q), len(ordered) - 1)
    return float(ordered[idx])


def vwap(levels: Sequence[OrderBookLevel], target_volume: float) -> float | None:
    """
    Volume-weighted average price for consuming target_volume from one side.

    Levels are walked best to worst.  Each level contributes
    ``min(level.size, remaining)`` until the target is filled or the side
    is exhausted; a partially filled target is averaged over what was
    actually consumed.

    Args:
      levels: One side of a sorted order book, best level first.
      target_volume: Volume to consume.

    Returns:
      The VWAP, or None if target_volume is not positive or nothing could
      be consumed.
    """
    if not levels or target_volume <= 0:
        return None

    consumed = 0.0
    weighted_sum = 0.0
    for level in levels:
        if consumed >= target_volume:
            break
        volume = min(level.size, target_volume - consumed)
        if volume > 0:
            weighted_sum += level.price * volume
            consumed += volume

    return weighted_sum / consumed if consumed > 0 else None
