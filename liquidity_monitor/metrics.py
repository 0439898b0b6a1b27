"""Liquidity, price-impact and risk metrics.

Every function here is pure and total: it reads an immutable snapshot
and returns a number, ``None`` ("not computable") or a result model, and
never raises on degenerate input (empty windows, zero volume, zero
variance, non-finite intermediates).

* :func:`order_book_metrics` — spread, depth, imbalance, VWAP, slippage
  and slope for one book snapshot.
* :func:`kyles_lambda` — price impact of signed order flow (Kyle, 1985).
* :func:`amihud_measure` — absolute return per unit of dollar volume
  (Amihud, 2002).
* :func:`risk_metrics` — realized/historical volatility, VaR and
  Expected Shortfall from the trade price history.

:class:`MetricsEngine` binds them to an
:class:`~liquidity_monitor.config.AnalyzerConfig` and assembles a
:class:`~liquidity_monitor.models.LiquidityMetrics`.
"""

from __future__ import annotations

import math
from typing import Any, Sequence

import numpy as np
import pandas as pd

from liquidity_monitor.auxiliary import (
    annualized_volatility,
    log_returns,
    ols_slope,
    sample_variance,
    vwap,
)
from liquidity_monitor.config import DAY_IN_MS, AnalyzerConfig
from liquidity_monitor.models import (
    AmihudMeasures,
    KylesLambda,
    LiquidityMetrics,
    MarketSnapshot,
    OrderBookLevel,
    OrderBookSnapshot,
    Trade,
)


# ── Order book ───────────────────────────────────────────────────────


def order_book_slope(levels: Sequence[OrderBookLevel], depth: int = 10) -> float:
    """OLS slope of price on cumulative volume over the top *depth* levels.

    Returns 0.0 when fewer than two levels are available.
    """
    top = levels[:depth]
    if len(top) < 2:
        return 0.0
    cumulative_volume = np.cumsum([lvl.size for lvl in top])
    prices = np.array([lvl.price for lvl in top], dtype=np.float64)
    return ols_slope(cumulative_volume, prices)


def order_book_metrics(
    book: OrderBookSnapshot,
    depth: int = 10,
    sample_volume: float = 1.0,
) -> dict[str, Any]:
    """Compute spread, depth, imbalance, VWAP, slippage and slope.

    Parameters
    ----------
    book : OrderBookSnapshot
        Validated, sorted book.
    depth : int, optional
        Levels per side for depth and slope.  Default 10.
    sample_volume : float, optional
        Volume consumed per side for VWAP and slippage.  Default 1.0.

    Returns
    -------
    dict
        Keys matching the order-book fields of
        :class:`~liquidity_monitor.models.LiquidityMetrics`.  If either
        side is empty the dict is empty and every field keeps its default.
    """
    if not book.is_two_sided:
        return {}

    best_bid = book.bids[0].price
    best_ask = book.asks[0].price

    spread = best_ask - best_bid
    mid = (best_ask + best_bid) / 2.0
    relative_spread = spread / mid if mid > 0 else 0.0

    bid_depth = float(sum(lvl.size for lvl in book.bids[:depth]))
    ask_depth = float(sum(lvl.size for lvl in book.asks[:depth]))
    total = bid_depth + ask_depth
    imbalance = (bid_depth - ask_depth) / total if total > 0 else None

    bid_vwap = vwap(book.bids, sample_volume)
    ask_vwap = vwap(book.asks, sample_volume)

    return {
        "spread": spread,
        "relative_spread": relative_spread,
        "bid_depth": bid_depth,
        "ask_depth": ask_depth,
        "order_book_imbalance": imbalance,
        "bid_vwap": bid_vwap,
        "ask_vwap": ask_vwap,
        "bid_slippage": (best_bid - bid_vwap) / best_bid if bid_vwap is not None else None,
        "ask_slippage": (ask_vwap - best_ask) / best_ask if ask_vwap is not None else None,
        "bid_slope": order_book_slope(book.bids, depth),
        "ask_slope": order_book_slope(book.asks, depth),
    }


# ── Trade arrays ─────────────────────────────────────────────────────


def _trade_arrays(trades: Sequence[Trade]) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    prices = np.fromiter((t.price for t in trades), dtype=np.float64, count=len(trades))
    sizes = np.fromiter((t.size for t in trades), dtype=np.float64, count=len(trades))
    timestamps = np.fromiter((t.timestamp for t in trades), dtype=np.int64, count=len(trades))
    directions = np.fromiter((t.direction for t in trades), dtype=np.float64, count=len(trades))
    return prices, sizes, timestamps, directions


# ── Kyle's Lambda ────────────────────────────────────────────────────


def kyles_lambda(trades: Sequence[Trade], window_ms: int, now_ms: int) -> float:
    """Estimate Kyle's lambda over the trailing *window_ms*.

    Each consecutive pair of trades whose *current* trade lies within
    *window_ms* of *now_ms* contributes one observation:

    * **y** = ``ln(price_i / price_{i-1})``, skipped if non-finite or
      ``|y| >= 1`` (bad print guard)
    * **x** = ``size_i × direction_i`` (+1 buy, −1 sell, 0 unknown)

    λ is the OLS slope of y on x.

    Returns
    -------
    float
        λ, or 0.0 with fewer than two valid pairs or no variance in x.
    """
    if len(trades) < 2:
        return 0.0

    prices, sizes, timestamps, directions = _trade_arrays(trades)
    returns = log_returns(prices)
    signed_volume = sizes[1:] * directions[1:]

    in_window = (now_ms - timestamps[1:]) <= window_ms
    valid = in_window & np.isfinite(returns) & (np.abs(returns) < 1.0)
    if valid.sum() < 2:
        return 0.0

    return ols_slope(signed_volume[valid], returns[valid])


# ── Amihud ───────────────────────────────────────────────────────────


def amihud_measure(trades: Sequence[Trade], period_days: int, now_ms: int) -> float:
    """Amihud illiquidity averaged over the days in the trailing period.

    Only consecutive pairs that fall on the same calendar day
    (``timestamp // 86_400_000``) are used.  For each day::

        ratio = Σ |Δprice| / price_prev  /  Σ size × price

    The measure is the mean ratio over days with positive dollar volume
    and a finite ratio.

    Returns
    -------
    float
        The measure, or 0.0 when no day qualifies (including when no
        trades fall within the period).
    """
    if len(trades) < 2:
        return 0.0

    prices, sizes, timestamps, _ = _trade_arrays(trades)
    period_ms = int(period_days) * DAY_IN_MS
    days = timestamps // DAY_IN_MS

    prev_price = prices[:-1]
    with np.errstate(divide="ignore", invalid="ignore"):
        abs_return = np.abs(prices[1:] - prev_price) / prev_price
    dollar_volume = sizes[1:] * prices[1:]

    valid = (
        ((now_ms - timestamps[1:]) <= period_ms)
        & (days[1:] == days[:-1])
        & (prev_price > 0)
        & np.isfinite(abs_return)
        & np.isfinite(dollar_volume)
        & (dollar_volume > 0)
    )
    if not valid.any():
        return 0.0

    pairs = pd.DataFrame(
        {
            "day": days[1:][valid],
            "abs_return": abs_return[valid],
            "dollar_volume": dollar_volume[valid],
        }
    )
    daily = pairs.groupby("day").sum()
    daily = daily[daily["dollar_volume"] > 0]
    ratio = daily["abs_return"] / daily["dollar_volume"]
    ratio = ratio[np.isfinite(ratio)]
    return float(ratio.mean()) if len(ratio) else 0.0


# ── Risk ─────────────────────────────────────────────────────────────


def risk_metrics(
    prices: Sequence[float],
    periods_per_year: float = 365 * 24,
    historical_window: int = 30,
    tail: float = 0.05,
) -> dict[str, Any]:
    """Volatility, Value-at-Risk and Expected Shortfall from a price path.

    Parameters
    ----------
    prices : sequence of float
        Trade prices, oldest first.
    periods_per_year : float, optional
        Annualisation factor.  The default (365 × 24) treats each return
        as one hour of a 24/7 market.
    historical_window : int, optional
        Trailing returns used for ``historical_volatility``.  Default 30.
    tail : float, optional
        VaR tail fraction.  Default 0.05 (95% VaR).

    Returns
    -------
    dict
        ``realized_volatility``, ``var_95``, ``expected_shortfall_95`` and
        ``historical_volatility`` (all in percent), or an empty dict when
        there are no finite returns.

    Notes
    -----
    The VaR rank is ``ceil(tail × n)`` clamped to ``[0, n − 1]`` in the
    ascending return series; ES is the mean of the returns strictly below
    that rank (0 when the rank is 0).
    """
    returns = log_returns(np.asarray(prices, dtype=np.float64))
    returns = returns[np.isfinite(returns)]
    n = len(returns)
    if n == 0:
        return {}

    result: dict[str, Any] = {}

    realized = annualized_volatility(sample_variance(returns), periods_per_year)
    if realized is not None:
        result["realized_volatility"] = realized

    ordered = np.sort(returns)
    var_index = min(math.ceil(n * tail), n - 1)
    result["var_95"] = float(ordered[var_index]) * 100
    result["expected_shortfall_95"] = (
        float(ordered[:var_index].mean()) * 100 if var_index > 0 else 0.0
    )

    window = min(historical_window, n)
    if window > 1:
        result["historical_volatility"] = annualized_volatility(
            sample_variance(returns[-window:]), periods_per_year
        )

    return result


# ── Engine ───────────────────────────────────────────────────────────


class MetricsEngine:
    """Computes :class:`~liquidity_monitor.models.LiquidityMetrics` from a snapshot.

    Parameters
    ----------
    config : AnalyzerConfig, optional
        Depth, VWAP volume, look-back windows and risk parameters.
    """

    def __init__(self, config: AnalyzerConfig | None = None) -> None:
        self.config = config or AnalyzerConfig()

    def compute(self, snapshot: MarketSnapshot) -> LiquidityMetrics:
        """Compute every metric from *snapshot* alone."""
        cfg = self.config
        trades = snapshot.trades
        now_ms = snapshot.taken_at_ms

        frame = snapshot.to_frame()

        fields: dict[str, Any] = {}
        fields.update(
            risk_metrics(
                frame["price"].to_numpy(dtype=np.float64),
                periods_per_year=cfg.periods_per_year,
                historical_window=cfg.historical_volatility_window,
                tail=cfg.var_tail,
            )
        )
        fields.update(
            order_book_metrics(
                snapshot.book,
                depth=cfg.order_book_depth,
                sample_volume=cfg.vwap_sample_volume,
            )
        )

        short, medium, long_ = cfg.amihud_periods_days
        return LiquidityMetrics(
            **fields,
            kyles_lambda=KylesLambda(
                daily=kyles_lambda(trades, cfg.kyle_daily_window_ms, now_ms),
                hourly=kyles_lambda(trades, cfg.kyle_hourly_window_ms, now_ms),
            ),
            amihud_measures=AmihudMeasures(
                one_day=amihud_measure(trades, short, now_ms),
                thirty_days=amihud_measure(trades, medium, now_ms),
                ninety_days=amihud_measure(trades, long_, now_ms),
            ),
        )
