"""Tests for metrics.py — order book, Kyle's lambda, Amihud and risk."""

import math
import random

import numpy as np
import pytest

from conftest import DAY_START_MS, NOW_MS, make_trades
from liquidity_monitor.config import DAY_IN_MS, HOUR_IN_MS, AnalyzerConfig
from liquidity_monitor.metrics import (
    MetricsEngine,
    amihud_measure,
    kyles_lambda,
    order_book_metrics,
    order_book_slope,
    risk_metrics,
)
from liquidity_monitor.models import (
    KylesLambda,
    LiquidityMetrics,
    MarketSnapshot,
    OrderBookLevel,
    OrderBookSnapshot,
    Trade,
)


# ── Order book ──────────────────────────────────────────────────────


class TestOrderBookMetrics:
    def test_sample_book(self, sample_book):
        m = order_book_metrics(sample_book)
        assert m["spread"] == pytest.approx(1.0)
        assert m["relative_spread"] == pytest.approx(1.0 / 100.5)
        assert m["bid_depth"] == 5.0
        assert m["ask_depth"] == 5.0
        assert m["order_book_imbalance"] == 0.0
        assert m["bid_vwap"] == 100.0
        assert m["ask_vwap"] == 101.0
        assert m["bid_slippage"] == 0.0
        assert m["ask_slippage"] == 0.0

    def test_slopes(self, sample_book):
        m = order_book_metrics(sample_book)
        assert m["bid_slope"] == pytest.approx(-1.0 / 3.0)
        assert m["ask_slope"] == pytest.approx(0.25)

    def test_larger_sample_volume(self, sample_book):
        m = order_book_metrics(sample_book, sample_volume=2.0)
        assert m["ask_vwap"] == pytest.approx(101.5)
        assert m["ask_slippage"] == pytest.approx(0.5 / 101.0)
        assert m["bid_vwap"] == 100.0

    def test_depth_limits_levels(self, sample_book):
        m = order_book_metrics(sample_book, depth=1)
        assert m["bid_depth"] == 2.0
        assert m["ask_depth"] == 1.0
        assert m["order_book_imbalance"] == pytest.approx(1.0 / 3.0)
        assert m["bid_slope"] == 0.0

    def test_one_sided_book_is_empty(self):
        book = OrderBookSnapshot(bids=(OrderBookLevel(100.0, 1.0),))
        assert order_book_metrics(book) == {}

    def test_imbalance_bounds(self):
        rng = random.Random(7)
        for _ in range(20):
            book = OrderBookSnapshot(
                bids=tuple(OrderBookLevel(100.0 - i, rng.uniform(0.1, 5)) for i in range(5)),
                asks=tuple(OrderBookLevel(101.0 + i, rng.uniform(0.1, 5)) for i in range(5)),
            )
            assert -1.0 <= order_book_metrics(book)["order_book_imbalance"] <= 1.0

    def test_slope_single_level(self):
        assert order_book_slope([OrderBookLevel(100.0, 1.0)]) == 0.0


# ── Kyle's lambda ───────────────────────────────────────────────────


def _impact_path(lam: float, n: int, seed: int = 0) -> list[Trade]:
    """Prices generated exactly by ``ln(p_i / p_{i-1}) = lam × signed volume``."""
    rng = random.Random(seed)
    sizes = [rng.uniform(0.1, 5.0) for _ in range(n)]
    sides = [rng.choice(["buy", "sell"]) for _ in range(n)]
    prices = [100.0]
    for size, side in zip(sizes[1:], sides[1:]):
        direction = 1 if side == "buy" else -1
        prices.append(prices[-1] * math.exp(lam * size * direction))
    return make_trades(prices, sizes, sides)


class TestKylesLambda:
    def test_recovers_impact_coefficient(self):
        trades = _impact_path(1e-4, 100)
        assert kyles_lambda(trades, HOUR_IN_MS, NOW_MS) == pytest.approx(1e-4, rel=1e-6)

    def test_negative_coefficient(self):
        trades = _impact_path(-2e-4, 50, seed=3)
        assert kyles_lambda(trades, DAY_IN_MS, NOW_MS) == pytest.approx(-2e-4, rel=1e-6)

    def test_too_few_pairs(self):
        assert kyles_lambda(make_trades([100.0, 101.0]), HOUR_IN_MS, NOW_MS) == 0.0
        assert kyles_lambda([], HOUR_IN_MS, NOW_MS) == 0.0

    def test_trades_outside_window(self):
        trades = make_trades(
            [100.0, 101.0, 100.5, 102.0],
            sizes=[1.0, 2.0, 1.5, 3.0],
            sides=["buy", "buy", "sell", "buy"],
            end_ms=NOW_MS - 2 * HOUR_IN_MS,
        )
        assert kyles_lambda(trades, HOUR_IN_MS, NOW_MS) == 0.0
        assert kyles_lambda(trades, DAY_IN_MS, NOW_MS) != 0.0

    def test_bad_print_excluded(self):
        trades = _impact_path(1e-4, 60)
        last = trades[-1]
        trades.append(Trade(price=last.price * 3, size=50.0, timestamp=last.timestamp + 1, side="buy"))
        assert kyles_lambda(trades, HOUR_IN_MS, NOW_MS + 1) == pytest.approx(1e-4, rel=1e-6)

    def test_unknown_sides_have_no_variance(self):
        trades = make_trades([100.0, 101.0, 99.0, 102.0], sides=["unknown"] * 4)
        assert kyles_lambda(trades, HOUR_IN_MS, NOW_MS) == 0.0


# ── Amihud ──────────────────────────────────────────────────────────


class TestAmihudMeasure:
    def test_single_day(self):
        trades = make_trades([100.0, 101.0, 100.0], sizes=[1.0, 2.0, 1.0])
        expected = (0.01 + 1.0 / 101.0) / 302.0
        assert amihud_measure(trades, 1, NOW_MS) == pytest.approx(expected)

    def test_no_trades_in_period(self):
        trades = make_trades([100.0, 101.0, 100.0], end_ms=NOW_MS - 40 * DAY_IN_MS)
        assert amihud_measure(trades, 30, NOW_MS) == 0.0
        assert amihud_measure(trades, 90, NOW_MS) > 0.0

    def test_cross_day_pairs_excluded(self):
        trades = [
            Trade(price=100.0, size=1.0, timestamp=DAY_START_MS - 1_000, side="buy"),
            Trade(price=110.0, size=1.0, timestamp=DAY_START_MS + 1_000, side="buy"),
        ]
        assert amihud_measure(trades, 30, NOW_MS) == 0.0

    def test_mean_over_days(self):
        trades = [
            Trade(price=100.0, size=1.0, timestamp=DAY_START_MS - 2 * HOUR_IN_MS, side="buy"),
            Trade(price=101.0, size=1.0, timestamp=DAY_START_MS - HOUR_IN_MS, side="buy"),
            Trade(price=200.0, size=1.0, timestamp=NOW_MS - 1_000, side="buy"),
            Trade(price=202.0, size=1.0, timestamp=NOW_MS, side="buy"),
        ]
        expected = (0.01 / 101.0 + 0.01 / 202.0) / 2
        assert amihud_measure(trades, 30, NOW_MS) == pytest.approx(expected)

    def test_non_negative(self):
        rng = random.Random(11)
        prices = [100.0 + rng.uniform(-5, 5) for _ in range(200)]
        sizes = [rng.uniform(0.01, 3) for _ in range(200)]
        assert amihud_measure(make_trades(prices, sizes), 1, NOW_MS) >= 0.0


# ── Risk ────────────────────────────────────────────────────────────


class TestRiskMetrics:
    def test_fewer_than_two_prices(self):
        assert risk_metrics([]) == {}
        assert risk_metrics([100.0]) == {}

    def test_constant_prices(self):
        r = risk_metrics([100.0] * 5)
        assert r["realized_volatility"] == 0.0
        assert r["var_95"] == 0.0
        assert r["expected_shortfall_95"] == 0.0
        assert r["historical_volatility"] == 0.0

    def test_var_and_es(self):
        r = risk_metrics([100.0, 110.0, 99.0, 99.0])
        assert r["var_95"] == 0.0
        assert r["expected_shortfall_95"] == pytest.approx(math.log(0.9) * 100)

    def test_realized_volatility_formula(self):
        prices = [100.0, 110.0, 99.0, 99.0]
        returns = np.log(np.array(prices[1:]) / np.array(prices[:-1]))
        expected = math.sqrt(np.var(returns, ddof=1) * 8760) * 100
        assert risk_metrics(prices)["realized_volatility"] == pytest.approx(expected)

    def test_single_return_has_no_historical_volatility(self):
        r = risk_metrics([100.0, 101.0])
        assert "historical_volatility" not in r
        assert r["realized_volatility"] == 0.0

    def test_historical_uses_trailing_window(self):
        prices = [100.0, 110.0] * 15 + [110.0] * 31
        r = risk_metrics(prices, historical_window=30)
        assert r["historical_volatility"] == 0.0
        assert r["realized_volatility"] > 0.0

    @pytest.mark.parametrize("seed", range(5))
    def test_es_not_above_var(self, seed):
        rng = random.Random(seed)
        prices = [100.0]
        for _ in range(200):
            prices.append(prices[-1] * math.exp(rng.gauss(0, 0.01)))
        r = risk_metrics(prices)
        assert r["expected_shortfall_95"] <= r["var_95"]
        assert r["realized_volatility"] >= 0.0

    def test_annualisation_is_configurable(self):
        prices = [100.0, 101.0, 100.0, 102.0]
        hourly = risk_metrics(prices, periods_per_year=8760)["realized_volatility"]
        daily = risk_metrics(prices, periods_per_year=365)["realized_volatility"]
        assert hourly == pytest.approx(daily * math.sqrt(24))


# ── Engine ──────────────────────────────────────────────────────────


class TestMetricsEngine:
    def test_empty_snapshot_gives_defaults(self):
        assert MetricsEngine().compute(MarketSnapshot(taken_at_ms=NOW_MS)) == LiquidityMetrics()

    def test_compute(self, sample_book):
        trades = tuple(_impact_path(1e-4, 100))
        metrics = MetricsEngine().compute(
            MarketSnapshot(trades=trades, book=sample_book, taken_at_ms=NOW_MS)
        )
        assert metrics.spread == pytest.approx(1.0)
        assert metrics.bid_slope == pytest.approx(-1.0 / 3.0)
        assert isinstance(metrics.kyles_lambda, KylesLambda)
        assert metrics.kyles_lambda.hourly == pytest.approx(1e-4, rel=1e-6)
        assert metrics.kyles_lambda.daily == pytest.approx(1e-4, rel=1e-6)
        assert metrics.amihud_measures.one_day > 0.0
        assert metrics.historical_volatility is not None

    def test_risk_from_snapshot_prices(self):
        trades = tuple(make_trades([100.0, 110.0, 99.0, 99.0]))
        metrics = MetricsEngine().compute(MarketSnapshot(trades=trades, taken_at_ms=NOW_MS))
        assert metrics.var_95 == 0.0
        assert metrics.expected_shortfall_95 == pytest.approx(math.log(0.9) * 100)
        assert metrics.spread == 0.0

    def test_windows_measured_from_snapshot_time(self, sample_book):
        trades = tuple(_impact_path(1e-4, 20))
        later = NOW_MS + 2 * HOUR_IN_MS
        metrics = MetricsEngine().compute(
            MarketSnapshot(trades=trades, book=sample_book, taken_at_ms=later)
        )
        assert metrics.kyles_lambda.hourly == 0.0
        assert metrics.kyles_lambda.daily != 0.0

    def test_config_applied(self, sample_book):
        engine = MetricsEngine(AnalyzerConfig(order_book_depth=1, vwap_sample_volume=2.0))
        metrics = engine.compute(MarketSnapshot(book=sample_book, taken_at_ms=NOW_MS))
        assert metrics.order_book_imbalance == pytest.approx(1.0 / 3.0)
        assert metrics.ask_vwap == pytest.approx(101.5)
