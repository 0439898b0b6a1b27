"""Real-time trade anomaly detection.

:class:`AnomalyDetector` classifies every incoming trade against a
rolling window of recent trades:

* **price** — the move from the previous trade exceeds an adaptive
  absolute threshold (95th percentile of recent moves, floored) or a
  multiple of the average move;
* **size** — the trade is larger than an adaptive absolute threshold
  (90th percentile of recent sizes, floored) or, once enough trades have
  been seen, a multiple of the average size;
* **volatility** — the EWMA volatility of log returns exceeds a fixed
  threshold (RiskMetrics-style decay, λ = 0.92 by default).

The window is independent of the trade ledger: it is short and exists
only for real-time classification.
"""

from __future__ import annotations

import math
import threading
from collections import deque

import numpy as np
from loguru import logger

from liquidity_monitor.auxiliary import rank_percentile
from liquidity_monitor.config import AnalyzerConfig
from liquidity_monitor.models import AnomalyFlags, DetectorStatistics, Trade


class AnomalyDetector:
    """Rolling-window EWMA volatility and adaptive-threshold classifier.

    Parameters
    ----------
    config : AnalyzerConfig, optional
        Window size, decay, multipliers and threshold floors.
    """

    def __init__(self, config: AnalyzerConfig | None = None) -> None:
        self.config = config or AnalyzerConfig()
        self._lock = threading.Lock()
        self._window: deque[Trade] = deque(maxlen=self.config.anomaly_window)
        self._reset_state()

    def _reset_state(self) -> None:
        self._window.clear()
        self._trade_count = 0
        self._initialized = False
        self._variance = 0.0
        self._previous_price = 0.0
        self._size_threshold = self.config.min_size_threshold
        self._price_move_threshold = self.config.initial_price_move_threshold

    def reset(self) -> None:
        """Forget every observed trade and restore the initial thresholds."""
        with self._lock:
            self._reset_state()

    # ── Per-trade update ─────────────────────────────────────────────

    def on_trade(self, trade: Trade) -> AnomalyFlags:
        """Add *trade* to the window and classify it.

        The first trade only seeds the EWMA and is never flagged.

        Returns
        -------
        AnomalyFlags
            Price, size and volatility flags for *trade*.
        """
        with self._lock:
            self._window.append(trade)
            self._trade_count += 1

            if not self._update_ewma(trade.price):
                return AnomalyFlags()

            if len(self._window) >= self.config.min_samples:
                self._update_thresholds()

            flags = AnomalyFlags(
                price_anomaly=self._is_price_anomaly(trade.price),
                size_anomaly=self._is_size_anomaly(trade.size),
                volatility_anomaly=self._is_volatility_anomaly(),
            )

        if flags.any_anomaly:
            logger.debug(
                "AnomalyDetector: trade #{} flagged (price={}, size={}, volatility={})",
                self._trade_count,
                flags.price_anomaly,
                flags.size_anomaly,
                flags.volatility_anomaly,
            )
        return flags

    def _update_ewma(self, price: float) -> bool:
        # σ²(t) = λ σ²(t-1) + (1 - λ) r²(t)
        if not self._initialized:
            self._previous_price = price
            self._variance = self.config.ewma_initial_variance
            self._initialized = True
            return False

        r = math.log(price / self._previous_price)
        decay = self.config.ewma_decay
        self._variance = decay * self._variance + (1.0 - decay) * r * r
        self._previous_price = price
        return True

    def _update_thresholds(self) -> None:
        cfg = self.config
        sizes = [t.size for t in self._window]
        self._size_threshold = max(
            cfg.min_size_threshold, rank_percentile(sizes, cfg.size_percentile)
        )

        moves = self._price_moves()
        if len(moves):
            self._price_move_threshold = max(
                cfg.min_price_move_threshold,
                rank_percentile(moves, cfg.price_move_percentile),
            )

    def _price_moves(self) -> np.ndarray:
        prices = np.fromiter((t.price for t in self._window), dtype=np.float64)
        return np.abs(np.diff(prices))

    # ── Classifiers ──────────────────────────────────────────────────

    def _is_price_anomaly(self, price: float) -> bool:
        if len(self._window) < 2:
            return False

        avg_move = float(self._price_moves().mean())
        if avg_move <= 0:
            return False

        change = abs(price - self._window[-2].price)
        return (
            change > self._price_move_threshold
            or change > avg_move * self.config.price_deviation_multiplier
        )

    def _is_size_anomaly(self, size: float) -> bool:
        absolute = size > self._size_threshold
        if len(self._window) < self.config.min_samples:
            return absolute

        avg_size = self._average_size()
        if avg_size <= 0:
            return absolute
        return absolute or size > avg_size * self.config.trade_size_multiplier

    def _is_volatility_anomaly(self) -> bool:
        if not self._initialized:
            return False
        return math.sqrt(self._variance) > self.config.volatility_threshold

    # ── Accessors ────────────────────────────────────────────────────

    def _average_size(self) -> float:
        if not self._window:
            return 0.0
        return sum(t.size for t in self._window) / len(self._window)

    def _average_price(self) -> float:
        if not self._window:
            return 0.0
        return sum(t.price for t in self._window) / len(self._window)

    @property
    def ewma_volatility(self) -> float:
        with self._lock:
            return math.sqrt(self._variance) if self._initialized else 0.0

    @property
    def trade_count(self) -> int:
        return self._trade_count

    def window(self) -> tuple[Trade, ...]:
        with self._lock:
            return tuple(self._window)

    def statistics(self) -> DetectorStatistics:
        """Summarise the current window, EWMA state and thresholds."""
        with self._lock:
            return DetectorStatistics(
                trade_count=self._trade_count,
                window_size=len(self._window),
                average_price=self._average_price(),
                average_trade_size=self._average_size(),
                ewma_volatility=math.sqrt(self._variance) if self._initialized else 0.0,
                ewma_variance=self._variance,
                size_threshold=self._size_threshold,
                price_move_threshold=self._price_move_threshold,
                volatility_threshold=self.config.volatility_threshold,
            )
