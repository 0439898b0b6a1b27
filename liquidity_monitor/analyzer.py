"""Stateful liquidity analyzer.

:class:`LiquidityAnalyzer` owns the trade ledger and the order-book cache
behind one lock, and runs the metrics engine against a single consistent
copy of both.

Usage::

    from liquidity_monitor import LiquidityAnalyzer, Trade

    analyzer = LiquidityAnalyzer()
    analyzer.update_order_book([(100.0, 2.0)], [(101.0, 1.0)])
    analyzer.add_trade(Trade(price=100.5, size=0.1, timestamp=1_700_000_000_000, side="buy"))
    metrics = analyzer.perform_comprehensive_analysis()
    print(metrics.to_json())
"""

from __future__ import annotations

import threading
import time
from typing import Iterable

from loguru import logger

from liquidity_monitor.book import LevelLike, OrderBookCache
from liquidity_monitor.config import AnalyzerConfig
from liquidity_monitor.ledger import TradeLedger
from liquidity_monitor.metrics import MetricsEngine
from liquidity_monitor.models import LiquidityMetrics, MarketSnapshot, OrderBookSnapshot, Trade


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class LiquidityAnalyzer:
    """Trade ledger + order-book cache + metrics engine.

    Mutations and the snapshot copy taken by
    :meth:`perform_comprehensive_analysis` share one re-entrant lock, so
    every metric in a result (e.g. Kyle's lambda and the Amihud measures)
    is computed from the same set of trades and the same book.  The
    computation itself runs outside the lock.

    Parameters
    ----------
    config : AnalyzerConfig, optional
        Ledger capacity and metric parameters.
    engine : MetricsEngine, optional
        Metric computation.  Defaults to a :class:`MetricsEngine` built
        from *config*.
    """

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        *,
        engine: MetricsEngine | None = None,
    ) -> None:
        self.config = config or AnalyzerConfig()
        self._lock = threading.RLock()
        self.ledger = TradeLedger(self.config.max_trade_history, lock=self._lock)
        self.book = OrderBookCache(lock=self._lock)
        self.engine = engine or MetricsEngine(self.config)

    def add_trade(self, trade: Trade) -> None:
        self.ledger.append(trade)

    def update_order_book(
        self, bids: Iterable[LevelLike], asks: Iterable[LevelLike]
    ) -> OrderBookSnapshot:
        return self.book.update(bids, asks)

    def snapshot(self, at_ms: int | None = None) -> MarketSnapshot:
        """Copy ledger and book under one lock acquisition.

        Parameters
        ----------
        at_ms : int, optional
            The "now" recorded in the snapshot.  Defaults to the wall
            clock when the lock is held.
        """
        with self._lock:
            return MarketSnapshot(
                trades=self.ledger.snapshot(),
                book=self.book.snapshot(),
                taken_at_ms=now_ms() if at_ms is None else at_ms,
            )

    def perform_comprehensive_analysis(self, at_ms: int | None = None) -> LiquidityMetrics:
        """Compute every liquidity, impact and risk metric from one snapshot.

        Parameters
        ----------
        at_ms : int, optional
            Reference time for the Kyle and Amihud look-back windows.
            Defaults to the current wall-clock time.

        Returns
        -------
        LiquidityMetrics
            Frozen result; fields that cannot be computed are ``None``.
        """
        snapshot = self.snapshot(at_ms)
        logger.info(
            "Analyzer: analysing {} trades, {} bid / {} ask levels",
            len(snapshot.trades),
            len(snapshot.book.bids),
            len(snapshot.book.asks),
        )
        return self.engine.compute(snapshot)

    @property
    def trade_count(self) -> int:
        return len(self.ledger)
