"""Latest validated, sorted order-book snapshot."""

from __future__ import annotations

import threading
from typing import Iterable

from loguru import logger

from liquidity_monitor.models import OrderBookLevel, OrderBookSnapshot

LevelLike = OrderBookLevel | tuple[float, float]


def _clean(levels: Iterable[LevelLike], descending: bool) -> tuple[OrderBookLevel, ...]:
    as_levels = (
        lvl if isinstance(lvl, OrderBookLevel) else OrderBookLevel(*lvl)
        for lvl in levels
    )
    valid = [lvl for lvl in as_levels if lvl.is_valid]
    return tuple(sorted(valid, key=lambda lvl: lvl.price, reverse=descending))


class OrderBookCache:
    """Holds the most recent order book.

    Every :meth:`update` builds a new immutable
    :class:`~liquidity_monitor.models.OrderBookSnapshot` and swaps it in,
    so readers never see a mix of old and new levels.

    Parameters
    ----------
    lock : threading.RLock, optional
        Lock guarding the swap.  Shared with the trade ledger by
        :class:`~liquidity_monitor.analyzer.LiquidityAnalyzer`.
    """

    def __init__(self, *, lock: threading.RLock | None = None) -> None:
        self._snapshot = OrderBookSnapshot()
        self._lock = lock or threading.RLock()

    def update(self, bids: Iterable[LevelLike], asks: Iterable[LevelLike]) -> OrderBookSnapshot:
        """Replace the book with cleaned and sorted *bids* and *asks*.

        Levels with a non-positive price or size are dropped.  Bids are
        sorted by price descending, asks by price ascending.

        Parameters
        ----------
        bids, asks : iterable of OrderBookLevel or (price, size) pairs
            Raw levels in any order.

        Returns
        -------
        OrderBookSnapshot
            The snapshot now held by the cache.
        """
        bids = list(bids)
        asks = list(asks)
        snapshot = OrderBookSnapshot(
            bids=_clean(bids, descending=True),
            asks=_clean(asks, descending=False),
        )
        dropped = len(bids) + len(asks) - len(snapshot.bids) - len(snapshot.asks)
        if dropped:
            logger.debug("OrderBook: dropped {} invalid levels", dropped)
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def snapshot(self) -> OrderBookSnapshot:
        with self._lock:
            return self._snapshot

    def best_bid(self) -> OrderBookLevel | None:
        return self.snapshot().best_bid

    def best_ask(self) -> OrderBookLevel | None:
        return self.snapshot().best_ask
