"""Bounded, time-ordered log of executed trades."""

from __future__ import annotations

import threading
from collections import deque

from loguru import logger

from liquidity_monitor.exceptions import InvalidTrade
from liquidity_monitor.models import Trade


class TradeLedger:
    """Fixed-capacity FIFO of trades, oldest first.

    Eviction of the oldest trade when the ledger is full is the memory
    bound, not an error.

    Parameters
    ----------
    capacity : int
        Maximum number of trades retained.
    lock : threading.RLock, optional
        Lock guarding the ledger.  Pass a shared lock to make ledger and
        order-book reads part of one critical section (see
        :class:`~liquidity_monitor.analyzer.LiquidityAnalyzer`).
    """

    def __init__(self, capacity: int = 10_000, *, lock: threading.RLock | None = None) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._trades: deque[Trade] = deque(maxlen=capacity)
        self._lock = lock or threading.RLock()

    @property
    def capacity(self) -> int:
        return self._trades.maxlen

    def append(self, trade: Trade) -> None:
        """Append *trade*, evicting the oldest entry when at capacity.

        Raises
        ------
        InvalidTrade
            If *trade* is not a :class:`~liquidity_monitor.models.Trade`.
            Price and size are validated when the trade is constructed.
        """
        if not isinstance(trade, Trade):
            raise InvalidTrade(f"expected a Trade, got {type(trade).__name__}")
        with self._lock:
            if self._trades and trade.timestamp < self._trades[-1].timestamp:
                logger.debug(
                    "Ledger: out-of-order trade at {} (last {})",
                    trade.timestamp,
                    self._trades[-1].timestamp,
                )
            self._trades.append(trade)

    def snapshot(self) -> tuple[Trade, ...]:
        """Consistent, read-only copy of the ledger, oldest to newest."""
        with self._lock:
            return tuple(self._trades)

    def clear(self) -> None:
        with self._lock:
            self._trades.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._trades)
