"""Shared fixtures for liquidity-monitor tests."""

from __future__ import annotations

import pytest

from liquidity_monitor.config import DAY_IN_MS
from liquidity_monitor.models import OrderBookLevel, OrderBookSnapshot, Trade

# Noon UTC on 2023-11-14, so a few hours either side stay on the same day.
DAY_START_MS = 19_675 * DAY_IN_MS
NOW_MS = DAY_START_MS + 12 * 3_600_000


def make_trades(prices, sizes=None, sides=None, step_ms=1_000, end_ms=NOW_MS):
    """Build trades spaced *step_ms* apart, the last one at *end_ms*."""
    n = len(prices)
    if sizes is None:
        sizes = [1.0] * n
    if sides is None:
        sides = ["buy"] * n
    return [
        Trade(price=p, size=s, timestamp=end_ms - (n - 1 - i) * step_ms, side=side)
        for i, (p, s, side) in enumerate(zip(prices, sizes, sides))
    ]


@pytest.fixture
def now_ms() -> int:
    return NOW_MS


@pytest.fixture
def sample_book() -> OrderBookSnapshot:
    """Two-level book: bids 100x2, 99x3; asks 101x1, 102x4."""
    return OrderBookSnapshot(
        bids=(OrderBookLevel(100.0, 2.0), OrderBookLevel(99.0, 3.0)),
        asks=(OrderBookLevel(101.0, 1.0), OrderBookLevel(102.0, 4.0)),
    )


@pytest.fixture
def book_fields() -> dict[str, str]:
    """Field map for the same book as ``sample_book``, as a feed delivers it."""
    return {
        "BID_PRICE_0": "100",
        "BID_SIZE_0": "2",
        "BID_PRICE_1": "99",
        "BID_SIZE_1": "3",
        "ASK_PRICE_0": "101",
        "ASK_SIZE_0": "1",
        "ASK_PRICE_1": "102",
        "ASK_SIZE_1": "4",
    }
