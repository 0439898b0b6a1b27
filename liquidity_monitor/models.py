"""Domain models for liquidity-monitor.

Two kinds of model live here:

* **Stream values** (:class:`Trade`, :class:`OrderBookLevel`,
  :class:`OrderBookSnapshot`, :class:`MarketSnapshot`) are frozen
  dataclasses.  They are created once per feed event and sit in the
  bounded windows, so they stay lightweight.
* **Results** (:class:`LiquidityMetrics`, :class:`AnomalyFlags`,
  :class:`DetectorStatistics`) are frozen pydantic models.  They are the
  data contracts handed to reporting collaborators and define the
  serialised field set.

Optional result fields use ``None`` for "not computable", never a
sentinel number, so that downstream code can tell zero from unknown.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Literal

import pandas as pd
from pydantic import BaseModel, Field

from liquidity_monitor.exceptions import InvalidTrade

Side = Literal["buy", "sell", "unknown"]

_SIDES = ("buy", "sell", "unknown")


@dataclass(frozen=True)
class Trade:
    """An executed trade.

    Attributes
    ----------
    price : float
        Execution price, strictly positive.
    size : float
        Executed quantity, strictly positive.
    timestamp : int
        Exchange time in milliseconds since the epoch.
    side : {"buy", "sell", "unknown"}
        Aggressor side.
    trade_id : str
        Exchange trade identifier, empty when the feed does not provide one.

    Raises
    ------
    InvalidTrade
        If ``price`` or ``size`` is not strictly positive (or not finite),
        or ``side`` is not one of the accepted values.
    """

    price: float
    size: float
    timestamp: int
    side: Side = "unknown"
    trade_id: str = ""

    def __post_init__(self) -> None:
        if not (math.isfinite(self.price) and self.price > 0):
            raise InvalidTrade(f"trade price must be positive, got {self.price}")
        if not (math.isfinite(self.size) and self.size > 0):
            raise InvalidTrade(f"trade size must be positive, got {self.size}")
        if self.side not in _SIDES:
            raise InvalidTrade(f"trade side must be one of {_SIDES}, got {self.side!r}")

    @property
    def cost(self) -> float:
        """Notional value of the trade (``price × size``)."""
        return self.price * self.size

    @property
    def direction(self) -> int:
        """+1 for buys, -1 for sells, 0 when the aggressor is unknown."""
        if self.side == "buy":
            return 1
        if self.side == "sell":
            return -1
        return 0


@dataclass(frozen=True)
class OrderBookLevel:
    """Aggregated volume resting at one price level.

    Levels are never rejected on construction: cleaning happens when the
    book cache is updated, which silently drops anything not
    :attr:`is_valid`.
    """

    price: float
    size: float

    @property
    def is_valid(self) -> bool:
        return self.price > 0 and self.size > 0


@dataclass(frozen=True)
class OrderBookSnapshot:
    """Validated, sorted order book.

    ``bids`` are ordered by price descending and ``asks`` by price
    ascending, so the best quote on each side is at index 0.
    """

    bids: tuple[OrderBookLevel, ...] = ()
    asks: tuple[OrderBookLevel, ...] = ()

    @property
    def best_bid(self) -> OrderBookLevel | None:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> OrderBookLevel | None:
        return self.asks[0] if self.asks else None

    @property
    def is_two_sided(self) -> bool:
        return bool(self.bids) and bool(self.asks)


@dataclass(frozen=True)
class MarketSnapshot:
    """One consistent copy of the ledger and the book.

    ``taken_at_ms`` is the "now" that every time-windowed metric
    computed from this snapshot is measured against.
    """

    trades: tuple[Trade, ...] = ()
    book: OrderBookSnapshot = field(default_factory=OrderBookSnapshot)
    taken_at_ms: int = 0

    def to_frame(self) -> pd.DataFrame:
        """Return the trades as a DataFrame (one row per trade, oldest first)."""
        return pd.DataFrame(
            {
                "timestamp": [t.timestamp for t in self.trades],
                "price": [t.price for t in self.trades],
                "size": [t.size for t in self.trades],
                "side": [t.side for t in self.trades],
            },
            columns=["timestamp", "price", "size", "side"],
        )


# ── Results ───────────────────────────────────────────────────────────


class KylesLambda(BaseModel):
    """Kyle's lambda over the daily and hourly look-back windows."""

    model_config = {"frozen": True}

    daily: float = 0.0
    hourly: float = 0.0


class AmihudMeasures(BaseModel):
    """Amihud illiquidity over the short, medium and long periods."""

    model_config = {"frozen": True, "populate_by_name": True}

    one_day: float = Field(default=0.0, alias="1_day")
    thirty_days: float = Field(default=0.0, alias="30_days")
    ninety_days: float = Field(default=0.0, alias="90_days")


class LiquidityMetrics(BaseModel):
    """Result of one comprehensive liquidity analysis.

    Field order is the serialisation order.  Percent-valued fields
    (``realized_volatility``, ``historical_volatility``, ``var_95``,
    ``expected_shortfall_95``) are already multiplied by 100.
    """

    model_config = {"frozen": True}

    # Order book
    spread: float = 0.0
    relative_spread: float = 0.0
    bid_depth: float = 0.0
    ask_depth: float = 0.0
    order_book_imbalance: float | None = None

    # VWAP and slippage
    bid_vwap: float | None = None
    ask_vwap: float | None = None
    bid_slippage: float | None = None
    ask_slippage: float | None = None

    # Book shape
    bid_slope: float = 0.0
    ask_slope: float = 0.0

    # Risk
    realized_volatility: float = 0.0
    var_95: float = 0.0
    expected_shortfall_95: float = 0.0
    historical_volatility: float | None = None

    # Price impact / illiquidity
    kyles_lambda: KylesLambda = Field(default_factory=KylesLambda)
    amihud_measures: AmihudMeasures = Field(default_factory=AmihudMeasures)

    def to_dict(self) -> dict[str, Any]:
        """Plain nested dict using the serialised key names."""
        return self.model_dump(by_alias=True)

    def to_json(self, indent: int = 2, decimals: int = 8) -> str:
        """Serialise with fixed-point numbers and ``null`` for absent values.

        Parameters
        ----------
        indent : int, optional
            Spaces per nesting level.  Default 2.
        decimals : int, optional
            Digits after the decimal point.  Default 8.

        Returns
        -------
        str
            A JSON object with the fixed field set of this model.
        """
        return _render_json(self.to_dict(), indent, decimals, 0)


def _render_json(value: Any, indent: int, decimals: int, level: int) -> str:
    if isinstance(value, dict):
        pad = " " * (indent * (level + 1))
        items = [
            f'{pad}"{key}": {_render_json(item, indent, decimals, level + 1)}'
            for key, item in value.items()
        ]
        return "{\n" + ",\n".join(items) + "\n" + " " * (indent * level) + "}"
    if value is None or not math.isfinite(value):
        return "null"
    return f"{value:.{decimals}f}"


class AnomalyFlags(BaseModel):
    """Per-trade anomaly classification."""

    model_config = {"frozen": True}

    price_anomaly: bool = False
    size_anomaly: bool = False
    volatility_anomaly: bool = False

    @property
    def any_anomaly(self) -> bool:
        return self.price_anomaly or self.size_anomaly or self.volatility_anomaly


class DetectorStatistics(BaseModel):
    """Point-in-time summary of the anomaly detector's window and thresholds.

    Attributes
    ----------
    trade_count : int
        Trades observed since the detector was created (or reset).
    window_size : int
        Trades currently in the rolling window.
    average_price, average_trade_size : float
        Means over the rolling window (0 when empty).
    ewma_volatility : float
        ``sqrt(ewma_variance)`` as a fraction (0 before the first trade).
    size_threshold, price_move_threshold : float
        Current adaptive thresholds.
    volatility_threshold : float
        Fixed EWMA volatility threshold.
    """

    model_config = {"frozen": True}

    trade_count: int
    window_size: int
    average_price: float
    average_trade_size: float
    ewma_volatility: float
    ewma_variance: float
    size_threshold: float
    price_move_threshold: float
    volatility_threshold: float
