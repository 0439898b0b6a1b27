"""Streaming liquidity, risk and anomaly analytics for one instrument.

Maintain a bounded trade ledger and the latest order book, classify
trades as they arrive, and periodically compute spread/depth/imbalance,
VWAP and slippage, order-book slope, Kyle's lambda, Amihud illiquidity,
volatility, VaR and Expected Shortfall.

Quick start::

    from liquidity_monitor import EventRouter

    router = EventRouter()
    router.on_fields({"LAST_PRICE": "64000.5", "LAST_SIZE": "0.01"}, timestamp_ms)

The package exposes two layers:

* **High-level**: :class:`EventRouter` routes decoded feed events and
  reports analyses through a pluggable :class:`MetricsReporter`.
* **Low-level**: :class:`LiquidityAnalyzer`, :class:`AnomalyDetector` and
  the pure metric functions (``kyles_lambda``, ``amihud_measure``,
  ``risk_metrics``, ...) for direct use.

Logging goes through loguru and is disabled by default; call
``logger.enable("liquidity_monitor")`` to see it.
"""

from loguru import logger
from liquidity_monitor.analyzer import LiquidityAnalyzer
from liquidity_monitor.anomaly import AnomalyDetector
from liquidity_monitor.auxiliary import ols_slope, rank_percentile, vwap
from liquidity_monitor.book import OrderBookCache
from liquidity_monitor.config import AnalyzerConfig
from liquidity_monitor.events import (
    BookLevelUpdate,
    EventKind,
    OrderBookDelta,
    classify_fields,
    decode_fields,
    decode_order_book,
    decode_trade,
)
from liquidity_monitor.exceptions import (
    ConfigurationError,
    InvalidDataError,
    InvalidTrade,
    LiquidityMonitorError,
)
from liquidity_monitor.ledger import TradeLedger
from liquidity_monitor.metrics import (
    MetricsEngine,
    amihud_measure,
    kyles_lambda,
    order_book_metrics,
    order_book_slope,
    risk_metrics,
)
from liquidity_monitor.models import (
    AmihudMeasures,
    AnomalyFlags,
    DetectorStatistics,
    KylesLambda,
    LiquidityMetrics,
    MarketSnapshot,
    OrderBookLevel,
    OrderBookSnapshot,
    Trade,
)
from liquidity_monitor.protocols import MetricsReporter
from liquidity_monitor.reporting import LoggingReporter
from liquidity_monitor.router import EventRouter, RoutedEvent

logger.disable("liquidity_monitor")

__all__ = [
    # Router
    "EventRouter",
    "RoutedEvent",
    # Stateful components
    "LiquidityAnalyzer",
    "TradeLedger",
    "OrderBookCache",
    "AnomalyDetector",
    "MetricsEngine",
    # Metric functions
    "order_book_metrics",
    "order_book_slope",
    "kyles_lambda",
    "amihud_measure",
    "risk_metrics",
    "vwap",
    "ols_slope",
    "rank_percentile",
    # Events and decoding
    "EventKind",
    "BookLevelUpdate",
    "OrderBookDelta",
    "classify_fields",
    "decode_fields",
    "decode_trade",
    "decode_order_book",
    # Configuration
    "AnalyzerConfig",
    # Protocols
    "MetricsReporter",
    # Default implementations
    "LoggingReporter",
    # Domain models
    "Trade",
    "OrderBookLevel",
    "OrderBookSnapshot",
    "MarketSnapshot",
    "LiquidityMetrics",
    "KylesLambda",
    "AmihudMeasures",
    "AnomalyFlags",
    "DetectorStatistics",
    # Exceptions
    "LiquidityMonitorError",
    "InvalidTrade",
    "InvalidDataError",
    "ConfigurationError",
]
