"""Event routing for a live market-data feed.

:class:`EventRouter` is the entry point a feed handler calls for every
decoded event.  It feeds trades to the analyzer's ledger and to the
anomaly detector, feeds order books to the analyzer's book cache, and
runs a comprehensive analysis every ``config.analysis_interval`` trades.

Usage with defaults::

    from liquidity_monitor import EventRouter

    router = EventRouter()
    router.on_fields({"LAST_PRICE": "64000.5", "LAST_SIZE": "0.01"}, timestamp_ms)

Usage with custom configuration and reporter::

    from liquidity_monitor import AnalyzerConfig, EventRouter

    config = AnalyzerConfig(analysis_interval=500, order_book_depth=20)
    router = EventRouter(config=config, reporter=my_reporter)
    router.route(trade)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from loguru import logger

from liquidity_monitor.analyzer import LiquidityAnalyzer
from liquidity_monitor.anomaly import AnomalyDetector
from liquidity_monitor.config import AnalyzerConfig
from liquidity_monitor.events import EventKind, MarketEvent, OrderBookDelta, decode_fields
from liquidity_monitor.exceptions import ConfigurationError, InvalidTrade
from liquidity_monitor.models import AnomalyFlags, LiquidityMetrics, OrderBookSnapshot, Trade
from liquidity_monitor.protocols import MetricsReporter
from liquidity_monitor.reporting import LoggingReporter

_STATISTICS_MILESTONES = (20, 50)
_STATISTICS_EVERY = 50


@dataclass(frozen=True)
class RoutedEvent:
    """Outcome of routing one event.

    Attributes
    ----------
    kind : EventKind
        How the event was classified.
    anomalies : AnomalyFlags or None
        Detector output (trades only).
    book : OrderBookSnapshot or None
        The cleaned book now held by the cache (order books only).
    metrics : LiquidityMetrics or None
        Set when this trade triggered a comprehensive analysis.
    """

    kind: EventKind
    anomalies: AnomalyFlags | None = None
    book: OrderBookSnapshot | None = None
    metrics: LiquidityMetrics | None = None


class EventRouter:
    """Dispatch decoded feed events to the analyzer and the detector.

    Parameters
    ----------
    config : AnalyzerConfig, optional
        Central configuration.  Passed to default components when they
        are not explicitly provided.
    analyzer : LiquidityAnalyzer, optional
        Ledger, book cache and metrics engine.
    detector : AnomalyDetector, optional
        Real-time trade classifier.
    reporter : MetricsReporter, optional
        Receives analysis results, anomalous trades and detector
        statistics.  Defaults to :class:`LoggingReporter`.

    Raises
    ------
    ConfigurationError
        If the analyzer and detector were built with different
        configurations.  Without *config*, the analyzer's configuration
        is used.
    """

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        *,
        analyzer: LiquidityAnalyzer | None = None,
        detector: AnomalyDetector | None = None,
        reporter: MetricsReporter | None = None,
    ) -> None:
        self.config = config or (analyzer.config if analyzer is not None else AnalyzerConfig())
        self.analyzer = analyzer or LiquidityAnalyzer(self.config)
        self.detector = detector or AnomalyDetector(self.config)
        self.reporter = reporter or LoggingReporter()

        for name, component in (("analyzer", self.analyzer), ("detector", self.detector)):
            if component.config != self.config:
                raise ConfigurationError(f"{name} was built with a different AnalyzerConfig")

        self.trade_count = 0
        self.message_count = 0
        self.dropped_count = 0

    # ── Raw field maps ───────────────────────────────────────────────

    def on_fields(self, fields: Mapping[str, str], timestamp_ms: int) -> RoutedEvent:
        """Classify, decode and route one name/value field map.

        Unclassifiable maps are dropped and counted.

        Raises
        ------
        InvalidTrade
            If the map decodes to a trade with a non-positive price or
            size.  Nothing is enqueued.
        InvalidDataError
            If a numeric field cannot be parsed.
        """
        self.message_count += 1
        verbose = (self.message_count - 1) % self.config.log_every_n_messages == 0
        if verbose:
            logger.debug("Router: message #{} fields {}", self.message_count, dict(fields))

        try:
            event = decode_fields(fields, timestamp_ms)
        except InvalidTrade as exc:
            logger.warning("Router: rejected trade at {}: {}", timestamp_ms, exc)
            raise
        if event is not None:
            return self.route(event)

        self.dropped_count += 1
        if verbose:
            logger.debug("Router: unknown message type, dropped")
        return RoutedEvent(kind=EventKind.UNKNOWN)

    # ── Typed events ─────────────────────────────────────────────────

    def route(self, event: MarketEvent) -> RoutedEvent:
        """Route a typed :class:`Trade` or :class:`OrderBookDelta`."""
        if isinstance(event, Trade):
            return self._on_trade(event)
        if isinstance(event, OrderBookDelta):
            bids, asks = event.to_sides()
            book = self.analyzer.update_order_book(bids, asks)
            return RoutedEvent(kind=EventKind.ORDER_BOOK, book=book)

        self.dropped_count += 1
        logger.debug("Router: dropping unclassifiable event {}", type(event).__name__)
        return RoutedEvent(kind=EventKind.UNKNOWN)

    def _on_trade(self, trade: Trade) -> RoutedEvent:
        self.analyzer.add_trade(trade)
        flags = self.detector.on_trade(trade)
        self.trade_count += 1

        if flags.any_anomaly:
            self.reporter.report_anomalies(trade, flags)

        if self.trade_count in _STATISTICS_MILESTONES or self.trade_count % _STATISTICS_EVERY == 0:
            self.reporter.report_statistics(self.detector.statistics())

        metrics = None
        if self.trade_count % self.config.analysis_interval == 0:
            logger.info("Router: running analysis after {} trades", self.trade_count)
            metrics = self.analyzer.perform_comprehensive_analysis()
            self.reporter.report_metrics(metrics)

        return RoutedEvent(kind=EventKind.TRADE, anomalies=flags, metrics=metrics)
