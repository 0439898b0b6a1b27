"""Default reporter: writes analysis results to the package logger."""

from __future__ import annotations

from loguru import logger

from liquidity_monitor.models import AnomalyFlags, DetectorStatistics, LiquidityMetrics, Trade


class LoggingReporter:
    """Log metrics as JSON, anomalies as warnings and statistics as info.

    Parameters
    ----------
    symbol : str, optional
        Instrument label included in every message.
    """

    def __init__(self, symbol: str = "") -> None:
        self.symbol = symbol

    def report_metrics(self, metrics: LiquidityMetrics) -> None:
        logger.info("Liquidity analysis {}:\n{}", self.symbol, metrics.to_json())

    def report_anomalies(self, trade: Trade, flags: AnomalyFlags) -> None:
        logger.warning(
            "{} trade {} @ {} size {}: price={} size={} volatility={}",
            self.symbol,
            trade.trade_id or trade.timestamp,
            trade.price,
            trade.size,
            flags.price_anomaly,
            flags.size_anomaly,
            flags.volatility_anomaly,
        )

    def report_statistics(self, statistics: DetectorStatistics) -> None:
        logger.info(
            "{} after {} trades: avg price {:.2f}, avg size {:.4f}, "
            "EWMA vol {:.4%}, thresholds size {:.4f} / move {:.2f} / vol {:.2%}, window {}",
            self.symbol,
            statistics.trade_count,
            statistics.average_price,
            statistics.average_trade_size,
            statistics.ewma_volatility,
            statistics.size_threshold,
            statistics.price_move_threshold,
            statistics.volatility_threshold,
            statistics.window_size,
        )
