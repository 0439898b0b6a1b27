"""Protocol interfaces for liquidity-monitor.

These define the contracts that pluggable components must satisfy.
Implementations are discovered by structural (duck) typing -- there is
no need to inherit from these classes.

The default implementation, :class:`~liquidity_monitor.reporting.LoggingReporter`,
writes everything to the package logger.  Users can substitute their own
(console printer, message-bus publisher, ...) by passing any object that
satisfies the protocol to :class:`~liquidity_monitor.router.EventRouter`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from liquidity_monitor.models import AnomalyFlags, DetectorStatistics, LiquidityMetrics, Trade


@runtime_checkable
class MetricsReporter(Protocol):
    """Receives analysis results produced while routing the feed."""

    def report_metrics(self, metrics: LiquidityMetrics) -> None:
        """Handle the result of a periodic comprehensive analysis.

        Parameters
        ----------
        metrics : LiquidityMetrics
            Frozen result; serialise with ``metrics.to_json()``.
        """
        ...

    def report_anomalies(self, trade: Trade, flags: AnomalyFlags) -> None:
        """Handle a trade that raised at least one anomaly flag."""
        ...

    def report_statistics(self, statistics: DetectorStatistics) -> None:
        """Handle a periodic summary of the anomaly detector's state."""
        ...
