"""Analyzer configuration for liquidity-monitor.

Centralises the window sizes, thresholds and decay factors used by the
ledger, the metrics engine and the anomaly detector.
"""


from pydantic import BaseModel, Field, model_validator

HOUR_IN_MS = 3_600_000
DAY_IN_MS = 86_400_000


class AnalyzerConfig(BaseModel):
    """Validated, immutable configuration for the streaming analyzer.

    Defaults match a liquid crypto spot pair (BTC/USDT) streamed trade by
    trade.  Override individual values for other instruments or venues.
    """

    model_config = {"frozen": True}

    # ── Trade ledger / analysis cadence ───────────────────────────────────
    max_trade_history: int = Field(
        default=10_000,
        gt=0,
        description="Capacity of the trade ledger; oldest trades are evicted first.",
    )
    analysis_interval: int = Field(
        default=100,
        gt=0,
        description="Run a comprehensive analysis after every N accepted trades.",
    )

    # ── Order-book metrics ────────────────────────────────────────────────
    vwap_sample_volume: float = Field(
        default=1.0,
        gt=0,
        description="Volume consumed from each side of the book for VWAP and slippage.",
    )
    order_book_depth: int = Field(
        default=10,
        gt=0,
        description="Number of levels per side used for depth, imbalance and slope.",
    )

    # ── Price impact / illiquidity ────────────────────────────────────────
    kyle_daily_window_ms: int = Field(
        default=DAY_IN_MS,
        gt=0,
        description="Look-back window (ms) for the daily Kyle's lambda.",
    )
    kyle_hourly_window_ms: int = Field(
        default=HOUR_IN_MS,
        gt=0,
        description="Look-back window (ms) for the hourly Kyle's lambda.",
    )
    amihud_periods_days: tuple[int, int, int] = Field(
        default=(1, 30, 90),
        description=(
            "Look-back periods (days) for the short, medium and long Amihud "
            "measures.  Reported under the fixed keys '1_day', '30_days' "
            "and '90_days'."
        ),
    )

    # ── Risk metrics ──────────────────────────────────────────────────────
    periods_per_year: float = Field(
        default=365 * 24,
        gt=0,
        description=(
            "Annualisation factor for realized and historical volatility.  "
            "The default treats one trade-to-trade return as one hour of a "
            "24/7 market, regardless of the actual arrival rate."
        ),
    )
    historical_volatility_window: int = Field(
        default=30,
        gt=1,
        description="Number of trailing returns used for historical volatility.",
    )
    var_tail: float = Field(
        default=0.05,
        gt=0,
        lt=1,
        description="Tail fraction for Value-at-Risk and Expected Shortfall (0.05 → 95%).",
    )

    # ── Anomaly detection ─────────────────────────────────────────────────
    ewma_decay: float = Field(
        default=0.92,
        gt=0,
        lt=1,
        description="EWMA decay factor λ.  0.92 suits high-frequency crypto data.",
    )
    ewma_initial_variance: float = Field(
        default=1e-4,
        ge=0,
        description="Variance seeded on the first observed trade.",
    )
    volatility_threshold: float = Field(
        default=0.02,
        gt=0,
        description="EWMA volatility (as a fraction) above which a trade is flagged.",
    )
    trade_size_multiplier: float = Field(
        default=3.0,
        gt=0,
        description="A trade larger than this multiple of the window average is anomalous.",
    )
    price_deviation_multiplier: float = Field(
        default=2.5,
        gt=0,
        description="A price move larger than this multiple of the average move is anomalous.",
    )
    anomaly_window: int = Field(
        default=50,
        gt=1,
        description="Number of recent trades kept by the anomaly detector.",
    )
    min_samples: int = Field(
        default=10,
        gt=0,
        description="Trades required before adaptive thresholds are recomputed.",
    )
    size_percentile: float = Field(default=0.90, gt=0, le=1)
    price_move_percentile: float = Field(default=0.95, gt=0, le=1)
    min_size_threshold: float = Field(
        default=1.0,
        ge=0,
        description="Floor (and initial value) of the adaptive trade-size threshold.",
    )
    min_price_move_threshold: float = Field(
        default=10.0,
        ge=0,
        description="Floor of the adaptive absolute price-move threshold.",
    )
    initial_price_move_threshold: float = Field(
        default=100.0,
        ge=0,
        description="Absolute price-move threshold used until min_samples trades are seen.",
    )

    # ── Routing ───────────────────────────────────────────────────────────
    log_every_n_messages: int = Field(
        default=50,
        gt=0,
        description="Log the raw fields of every N-th routed message at DEBUG level.",
    )

    @model_validator(mode="after")
    def _check_windows(self) -> "AnalyzerConfig":
        if self.min_samples > self.anomaly_window:
            raise ValueError(
                f"min_samples ({self.min_samples}) cannot exceed "
                f"anomaly_window ({self.anomaly_window})"
            )
        return self
