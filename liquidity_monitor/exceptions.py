"""Custom exception hierarchy for the liquidity-monitor package.

All exceptions inherit from :class:`LiquidityMonitorError`, allowing callers
to catch every package-specific error with a single ``except`` clause.
"""


class LiquidityMonitorError(Exception):
    """Base exception for all liquidity-monitor errors."""


class InvalidTrade(LiquidityMonitorError, ValueError):
    """A trade has a non-positive price or size, or an unknown side."""


class InvalidDataError(LiquidityMonitorError):
    """A decoded feed field is missing or cannot be parsed."""


class ConfigurationError(LiquidityMonitorError):
    """Components were wired with inconsistent configuration."""
