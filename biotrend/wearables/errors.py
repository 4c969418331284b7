"""Exception types raised by the wearable timeline core.

Only caller misuse and authorization problems propagate to the caller.
Provider fetch failures are recovered inside the fetch orchestrator and never
reach this hierarchy's consumers.
"""

from __future__ import annotations


class BioTrendError(Exception):
    """Base class for all biotrend errors."""


class DateRangeError(BioTrendError, ValueError):
    """Raised when a requested date range or lookback window is missing or invalid."""


class NotLinkedError(BioTrendError):
    """Raised when an operation requires a linked remote identity and none exists."""


class NotAuthorizedError(BioTrendError):
    """Raised when a caller references a connection that is not theirs."""


class InvalidConnectionError(BioTrendError, ValueError):
    """Raised when a connection id cannot be parsed into a provider slug."""


class GatewayError(BioTrendError):
    """Raised by the aggregation API client when a request fails."""
