from __future__ import annotations


class ThinningError(Exception):
    """Base class for errors raised by the measurement layer."""


class ConfigurationError(ThinningError):
    """Store connection settings are missing or malformed."""


class StoreUnavailable(ThinningError):
    """A round-trip to the time-series store failed.

    Raised for transport and API failures. Never retried here; the caller
    decides what to do.
    """


class NotificationFailure(ThinningError):
    """A write observer raised after the value was already stored.

    The write is not undone. ``measurement`` carries the DTO that was being
    delivered.
    """

    def __init__(self, message: str, *, measurement: object | None = None) -> None:
        super().__init__(message)
        self.measurement = measurement


class InvalidRangeError(ThinningError, ValueError):
    """A time range ends before it starts, or a granularity is not positive."""
