from __future__ import annotations

from typing import Optional


class EventRelayError(Exception):
    """Base error for eventrelay."""


class ConfigurationError(EventRelayError):
    """Raised when the configuration file can't be read or validated."""


class PipeOpenError(EventRelayError):
    """Raised when the events pipe can't be opened after all attempts."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        details = f": {cause}" if cause is not None else ""
        super().__init__(f"can't open {path} for reading{details}")


class MalformedEvent(EventRelayError):
    """Raised when an event's tokens don't match the layout of its opcode."""


class MonitorStartupError(EventRelayError):
    """Raised when the events monitor reports a failure during startup."""


class LogUploadError(EventRelayError):
    """Raised when the collector rejects an uploaded log file."""
