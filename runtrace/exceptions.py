"""
runtrace Exceptions.

This module defines the exception hierarchy for the tracing client.
Every failure that originates in the reporting path inherits from
TracingError so the orchestration wrapper can isolate it from the
caller's own result.
"""


class TracingError(Exception):
    """Base exception for all runtrace errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(TracingError):
    """Raised when a required setting is missing while tracing is enabled."""
    pass


class TransportError(TracingError):
    """Raised when a create-run or update-run call fails on the wire."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class SerializationError(TracingError):
    """Raised when a value cannot be normalized into a JSON object."""
    pass


class ValidationError(TracingError):
    """Raised when a run fails validation before it is reported."""
    pass


class RunAlreadyFinalizedError(TracingError):
    """Raised when end() is called on a run that already has an end_time."""
    pass


class TracingDisabled(Exception):
    """
    Sentinel raised by the reporting client when tracing is switched off.

    Not a TracingError: it only signals that reporting was short-circuited.
    """

    def __init__(self, message: str = "Tracing is disabled"):
        super().__init__(message)
        self.message = message
