"""Custom exceptions for the tutorial backend."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import status


class TutorialServerError(Exception):
    """Base exception for the tutorial backend."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
        trace_id: Optional[str] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.trace_id = trace_id
        super().__init__(self.message)


class ConfigurationError(TutorialServerError):
    """Raised when there's a configuration issue."""

    pass


class DatabaseConnectionError(TutorialServerError):
    """Raised when the database connection cannot be established."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "DATABASE_CONNECTION_FAILED")
        super().__init__(message, **kwargs)


class DatabaseNotReadyError(TutorialServerError):
    """Raised when a handler needs the database before it is connected."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Database connection is not ready", **kwargs: Any):
        kwargs.setdefault("error_code", "DATABASE_NOT_READY")
        super().__init__(message, **kwargs)


class MalformedBodyError(TutorialServerError):
    """Raised when a request body cannot be parsed."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "MALFORMED_BODY")
        super().__init__(message, **kwargs)


class PayloadTooLargeError(TutorialServerError):
    """Raised when a request body exceeds the configured limit."""

    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "PAYLOAD_TOO_LARGE")
        super().__init__(message, **kwargs)


__all__ = [
    "TutorialServerError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "DatabaseNotReadyError",
    "MalformedBodyError",
    "PayloadTooLargeError",
]
