"""
Global Exception Handlers for the tutorial backend.

Renders every error as a JSON body with a trace id so clients and
logs can be correlated.

File: backend/app/core/exception_handlers.py
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import TutorialServerError
from .logging_config import get_trace_id

logger = logging.getLogger(__name__)


def get_client_info(request: Request) -> Dict[str, str]:
    """
    Extract client information from request.

    Args:
        request: FastAPI request object

    Returns:
        Dictionary with client information
    """
    client_ip = "unknown"
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()
    elif request.headers.get("X-Real-IP"):
        client_ip = request.headers["X-Real-IP"].strip()
    elif request.client:
        client_ip = request.client.host

    return {
        "ip": client_ip,
        "user_agent": request.headers.get("User-Agent", "unknown"),
        "origin": request.headers.get("Origin", "unknown"),
    }


def build_error_response(exc: TutorialServerError) -> JSONResponse:
    """
    Render an application exception as a JSON response.

    Also used by the ASGI body parsers, which run outside FastAPI's
    exception handling.
    """
    trace_id = exc.trace_id or get_trace_id()
    content: Dict[str, Any] = {
        "error": _error_title(exc.status_code),
        "error_code": exc.error_code,
        "detail": exc.message,
        "trace_id": trace_id,
        "timestamp": time.time(),
    }
    if exc.details:
        content["details"] = exc.details

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers={"X-Trace-ID": trace_id},
    )


def _error_title(status_code: int) -> str:
    if status_code == 413:
        return "Payload too large"
    if status_code == 422:
        return "Validation error"
    if status_code == 503:
        return "Service unavailable"
    if status_code >= 500:
        return "Internal server error"
    return "Client error"


async def application_exception_handler(
    request: Request, exc: TutorialServerError
) -> JSONResponse:
    """Handle exceptions raised deliberately by the application."""
    logger.log(
        logging.ERROR if exc.status_code >= 500 else logging.INFO,
        f"{type(exc).__name__}: {exc.message}",
        extra={
            "extra_data": {
                "error_code": exc.error_code,
                "path": request.url.path,
                "method": request.method,
                "client_info": get_client_info(request),
            }
        },
    )
    return build_error_response(exc)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """
    Handle HTTP exceptions with a trace id header.

    Args:
        request: FastAPI request object
        exc: HTTP exception that was raised

    Returns:
        JSONResponse with error details
    """
    trace_id = get_trace_id()

    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code}: {exc.detail}",
            extra={"extra_data": {"path": request.url.path, "method": request.method}},
        )
    else:
        logger.info(
            f"HTTP {exc.status_code}: {exc.detail}",
            extra={"extra_data": {"path": request.url.path, "method": request.method}},
        )

    headers = dict(exc.headers or {})
    headers["X-Trace-ID"] = trace_id

    if exc.status_code >= 500:
        detail: Any = "An unexpected error occurred. Please contact support with the trace_id."
    else:
        detail = exc.detail

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": _error_title(exc.status_code),
            "detail": detail,
            "trace_id": trace_id,
            "timestamp": time.time(),
        },
        headers=headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors raised by route signatures.

    Args:
        request: FastAPI request object
        exc: Validation exception

    Returns:
        JSONResponse with validation error details
    """
    trace_id = get_trace_id()
    validation_errors = exc.errors()

    logger.info(
        f"Validation error on {request.method} {request.url.path}",
        extra={"extra_data": {"validation_errors": validation_errors}},
    )

    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation error",
            "detail": "Request validation failed",
            "validation_errors": validation_errors,
            "trace_id": trace_id,
            "timestamp": time.time(),
        },
        headers={"X-Trace-ID": trace_id},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle uncaught exceptions with logging and a user-safe body.

    Args:
        request: FastAPI request object
        exc: Exception that was raised

    Returns:
        JSONResponse with user-safe error message
    """
    trace_id = get_trace_id()

    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        extra={
            "extra_data": {
                "path": request.url.path,
                "method": request.method,
                "client_info": get_client_info(request),
            }
        },
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred. Please contact support with the trace_id.",
            "trace_id": trace_id,
            "timestamp": time.time(),
        },
        headers={"X-Trace-ID": trace_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(TutorialServerError, application_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    logger.debug("Exception handlers registered")


__all__ = [
    "build_error_response",
    "application_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
    "register_exception_handlers",
    "get_client_info",
]
