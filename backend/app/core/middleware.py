"""
ASGI middleware for request tracing.
"""
from __future__ import annotations

import logging
import time

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .logging_config import set_trace_id

logger = logging.getLogger(__name__)


class RequestTracingMiddleware:
    """
    Middleware that assigns a trace ID to each request and logs timing.

    The incoming ``X-Trace-ID`` header is reused when present so that
    a reverse proxy can correlate its own logs with ours.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        trace_id = set_trace_id(Headers(scope=scope).get("x-trace-id"))
        scope.setdefault("state", {})["trace_id"] = trace_id
        start_time = time.perf_counter()
        status_code = 500

        async def send_with_trace(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = MutableHeaders(scope=message)
                headers["X-Trace-ID"] = trace_id
                headers["X-Process-Time"] = str(
                    round((time.perf_counter() - start_time) * 1000, 2)
                )
            await send(message)

        try:
            await self.app(scope, receive, send_with_trace)
        finally:
            logger.debug(
                f"{scope['method']} {scope['path']} -> {status_code}",
                extra={
                    "extra_data": {
                        "status_code": status_code,
                        "process_time_ms": round((time.perf_counter() - start_time) * 1000, 2),
                    }
                },
            )


__all__ = ["RequestTracingMiddleware"]
