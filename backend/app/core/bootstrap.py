"""
Application bootstrap for the tutorial backend.

Builds the FastAPI app around a single :class:`ServerContext`, wires
the middleware pipeline and routes, and runs the listener.

File: backend/app/core/bootstrap.py
"""
from __future__ import annotations

import logging
import socket
from typing import Callable, Iterable, List, Optional

import uvicorn
from fastapi import FastAPI

from ..api import RouteModule, mount_routes
from ..api.health import register_health_routes
from ..api.root import register_health_route
from ..storage.database import DatabaseManager
from .body_parsing import JSONBodyParser, URLEncodedBodyParser
from .context import ServerContext, fatal_exit
from .cors import setup_cors
from .exception_handlers import register_exception_handlers
from .lifespan import lifespan
from .logging_config import setup_logging
from .middleware import RequestTracingMiddleware
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_middleware(context: ServerContext) -> None:
    """
    Setup the request pipeline.

    Requests pass through, in order: tracing, CORS, the JSON body
    parser, then the URL-encoded body parser. Starlette runs middleware
    in REVERSE order of addition, so they are added innermost first.

    Args:
        context: Server context whose app receives the middleware
    """
    app = context.app
    limit = context.settings.json_body_limit

    app.add_middleware(URLEncodedBodyParser, limit=limit, extended=True)
    app.add_middleware(JSONBodyParser, limit=limit)
    setup_cors(app)
    app.add_middleware(RequestTracingMiddleware)

    logger.debug("Middleware stack configured")


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[DatabaseManager] = None,
    terminate: Optional[Callable[[int], None]] = None,
    route_modules: Optional[Iterable[RouteModule]] = None,
) -> FastAPI:
    """
    Build the application and its server context.

    Args:
        settings: Configuration; loaded from the environment when omitted
        database: Database manager; built from ``settings`` when omitted
        terminate: Called with the exit code on a fatal database failure
        route_modules: Overrides ``settings.route_modules``

    Returns:
        FastAPI app with the context on ``app.state.context``
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    context = ServerContext(
        app=app,
        settings=settings,
        database=database or DatabaseManager.from_settings(settings),
        terminate=terminate or fatal_exit,
    )
    app.state.context = context

    configure_middleware(context)
    register_exception_handlers(app)
    register_health_route(context)
    register_health_routes(context)
    mount_routes(
        context,
        settings.route_modules if route_modules is None else route_modules,
    )

    context.state.mark_middleware_ready()
    return app


class ContextServer(uvicorn.Server):
    """uvicorn server that records when the socket is bound."""

    def __init__(self, config: uvicorn.Config, context: ServerContext) -> None:
        super().__init__(config)
        self.context = context

    async def startup(self, sockets: Optional[List[socket.socket]] = None) -> None:
        await super().startup(sockets=sockets)
        if self.should_exit:
            return
        self.context.state.mark_listening()
        logger.info(f"Server is running on port {self.config.port}.")


def listen(context: ServerContext) -> None:
    """
    Bind ``settings.host:settings.port`` and serve until signalled.

    Args:
        context: Server context whose app is served
    """
    settings = context.settings
    config = uvicorn.Config(
        context.app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )
    ContextServer(config, context).run()


def main() -> None:
    """Console entry point: configure logging, build the app, listen."""
    settings = get_settings()
    setup_logging(
        log_level=settings.log_level,
        log_dir=settings.log_dir,
        log_to_file=settings.log_to_file,
        retention_days=settings.log_retention_days,
    )
    app = create_app(settings)
    listen(app.state.context)


__all__ = [
    "configure_middleware",
    "create_app",
    "ContextServer",
    "listen",
    "main",
]
