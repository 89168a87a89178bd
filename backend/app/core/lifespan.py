"""
Application Lifespan Management for the tutorial backend.

Starts the database connection when the app starts and closes it on
shutdown. A failed connection is fatal: the failure is logged and the
process is terminated through the server context.

File: backend/app/core/lifespan.py
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from .context import ServerContext
from .exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)


async def connect_database(context: ServerContext) -> bool:
    """
    Connect the context's database, failing fast on any error.

    Returns:
        True once connected; False if the process was told to terminate
        and the terminate callback returned
    """
    context.state.mark_db_connecting()

    try:
        await context.database.connect()
    except Exception as exc:
        logger.error(
            f"Cannot connect to the database! {exc}",
            extra={
                "extra_data": {
                    "error_type": type(exc).__name__,
                    "details": getattr(exc, "details", {}),
                }
            },
        )
        context.fail_fast()
        return False

    context.state.mark_db_connected()
    return True


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown tasks.

    By default the connection attempt runs in the background and the
    socket is bound without waiting for it; handlers that need the
    database answer 503 until it is ready. With ``wait_for_database``
    the listener is only started once the connection succeeds.
    """
    context: ServerContext = app.state.context
    settings = context.settings
    connect_task: Optional[asyncio.Task] = None

    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")

    if settings.wait_for_database:
        if not await connect_database(context):
            raise DatabaseConnectionError("Cannot connect to the database")
    else:
        connect_task = asyncio.create_task(
            connect_database(context), name="database-connect"
        )

    try:
        yield
    finally:
        if connect_task is not None and not connect_task.done():
            connect_task.cancel()
            with suppress(asyncio.CancelledError):
                await connect_task

        await context.database.close()
        logger.info(f"Shutting down {settings.app_name}")


__all__ = ["connect_database", "lifespan"]
