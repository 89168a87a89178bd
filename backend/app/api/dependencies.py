"""
FastAPI dependencies shared by route modules.

File: backend/app/api/dependencies.py
"""

from __future__ import annotations

from fastapi import Depends, Request
from pymongo.asynchronous.database import AsyncDatabase

from ..core.context import ServerContext
from ..core.exceptions import DatabaseNotReadyError


def get_server_context(request: Request) -> ServerContext:
    """Return the server context the app was built with."""
    return request.app.state.context


def get_database(context: ServerContext = Depends(get_server_context)) -> AsyncDatabase:
    """
    Borrow the connected database handle.

    Raises:
        DatabaseNotReadyError: While the startup connection is still
            pending, so early requests get a 503 instead of a driver error
    """
    database = context.database.database
    if not context.state.db_connected or database is None:
        raise DatabaseNotReadyError(details={"phase": context.state.phase.value})
    return database


__all__ = ["get_server_context", "get_database"]
