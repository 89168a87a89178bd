"""
Server context and process state.

One :class:`ServerContext` is built per process by ``create_app()`` and
handed explicitly to every component that needs the app, the settings
or the database: middleware setup, route modules, the lifespan and the
listener.

File: backend/app/core/context.py
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict

from .settings import Settings

if TYPE_CHECKING:
    from fastapi import FastAPI

    from ..storage.database import DatabaseManager

logger = logging.getLogger(__name__)


class ServerPhase(str, Enum):
    """Process-level lifecycle phases."""

    STARTING = "starting"
    MIDDLEWARE_READY = "middleware_ready"
    DB_CONNECTING = "db_connecting"
    LISTENING = "listening"
    RUNNING = "running"
    FATAL_EXIT = "fatal_exit"


@dataclass
class ServerState:
    """
    In-memory process state.

    ``listening`` and ``db_connected`` advance independently; the
    process is fully operational once both hold. After a fatal exit no
    further transitions are recorded.
    """

    middleware_ready: bool = False
    db_connecting: bool = False
    db_connected: bool = False
    listening: bool = False
    fatal: bool = False

    @property
    def phase(self) -> ServerPhase:
        if self.fatal:
            return ServerPhase.FATAL_EXIT
        if self.db_connected:
            return ServerPhase.RUNNING
        if self.listening:
            return ServerPhase.LISTENING
        if self.db_connecting:
            return ServerPhase.DB_CONNECTING
        if self.middleware_ready:
            return ServerPhase.MIDDLEWARE_READY
        return ServerPhase.STARTING

    @property
    def operational(self) -> bool:
        return self.listening and self.db_connected and not self.fatal

    def mark_middleware_ready(self) -> None:
        self._set(middleware_ready=True)

    def mark_db_connecting(self) -> None:
        self._set(db_connecting=True)

    def mark_db_connected(self) -> None:
        self._set(db_connecting=False, db_connected=True)

    def mark_listening(self) -> None:
        self._set(listening=True)

    def mark_fatal(self) -> None:
        self._set(db_connecting=False, fatal=True)

    def _set(self, **changes: bool) -> None:
        if self.fatal:
            return
        before = self.phase
        for name, value in changes.items():
            setattr(self, name, value)
        if self.phase is not before:
            logger.debug(f"Server phase {before.value} -> {self.phase.value}")

    def as_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "listening": self.listening,
            "db_connected": self.db_connected,
            "operational": self.operational,
        }


def fatal_exit(exit_code: int) -> None:
    """Flush log handlers and terminate the process without cleanup."""
    logging.shutdown()
    os._exit(exit_code)


@dataclass
class ServerContext:
    """Everything a component needs to take part in request handling."""

    app: "FastAPI"
    settings: Settings
    database: "DatabaseManager"
    state: ServerState = field(default_factory=ServerState)
    terminate: Callable[[int], None] = fatal_exit

    def fail_fast(self) -> None:
        """Record the fatal transition and stop the process."""
        self.state.mark_fatal()
        self.terminate(self.settings.db_failure_exit_code)


__all__ = [
    "ServerPhase",
    "ServerState",
    "ServerContext",
    "fatal_exit",
]
