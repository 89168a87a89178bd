"""
Shared fixtures for the tutorial backend tests.

The database manager is replaced by an in-memory fake and the
terminate callback by a recorder, so no test needs MongoDB or kills
the test process.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from app.core.bootstrap import create_app
from app.core.exceptions import DatabaseConnectionError
from app.core.settings import Settings


class FakeDatabaseManager:
    """Stands in for DatabaseManager with scripted connect behaviour."""

    def __init__(self, mode: str = "succeed", database_name: str = "tutorial_db"):
        self.mode = mode
        self.url = "mongodb://fake:27017/" + database_name
        self.database_name = database_name
        self.database: Optional[Any] = None
        self.release = asyncio.Event() if mode == "hang" else None
        self.connect_calls = 0
        self.closed = False

    @property
    def is_connected(self) -> bool:
        return self.database is not None

    async def connect(self) -> Any:
        self.connect_calls += 1
        if self.mode == "fail":
            raise DatabaseConnectionError(
                "connection refused", details={"database_url": self.url}
            )
        if self.mode == "hang":
            await self.release.wait()
        self.database = SimpleNamespace(name=self.database_name)
        return self.database

    async def health_check(self) -> Dict[str, Any]:
        if self.database is None:
            return {"status": "NOT_CONNECTED", "healthy": False}
        return {"status": "OK", "healthy": True, "latency_ms": 0.1}

    async def close(self) -> None:
        self.closed = True
        self.database = None


class TerminateRecorder:
    """Records exit codes instead of exiting."""

    def __init__(self) -> None:
        self.calls: List[int] = []

    def __call__(self, exit_code: int) -> None:
        self.calls.append(exit_code)


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {"_env_file": None, "route_modules": []}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def terminate() -> TerminateRecorder:
    return TerminateRecorder()


@pytest.fixture
def build_app(terminate):
    """Factory returning (app, fake database) pairs."""

    def _build(mode: str = "succeed", route_modules=None, **setting_overrides):
        database = FakeDatabaseManager(mode=mode)
        app = create_app(
            settings=make_settings(**setting_overrides),
            database=database,
            terminate=terminate,
            route_modules=route_modules,
        )
        return app, database

    return _build


async def wait_for(predicate, attempts: int = 50) -> bool:
    """Yield to the event loop until ``predicate()`` holds."""
    for _ in range(attempts):
        if predicate():
            return True
        await asyncio.sleep(0)
    return predicate()
