"""
Welcome route used as a liveness and smoke-test probe.

File: backend/app/api/root.py
"""

from __future__ import annotations

from fastapi import APIRouter

from ..core.context import ServerContext

WELCOME_MESSAGE = "Welcome to Test application."

router = APIRouter(tags=["root"])


@router.get("/")
async def root() -> dict:
    """Static welcome payload; never touches the database."""
    return {"message": WELCOME_MESSAGE}


def register_health_route(context: ServerContext) -> None:
    """Mount ``GET /`` on the context's app."""
    context.app.include_router(router)
