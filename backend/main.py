"""
Tutorial Backend - Main FastAPI Application Entry Point.

Exposes ``app`` for ``uvicorn main:app`` and serves it directly when
run as a script.

File: backend/main.py
"""

from __future__ import annotations

from app.core.bootstrap import create_app, listen
from app.core.logging_config import setup_logging
from app.core.settings import get_settings

settings = get_settings()

# Initialize logging FIRST
setup_logging(
    log_level=settings.log_level,
    log_dir=settings.log_dir,
    log_to_file=settings.log_to_file,
    retention_days=settings.log_retention_days,
)

app = create_app(settings)

if __name__ == "__main__":
    listen(app.state.context)
