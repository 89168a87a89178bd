"""
CORS Configuration for the tutorial backend.

Every origin is allowed; there is no allow-list. Methods mirror the
defaults of the Node ``cors`` package the frontend was built against.

File: backend/app/core/cors.py
"""

import logging
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)

CORS_ALLOW_METHODS: List[str] = ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"]

CORS_EXPOSE_HEADERS: List[str] = ["X-Trace-ID", "X-Process-Time"]


def setup_cors(app: FastAPI) -> None:
    """
    Configure CORS middleware allowing any origin.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=["*"],
        expose_headers=CORS_EXPOSE_HEADERS,
    )

    logger.debug("CORS middleware configured", extra={
        "extra_data": {
            "allowed_origins": "*",
            "allowed_methods": CORS_ALLOW_METHODS,
        }
    })
