"""
Tutorial backend - API route registration.

Route modules are plain Python modules exposing ``register(context)``;
each one attaches its own routers (and path prefix) to ``context.app``.

File: backend/app/api/__init__.py
"""

from __future__ import annotations

import importlib
import logging
from types import ModuleType
from typing import Iterable, List, Union

from ..core.context import ServerContext
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

RouteModule = Union[str, ModuleType]


def _load_route_module(module: RouteModule) -> ModuleType:
    if not isinstance(module, str):
        return module
    try:
        return importlib.import_module(module)
    except ImportError as exc:
        raise ConfigurationError(
            f"Route module '{module}' could not be imported: {exc}",
            error_code="ROUTE_MODULE_IMPORT_FAILED",
        ) from exc


def mount_routes(context: ServerContext, modules: Iterable[RouteModule]) -> List[str]:
    """
    Let each route module register its handlers on the app.

    Args:
        context: Server context passed to every ``register`` call
        modules: Dotted import paths or already imported modules

    Returns:
        Names of the modules that were mounted

    Raises:
        ConfigurationError: If a module cannot be imported or has no
            callable ``register``
    """
    mounted: List[str] = []

    for module in modules:
        loaded = _load_route_module(module)
        name = getattr(loaded, "__name__", repr(loaded))
        register = getattr(loaded, "register", None)
        if not callable(register):
            raise ConfigurationError(
                f"Route module '{name}' has no register(context) function",
                error_code="ROUTE_MODULE_INVALID",
            )

        routes_before = len(context.app.routes)
        register(context)
        mounted.append(name)
        logger.info(
            f"Route module {name} mounted",
            extra={"extra_data": {"routes_added": len(context.app.routes) - routes_before}},
        )

    if not mounted:
        logger.info("No route modules configured")
    return mounted


__all__ = ["mount_routes", "RouteModule"]
