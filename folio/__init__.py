"""
Folio - Flat-File CMS Router
============================

Request routing and dispatch for a flat-file CMS.

Features:
---------
- Method + path-template routes with first-match-wins ordering
- Path template compiler with unsafe sub-pattern guards
- Route groups, named routes and URL generation
- Parameter schemas with type conversion
- Onion-model middleware (global and per route)
- Match cache keyed by method and normalized path
- Persisted route table with self-healing defaults
- Content fallback: unmatched GET requests resolve to content files
- ASGI host served by uvicorn, plus a small CLI

Quick Start:
    from folio import FolioApp

    app = FolioApp()
    app.router.get("/", lambda request, params: "<h1>Home</h1>").name("home")

    # uvicorn site:app
"""

from __future__ import annotations

__version__ = "1.0.0"
__license__ = "MIT"

from typing import TYPE_CHECKING

# Core imports (always available)
from folio.core.router import Router, Route, RouteMatch
from folio.core.request import Request
from folio.core.middleware import Middleware
from folio.core.config import Config
from folio.core.exceptions import (
    FolioError,
    RouteNotFound,
    MissingRouteParameter,
    InvalidParameter,
    HandlerResolutionError,
    RouteTableError,
)

# Lazy imports for faster startup
if TYPE_CHECKING:
    from folio.core.application import FolioApp
    from folio.core.container import ServiceContainer
    from folio.core.fallback import FileContentStore, MemoryContentStore
    from folio.core.persistence import JsonRouteTable, MemoryRouteTable
    from folio.validation.validator import ParameterValidator
    from folio.utils.logger import Logger


def __getattr__(name: str):
    """Lazy loading of optional components."""
    _imports = {
        # Application host
        "FolioApp": "folio.core.application",
        "create_app": "folio.core.application",
        # Handlers and services
        "ServiceContainer": "folio.core.container",
        "ContentResult": "folio.core.handlers",
        # Content and persistence
        "FileContentStore": "folio.core.fallback",
        "MemoryContentStore": "folio.core.fallback",
        "JsonRouteTable": "folio.core.persistence",
        "MemoryRouteTable": "folio.core.persistence",
        # Responses
        "Response": "folio.core.response",
        "JSONResponse": "folio.core.response",
        "HTMLResponse": "folio.core.response",
        # Validation
        "ParameterValidator": "folio.validation.validator",
        # Utils
        "Logger": "folio.utils.logger",
        "get_logger": "folio.utils.logger",
        "configure_logging": "folio.utils.logger",
    }

    if name in _imports:
        import importlib
        module = importlib.import_module(_imports[name])
        return getattr(module, name)

    raise AttributeError(f"module 'folio' has no attribute '{name}'")


__all__ = [
    # Metadata
    "__version__",
    "__license__",
    # Core (always loaded)
    "Router",
    "Route",
    "RouteMatch",
    "Request",
    "Middleware",
    "Config",
    "FolioError",
    "RouteNotFound",
    "MissingRouteParameter",
    "InvalidParameter",
    "HandlerResolutionError",
    "RouteTableError",
    # Lazy
    "FolioApp",
    "create_app",
    "ServiceContainer",
    "ContentResult",
    "FileContentStore",
    "MemoryContentStore",
    "JsonRouteTable",
    "MemoryRouteTable",
    "Response",
    "JSONResponse",
    "HTMLResponse",
    "ParameterValidator",
    "Logger",
    "get_logger",
    "configure_logging",
]
