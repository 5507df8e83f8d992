"""
Folio Core Module
=================

The router and everything it is built from:
- Router: registration, matching, dispatch and URL generation
- Compiler: path templates to matchers
- Pipeline/Middleware: onion-model middleware execution
- Handlers: typed handler references and their execution
- Fallback: content resolution for unmatched paths
- Persistence: route tables and the route loader
- Request/Response: HTTP message values
- Config: configuration management
- FolioApp: ASGI host
"""

from folio.core.application import FolioApp
from folio.core.router import Router, Route, RouteMatch
from folio.core.request import Request
from folio.core.response import Response, HTMLResponse, JSONResponse, RedirectResponse
from folio.core.middleware import Middleware, MiddlewareStack
from folio.core.config import Config

__all__ = [
    "FolioApp",
    "Router",
    "Route",
    "RouteMatch",
    "Request",
    "Response",
    "HTMLResponse",
    "JSONResponse",
    "RedirectResponse",
    "Middleware",
    "MiddlewareStack",
    "Config",
]
