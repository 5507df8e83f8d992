"""
Folio Router Exceptions
=======================

Typed failures raised by the router. The hosting transport translates
them into HTTP status codes via ``status_code``; the router itself never
renders error pages.

Hierarchy:
    FolioError
    ├── RouteNotFound            (404)
    │   └── MissingRouteParameter
    ├── InvalidParameter         (400)
    ├── HandlerResolutionError   (500)
    └── RouteTableError          (recovered by the loader)
"""

from __future__ import annotations

from typing import Dict, List, Optional


class FolioError(Exception):
    """Base class for all router errors."""
    
    status_code: int = 500
    
    def __init__(self, message: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class RouteNotFound(FolioError):
    """
    No route and no content resource matched the request.
    
    Also raised by URL generation when a route name is unknown.
    """
    
    status_code = 404
    
    def __init__(
        self,
        message: str = "Not Found",
        method: Optional[str] = None,
        path: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.path = path


class MissingRouteParameter(RouteNotFound):
    """A placeholder stayed unsubstituted while generating a URL."""
    
    def __init__(self, route_name: str, parameter: str) -> None:
        super().__init__(f"Parameter '{parameter}' is missing for route '{route_name}'")
        self.route_name = route_name
        self.parameter = parameter


class InvalidParameter(FolioError):
    """
    Captured path parameters failed the route's schema.
    
    Carries every failing message per parameter, like a form
    validation error.
    """
    
    status_code = 400
    
    def __init__(
        self,
        message: str = "Invalid route parameters",
        errors: Optional[Dict[str, List[str]]] = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or {}
        
    def __str__(self) -> str:
        if not self.errors:
            return self.args[0]
        lines = [f"  - {name}: {msg}" for name, messages in self.errors.items() for msg in messages]
        return f"{self.args[0]}:\n" + "\n".join(lines)
        
    def first(self, name: Optional[str] = None) -> Optional[str]:
        """Get the first error message, optionally for one parameter."""
        if name is not None:
            messages = self.errors.get(name, [])
            return messages[0] if messages else None
        for messages in self.errors.values():
            if messages:
                return messages[0]
        return None


class HandlerResolutionError(FolioError):
    """A ``component@method`` handler could not be resolved or invoked."""
    
    status_code = 500


class RouteTableError(FolioError):
    """The persisted route table is structurally invalid."""


__all__ = [
    "FolioError",
    "RouteNotFound",
    "MissingRouteParameter",
    "InvalidParameter",
    "HandlerResolutionError",
    "RouteTableError",
]
