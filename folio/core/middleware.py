"""
Folio Middleware System
=======================

Middleware wraps route handling and may:
- Inspect the request and captured parameters before the handler runs
- Short-circuit by returning a result without calling ``next``
- Post-process the handler's result on the way out

Any callable with the signature ``(request, params, next)`` is
middleware; ``next(request, params)`` continues the chain. Middleware
follows the "onion" model:

    Request → M1 enter → M2 enter → Handler
                                       ↓
    Result  ← M1 exit  ← M2 exit  ← Result

Example:
    def require_admin(request, params, next):
        if request.headers.get("X-Role") != "admin":
            return {"error": "forbidden"}
        return next(request, params)

    class Timing(Middleware):
        def before(self, request, params):
            params["started"] = time.perf_counter()

        def after(self, request, params, result):
            ...
            return result
"""

from __future__ import annotations

import time
from abc import ABC
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Type,
    Union,
)

from folio.utils.logger import Logger, get_logger

if TYPE_CHECKING:
    from folio.core.request import Request

NextHandler = Callable[["Request", Dict[str, Any]], Any]
MiddlewareCallable = Callable[["Request", Dict[str, Any], NextHandler], Any]


class Middleware(ABC):
    """
    Base middleware class.

    Lifecycle:
        1. ``before()`` is called before the rest of the chain
        2. If ``before()`` returns anything other than None, that value
           becomes the result and the chain stops
        3. The rest of the chain (ultimately the handler) runs
        4. ``after()`` receives the result and returns the final one

    Override ``__call__`` for full control.
    """

    def before(self, request: "Request", params: Dict[str, Any]) -> Optional[Any]:
        return None

    def after(self, request: "Request", params: Dict[str, Any], result: Any) -> Any:
        return result

    def __call__(
        self,
        request: "Request",
        params: Dict[str, Any],
        call_next: NextHandler,
    ) -> Any:
        early = self.before(request, params)
        if early is not None:
            return early

        result = call_next(request, params)
        return self.after(request, params, result)


@dataclass
class MiddlewareEntry:
    """Middleware stack entry with metadata."""

    middleware: MiddlewareCallable
    priority: int = 0
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.name is None:
            target = self.middleware
            self.name = getattr(target, "__name__", None) or type(target).__name__


class MiddlewareStack:
    """
    Ordered collection of global middleware.

    Entries run in registration order; a higher ``priority`` moves an
    entry further out. Middleware classes are instantiated when added.

    Example:
        stack = MiddlewareStack()
        stack.add(LoggingMiddleware)
        stack.add(require_admin, name="admin")
        stack.remove("admin")
    """

    def __init__(self) -> None:
        self._entries: List[MiddlewareEntry] = []

    def add(
        self,
        middleware: Union[MiddlewareCallable, Type[Middleware]],
        *,
        priority: int = 0,
        name: Optional[str] = None,
    ) -> "MiddlewareStack":
        if isinstance(middleware, type):
            name = name or middleware.__name__
            middleware = middleware()
        if not callable(middleware):
            raise TypeError(f"Middleware must be callable, got {type(middleware).__name__}")

        self._entries.append(MiddlewareEntry(middleware=middleware, priority=priority, name=name))
        # stable: equal priorities keep registration order
        self._entries.sort(key=lambda e: e.priority, reverse=True)
        return self

    def remove(self, name: str) -> bool:
        """Remove the first entry registered under ``name``."""
        for i, entry in enumerate(self._entries):
            if entry.name == name:
                del self._entries[i]
                return True
        return False

    def get(self, name: str) -> Optional[MiddlewareCallable]:
        for entry in self._entries:
            if entry.name == name:
                return entry.middleware
        return None

    def clear(self) -> None:
        self._entries.clear()

    @property
    def stack(self) -> List[MiddlewareCallable]:
        """Middleware callables, outermost first."""
        return [entry.middleware for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[MiddlewareCallable]:
        return iter(self.stack)


class LoggingMiddleware(Middleware):
    """
    Logs every dispatch with its duration.

    Failures are logged with their type and re-raised unchanged.
    """

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self.logger = logger or get_logger("folio.requests")

    def __call__(
        self,
        request: "Request",
        params: Dict[str, Any],
        call_next: NextHandler,
    ) -> Any:
        started = time.perf_counter()
        try:
            result = call_next(request, params)
        except Exception as exc:
            self.logger.warning(
                "Dispatch failed",
                method=request.method,
                path=request.path,
                error=type(exc).__name__,
                duration_ms=round((time.perf_counter() - started) * 1000, 3),
            )
            raise

        self.logger.info(
            "Dispatched",
            method=request.method,
            path=request.path,
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
        )
        return result


__all__ = [
    "NextHandler",
    "MiddlewareCallable",
    "Middleware",
    "MiddlewareEntry",
    "MiddlewareStack",
    "LoggingMiddleware",
]
