"""
Folio Middleware Pipeline
=========================

Composes an ordered middleware list and a terminal handler into one
callable. The list is folded right to left, so the first middleware is
outermost:

    m1(m2(m3(handler)))

Each middleware receives ``(request, params, next)`` where ``next`` is the
composition of everything after it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

from folio.core.middleware import MiddlewareCallable, NextHandler

if TYPE_CHECKING:
    from folio.core.request import Request


class Pipeline:
    """
    Middleware chain around a terminal handler.

    Example:
        pipeline = Pipeline([log_requests, require_admin])
        result = pipeline.run(request, {}, handler)
    """

    __slots__ = ("_middleware",)

    def __init__(self, middleware: Sequence[MiddlewareCallable] = ()) -> None:
        self._middleware = tuple(middleware)

    def build(self, handler: NextHandler) -> NextHandler:
        """Nest the middleware around ``handler`` and return the outer callable."""
        chain = handler
        for middleware in reversed(self._middleware):
            chain = self._wrap(middleware, chain)
        return chain

    @staticmethod
    def _wrap(middleware: MiddlewareCallable, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: "Request", params: Dict[str, Any]) -> Any:
            return middleware(request, params, next_handler)
        return wrapped

    def run(
        self,
        request: "Request",
        params: Optional[Dict[str, Any]],
        handler: NextHandler,
    ) -> Any:
        """Run ``request`` through the chain and return the result."""
        return self.build(handler)(request, dict(params or {}))

    def __len__(self) -> int:
        return len(self._middleware)


def compose(middleware: Sequence[MiddlewareCallable], handler: NextHandler) -> NextHandler:
    """Shortcut for ``Pipeline(middleware).build(handler)``."""
    return Pipeline(middleware).build(handler)


__all__ = [
    "Pipeline",
    "compose",
]
