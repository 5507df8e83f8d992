"""
Folio Route Handlers
====================

Typed handler references and their execution.

A route's handler is one of:

    Inline(func)              - called as func(request, params)
    Bound("Pages", "show")    - "Pages@show": the dependency resolver
                                produces a Pages instance, then
                                instance.show(request, params) is called
    CONTENT_FALLBACK          - no code to run; the dispatcher returns a
                                ContentResult for the renderer

``parse_handler`` accepts the loose forms used in registration calls and
persisted rows (callables, ``"Component@method"`` strings, ``""``/None).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from folio.core.exceptions import HandlerResolutionError
from folio.core.fallback import DEFAULT_HOME, content_identifier
from folio.utils.logger import Logger, get_logger

if TYPE_CHECKING:
    from folio.core.container import DependencyResolver
    from folio.core.request import Request


class HandlerRef:
    """Base class of the handler tagged union."""

    kind: str = ""


@dataclass(frozen=True)
class Inline(HandlerRef):
    """An in-process callable."""

    func: Callable[..., Any]
    kind: str = field(default="inline", init=False)

    def __str__(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))


@dataclass(frozen=True)
class Bound(HandlerRef):
    """A method on a component produced by the dependency resolver."""

    component: str
    method: str
    kind: str = field(default="bound", init=False)

    def __str__(self) -> str:
        return f"{self.component}@{self.method}"


@dataclass(frozen=True)
class ContentFallback(HandlerRef):
    """Sentinel: the renderer resolves the path through the content layer."""

    kind: str = field(default="content", init=False)

    def __str__(self) -> str:
        return ""


CONTENT_FALLBACK = ContentFallback()


@dataclass(frozen=True)
class ContentResult:
    """Dispatch result for content-fallback handlers."""

    path: str
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "params": dict(self.params)}


def parse_handler(value: Any) -> HandlerRef:
    """
    Convert a loose handler specification into a :class:`HandlerRef`.

    Raises:
        ValueError: For strings without ``@`` or with an empty part, and
            for unsupported types
    """
    if isinstance(value, HandlerRef):
        return value
    if value is None or value == "":
        return CONTENT_FALLBACK
    if isinstance(value, str):
        component, sep, method = value.strip().partition("@")
        if not sep or not component or not method:
            raise ValueError(f"Handler '{value}' must use the 'Component@method' form")
        return Bound(component, method)
    if callable(value):
        return Inline(value)
    raise ValueError(f"Unsupported handler type: {type(value).__name__}")


def handler_to_string(ref: HandlerRef) -> str:
    """Serialize a handler for a persisted route row."""
    if isinstance(ref, Inline):
        raise ValueError("Inline handlers cannot be persisted")
    return str(ref)


class HandlerExecutor:
    """
    Invokes a resolved route's handler.

    Example:
        executor = HandlerExecutor(resolver=container)
        executor.execute(Bound("PageController", "show"), request, {"slug": "about"})
    """

    def __init__(
        self,
        resolver: Optional["DependencyResolver"] = None,
        home: str = DEFAULT_HOME,
        logger: Optional[Logger] = None,
    ) -> None:
        self.resolver = resolver
        self.home = home
        self.logger = logger or get_logger("folio.handlers")

    def execute(self, handler: HandlerRef, request: "Request", params: Dict[str, Any]) -> Any:
        """
        Run ``handler`` for ``request``.

        Raises:
            HandlerResolutionError: If a bound component or its method
                cannot be resolved
        """
        if isinstance(handler, Inline):
            return handler.func(request, params)
        if isinstance(handler, Bound):
            return self._call_bound(handler, request, params)
        if isinstance(handler, ContentFallback):
            return ContentResult(content_identifier(request.path, self.home), dict(params))
        raise HandlerResolutionError(f"Unsupported handler reference: {handler!r}")

    def _call_bound(self, handler: Bound, request: "Request", params: Dict[str, Any]) -> Any:
        if self.resolver is None:
            raise HandlerResolutionError(f"No dependency resolver configured for handler '{handler}'")

        try:
            instance = self.resolver.resolve(handler.component)
        except Exception as exc:
            self.logger.error("Component resolution failed", exception=exc, handler=str(handler))
            raise HandlerResolutionError(
                f"Cannot resolve component '{handler.component}': {exc}"
            ) from exc

        if instance is None:
            raise HandlerResolutionError(f"Resolver returned nothing for component '{handler.component}'")

        method = getattr(instance, handler.method, None)
        if not callable(method):
            self.logger.error("Handler method missing", handler=str(handler))
            raise HandlerResolutionError(
                f"Component '{handler.component}' has no method '{handler.method}'"
            )

        return method(request, params)


__all__ = [
    "HandlerRef",
    "Inline",
    "Bound",
    "ContentFallback",
    "CONTENT_FALLBACK",
    "ContentResult",
    "parse_handler",
    "handler_to_string",
    "HandlerExecutor",
]
