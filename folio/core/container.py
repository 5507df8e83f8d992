"""
Folio Service Container
=======================

Lightweight dependency injection used to resolve ``Component@method``
route handlers.

Supports singleton and transient lifetimes plus aliases.

Example:
    container = ServiceContainer()
    container.singleton("PageController", lambda: PageController(store))
    container.register("FormController", FormController)
    container.alias("pages", "PageController")

    container.resolve("pages")  # same PageController every time
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Set, TypeVar

T = TypeVar("T")


class DependencyResolver(ABC):
    """Resolves a component name to an instance."""

    @abstractmethod
    def resolve(self, name: str) -> Any:
        """
        Produce an instance for ``name``.

        Raises:
            KeyError: If nothing is registered under ``name``
        """


class ServiceContainer(DependencyResolver):
    """Name-keyed factories with singleton caching."""

    def __init__(self) -> None:
        self._singletons: Dict[str, Any] = {}
        self._factories: Dict[str, Callable[[], Any]] = {}
        self._shared: Set[str] = set()
        self._aliases: Dict[str, str] = {}

    def singleton(self, name: str, factory: Callable[[], T]) -> "ServiceContainer":
        """Register a service created once and then reused."""
        self._factories[name] = factory
        self._shared.add(name)
        self._singletons.pop(name, None)
        return self

    def register(self, name: str, factory: Callable[[], T]) -> "ServiceContainer":
        """Register a transient service (new instance on every resolution)."""
        self._factories[name] = factory
        self._shared.discard(name)
        self._singletons.pop(name, None)
        return self

    def instance(self, name: str, value: Any) -> "ServiceContainer":
        """Register an already built object."""
        self._singletons[name] = value
        self._shared.add(name)
        return self

    def alias(self, alias: str, target: str) -> "ServiceContainer":
        """Make ``alias`` resolve to ``target``."""
        self._aliases[alias] = target
        return self

    def resolve(self, name: str) -> Any:
        resolved = self._aliases.get(name, name)

        if resolved in self._singletons:
            return self._singletons[resolved]

        if resolved not in self._factories:
            raise KeyError(f"Service '{name}' not registered")

        instance = self._factories[resolved]()
        if resolved in self._shared:
            self._singletons[resolved] = instance
        return instance

    def has(self, name: str) -> bool:
        """Check if a service is registered."""
        resolved = self._aliases.get(name, name)
        return resolved in self._factories or resolved in self._singletons


__all__ = [
    "DependencyResolver",
    "ServiceContainer",
]
