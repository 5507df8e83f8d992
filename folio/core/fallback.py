"""
Folio Content Fallback
======================

Resolves unmatched paths directly against content resources.

When no explicit route matches a ``GET`` request, the path is turned into
a content identifier (``/about`` -> ``about``, ``/`` -> the home
identifier) and the content store is asked whether that resource exists.
The router then synthesizes a transient route for it; rendering is left to
the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional, Set, Union

from folio.core.compiler import normalize_path
from folio.utils.logger import Logger, get_logger

DEFAULT_HOME = "home"


def content_identifier(path: str, home: str = DEFAULT_HOME) -> str:
    """Derive a content identifier from a request path."""
    return normalize_path(path).strip("/") or home


class ContentStore(ABC):
    """Answers whether a content resource exists for an identifier."""

    @abstractmethod
    def exists(self, identifier: str) -> bool:
        ...


class MemoryContentStore(ContentStore):
    """Content store over a fixed set of identifiers."""

    def __init__(self, identifiers: Iterable[str] = ()) -> None:
        self.identifiers: Set[str] = set(identifiers)

    def add(self, identifier: str) -> None:
        self.identifiers.add(identifier)

    def exists(self, identifier: str) -> bool:
        return identifier in self.identifiers


class FileContentStore(ContentStore):
    """
    Content store backed by files on disk.

    An identifier ``blog/hello`` maps to
    ``<root>/<directory>/blog/hello<extension>``. Identifiers that would
    resolve outside the content directory never exist.

    Example:
        store = FileContentStore("content")        # content/pages/*.md
        store.exists("about")                      # content/pages/about.md
    """

    def __init__(
        self,
        root: Union[str, Path],
        directory: str = "pages",
        extension: str = ".md",
    ) -> None:
        self.root = Path(root)
        self.base = (self.root / directory) if directory else self.root
        self.extension = extension

    def path_for(self, identifier: str) -> Optional[Path]:
        """Filesystem path for an identifier, or None if it escapes the store."""
        if not identifier or "\x00" in identifier:
            return None
        base = self.base.resolve()
        candidate = (base / f"{identifier}{self.extension}").resolve()
        try:
            candidate.relative_to(base)
        except ValueError:
            return None
        return candidate

    def exists(self, identifier: str) -> bool:
        candidate = self.path_for(identifier)
        return candidate is not None and candidate.is_file()


class FallbackContentResolver:
    """
    Decides whether an unmatched request maps to existing content.

    Only ``GET`` requests are eligible. Without a content store nothing
    resolves.
    """

    def __init__(
        self,
        store: Optional[ContentStore] = None,
        home: str = DEFAULT_HOME,
        logger: Optional[Logger] = None,
    ) -> None:
        self.store = store
        self.home = home
        self.logger = logger or get_logger("folio.fallback")

    def resolve(self, method: str, path: str) -> Optional[str]:
        """
        Return the content identifier for the request, or None.

        Args:
            method: HTTP method
            path: Normalized request path
        """
        if self.store is None or method.upper() != "GET":
            return None

        identifier = content_identifier(path, self.home)
        if not self.store.exists(identifier):
            return None

        self.logger.debug("No route matched, serving content resource", path=path, identifier=identifier)
        return identifier


__all__ = [
    "DEFAULT_HOME",
    "content_identifier",
    "ContentStore",
    "MemoryContentStore",
    "FileContentStore",
    "FallbackContentResolver",
]
