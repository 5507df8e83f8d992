"""
Folio Route Persistence
=======================

Backing store for route definitions and the loader that hydrates a
router from it.

A route row is a plain mapping:

    {
        "method": "GET",
        "pattern": "/blog/{slug}",
        "handler": "BlogController@show",      # "" -> content fallback
        "options": '{"name": "blog.show", "params": {"slug": "[a-z0-9\\\\-]+"}}',
    }

``options`` is JSON text (a mapping is accepted as well) with the keys
``name``, ``middleware`` (alias names), ``params`` and ``schema``.

Table providers:
    MemoryRouteTable    - rows held in memory (tests, embedding)
    JsonRouteTable      - flat JSON file read and written with orjson
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union

import orjson

from folio.core.exceptions import RouteTableError
from folio.utils.logger import Logger, get_logger

if TYPE_CHECKING:
    from folio.core.router import Router

Row = Dict[str, Any]

HOME_FALLBACK = "home.fallback"
CATCH_ALL_FALLBACK = "page.any.fallback"
CATCH_ALL_PATTERN = "/{path:.+}"

DEFAULT_ROUTE_ROWS: List[Row] = [
    {
        "method": "GET",
        "pattern": "/",
        "handler": "",
        "options": {"name": "home"},
    },
    {
        "method": "GET",
        "pattern": "/blog",
        "handler": "",
        "options": {"name": "blog.list"},
    },
    {
        "method": "GET",
        "pattern": "/blog/{slug}",
        "handler": "",
        "options": {"name": "blog.show", "params": {"slug": r"[a-z0-9\-]+"}},
    },
    {
        "method": "GET",
        "pattern": "/blog/category/{category}",
        "handler": "",
        "options": {"name": "blog.category", "params": {"category": r"[a-z0-9\-]+"}},
    },
    {
        "method": "GET",
        "pattern": "/blog/archive/{year}/{month}",
        "handler": "",
        "options": {"name": "blog.archive", "params": {"year": r"\d{4}", "month": r"\d{2}"}},
    },
]


def encode_options(options: Optional[Mapping[str, Any]]) -> str:
    """Serialize row options to JSON text."""
    return orjson.dumps(dict(options or {})).decode("utf-8")


def decode_options(raw: Any) -> Dict[str, Any]:
    """
    Decode a row's ``options`` column.

    Raises:
        ValueError: If the text is not JSON or not a JSON object
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (bytes, str)):
        decoded = orjson.loads(raw)
        if decoded is None:
            return {}
        if not isinstance(decoded, dict):
            raise ValueError(f"options must be a JSON object, got {type(decoded).__name__}")
        return decoded
    raise ValueError(f"options must be JSON text, got {type(raw).__name__}")


def upgrade_row(row: Any) -> Any:
    """
    Convert a legacy row, stored as a bare pattern string, into a GET
    content-fallback row. Other values are returned unchanged.
    """
    if isinstance(row, str):
        return {"method": "GET", "pattern": row, "handler": "", "options": {}}
    return row


def default_rows() -> List[Row]:
    """The default frontend route rows with options encoded as JSON text."""
    return [{**row, "options": encode_options(row["options"])} for row in DEFAULT_ROUTE_ROWS]


class RouteTable(ABC):
    """
    Storage for persisted route rows.

    ``rows()`` raises :class:`RouteTableError` when the store exists but
    is structurally invalid.
    """

    @abstractmethod
    def has_table(self) -> bool:
        """Check whether the backing table exists."""

    @abstractmethod
    def rows(self) -> List[Row]:
        """Return all rows in storage order."""

    @abstractmethod
    def save(self, rows: List[Row]) -> None:
        """Replace the stored rows."""

    def reinitialize(self) -> None:
        """Recreate the table holding the default frontend routes."""
        self.save(default_rows())

    def upsert(self, row: Row) -> None:
        """Insert ``row``, replacing an existing row with the same method and pattern."""
        try:
            rows = [upgrade_row(r) for r in self.rows()] if self.has_table() else []
        except RouteTableError:
            rows = []

        method = str(row.get("method", "GET")).upper()
        pattern = row.get("pattern")
        for i, existing in enumerate(rows):
            if (
                isinstance(existing, Mapping)
                and str(existing.get("method", "")).upper() == method
                and existing.get("pattern") == pattern
            ):
                rows[i] = dict(row)
                break
        else:
            rows.append(dict(row))

        self.save(rows)


class MemoryRouteTable(RouteTable):
    """
    In-memory route table.

    ``rows=None`` models a missing table.

    Example:
        table = MemoryRouteTable([
            {"method": "GET", "pattern": "/", "handler": "", "options": "{}"},
        ])
    """

    def __init__(self, rows: Optional[List[Row]] = None) -> None:
        self._rows: Optional[List[Any]] = copy.deepcopy(rows) if rows is not None else None

    def has_table(self) -> bool:
        return self._rows is not None

    def rows(self) -> List[Row]:
        if self._rows is None:
            raise RouteTableError("Route table does not exist")
        if not isinstance(self._rows, list):
            raise RouteTableError("Route table is not a list of rows")
        return copy.deepcopy(self._rows)

    def save(self, rows: List[Row]) -> None:
        self._rows = copy.deepcopy(list(rows))


class JsonRouteTable(RouteTable):
    """
    Route table stored as a JSON list in a flat file.

    Example:
        table = JsonRouteTable("storage/routes.json")
        table.reinitialize()
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def has_table(self) -> bool:
        return self.path.is_file()

    def rows(self) -> List[Row]:
        if not self.path.is_file():
            raise RouteTableError(f"Route table {self.path} does not exist")
        try:
            data = orjson.loads(self.path.read_bytes())
        except orjson.JSONDecodeError as exc:
            raise RouteTableError(f"Route table {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise RouteTableError(f"Route table {self.path} must contain a JSON list")
        return data

    def save(self, rows: List[Row]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(orjson.dumps(list(rows), option=orjson.OPT_INDENT_2))

    def __repr__(self) -> str:
        return f"JsonRouteTable({str(self.path)!r})"


class RouteLoader:
    """
    Hydrates a router from a :class:`RouteTable`.

    A missing, empty or corrupt table is reinitialized and the router
    falls back to a root route and a catch-all route. Otherwise every row
    is registered in order; rows that cannot be registered are logged and
    skipped. Finally the router is given a root and a catch-all route if
    the table lacked them.
    """

    def __init__(self, table: RouteTable, logger: Optional[Logger] = None) -> None:
        self.table = table
        self.logger = logger or get_logger("folio.persistence")

    def load(self, router: "Router") -> int:
        """
        Register the persisted routes on ``router``.

        Returns:
            Number of rows registered
        """
        try:
            if not self.table.has_table():
                raise RouteTableError("Route table does not exist")
            rows = self.table.rows()
            if not rows:
                raise RouteTableError("Route table is empty")
        except RouteTableError as exc:
            self._recover(router, exc)
            return 0

        loaded = 0
        for index, row in enumerate(rows):
            if self._register(router, row, index):
                loaded += 1

        router.ensure_essential_routes()
        self.logger.info("Routes loaded", count=loaded, skipped=len(rows) - loaded)
        return loaded

    def _recover(self, router: "Router", cause: RouteTableError) -> None:
        self.logger.warning("Route table unusable, reinitializing", reason=str(cause))
        try:
            self.table.reinitialize()
        except (OSError, RouteTableError) as exc:
            self.logger.error("Route table reinitialization failed", exception=exc)

        router.reset()
        router.add_route("GET", "/", None, name=HOME_FALLBACK)
        router.add_route("GET", CATCH_ALL_PATTERN, None, name=CATCH_ALL_FALLBACK)

    def _register(self, router: "Router", row: Any, index: int) -> bool:
        row = upgrade_row(row)
        if not isinstance(row, Mapping):
            self.logger.error("Skipping route row", row=index, reason="row is not an object")
            return False

        pattern = row.get("pattern")
        if not pattern or not isinstance(pattern, str):
            self.logger.error("Skipping route row", row=index, reason="missing pattern")
            return False

        try:
            options = decode_options(row.get("options"))
        except ValueError as exc:
            self.logger.error("Skipping route row", row=index, pattern=pattern, reason=f"invalid options: {exc}")
            return False

        middleware = options.get("middleware") or []
        if isinstance(middleware, str):
            middleware = [middleware]

        try:
            router.add_route(
                str(row.get("method") or "GET"),
                pattern,
                row.get("handler") or None,
                name=options.get("name"),
                middleware=middleware,
                params=options.get("params"),
                schema=options.get("schema"),
            )
        except (TypeError, ValueError) as exc:
            self.logger.error("Skipping route row", row=index, pattern=pattern, reason=str(exc))
            return False

        return True


__all__ = [
    "Row",
    "HOME_FALLBACK",
    "CATCH_ALL_FALLBACK",
    "CATCH_ALL_PATTERN",
    "DEFAULT_ROUTE_ROWS",
    "encode_options",
    "decode_options",
    "upgrade_row",
    "default_rows",
    "RouteTable",
    "MemoryRouteTable",
    "JsonRouteTable",
    "RouteLoader",
]
