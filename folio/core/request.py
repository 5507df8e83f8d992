"""
Folio Request Object
====================

Immutable request value built once per incoming request by the transport
adapter and passed unchanged through middleware, the router and the
handler.

Features:
- Case-insensitive, read-only headers
- Query parameters with typed accessors
- Body kept as bytes, decoded on demand (text / JSON)
- Constructors for plain values and ASGI scopes

Middleware that needs to hand data downstream does so through the
``params`` mapping of the middleware chain, never by mutating the
request.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union
from urllib.parse import parse_qs, urlsplit

import orjson

from folio.core.compiler import normalize_path


class Headers(Mapping):
    """
    Case-insensitive, read-only HTTP headers.

    Example:
        headers["Content-Type"]  # application/json
        headers["content-type"]  # application/json (same)
        headers.get("X-Custom", "default")
    """

    __slots__ = ("_headers",)

    def __init__(
        self,
        raw: Union[Mapping, Iterable[Tuple[Any, Any]], None] = None,
    ) -> None:
        items = raw.items() if isinstance(raw, Mapping) else (raw or [])
        headers: Dict[str, str] = {}
        for key, value in items:
            if isinstance(key, bytes):
                key = key.decode("latin-1")
            if isinstance(value, bytes):
                value = value.decode("latin-1")
            headers[str(key).lower()] = str(value)
        self._headers = headers

    def __getitem__(self, key: str) -> str:
        return self._headers[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._headers.get(key.lower(), default)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._headers)

    def __repr__(self) -> str:
        return f"Headers({self._headers!r})"


class QueryParams(Mapping):
    """
    Read-only query string parameters.

    Supports:
    - Single values: ?name=value -> query.get("name") == "value"
    - Repeated keys: ?tag=a&tag=b -> query.get_list("tag") == ["a", "b"]
    - Type conversion: query.get_int("page", 1)
    """

    __slots__ = ("_data",)

    def __init__(
        self,
        raw: Union[str, bytes, Mapping, None] = None,
    ) -> None:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            data = parse_qs(raw, keep_blank_values=True)
        else:
            data = {}
            for key, value in (raw or {}).items():
                data[str(key)] = [str(v) for v in value] if isinstance(value, (list, tuple)) else [str(value)]
        self._data: Dict[str, List[str]] = data

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def get_list(self, key: str) -> List[str]:
        """Get all values for a key."""
        return list(self._data.get(key, []))

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def to_dict(self) -> Dict[str, Union[str, List[str]]]:
        """Convert to a dict, unwrapping single values."""
        return {k: v[0] if len(v) == 1 else list(v) for k, v in self._data.items()}

    def __repr__(self) -> str:
        return f"QueryParams({self.to_dict()!r})"


@dataclass(frozen=True)
class Request:
    """
    HTTP request value.

    Attributes:
        method: Upper-case HTTP method
        path: Raw request path (normalized by the router, not here)
        query: Query parameters
        headers: Request headers
        body: Raw body bytes
        scheme: ``http`` or ``https``
        client: (host, port) of the peer, if known

    Example:
        request = Request.build("GET", "/blog/hello?page=2",
                                headers={"Host": "example.com"})
        request.query.get_int("page")  # 2
    """

    method: str
    path: str
    query: QueryParams = field(default_factory=QueryParams)
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    scheme: str = "http"
    client: Tuple[str, int] = ("", 0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        if not isinstance(self.query, QueryParams):
            object.__setattr__(self, "query", QueryParams(self.query))
        if not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(self.headers))

    @classmethod
    def build(
        cls,
        method: str,
        target: str,
        *,
        query: Union[str, Mapping, None] = None,
        headers: Union[Mapping, Iterable[Tuple[Any, Any]], None] = None,
        body: Union[bytes, str] = b"",
        scheme: str = "http",
    ) -> "Request":
        """
        Build a request from plain values.

        ``target`` may carry a query string, which is merged with ``query``
        (explicit ``query`` entries win).
        """
        parts = urlsplit(target)
        params = QueryParams(parts.query)
        if query is not None:
            merged = {k: params.get_list(k) for k in params}
            merged.update({k: QueryParams(query).get_list(k) for k in QueryParams(query)})
            params = QueryParams(merged)
        if isinstance(body, str):
            body = body.encode("utf-8")
        return cls(
            method=method,
            path=parts.path or "/",
            query=params,
            headers=Headers(headers),
            body=body,
            scheme=scheme,
        )

    @classmethod
    def from_scope(cls, scope: Dict[str, Any], body: bytes = b"") -> "Request":
        """Create a request from an ASGI HTTP scope and its fully read body."""
        client = scope.get("client") or ("", 0)
        return cls(
            method=scope.get("method", "GET"),
            path=scope.get("path", "/"),
            query=QueryParams(scope.get("query_string", b"")),
            headers=Headers(scope.get("headers", [])),
            body=body,
            scheme=scope.get("scheme", "http"),
            client=(client[0], client[1]),
        )

    @property
    def normalized_path(self) -> str:
        return normalize_path(self.path)

    @property
    def host(self) -> str:
        return self.headers.get("host") or "localhost"

    @property
    def url_root(self) -> str:
        """Scheme and host, e.g. ``https://example.com``."""
        return f"{self.scheme}://{self.host}"

    @property
    def url(self) -> str:
        query = "&".join(f"{k}={v}" for k in self.query for v in self.query.get_list(k))
        return f"{self.url_root}{self.path}" + (f"?{query}" if query else "")

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    @property
    def is_secure(self) -> bool:
        return self.scheme == "https"

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding)

    def json(self) -> Any:
        """Parse the body as JSON (None for an empty body)."""
        if not self.body:
            return None
        return orjson.loads(self.body)

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"


__all__ = [
    "Headers",
    "QueryParams",
    "Request",
]
