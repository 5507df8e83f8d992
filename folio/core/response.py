"""
Folio Response Objects
======================

HTTP responses produced by the ASGI host from dispatch results.

Handlers may return a ``Response`` directly; other results are converted
by :func:`to_response`. All response classes implement the ASGI send
interface.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Callable, Coroutine, Dict, List, Optional, Tuple

import orjson

# Standard HTTP status messages
HTTP_STATUS_PHRASES = {s.value: s.phrase for s in HTTPStatus}


class Response:
    """
    Base HTTP response.

    Example:
        return Response("Hello")
        return Response("Gone", status_code=410)
    """

    media_type: str = "text/plain"
    charset: str = "utf-8"

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
        media_type: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.headers: Dict[str, str] = dict(headers or {})

        if media_type:
            self.media_type = media_type

        self.body = self._render_content(content)

        if "content-type" not in {k.lower() for k in self.headers}:
            content_type = self.media_type
            if self.charset and content_type.startswith("text/"):
                content_type += f"; charset={self.charset}"
            self.headers["Content-Type"] = content_type

        self.headers["Content-Length"] = str(len(self.body))

    def _render_content(self, content: Any) -> bytes:
        """Convert content to bytes."""
        if content is None:
            return b""
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode(self.charset)
        return str(content).encode(self.charset)

    def _get_headers(self) -> List[Tuple[bytes, bytes]]:
        """Headers as ASGI byte pairs."""
        return [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in self.headers.items()]

    async def send(
        self,
        send: Callable[[Dict[str, Any]], Coroutine[Any, Any, None]],
    ) -> None:
        """Send response via ASGI interface."""
        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self._get_headers(),
        })
        await send({
            "type": "http.response.body",
            "body": self.body,
        })

    @property
    def status_phrase(self) -> str:
        return HTTP_STATUS_PHRASES.get(self.status_code, "Unknown")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.status_code} {self.status_phrase}>"


class HTMLResponse(Response):
    """HTML content response."""

    media_type = "text/html"


class PlainTextResponse(Response):
    """Plain text response."""

    media_type = "text/plain"


class JSONResponse(Response):
    """
    JSON content response serialized with orjson.

    Example:
        return JSONResponse({"path": "about", "params": {}})
        return JSONResponse({"error": "Not Found"}, status_code=404)
    """

    media_type = "application/json"

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(content, status_code, headers)

    def _render_content(self, content: Any) -> bytes:
        return orjson.dumps(content, default=str)


class RedirectResponse(Response):
    """
    HTTP redirect response.

    Example:
        return RedirectResponse(router.generate_url("home"))
    """

    def __init__(
        self,
        url: str,
        status_code: int = 302,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        headers = dict(headers or {})
        headers["Location"] = url
        super().__init__(content=None, status_code=status_code, headers=headers)


def to_response(result: Any) -> Response:
    """
    Convert a handler result into a response.

    ``Response`` passes through, ``str`` becomes HTML, ``bytes`` plain
    bytes, ``None`` an empty 204, anything else JSON.
    """
    if isinstance(result, Response):
        return result
    if result is None:
        return Response(status_code=204)
    if isinstance(result, str):
        return HTMLResponse(result)
    if isinstance(result, bytes):
        return Response(result, media_type="application/octet-stream")
    return JSONResponse(result)


def error_response(status_code: int, message: str, detail: Optional[Dict[str, Any]] = None) -> JSONResponse:
    """JSON error body ``{"error": message, ...detail}``."""
    body: Dict[str, Any] = {"error": message}
    if detail:
        body.update(detail)
    return JSONResponse(body, status_code=status_code)


__all__ = [
    "HTTP_STATUS_PHRASES",
    "Response",
    "HTMLResponse",
    "PlainTextResponse",
    "JSONResponse",
    "RedirectResponse",
    "to_response",
    "error_response",
]
