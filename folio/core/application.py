"""
Folio Application
=================

ASGI host around one :class:`Router`.

FolioApp turns each ASGI HTTP scope into an immutable ``Request``,
dispatches it, hands content-fallback results to a renderer and
translates router errors into status codes:

    RouteNotFound           -> 404
    InvalidParameter        -> 400 (with per-parameter messages)
    HandlerResolutionError  -> 500
    anything else           -> 500 (logged with traceback)

Example:
    from folio import Config, FolioApp

    config = Config().load_from_path("config")
    app = FolioApp(config=config)
    app.container.singleton("BlogController", BlogController)
    app.router.get("/blog/{slug}", "BlogController@show")

    if __name__ == "__main__":
        app.run()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Dict, List, Optional, Union

from folio.core.config import Config
from folio.core.container import ServiceContainer
from folio.core.exceptions import FolioError, InvalidParameter
from folio.core.handlers import ContentResult
from folio.core.request import Request
from folio.core.response import Response, error_response, to_response
from folio.core.router import Router
from folio.utils.logger import Logger, configure_logging, get_logger

ContentRenderer = Callable[[Request, ContentResult], Any]


def default_renderer(request: Request, result: ContentResult) -> Any:
    """Render a content result as ``{"path": ..., "params": ...}`` JSON."""
    return result.to_dict()


@dataclass
class AppState:
    """Application runtime state."""
    is_running: bool = False
    request_count: int = 0
    error_count: int = 0


class FolioApp:
    """
    Folio application container.

    Attributes:
        config: Application configuration
        router: URL router
        container: Service container resolving ``Component@method`` handlers
        renderer: Turns content-fallback results into responses
        state: Runtime counters

    Args:
        config: Configuration; defaults are used when omitted
        router: Router; built from ``config`` when omitted
        container: Service container; a fresh one when omitted
        renderer: Content renderer; JSON ``{path, params}`` when omitted
        logger: Logger for request errors
        debug: Overrides ``app.debug``
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        router: Optional[Router] = None,
        container: Optional[ServiceContainer] = None,
        renderer: Optional[ContentRenderer] = None,
        logger: Optional[Logger] = None,
        debug: Optional[bool] = None,
    ) -> None:
        self.config = config or Config()
        self.logger = logger or get_logger("folio.app")
        self.container = container or ServiceContainer()
        self.router = router if router is not None else Router.from_config(self.config, resolver=self.container)
        self.renderer = renderer or default_renderer
        self.debug = self.config.get_bool("app.debug") if debug is None else debug
        self.state = AppState()

        self._register_core_services()

    def _register_core_services(self) -> None:
        """Register framework core services."""
        self.container.instance("config", self.config)
        self.container.instance("router", self.router)
        self.container.instance("logger", self.logger)
        self.container.instance("app", self)

    async def __call__(
        self,
        scope: Dict[str, Any],
        receive: Callable[[], Coroutine[Any, Any, Dict[str, Any]]],
        send: Callable[[Dict[str, Any]], Coroutine[Any, Any, None]],
    ) -> None:
        """ASGI application interface."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
        elif scope["type"] == "http":
            await self._handle_http(scope, receive, send)
        else:
            raise ValueError(f"Unsupported scope type: {scope['type']}")

    async def _handle_lifespan(self, receive: Callable, send: Callable) -> None:
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                self.router.ensure_routes_loaded()
                self.state.is_running = True
                self.logger.info("Folio started", routes=len(self.router))
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                self.state.is_running = False
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _handle_http(self, scope: Dict[str, Any], receive: Callable, send: Callable) -> None:
        body = await self._read_body(receive)
        request = Request.from_scope(scope, body)
        self.state.request_count += 1

        response = self.handle(request)
        await response.send(send)

    @staticmethod
    async def _read_body(receive: Callable) -> bytes:
        chunks: List[bytes] = []
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        return b"".join(chunks)

    def handle(self, request: Request) -> Response:
        """Dispatch ``request`` and convert the outcome into a response."""
        try:
            result = self.router.dispatch(request)
            if isinstance(result, ContentResult):
                result = self.renderer(request, result)
            return to_response(result)
        except FolioError as exc:
            return self._error(request, exc)
        except Exception as exc:
            self.state.error_count += 1
            self.logger.error("Request handling error", exception=exc, method=request.method, path=request.path)
            return error_response(500, str(exc) if self.debug else "Internal Server Error")

    def _error(self, request: Request, exc: FolioError) -> Response:
        status = exc.status_code
        if status >= 500:
            self.state.error_count += 1
            self.logger.error("Dispatch error", exception=exc, method=request.method, path=request.path)
            return error_response(status, str(exc) if self.debug else "Internal Server Error")

        if isinstance(exc, InvalidParameter):
            return error_response(status, exc.args[0], {"errors": exc.errors})
        return error_response(status, exc.args[0] if exc.args and exc.args[0] else "Error")

    def use(self, middleware: Union[Callable, type], name: Optional[str] = None) -> "FolioApp":
        """Add global middleware to the router."""
        self.router.use(middleware, name=name)
        return self

    def run(
        self,
        host: str = "127.0.0.1",
        port: int = 8000,
        reload: bool = False,
        log_level: Optional[str] = None,
    ) -> None:
        """
        Serve the application with uvicorn.

        For production, point an ASGI server at the app directly:
            uvicorn site:app --host 0.0.0.0 --port 8000
        """
        import uvicorn

        level = log_level or self.config.get("log.level", "info")
        configure_logging(
            level=level,
            format=self.config.get("log.format", "text"),
            log_file=self.config.get("log.file"),
        )

        uvicorn.run(
            self,
            host=host,
            port=port,
            reload=reload,
            log_level=str(level).lower(),
            lifespan="on",
        )


def create_app(config: Optional[Config] = None, **kwargs: Any) -> FolioApp:
    """Factory for FolioApp instances, useful for tests and app factories."""
    return FolioApp(config=config, **kwargs)


__all__ = [
    "ContentRenderer",
    "default_renderer",
    "AppState",
    "FolioApp",
    "create_app",
]
