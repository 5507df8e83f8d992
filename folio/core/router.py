"""
Folio Router System
===================

Request routing for a flat-file CMS:
- Method + path-template routes, matched in registration order
- Route groups with shared prefix, middleware and name prefix
- Named routes and URL generation
- Per-route parameter schemas
- Global and per-route middleware
- Match cache keyed by method and normalized path
- Routes persisted in a route table, loaded on first use
- Unmatched GET requests resolved directly against content files

Route Patterns:
    /blog                       - Static path
    /blog/{slug}                - Dynamic segment ([^/]+)
    /items/{id:[0-9]+}          - Inline sub-pattern
    /archive/{year}/{month}     - Sub-patterns via the ``params`` option
    /{path:.+}                  - Catch-all

Matching order:
    1. Registered routes of the request method, first match wins
    2. ``/`` without a route matches an implicit home route
    3. GET requests for existing content resolve to a transient route
    4. Otherwise no match (cached as well)

Example:
    router = Router(resolver=container, content_store=FileContentStore("content"))

    router.get("/", "PageController@home").name("home")
    router.get("/blog/{slug}", "BlogController@show", params={"slug": r"[a-z0-9\\-]+"})

    with router.group(prefix="/admin", middleware=["auth"], name_prefix="admin."):
        router.get("/pages/{id}", "AdminController@edit", name="pages.edit",
                   schema={"id": {"type": "integer", "min": 1}})

    router.generate_url("admin.pages.edit", {"id": 3})   # /admin/pages/3
    result = router.dispatch(Request.build("GET", "/blog/hello"))
"""

from __future__ import annotations

import dataclasses
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)
from urllib.parse import quote

from folio.core.compiler import (
    CompiledMatcher,
    LiteralMatcher,
    PatternCompiler,
    normalize_path,
    normalize_template,
    tokenize,
)
from folio.core.exceptions import MissingRouteParameter, RouteNotFound
from folio.core.fallback import DEFAULT_HOME, ContentStore, FallbackContentResolver
from folio.core.handlers import (
    CONTENT_FALLBACK,
    HandlerExecutor,
    HandlerRef,
    handler_to_string,
    parse_handler,
)
from folio.core.middleware import Middleware, MiddlewareCallable, MiddlewareStack
from folio.core.persistence import (
    CATCH_ALL_FALLBACK,
    CATCH_ALL_PATTERN,
    RouteLoader,
    RouteTable,
    encode_options,
)
from folio.core.pipeline import Pipeline
from folio.utils.logger import Logger, get_logger
from folio.validation.validator import ParameterValidator

if TYPE_CHECKING:
    from folio.core.config import Config
    from folio.core.container import DependencyResolver
    from folio.core.request import Request

HOME_DEFAULT = "home.default"
HOME_IMPLICIT = "home.fallback"
CONTENT_ROUTE = "content.fallback"

MiddlewareSpec = Union[str, MiddlewareCallable, type]


class HTTPMethod(str, Enum):
    """HTTP methods supported by the router."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


@dataclass(frozen=True)
class Route:
    """
    A registered route.

    Attributes:
        method: Upper-case HTTP method
        pattern: Normalized path template, group prefix included
        matcher: Compiled matcher for ``pattern``
        handler: What runs when the route matches
        name: Optional route name for URL generation
        middleware: Group and route middleware, outermost first
        param_schema: Raw parameter schema as registered
        validator: Validator built from ``param_schema``
        params: Placeholder sub-pattern overrides
        group_prefix: Prefix of the group the route was registered in
        name_prefix: Name prefix of that group, applied by ``name()``
    """

    method: str
    pattern: str
    matcher: CompiledMatcher
    handler: HandlerRef = CONTENT_FALLBACK
    name: Optional[str] = None
    middleware: Tuple[MiddlewareCallable, ...] = ()
    param_schema: Optional[Mapping[str, Any]] = None
    validator: Optional[ParameterValidator] = field(default=None, compare=False, repr=False)
    params: Mapping[str, Any] = field(default_factory=dict)
    group_prefix: str = ""
    name_prefix: str = ""

    @property
    def is_catch_all(self) -> bool:
        return self.method == HTTPMethod.GET.value and self.matcher.is_catch_all

    def __repr__(self) -> str:
        label = f" name={self.name!r}" if self.name else ""
        return f"<Route {self.method} {self.pattern}{label}>"


@dataclass(frozen=True)
class RouteMatch:
    """A matched route with the captured path parameters."""

    route: Route
    params: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GroupContext:
    """Attributes applied to routes registered inside a group."""

    prefix: str = ""
    middleware: Tuple[MiddlewareSpec, ...] = ()
    name_prefix: str = ""

    def nest(
        self,
        prefix: str = "",
        middleware: Sequence[MiddlewareSpec] = (),
        name_prefix: str = "",
    ) -> "GroupContext":
        """Child context: prefixes concatenate, parent middleware first."""
        return GroupContext(
            prefix=join_paths(self.prefix, prefix) if prefix else self.prefix,
            middleware=self.middleware + tuple(middleware),
            name_prefix=self.name_prefix + name_prefix,
        )


ROOT_GROUP = GroupContext()


def join_paths(prefix: str, path: str) -> str:
    """Join a prefix and a template with exactly one slash between them."""
    if not prefix:
        return normalize_template(path)
    return normalize_template(prefix.rstrip("/") + "/" + (path or "").lstrip("/"))


class Router:
    """
    URL router and dispatcher.

    The registry is an ordered list; registration order decides which of
    two overlapping routes wins. Match results are cached per method and
    normalized path until the registry changes or ``reset()`` is called.

    Args:
        resolver: Dependency resolver for ``Component@method`` handlers
        content_store: Content used for fallback resolution
        route_table: Backing store for persisted routes
        persist_routes: Load routes from ``route_table`` on first use
        logger: Logger for diagnostics
        home: Content identifier of the home page
        base_url: Base for absolute URLs when no request is at hand
        compiler: Pattern compiler (shared compile cache)
    """

    def __init__(
        self,
        resolver: Optional["DependencyResolver"] = None,
        content_store: Optional[ContentStore] = None,
        route_table: Optional[RouteTable] = None,
        persist_routes: bool = False,
        logger: Optional[Logger] = None,
        home: str = DEFAULT_HOME,
        base_url: Optional[str] = None,
        compiler: Optional[PatternCompiler] = None,
    ) -> None:
        self.logger = logger or get_logger("folio.router")
        self.resolver = resolver
        self.route_table = route_table
        self.persist_routes = persist_routes and route_table is not None
        self.home = home
        self.base_url = base_url
        self.compiler = compiler if compiler is not None else PatternCompiler(self.logger)
        self.fallback = FallbackContentResolver(content_store, home, self.logger)
        self.executor = HandlerExecutor(resolver, home, self.logger)

        self._routes: List[Route] = []
        self._named: Dict[str, Route] = {}
        self._cache: Dict[str, Optional[RouteMatch]] = {}
        self._groups: List[GroupContext] = [ROOT_GROUP]
        self._global = MiddlewareStack()
        self._aliases: Dict[str, MiddlewareCallable] = {}
        self._routes_loaded = False

    @classmethod
    def from_config(
        cls,
        config: "Config",
        resolver: Optional["DependencyResolver"] = None,
        logger: Optional[Logger] = None,
    ) -> "Router":
        """
        Build a router from configuration.

        Keys: ``router.persist``, ``router.table``, ``content.path``,
        ``content.directory``, ``content.extension``, ``content.home``,
        ``app.url``.
        """
        from folio.core.fallback import FileContentStore
        from folio.core.persistence import JsonRouteTable

        table_path = config.get("router.table")
        content_path = config.get("content.path")

        store = None
        if content_path:
            store = FileContentStore(
                content_path,
                directory=config.get("content.directory", "pages"),
                extension=config.get("content.extension", ".md"),
            )

        return cls(
            resolver=resolver,
            content_store=store,
            route_table=JsonRouteTable(table_path) if table_path else None,
            persist_routes=config.get_bool("router.persist", False),
            logger=logger,
            home=config.get("content.home", DEFAULT_HOME),
            base_url=config.get("app.url"),
        )

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_route(
        self,
        method: str,
        pattern: str,
        handler: Any = None,
        options: Optional[Mapping[str, Any]] = None,
        *,
        name: Optional[str] = None,
        middleware: Optional[Sequence[MiddlewareSpec]] = None,
        params: Optional[Mapping[str, Any]] = None,
        schema: Optional[Mapping[str, Any]] = None,
    ) -> "Router":
        """
        Register a route.

        Args:
            method: HTTP method
            pattern: Path template, relative to the current group
            handler: Callable, ``"Component@method"`` or None for content
            options: Mapping with ``name``, ``middleware``, ``params`` and
                ``schema``; keyword arguments take precedence
            name: Route name
            middleware: Middleware callables, classes or alias names
            params: Placeholder sub-pattern overrides
            schema: Parameter validation schema

        Returns:
            The router, for chaining ``name()``

        Raises:
            ValueError: For unknown methods, malformed templates, handlers,
                schemas or middleware aliases
        """
        options = dict(options or {})
        return self._add(
            method,
            pattern,
            handler,
            name=name if name is not None else options.get("name"),
            middleware=middleware if middleware is not None else options.get("middleware"),
            params=params if params is not None else options.get("params"),
            schema=schema if schema is not None else options.get("schema"),
            group=self._groups[-1],
        )

    def _add(
        self,
        method: str,
        pattern: str,
        handler: Any,
        *,
        name: Optional[str],
        middleware: Optional[Sequence[MiddlewareSpec]],
        params: Optional[Mapping[str, Any]],
        schema: Optional[Mapping[str, Any]],
        group: GroupContext,
    ) -> "Router":
        method = self._method(method)
        template = join_paths(group.prefix, pattern)
        overrides = dict(params or {})

        if isinstance(middleware, (str, bytes)) or callable(middleware):
            middleware = [middleware]

        route = Route(
            method=method,
            pattern=template,
            matcher=self.compiler.compile(template, overrides),
            handler=parse_handler(handler),
            name=group.name_prefix + name if name else None,
            middleware=self._resolve_middleware(tuple(group.middleware) + tuple(middleware or ())),
            param_schema=dict(schema) if schema else None,
            validator=ParameterValidator(schema) if schema else None,
            params=overrides,
            group_prefix=group.prefix,
            name_prefix=group.name_prefix,
        )

        self._routes.append(route)
        if route.name:
            self._named[route.name] = route
        self._cache.clear()
        return self

    @staticmethod
    def _method(method: str) -> str:
        upper = str(method).strip().upper()
        try:
            return HTTPMethod(upper).value
        except ValueError:
            raise ValueError(f"Unsupported HTTP method '{method}'") from None

    def get(self, pattern: str, handler: Any = None, **options: Any) -> "Router":
        """Register a GET route."""
        return self.add_route("GET", pattern, handler, **options)

    def post(self, pattern: str, handler: Any = None, **options: Any) -> "Router":
        """Register a POST route."""
        return self.add_route("POST", pattern, handler, **options)

    def put(self, pattern: str, handler: Any = None, **options: Any) -> "Router":
        """Register a PUT route."""
        return self.add_route("PUT", pattern, handler, **options)

    def patch(self, pattern: str, handler: Any = None, **options: Any) -> "Router":
        """Register a PATCH route."""
        return self.add_route("PATCH", pattern, handler, **options)

    def delete(self, pattern: str, handler: Any = None, **options: Any) -> "Router":
        """Register a DELETE route."""
        return self.add_route("DELETE", pattern, handler, **options)

    def route(self, method: str, pattern: str, **options: Any) -> Callable:
        """
        Decorator registering an inline handler.

        Example:
            @router.route("GET", "/feed.xml", name="feed")
            def feed(request, params):
                ...
        """
        def decorator(handler: Callable[..., Any]) -> Callable[..., Any]:
            self.add_route(method, pattern, handler, **options)
            return handler
        return decorator

    def name(self, label: str) -> "Router":
        """
        Name the most recently registered route.

        The name prefix of the group the route was registered in is
        prepended, even after that group has closed.

        Raises:
            RuntimeError: If no route has been registered yet
        """
        if not self._routes:
            raise RuntimeError("No route to name; call name() after add_route()")

        previous = self._routes[-1]
        named = dataclasses.replace(previous, name=previous.name_prefix + label)
        self._routes[-1] = named

        if previous.name and self._named.get(previous.name) is previous:
            del self._named[previous.name]
        self._named[named.name] = named
        self._cache.clear()
        return self

    def group(
        self,
        callback: Optional[Callable[["Router"], Any]] = None,
        *,
        prefix: str = "",
        middleware: Optional[Sequence[MiddlewareSpec]] = None,
        name_prefix: str = "",
    ) -> Any:
        """
        Register routes sharing a prefix, middleware and name prefix.

        With a callback, the callback receives the router and every route
        it registers belongs to the group. Without one, a context manager
        is returned.

        Example:
            router.group(lambda r: r.get("/users", "Users@index"),
                         prefix="/admin", middleware=["auth"])

            with router.group(prefix="/api", name_prefix="api."):
                router.get("/pages", "Api@pages", name="pages")
        """
        scope = self._group_scope(prefix, middleware or (), name_prefix)
        if callback is None:
            return scope
        with scope:
            callback(self)
        return self

    @contextmanager
    def _group_scope(
        self,
        prefix: str,
        middleware: Sequence[MiddlewareSpec],
        name_prefix: str,
    ) -> Iterator["Router"]:
        self._groups.append(self._groups[-1].nest(prefix, middleware, name_prefix))
        try:
            yield self
        finally:
            self._groups.pop()

    # ------------------------------------------------------------------
    # Middleware
    # ------------------------------------------------------------------

    def use(
        self,
        middleware: Union[MiddlewareCallable, type],
        name: Optional[str] = None,
        priority: int = 0,
    ) -> "Router":
        """
        Register global middleware.

        Global middleware wraps matching as well, so it also sees
        ``RouteNotFound`` and ``InvalidParameter``.
        """
        self._global.add(middleware, priority=priority, name=name)
        return self

    def alias_middleware(self, name: str, middleware: Union[MiddlewareCallable, type]) -> "Router":
        """Make ``middleware`` available to routes under ``name``."""
        if isinstance(middleware, type):
            middleware = middleware()
        if not callable(middleware):
            raise TypeError(f"Middleware '{name}' must be callable")
        self._aliases[name] = middleware
        return self

    def _resolve_middleware(self, specs: Sequence[MiddlewareSpec]) -> Tuple[MiddlewareCallable, ...]:
        resolved: List[MiddlewareCallable] = []
        for spec in specs:
            if isinstance(spec, str):
                if spec not in self._aliases:
                    raise ValueError(f"Unknown middleware alias '{spec}'")
                resolved.append(self._aliases[spec])
            elif isinstance(spec, type) and issubclass(spec, Middleware):
                resolved.append(spec())
            elif callable(spec):
                resolved.append(spec)
            else:
                raise TypeError(f"Middleware must be callable, got {type(spec).__name__}")
        return tuple(resolved)

    @property
    def global_middleware(self) -> List[MiddlewareCallable]:
        return self._global.stack

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Resolve a method and path to a route.

        Returns:
            RouteMatch, or None when nothing (not even content) matches
        """
        self.ensure_routes_loaded()

        method = str(method).upper()
        path = normalize_path(path)
        key = f"{method}:{path}"

        if key in self._cache:
            return self._cache[key]

        found = self._find(method, path)
        self._cache[key] = found
        return found

    def match_request(self, request: "Request") -> Optional[RouteMatch]:
        return self.match(request.method, request.path)

    def _find(self, method: str, path: str) -> Optional[RouteMatch]:
        for route in self._routes:
            if route.method != method:
                continue
            params = route.matcher.match(path)
            if params is not None:
                self.logger.debug("Route matched", method=method, path=path, pattern=route.pattern)
                return RouteMatch(route, params)

        if path == "/":
            return RouteMatch(self._transient(method, path, HOME_IMPLICIT), {})

        if self.fallback.resolve(method, path) is not None:
            return RouteMatch(self._transient(method, path, CONTENT_ROUTE), {})

        self.logger.debug("No route matched", method=method, path=path)
        return None

    @staticmethod
    def _transient(method: str, path: str, name: str) -> Route:
        return Route(method=method, pattern=path, matcher=LiteralMatcher(path), name=name)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, request: "Request") -> Any:
        """
        Dispatch a request and return the handler's result.

        Global middleware runs outermost, then matching, parameter
        validation, route middleware and finally the handler.

        Raises:
            RouteNotFound: Nothing matched
            InvalidParameter: Captured parameters failed the schema
            HandlerResolutionError: The handler could not be resolved
        """
        return Pipeline(self._global.stack).run(request, {}, self._dispatch_route)

    def _dispatch_route(self, request: "Request", params: Dict[str, Any]) -> Any:
        found = self.match(request.method, request.path)
        if found is None:
            raise RouteNotFound(method=request.method, path=request.path)

        route = found.route
        captured: Dict[str, Any] = dict(found.params)
        if route.validator is not None:
            captured = route.validator.validate_or_raise(captured)

        def handle(req: "Request", values: Dict[str, Any]) -> Any:
            return self.executor.execute(route.handler, req, values)

        return Pipeline(route.middleware).run(request, {**params, **captured}, handle)

    # ------------------------------------------------------------------
    # URL generation
    # ------------------------------------------------------------------

    def generate_url(
        self,
        name: str,
        params: Optional[Mapping[str, Any]] = None,
        absolute: bool = False,
        request: Optional["Request"] = None,
    ) -> str:
        """
        Build the URL of a named route.

        Values are percent-encoded and substituted textually; they are not
        checked against the route's schema.

        Raises:
            RouteNotFound: Unknown route name
            MissingRouteParameter: A placeholder has no value
        """
        self.ensure_routes_loaded()

        route = self._named.get(name)
        if route is None:
            raise RouteNotFound(f"Route '{name}' not found")

        params = params or {}
        parts: List[str] = []
        for token in tokenize(route.pattern):
            if not token.is_param:
                parts.append(token.value)
                continue
            value = params.get(token.value)
            if value is None:
                raise MissingRouteParameter(name, token.value)
            parts.append(quote(str(value), safe=""))

        url = "".join(parts) or "/"
        if not absolute:
            return url

        if request is not None:
            base = request.url_root
        else:
            base = self.base_url or "http://localhost"
        return base.rstrip("/") + url

    url_for = generate_url

    # ------------------------------------------------------------------
    # Registry state and persistence
    # ------------------------------------------------------------------

    @property
    def routes(self) -> List[Route]:
        """Registered routes in registration order."""
        return list(self._routes)

    @property
    def named_routes(self) -> Dict[str, Route]:
        return dict(self._named)

    def reset(self) -> None:
        """Clear routes, names and the match cache."""
        self._routes.clear()
        self._named.clear()
        self._cache.clear()

    def ensure_routes_loaded(self) -> None:
        """Load persisted routes the first time they are needed."""
        if self.persist_routes and not self._routes_loaded:
            self.load_routes()

    def load_routes(self) -> int:
        """
        Load routes from the route table.

        Returns:
            Number of rows registered

        Raises:
            RuntimeError: If no route table is configured
        """
        if self.route_table is None:
            raise RuntimeError("No route table configured")
        self._routes_loaded = True
        return RouteLoader(self.route_table, self.logger).load(self)

    def ensure_essential_routes(self) -> None:
        """Add a root route and a GET catch-all route if either is missing."""
        if not any(r.method == "GET" and r.pattern == "/" for r in self._routes):
            self._add(
                "GET", "/", None,
                name=HOME_DEFAULT, middleware=None, params=None, schema=None, group=ROOT_GROUP,
            )
            self.logger.info("Synthesized root route", name=HOME_DEFAULT)

        if not any(r.is_catch_all for r in self._routes):
            self._add(
                "GET", CATCH_ALL_PATTERN, None,
                name=CATCH_ALL_FALLBACK, middleware=None, params=None, schema=None, group=ROOT_GROUP,
            )
            self.logger.info("Synthesized catch-all route", name=CATCH_ALL_FALLBACK)

    def persist_route(
        self,
        method: str,
        pattern: str,
        handler: Any = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> "Router":
        """
        Store a route in the route table, replacing a row with the same
        method and pattern.

        Once persisted routes are loaded the route is registered on this
        router as well, outside any open group, exactly as stored.

        Raises:
            RuntimeError: If no route table is configured
            ValueError: For inline handlers, which cannot be stored
        """
        if self.route_table is None:
            raise RuntimeError("No route table configured")

        row = {
            "method": self._method(method),
            "pattern": normalize_template(pattern),
            "handler": handler_to_string(parse_handler(handler)),
            "options": encode_options(options),
        }
        self.route_table.upsert(row)
        self.logger.info("Route persisted", method=row["method"], pattern=row["pattern"])

        if self._routes_loaded:
            stored = dict(options or {})
            self._add(
                row["method"],
                row["pattern"],
                handler,
                name=stored.get("name"),
                middleware=stored.get("middleware"),
                params=stored.get("params"),
                schema=stored.get("schema"),
                group=ROOT_GROUP,
            )
        return self

    def __len__(self) -> int:
        return len(self._routes)

    def __repr__(self) -> str:
        return f"<Router routes={len(self._routes)}>"


__all__ = [
    "HTTPMethod",
    "Route",
    "RouteMatch",
    "GroupContext",
    "ROOT_GROUP",
    "HOME_DEFAULT",
    "HOME_IMPLICIT",
    "CONTENT_ROUTE",
    "join_paths",
    "Router",
]
