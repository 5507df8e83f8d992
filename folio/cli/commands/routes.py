"""
Folio CLI Route Commands
========================

Inspect the effective route table of a site.

- ``routes``: list routes in matching order
- ``match``: show which route a method and path resolve to
- ``url``: generate the URL of a named route
"""

from __future__ import annotations

import sys
from typing import Dict, List, Sequence, Tuple

from folio.core.exceptions import RouteNotFound
from folio.core.handlers import ContentFallback
from folio.core.router import Route, Router


def list_routes(router: Router) -> int:
    """
    Print all registered routes.

    Returns:
        Exit code
    """
    router.ensure_routes_loaded()
    routes = [_describe(route) for route in router.routes]

    if not routes:
        print("No routes found")
        return 0

    _print_routes(routes)
    return 0


def match_route(router: Router, method: str, path: str) -> int:
    """
    Print the route ``method path`` resolves to.

    Returns:
        0 on a match, 1 otherwise
    """
    found = router.match(method, path)
    if found is None:
        print(f"No route matches {method.upper()} {path}", file=sys.stderr)
        return 1

    route = found.route
    print(f"Route:   {route.method} {route.pattern}")
    print(f"Name:    {route.name or '-'}")
    print(f"Handler: {_handler_name(route)}")
    for key, value in found.params.items():
        print(f"  {key} = {value}")
    return 0


def generate_url(router: Router, name: str, pairs: Sequence[str], absolute: bool = False) -> int:
    """
    Print the URL of a named route.

    Args:
        pairs: ``key=value`` parameter assignments

    Returns:
        Exit code
    """
    params: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            print(f"Error: expected key=value, got '{pair}'", file=sys.stderr)
            return 2
        params[key] = value

    try:
        print(router.generate_url(name, params, absolute=absolute))
    except RouteNotFound as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def _describe(route: Route) -> Tuple[str, str, str, str]:
    return (route.method, route.pattern, route.name or "", _handler_name(route))


def _handler_name(route: Route) -> str:
    if isinstance(route.handler, ContentFallback):
        return "(content)"
    return str(route.handler)


def _print_routes(routes: List[Tuple[str, str, str, str]]) -> None:
    """Print routes in a formatted table."""
    method_width = max(max(len(r[0]) for r in routes), 6)
    path_width = max(max(len(r[1]) for r in routes), 4)
    name_width = max(max((len(r[2]) for r in routes), default=0), 4)

    header = f"{'Method':<{method_width}}  {'Path':<{path_width}}  {'Name':<{name_width}}  Handler"
    print(header)
    print("-" * len(header))

    for method, path, name, handler in routes:
        method_display = _colorize_method(method, method_width)
        print(f"{method_display}  {path:<{path_width}}  {name:<{name_width}}  {handler}")

    print()
    print(f"Total: {len(routes)} routes")


def _colorize_method(method: str, width: int) -> str:
    """Add ANSI colors to HTTP method."""
    colors = {
        "GET": "\033[92m",     # Green
        "POST": "\033[93m",    # Yellow
        "PUT": "\033[94m",     # Blue
        "PATCH": "\033[96m",   # Cyan
        "DELETE": "\033[91m",  # Red
        "HEAD": "\033[95m",    # Magenta
        "OPTIONS": "\033[90m", # Gray
    }

    reset = "\033[0m"
    color = colors.get(method, "")

    if color and sys.stdout.isatty():
        return f"{color}{method:<{width}}{reset}"

    return f"{method:<{width}}"
