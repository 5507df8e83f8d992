"""
Folio CLI Main Module
=====================

Main CLI entry point with all commands.
"""

from __future__ import annotations

import argparse
import importlib
import sys
from typing import Any, List, Optional

from folio import __version__
from folio.core.config import Config
from folio.core.router import Router


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="folio",
        description="Folio flat-file CMS router",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  folio routes --table storage/routes.json       List the effective route table
  folio match GET /blog/hello --table routes.json
  folio url blog.show slug=hello --table routes.json
  folio serve site:app --port 8080               Serve an application
        """,
    )

    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"Folio {__version__}",
    )

    source = argparse.ArgumentParser(add_help=False)
    source.add_argument("--table", help="JSON route table to load")
    source.add_argument("--config", help="Configuration directory (app.py, {FOLIO_ENV}.py)")
    source.add_argument("--app", help="Application as module:attribute (uses its router)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Routes command
    subparsers.add_parser(
        "routes",
        parents=[source],
        help="List routes in matching order",
    )

    # Match command
    match_parser = subparsers.add_parser(
        "match",
        parents=[source],
        help="Show the route a request resolves to",
    )
    match_parser.add_argument("method", help="HTTP method")
    match_parser.add_argument("path", help="Request path")

    # Url command
    url_parser = subparsers.add_parser(
        "url",
        parents=[source],
        help="Generate the URL of a named route",
    )
    url_parser.add_argument("name", help="Route name")
    url_parser.add_argument("params", nargs="*", help="Parameters as key=value")
    url_parser.add_argument("--absolute", action="store_true", help="Prefix scheme and host")

    # Serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the server",
    )
    serve_parser.add_argument("target", nargs="?", help="ASGI app as module:attribute")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve_parser.add_argument("--config", help="Configuration directory for the built-in app")

    return parser


def cli(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    handlers = {
        "routes": handle_routes,
        "match": handle_match,
        "url": handle_url,
        "serve": handle_serve,
    }

    handler = handlers[parsed.command]
    try:
        return handler(parsed)
    except KeyboardInterrupt:
        print("\nAborted.")
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def build_router(args: argparse.Namespace) -> Router:
    """Router for the route commands, from ``--app`` or configuration."""
    if args.app:
        target = load_object(args.app)
        router = target if isinstance(target, Router) else getattr(target, "router", None)
        if not isinstance(router, Router):
            raise ValueError(f"'{args.app}' is neither a Router nor an object with a router")
        return router

    config = Config()
    if args.config:
        config.load_from_path(args.config)
    else:
        config.load_env()

    if args.table:
        config.set("router.table", args.table)
        config.set("router.persist", True)

    return Router.from_config(config)


def load_object(spec: str) -> Any:
    """Import ``module:attribute``."""
    module_name, sep, attribute = spec.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Expected module:attribute, got '{spec}'")

    module = importlib.import_module(module_name)
    try:
        return getattr(module, attribute)
    except AttributeError:
        raise ValueError(f"Module '{module_name}' has no attribute '{attribute}'") from None


def handle_routes(args: argparse.Namespace) -> int:
    """Handle routes command."""
    from folio.cli.commands.routes import list_routes
    return list_routes(build_router(args))


def handle_match(args: argparse.Namespace) -> int:
    """Handle match command."""
    from folio.cli.commands.routes import match_route
    return match_route(build_router(args), args.method, args.path)


def handle_url(args: argparse.Namespace) -> int:
    """Handle url command."""
    from folio.cli.commands.routes import generate_url
    return generate_url(build_router(args), args.name, args.params, args.absolute)


def handle_serve(args: argparse.Namespace) -> int:
    """Handle serve command."""
    from folio.cli.commands.serve import run_server
    return run_server(args.target, args.host, args.port, args.reload, args.config)


def main() -> None:
    """Main entry point."""
    sys.exit(cli())


if __name__ == "__main__":
    main()
