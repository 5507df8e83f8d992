"""
Folio CLI Serve Command
=======================

Run a Folio site with uvicorn.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional


def run_server(
    target: Optional[str] = None,
    host: str = "127.0.0.1",
    port: int = 8000,
    reload: bool = False,
    config_dir: Optional[str] = None,
) -> int:
    """
    Serve an application.

    Args:
        target: ``module:attribute`` of the ASGI app; when omitted an
            ``app.py``/``main.py`` in the working directory is used, and
            failing that a FolioApp built from configuration
        host: Host to bind to
        port: Port to bind to
        reload: Enable auto-reload (needs an import string)
        config_dir: Configuration directory for the built-in app

    Returns:
        Exit code
    """
    import uvicorn

    target = target or _find_app_string()

    print("Starting Folio server...")
    print(f"  URL: http://{host}:{port}")

    if target is None:
        from folio.core.application import FolioApp
        from folio.core.config import Config

        config = Config()
        if config_dir:
            config.load_from_path(config_dir)
        else:
            config.load_env()
        print("  App: built-in (from configuration)")
        print()
        FolioApp(config=config).run(host=host, port=port)
        return 0

    print(f"  App: {target}")
    print(f"  Reload: {'enabled' if reload else 'disabled'}")
    print()

    server = uvicorn.Server(uvicorn.Config(target, host=host, port=port, reload=reload, log_level="info"))
    try:
        server.run()
    except KeyboardInterrupt:
        print("\nShutting down...")

    return 0


def _find_app_string() -> Optional[str]:
    """Find an ``app`` in the usual entry-point files."""
    for candidate in ("app.py", "main.py"):
        path = Path.cwd() / candidate
        if not path.exists():
            continue

        content = path.read_text(encoding="utf-8")
        for name in ("app", "application"):
            if f"{name} = " in content or f"{name}=" in content:
                return f"{path.stem}:{name}"
        print(f"Warning: {candidate} defines no 'app'", file=sys.stderr)

    return None
