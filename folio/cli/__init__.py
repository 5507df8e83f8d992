"""
Folio CLI
=========

Command-line interface for Folio.

Commands:
- routes: List the effective route table
- match: Resolve a method and path
- url: Generate a named route's URL
- serve: Run the server
"""

from folio.cli.main import main, cli

__all__ = ["main", "cli"]
