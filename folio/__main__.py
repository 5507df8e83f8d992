"""
Folio CLI Entry Point
=====================

Allows running folio as a module: python -m folio
"""

from folio.cli.main import main

if __name__ == "__main__":
    main()
