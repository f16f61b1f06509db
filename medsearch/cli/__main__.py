"""CLI entry point.

Allows running the CLI as a module: python -m medsearch.cli
"""

from medsearch.cli import app

if __name__ == "__main__":
    app()
