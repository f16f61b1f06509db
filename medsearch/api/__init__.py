"""HTTP surface for the search orchestrator.

Usage:
    from medsearch.api import create_app
    app = create_app(config)
"""

from medsearch.api.server import create_app, run_server

__all__ = [
    "create_app",
    "run_server",
]
