"""MedSearch CLI Package.

Usage:
    python -m medsearch.cli search "hypertension guidelines"
    python -m medsearch.cli search "asthma" --provider brave --sequential --json
    python -m medsearch.cli providers
    python -m medsearch.cli serve --port 8000
    python -m medsearch.cli validate config/medsearch.yaml
"""

import typer

from medsearch.cli.search import search_command
from medsearch.cli.serve import serve_command
from medsearch.cli.validate import validate_command
from medsearch.cli.providers import providers_command

app = typer.Typer(help="MedSearch: multi-provider medical search orchestration")

app.command(name="search")(search_command)
app.command(name="serve")(serve_command)
app.command(name="validate")(validate_command)
app.command(name="providers")(providers_command)

__all__ = [
    "app",
    "search_command",
    "serve_command",
    "validate_command",
    "providers_command",
]
