"""Serve command: run the HTTP API."""

from pathlib import Path

import typer

from medsearch.cli.utils import display_info, handle_errors, load_config
from medsearch.observability.logging import configure_logging
from medsearch.services.config_manager import DEFAULT_CONFIG_PATH


@handle_errors
def serve_command(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config YAML"
    ),
    host: str = typer.Option("0.0.0.0", "--host", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
):
    """Run the search API server."""
    config = load_config(config_path)
    configure_logging(
        level=config.logging.level.value,
        json_output=config.logging.json_output,
    )

    # Deferred so plain CLI searches do not import the web stack
    from medsearch.api import run_server

    display_info(f"Starting API server on {host}:{port}")
    run_server(config, host=host, port=port)
