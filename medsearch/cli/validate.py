"""Validate command for configuration files."""

from pathlib import Path

import typer

from medsearch.services.config_manager import ConfigManager
from medsearch.cli.utils import handle_errors, display_success, display_error


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(..., help="Config file to validate"),
):
    """Validate configuration file syntax and semantics."""
    try:
        manager = ConfigManager(config_path=str(config_path))
        config = manager.load_config()
    except Exception as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    display_success("Configuration is valid!")
    typer.echo(
        f"  providers: {len(config.providers)} "
        f"({len(config.enabled_providers)} enabled)"
    )
    typer.echo(
        f"  cache: {config.cache.backend.value if config.cache.enabled else 'disabled'}"
    )
