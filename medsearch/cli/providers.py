"""List configured providers."""

from pathlib import Path

import typer

from medsearch.cli.utils import display_info, handle_errors, load_config
from medsearch.services.config_manager import DEFAULT_CONFIG_PATH


@handle_errors
def providers_command(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config YAML"
    ),
):
    """Show configured providers in dispatch order."""
    config = load_config(config_path)

    display_info(f"{len(config.providers)} providers configured:")
    for spec in sorted(config.providers, key=lambda s: s.priority):
        state = "enabled" if spec.enabled else "disabled"
        typer.echo(
            f"  {spec.priority:>2}  {spec.name:<12} {state:<8} "
            f"timeout={spec.timeout_seconds:g}s"
        )
