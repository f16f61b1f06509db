"""Shared CLI utilities.

Provides common functionality for all CLI commands.
"""

import functools
from pathlib import Path
from typing import Callable, TypeVar

import structlog
import typer

from medsearch.models.config import OrchestratorConfig
from medsearch.observability.logging import configure_logging
from medsearch.services.config_manager import ConfigManager
from medsearch.utils.exceptions import ConfigValidationError

# Interactive use: keep the terminal for results, logs only on trouble
configure_logging(level="WARNING", json_output=False)
logger = structlog.get_logger()

F = TypeVar("F", bound=Callable)


def load_config(config_path: Path) -> OrchestratorConfig:
    """Load and validate configuration.

    Args:
        config_path: Path to configuration file.

    Returns:
        Validated OrchestratorConfig.

    Raises:
        typer.Exit: If configuration is missing or invalid.
    """
    config_manager = ConfigManager(config_path=str(config_path))
    try:
        return config_manager.load_config()
    except (FileNotFoundError, ConfigValidationError) as e:
        typer.secho(f"Configuration Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    Catches exceptions and displays user-friendly error messages.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except Exception as e:
            logger.exception("command_failed")
            typer.secho(f"Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def display_success(message: str) -> None:
    typer.secho(message, fg=typer.colors.GREEN)


def display_warning(message: str) -> None:
    typer.secho(message, fg=typer.colors.YELLOW)


def display_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)


def display_info(message: str) -> None:
    typer.secho(message, fg=typer.colors.CYAN)
