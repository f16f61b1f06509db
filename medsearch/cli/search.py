"""Search command.

Runs one search through the orchestrator and prints the merged results.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from medsearch.cli.utils import (
    display_error,
    display_info,
    display_success,
    display_warning,
    handle_errors,
    load_config,
)
from medsearch.models.search import OrchestrationResult, Recency
from medsearch.orchestration import build_orchestrator
from medsearch.services.config_manager import DEFAULT_CONFIG_PATH
from medsearch.utils.exceptions import InvalidRequestError, NoProvidersAvailableError


@handle_errors
def search_command(
    query: str = typer.Argument(..., help="Search query"),
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config YAML"
    ),
    provider: Optional[List[str]] = typer.Option(
        None, "--provider", "-p", help="Restrict to provider (repeatable)"
    ),
    sequential: bool = typer.Option(
        False, "--sequential", help="Query providers one at a time by priority"
    ),
    no_aggregate: bool = typer.Option(
        False, "--no-aggregate", help="Return only the best provider's results"
    ),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Page size"),
    offset: int = typer.Option(0, "--offset", help="Results to skip"),
    specialty: Optional[str] = typer.Option(None, "--specialty"),
    evidence_level: Optional[List[str]] = typer.Option(
        None, "--evidence-level", help="Keep only these evidence levels (repeatable)"
    ),
    content_type: Optional[List[str]] = typer.Option(
        None, "--content-type", help="Keep only these content types (repeatable)"
    ),
    recency: Optional[Recency] = typer.Option(None, "--recency"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON envelope"),
):
    """Search all configured providers and print merged results."""
    config = load_config(config_path)

    filters: Dict[str, Any] = {
        "limit": limit if limit is not None else config.search.default_limit,
        "offset": offset,
    }
    if specialty:
        filters["specialty"] = specialty
    if evidence_level:
        filters["evidenceLevel"] = evidence_level
    if content_type:
        filters["contentType"] = content_type
    if recency:
        filters["recency"] = recency.value

    request = {
        "q": query,
        "providers": provider or [],
        "parallel": not sequential,
        "aggregateResults": not no_aggregate,
        "filters": filters,
    }

    orchestrator = build_orchestrator(config)
    try:
        result = asyncio.run(orchestrator.search(request))
    except (InvalidRequestError, NoProvidersAvailableError) as e:
        display_error(str(e))
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result.to_response(), indent=2))
        return

    _display_result(result)


def _display_result(result: OrchestrationResult) -> None:
    for response in result.providers:
        if response.success:
            display_info(
                f"{response.provider}: {len(response.results)} results "
                f"in {response.search_time_ms}ms"
            )
        else:
            display_warning(f"{response.provider}: failed ({response.error})")

    if not result.results:
        display_warning("No results found.")
        return

    source = "cache" if result.cache_hit else f"best provider: {result.best_provider}"
    display_success(
        f"\n{result.aggregated_count} results "
        f"({result.duplicates_removed} duplicates removed, {source}, "
        f"{result.total_search_time_ms}ms)\n"
    )

    for index, item in enumerate(result.results, start=1):
        typer.echo(f"{index:>3}. {item.title}")
        typer.echo(f"     {item.url}")
        labels = [
            label
            for label in (item.evidence_level, item.content_type, item.specialty)
            if label
        ]
        meta = f"     [{item.provider}] score={item.relevance_score:.2f}"
        if labels:
            meta += " " + ", ".join(labels)
        typer.echo(meta)
