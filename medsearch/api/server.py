"""FastAPI server exposing the search orchestrator.

Provides HTTP endpoints for:
- POST /search - Run a search (cached, fanned out, merged)
- GET /health - Liveness and component summary
- GET /providers - Configured providers
- GET /cache/stats - Result cache statistics
- DELETE /cache - Drop every cached result
- GET /metrics - Prometheus metrics in text format

Usage:
    from medsearch.api.server import create_app
    app = create_app(config)

    # Or blocking
    run_server(config, host="0.0.0.0", port=8000)
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse

from medsearch.models.config import OrchestratorConfig
from medsearch.observability.logging import get_logger
from medsearch.observability.metrics import get_metrics_content_type, get_metrics_text
from medsearch.orchestration import SearchOrchestrator, build_orchestrator
from medsearch.scheduling import CacheSweepJob, MaintenanceScheduler
from medsearch.utils.exceptions import InvalidRequestError, NoProvidersAvailableError

logger = get_logger("api")

API_TITLE = "MedSearch API"
API_VERSION = "1.0.0"


def create_app(
    config: Optional[OrchestratorConfig] = None,
    orchestrator: Optional[SearchOrchestrator] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Configuration (defaults apply when omitted).
        orchestrator: Pre-built orchestrator; built from ``config`` otherwise.

    Returns:
        Configured FastAPI application
    """
    config = config or OrchestratorConfig()
    orchestrator = orchestrator or build_orchestrator(config)
    scheduler = MaintenanceScheduler()

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # pragma: no cover
        logger.info("api_server_starting")
        if orchestrator.cache is not None:
            scheduler.add_interval_job(
                CacheSweepJob(orchestrator.cache),
                job_id="cache_sweep",
                seconds=config.cache.sweep_interval_seconds,
            )
            scheduler.start()
        yield
        scheduler.shutdown()
        logger.info("api_server_stopping")

    app = FastAPI(
        title=API_TITLE,
        version=API_VERSION,
        description="Multi-provider medical search orchestration",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator
    app.state.config = config

    @app.post(
        "/search",
        response_model=None,
        summary="Run a search",
        responses={
            200: {"description": "Search envelope (results may be empty)"},
            400: {"description": "Invalid query or filters"},
            503: {"description": "No enabled provider matches the request"},
        },
    )
    async def search(body: Any = Body(...)) -> Response:
        try:
            result = await orchestrator.search(body)
        except InvalidRequestError as e:
            return JSONResponse(
                content={"error": str(e)},
                status_code=status.HTTP_400_BAD_REQUEST,
            )
        except NoProvidersAvailableError as e:
            return JSONResponse(
                content={"error": str(e), "requested": e.requested},
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        except Exception as e:
            logger.error(
                "search_request_failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return JSONResponse(
                content={"error": "Search failed"},
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return JSONResponse(content=result.to_response(), status_code=status.HTTP_200_OK)

    @app.get("/health", response_model=None, summary="Health summary")
    async def health() -> Dict[str, Any]:
        return {
            "status": "healthy",
            "version": API_VERSION,
            "providers": [p.name for p in config.enabled_providers],
            "cache_enabled": orchestrator.cache is not None,
            "scheduler_running": scheduler.running,
        }

    @app.get("/providers", response_model=None, summary="Configured providers")
    async def providers() -> Dict[str, Any]:
        return {
            "providers": [
                p.model_dump(mode="json")
                for p in sorted(config.providers, key=lambda p: p.priority)
            ]
        }

    @app.get("/cache/stats", response_model=None, summary="Result cache statistics")
    async def cache_stats() -> Response:
        if orchestrator.cache is None:
            return JSONResponse(content={"enabled": False}, status_code=status.HTTP_200_OK)

        stats = orchestrator.cache.get_stats()
        content = stats.model_dump(mode="json")
        content["enabled"] = True
        content["hit_rate"] = round(stats.hit_rate, 4)
        return JSONResponse(content=content, status_code=status.HTTP_200_OK)

    @app.delete("/cache", response_model=None, summary="Clear the result cache")
    async def clear_cache() -> Dict[str, Any]:
        if orchestrator.cache is None:
            return {"cleared": False}
        orchestrator.cache.clear()
        logger.info("cache_cleared_via_api")
        return {"cleared": True}

    @app.get(
        "/metrics",
        response_class=PlainTextResponse,
        summary="Prometheus metrics",
    )
    async def prometheus_metrics() -> Response:
        return Response(
            content=get_metrics_text(),
            media_type=get_metrics_content_type(),
        )

    return app


def run_server(  # pragma: no cover
    config: OrchestratorConfig,
    host: str = "0.0.0.0",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Run the API server (blocking).

    Args:
        config: Validated configuration
        host: Host to bind to
        port: Port to bind to
        log_level: Uvicorn logging level
    """
    import uvicorn

    app = create_app(config)
    logger.info("api_server_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port, log_level=log_level)
