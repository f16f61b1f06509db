"""Scheduled job definitions.

Provides:
- CacheSweepJob: Remove expired result cache entries in the background

Usage:
    job = CacheSweepJob(cache)
    await job()
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from medsearch.observability.context import clear_correlation_id, set_correlation_id
from medsearch.observability.logging import bind_context, clear_context, get_logger
from medsearch.services.cache_service import ResultCache

logger = get_logger("scheduler")


class BaseJob(ABC):
    """Base class for scheduled jobs.

    Provides correlation ID management, error logging and run statistics.
    """

    def __init__(self, name: str):
        self.name = name
        self.last_run: Optional[datetime] = None
        self.last_success: Optional[datetime] = None
        self.run_count: int = 0
        self.error_count: int = 0

    async def __call__(self) -> Any:
        """Execute the job with correlation ID and error handling."""
        start = time.monotonic()
        corr_id = set_correlation_id(
            f"{self.name}-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}"
        )
        bind_context(job_name=self.name)

        try:
            result = await self.run()

            self.last_run = datetime.now(timezone.utc)
            self.last_success = self.last_run
            self.run_count += 1

            logger.debug(
                "job_completed",
                duration_seconds=round(time.monotonic() - start, 3),
                correlation_id=corr_id,
            )
            return result

        except Exception as e:
            self.last_run = datetime.now(timezone.utc)
            self.error_count += 1

            logger.error(
                "job_failed",
                error=str(e),
                correlation_id=corr_id,
                exc_info=True,
            )
            raise

        finally:
            clear_context()
            clear_correlation_id()

    @abstractmethod
    async def run(self) -> Any:
        """Execute the job logic."""
        pass  # pragma: no cover (abstract method)

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_success": (
                self.last_success.isoformat() if self.last_success else None
            ),
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


class CacheSweepJob(BaseJob):
    """Remove expired entries so idle keys do not hold memory until read."""

    def __init__(self, cache: ResultCache):
        super().__init__("cache_sweep")
        self.cache = cache

    async def run(self) -> int:
        removed = self.cache.sweep_expired()
        if removed:
            logger.info("cache_sweep_completed", removed=removed, remaining=len(self.cache))
        return removed
