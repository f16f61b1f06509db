"""APScheduler wrapper for background maintenance jobs.

Runs inside the API server's event loop; started and stopped by the
application lifespan.

Usage:
    scheduler = MaintenanceScheduler()
    scheduler.add_interval_job(CacheSweepJob(cache), job_id="cache_sweep", seconds=300)
    scheduler.start()
    ...
    scheduler.shutdown()
"""

from typing import Any, Callable, Dict, List

from apscheduler.events import EVENT_JOB_ERROR, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from medsearch.observability.logging import get_logger

logger = get_logger("scheduler")


class MaintenanceScheduler:
    """Async scheduler for periodic maintenance jobs."""

    def __init__(
        self,
        timezone: str = "UTC",
        max_instances: int = 1,
        coalesce: bool = True,
    ):
        """Initialize scheduler.

        Args:
            timezone: Timezone for job scheduling
            max_instances: Max concurrent instances per job
            coalesce: Coalesce missed executions
        """
        self.scheduler = AsyncIOScheduler(
            timezone=timezone,
            job_defaults={
                "max_instances": max_instances,
                "coalesce": coalesce,
            },
        )
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def add_interval_job(self, func: Callable, job_id: str, seconds: int) -> str:
        """Run ``func`` every ``seconds`` seconds.

        Returns:
            Job ID
        """
        self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=job_id,
            replace_existing=True,
        )
        logger.info("job_added", job_id=job_id, interval_seconds=seconds)
        return job_id

    def get_jobs(self) -> List[Dict[str, Any]]:
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": str(next_run) if next_run else None,
                }
            )
        return jobs

    def start(self) -> None:
        """Start executing jobs. Requires a running event loop."""
        if self.scheduler.running:
            logger.warning("scheduler_already_running")
            return
        self.scheduler.start()
        logger.info("scheduler_started", jobs=len(self.scheduler.get_jobs()))

    def shutdown(self, wait: bool = False) -> None:
        if not self.scheduler.running:
            return
        self.scheduler.shutdown(wait=wait)
        logger.info("scheduler_stopped")

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        logger.error(
            "scheduled_job_error",
            job_id=event.job_id,
            error=str(event.exception),
        )
