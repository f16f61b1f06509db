"""Scheduling module: background maintenance for the API server.

Usage:
    from medsearch.scheduling import MaintenanceScheduler, CacheSweepJob

    scheduler = MaintenanceScheduler()
    scheduler.add_interval_job(CacheSweepJob(cache), job_id="cache_sweep", seconds=300)
    scheduler.start()
"""

from medsearch.scheduling.scheduler import MaintenanceScheduler
from medsearch.scheduling.jobs import BaseJob, CacheSweepJob

__all__ = [
    "MaintenanceScheduler",
    "BaseJob",
    "CacheSweepJob",
]
