"""
Named-job scheduler for sync and maintenance jobs.

Uses APScheduler's AsyncIOScheduler with cron triggers evaluated in UTC.
Each registered name maps to exactly one APScheduler job; handlers run as
independent tasks on the event loop and their failures are logged inside
the job wrapper, so a failing run never unschedules its job.

Usage:
    scheduler = JobScheduler(build_standing_jobs(orchestrator, notifier, store, config))
    scheduler.start()
    scheduler.restart_job("auto-sync-6h")
    scheduler.status()  # [{"name": "auto-sync-6h", "running": True}, ...]
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import SyncConfig
from .jobs.low_stock import run_low_stock_check
from .jobs.retention import run_retention
from .models import SyncOperation
from .notifier import Notifier
from .orchestrator import SyncOrchestrator
from .store.base import Store

logger = logging.getLogger(__name__)

SYNC_JOB = "auto-sync-6h"
LOW_STOCK_JOB = "low-stock-daily"
CLEANUP_JOB = "cleanup-weekly"

# Firings of one job may overlap; a slow run never swallows the next one.
MAX_OVERLAPPING_RUNS = 10
MISFIRE_GRACE_SECONDS = 300

Handler = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class Recurrence:
    """Cron-style recurrence, always in UTC."""

    minute: str = "0"
    hour: str = "*"
    day: str = "*"
    month: str = "*"
    day_of_week: str = "*"

    @property
    def cron(self) -> str:
        return f"{self.minute} {self.hour} {self.day} {self.month} {self.day_of_week}"

    def to_trigger(self) -> CronTrigger:
        return CronTrigger(
            minute=self.minute,
            hour=self.hour,
            day=self.day,
            month=self.month,
            day_of_week=self.day_of_week,
            timezone=timezone.utc,
        )


@dataclass
class JobSpec:
    """A recurrence paired with the work to do when it fires."""

    name: str
    recurrence: Recurrence
    handler: Handler
    description: str = ""


def _guarded(spec: JobSpec) -> Handler:
    """Wrap a handler so nothing escapes into APScheduler."""

    async def run() -> None:
        logger.info(f"Starting scheduled job: {spec.name}")
        try:
            result = await spec.handler()
        except Exception:
            logger.exception(f"Error in scheduled job {spec.name}")
            return
        logger.info(f"Scheduled job completed: {spec.name} {result!r}")

    return run


class JobScheduler:
    """Registry of named recurring jobs.

    The registry is guarded by a lock so start/stop/restart are atomic with
    respect to status() readers.
    """

    def __init__(self, jobs: List[JobSpec], scheduler: Optional[AsyncIOScheduler] = None):
        self._specs = list(jobs)
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._registry: Dict[str, JobSpec] = {}
        self._lock = threading.Lock()

    def start(self) -> None:
        """Start the standing jobs. Names already registered are skipped."""
        with self._lock:
            if not self._scheduler.running:
                self._scheduler.start()

            for spec in self._specs:
                if spec.name in self._registry:
                    logger.info(f"Job {spec.name} already exists, skipping")
                    continue

                self._scheduler.add_job(
                    _guarded(spec),
                    trigger=spec.recurrence.to_trigger(),
                    id=spec.name,
                    name=spec.description or spec.name,
                    coalesce=True,
                    max_instances=MAX_OVERLAPPING_RUNS,
                    misfire_grace_time=MISFIRE_GRACE_SECONDS,
                    replace_existing=True,
                )
                self._registry[spec.name] = spec
                logger.info(f"Scheduled job started: {spec.name} ({spec.recurrence.cron} UTC)")

    def stop(self) -> None:
        """Remove every job. Runs already in progress are left to finish."""
        with self._lock:
            for name in list(self._registry):
                try:
                    self._scheduler.remove_job(name)
                except JobLookupError:
                    logger.warning(f"Job {name} missing from scheduler")
                logger.info(f"Stopped job: {name}")
            self._registry.clear()

    def restart_job(self, name: str) -> bool:
        """Stop and start one job in place. False if no such job."""
        with self._lock:
            if name not in self._registry:
                return False
            self._scheduler.pause_job(name)
            self._scheduler.resume_job(name)
            logger.info(f"Restarted job: {name}")
            return True

    def status(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                {"name": name, "running": self._is_running(name)}
                for name in self._registry
            ]

    def shutdown(self) -> None:
        """Stop all jobs and the underlying scheduler (process exit)."""
        self.stop()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def _is_running(self, name: str) -> bool:
        job = self._scheduler.get_job(name)
        return getattr(job, "next_run_time", None) is not None


def build_standing_jobs(
    orchestrator: SyncOrchestrator,
    notifier: Notifier,
    store: Store,
    config: SyncConfig,
) -> List[JobSpec]:
    """Full sync, low-stock alert and retention cleanup."""
    sched = config.schedule

    async def scheduled_sync():
        outcome = await orchestrator.run_sync(SyncOperation.SCHEDULED)
        return outcome.as_dict()

    async def low_stock_alert():
        return await run_low_stock_check(notifier, config.low_stock_threshold)

    async def cleanup():
        return await run_retention(store, retention_days=config.retention_days)

    return [
        JobSpec(
            name=SYNC_JOB,
            recurrence=Recurrence(minute=sched.sync_minute, hour=sched.sync_hour),
            handler=scheduled_sync,
            description="Full catalog sync",
        ),
        JobSpec(
            name=LOW_STOCK_JOB,
            recurrence=Recurrence(minute=sched.low_stock_minute, hour=sched.low_stock_hour),
            handler=low_stock_alert,
            description="Daily low stock alert",
        ),
        JobSpec(
            name=CLEANUP_JOB,
            recurrence=Recurrence(
                minute=sched.cleanup_minute,
                hour=sched.cleanup_hour,
                day_of_week=sched.cleanup_day_of_week,
            ),
            handler=cleanup,
            description="Weekly ledger retention cleanup",
        ),
    ]
