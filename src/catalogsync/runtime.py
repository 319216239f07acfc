"""
Composition root.

Builds every component from a SyncConfig and passes them to each other
explicitly. The process entry point owns the returned Runtime.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass
from typing import Optional

from .catalog.client import CatalogClient
from .config import SyncConfig
from .control import OperatorControl
from .notifier import WebhookNotifier
from .orchestrator import SyncOrchestrator
from .scheduler import JobScheduler, build_standing_jobs
from .store.base import Store
from .store.postgres import PostgresStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    config: SyncConfig
    store: Store
    notifier: WebhookNotifier
    orchestrator: SyncOrchestrator
    scheduler: JobScheduler
    control: OperatorControl

    async def close(self) -> None:
        """Stop firing new jobs, let in-flight runs finish, then shut down."""
        self.scheduler.stop()
        timeout = self.config.shutdown_timeout
        if not await self.orchestrator.wait_idle(timeout):
            logger.warning(
                f"{self.orchestrator.active_runs} sync runs still active after {timeout}s, cancelling"
            )
        self.scheduler.shutdown()
        await self.notifier.close()
        await self.store.close()


def build_runtime(config: SyncConfig, store: Optional[Store] = None) -> Runtime:
    """Wire store, notifier, orchestrator, scheduler and control surface."""
    store = store or PostgresStore(config.database_url)
    notifier = WebhookNotifier(store, config.notifier)

    orchestrator = SyncOrchestrator(
        store=store,
        catalog_factory=lambda: CatalogClient(config.shopify),
        notifier=notifier,
        allow_concurrent_runs=config.allow_concurrent_runs,
    )
    scheduler = JobScheduler(build_standing_jobs(orchestrator, notifier, store, config))
    control = OperatorControl(scheduler, orchestrator, store)

    return Runtime(
        config=config,
        store=store,
        notifier=notifier,
        orchestrator=orchestrator,
        scheduler=scheduler,
        control=control,
    )


async def serve(config: SyncConfig) -> None:
    """Start the scheduler and run until SIGINT/SIGTERM."""
    runtime = build_runtime(config)
    await runtime.store.init_schema()
    runtime.scheduler.start()
    logger.info("Task scheduler started: %s", runtime.scheduler.status())

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _shutdown_handler():
        logger.info("Shutdown signal received, stopping scheduler...")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _shutdown_handler)

    try:
        await stop_event.wait()
    finally:
        await runtime.close()
        logger.info("Scheduler stopped.")


__all__ = ["Runtime", "build_runtime", "serve"]
