"""
Sync Orchestrator.

Drives one end-to-end synchronization run:

    ledger open (pending) -> fetch all pages -> reconcile -> ledger close
    (completed | failed) -> best-effort run report

Fetch-phase errors fail the run. Per-record errors only raise the failed
count. Notification problems are logged and never change the run status.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Set

from .catalog.client import CatalogClient
from .exceptions import LedgerWriteError, NotificationError, SyncError, SyncInProgressError
from .ledger import RunLedger, elapsed_ms
from .models import SyncOperation, SyncOutcome, SyncRun
from .notifier import Notifier
from .reconcile import Reconciler
from .store.base import Store

logger = logging.getLogger(__name__)

CatalogFactory = Callable[[], CatalogClient]

CANCELLED_MESSAGE = "Cancelled during shutdown"


class SyncOrchestrator:
    """Runs catalog synchronizations and records each one in the ledger."""

    def __init__(
        self,
        store: Store,
        catalog_factory: CatalogFactory,
        notifier: Optional[Notifier] = None,
        allow_concurrent_runs: bool = True,
    ):
        self.store = store
        self.ledger = RunLedger(store)
        self.reconciler = Reconciler(store)
        self.catalog_factory = catalog_factory
        self.notifier = notifier
        self.allow_concurrent_runs = allow_concurrent_runs
        self._active: Set[object] = set()

    @property
    def active_runs(self) -> int:
        return len(self._active)

    async def wait_idle(self, timeout: float, poll_interval: float = 0.1) -> bool:
        """Wait for in-flight runs to finish. False if some are still running."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self._active:
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(poll_interval)
        return True

    async def run_sync(self, operation: SyncOperation = SyncOperation.MANUAL) -> SyncOutcome:
        """Run one synchronization.

        Returns:
            SyncOutcome with synced/updated/failed counts.

        Raises:
            SyncError: the run failed; the root cause is chained.
        """
        operation = SyncOperation(operation)

        # Checked and claimed without awaiting in between.
        if not self.allow_concurrent_runs and self._active:
            raise SyncInProgressError("A sync run is already in progress")
        claim = object()
        self._active.add(claim)

        try:
            started = time.monotonic()
            try:
                run = await self.ledger.open(operation)
            except LedgerWriteError as e:
                logger.error(f"Sync not started: {e}")
                raise SyncError(str(e)) from e
            return await self._execute(run, started)
        finally:
            self._active.discard(claim)

    async def _execute(self, run: SyncRun, started: float) -> SyncOutcome:
        try:
            outcome = await self._fetch_and_reconcile()
        except asyncio.CancelledError:
            logger.warning(f"Sync run {run.id} cancelled")
            try:
                await self.ledger.fail(run, CANCELLED_MESSAGE, elapsed_ms(started))
            except LedgerWriteError as ledger_error:
                logger.error(f"Could not record cancellation of run {run.id}: {ledger_error}")
            raise
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"Sync run {run.id} failed: {message}")
            try:
                await self.ledger.fail(run, message, elapsed_ms(started))
            except LedgerWriteError as ledger_error:
                logger.error(f"Could not record failure of run {run.id}: {ledger_error}")
                raise SyncError(str(ledger_error), run_id=run.id) from ledger_error
            await self._notify(run)
            raise SyncError(message, run_id=run.id) from e

        try:
            await self.ledger.complete(run, outcome, elapsed_ms(started))
        except LedgerWriteError as e:
            logger.error(f"Could not record completion of run {run.id}: {e}")
            raise SyncError(str(e), run_id=run.id) from e

        outcome.run_id = run.id
        logger.info(
            f"Sync run {run.id} completed: synced={outcome.synced} "
            f"updated={outcome.updated} failed={outcome.failed}"
        )
        await self._notify(run)
        return outcome

    async def _fetch_and_reconcile(self) -> SyncOutcome:
        async with self.catalog_factory() as catalog:
            records = await catalog.fetch_all()
        return await self.reconciler.reconcile(records)

    async def _notify(self, run: SyncRun) -> None:
        """Send the run report. Never raises."""
        if self.notifier is None:
            return
        try:
            result = await self.notifier.send_run_report(run.id)
            if not result.success:
                raise NotificationError(result.error or "unknown error")
        except Exception as e:
            logger.error(f"Failed to send sync report for run {run.id}: {e}")
