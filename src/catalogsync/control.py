"""
Operator control surface.

Transport-agnostic operations for whatever front end hosts the engine:
scheduler status/start/stop/restart, manual sync, recent runs and dashboard
stats. Failures are raised as ControlError carrying an HTTP-style status.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .exceptions import ControlError, SyncError, SyncInProgressError
from .models import SyncOperation, SyncRun, SyncStatus
from .orchestrator import SyncOrchestrator
from .scheduler import JobScheduler
from .store.base import Store

logger = logging.getLogger(__name__)

ACTIONS = ("start", "stop", "restart")


class OperatorControl:
    def __init__(
        self,
        scheduler: JobScheduler,
        orchestrator: SyncOrchestrator,
        store: Store,
    ):
        self.scheduler = scheduler
        self.orchestrator = orchestrator
        self.store = store

    def scheduler_status(self) -> Dict[str, Any]:
        return {"jobs": self.scheduler.status()}

    def scheduler_action(self, action: str, job_name: Optional[str] = None) -> Dict[str, Any]:
        if action == "start":
            self.scheduler.start()
            return {"message": "Scheduler started"}

        if action == "stop":
            self.scheduler.stop()
            return {"message": "Scheduler stopped"}

        if action == "restart":
            if not job_name:
                raise ControlError("Job name is required for restart action", 400)
            if not self.scheduler.restart_job(job_name):
                raise ControlError(f"Job {job_name} not found", 404)
            return {"message": f"Job {job_name} restarted"}

        raise ControlError("Invalid action", 400)

    async def trigger_sync(self) -> Dict[str, Any]:
        """Run a manual sync and report its outcome."""
        try:
            outcome = await self.orchestrator.run_sync(SyncOperation.MANUAL)
        except SyncInProgressError as e:
            raise ControlError(str(e), 409) from e
        except SyncError as e:
            logger.error(f"Manual sync failed: {e}")
            raise ControlError(str(e) or "Sync failed", 500) from e

        return {
            "message": "Sync completed successfully",
            "sync_id": outcome.run_id,
            "result": outcome.as_dict(),
        }

    async def recent_syncs(self, limit: int = 10) -> List[Dict[str, Any]]:
        runs = await self.store.list_recent_runs(limit=limit)
        return [_run_row(r) for r in runs]

    async def dashboard_stats(self, low_stock_threshold: int = 10) -> Dict[str, Any]:
        total = await self.store.count_products()
        low_stock = await self.store.count_products(max_quantity=low_stock_threshold)
        runs = await self.store.list_recent_runs(limit=1)
        last = runs[0] if runs else None

        return {
            "total_products": total,
            "low_stock_count": low_stock,
            "last_sync": last.created_at.isoformat() if last and last.created_at else None,
            "sync_status": last.status.value if last else SyncStatus.PENDING.value,
        }


def _run_row(run: SyncRun) -> Dict[str, Any]:
    return {
        "id": run.id,
        "operation": run.operation.value,
        "status": run.status.value,
        "item_count": run.item_count,
        "created_at": run.created_at.isoformat() if run.created_at else None,
    }
