"""Run ledger access: opens and closes SyncRun rows for the orchestrator."""

from __future__ import annotations

import logging
import time
from typing import Optional

from .exceptions import LedgerWriteError
from .models import SyncOperation, SyncOutcome, SyncRun
from .store.base import Store

logger = logging.getLogger(__name__)


class RunLedger:
    """Thin wrapper turning store failures into LedgerWriteError."""

    def __init__(self, store: Store):
        self.store = store

    async def open(self, operation: SyncOperation) -> SyncRun:
        try:
            run = await self.store.create_run(operation)
        except Exception as e:
            raise LedgerWriteError(f"Failed to create sync run: {e}") from e
        logger.info(f"Opened sync run {run.id} ({operation.value})")
        return run

    async def complete(self, run: SyncRun, outcome: SyncOutcome, duration_ms: int) -> None:
        try:
            updated = await self.store.complete_run(
                run.id,
                item_count=outcome.item_count,
                duration_ms=duration_ms,
                metadata=outcome.as_dict(),
            )
        except Exception as e:
            raise LedgerWriteError(f"Failed to complete sync run {run.id}: {e}") from e
        if not updated:
            raise LedgerWriteError(f"Sync run {run.id} is no longer pending")

    async def fail(self, run: SyncRun, error_message: str, duration_ms: int) -> None:
        try:
            updated = await self.store.fail_run(
                run.id, duration_ms=duration_ms, error_message=error_message
            )
        except Exception as e:
            raise LedgerWriteError(f"Failed to mark sync run {run.id} failed: {e}") from e
        if not updated:
            raise LedgerWriteError(f"Sync run {run.id} is no longer pending")

    async def get(self, run_id: str) -> Optional[SyncRun]:
        return await self.store.get_run(run_id)


def elapsed_ms(started: float) -> int:
    """Milliseconds since a time.monotonic() reading."""
    return int((time.monotonic() - started) * 1000)
