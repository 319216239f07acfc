"""Tests for RunLedger state transitions."""

import pytest

from catalogsync.exceptions import LedgerWriteError
from catalogsync.ledger import RunLedger
from catalogsync.models import SyncOperation, SyncOutcome, SyncStatus


class TestRunLedger:
    @pytest.mark.asyncio
    async def test_open_creates_pending_run(self, store):
        run = await RunLedger(store).open(SyncOperation.MANUAL)
        assert store.runs[run.id].status is SyncStatus.PENDING

    @pytest.mark.asyncio
    async def test_complete_records_counts(self, store):
        ledger = RunLedger(store)
        run = await ledger.open(SyncOperation.SCHEDULED)

        await ledger.complete(run, SyncOutcome(synced=2, updated=1, failed=1), 40)

        stored = store.runs[run.id]
        assert stored.status is SyncStatus.COMPLETED
        assert stored.item_count == 3
        assert stored.metadata == {"synced": 2, "updated": 1, "failed": 1}

    @pytest.mark.asyncio
    async def test_terminal_run_cannot_move_again(self, store):
        ledger = RunLedger(store)
        run = await ledger.open(SyncOperation.MANUAL)
        await ledger.fail(run, "boom", 5)

        with pytest.raises(LedgerWriteError):
            await ledger.complete(run, SyncOutcome(), 5)
        assert store.runs[run.id].status is SyncStatus.FAILED

    @pytest.mark.asyncio
    async def test_store_error_is_wrapped(self, store):
        store.fail_create_run = True
        with pytest.raises(LedgerWriteError) as exc_info:
            await RunLedger(store).open(SyncOperation.MANUAL)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
