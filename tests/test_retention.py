"""Tests for retention job logic."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from catalogsync.jobs.retention import retention_cutoff, run_retention
from catalogsync.models import NotificationLog, SyncOperation

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class TestRetentionCutoff:
    """Test the cutoff computation."""

    def test_thirty_days_back(self):
        assert retention_cutoff(30, NOW) == datetime(2026, 9, 17, 12, 0, tzinfo=timezone.utc)

    def test_zero_days_is_now(self):
        assert retention_cutoff(0, NOW) == NOW

    def test_negative_days_rejected(self):
        with pytest.raises(ValueError):
            retention_cutoff(-1, NOW)


class TestRunRetention:
    """Test deletion of old ledger and notification rows."""

    @pytest.mark.asyncio
    async def test_deletes_only_old_rows(self, store):
        old_run = await store.create_run(SyncOperation.SCHEDULED)
        new_run = await store.create_run(SyncOperation.MANUAL)
        store.runs[old_run.id].created_at = NOW - timedelta(days=31)
        store.runs[new_run.id].created_at = NOW - timedelta(days=29)

        await store.create_notification(
            NotificationLog(
                id="old", kind="sync_report", recipient="a@b.c", subject="s",
                created_at=NOW - timedelta(days=45),
            )
        )
        await store.create_notification(
            NotificationLog(
                id="new", kind="low_stock", recipient="a@b.c", subject="s",
                created_at=NOW - timedelta(days=1),
            )
        )

        result = await run_retention(store, retention_days=30, now=NOW)

        assert result["deleted_sync_runs"] == 1
        assert result["deleted_notifications"] == 1
        assert list(store.runs) == [new_run.id]
        assert list(store.notifications) == ["new"]
        assert result["duration_ms"] >= 0

    @pytest.mark.asyncio
    async def test_empty_store(self, store):
        result = await run_retention(store, now=NOW)
        assert result["deleted_sync_runs"] == 0
        assert result["deleted_notifications"] == 0
        assert result["retention_days"] == 30
