"""Ledger and notification-log retention job.

Background job that runs weekly to delete SyncRun and NotificationLog rows
older than the retention window (default: 30 days).

Schedule: Sundays at 02:00 UTC (job "cleanup-weekly")

Usage:
    from catalogsync.jobs.retention import run_retention

    result = await run_retention(store, retention_days=30)

    # Standalone (CLI)
    python -m catalogsync retention --days 30
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..store.base import Store

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


def retention_cutoff(retention_days: int, now: Optional[datetime] = None) -> datetime:
    """Rows created strictly before this instant are eligible for deletion."""
    if retention_days < 0:
        raise ValueError("retention_days must be >= 0")
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=retention_days)


async def run_retention(
    store: Store,
    *,
    retention_days: int = DEFAULT_RETENTION_DAYS,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Delete ledger and notification rows older than the retention window.

    Returns:
        Dict with stats: deleted_sync_runs, deleted_notifications, duration_ms.
    """
    start = time.monotonic()
    cutoff = retention_cutoff(retention_days, now)

    logger.info(
        "Retention job started: retention=%d days, cutoff=%s",
        retention_days,
        cutoff.isoformat(),
    )

    deleted_runs = await store.delete_runs_before(cutoff)
    deleted_notifications = await store.delete_notifications_before(cutoff)

    duration_ms = int((time.monotonic() - start) * 1000)

    result = {
        "retention_days": retention_days,
        "cutoff": cutoff.isoformat(),
        "deleted_sync_runs": deleted_runs,
        "deleted_notifications": deleted_notifications,
        "duration_ms": duration_ms,
    }

    logger.info(
        "Retention job complete: sync_runs=%d, notifications=%d, duration=%dms",
        deleted_runs,
        deleted_notifications,
        duration_ms,
    )
    return result


__all__ = ["run_retention", "retention_cutoff", "DEFAULT_RETENTION_DAYS"]
