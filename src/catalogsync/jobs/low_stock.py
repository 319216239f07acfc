"""Low-stock alert job. Runs daily at 09:00 UTC (job "low-stock-daily")."""

from __future__ import annotations

import logging

from ..models import NotificationResult
from ..notifier import Notifier

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 10


async def run_low_stock_check(
    notifier: Notifier, threshold: int = DEFAULT_THRESHOLD
) -> NotificationResult:
    """Ask the notifier to report products at or below threshold."""
    result = await notifier.send_low_stock_report(threshold)
    if result.success:
        logger.info("Low stock check complete: %s", result.message)
    else:
        logger.warning("Low stock alert not delivered: %s", result.error)
    return result


__all__ = ["run_low_stock_check", "DEFAULT_THRESHOLD"]
