"""
Run-outcome and low-stock notifications.

Notifier is the collaborator contract used by the orchestrator and the
low-stock job. WebhookNotifier delivers JSON reports over HTTP, one POST per
recipient, recording every attempt in the notification log.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from .config import NotifierConfig
from .models import LocalProduct, NotificationLog, NotificationResult, SyncRun
from .store.base import Store

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Best-effort reporting. Implementations return failures, never raise."""

    @abstractmethod
    async def send_run_report(self, run_id: str) -> NotificationResult:
        pass

    @abstractmethod
    async def send_low_stock_report(self, threshold: int) -> NotificationResult:
        pass


class WebhookNotifier(Notifier):
    """POSTs reports to a webhook endpoint on behalf of each recipient."""

    def __init__(
        self,
        store: Store,
        config: NotifierConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.store = store
        self.config = config
        self._http = http_client

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.config.timeout)
        return self._http

    async def send_run_report(self, run_id: str) -> NotificationResult:
        try:
            run = await self.store.get_run(run_id)
            if run is None:
                return NotificationResult(success=False, error="Sync run not found")

            subject = f"Sync Report - {run.operation.value} {run.status.value.upper()}"
            payload = {"type": "sync_report", "run": _run_summary(run)}
            return await self._deliver("sync_report", subject, payload)
        except Exception as e:
            logger.error(f"Error sending sync report: {e}")
            return NotificationResult(success=False, error=str(e))

    async def send_low_stock_report(self, threshold: int) -> NotificationResult:
        try:
            products = await self.store.list_low_stock(
                threshold, limit=self.config.low_stock_limit
            )
            if not products:
                return NotificationResult(
                    success=True, message="No low stock items to report"
                )

            subject = f"Low Stock Alert - {len(products)} items need restocking"
            payload = {
                "type": "low_stock",
                "threshold": threshold,
                "products": [_product_summary(p) for p in products],
            }
            return await self._deliver("low_stock", subject, payload)
        except Exception as e:
            logger.error(f"Error sending low stock alert: {e}")
            return NotificationResult(success=False, error=str(e))

    async def _deliver(
        self, kind: str, subject: str, payload: Dict[str, Any]
    ) -> NotificationResult:
        recipients = self.config.recipients
        if not recipients:
            return NotificationResult(
                success=False, error="No notification recipients configured"
            )
        if not self.config.webhook_url:
            return NotificationResult(
                success=False, error="No notification endpoint configured"
            )

        results = await asyncio.gather(
            *(self._send_one(kind, subject, r, payload) for r in recipients)
        )
        failed = [r for r, ok in zip(recipients, results) if not ok]

        if failed:
            return NotificationResult(
                success=False,
                error=f"Failed to send {len(failed)} out of {len(recipients)} notifications",
                details={"failed_recipients": failed},
            )
        return NotificationResult(
            success=True, message=f"{subject} sent to {len(recipients)} recipients"
        )

    async def _send_one(
        self, kind: str, subject: str, recipient: str, payload: Dict[str, Any]
    ) -> bool:
        entry = await self.store.create_notification(
            NotificationLog(
                id=uuid.uuid4().hex, kind=kind, recipient=recipient, subject=subject
            )
        )
        try:
            response = await self._client().post(
                self.config.webhook_url,
                json={"to": recipient, "subject": subject, **payload},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Notification to {recipient} failed: {e}")
            await self.store.set_notification_status(entry.id, "failed", str(e))
            return False

        await self.store.set_notification_status(entry.id, "sent")
        return True

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None


def _run_summary(run: SyncRun) -> Dict[str, Any]:
    return {
        "id": run.id,
        "operation": run.operation.value,
        "status": run.status.value,
        "item_count": run.item_count,
        "duration_ms": run.duration_ms,
        "error_message": run.error_message,
        "metadata": run.metadata,
        "created_at": run.created_at.isoformat() if run.created_at else None,
    }


def _product_summary(product: LocalProduct) -> Dict[str, Any]:
    return {
        "title": product.title,
        "sku": product.sku,
        "quantity": product.quantity,
        "price": product.price,
        "vendor": product.vendor,
    }


__all__: List[str] = ["Notifier", "WebhookNotifier"]
