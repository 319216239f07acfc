"""Shared fixtures: in-memory store, fake catalog and recording notifier."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

import pytest

from catalogsync.models import (
    LocalProduct,
    NotificationLog,
    NotificationResult,
    SyncOperation,
    SyncRun,
    SyncStatus,
)
from catalogsync.notifier import Notifier
from catalogsync.store.base import Store


class FakeStore(Store):
    """Dict-backed Store with hooks for injecting failures."""

    def __init__(self):
        self.runs: Dict[str, SyncRun] = {}
        self.products: Dict[str, LocalProduct] = {}
        self.notifications: Dict[str, NotificationLog] = {}
        self.fail_writes_for: Set[str] = set()
        self.fail_create_run = False
        self.fail_close_run = False
        self.product_writes = 0

    async def create_run(self, operation: SyncOperation) -> SyncRun:
        if self.fail_create_run:
            raise RuntimeError("database unavailable")
        run = SyncRun(
            id=uuid.uuid4().hex,
            operation=operation,
            created_at=datetime.now(timezone.utc),
        )
        self.runs[run.id] = run
        return replace(run)

    def _close(self, run_id: str, **changes) -> bool:
        if self.fail_close_run:
            raise RuntimeError("database unavailable")
        run = self.runs.get(run_id)
        if run is None or run.status is not SyncStatus.PENDING:
            return False
        self.runs[run_id] = replace(run, **changes)
        return True

    async def complete_run(self, run_id, item_count, duration_ms, metadata) -> bool:
        return self._close(
            run_id,
            status=SyncStatus.COMPLETED,
            item_count=item_count,
            duration_ms=duration_ms,
            metadata=dict(metadata),
        )

    async def fail_run(self, run_id, duration_ms, error_message) -> bool:
        return self._close(
            run_id,
            status=SyncStatus.FAILED,
            duration_ms=duration_ms,
            error_message=error_message,
        )

    async def get_run(self, run_id: str) -> Optional[SyncRun]:
        run = self.runs.get(run_id)
        return replace(run) if run else None

    async def list_recent_runs(self, limit: int = 10) -> List[SyncRun]:
        newest_first = sorted(
            reversed(list(self.runs.values())),
            key=lambda r: r.created_at,
            reverse=True,
        )
        return [replace(r) for r in newest_first[:limit]]

    async def delete_runs_before(self, cutoff: datetime) -> int:
        old = [k for k, r in self.runs.items() if r.created_at < cutoff]
        for key in old:
            del self.runs[key]
        return len(old)

    async def get_product(self, external_id: str) -> Optional[LocalProduct]:
        product = self.products.get(external_id)
        return replace(product) if product else None

    def _write(self, product: LocalProduct) -> LocalProduct:
        if product.external_id in self.fail_writes_for:
            raise RuntimeError(f"write rejected for {product.external_id}")
        self.product_writes += 1
        existing = self.products.get(product.external_id)
        stored = replace(product, id=existing.id if existing else len(self.products) + 1)
        self.products[product.external_id] = stored
        return replace(stored)

    async def create_product(self, product: LocalProduct) -> LocalProduct:
        return self._write(product)

    async def update_product(self, product: LocalProduct) -> LocalProduct:
        if product.external_id not in self.products:
            raise LookupError(product.external_id)
        return self._write(product)

    async def count_products(self, max_quantity: Optional[int] = None) -> int:
        if max_quantity is None:
            return len(self.products)
        return sum(1 for p in self.products.values() if p.quantity <= max_quantity)

    async def list_low_stock(self, threshold: int, limit: int = 20) -> List[LocalProduct]:
        low = [p for p in self.products.values() if p.quantity <= threshold]
        return sorted(low, key=lambda p: p.quantity)[:limit]

    async def create_notification(self, entry: NotificationLog) -> NotificationLog:
        entry.created_at = entry.created_at or datetime.now(timezone.utc)
        self.notifications[entry.id] = entry
        return entry

    async def set_notification_status(self, log_id, status, error_message=None) -> None:
        entry = self.notifications[log_id]
        entry.status = status
        entry.error_message = error_message

    async def delete_notifications_before(self, cutoff: datetime) -> int:
        old = [k for k, n in self.notifications.items() if n.created_at < cutoff]
        for key in old:
            del self.notifications[key]
        return len(old)


class FakeCatalog:
    """Stands in for CatalogClient inside the orchestrator."""

    def __init__(
        self,
        records: Optional[List[Dict[str, Any]]] = None,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.records = records or []
        self.error = error
        self.gate = gate
        self.closed = False

    async def fetch_all(self) -> List[Dict[str, Any]]:
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.records)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True


class RecordingNotifier(Notifier):
    """Notifier that records calls and can be told to fail."""

    def __init__(self, result: Optional[NotificationResult] = None, raises: bool = False):
        self.result = result or NotificationResult(success=True, message="ok")
        self.raises = raises
        self.run_reports: List[str] = []
        self.low_stock_reports: List[int] = []

    async def send_run_report(self, run_id: str) -> NotificationResult:
        self.run_reports.append(run_id)
        if self.raises:
            raise RuntimeError("smtp down")
        return self.result

    async def send_low_stock_report(self, threshold: int) -> NotificationResult:
        self.low_stock_reports.append(threshold)
        if self.raises:
            raise RuntimeError("smtp down")
        return self.result


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll until predicate() is true, yielding to the event loop."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def make_product(product_id: int, **overrides) -> Dict[str, Any]:
    """Shopify-shaped product payload."""
    payload = {
        "id": product_id,
        "title": f"Product {product_id}",
        "body_html": "<p>desc</p>",
        "vendor": "Acme",
        "product_type": "Widget",
        "tags": "a, b",
        "variants": [
            {
                "id": product_id * 10,
                "product_id": product_id,
                "title": "Default",
                "sku": f"SKU-{product_id}",
                "price": "19.99",
                "weight": 1.5,
                "weight_unit": "kg",
                "inventory_quantity": 7,
                "inventory_item_id": product_id * 100,
            }
        ],
        "images": [{"id": 1, "product_id": product_id, "src": "https://cdn/img.jpg", "position": 1}],
        "created_at": "2026-01-01T00:00:00Z",
        "updated_at": "2026-01-02T00:00:00Z",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
