"""
Tests for WebhookNotifier and the low-stock job.
"""

import json

import httpx
import pytest

from catalogsync.config import NotifierConfig
from catalogsync.jobs.low_stock import run_low_stock_check
from catalogsync.models import LocalProduct, SyncOperation
from catalogsync.notifier import WebhookNotifier

WEBHOOK = "https://hooks.example.com/catalog"


def _notifier(store, handler, **overrides) -> WebhookNotifier:
    values = {"webhook_url": WEBHOOK, "recipients": ["ops@example.com", "buyer@example.com"]}
    values.update(overrides)
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookNotifier(store, NotifierConfig(**values), http_client=http)


def _ok(request):
    return httpx.Response(200)


class TestRunReport:
    """Test sync report delivery."""

    @pytest.mark.asyncio
    async def test_posts_run_summary_per_recipient(self, store):
        run = await store.create_run(SyncOperation.MANUAL)
        await store.complete_run(run.id, 5, 120, {"synced": 2, "updated": 3, "failed": 0})
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200)

        result = await _notifier(store, handler).send_run_report(run.id)

        assert result.success is True
        assert sorted(b["to"] for b in bodies) == ["buyer@example.com", "ops@example.com"]
        assert bodies[0]["subject"] == "Sync Report - manual COMPLETED"
        assert bodies[0]["run"]["item_count"] == 5
        assert {n.status for n in store.notifications.values()} == {"sent"}

    @pytest.mark.asyncio
    async def test_unknown_run(self, store):
        result = await _notifier(store, _ok).send_run_report("missing")
        assert result.success is False
        assert result.error == "Sync run not found"

    @pytest.mark.asyncio
    async def test_no_recipients(self, store):
        run = await store.create_run(SyncOperation.MANUAL)
        result = await _notifier(store, _ok, recipients=[]).send_run_report(run.id)
        assert result.success is False
        assert "recipients" in result.error

    @pytest.mark.asyncio
    async def test_partial_delivery_failure(self, store):
        run = await store.create_run(SyncOperation.SCHEDULED)

        def handler(request):
            to = json.loads(request.content)["to"]
            return httpx.Response(500 if to.startswith("buyer") else 200)

        result = await _notifier(store, handler).send_run_report(run.id)

        assert result.success is False
        assert result.error == "Failed to send 1 out of 2 notifications"
        assert result.details["failed_recipients"] == ["buyer@example.com"]
        statuses = sorted(n.status for n in store.notifications.values())
        assert statuses == ["failed", "sent"]

    @pytest.mark.asyncio
    async def test_store_error_returns_failure(self, store):
        async def broken(run_id):
            raise RuntimeError("db gone")

        store.get_run = broken
        result = await _notifier(store, _ok).send_run_report("x")
        assert result.success is False
        assert result.error == "db gone"


class TestLowStockReport:
    """Test low-stock alerts."""

    @pytest.mark.asyncio
    async def test_nothing_to_report(self, store):
        result = await _notifier(store, _ok).send_low_stock_report(10)
        assert result.success is True
        assert result.message == "No low stock items to report"
        assert store.notifications == {}

    @pytest.mark.asyncio
    async def test_lists_lowest_stock_first(self, store):
        for ext_id, qty in (("1", 50), ("2", 3), ("3", 0), ("4", 10)):
            await store.create_product(LocalProduct(external_id=ext_id, title=ext_id, quantity=qty))
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200)

        result = await _notifier(store, handler, recipients=["ops@example.com"]).send_low_stock_report(10)

        assert result.success is True
        assert [p["quantity"] for p in bodies[0]["products"]] == [0, 3, 10]
        assert bodies[0]["subject"] == "Low Stock Alert - 3 items need restocking"

    @pytest.mark.asyncio
    async def test_job_passes_threshold(self, notifier):
        result = await run_low_stock_check(notifier, threshold=4)
        assert result.success is True
        assert notifier.low_stock_reports == [4]
