"""
PostgreSQL store backed by psycopg (async).

Each operation opens its own connection and commits on exit, so every
product upsert and every ledger transition is an independent transaction.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from ..models import (
    LocalProduct,
    NotificationLog,
    SyncOperation,
    SyncRun,
    SyncStatus,
)
from .base import Store

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS sync_runs (
    id              TEXT PRIMARY KEY,
    operation       TEXT NOT NULL,
    status          TEXT NOT NULL DEFAULT 'pending',
    item_count      INTEGER NOT NULL DEFAULT 0,
    duration_ms     INTEGER,
    error_message   TEXT,
    metadata        JSONB,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS sync_runs_created_at_idx ON sync_runs (created_at);

CREATE TABLE IF NOT EXISTS products (
    id              BIGSERIAL PRIMARY KEY,
    external_id     TEXT NOT NULL UNIQUE,
    sku             TEXT,
    title           TEXT NOT NULL,
    description     TEXT,
    weight          DOUBLE PRECISION,
    quantity        INTEGER NOT NULL DEFAULT 0 CHECK (quantity >= 0),
    price           DOUBLE PRECISION,
    vendor          TEXT,
    product_type    TEXT,
    image_url       TEXT,
    tags            TEXT,
    status          TEXT NOT NULL DEFAULT 'active',
    last_synced_at  TIMESTAMPTZ
);
CREATE INDEX IF NOT EXISTS products_quantity_idx ON products (quantity);

CREATE TABLE IF NOT EXISTS notification_logs (
    id              TEXT PRIMARY KEY,
    kind            TEXT NOT NULL,
    recipient       TEXT NOT NULL,
    subject         TEXT NOT NULL,
    status          TEXT NOT NULL DEFAULT 'pending',
    error_message   TEXT,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS notification_logs_created_at_idx
    ON notification_logs (created_at);
"""

_PRODUCT_COLUMNS = (
    "external_id",
    "sku",
    "title",
    "description",
    "weight",
    "quantity",
    "price",
    "vendor",
    "product_type",
    "image_url",
    "tags",
    "status",
    "last_synced_at",
)


class PostgresStore(Store):
    """Store implementation over a PostgreSQL database."""

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL not configured")
        self.database_url = database_url

    async def _execute(
        self,
        query: str,
        params: Sequence[Any] = (),
        fetch: Optional[str] = None,
    ) -> Any:
        """Run one statement in its own transaction.

        fetch: "one", "all" or None (returns rowcount).
        """
        async with await psycopg.AsyncConnection.connect(
            self.database_url, row_factory=dict_row
        ) as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                if fetch == "one":
                    return await cur.fetchone()
                if fetch == "all":
                    return await cur.fetchall()
                return cur.rowcount

    async def init_schema(self) -> None:
        async with await psycopg.AsyncConnection.connect(self.database_url) as conn:
            await conn.execute(SCHEMA)
        logger.info("Database schema ready")

    # =========================================================================
    # Run ledger
    # =========================================================================

    async def create_run(self, operation: SyncOperation) -> SyncRun:
        row = await self._execute(
            """
            INSERT INTO sync_runs (id, operation, status, item_count)
            VALUES (%s, %s, %s, 0)
            RETURNING *
            """,
            (uuid.uuid4().hex, operation.value, SyncStatus.PENDING.value),
            fetch="one",
        )
        return _row_to_run(row)

    async def complete_run(
        self,
        run_id: str,
        item_count: int,
        duration_ms: int,
        metadata: Dict[str, int],
    ) -> bool:
        count = await self._execute(
            """
            UPDATE sync_runs
            SET status = %s, item_count = %s, duration_ms = %s, metadata = %s
            WHERE id = %s AND status = %s
            """,
            (
                SyncStatus.COMPLETED.value,
                item_count,
                duration_ms,
                Jsonb(metadata),
                run_id,
                SyncStatus.PENDING.value,
            ),
        )
        return count == 1

    async def fail_run(self, run_id: str, duration_ms: int, error_message: str) -> bool:
        count = await self._execute(
            """
            UPDATE sync_runs
            SET status = %s, duration_ms = %s, error_message = %s
            WHERE id = %s AND status = %s
            """,
            (
                SyncStatus.FAILED.value,
                duration_ms,
                error_message,
                run_id,
                SyncStatus.PENDING.value,
            ),
        )
        return count == 1

    async def get_run(self, run_id: str) -> Optional[SyncRun]:
        row = await self._execute(
            "SELECT * FROM sync_runs WHERE id = %s", (run_id,), fetch="one"
        )
        return _row_to_run(row) if row else None

    async def list_recent_runs(self, limit: int = 10) -> List[SyncRun]:
        rows = await self._execute(
            "SELECT * FROM sync_runs ORDER BY created_at DESC LIMIT %s",
            (limit,),
            fetch="all",
        )
        return [_row_to_run(r) for r in rows]

    async def delete_runs_before(self, cutoff: datetime) -> int:
        return await self._execute(
            "DELETE FROM sync_runs WHERE created_at < %s", (cutoff,)
        )

    # =========================================================================
    # Products
    # =========================================================================

    async def get_product(self, external_id: str) -> Optional[LocalProduct]:
        row = await self._execute(
            "SELECT * FROM products WHERE external_id = %s",
            (external_id,),
            fetch="one",
        )
        return _row_to_product(row) if row else None

    async def create_product(self, product: LocalProduct) -> LocalProduct:
        # A concurrent run may have inserted the same key since the lookup.
        columns = ", ".join(_PRODUCT_COLUMNS)
        placeholders = ", ".join(["%s"] * len(_PRODUCT_COLUMNS))
        updates = ", ".join(
            f"{c} = EXCLUDED.{c}" for c in _PRODUCT_COLUMNS if c != "external_id"
        )
        row = await self._execute(
            f"""
            INSERT INTO products ({columns})
            VALUES ({placeholders})
            ON CONFLICT (external_id) DO UPDATE SET {updates}
            RETURNING *
            """,
            _product_values(product),
            fetch="one",
        )
        return _row_to_product(row)

    async def update_product(self, product: LocalProduct) -> LocalProduct:
        assignments = ", ".join(
            f"{c} = %s" for c in _PRODUCT_COLUMNS if c != "external_id"
        )
        values = _product_values(product)[1:]
        row = await self._execute(
            f"UPDATE products SET {assignments} WHERE external_id = %s RETURNING *",
            (*values, product.external_id),
            fetch="one",
        )
        if row is None:
            raise LookupError(f"Product {product.external_id} not found")
        return _row_to_product(row)

    async def count_products(self, max_quantity: Optional[int] = None) -> int:
        if max_quantity is None:
            row = await self._execute("SELECT count(*) AS n FROM products", fetch="one")
        else:
            row = await self._execute(
                "SELECT count(*) AS n FROM products WHERE quantity <= %s",
                (max_quantity,),
                fetch="one",
            )
        return int(row["n"])

    async def list_low_stock(self, threshold: int, limit: int = 20) -> List[LocalProduct]:
        rows = await self._execute(
            """
            SELECT * FROM products
            WHERE quantity <= %s
            ORDER BY quantity ASC
            LIMIT %s
            """,
            (threshold, limit),
            fetch="all",
        )
        return [_row_to_product(r) for r in rows]

    # =========================================================================
    # Notification log
    # =========================================================================

    async def create_notification(self, entry: NotificationLog) -> NotificationLog:
        row = await self._execute(
            """
            INSERT INTO notification_logs
                (id, kind, recipient, subject, status, error_message)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING created_at
            """,
            (
                entry.id,
                entry.kind,
                entry.recipient,
                entry.subject,
                entry.status,
                entry.error_message,
            ),
            fetch="one",
        )
        entry.created_at = row["created_at"]
        return entry

    async def set_notification_status(
        self, log_id: str, status: str, error_message: Optional[str] = None
    ) -> None:
        await self._execute(
            "UPDATE notification_logs SET status = %s, error_message = %s WHERE id = %s",
            (status, error_message, log_id),
        )

    async def delete_notifications_before(self, cutoff: datetime) -> int:
        return await self._execute(
            "DELETE FROM notification_logs WHERE created_at < %s", (cutoff,)
        )


def _product_values(product: LocalProduct) -> tuple:
    last_synced = product.last_synced_at or datetime.now(timezone.utc)
    return (
        product.external_id,
        product.sku,
        product.title,
        product.description,
        product.weight,
        product.quantity,
        product.price,
        product.vendor,
        product.product_type,
        product.image_url,
        product.tags,
        product.status,
        last_synced,
    )


def _row_to_run(row: Dict[str, Any]) -> SyncRun:
    return SyncRun(
        id=row["id"],
        operation=SyncOperation(row["operation"]),
        status=SyncStatus(row["status"]),
        item_count=row["item_count"],
        duration_ms=row["duration_ms"],
        error_message=row["error_message"],
        metadata=row["metadata"],
        created_at=row["created_at"],
    )


def _row_to_product(row: Dict[str, Any]) -> LocalProduct:
    return LocalProduct(id=row["id"], **{c: row[c] for c in _PRODUCT_COLUMNS})
