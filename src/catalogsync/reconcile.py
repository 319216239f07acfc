"""
Reconciliation of remote catalog records against local storage.

Each record is normalized, looked up by external id, then created or updated.
Every record yields a tagged RecordOutcome; the batch tally is a fold over
those outcomes, so one bad record never aborts the rest.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from .exceptions import RecordReconciliationError
from .models import (
    LocalProduct,
    OutcomeKind,
    RecordOutcome,
    RemoteProduct,
    RemoteVariant,
    SyncOutcome,
)
from .store.base import Store

logger = logging.getLogger(__name__)


def _parse_price(raw: Optional[str]) -> Optional[float]:
    try:
        return float(raw) if raw not in (None, "") else None
    except (TypeError, ValueError):
        return None


def normalize_product(raw: Dict[str, Any], now: Optional[datetime] = None) -> LocalProduct:
    """Map a remote payload onto the LocalProduct shape.

    The first variant is the source of sku, price, weight and quantity. A
    product without variants gets a zero-valued placeholder.
    """
    external_id = raw.get("id") if isinstance(raw, dict) else None
    try:
        remote = RemoteProduct.model_validate(raw)
    except ValidationError as e:
        raise RecordReconciliationError(
            str(external_id) if external_id is not None else None,
            f"invalid payload ({e.error_count()} errors)",
        ) from e

    variant = remote.variants[0] if remote.variants else RemoteVariant()

    return LocalProduct(
        external_id=str(remote.id),
        sku=variant.sku or None,
        title=remote.title,
        description=remote.body_html or None,
        weight=variant.weight or None,
        quantity=max(variant.inventory_quantity, 0),
        price=_parse_price(variant.price),
        vendor=remote.vendor or None,
        product_type=remote.product_type or None,
        image_url=remote.images[0].src if remote.images else None,
        tags=remote.tags or None,
        status="active",
        last_synced_at=now or datetime.now(timezone.utc),
    )


def tally(outcomes: Iterable[RecordOutcome]) -> SyncOutcome:
    """Fold per-record outcomes into synced/updated/failed counts."""
    result = SyncOutcome()
    for outcome in outcomes:
        if outcome.kind is OutcomeKind.CREATED:
            result.synced += 1
        elif outcome.kind is OutcomeKind.UPDATED:
            result.updated += 1
        else:
            result.failed += 1
    return result


class Reconciler:
    """Applies remote records to the store one at a time."""

    def __init__(self, store: Store):
        self.store = store

    async def reconcile_record(self, raw: Dict[str, Any]) -> RecordOutcome:
        external_id = None
        try:
            product = normalize_product(raw)
            external_id = product.external_id

            existing = await self.store.get_product(external_id)
            if existing is None:
                await self.store.create_product(product)
                return RecordOutcome(OutcomeKind.CREATED, external_id)

            await self.store.update_product(product)
            return RecordOutcome(OutcomeKind.UPDATED, external_id)

        except RecordReconciliationError as e:
            logger.warning(f"Skipping record: {e}")
            return RecordOutcome(OutcomeKind.FAILED, e.external_id, str(e))
        except Exception as e:
            err = RecordReconciliationError(external_id, str(e))
            logger.error(f"Error syncing product: {err}")
            return RecordOutcome(OutcomeKind.FAILED, external_id, str(err))

    async def reconcile_all(self, records: Iterable[Dict[str, Any]]) -> List[RecordOutcome]:
        """Reconcile records in the order received."""
        return [await self.reconcile_record(raw) for raw in records]

    async def reconcile(self, records: Iterable[Dict[str, Any]]) -> SyncOutcome:
        outcomes = await self.reconcile_all(records)
        result = tally(outcomes)
        logger.info(
            f"Reconciled {len(outcomes)} records: synced={result.synced} "
            f"updated={result.updated} failed={result.failed}"
        )
        return result
