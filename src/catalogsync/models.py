"""
Domain records for catalog synchronization.

- SyncRun: one ledger row per synchronization attempt
- LocalProduct: the local mirror of a remote catalog product
- RemoteProduct: validated shape of a remote catalog payload
- SyncOutcome / RecordOutcome: reconciliation tallies and per-record results
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SyncOperation(str, Enum):
    """What started a run."""

    MANUAL = "manual"
    SCHEDULED = "scheduled"


class SyncStatus(str, Enum):
    """Ledger status. PENDING moves exactly once to a terminal value."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not SyncStatus.PENDING


@dataclass
class SyncRun:
    """A single synchronization attempt as recorded in the ledger."""

    id: str
    operation: SyncOperation
    status: SyncStatus = SyncStatus.PENDING
    item_count: int = 0
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None
    metadata: Optional[Dict[str, int]] = None
    created_at: Optional[datetime] = None


@dataclass
class LocalProduct:
    """Product row keyed by the remote catalog's identifier."""

    external_id: str
    title: str
    sku: Optional[str] = None
    description: Optional[str] = None
    weight: Optional[float] = None
    quantity: int = 0
    price: Optional[float] = None
    vendor: Optional[str] = None
    product_type: Optional[str] = None
    image_url: Optional[str] = None
    tags: Optional[str] = None
    status: str = "active"
    last_synced_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass
class SyncOutcome:
    """Three-way reconciliation tally."""

    synced: int = 0
    updated: int = 0
    failed: int = 0
    run_id: Optional[str] = None

    @property
    def item_count(self) -> int:
        return self.synced + self.updated

    def as_dict(self) -> Dict[str, int]:
        return {"synced": self.synced, "updated": self.updated, "failed": self.failed}


class OutcomeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass
class RecordOutcome:
    """Tagged result of reconciling one remote record."""

    kind: OutcomeKind
    external_id: Optional[str] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is not OutcomeKind.FAILED


@dataclass
class NotificationLog:
    """Audit row for one notification delivery attempt."""

    id: str
    kind: str
    recipient: str
    subject: str
    status: str = "pending"
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class NotificationResult:
    """Outcome reported by a Notifier."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


# =========================================================================
# Remote catalog payloads
# =========================================================================


class RemoteVariant(BaseModel):
    """Shopify product variant. Defaults double as the placeholder variant."""

    id: int = 0
    title: str = "Default"
    sku: Optional[str] = None
    price: Optional[str] = "0"
    weight: Optional[float] = None
    weight_unit: Optional[str] = "kg"
    inventory_quantity: int = 0
    inventory_item_id: int = 0


class RemoteImage(BaseModel):
    id: int = 0
    src: str
    position: int = 1


class RemoteProduct(BaseModel):
    """Shopify product listing entry."""

    id: int
    title: str
    body_html: Optional[str] = None
    vendor: Optional[str] = None
    product_type: Optional[str] = None
    tags: Optional[str] = None
    variants: List[RemoteVariant] = Field(default_factory=list)
    images: List[RemoteImage] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
