"""
Persistence contract for the sync engine.

Implementations must provide upsert-by-external-id for products and an
atomic single-row transition for SyncRun status.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from ..models import LocalProduct, NotificationLog, SyncOperation, SyncRun


class Store(ABC):
    """Abstract storage backend."""

    async def init_schema(self) -> None:
        """Create tables if the backend needs it."""
        return None

    async def close(self) -> None:
        return None

    # =========================================================================
    # Run ledger
    # =========================================================================

    @abstractmethod
    async def create_run(self, operation: SyncOperation) -> SyncRun:
        """Insert a new pending run and return it with id and created_at set."""

    @abstractmethod
    async def complete_run(
        self,
        run_id: str,
        item_count: int,
        duration_ms: int,
        metadata: Dict[str, int],
    ) -> bool:
        """Move a pending run to completed. Returns False if it was not pending."""

    @abstractmethod
    async def fail_run(self, run_id: str, duration_ms: int, error_message: str) -> bool:
        """Move a pending run to failed. Returns False if it was not pending."""

    @abstractmethod
    async def get_run(self, run_id: str) -> Optional[SyncRun]:
        pass

    @abstractmethod
    async def list_recent_runs(self, limit: int = 10) -> List[SyncRun]:
        """Newest first."""

    @abstractmethod
    async def delete_runs_before(self, cutoff: datetime) -> int:
        pass

    # =========================================================================
    # Products
    # =========================================================================

    @abstractmethod
    async def get_product(self, external_id: str) -> Optional[LocalProduct]:
        pass

    @abstractmethod
    async def create_product(self, product: LocalProduct) -> LocalProduct:
        pass

    @abstractmethod
    async def update_product(self, product: LocalProduct) -> LocalProduct:
        """Overwrite mutable fields of the row matching product.external_id."""

    @abstractmethod
    async def count_products(self, max_quantity: Optional[int] = None) -> int:
        pass

    @abstractmethod
    async def list_low_stock(self, threshold: int, limit: int = 20) -> List[LocalProduct]:
        """Products with quantity <= threshold, lowest quantity first."""

    # =========================================================================
    # Notification log
    # =========================================================================

    @abstractmethod
    async def create_notification(self, entry: NotificationLog) -> NotificationLog:
        pass

    @abstractmethod
    async def set_notification_status(
        self, log_id: str, status: str, error_message: Optional[str] = None
    ) -> None:
        pass

    @abstractmethod
    async def delete_notifications_before(self, cutoff: datetime) -> int:
        pass
