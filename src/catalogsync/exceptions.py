"""
Exception hierarchy for catalog synchronization.

Errors are categorized by how far they propagate:
- Record level (RecordReconciliationError): counted, the batch continues
- Phase level (TransportError, RemoteRejection, LedgerWriteError): the run
  is marked failed and the orchestrator raises SyncError
- Side effects (NotificationError): logged only
"""

from typing import Optional


class CatalogSyncError(Exception):
    """Base exception for catalogsync."""

    pass


class TransportError(CatalogSyncError):
    """Network or authentication failure reaching the remote catalog."""

    pass


class RemoteRejection(CatalogSyncError):
    """Remote catalog answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RecordReconciliationError(CatalogSyncError):
    """A single remote record could not be normalized or persisted."""

    def __init__(self, external_id: Optional[str], message: str):
        self.external_id = external_id
        super().__init__(f"Record {external_id or '<unknown>'}: {message}")


class LedgerWriteError(CatalogSyncError):
    """A SyncRun row could not be created or closed."""

    pass


class NotificationError(CatalogSyncError):
    """Best-effort notification failed."""

    pass


class SyncError(CatalogSyncError):
    """A synchronization run failed. The root cause is chained as __cause__."""

    def __init__(self, message: str, run_id: Optional[str] = None):
        self.run_id = run_id
        super().__init__(message)


class SyncInProgressError(SyncError):
    """Another run is already in flight and concurrent runs are disabled."""

    pass


class ControlError(CatalogSyncError):
    """Operator request could not be served. Carries a transport status code."""

    def __init__(self, message: str, status_code: int = 500):
        self.status_code = status_code
        super().__init__(message)


__all__ = [
    "CatalogSyncError",
    "TransportError",
    "RemoteRejection",
    "RecordReconciliationError",
    "LedgerWriteError",
    "NotificationError",
    "SyncError",
    "SyncInProgressError",
    "ControlError",
]
