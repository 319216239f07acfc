"""
catalogsync - scheduled product catalog synchronization.

Provides:
- CatalogClient: paginated fetch from the Shopify Admin API
- Reconciler: per-record create/update against local storage
- SyncOrchestrator: one ledger-recorded sync run
- JobScheduler: named recurring jobs (sync, low-stock alert, retention)

Usage:
    from catalogsync import SyncConfig, build_runtime

    runtime = build_runtime(SyncConfig.from_env())
    runtime.scheduler.start()

    outcome = await runtime.orchestrator.run_sync("manual")
"""

__version__ = "0.1.0"

from .catalog import CatalogClient
from .config import SyncConfig, get_config
from .models import SyncOperation, SyncOutcome, SyncRun, SyncStatus
from .orchestrator import SyncOrchestrator
from .reconcile import Reconciler
from .runtime import Runtime, build_runtime
from .scheduler import JobScheduler, JobSpec, Recurrence

__all__ = [
    "__version__",
    # Components
    "CatalogClient",
    "Reconciler",
    "SyncOrchestrator",
    "JobScheduler",
    "JobSpec",
    "Recurrence",
    # Runtime
    "Runtime",
    "build_runtime",
    # Config
    "SyncConfig",
    "get_config",
    # Models
    "SyncOperation",
    "SyncOutcome",
    "SyncRun",
    "SyncStatus",
]
