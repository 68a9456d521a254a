"""
Synchronization package.

Reconciliation engine, sync log recorder and the caller-side coordinator.
"""

from grafana_console.sync.constants import SyncStatus, SyncType
from grafana_console.sync.coordinator import (
    BidirectionalSyncResult,
    SyncCoordinator,
    SyncInProgressError,
)
from grafana_console.sync.engine import DirectorySyncResult, FullSyncResult, ReconciliationEngine
from grafana_console.sync.log_recorder import SyncLogRecorder

__all__ = [
    "SyncType",
    "SyncStatus",
    "ReconciliationEngine",
    "DirectorySyncResult",
    "FullSyncResult",
    "SyncLogRecorder",
    "SyncCoordinator",
    "SyncInProgressError",
    "BidirectionalSyncResult",
]
