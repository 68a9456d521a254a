"""
Sync Coordinator.

Caller-side orchestration around the reconciliation engine:

    - an advisory lock so at most one sync runs per process; a second
      request fails fast with ``SyncInProgressError`` instead of queueing
    - the full bidirectional cycle (directory -> local, then Grafana ->
      local), where a failing first stage stops the cycle
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from grafana_console.sync.engine import DirectorySyncResult, FullSyncResult, ReconciliationEngine

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


class SyncInProgressError(RuntimeError):
    """Raised when a sync is requested while another one is running."""
    pass


@dataclass
class BidirectionalSyncResult:
    """Results of both stages of a full cycle."""

    directory: DirectorySyncResult
    platform: FullSyncResult

    def to_dict(self) -> Dict[str, Any]:
        return {"opoppo": self.directory.to_dict(), "grafana": self.platform.to_dict()}


class SyncCoordinator:
    """Serializes sync requests of one process."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._current: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @property
    def current(self) -> Optional[str]:
        """Label of the sync in flight, if any."""
        return self._current

    async def run(self, label: str, operation: Callable[[], Awaitable[ResultT]]) -> ResultT:
        """
        Run ``operation`` unless another sync holds the lock.

        Raises:
            SyncInProgressError: A sync is already running.
        """
        if self._lock.locked():
            raise SyncInProgressError(f"Sync already in progress: {self._current}")

        async with self._lock:
            self._current = label
            try:
                return await operation()
            finally:
                self._current = None

    async def run_bidirectional(self, engine: ReconciliationEngine) -> BidirectionalSyncResult:
        """Directory stage then Grafana stage; the second never runs if the first fails."""

        async def cycle() -> BidirectionalSyncResult:
            directory = await engine.sync_directory_users()
            logger.info(f"Directory stage done ({directory.created_count} created), starting Grafana stage")
            platform = await engine.run_full_sync()
            return BidirectionalSyncResult(directory=directory, platform=platform)

        return await self.run("full", cycle)
