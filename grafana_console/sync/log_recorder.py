"""
Sync Log Recorder.

Appends one immutable row per reconciliation run. The recorder has no
update or delete operations.
"""

import json
import logging
from typing import Any, Dict, Optional

from grafana_console.logging_config import mask_sensitive
from grafana_console.models import SyncLog
from grafana_console.repository.base import Repository
from grafana_console.sync.constants import SyncStatus, SyncType

logger = logging.getLogger(__name__)


class SyncLogRecorder:
    """Writes sync log rows through the repository."""

    def __init__(self, repository: Repository) -> None:
        self._repository = repository

    async def record(
        self,
        sync_type: SyncType | str,
        status: SyncStatus | str,
        details: Optional[Dict[str, Any]] = None,
    ) -> SyncLog:
        """
        Append a sync log row.

        Raises:
            ValueError: ``details`` cannot be stored as JSON.
        """
        try:
            json.dumps(details)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Sync log details must be JSON serializable: {e}") from e

        log = await self._repository.add_sync_log(str(sync_type), str(status), details)
        logger.debug(f"Sync log recorded: {sync_type} {status} {details}")
        return log

    async def record_success(self, sync_type: SyncType | str, details: Dict[str, Any]) -> SyncLog:
        return await self.record(sync_type, SyncStatus.SUCCESS, details)

    async def record_failure(self, sync_type: SyncType | str, error: BaseException | str) -> SyncLog:
        """Append an error row; credentials in the message are masked."""
        return await self.record(sync_type, SyncStatus.ERROR, {"error": mask_sensitive(str(error))})
