"""
Sync log vocabulary.

The ``SyncType`` values are stored in ``sync_logs.type`` and must stay
stable so historical rows remain groupable.
"""

from enum import Enum


class SyncType(str, Enum):
    """Operation tag written to every sync log row."""

    DIRECTORY_TO_LOCAL = "opoppo_to_db"
    ORGANIZATIONS = "grafana_orgs"
    USERS = "grafana_users"
    TEAMS = "grafana_teams"
    FULL_SYNC = "grafana_full_sync"

    def __str__(self) -> str:
        return self.value


class SyncStatus(str, Enum):
    """Outcome of a sync run."""

    SUCCESS = "success"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value
