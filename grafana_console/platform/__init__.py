"""
Grafana platform adapter.

CRUD over Grafana organizations, users, teams and memberships through the
admin HTTP API.
"""

from grafana_console.platform.client import GrafanaClient, PlatformClientProtocol
from grafana_console.platform.exceptions import (
    PlatformAuthError,
    PlatformConflictError,
    PlatformConnectionError,
    PlatformError,
    PlatformNotFoundError,
    PlatformValidationError,
)
from grafana_console.platform.mock import MockGrafanaClient
from grafana_console.platform.schemas import GrafanaOrg, GrafanaTeam, GrafanaTeamMember, GrafanaUser

__all__ = [
    "GrafanaClient",
    "MockGrafanaClient",
    "PlatformClientProtocol",
    "GrafanaOrg",
    "GrafanaUser",
    "GrafanaTeam",
    "GrafanaTeamMember",
    "PlatformError",
    "PlatformAuthError",
    "PlatformConflictError",
    "PlatformConnectionError",
    "PlatformNotFoundError",
    "PlatformValidationError",
]
