"""
Mirror Enums.

Status and role vocabularies shared by the mirror tables, the engine and
the Grafana adapter.
"""

from enum import Enum


class UserStatus(str, Enum):
    """
    Lifecycle status of a mirrored user.

    - PENDING: known from the directory, not yet provisioned in Grafana.
    - ACTIVE: exists in Grafana.
    - DISABLED: switched off by an administrator.
    """

    PENDING = "pending"
    ACTIVE = "active"
    DISABLED = "disabled"

    def __str__(self) -> str:
        return self.value


class OrgRole(str, Enum):
    """Grafana organization roles."""

    ADMIN = "Admin"
    EDITOR = "Editor"
    VIEWER = "Viewer"

    def __str__(self) -> str:
        return self.value
