"""
Mirror Models Package.

Exports the local mirror tables so they register with Base.metadata.
"""

from grafana_console.models.enums import OrgRole, UserStatus
from grafana_console.models.user import MirroredUser
from grafana_console.models.organization import MirroredOrganization
from grafana_console.models.team import MirroredTeam
from grafana_console.models.membership import UserOrgMembership, UserTeamMembership
from grafana_console.models.sync_log import SyncLog
from grafana_console.models.setting import Setting

__all__ = [
    "OrgRole",
    "UserStatus",
    "MirroredUser",
    "MirroredOrganization",
    "MirroredTeam",
    "UserOrgMembership",
    "UserTeamMembership",
    "SyncLog",
    "Setting",
]
