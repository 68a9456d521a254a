"""
Local Repository Interface.

Keyed CRUD over the mirror tables. Implementations hold no business logic:
create-vs-update decisions belong to the reconciliation engine, and the
single-default-organization rule belongs to the membership service.

Every method is a single-record operation committed on its own; there is no
transaction spanning a whole sync run.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from grafana_console.models import (
    MirroredOrganization,
    MirroredTeam,
    MirroredUser,
    Setting,
    SyncLog,
    UserOrgMembership,
    UserTeamMembership,
    UserStatus,
)
from grafana_console.repository.exceptions import MissingValueError


@dataclass
class RepositoryStats:
    """Dashboard counters."""

    total_users: int = 0
    active_users: int = 0
    pending_users: int = 0
    organizations: int = 0
    teams: int = 0
    last_sync: Optional[SyncLog] = None

    def to_dict(self) -> Dict[str, Any]:
        last_sync = None
        if self.last_sync is not None:
            last_sync = {
                "type": self.last_sync.type,
                "status": self.last_sync.status,
                "details": self.last_sync.details,
                "createdAt": self.last_sync.created_at.isoformat() if self.last_sync.created_at else None,
            }
        return {
            "totalUsers": self.total_users,
            "activeUsers": self.active_users,
            "pendingUsers": self.pending_users,
            "organizations": self.organizations,
            "teams": self.teams,
            "lastSync": last_sync,
        }


class Repository(ABC):
    """Abstract async repository over the mirror tables."""

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_user(self, id: int) -> Optional[MirroredUser]: ...

    @abstractmethod
    async def get_user_by_user_id(self, user_id: str) -> Optional[MirroredUser]:
        """Find a user by natural key (employee ID or login)."""

    @abstractmethod
    async def get_user_by_platform_id(self, platform_id: int) -> Optional[MirroredUser]: ...

    @abstractmethod
    async def list_users(self) -> List[MirroredUser]: ...

    @abstractmethod
    async def create_user(self, **fields: Any) -> MirroredUser:
        """
        Insert a user.

        Raises:
            DuplicateRecordError: ``user_id`` is already taken.
        """

    @abstractmethod
    async def update_user(self, id: int, **fields: Any) -> MirroredUser:
        """
        Update columns of a user by primary key.

        Raises:
            RecordNotFoundError: No user with this id.
        """

    @abstractmethod
    async def delete_user(self, id: int) -> None: ...

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_organization(self, id: int) -> Optional[MirroredOrganization]: ...

    @abstractmethod
    async def get_organization_by_platform_id(self, platform_id: int) -> Optional[MirroredOrganization]: ...

    @abstractmethod
    async def list_organizations(self) -> List[MirroredOrganization]: ...

    @abstractmethod
    async def create_organization(self, **fields: Any) -> MirroredOrganization: ...

    @abstractmethod
    async def update_organization(self, id: int, **fields: Any) -> MirroredOrganization: ...

    @abstractmethod
    async def delete_organization(self, id: int) -> None: ...

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_team(self, id: int) -> Optional[MirroredTeam]: ...

    @abstractmethod
    async def get_team_by_platform_id(self, org_id: int, platform_id: int) -> Optional[MirroredTeam]:
        """Find a team by Grafana ID within one local organization."""

    @abstractmethod
    async def list_teams(self, org_id: Optional[int] = None) -> List[MirroredTeam]: ...

    @abstractmethod
    async def create_team(self, **fields: Any) -> MirroredTeam: ...

    @abstractmethod
    async def update_team(self, id: int, **fields: Any) -> MirroredTeam: ...

    @abstractmethod
    async def delete_team(self, id: int) -> None: ...

    # ------------------------------------------------------------------
    # Memberships
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_org_membership(self, user_id: int, org_id: int) -> Optional[UserOrgMembership]: ...

    @abstractmethod
    async def list_org_memberships(
        self,
        user_id: Optional[int] = None,
        org_id: Optional[int] = None,
    ) -> List[UserOrgMembership]: ...

    @abstractmethod
    async def create_org_membership(
        self,
        user_id: int,
        org_id: int,
        role: str = "Viewer",
        is_default: bool = False,
    ) -> UserOrgMembership:
        """
        Insert a user/organization link.

        Raises:
            MembershipConflictError: The pair already exists.
        """

    @abstractmethod
    async def update_org_membership(self, id: int, **fields: Any) -> UserOrgMembership: ...

    @abstractmethod
    async def delete_org_membership(self, id: int) -> None: ...

    @abstractmethod
    async def get_team_membership(self, user_id: int, team_id: int) -> Optional[UserTeamMembership]: ...

    @abstractmethod
    async def list_team_memberships(
        self,
        user_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> List[UserTeamMembership]: ...

    @abstractmethod
    async def create_team_membership(self, user_id: int, team_id: int) -> UserTeamMembership: ...

    @abstractmethod
    async def delete_team_membership(self, id: int) -> None: ...

    # ------------------------------------------------------------------
    # Sync logs (append-only)
    # ------------------------------------------------------------------

    @abstractmethod
    async def add_sync_log(
        self,
        type: str,
        status: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> SyncLog: ...

    @abstractmethod
    async def list_sync_logs(self, limit: int = 50) -> List[SyncLog]:
        """Most recent logs first."""

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_setting(self, key: str) -> Optional[str]: ...

    @abstractmethod
    async def get_settings_map(self) -> Dict[str, Optional[str]]: ...

    @abstractmethod
    async def update_setting(self, key: str, value: Optional[str]) -> Setting:
        """Upsert a setting by key."""

    # ------------------------------------------------------------------
    # Derived
    # ------------------------------------------------------------------

    async def get_latest_sync_log(self) -> Optional[SyncLog]:
        logs = await self.list_sync_logs(limit=1)
        return logs[0] if logs else None

    async def get_stats(self) -> RepositoryStats:
        """Counters for the dashboard."""
        users = await self.list_users()
        return RepositoryStats(
            total_users=len(users),
            active_users=sum(1 for u in users if u.status == UserStatus.ACTIVE.value),
            pending_users=sum(1 for u in users if u.status == UserStatus.PENDING.value),
            organizations=len(await self.list_organizations()),
            teams=len(await self.list_teams()),
            last_sync=await self.get_latest_sync_log(),
        )


def check_fields(model: type, fields: Dict[str, Any]) -> None:
    """
    Reject keys that are not columns of ``model`` and None for NOT NULL columns.

    Raises:
        ValueError: An unknown field name was passed.
        MissingValueError: A NOT NULL column was given None.
    """
    columns = model.__table__.columns
    unknown = set(fields) - set(columns.keys())
    if unknown:
        raise ValueError(f"Unknown {model.__name__} fields: {', '.join(sorted(unknown))}")
    for key, value in fields.items():
        if value is None and not columns[key].nullable:
            raise MissingValueError(model.__name__, key)
