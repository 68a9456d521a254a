"""
In-memory Grafana.

Stand-in for ``GrafanaClient`` used in offline development
(``APP_USE_MOCK_SOURCES=true``) and in tests. It keeps Grafana's
org-scoping rule: team calls only see teams of the organization the last
``switch`` selected, and every switch is recorded in ``switch_calls``.
Every public call is appended to ``calls`` so tests can assert ordering.
"""

import asyncio
import copy
from datetime import datetime
from typing import Any, Dict, List, Optional

from grafana_console.platform.exceptions import (
    PlatformConflictError,
    PlatformNotFoundError,
    PlatformValidationError,
)
from grafana_console.platform.schemas import GrafanaOrg, GrafanaTeam, GrafanaTeamMember, GrafanaUser


DEFAULT_ORGS: List[Dict[str, Any]] = [
    {"id": 1, "name": "本社"},
    {"id": 2, "name": "支社"},
    {"id": 3, "name": "子会社"},
]

DEFAULT_USERS: List[Dict[str, Any]] = [
    {"id": 1, "login": "yamada.taro", "email": "yamada.taro@example.com", "name": "山田 太郎",
     "isDisabled": False, "lastSeenAt": "2023-05-01T09:00:00Z"},
    {"id": 2, "login": "sato.hanako", "email": "sato.hanako@example.com", "name": "佐藤 花子",
     "isDisabled": False, "lastSeenAt": "2023-05-02T10:30:00Z"},
    {"id": 3, "login": "suzuki.ichiro", "email": "suzuki.ichiro@example.com", "name": "鈴木 一郎",
     "isDisabled": False, "lastSeenAt": "2023-04-28T15:45:00Z"},
    {"id": 4, "login": "tanaka.hiroshi", "email": "tanaka.hiroshi@example.com", "name": "田中 浩",
     "isDisabled": False, "lastSeenAt": "2023-05-03T08:15:00Z"},
    {"id": 5, "login": "takahashi.akira", "email": "takahashi.akira@example.com", "name": "高橋 明",
     "isDisabled": True, "lastSeenAt": "2023-03-15T11:20:00Z"},
]

DEFAULT_TEAMS: List[Dict[str, Any]] = [
    {"id": 1, "name": "営業チーム", "email": "sales@example.com", "orgId": 1},
    {"id": 2, "name": "技術チーム", "email": "tech@example.com", "orgId": 1},
    {"id": 3, "name": "管理チーム", "email": "admin@example.com", "orgId": 2},
]

DEFAULT_TEAM_MEMBERS: Dict[int, List[int]] = {1: [1, 2], 2: [3, 4], 3: [5]}

DEFAULT_ORG_MEMBERSHIPS: Dict[int, List[Dict[str, Any]]] = {
    1: [{"orgId": 1, "role": "Admin"}],
    2: [{"orgId": 1, "role": "Editor"}],
    3: [{"orgId": 1, "role": "Viewer"}],
    4: [{"orgId": 1, "role": "Admin"}, {"orgId": 2, "role": "Viewer"}],
    5: [{"orgId": 2, "role": "Admin"}],
}


class MockGrafanaClient:
    """
    Mutable in-memory Grafana.

    Args:
        orgs / users / teams / team_members / org_memberships: Seed data;
            each defaults to the built-in sample set.
        failures: Method name -> exception raised when that method is called.
    """

    def __init__(
        self,
        orgs: Optional[List[Dict[str, Any]]] = None,
        users: Optional[List[Dict[str, Any]]] = None,
        teams: Optional[List[Dict[str, Any]]] = None,
        team_members: Optional[Dict[int, List[int]]] = None,
        org_memberships: Optional[Dict[int, List[Dict[str, Any]]]] = None,
        failures: Optional[Dict[str, Exception]] = None,
    ) -> None:
        self.orgs = {o["id"]: dict(o) for o in copy.deepcopy(DEFAULT_ORGS if orgs is None else orgs)}
        self.users = {u["id"]: dict(u) for u in copy.deepcopy(DEFAULT_USERS if users is None else users)}
        self.teams = {t["id"]: dict(t) for t in copy.deepcopy(DEFAULT_TEAMS if teams is None else teams)}
        self.team_members = copy.deepcopy(DEFAULT_TEAM_MEMBERS if team_members is None else team_members)
        self.org_memberships = copy.deepcopy(
            DEFAULT_ORG_MEMBERSHIPS if org_memberships is None else org_memberships
        )
        self.failures = dict(failures or {})

        self.current_org_id: Optional[int] = None
        self.switch_calls: List[int] = []
        self.calls: List[tuple] = []
        self._org_lock = asyncio.Lock()

    # =========================================================================
    # Bookkeeping
    # =========================================================================

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, *args))
        failure = self.failures.get(method)
        if failure is not None:
            raise failure

    @staticmethod
    def _next_id(table: Dict[int, Any]) -> int:
        return max(table, default=0) + 1

    async def _switch(self, org_id: int) -> None:
        if org_id not in self.orgs:
            raise PlatformNotFoundError(f"Organization {org_id} not found", status_code=404)
        self.switch_calls.append(org_id)
        self.current_org_id = org_id

    def _scoped_team(self, team_id: int) -> Dict[str, Any]:
        team = self.teams.get(team_id)
        if team is None or team["orgId"] != self.current_org_id:
            raise PlatformNotFoundError(f"Team {team_id} not found", status_code=404)
        return team

    # =========================================================================
    # Organizations
    # =========================================================================

    async def list_organizations(self) -> List[GrafanaOrg]:
        self._record("list_organizations")
        return [GrafanaOrg.model_validate(o) for o in self.orgs.values()]

    async def get_organization(self, org_id: int) -> Optional[GrafanaOrg]:
        self._record("get_organization", org_id)
        org = self.orgs.get(org_id)
        return GrafanaOrg.model_validate(org) if org else None

    async def create_organization(self, name: str) -> int:
        self._record("create_organization", name)
        if any(o["name"] == name for o in self.orgs.values()):
            raise PlatformConflictError("Organization name taken", status_code=409)
        org_id = self._next_id(self.orgs)
        self.orgs[org_id] = {"id": org_id, "name": name}
        return org_id

    async def update_organization(self, org_id: int, name: str) -> None:
        self._record("update_organization", org_id, name)
        if org_id not in self.orgs:
            raise PlatformNotFoundError(f"Organization {org_id} not found", status_code=404)
        self.orgs[org_id]["name"] = name

    async def delete_organization(self, org_id: int) -> None:
        self._record("delete_organization", org_id)
        if self.orgs.pop(org_id, None) is None:
            raise PlatformNotFoundError(f"Organization {org_id} not found", status_code=404)
        for team_id in [t for t, team in self.teams.items() if team["orgId"] == org_id]:
            del self.teams[team_id]
            self.team_members.pop(team_id, None)

    # =========================================================================
    # Users
    # =========================================================================

    async def list_users(self) -> List[GrafanaUser]:
        self._record("list_users")
        return [GrafanaUser.model_validate(u) for u in self.users.values()]

    async def get_user(self, user_id: int) -> Optional[GrafanaUser]:
        self._record("get_user", user_id)
        user = self.users.get(user_id)
        return GrafanaUser.model_validate(user) if user else None

    async def create_user(self, name: str, email: str, login: str, password: str) -> int:
        self._record("create_user", login)
        if not login or not password:
            raise PlatformValidationError("login and password are required", status_code=400)
        if any(u["login"] == login or u.get("email") == email for u in self.users.values()):
            raise PlatformConflictError("User with same login or email already exists", status_code=412)
        user_id = self._next_id(self.users)
        self.users[user_id] = {
            "id": user_id,
            "login": login,
            "email": email,
            "name": name,
            "isDisabled": False,
            "lastSeenAt": datetime.now().isoformat(),
        }
        return user_id

    async def update_user(self, user_id: int, **fields: Any) -> None:
        self._record("update_user", user_id)
        if user_id not in self.users:
            raise PlatformNotFoundError(f"User {user_id} not found", status_code=404)
        self.users[user_id].update({k: v for k, v in fields.items() if k in ("name", "email", "login", "theme")})

    async def delete_user(self, user_id: int) -> None:
        self._record("delete_user", user_id)
        if self.users.pop(user_id, None) is None:
            raise PlatformNotFoundError(f"User {user_id} not found", status_code=404)
        self.org_memberships.pop(user_id, None)
        for members in self.team_members.values():
            if user_id in members:
                members.remove(user_id)

    # =========================================================================
    # Organization membership
    # =========================================================================

    def _user_by_login_or_email(self, login_or_email: str) -> Dict[str, Any]:
        for user in self.users.values():
            if login_or_email in (user["login"], user.get("email"), str(user["id"])):
                return user
        raise PlatformNotFoundError(f"User {login_or_email} not found", status_code=404)

    async def add_user_to_organization(self, org_id: int, login_or_email: str, role: str = "Viewer") -> None:
        self._record("add_user_to_organization", org_id, login_or_email, role)
        if org_id not in self.orgs:
            raise PlatformNotFoundError(f"Organization {org_id} not found", status_code=404)
        user = self._user_by_login_or_email(login_or_email)
        memberships = self.org_memberships.setdefault(user["id"], [])
        if any(m["orgId"] == org_id for m in memberships):
            raise PlatformConflictError("User is already member of this organization", status_code=409)
        memberships.append({"orgId": org_id, "role": role})

    async def update_user_org_role(self, org_id: int, user_id: int, role: str) -> None:
        self._record("update_user_org_role", org_id, user_id, role)
        for membership in self.org_memberships.get(user_id, []):
            if membership["orgId"] == org_id:
                membership["role"] = role
                return
        raise PlatformNotFoundError(f"User {user_id} is not a member of organization {org_id}", status_code=404)

    async def remove_user_from_organization(self, org_id: int, user_id: int) -> None:
        self._record("remove_user_from_organization", org_id, user_id)
        memberships = self.org_memberships.get(user_id, [])
        remaining = [m for m in memberships if m["orgId"] != org_id]
        if len(remaining) == len(memberships):
            raise PlatformNotFoundError(f"User {user_id} is not a member of organization {org_id}", status_code=404)
        self.org_memberships[user_id] = remaining

    # =========================================================================
    # Teams (org-scoped)
    # =========================================================================

    async def list_teams(self, org_id: int) -> List[GrafanaTeam]:
        async with self._org_lock:
            self._record("list_teams", org_id)
            await self._switch(org_id)
            return [
                GrafanaTeam.model_validate(
                    {**t, "memberCount": len(self.team_members.get(t["id"], []))}
                )
                for t in self.teams.values()
                if t["orgId"] == self.current_org_id
            ]

    async def get_team(self, org_id: int, team_id: int) -> Optional[GrafanaTeam]:
        async with self._org_lock:
            self._record("get_team", org_id, team_id)
            await self._switch(org_id)
            try:
                return GrafanaTeam.model_validate(self._scoped_team(team_id))
            except PlatformNotFoundError:
                return None

    async def create_team(self, org_id: int, name: str, email: Optional[str] = None) -> int:
        async with self._org_lock:
            self._record("create_team", org_id, name)
            await self._switch(org_id)
            if any(t["name"] == name and t["orgId"] == org_id for t in self.teams.values()):
                raise PlatformConflictError("Team name taken", status_code=409)
            team_id = self._next_id(self.teams)
            self.teams[team_id] = {"id": team_id, "name": name, "email": email, "orgId": org_id}
            self.team_members[team_id] = []
            return team_id

    async def update_team(self, org_id: int, team_id: int, name: str, email: Optional[str] = None) -> None:
        async with self._org_lock:
            self._record("update_team", org_id, team_id)
            await self._switch(org_id)
            team = self._scoped_team(team_id)
            team["name"] = name
            if email is not None:
                team["email"] = email

    async def delete_team(self, org_id: int, team_id: int) -> None:
        async with self._org_lock:
            self._record("delete_team", org_id, team_id)
            await self._switch(org_id)
            self._scoped_team(team_id)
            del self.teams[team_id]
            self.team_members.pop(team_id, None)

    # =========================================================================
    # Team membership (org-scoped)
    # =========================================================================

    async def list_team_members(self, org_id: int, team_id: int) -> List[GrafanaTeamMember]:
        async with self._org_lock:
            self._record("list_team_members", org_id, team_id)
            await self._switch(org_id)
            self._scoped_team(team_id)
            members = []
            for user_id in self.team_members.get(team_id, []):
                user = self.users[user_id]
                members.append(GrafanaTeamMember.model_validate({**user, "userId": user_id}))
            return members

    async def add_team_member(self, org_id: int, team_id: int, user_id: int) -> None:
        async with self._org_lock:
            self._record("add_team_member", org_id, team_id, user_id)
            await self._switch(org_id)
            self._scoped_team(team_id)
            if user_id not in self.users:
                raise PlatformNotFoundError(f"User {user_id} not found", status_code=404)
            members = self.team_members.setdefault(team_id, [])
            if user_id in members:
                raise PlatformConflictError("User is already added to this team", status_code=409)
            members.append(user_id)

    async def remove_team_member(self, org_id: int, team_id: int, user_id: int) -> None:
        async with self._org_lock:
            self._record("remove_team_member", org_id, team_id, user_id)
            await self._switch(org_id)
            self._scoped_team(team_id)
            members = self.team_members.get(team_id, [])
            if user_id not in members:
                raise PlatformNotFoundError(f"User {user_id} is not a member of team {team_id}", status_code=404)
            members.remove(user_id)

    async def check_connection(self) -> dict:
        return {"status": "healthy", "message": "Mock Grafana", "details": {}}
