"""
In-Memory Repository.

Dict-backed implementation of the mirror repository with the same
semantics as the SQLAlchemy one: column defaults, uniqueness rules and
cascading deletes. Used by the test suite and for offline development
together with the mock sources.
"""

import itertools
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from sqlalchemy import UniqueConstraint

from grafana_console.database import Base
from grafana_console.models import (
    MirroredOrganization,
    MirroredTeam,
    MirroredUser,
    Setting,
    SyncLog,
    UserOrgMembership,
    UserTeamMembership,
)
from grafana_console.repository.base import Repository, check_fields
from grafana_console.repository.exceptions import (
    DuplicateRecordError,
    MembershipConflictError,
    MissingValueError,
    RecordNotFoundError,
)

ModelT = TypeVar("ModelT", bound=Base)


def _unique_keys(model: Type[Base]) -> List[tuple[str, ...]]:
    """Column groups that must be unique (NULLs never collide)."""
    table = model.__table__
    groups = [
        tuple(c.key for c in constraint.columns)
        for constraint in table.constraints
        if isinstance(constraint, UniqueConstraint)
    ]
    groups.extend(
        tuple(c.key for c in index.columns) for index in table.indexes if index.unique
    )
    return groups


class InMemoryRepository(Repository):
    """Repository keeping ORM instances in per-model dicts."""

    def __init__(self) -> None:
        self._tables: Dict[Type[Base], Dict[int, Any]] = defaultdict(dict)
        self._sequences: Dict[Type[Base], Any] = defaultdict(lambda: itertools.count(1))

    # =========================================================================
    # Generic helpers
    # =========================================================================

    def _rows(self, model: Type[ModelT]) -> List[ModelT]:
        return [self._tables[model][key] for key in sorted(self._tables[model])]

    def _where(self, model: Type[ModelT], predicate: Callable[[ModelT], bool]) -> List[ModelT]:
        return [row for row in self._rows(model) if predicate(row)]

    def _first(self, model: Type[ModelT], predicate: Callable[[ModelT], bool]) -> Optional[ModelT]:
        rows = self._where(model, predicate)
        return rows[0] if rows else None

    def _check_unique(self, model: Type[ModelT], candidate: ModelT) -> None:
        for columns in _unique_keys(model):
            values = tuple(getattr(candidate, c) for c in columns)
            if any(v is None for v in values):
                continue
            for row in self._rows(model):
                if row is candidate:
                    continue
                if tuple(getattr(row, c) for c in columns) == values:
                    raise DuplicateRecordError(
                        f"{model.__name__} with {dict(zip(columns, values))} already exists"
                    )

    def _create(self, model: Type[ModelT], fields: Dict[str, Any]) -> ModelT:
        check_fields(model, fields)
        instance = model(**fields)
        for column in model.__table__.columns:
            if getattr(instance, column.key) is not None:
                continue
            if column.default is not None and column.default.is_scalar:
                setattr(instance, column.key, column.default.arg)
        now = datetime.now(timezone.utc)
        for stamp in ("created_at", "updated_at"):
            if stamp in model.__table__.columns and getattr(instance, stamp) is None:
                setattr(instance, stamp, now)

        for column in model.__table__.columns:
            if not column.nullable and not column.primary_key and getattr(instance, column.key) is None:
                raise MissingValueError(model.__name__, column.key)
        self._check_unique(model, instance)
        instance.id = next(self._sequences[model])
        self._tables[model][instance.id] = instance
        return instance

    def _update(self, model: Type[ModelT], id: int, fields: Dict[str, Any]) -> ModelT:
        check_fields(model, fields)
        instance = self._tables[model].get(id)
        if instance is None:
            raise RecordNotFoundError(model.__name__, id)
        previous = {key: getattr(instance, key) for key in fields}
        for key, value in fields.items():
            setattr(instance, key, value)
        try:
            self._check_unique(model, instance)
        except DuplicateRecordError:
            for key, value in previous.items():
                setattr(instance, key, value)
            raise
        if "updated_at" in model.__table__.columns:
            instance.updated_at = datetime.now(timezone.utc)
        return instance

    def _delete(self, model: Type[ModelT], id: int) -> None:
        if self._tables[model].pop(id, None) is None:
            raise RecordNotFoundError(model.__name__, id)

    def _cascade(self, model: Type[ModelT], predicate: Callable[[ModelT], bool]) -> None:
        for row in self._where(model, predicate):
            del self._tables[model][row.id]

    # =========================================================================
    # Users
    # =========================================================================

    async def get_user(self, id: int) -> Optional[MirroredUser]:
        return self._tables[MirroredUser].get(id)

    async def get_user_by_user_id(self, user_id: str) -> Optional[MirroredUser]:
        return self._first(MirroredUser, lambda u: u.user_id == user_id)

    async def get_user_by_platform_id(self, platform_id: int) -> Optional[MirroredUser]:
        return self._first(MirroredUser, lambda u: u.platform_id == platform_id)

    async def list_users(self) -> List[MirroredUser]:
        return self._rows(MirroredUser)

    async def create_user(self, **fields: Any) -> MirroredUser:
        return self._create(MirroredUser, fields)

    async def update_user(self, id: int, **fields: Any) -> MirroredUser:
        return self._update(MirroredUser, id, fields)

    async def delete_user(self, id: int) -> None:
        self._delete(MirroredUser, id)
        self._cascade(UserOrgMembership, lambda m: m.user_id == id)
        self._cascade(UserTeamMembership, lambda m: m.user_id == id)

    # =========================================================================
    # Organizations
    # =========================================================================

    async def get_organization(self, id: int) -> Optional[MirroredOrganization]:
        return self._tables[MirroredOrganization].get(id)

    async def get_organization_by_platform_id(self, platform_id: int) -> Optional[MirroredOrganization]:
        return self._first(MirroredOrganization, lambda o: o.platform_id == platform_id)

    async def list_organizations(self) -> List[MirroredOrganization]:
        return self._rows(MirroredOrganization)

    async def create_organization(self, **fields: Any) -> MirroredOrganization:
        return self._create(MirroredOrganization, fields)

    async def update_organization(self, id: int, **fields: Any) -> MirroredOrganization:
        return self._update(MirroredOrganization, id, fields)

    async def delete_organization(self, id: int) -> None:
        self._delete(MirroredOrganization, id)
        team_ids = {t.id for t in self._where(MirroredTeam, lambda t: t.org_id == id)}
        self._cascade(MirroredTeam, lambda t: t.id in team_ids)
        self._cascade(UserTeamMembership, lambda m: m.team_id in team_ids)
        self._cascade(UserOrgMembership, lambda m: m.org_id == id)

    # =========================================================================
    # Teams
    # =========================================================================

    async def get_team(self, id: int) -> Optional[MirroredTeam]:
        return self._tables[MirroredTeam].get(id)

    async def get_team_by_platform_id(self, org_id: int, platform_id: int) -> Optional[MirroredTeam]:
        return self._first(
            MirroredTeam, lambda t: t.org_id == org_id and t.platform_id == platform_id
        )

    async def list_teams(self, org_id: Optional[int] = None) -> List[MirroredTeam]:
        if org_id is None:
            return self._rows(MirroredTeam)
        return self._where(MirroredTeam, lambda t: t.org_id == org_id)

    async def create_team(self, **fields: Any) -> MirroredTeam:
        return self._create(MirroredTeam, fields)

    async def update_team(self, id: int, **fields: Any) -> MirroredTeam:
        return self._update(MirroredTeam, id, fields)

    async def delete_team(self, id: int) -> None:
        self._delete(MirroredTeam, id)
        self._cascade(UserTeamMembership, lambda m: m.team_id == id)

    # =========================================================================
    # Memberships
    # =========================================================================

    async def get_org_membership(self, user_id: int, org_id: int) -> Optional[UserOrgMembership]:
        return self._first(
            UserOrgMembership, lambda m: m.user_id == user_id and m.org_id == org_id
        )

    async def list_org_memberships(
        self,
        user_id: Optional[int] = None,
        org_id: Optional[int] = None,
    ) -> List[UserOrgMembership]:
        return self._where(
            UserOrgMembership,
            lambda m: (user_id is None or m.user_id == user_id)
            and (org_id is None or m.org_id == org_id),
        )

    async def create_org_membership(
        self,
        user_id: int,
        org_id: int,
        role: str = "Viewer",
        is_default: bool = False,
    ) -> UserOrgMembership:
        try:
            return self._create(
                UserOrgMembership,
                {"user_id": user_id, "org_id": org_id, "role": role, "is_default": is_default},
            )
        except DuplicateRecordError as e:
            raise MembershipConflictError(
                f"User {user_id} is already a member of organization {org_id}",
                user_id=user_id,
                target_id=org_id,
            ) from e

    async def update_org_membership(self, id: int, **fields: Any) -> UserOrgMembership:
        return self._update(UserOrgMembership, id, fields)

    async def delete_org_membership(self, id: int) -> None:
        self._delete(UserOrgMembership, id)

    async def get_team_membership(self, user_id: int, team_id: int) -> Optional[UserTeamMembership]:
        return self._first(
            UserTeamMembership, lambda m: m.user_id == user_id and m.team_id == team_id
        )

    async def list_team_memberships(
        self,
        user_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> List[UserTeamMembership]:
        return self._where(
            UserTeamMembership,
            lambda m: (user_id is None or m.user_id == user_id)
            and (team_id is None or m.team_id == team_id),
        )

    async def create_team_membership(self, user_id: int, team_id: int) -> UserTeamMembership:
        try:
            return self._create(UserTeamMembership, {"user_id": user_id, "team_id": team_id})
        except DuplicateRecordError as e:
            raise MembershipConflictError(
                f"User {user_id} is already a member of team {team_id}",
                user_id=user_id,
                target_id=team_id,
            ) from e

    async def delete_team_membership(self, id: int) -> None:
        self._delete(UserTeamMembership, id)

    # =========================================================================
    # Sync logs
    # =========================================================================

    async def add_sync_log(
        self,
        type: str,
        status: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> SyncLog:
        return self._create(SyncLog, {"type": type, "status": status, "details": details})

    async def list_sync_logs(self, limit: int = 50) -> List[SyncLog]:
        return list(reversed(self._rows(SyncLog)))[:limit]

    # =========================================================================
    # Settings
    # =========================================================================

    async def get_setting(self, key: str) -> Optional[str]:
        setting = self._first(Setting, lambda s: s.key == key)
        return setting.value if setting else None

    async def get_settings_map(self) -> Dict[str, Optional[str]]:
        return {s.key: s.value for s in self._rows(Setting)}

    async def update_setting(self, key: str, value: Optional[str]) -> Setting:
        setting = self._first(Setting, lambda s: s.key == key)
        if setting is None:
            return self._create(Setting, {"key": key, "value": value})
        return self._update(Setting, setting.id, {"value": value})
