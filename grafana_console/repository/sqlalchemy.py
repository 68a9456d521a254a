"""
SQLAlchemy Repository.

Mirror repository backed by the async SQLAlchemy engine. Every public
method opens its own short session and commits before returning.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from grafana_console.database import Base, session_scope
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
from grafana_console.repository.base import Repository, RepositoryStats, check_fields
from grafana_console.repository.exceptions import (
    DuplicateRecordError,
    MembershipConflictError,
    RecordNotFoundError,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class SqlAlchemyRepository(Repository):
    """
    Repository over PostgreSQL via SQLAlchemy asyncio.

    Args:
        session_factory: Factory from ``get_session_factory()``.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # =========================================================================
    # Generic helpers
    # =========================================================================

    async def _get(self, model: Type[ModelT], id: int) -> Optional[ModelT]:
        async with session_scope(self._session_factory) as session:
            return await session.get(model, id)

    async def _find_one(self, model: Type[ModelT], *criteria: Any) -> Optional[ModelT]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(select(model).where(*criteria).limit(1))
            return result.scalars().first()

    async def _list(self, model: Type[ModelT], *criteria: Any, order_by: Any = None) -> List[ModelT]:
        query = select(model)
        if criteria:
            query = query.where(*criteria)
        query = query.order_by(order_by if order_by is not None else model.id)
        async with session_scope(self._session_factory) as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def _create(
        self,
        model: Type[ModelT],
        fields: Dict[str, Any],
        conflict: Optional[Exception] = None,
    ) -> ModelT:
        check_fields(model, fields)
        instance = model(**fields)
        try:
            async with session_scope(self._session_factory) as session:
                session.add(instance)
                await session.flush()
        except IntegrityError as e:
            logger.warning(f"Insert into {model.__tablename__} rejected: {e.orig}")
            if conflict is not None:
                raise conflict from e
            raise DuplicateRecordError(
                f"{model.__name__} violates a uniqueness constraint"
            ) from e
        return instance

    async def _update(self, model: Type[ModelT], id: int, fields: Dict[str, Any]) -> ModelT:
        check_fields(model, fields)
        try:
            async with session_scope(self._session_factory) as session:
                instance = await session.get(model, id)
                if instance is None:
                    raise RecordNotFoundError(model.__name__, id)
                for key, value in fields.items():
                    setattr(instance, key, value)
                await session.flush()
        except IntegrityError as e:
            logger.warning(f"Update of {model.__tablename__} {id} rejected: {e.orig}")
            raise DuplicateRecordError(
                f"{model.__name__} {id} violates a uniqueness constraint"
            ) from e
        return instance

    async def _delete(self, model: Type[ModelT], id: int) -> None:
        async with session_scope(self._session_factory) as session:
            instance = await session.get(model, id)
            if instance is None:
                raise RecordNotFoundError(model.__name__, id)
            await session.delete(instance)

    async def _count(self, model: Type[ModelT], *criteria: Any) -> int:
        query = select(func.count()).select_from(model)
        if criteria:
            query = query.where(*criteria)
        async with session_scope(self._session_factory) as session:
            result = await session.execute(query)
            return int(result.scalar_one())

    # =========================================================================
    # Users
    # =========================================================================

    async def get_user(self, id: int) -> Optional[MirroredUser]:
        return await self._get(MirroredUser, id)

    async def get_user_by_user_id(self, user_id: str) -> Optional[MirroredUser]:
        return await self._find_one(MirroredUser, MirroredUser.user_id == user_id)

    async def get_user_by_platform_id(self, platform_id: int) -> Optional[MirroredUser]:
        return await self._find_one(MirroredUser, MirroredUser.platform_id == platform_id)

    async def list_users(self) -> List[MirroredUser]:
        return await self._list(MirroredUser)

    async def create_user(self, **fields: Any) -> MirroredUser:
        return await self._create(MirroredUser, fields)

    async def update_user(self, id: int, **fields: Any) -> MirroredUser:
        return await self._update(MirroredUser, id, fields)

    async def delete_user(self, id: int) -> None:
        await self._delete(MirroredUser, id)

    # =========================================================================
    # Organizations
    # =========================================================================

    async def get_organization(self, id: int) -> Optional[MirroredOrganization]:
        return await self._get(MirroredOrganization, id)

    async def get_organization_by_platform_id(self, platform_id: int) -> Optional[MirroredOrganization]:
        return await self._find_one(
            MirroredOrganization, MirroredOrganization.platform_id == platform_id
        )

    async def list_organizations(self) -> List[MirroredOrganization]:
        return await self._list(MirroredOrganization)

    async def create_organization(self, **fields: Any) -> MirroredOrganization:
        return await self._create(MirroredOrganization, fields)

    async def update_organization(self, id: int, **fields: Any) -> MirroredOrganization:
        return await self._update(MirroredOrganization, id, fields)

    async def delete_organization(self, id: int) -> None:
        await self._delete(MirroredOrganization, id)

    # =========================================================================
    # Teams
    # =========================================================================

    async def get_team(self, id: int) -> Optional[MirroredTeam]:
        return await self._get(MirroredTeam, id)

    async def get_team_by_platform_id(self, org_id: int, platform_id: int) -> Optional[MirroredTeam]:
        return await self._find_one(
            MirroredTeam,
            MirroredTeam.org_id == org_id,
            MirroredTeam.platform_id == platform_id,
        )

    async def list_teams(self, org_id: Optional[int] = None) -> List[MirroredTeam]:
        if org_id is None:
            return await self._list(MirroredTeam)
        return await self._list(MirroredTeam, MirroredTeam.org_id == org_id)

    async def create_team(self, **fields: Any) -> MirroredTeam:
        return await self._create(MirroredTeam, fields)

    async def update_team(self, id: int, **fields: Any) -> MirroredTeam:
        return await self._update(MirroredTeam, id, fields)

    async def delete_team(self, id: int) -> None:
        await self._delete(MirroredTeam, id)

    # =========================================================================
    # Memberships
    # =========================================================================

    async def get_org_membership(self, user_id: int, org_id: int) -> Optional[UserOrgMembership]:
        return await self._find_one(
            UserOrgMembership,
            UserOrgMembership.user_id == user_id,
            UserOrgMembership.org_id == org_id,
        )

    async def list_org_memberships(
        self,
        user_id: Optional[int] = None,
        org_id: Optional[int] = None,
    ) -> List[UserOrgMembership]:
        criteria = []
        if user_id is not None:
            criteria.append(UserOrgMembership.user_id == user_id)
        if org_id is not None:
            criteria.append(UserOrgMembership.org_id == org_id)
        return await self._list(UserOrgMembership, *criteria)

    async def create_org_membership(
        self,
        user_id: int,
        org_id: int,
        role: str = "Viewer",
        is_default: bool = False,
    ) -> UserOrgMembership:
        return await self._create(
            UserOrgMembership,
            {"user_id": user_id, "org_id": org_id, "role": role, "is_default": is_default},
            conflict=MembershipConflictError(
                f"User {user_id} is already a member of organization {org_id}",
                user_id=user_id,
                target_id=org_id,
            ),
        )

    async def update_org_membership(self, id: int, **fields: Any) -> UserOrgMembership:
        return await self._update(UserOrgMembership, id, fields)

    async def delete_org_membership(self, id: int) -> None:
        await self._delete(UserOrgMembership, id)

    async def get_team_membership(self, user_id: int, team_id: int) -> Optional[UserTeamMembership]:
        return await self._find_one(
            UserTeamMembership,
            UserTeamMembership.user_id == user_id,
            UserTeamMembership.team_id == team_id,
        )

    async def list_team_memberships(
        self,
        user_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> List[UserTeamMembership]:
        criteria = []
        if user_id is not None:
            criteria.append(UserTeamMembership.user_id == user_id)
        if team_id is not None:
            criteria.append(UserTeamMembership.team_id == team_id)
        return await self._list(UserTeamMembership, *criteria)

    async def create_team_membership(self, user_id: int, team_id: int) -> UserTeamMembership:
        return await self._create(
            UserTeamMembership,
            {"user_id": user_id, "team_id": team_id},
            conflict=MembershipConflictError(
                f"User {user_id} is already a member of team {team_id}",
                user_id=user_id,
                target_id=team_id,
            ),
        )

    async def delete_team_membership(self, id: int) -> None:
        await self._delete(UserTeamMembership, id)

    # =========================================================================
    # Sync logs
    # =========================================================================

    async def add_sync_log(
        self,
        type: str,
        status: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> SyncLog:
        return await self._create(
            SyncLog,
            {
                "type": type,
                "status": status,
                "details": details,
                "created_at": datetime.now(timezone.utc),
            },
        )

    async def list_sync_logs(self, limit: int = 50) -> List[SyncLog]:
        query = (
            select(SyncLog)
            .order_by(SyncLog.created_at.desc(), SyncLog.id.desc())
            .limit(limit)
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    # =========================================================================
    # Settings
    # =========================================================================

    async def get_setting(self, key: str) -> Optional[str]:
        setting = await self._find_one(Setting, Setting.key == key)
        return setting.value if setting else None

    async def get_settings_map(self) -> Dict[str, Optional[str]]:
        return {s.key: s.value for s in await self._list(Setting)}

    async def update_setting(self, key: str, value: Optional[str]) -> Setting:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(select(Setting).where(Setting.key == key))
            setting = result.scalars().first()
            if setting is None:
                setting = Setting(key=key, value=value)
                session.add(setting)
            else:
                setting.value = value
            await session.flush()
            return setting

    # =========================================================================
    # Stats
    # =========================================================================

    async def get_stats(self) -> RepositoryStats:
        return RepositoryStats(
            total_users=await self._count(MirroredUser),
            active_users=await self._count(
                MirroredUser, MirroredUser.status == UserStatus.ACTIVE.value
            ),
            pending_users=await self._count(
                MirroredUser, MirroredUser.status == UserStatus.PENDING.value
            ),
            organizations=await self._count(MirroredOrganization),
            teams=await self._count(MirroredTeam),
            last_sync=await self.get_latest_sync_log(),
        )
