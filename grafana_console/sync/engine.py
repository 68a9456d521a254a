"""
Reconciliation Engine.

Brings the local mirror in line with the Opoppo directory and with
Grafana. Each entity sync fetches the remote records, looks every record
up locally by its natural key and either updates the match or creates a
new row.

Rules:
    - Upsert only. A local row missing remotely is left untouched; local
      deletions happen through explicit administrative action only.
    - Directory-origin users are created ``pending``; Grafana-origin users
      are created and updated ``active``.
    - Team sync only visits organizations with a known Grafana ID.
    - The full Grafana sync runs organizations, users, teams in that order.
    - Every public operation writes exactly one sync log row, success or
      error, and re-raises failures unchanged. Nothing is retried.
    - Organizations match on Grafana ID only, never by name.

Records are processed one at a time in the order the source returns them.
Each upsert commits on its own, so a failure part way leaves earlier
upserts applied; the next run simply diffs again.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, TypeVar

from grafana_console.directory.client import DirectoryClientProtocol
from grafana_console.models import UserStatus
from grafana_console.platform.client import PlatformClientProtocol
from grafana_console.repository.base import Repository
from grafana_console.sync.constants import SyncType
from grafana_console.sync.log_recorder import SyncLogRecorder

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class DirectorySyncResult:
    """Result of a directory to local sync."""

    created_count: int = 0
    total_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"count": self.created_count, "total": self.total_count}


@dataclass
class FullSyncResult:
    """Created counts of the three Grafana entity syncs."""

    orgs_created: int = 0
    users_created: int = 0
    teams_created: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orgs": self.orgs_created,
            "users": self.users_created,
            "teams": self.teams_created,
        }


def _changes(instance: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Subset of ``fields`` whose value differs from the instance."""
    return {key: value for key, value in fields.items() if getattr(instance, key) != value}


# =============================================================================
# Engine
# =============================================================================


class ReconciliationEngine:
    """
    Directory -> local and Grafana -> local reconciliation.

    Args:
        repository: Local mirror.
        directory: Opoppo directory adapter (real or in-memory).
        platform: Grafana adapter (real or in-memory).
        recorder: Sync log recorder; defaults to one over ``repository``.
    """

    def __init__(
        self,
        repository: Repository,
        directory: DirectoryClientProtocol,
        platform: PlatformClientProtocol,
        recorder: SyncLogRecorder | None = None,
    ) -> None:
        self._repository = repository
        self._directory = directory
        self._platform = platform
        self._recorder = recorder or SyncLogRecorder(repository)

    # =========================================================================
    # Public operations (one sync log row each)
    # =========================================================================

    async def sync_directory_users(self) -> DirectorySyncResult:
        """Mirror Opoppo employees into local users."""
        return await self._logged(
            SyncType.DIRECTORY_TO_LOCAL,
            self._sync_directory_users,
            lambda r: {"added": r.created_count, "total": r.total_count},
        )

    async def sync_organizations(self) -> int:
        """Mirror Grafana organizations. Returns the number created."""
        return await self._logged(
            SyncType.ORGANIZATIONS, self._sync_organizations, lambda n: {"added": n}
        )

    async def sync_users(self) -> int:
        """Mirror Grafana users. Returns the number created."""
        return await self._logged(SyncType.USERS, self._sync_users, lambda n: {"added": n})

    async def sync_teams(self) -> int:
        """Mirror Grafana teams of every reconciled organization. Returns the number created."""
        return await self._logged(SyncType.TEAMS, self._sync_teams, lambda n: {"added": n})

    async def run_full_sync(self) -> FullSyncResult:
        """
        Organizations, then users, then teams.

        A failing stage aborts the remaining ones; earlier stages stay
        applied and a single error row is logged instead of the summary.
        """

        async def run() -> FullSyncResult:
            orgs = await self._sync_organizations()
            users = await self._sync_users()
            teams = await self._sync_teams()
            return FullSyncResult(orgs_created=orgs, users_created=users, teams_created=teams)

        return await self._logged(SyncType.FULL_SYNC, run, lambda r: r.to_dict())

    # =========================================================================
    # Logging boundary
    # =========================================================================

    async def _logged(
        self,
        sync_type: SyncType,
        run: Callable[[], Awaitable[ResultT]],
        summarize: Callable[[ResultT], Dict[str, Any]],
    ) -> ResultT:
        start_time = time.time()
        logger.info(f"Starting sync: {sync_type}")

        try:
            result = await run()
            details = summarize(result)
            await self._recorder.record_success(sync_type, details)
        except Exception as e:
            logger.error(f"Sync {sync_type} failed: {type(e).__name__}: {e}")
            try:
                await self._recorder.record_failure(sync_type, e)
            except Exception:
                logger.exception(f"Could not record failure of sync {sync_type}")
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(f"Sync {sync_type} completed: {details} ({duration_ms:.0f}ms)")
        return result

    # =========================================================================
    # Stages
    # =========================================================================

    async def _sync_directory_users(self) -> DirectorySyncResult:
        employees = await self._directory.list_employees()
        logger.info(f"Fetched {len(employees)} employees from Opoppo")

        created = 0
        for employee in employees:
            fields = {
                "name": employee.display_name,
                "department": employee.org_unit_name,
                "position": employee.position_name,
                "company": employee.company_name,
            }
            existing = await self._repository.get_user_by_user_id(employee.employee_id)
            if existing is not None:
                changes = _changes(existing, fields)
                if changes:
                    await self._repository.update_user(existing.id, **changes)
                continue

            await self._repository.create_user(
                user_id=employee.employee_id,
                email=employee.placeholder_email,
                login=employee.employee_id,
                status=UserStatus.PENDING.value,
                **fields,
            )
            created += 1

        return DirectorySyncResult(created_count=created, total_count=len(employees))

    async def _sync_organizations(self) -> int:
        remote_orgs = await self._platform.list_organizations()
        local_orgs = await self._repository.list_organizations()
        logger.info(f"Reconciling {len(remote_orgs)} Grafana organizations against {len(local_orgs)} local")

        by_platform_id = {o.platform_id: o for o in local_orgs if o.platform_id is not None}

        created = 0
        for remote in remote_orgs:
            local = by_platform_id.get(remote.id)
            fields = {"name": remote.name, "platform_id": remote.id}

            if local is not None:
                changes = _changes(local, fields)
                if changes:
                    local = await self._repository.update_organization(local.id, **changes)
            else:
                local = await self._repository.create_organization(**fields)
                created += 1
            by_platform_id[remote.id] = local

        return created

    async def _sync_users(self) -> int:
        remote_users = await self._platform.list_users()
        logger.info(f"Reconciling {len(remote_users)} Grafana users")

        created = 0
        for remote in remote_users:
            fields = {
                "name": remote.name,
                "email": remote.email,
                "login": remote.login,
                "platform_id": remote.id,
                "last_login": remote.last_seen_at,
                "status": UserStatus.ACTIVE.value,
            }
            local = await self._repository.get_user_by_platform_id(remote.id)
            if local is None:
                # user_id is globally unique: an existing row with this login is the same user.
                local = await self._repository.get_user_by_user_id(remote.login)

            if local is not None:
                changes = _changes(local, fields)
                if changes:
                    await self._repository.update_user(local.id, **changes)
                continue

            await self._repository.create_user(user_id=remote.login, **fields)
            created += 1

        return created

    async def _sync_teams(self) -> int:
        organizations = await self._repository.list_organizations()

        created = 0
        for org in organizations:
            if org.platform_id is None:
                logger.debug(f"Skipping teams of organization {org.id} ({org.name}): no Grafana ID")
                continue

            remote_teams = await self._platform.list_teams(org.platform_id)
            for remote in remote_teams:
                fields = {"name": remote.name, "email": remote.email}
                local = await self._repository.get_team_by_platform_id(org.id, remote.id)
                if local is not None:
                    changes = _changes(local, fields)
                    if changes:
                        await self._repository.update_team(local.id, **changes)
                    continue

                await self._repository.create_team(org_id=org.id, platform_id=remote.id, **fields)
                created += 1

        return created
