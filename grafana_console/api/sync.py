"""
Sync API.

Triggers for the reconciliation engine and the sync log history. Every
trigger runs under the process-wide coordinator, so a second request while
one sync is running is answered with 409.
"""

import logging
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, HTTPException, Query, status

from grafana_console.api.schemas import SyncLogResponse
from grafana_console.dependencies import (
    ContextDep,
    CoordinatorDep,
    EngineDep,
    RepositoryDep,
)
from grafana_console.directory.exceptions import DirectoryError
from grafana_console.platform.exceptions import PlatformError
from grafana_console.repository.exceptions import RepositoryError
from grafana_console.sync.coordinator import SyncCoordinator, SyncInProgressError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sync", tags=["Sync"])


async def _guarded(label: str, call: Callable[[], Awaitable[Any]]) -> Any:
    """
    Await a coordinator call.

    Source and repository errors propagate to the application's exception
    handlers; anything else becomes a 500 carrying the error message.
    """
    try:
        return await call()
    except (SyncInProgressError, PlatformError, DirectoryError, RepositoryError):
        raise
    except Exception as e:
        logger.exception(f"Sync '{label}' failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        ) from e


async def _run(coordinator: SyncCoordinator, label: str, operation: Callable[[], Awaitable[Any]]) -> Any:
    return await _guarded(label, lambda: coordinator.run(label, operation))


@router.post("/opoppo")
async def sync_opoppo(engine: EngineDep, coordinator: CoordinatorDep, context: ContextDep) -> dict:
    """Mirror Opoppo employees into local users."""
    result = await _run(coordinator, "opoppo", engine.sync_directory_users)
    context.log_event(f"Opoppo sync: {result.created_count}/{result.total_count} added", "SYNC")
    return {"status": "success", **result.to_dict()}


@router.post("/organizations")
async def sync_organizations(engine: EngineDep, coordinator: CoordinatorDep) -> dict:
    count = await _run(coordinator, "organizations", engine.sync_organizations)
    return {"status": "success", "count": count}


@router.post("/grafana-users")
async def sync_grafana_users(engine: EngineDep, coordinator: CoordinatorDep) -> dict:
    count = await _run(coordinator, "grafana-users", engine.sync_users)
    return {"status": "success", "count": count}


@router.post("/teams")
async def sync_teams(engine: EngineDep, coordinator: CoordinatorDep) -> dict:
    count = await _run(coordinator, "teams", engine.sync_teams)
    return {"status": "success", "count": count}


@router.post("/grafana")
async def sync_grafana(engine: EngineDep, coordinator: CoordinatorDep, context: ContextDep) -> dict:
    """Organizations, users and teams from Grafana, in that order."""
    result = await _run(coordinator, "grafana", engine.run_full_sync)
    context.log_event(f"Grafana sync: {result.to_dict()}", "SYNC")
    return {"status": "success", **result.to_dict()}


@router.post("/full")
async def sync_full(engine: EngineDep, coordinator: CoordinatorDep, context: ContextDep) -> dict:
    """Directory stage, then Grafana stage. The Grafana stage is skipped if the first fails."""
    result = await _guarded("full", lambda: coordinator.run_bidirectional(engine))
    context.log_event(f"Full sync: {result.to_dict()}", "SYNC")
    return {"status": "success", **result.to_dict()}


@router.get("/status")
async def sync_status(coordinator: CoordinatorDep) -> dict:
    return {"running": coordinator.is_running, "current": coordinator.current}


@router.get("/logs", response_model=list[SyncLogResponse])
async def list_sync_logs(
    repository: RepositoryDep,
    limit: int = Query(50, ge=1, le=500, description="Maximum number of entries"),
) -> list:
    """Sync history, newest first."""
    return await repository.list_sync_logs(limit=limit)
