"""
FastAPI Dependencies - Dependency Injection for API Routers.

Provides `Annotated[Service, Depends(get_service)]` aliases for the
repository, both source adapters, the reconciliation engine and the
sync coordinator.

Everything long-lived is stored on ``app.state`` by the lifespan:

    app.state.context        AppContext
    app.state.repository     Repository
    app.state.coordinator    SyncCoordinator
    app.state.http_client    shared httpx.AsyncClient
    app.state.directory      optional in-memory directory
    app.state.platform       optional in-memory Grafana

When the in-memory sources are absent, the real adapters are built per
request from the effective (environment + stored) settings.

Usage:
    from grafana_console.dependencies import EngineDep, RepositoryDep

    @router.post("/sync/grafana")
    async def sync_grafana(engine: EngineDep):
        ...
"""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request

from grafana_console.app_context import AppContext
from grafana_console.directory.client import DirectoryClientProtocol, OpoppoDirectoryClient
from grafana_console.http_client import get_http_client_from_app
from grafana_console.platform.client import GrafanaClient, PlatformClientProtocol
from grafana_console.repository.base import Repository
from grafana_console.services.memberships import MembershipService
from grafana_console.settings import resolve_grafana_settings, resolve_opoppo_settings
from grafana_console.sync.coordinator import SyncCoordinator
from grafana_console.sync.engine import ReconciliationEngine

logger = logging.getLogger(__name__)


def _require_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(
            f"app.state.{name} is not set. Ensure lifespan context is properly configured."
        )
    return value


# =============================================================================
# Application Context
# =============================================================================

def get_context(request: Request) -> AppContext:
    return _require_state(request, "context")


ContextDep = Annotated[AppContext, Depends(get_context)]


# =============================================================================
# Repository
# =============================================================================

def get_repository(request: Request) -> Repository:
    """
    FastAPI dependency for the local mirror repository.

    Returns:
        Repository: The process-wide repository
    """
    return _require_state(request, "repository")


RepositoryDep = Annotated[Repository, Depends(get_repository)]


# =============================================================================
# Source Adapters
# =============================================================================

async def get_directory(
    request: Request,
    repository: RepositoryDep,
) -> AsyncGenerator[DirectoryClientProtocol, None]:
    """
    FastAPI dependency for the Opoppo directory adapter.

    A real client owns its connection pool, so it is closed once the
    request finishes.
    """
    mock = getattr(request.app.state, "directory", None)
    if mock is not None:
        yield mock
        return

    settings = await resolve_opoppo_settings(repository)
    client = OpoppoDirectoryClient(settings)
    try:
        yield client
    finally:
        await client.close()


DirectoryDep = Annotated[DirectoryClientProtocol, Depends(get_directory)]


async def get_platform(request: Request, repository: RepositoryDep) -> PlatformClientProtocol:
    """
    FastAPI dependency for the Grafana adapter.

    Injects the shared HTTP client from app state.
    """
    mock = getattr(request.app.state, "platform", None)
    if mock is not None:
        return mock

    settings = await resolve_grafana_settings(repository)
    return GrafanaClient(settings, http_client=get_http_client_from_app(request.app))


PlatformDep = Annotated[PlatformClientProtocol, Depends(get_platform)]


# =============================================================================
# Sync
# =============================================================================

def get_engine(
    repository: RepositoryDep,
    directory: DirectoryDep,
    platform: PlatformDep,
) -> ReconciliationEngine:
    return ReconciliationEngine(repository, directory, platform)


EngineDep = Annotated[ReconciliationEngine, Depends(get_engine)]


def get_coordinator(request: Request) -> SyncCoordinator:
    return _require_state(request, "coordinator")


CoordinatorDep = Annotated[SyncCoordinator, Depends(get_coordinator)]


# =============================================================================
# Services
# =============================================================================

def get_membership_service(repository: RepositoryDep) -> MembershipService:
    return MembershipService(repository)


MembershipServiceDep = Annotated[MembershipService, Depends(get_membership_service)]
