"""
Settings API.

Connection settings edited from the console. Stored values override the
environment; reads return the effective values but never a password.
"""

import logging

from fastapi import APIRouter

from grafana_console.api.schemas import (
    GrafanaSettingsResponse,
    GrafanaSettingsUpdate,
    OpoppoSettingsResponse,
    OpoppoSettingsUpdate,
)
from grafana_console.dependencies import DirectoryDep, PlatformDep, RepositoryDep
from grafana_console.repository.base import Repository
from grafana_console.settings import (
    GRAFANA_ADMIN_PASSWORD_KEY,
    GRAFANA_ADMIN_USER_KEY,
    GRAFANA_URL_KEY,
    OPOPPO_DB_HOST_KEY,
    OPOPPO_DB_NAME_KEY,
    OPOPPO_DB_PASSWORD_KEY,
    OPOPPO_DB_PORT_KEY,
    OPOPPO_DB_SSL_KEY,
    OPOPPO_DB_USER_KEY,
    resolve_grafana_settings,
    resolve_opoppo_settings,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/settings", tags=["Settings"])

# Passwords are only overwritten by a non-empty value.
_SECRET_KEYS = {GRAFANA_ADMIN_PASSWORD_KEY, OPOPPO_DB_PASSWORD_KEY}


async def _store(repository: Repository, values: dict) -> None:
    for key, value in values.items():
        if value is None:
            continue
        if key in _SECRET_KEYS and value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        await repository.update_setting(key, str(value))
        logger.info(f"Setting '{key}' updated")


async def _grafana_response(repository: Repository) -> GrafanaSettingsResponse:
    settings = await resolve_grafana_settings(repository)
    return GrafanaSettingsResponse(
        grafana_url=settings.url,
        grafana_admin_user=settings.admin_user,
        has_admin_password=bool(settings.admin_password.get_secret_value()),
    )


async def _opoppo_response(repository: Repository) -> OpoppoSettingsResponse:
    settings = await resolve_opoppo_settings(repository)
    return OpoppoSettingsResponse(
        opoppo_db_host=settings.host,
        opoppo_db_port=settings.port,
        opoppo_db_name=settings.name,
        opoppo_db_user=settings.user,
        opoppo_db_ssl=settings.ssl,
        has_password=bool(settings.password.get_secret_value()),
    )


# =============================================================================
# Grafana
# =============================================================================

@router.get("/grafana", response_model=GrafanaSettingsResponse)
async def get_grafana_settings(repository: RepositoryDep) -> GrafanaSettingsResponse:
    return await _grafana_response(repository)


@router.put("/grafana", response_model=GrafanaSettingsResponse)
async def update_grafana_settings(
    body: GrafanaSettingsUpdate,
    repository: RepositoryDep,
) -> GrafanaSettingsResponse:
    await _store(
        repository,
        {
            GRAFANA_URL_KEY: body.grafana_url,
            GRAFANA_ADMIN_USER_KEY: body.grafana_admin_user,
            GRAFANA_ADMIN_PASSWORD_KEY: body.grafana_admin_password,
        },
    )
    return await _grafana_response(repository)


@router.post("/grafana/test")
async def test_grafana_connection(platform: PlatformDep) -> dict:
    """Probe Grafana with the effective settings."""
    return await platform.check_connection()


# =============================================================================
# Opoppo
# =============================================================================

@router.get("/opoppo", response_model=OpoppoSettingsResponse)
async def get_opoppo_settings(repository: RepositoryDep) -> OpoppoSettingsResponse:
    return await _opoppo_response(repository)


@router.put("/opoppo", response_model=OpoppoSettingsResponse)
async def update_opoppo_settings(
    body: OpoppoSettingsUpdate,
    repository: RepositoryDep,
) -> OpoppoSettingsResponse:
    await _store(
        repository,
        {
            OPOPPO_DB_HOST_KEY: body.opoppo_db_host,
            OPOPPO_DB_PORT_KEY: body.opoppo_db_port,
            OPOPPO_DB_NAME_KEY: body.opoppo_db_name,
            OPOPPO_DB_USER_KEY: body.opoppo_db_user,
            OPOPPO_DB_PASSWORD_KEY: body.opoppo_db_password,
            OPOPPO_DB_SSL_KEY: body.opoppo_db_ssl,
        },
    )
    return await _opoppo_response(repository)


@router.post("/opoppo/test")
async def test_opoppo_connection(directory: DirectoryDep) -> dict:
    """Probe the directory database with the effective settings."""
    return await directory.check_connection()
