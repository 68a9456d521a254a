"""
Opoppo Directory Client.

Read-only adapter over the Opoppo employee directory (PostgreSQL).
Queries run through a SQLAlchemy async engine created from
``OpoppoSettings``; every failure to reach or query the database raises
``DirectoryConnectionError`` instead of returning an empty list, so callers
can tell "no employees" from "directory unreachable".

Usage:
    client = OpoppoDirectoryClient(get_opoppo_settings())
    try:
        employees = await client.list_employees()
    finally:
        await client.close()
"""

import logging
import ssl
import time
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from grafana_console.directory.exceptions import (
    DirectoryConfigurationError,
    DirectoryConnectionError,
)
from grafana_console.directory.schemas import Company, EmployeeRecord, OrgUnit, Position
from grafana_console.settings import OpoppoSettings

logger = logging.getLogger(__name__)


# The directory tables were created with quoted upper-case identifiers.
EMPLOYEE_QUERY = """
    SELECT
        u."USER_ID",
        u."SEI",
        u."MEI",
        u."YAKUSYOKU_CD",
        u."KAISYA_CD",
        u."SOSHIKI_CD",
        y."YAKUSYOKU_NM",
        s."SOSHIKI_NM",
        k."KAISYA_NM"
    FROM "USER" u
    LEFT JOIN "YAKUSYOKU" y ON u."KAISYA_CD" = y."KAISYA_CD" AND u."YAKUSYOKU_CD" = y."YAKUSYOKU_CD"
    LEFT JOIN "SOSHIKI" s ON u."KAISYA_CD" = s."KAISYA_CD" AND u."SOSHIKI_CD" = s."SOSHIKI_CD"
    LEFT JOIN "KAISYA" k ON u."KAISYA_CD" = k."KAISYA_CD"
"""

EMPLOYEE_BY_ID_QUERY = EMPLOYEE_QUERY + ' WHERE u."USER_ID" = :employee_id'

COMPANY_QUERY = 'SELECT "KAISYA_CD", "KAISYA_NM" FROM "KAISYA" ORDER BY "KAISYA_NM"'

ORG_UNIT_QUERY = (
    'SELECT "KAISYA_CD", "SOSHIKI_CD", "SOSHIKI_NM" FROM "SOSHIKI" '
    'ORDER BY "KAISYA_CD", "SOSHIKI_NM"'
)

POSITION_QUERY = (
    'SELECT "KAISYA_CD", "YAKUSYOKU_CD", "YAKUSYOKU_NM" FROM "YAKUSYOKU" '
    'ORDER BY "KAISYA_CD", "YAKUSYOKU_NM"'
)


@runtime_checkable
class DirectoryClientProtocol(Protocol):
    """Read surface shared by the real and the in-memory directory."""

    async def list_employees(self) -> List[EmployeeRecord]: ...

    async def get_employee(self, employee_id: str) -> Optional[EmployeeRecord]: ...

    async def list_companies(self) -> List[Company]: ...

    async def list_org_units(self) -> List[OrgUnit]: ...

    async def list_positions(self) -> List[Position]: ...

    async def check_connection(self) -> dict: ...

    async def close(self) -> None: ...


def _normalize_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Upper-case column keys so unquoted and quoted schemas validate alike."""
    return {str(key).upper(): value for key, value in row.items()}


class OpoppoDirectoryClient:
    """
    Opoppo directory adapter.

    Args:
        settings: Connection settings.
        engine: Pre-built engine (tests, shared pools). When omitted the
            client creates its own engine on first use and disposes it in
            ``close()``.
    """

    def __init__(
        self,
        settings: OpoppoSettings,
        engine: Optional[AsyncEngine] = None,
    ) -> None:
        self._settings = settings
        self._engine = engine
        self._owns_engine = engine is None

    def is_configured(self) -> bool:
        """Check if host, database and user are set."""
        return bool(self._settings.host and self._settings.name and self._settings.user)

    def _get_engine(self) -> AsyncEngine:
        if self._engine is None:
            if not self.is_configured():
                raise DirectoryConfigurationError(
                    "Opoppo directory is not configured (OPOPPO_DB_HOST / OPOPPO_DB_NAME / OPOPPO_DB_USER)"
                )
            connect_args: Dict[str, Any] = {}
            if self._settings.ssl:
                ctx = ssl.create_default_context()
                ctx.check_hostname = False
                ctx.verify_mode = ssl.CERT_NONE
                connect_args["ssl"] = ctx
            self._engine = create_async_engine(
                self._settings.database_url,
                pool_pre_ping=True,
                pool_size=2,
                max_overflow=0,
                connect_args=connect_args,
            )
        return self._engine

    async def _fetch(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Run a read-only query and return rows with upper-case keys.

        Raises:
            DirectoryConfigurationError: Connection settings incomplete.
            DirectoryConnectionError: Database unreachable or query failed.
        """
        engine = self._get_engine()
        try:
            async with engine.connect() as conn:
                result = await conn.execute(text(query), params or {})
                return [_normalize_row(row) for row in result.mappings().all()]
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Opoppo query failed on {self._settings.host}/{self._settings.name}: {e}")
            raise DirectoryConnectionError(f"Opoppo directory query failed: {e}") from e

    # =========================================================================
    # Employees
    # =========================================================================

    async def list_employees(self) -> List[EmployeeRecord]:
        """Fetch every employee with company, org unit and position names."""
        rows = await self._fetch(EMPLOYEE_QUERY)
        logger.debug(f"Fetched {len(rows)} employees from Opoppo")
        return [EmployeeRecord.model_validate(row) for row in rows]

    async def get_employee(self, employee_id: str) -> Optional[EmployeeRecord]:
        """
        Fetch one employee.

        Returns:
            The record, or None when the ID does not exist.
        """
        rows = await self._fetch(EMPLOYEE_BY_ID_QUERY, {"employee_id": employee_id})
        if not rows:
            return None
        return EmployeeRecord.model_validate(rows[0])

    # =========================================================================
    # Reference tables
    # =========================================================================

    async def list_companies(self) -> List[Company]:
        return [Company.model_validate(row) for row in await self._fetch(COMPANY_QUERY)]

    async def list_org_units(self) -> List[OrgUnit]:
        return [OrgUnit.model_validate(row) for row in await self._fetch(ORG_UNIT_QUERY)]

    async def list_positions(self) -> List[Position]:
        return [Position.model_validate(row) for row in await self._fetch(POSITION_QUERY)]

    # =========================================================================
    # Health / lifecycle
    # =========================================================================

    async def check_connection(self) -> dict:
        """
        Check directory connectivity for the settings page.

        Returns:
            dict: {"status": "healthy" | "error", "message": ..., "details": {...}}
        """
        details = {
            "Host": f"{self._settings.host}:{self._settings.port}",
            "Database": self._settings.name,
        }
        if not self.is_configured():
            return {"status": "error", "message": "Not configured", "details": details}

        start_time = time.time()
        try:
            await self._fetch("SELECT 1")
        except DirectoryConnectionError as e:
            return {
                "status": "error",
                "message": "Connection failed",
                "details": {**details, "Error": str(e)[:80]},
            }
        latency_ms = int((time.time() - start_time) * 1000)
        return {
            "status": "healthy",
            "message": "Connected",
            "details": {**details, "Latency": f"{latency_ms}ms"},
        }

    async def close(self) -> None:
        """Dispose the engine if this client created it."""
        if self._engine is not None and self._owns_engine:
            await self._engine.dispose()
            self._engine = None
