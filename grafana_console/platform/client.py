"""
Grafana Admin API Client.

Typed CRUD facade over the Grafana HTTP API for organizations, users,
teams and memberships, authenticated with the server admin's Basic auth.

Design Principles:
    GrafanaClient requires httpx.AsyncClient via EXPLICIT dependency injection.
    The HTTP client lifecycle is managed by the caller.

    Grafana's team endpoints act on "the organization the caller is
    currently using". Every team method therefore takes ``org_id`` and runs
    ``POST /api/user/using/{org_id}`` followed by the team request while
    holding a lock owned by the client, so two team calls for different
    organizations can never interleave their switch and request.

    All failures raise a ``PlatformError`` subclass; list reads do not
    degrade to empty lists.

Usage:
    async with create_standalone_http_client() as http_client:
        grafana = GrafanaClient(get_grafana_settings(), http_client=http_client)
        orgs = await grafana.list_organizations()
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional, Protocol, runtime_checkable

import httpx

from grafana_console.platform.exceptions import (
    PlatformConnectionError,
    PlatformError,
    PlatformNotFoundError,
    error_for_response,
)
from grafana_console.platform.schemas import GrafanaOrg, GrafanaTeam, GrafanaTeamMember, GrafanaUser
from grafana_console.settings import GrafanaSettings

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


@runtime_checkable
class PlatformClientProtocol(Protocol):
    """Surface shared by the real and the in-memory Grafana."""

    async def list_organizations(self) -> List[GrafanaOrg]: ...
    async def get_organization(self, org_id: int) -> Optional[GrafanaOrg]: ...
    async def create_organization(self, name: str) -> int: ...
    async def update_organization(self, org_id: int, name: str) -> None: ...
    async def delete_organization(self, org_id: int) -> None: ...

    async def list_users(self) -> List[GrafanaUser]: ...
    async def get_user(self, user_id: int) -> Optional[GrafanaUser]: ...
    async def create_user(self, name: str, email: str, login: str, password: str) -> int: ...
    async def update_user(self, user_id: int, **fields: Any) -> None: ...
    async def delete_user(self, user_id: int) -> None: ...

    async def add_user_to_organization(self, org_id: int, login_or_email: str, role: str = "Viewer") -> None: ...
    async def update_user_org_role(self, org_id: int, user_id: int, role: str) -> None: ...
    async def remove_user_from_organization(self, org_id: int, user_id: int) -> None: ...

    async def list_teams(self, org_id: int) -> List[GrafanaTeam]: ...
    async def get_team(self, org_id: int, team_id: int) -> Optional[GrafanaTeam]: ...
    async def create_team(self, org_id: int, name: str, email: Optional[str] = None) -> int: ...
    async def update_team(self, org_id: int, team_id: int, name: str, email: Optional[str] = None) -> None: ...
    async def delete_team(self, org_id: int, team_id: int) -> None: ...

    async def list_team_members(self, org_id: int, team_id: int) -> List[GrafanaTeamMember]: ...
    async def add_team_member(self, org_id: int, team_id: int, user_id: int) -> None: ...
    async def remove_team_member(self, org_id: int, team_id: int, user_id: int) -> None: ...

    async def check_connection(self) -> dict: ...


class GrafanaClient:
    """
    Grafana admin API adapter.

    Args:
        settings: URL and admin credentials.
        http_client: Shared httpx.AsyncClient (required).
        page_size: ``perpage`` used for paginated listings.
    """

    def __init__(
        self,
        settings: GrafanaSettings,
        http_client: httpx.AsyncClient,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if http_client is None:
            raise ValueError(
                "http_client is required. Use dependency injection in FastAPI routes, "
                "or create_standalone_http_client() for scripts."
            )

        self._client = http_client
        self._base_url = settings.base_url
        self._admin_user = settings.admin_user
        self._auth = httpx.BasicAuth(
            settings.admin_user, settings.admin_password.get_secret_value()
        )
        self._timeout = settings.timeout_seconds
        self._page_size = page_size
        self._org_lock = asyncio.Lock()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body (None when empty).

        Raises:
            PlatformConnectionError: Transport failure or 5xx.
            PlatformError: Subclass matching any other error status.
        """
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(
                method,
                url,
                json=json,
                params=params,
                auth=self._auth,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"Grafana request {method} {path} failed: {e}")
            raise PlatformConnectionError(f"Cannot reach Grafana at {self._base_url}: {e}") from e

        if response.is_error:
            error = error_for_response(response)
            logger.error(str(error))
            raise error

        if not response.content:
            return None
        return response.json()

    async def _paginate(self, path: str, key: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Collect every page of a listing.

        Plain-list endpoints stop at the first short page; envelope endpoints
        (``key`` set) stop once ``totalCount`` items were read.
        """
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            body = await self._request(
                "GET", path, params={"perpage": self._page_size, "page": page}
            )
            if key is None:
                batch = body or []
                total = None
            else:
                batch = (body or {}).get(key) or []
                total = (body or {}).get("totalCount")
            items.extend(batch)

            if len(batch) < self._page_size:
                break
            if total is not None and len(items) >= total:
                break
            page += 1
        return items

    @asynccontextmanager
    async def _org_scope(self, org_id: int) -> AsyncGenerator[None, None]:
        """Switch the admin session into ``org_id`` and hold it for the block."""
        async with self._org_lock:
            await self._request("POST", f"/api/user/using/{org_id}")
            yield

    # =========================================================================
    # Organizations
    # =========================================================================

    async def list_organizations(self) -> List[GrafanaOrg]:
        return [GrafanaOrg.model_validate(o) for o in await self._paginate("/api/orgs")]

    async def get_organization(self, org_id: int) -> Optional[GrafanaOrg]:
        try:
            body = await self._request("GET", f"/api/orgs/{org_id}")
        except PlatformNotFoundError:
            return None
        return GrafanaOrg.model_validate(body)

    async def create_organization(self, name: str) -> int:
        """Create an organization and return its Grafana ID."""
        body = await self._request("POST", "/api/orgs", json={"name": name})
        return int(body["orgId"])

    async def update_organization(self, org_id: int, name: str) -> None:
        await self._request("PUT", f"/api/orgs/{org_id}", json={"name": name})

    async def delete_organization(self, org_id: int) -> None:
        await self._request("DELETE", f"/api/orgs/{org_id}")

    # =========================================================================
    # Users
    # =========================================================================

    async def list_users(self) -> List[GrafanaUser]:
        return [GrafanaUser.model_validate(u) for u in await self._paginate("/api/users")]

    async def get_user(self, user_id: int) -> Optional[GrafanaUser]:
        try:
            body = await self._request("GET", f"/api/users/{user_id}")
        except PlatformNotFoundError:
            return None
        return GrafanaUser.model_validate(body)

    async def create_user(self, name: str, email: str, login: str, password: str) -> int:
        """Create a user through the admin API and return its Grafana ID."""
        body = await self._request(
            "POST",
            "/api/admin/users",
            json={"name": name, "email": email, "login": login, "password": password},
        )
        return int(body["id"])

    async def update_user(self, user_id: int, **fields: Any) -> None:
        """Update name / email / login / theme."""
        await self._request("PUT", f"/api/users/{user_id}", json=fields)

    async def delete_user(self, user_id: int) -> None:
        await self._request("DELETE", f"/api/admin/users/{user_id}")

    # =========================================================================
    # Organization membership
    # =========================================================================

    async def add_user_to_organization(
        self, org_id: int, login_or_email: str, role: str = "Viewer"
    ) -> None:
        await self._request(
            "POST",
            f"/api/orgs/{org_id}/users",
            json={"loginOrEmail": login_or_email, "role": role},
        )

    async def update_user_org_role(self, org_id: int, user_id: int, role: str) -> None:
        await self._request("PATCH", f"/api/orgs/{org_id}/users/{user_id}", json={"role": role})

    async def remove_user_from_organization(self, org_id: int, user_id: int) -> None:
        await self._request("DELETE", f"/api/orgs/{org_id}/users/{user_id}")

    # =========================================================================
    # Teams (org-scoped)
    # =========================================================================

    async def list_teams(self, org_id: int) -> List[GrafanaTeam]:
        async with self._org_scope(org_id):
            teams = await self._paginate("/api/teams/search", key="teams")
        return [GrafanaTeam.model_validate(t) for t in teams]

    async def get_team(self, org_id: int, team_id: int) -> Optional[GrafanaTeam]:
        async with self._org_scope(org_id):
            try:
                body = await self._request("GET", f"/api/teams/{team_id}")
            except PlatformNotFoundError:
                return None
        return GrafanaTeam.model_validate(body)

    async def create_team(self, org_id: int, name: str, email: Optional[str] = None) -> int:
        """Create a team in ``org_id`` and return its Grafana ID."""
        payload = {"name": name}
        if email:
            payload["email"] = email
        async with self._org_scope(org_id):
            body = await self._request("POST", "/api/teams", json=payload)
        return int(body["teamId"])

    async def update_team(
        self, org_id: int, team_id: int, name: str, email: Optional[str] = None
    ) -> None:
        payload = {"name": name}
        if email is not None:
            payload["email"] = email
        async with self._org_scope(org_id):
            await self._request("PUT", f"/api/teams/{team_id}", json=payload)

    async def delete_team(self, org_id: int, team_id: int) -> None:
        async with self._org_scope(org_id):
            await self._request("DELETE", f"/api/teams/{team_id}")

    # =========================================================================
    # Team membership (org-scoped)
    # =========================================================================

    async def list_team_members(self, org_id: int, team_id: int) -> List[GrafanaTeamMember]:
        async with self._org_scope(org_id):
            body = await self._request("GET", f"/api/teams/{team_id}/members")
        return [GrafanaTeamMember.model_validate(m) for m in body or []]

    async def add_team_member(self, org_id: int, team_id: int, user_id: int) -> None:
        async with self._org_scope(org_id):
            await self._request("POST", f"/api/teams/{team_id}/members", json={"userId": user_id})

    async def remove_team_member(self, org_id: int, team_id: int, user_id: int) -> None:
        async with self._org_scope(org_id):
            await self._request("DELETE", f"/api/teams/{team_id}/members/{user_id}")

    # =========================================================================
    # Health
    # =========================================================================

    async def check_connection(self) -> dict:
        """
        Check Grafana reachability and admin credentials for the settings page.

        Returns:
            dict: {"status": "healthy" | "error", "message": ..., "details": {...}}
        """
        details = {"Base URL": self._base_url, "Admin User": self._admin_user}
        start_time = time.time()
        try:
            await self._request("GET", "/api/users", params={"perpage": 1, "page": 1})
        except PlatformConnectionError as e:
            return {
                "status": "error",
                "message": "Connection failed",
                "details": {**details, "Error": str(e)[:80]},
            }
        except PlatformError as e:
            return {
                "status": "error",
                "message": "Authentication failed" if e.status_code in (401, 403) else "Request failed",
                "details": {**details, "Error": str(e)[:80]},
            }
        latency_ms = int((time.time() - start_time) * 1000)
        return {
            "status": "healthy",
            "message": "Connected",
            "details": {**details, "Latency": f"{latency_ms}ms"},
        }
