"""
Unit Tests for grafana_console.platform.client module.

Drives GrafanaClient through httpx.MockTransport so every request can be
inspected: Basic auth, org-context switching, pagination and error
mapping.
"""

import asyncio
import base64
import json

import httpx
import pytest

from grafana_console.platform import (
    GrafanaClient,
    PlatformAuthError,
    PlatformConflictError,
    PlatformConnectionError,
    PlatformNotFoundError,
    PlatformValidationError,
)
from grafana_console.settings import GrafanaSettings


def _settings() -> GrafanaSettings:
    return GrafanaSettings(
        GRAFANA_URL="http://grafana.test:3000/",
        GRAFANA_ADMIN_USER="admin",
        GRAFANA_ADMIN_PASSWORD="s3cret",
    )


def _client(handler, page_size: int = 100) -> tuple[GrafanaClient, list[httpx.Request]]:
    """GrafanaClient over a MockTransport; returns the client and the request log."""
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(recording))
    return GrafanaClient(_settings(), http_client=http_client, page_size=page_size), seen


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"message": "ok"})


class TestGrafanaClientInit:
    """Tests for GrafanaClient construction."""

    def test_requires_http_client(self):
        """Test that a missing http_client is rejected."""
        with pytest.raises(ValueError, match="http_client is required"):
            GrafanaClient(_settings(), http_client=None)


class TestTransport:
    """Tests for auth, URLs and error mapping."""

    @pytest.mark.asyncio
    async def test_basic_auth_and_base_url(self):
        """Test that requests carry Basic auth and drop the trailing slash of the URL."""
        client, seen = _client(lambda r: httpx.Response(200, json={"id": 1, "name": "Main"}))

        org = await client.get_organization(1)

        assert org.name == "Main"
        request = seen[0]
        assert str(request.url) == "http://grafana.test:3000/api/orgs/1"
        expected = base64.b64encode(b"admin:s3cret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code, error_class",
        [
            (400, PlatformValidationError),
            (401, PlatformAuthError),
            (403, PlatformAuthError),
            (409, PlatformConflictError),
            (412, PlatformConflictError),
            (500, PlatformConnectionError),
            (503, PlatformConnectionError),
        ],
    )
    async def test_error_status_mapping(self, status_code, error_class):
        """Test that error responses raise the matching exception."""
        client, _ = _client(lambda r: httpx.Response(status_code, json={"message": "nope"}))

        with pytest.raises(error_class) as exc_info:
            await client.create_organization("Ops")

        assert exc_info.value.status_code == status_code
        assert "nope" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_failure_is_connection_error(self):
        """Test that httpx transport errors become PlatformConnectionError."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = _client(handler)

        with pytest.raises(PlatformConnectionError, match="Cannot reach Grafana"):
            await client.list_organizations()

    @pytest.mark.asyncio
    async def test_list_failure_propagates(self):
        """Test that list reads raise instead of returning an empty list."""
        client, _ = _client(lambda r: httpx.Response(502, text="bad gateway"))

        with pytest.raises(PlatformConnectionError):
            await client.list_users()

    @pytest.mark.asyncio
    async def test_lookup_missing_returns_none(self):
        """Test that a 404 on a single lookup is reported as None."""
        client, _ = _client(lambda r: httpx.Response(404, json={"message": "User not found"}))

        assert await client.get_user(99) is None

    @pytest.mark.asyncio
    async def test_write_on_missing_target_raises(self):
        """Test that a 404 on a write propagates."""
        client, _ = _client(lambda r: httpx.Response(404, json={"message": "Team not found"}))

        with pytest.raises(PlatformNotFoundError):
            await client.delete_user(99)


class TestPagination:
    """Tests for paginated listings."""

    @pytest.mark.asyncio
    async def test_plain_list_stops_on_short_page(self):
        """Test that /api/orgs is read page by page until a short page."""
        pages = {
            "1": [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}],
            "2": [{"id": 3, "name": "C"}],
        }
        client, seen = _client(
            lambda r: httpx.Response(200, json=pages[r.url.params["page"]]), page_size=2
        )

        orgs = await client.list_organizations()

        assert [o.id for o in orgs] == [1, 2, 3]
        assert [r.url.params["page"] for r in seen] == ["1", "2"]
        assert all(r.url.params["perpage"] == "2" for r in seen)

    @pytest.mark.asyncio
    async def test_envelope_stops_at_total_count(self):
        """Test that team search stops once totalCount items were read."""

        def handler(request):
            if request.url.path.startswith("/api/user/using/"):
                return httpx.Response(200, json={"message": "Active organization changed"})
            return httpx.Response(
                200,
                json={"totalCount": 2, "teams": [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}]},
            )

        client, seen = _client(handler, page_size=2)

        teams = await client.list_teams(org_id=4)

        assert [t.id for t in teams] == [1, 2]
        assert [r.url.path for r in seen] == ["/api/user/using/4", "/api/teams/search"]


class TestOrgScopedCalls:
    """Tests for the org-context switch contract."""

    @pytest.mark.asyncio
    async def test_switch_precedes_team_call(self):
        """Test that every team method switches into its org first."""
        client, seen = _client(
            lambda r: httpx.Response(200, json={"teamId": 12})
            if r.method == "POST" and r.url.path == "/api/teams"
            else _ok(r)
        )

        team_id = await client.create_team(3, "Ops", email="ops@example.com")
        await client.add_team_member(3, team_id, user_id=8)

        assert team_id == 12
        assert [(r.method, r.url.path) for r in seen] == [
            ("POST", "/api/user/using/3"),
            ("POST", "/api/teams"),
            ("POST", "/api/user/using/3"),
            ("POST", "/api/teams/12/members"),
        ]
        assert json.loads(seen[1].content) == {"name": "Ops", "email": "ops@example.com"}
        assert json.loads(seen[3].content) == {"userId": 8}

    @pytest.mark.asyncio
    async def test_failed_switch_aborts_team_call(self):
        """Test that the team request is not sent when the switch fails."""
        client, seen = _client(lambda r: httpx.Response(401, json={"message": "Unauthorized"}))

        with pytest.raises(PlatformAuthError):
            await client.delete_team(5, 1)

        assert [r.url.path for r in seen] == ["/api/user/using/5"]

    @pytest.mark.asyncio
    async def test_concurrent_team_calls_do_not_interleave(self):
        """Test that switch and team call of two orgs are never interleaved."""
        seen: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            await asyncio.sleep(0)
            if request.url.path.startswith("/api/user/using/"):
                return httpx.Response(200, json={"message": "ok"})
            return httpx.Response(200, json={"totalCount": 0, "teams": []})

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = GrafanaClient(_settings(), http_client=http_client)

        await asyncio.gather(client.list_teams(1), client.list_teams(2), client.list_teams(3))

        assert len(seen) == 6
        for i in range(0, 6, 2):
            assert seen[i].startswith("/api/user/using/")
            assert seen[i + 1] == "/api/teams/search"

    @pytest.mark.asyncio
    async def test_add_user_to_organization_payload(self):
        """Test the org membership request body."""
        client, seen = _client(_ok)

        await client.add_user_to_organization(2, "sato.hanako", role="Editor")

        assert seen[0].url.path == "/api/orgs/2/users"
        assert json.loads(seen[0].content) == {"loginOrEmail": "sato.hanako", "role": "Editor"}


class TestCheckConnection:
    """Tests for the settings page connection probe."""

    @pytest.mark.asyncio
    async def test_healthy(self):
        """Test a reachable Grafana with valid credentials."""
        client, _ = _client(lambda r: httpx.Response(200, json=[]))

        result = await client.check_connection()

        assert result["status"] == "healthy"
        assert "Latency" in result["details"]

    @pytest.mark.asyncio
    async def test_auth_failure(self):
        """Test wrong admin credentials."""
        client, _ = _client(lambda r: httpx.Response(401, json={"message": "Invalid username or password"}))

        result = await client.check_connection()

        assert result["status"] == "error"
        assert result["message"] == "Authentication failed"
