"""
Unit Tests for grafana_console.directory module.

The Opoppo client is tested against a mocked SQLAlchemy engine; the
in-memory directory is tested directly.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.exc import OperationalError

from grafana_console.directory import (
    DirectoryConfigurationError,
    DirectoryConnectionError,
    EmployeeRecord,
    MockDirectoryClient,
    OpoppoDirectoryClient,
)
from grafana_console.settings import OpoppoSettings


def _settings(**overrides) -> OpoppoSettings:
    values = {
        "OPOPPO_DB_HOST": "opoppo.test",
        "OPOPPO_DB_PORT": "5432",
        "OPOPPO_DB_NAME": "OPO_TEST",
        "OPOPPO_DB_USER": "reader",
        "OPOPPO_DB_PASSWORD": "secret",
    }
    values.update(overrides)
    return OpoppoSettings(**values)


def _engine_returning(rows=None, error: Exception | None = None) -> tuple[MagicMock, AsyncMock]:
    """Mock AsyncEngine whose connection returns ``rows`` or raises ``error``."""
    result = MagicMock()
    result.mappings.return_value.all.return_value = rows or []

    conn = AsyncMock()
    if error is not None:
        conn.execute.side_effect = error
    else:
        conn.execute.return_value = result

    engine = MagicMock()
    engine.connect.return_value.__aenter__.return_value = conn
    engine.connect.return_value.__aexit__.return_value = False
    engine.dispose = AsyncMock()
    return engine, conn


class TestEmployeeRecord:
    """Tests for the employee schema."""

    def test_display_name(self):
        """Test surname + given name joined with a space."""
        record = EmployeeRecord.model_validate({"USER_ID": "0001", "SEI": "山田", "MEI": "太郎"})
        assert record.display_name == "山田 太郎"

    def test_display_name_falls_back_to_id(self):
        """Test blank names fall back to the employee ID."""
        record = EmployeeRecord.model_validate({"USER_ID": "0099", "SEI": " ", "MEI": None})
        assert record.display_name == "0099"

    def test_placeholder_email(self):
        """Test the generated email address."""
        record = EmployeeRecord.model_validate({"USER_ID": "0042"})
        assert record.placeholder_email == "0042@example.com"


class TestOpoppoDirectoryClient:
    """Tests for the Opoppo PostgreSQL adapter."""

    @pytest.mark.asyncio
    async def test_list_employees(self):
        """Test rows are validated into EmployeeRecord, keys upper-cased."""
        rows = [
            {"user_id": "0001", "sei": "山田", "mei": "太郎", "kaisya_nm": "本社", "soshiki_nm": None},
        ]
        engine, conn = _engine_returning(rows)
        client = OpoppoDirectoryClient(_settings(), engine=engine)

        employees = await client.list_employees()

        assert len(employees) == 1
        assert employees[0].employee_id == "0001"
        assert employees[0].company_name == "本社"
        assert employees[0].org_unit_name is None
        conn.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_employee_missing_returns_none(self):
        """Test that an unknown ID is not an error."""
        engine, conn = _engine_returning([])
        client = OpoppoDirectoryClient(_settings(), engine=engine)

        assert await client.get_employee("9999") is None
        params = conn.execute.await_args.args[1]
        assert params == {"employee_id": "9999"}

    @pytest.mark.asyncio
    async def test_query_failure_raises_connection_error(self):
        """Test that database errors propagate instead of returning []."""
        error = OperationalError("SELECT 1", {}, Exception("could not connect"))
        engine, _ = _engine_returning(error=error)
        client = OpoppoDirectoryClient(_settings(), engine=engine)

        with pytest.raises(DirectoryConnectionError, match="query failed"):
            await client.list_employees()

    @pytest.mark.asyncio
    async def test_os_error_raises_connection_error(self):
        """Test that socket-level failures are wrapped too."""
        engine, _ = _engine_returning(error=ConnectionRefusedError("refused"))
        client = OpoppoDirectoryClient(_settings(), engine=engine)

        with pytest.raises(DirectoryConnectionError):
            await client.list_companies()

    @pytest.mark.asyncio
    async def test_not_configured(self):
        """Test that a missing user fails before any connection attempt."""
        client = OpoppoDirectoryClient(_settings(OPOPPO_DB_USER=""))

        assert client.is_configured() is False
        with pytest.raises(DirectoryConfigurationError):
            await client.list_employees()

        result = await client.check_connection()
        assert result["status"] == "error"
        assert result["message"] == "Not configured"

    @pytest.mark.asyncio
    async def test_check_connection_healthy(self):
        """Test the connection probe on a reachable database."""
        engine, _ = _engine_returning([{"?column?": 1}])
        client = OpoppoDirectoryClient(_settings(), engine=engine)

        result = await client.check_connection()

        assert result["status"] == "healthy"
        assert result["details"]["Host"] == "opoppo.test:5432"

    @pytest.mark.asyncio
    async def test_close_leaves_injected_engine(self):
        """Test that close() never disposes an engine the client does not own."""
        engine, _ = _engine_returning([])
        client = OpoppoDirectoryClient(_settings(), engine=engine)

        await client.close()

        engine.dispose.assert_not_awaited()


class TestMockDirectoryClient:
    """Tests for the in-memory directory."""

    @pytest.mark.asyncio
    async def test_default_seed(self):
        """Test the seeded reference tables."""
        client = MockDirectoryClient()

        assert len(await client.list_employees()) == 5
        assert len(await client.list_companies()) == 3
        assert len(await client.list_org_units()) == 4
        assert len(await client.list_positions()) == 5

    @pytest.mark.asyncio
    async def test_get_employee(self):
        """Test single lookups on the mock."""
        client = MockDirectoryClient()

        assert (await client.get_employee("0003")).display_name == "鈴木 一郎"
        assert await client.get_employee("0404") is None

    @pytest.mark.asyncio
    async def test_failure_injection(self):
        """Test that an injected failure is raised by every read."""
        client = MockDirectoryClient(failure=DirectoryConnectionError("down"))

        with pytest.raises(DirectoryConnectionError):
            await client.list_employees()
        with pytest.raises(DirectoryConnectionError):
            await client.get_employee("0001")
