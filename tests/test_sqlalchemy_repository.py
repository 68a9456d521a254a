"""
Unit Tests for grafana_console.repository.sqlalchemy module.

The session factory is mocked; these tests cover error translation and
transaction handling, not SQL.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.exc import IntegrityError

from grafana_console.models import MirroredUser, Setting, UserOrgMembership
from grafana_console.repository import (
    DuplicateRecordError,
    MembershipConflictError,
    MissingValueError,
    RecordNotFoundError,
    SqlAlchemyRepository,
)


def _session_factory() -> tuple[MagicMock, MagicMock]:
    """Mock async_sessionmaker; returns the factory and the shared session."""
    session = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.get = AsyncMock(return_value=None)
    session.execute = AsyncMock()
    session.delete = AsyncMock()

    factory = MagicMock()
    factory.return_value.__aenter__.return_value = session
    factory.return_value.__aexit__.return_value = False
    return factory, session


def _integrity_error() -> IntegrityError:
    return IntegrityError("INSERT", {}, Exception("duplicate key value"))


class TestCreate:
    """Tests for inserts."""

    @pytest.mark.asyncio
    async def test_create_user_commits(self):
        """Test that a successful insert is added, flushed and committed."""
        factory, session = _session_factory()
        repository = SqlAlchemyRepository(factory)

        user = await repository.create_user(user_id="0001", name="山田 太郎")

        assert isinstance(user, MirroredUser)
        assert user.user_id == "0001"
        session.add.assert_called_once_with(user)
        session.flush.assert_awaited_once()
        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_user_raises_duplicate_record(self):
        """Test that a unique violation becomes DuplicateRecordError."""
        factory, session = _session_factory()
        session.flush.side_effect = _integrity_error()
        repository = SqlAlchemyRepository(factory)

        with pytest.raises(DuplicateRecordError) as exc_info:
            await repository.create_user(user_id="0001", name="dup")

        assert not isinstance(exc_info.value, MembershipConflictError)
        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_org_membership_raises_conflict(self):
        """Test that a (user, org) unique violation becomes MembershipConflictError."""
        factory, session = _session_factory()
        session.flush.side_effect = _integrity_error()
        repository = SqlAlchemyRepository(factory)

        with pytest.raises(MembershipConflictError) as exc_info:
            await repository.create_org_membership(5, 2)

        assert exc_info.value.user_id == 5
        assert exc_info.value.target_id == 2

    @pytest.mark.asyncio
    async def test_duplicate_team_membership_raises_conflict(self):
        """Test that a (user, team) unique violation becomes MembershipConflictError."""
        factory, session = _session_factory()
        session.flush.side_effect = _integrity_error()
        repository = SqlAlchemyRepository(factory)

        with pytest.raises(MembershipConflictError, match="team 3"):
            await repository.create_team_membership(1, 3)

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self):
        """Test that an unknown column name never reaches the session."""
        factory, session = _session_factory()
        repository = SqlAlchemyRepository(factory)

        with pytest.raises(ValueError, match="Unknown MirroredUser fields: nickname"):
            await repository.create_user(user_id="0001", nickname="x")
        session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_org_membership_fields(self):
        """Test the stored membership row."""
        factory, session = _session_factory()
        repository = SqlAlchemyRepository(factory)

        membership = await repository.create_org_membership(1, 2, role="Editor", is_default=True)

        assert isinstance(membership, UserOrgMembership)
        assert (membership.user_id, membership.org_id) == (1, 2)
        assert membership.role == "Editor"
        assert membership.is_default is True


class TestUpdateDelete:
    """Tests for updates and deletes on missing rows."""

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self):
        """Test updating an unknown ID."""
        factory, session = _session_factory()
        repository = SqlAlchemyRepository(factory)

        with pytest.raises(RecordNotFoundError) as exc_info:
            await repository.update_user(42, name="x")

        assert exc_info.value.entity == "MirroredUser"
        assert exc_info.value.record_id == 42
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_sets_attributes(self):
        """Test that update writes the given fields onto the loaded row."""
        factory, session = _session_factory()
        existing = MirroredUser(id=3, user_id="0003", name="old")
        session.get.return_value = existing
        repository = SqlAlchemyRepository(factory)

        updated = await repository.update_user(3, name="new", email="new@example.com")

        assert updated is existing
        assert existing.name == "new"
        assert existing.email == "new@example.com"
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_to_taken_user_id_raises_duplicate_record(self):
        """Test that a unique violation on update becomes DuplicateRecordError."""
        factory, session = _session_factory()
        session.get.return_value = MirroredUser(id=2, user_id="b", name="Second")
        session.flush.side_effect = _integrity_error()
        repository = SqlAlchemyRepository(factory)

        with pytest.raises(DuplicateRecordError, match="MirroredUser 2"):
            await repository.update_user(2, user_id="a")

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_to_null_never_reaches_session(self):
        """Test that None for a NOT NULL column is rejected before any query."""
        factory, session = _session_factory()
        repository = SqlAlchemyRepository(factory)

        with pytest.raises(MissingValueError, match="MirroredUser.user_id"):
            await repository.update_user(2, user_id=None)

        factory.assert_not_called()
        session.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_missing_raises_not_found(self):
        """Test deleting an unknown team."""
        factory, session = _session_factory()
        repository = SqlAlchemyRepository(factory)

        with pytest.raises(RecordNotFoundError, match="MirroredTeam 9 not found"):
            await repository.delete_team(9)
        session.delete.assert_not_awaited()


class TestSettings:
    """Tests for the key/value settings upsert."""

    @pytest.mark.asyncio
    async def test_update_setting_inserts_new_key(self):
        """Test that an unknown key is inserted."""
        factory, session = _session_factory()
        result = MagicMock()
        result.scalars.return_value.first.return_value = None
        session.execute.return_value = result
        repository = SqlAlchemyRepository(factory)

        setting = await repository.update_setting("grafana_url", "http://grafana:3000")

        assert isinstance(setting, Setting)
        assert setting.value == "http://grafana:3000"
        session.add.assert_called_once_with(setting)

    @pytest.mark.asyncio
    async def test_update_setting_overwrites_existing_key(self):
        """Test that an existing key is updated in place."""
        factory, session = _session_factory()
        existing = Setting(key="grafana_url", value="old")
        result = MagicMock()
        result.scalars.return_value.first.return_value = existing
        session.execute.return_value = result
        repository = SqlAlchemyRepository(factory)

        setting = await repository.update_setting("grafana_url", "new")

        assert setting is existing
        assert existing.value == "new"
        session.add.assert_not_called()
