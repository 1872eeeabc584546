"""Unit tests for UserService with a mocked asyncpg pool."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import asyncpg
import pytest

from procoin.errors import DuplicateEmailError
from procoin.models.user import Role
from procoin.services.user_service import UserService, normalize_email


def _user_row(**overrides):
    row = {
        "id": uuid4(),
        "name": "Alice",
        "email": "alice@example.com",
        "role": "student",
        "created_at": datetime.now(timezone.utc),
        "refresh_tokens": ["rt-1"],
        "password_hash": "$2b$04$hash",
    }
    row.update(overrides)
    return row


@pytest.fixture
def patched_pool(mock_pool):
    pool, conn = mock_pool
    with patch("procoin.services.user_service.get_pool", AsyncMock(return_value=pool)):
        yield conn


def test_normalize_email():
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"


class TestCreateUser:

    @pytest.mark.asyncio
    async def test_first_user_becomes_admin(self, patched_pool):
        patched_pool.fetchval.return_value = 0

        user = await UserService().create_user("Root", "Root@Example.com", "password-123")

        assert user.role == Role.ADMIN
        assert user.email == "root@example.com"
        assert user.refresh_tokens == []
        patched_pool.transaction.assert_called_once()

    @pytest.mark.asyncio
    async def test_later_users_are_students(self, patched_pool):
        patched_pool.fetchval.return_value = 3

        user = await UserService().create_user("Bob", "bob@example.com", "password-123")

        assert user.role == Role.STUDENT
        insert_args = patched_pool.execute.call_args_list[-1].args
        assert "INSERT INTO users" in insert_args[0]
        assert insert_args[5] == "student"

    @pytest.mark.asyncio
    async def test_password_is_stored_hashed(self, patched_pool):
        patched_pool.fetchval.return_value = 1

        await UserService().create_user("Bob", "bob@example.com", "password-123")

        stored_hash = patched_pool.execute.call_args_list[-1].args[4]
        assert stored_hash != "password-123"
        assert stored_hash.startswith("$2")

    @pytest.mark.asyncio
    async def test_role_assignment_is_serialized(self, patched_pool):
        patched_pool.fetchval.return_value = 0

        await UserService().create_user("Root", "root@example.com", "password-123")

        first_statement = patched_pool.execute.call_args_list[0].args[0]
        assert "pg_advisory_xact_lock" in first_statement

    @pytest.mark.asyncio
    async def test_unique_violation_maps_to_duplicate_email(self, patched_pool):
        patched_pool.fetchval.return_value = 1
        patched_pool.execute.side_effect = [None, asyncpg.UniqueViolationError("duplicate key")]

        with pytest.raises(DuplicateEmailError):
            await UserService().create_user("Bob", "bob@example.com", "password-123")


class TestLookups:

    @pytest.mark.asyncio
    async def test_get_by_email_returns_user_and_hash(self, patched_pool):
        row = _user_row(role="admin")
        patched_pool.fetchrow.return_value = row

        user, password_hash = await UserService().get_by_email("ALICE@example.com")

        assert user.id == row["id"]
        assert user.role == Role.ADMIN
        assert user.refresh_tokens == ["rt-1"]
        assert password_hash == row["password_hash"]
        assert patched_pool.fetchrow.call_args.args[1] == "alice@example.com"

    @pytest.mark.asyncio
    async def test_get_by_email_missing(self, patched_pool):
        patched_pool.fetchrow.return_value = None
        assert await UserService().get_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_get_by_id_and_email_filters_on_both(self, patched_pool):
        row = _user_row()
        patched_pool.fetchrow.return_value = row

        user = await UserService().get_by_id_and_email(row["id"], "Alice@example.com")

        assert user.email == "alice@example.com"
        query, user_id, email = patched_pool.fetchrow.call_args.args
        assert "id = $1 AND email = $2" in query
        assert user_id == row["id"]
        assert email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_null_token_array_becomes_empty_list(self, patched_pool):
        patched_pool.fetchrow.return_value = _user_row(refresh_tokens=None)

        user = await UserService().get_by_id(uuid4())

        assert user.refresh_tokens == []


class TestAddRefreshToken:

    @pytest.mark.asyncio
    async def test_appends_atomically(self, patched_pool):
        patched_pool.execute.return_value = "UPDATE 1"
        user_id = uuid4()

        assert await UserService().add_refresh_token(user_id, "rt-new") is True

        query, token, target = patched_pool.execute.call_args.args
        assert "array_append(refresh_tokens, $1)" in query
        assert token == "rt-new"
        assert target == user_id

    @pytest.mark.asyncio
    async def test_missing_user_returns_false(self, patched_pool):
        patched_pool.execute.return_value = "UPDATE 0"
        assert await UserService().add_refresh_token(uuid4(), "rt-new") is False
