"""
Data source adapter tests
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import httpx
import pytest

from shared.schemas.user import UserRole, UserStatus
from shared.services import (
    ApiDataSource,
    DataSourceError,
    EmailAlreadyExistsError,
    InMemoryDataSource,
    PostgresDataSource,
    UserNotFoundError,
)

USER_ID = "5f0c6a4e-8d0b-4c43-9a43-3d3f3c1f2a10"


def user_payload(**overrides):
    payload = {
        "id": USER_ID,
        "email": "remote@example.com",
        "first_name": "Remote",
        "last_name": None,
        "profile_photo": None,
        "phone": None,
        "department": None,
        "role": "USER",
        "status": "ACTIVE",
        "email_verified": True,
        "created_at": "2025-01-01T00:00:00Z",
    }
    payload.update(overrides)
    return payload


def db_row(**overrides):
    row = {
        "id": USER_ID,
        "email": "db@example.com",
        "password_hash": "hash",
        "first_name": "Db",
        "last_name": "User",
        "profile_photo": None,
        "phone": None,
        "date_of_birth": None,
        "address": None,
        "emergency_contact": None,
        "department": None,
        "role": "USER",
        "status": "PENDING_VERIFICATION",
        "email_verified": False,
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


@pytest.fixture
def mock_db_pool():
    """Mock asyncpg database pool"""
    pool = MagicMock()
    conn = AsyncMock()

    # acquire() is a plain call returning an async context manager
    pool.acquire.side_effect = lambda: _Acquire(conn)
    return pool, conn


class _Acquire:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        return self.conn

    async def __aexit__(self, exc_type, exc, tb):
        return False


class TestInMemoryDataSource:
    @pytest.mark.asyncio
    async def test_crud_cycle(self):
        source = InMemoryDataSource()

        user = await source.create_user({"email": "mem@example.com", "password": "Secret123"})
        assert user.password_hash and user.password_hash != "Secret123"
        assert (await source.get_user_by_email("mem@example.com")).id == user.id

        updated = await source.update_user(user.id, {"first_name": "Mem"})
        assert updated.first_name == "Mem"
        assert updated.updated_at >= user.updated_at

        await source.delete_user(user.id)
        assert await source.get_user_by_id(user.id) is None

    @pytest.mark.asyncio
    async def test_missing_users(self):
        source = InMemoryDataSource()
        with pytest.raises(UserNotFoundError):
            await source.update_user("missing", {"first_name": "X"})
        with pytest.raises(UserNotFoundError):
            await source.delete_user("missing")

    @pytest.mark.asyncio
    async def test_users_by_role_newest_first(self):
        source = InMemoryDataSource()
        first = await source.create_user({"email": "one@example.com", "role": UserRole.USER})
        second = await source.create_user({"email": "two@example.com", "role": UserRole.USER})
        await source.create_user({"email": "boss@example.com", "role": UserRole.MANAGER})

        # Ensure distinct timestamps
        source._users[first.id] = source._users[first.id].model_copy(
            update={"created_at": second.created_at - timedelta(seconds=1)}
        )

        users = await source.get_users_by_role(UserRole.USER)
        assert [user.email for user in users] == ["two@example.com", "one@example.com"]

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self):
        source = InMemoryDataSource()
        user = await source.create_user({"email": "copy@example.com"})
        user.first_name = "Changed"

        assert (await source.get_user_by_id(user.id)).first_name is None


class TestPostgresDataSource:
    @pytest.mark.asyncio
    async def test_create_user_hashes_and_inserts(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetchrow.return_value = db_row()
        source = PostgresDataSource(pool)

        user = await source.create_user({
            "email": "db@example.com",
            "password": "Secret123",
            "role": UserRole.USER,
            "status": UserStatus.PENDING_VERIFICATION,
        })

        query, *values = conn.fetchrow.call_args.args
        assert "INSERT INTO users (email, password_hash, role, status)" in query
        assert values[0] == "db@example.com"
        assert values[1] != "Secret123"
        assert values[2:] == ["USER", "PENDING_VERIFICATION"]
        assert user.id == USER_ID

    @pytest.mark.asyncio
    async def test_get_user_by_id(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetchrow.return_value = db_row()
        source = PostgresDataSource(pool)

        user = await source.get_user_by_id(USER_ID)

        assert user.email == "db@example.com"
        assert conn.fetchrow.call_args.args[1] == USER_ID

    @pytest.mark.asyncio
    async def test_non_uuid_ids_are_not_queried(self, mock_db_pool):
        pool, conn = mock_db_pool
        source = PostgresDataSource(pool)

        assert await source.get_user_by_id("not-a-uuid") is None
        with pytest.raises(UserNotFoundError):
            await source.delete_user("not-a-uuid")
        conn.fetchrow.assert_not_called()
        conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_user_builds_set_clause(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetchrow.return_value = db_row(status="ACTIVE")
        source = PostgresDataSource(pool)

        user = await source.update_user(USER_ID, {"status": UserStatus.ACTIVE, "unknown": "ignored"})

        query, *values = conn.fetchrow.call_args.args
        assert "status = $1" in query
        assert "updated_at = $2" in query
        assert "WHERE id = $3" in query
        assert "unknown" not in query
        assert values[0] == "ACTIVE"
        assert values[2] == USER_ID
        assert user.status == UserStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_update_missing_user(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetchrow.return_value = None
        source = PostgresDataSource(pool)

        with pytest.raises(UserNotFoundError):
            await source.update_user(USER_ID, {"first_name": "X"})

    @pytest.mark.asyncio
    async def test_delete_user(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.execute.return_value = "DELETE 0"
        source = PostgresDataSource(pool)

        with pytest.raises(UserNotFoundError):
            await source.delete_user(USER_ID)

        conn.execute.return_value = "DELETE 1"
        await source.delete_user(USER_ID)

    @pytest.mark.asyncio
    async def test_database_errors_are_wrapped(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetchrow.side_effect = asyncpg.PostgresError("duplicate key")
        source = PostgresDataSource(pool)

        with pytest.raises(DataSourceError):
            await source.create_user({"email": "db@example.com"})

    @pytest.mark.asyncio
    async def test_unique_violation_is_duplicate_email(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetchrow.side_effect = asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
        source = PostgresDataSource(pool)

        with pytest.raises(EmailAlreadyExistsError):
            await source.create_user({"email": "db@example.com"})
        with pytest.raises(EmailAlreadyExistsError):
            await source.update_user(USER_ID, {"email": "db@example.com"})

    @pytest.mark.asyncio
    async def test_read_and_delete_errors_are_wrapped(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetchrow.side_effect = asyncpg.PostgresError("connection lost")
        conn.fetch.side_effect = asyncpg.PostgresError("connection lost")
        conn.execute.side_effect = asyncpg.PostgresError("connection lost")
        source = PostgresDataSource(pool)

        with pytest.raises(DataSourceError):
            await source.get_user_by_id(USER_ID)
        with pytest.raises(DataSourceError):
            await source.get_user_by_email("db@example.com")
        with pytest.raises(DataSourceError):
            await source.get_users_by_role(UserRole.USER)
        with pytest.raises(DataSourceError):
            await source.delete_user(USER_ID)

    @pytest.mark.asyncio
    async def test_users_by_role(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetch.return_value = [db_row(role="MANAGER")]
        source = PostgresDataSource(pool)

        users = await source.get_users_by_role(UserRole.MANAGER)

        query, role = conn.fetch.call_args.args
        assert "ORDER BY created_at DESC" in query
        assert role == "MANAGER"
        assert users[0].role == UserRole.MANAGER


class TestApiDataSource:
    def _source(self, handler, token="token-123"):
        async def get_token():
            return token

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://users.local")
        return ApiDataSource("http://users.local", get_auth_token=get_token, client=client)

    @pytest.mark.asyncio
    async def test_get_user_unwraps_envelope(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            seen["path"] = request.url.path
            return httpx.Response(200, json={"success": True, "data": user_payload()})

        source = self._source(handler)
        user = await source.get_user_by_id(USER_ID)

        assert user.email == "remote@example.com"
        assert user.password_hash is None
        assert seen == {"auth": "Bearer token-123", "path": f"/api/v1/users/{USER_ID}"}

    @pytest.mark.asyncio
    async def test_lookup_404_is_none(self):
        source = self._source(lambda request: httpx.Response(404, json={"error": True}))

        assert await source.get_user_by_id(USER_ID) is None
        assert await source.get_user_by_email("missing@example.com") is None

    @pytest.mark.asyncio
    async def test_update_404_raises_not_found(self):
        source = self._source(lambda request: httpx.Response(404, json={"error": True}))

        with pytest.raises(UserNotFoundError):
            await source.update_user(USER_ID, {"first_name": "X"})

    @pytest.mark.asyncio
    async def test_server_errors_raise(self):
        source = self._source(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(DataSourceError):
            await source.get_users_by_role(UserRole.USER)

    @pytest.mark.asyncio
    async def test_transport_errors_raise(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        source = self._source(handler)
        with pytest.raises(DataSourceError):
            await source.get_user_by_id(USER_ID)

    @pytest.mark.asyncio
    async def test_create_forwards_plain_password(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"success": True, "data": user_payload(status="PENDING_VERIFICATION")})

        source = self._source(handler)
        user = await source.create_user({
            "email": "remote@example.com",
            "password": "Secret123",
            "role": UserRole.USER,
            "status": UserStatus.PENDING_VERIFICATION,
        })

        assert seen["body"] == {
            "email": "remote@example.com",
            "password": "Secret123",
            "role": "USER",
            "status": "PENDING_VERIFICATION",
        }
        assert user.status == UserStatus.PENDING_VERIFICATION

    @pytest.mark.asyncio
    async def test_users_by_role_passes_query(self):
        seen = {}

        def handler(request):
            seen["role"] = request.url.params.get("role")
            return httpx.Response(200, json={"success": True, "data": [user_payload(role="MANAGER")]})

        source = self._source(handler)
        users = await source.get_users_by_role(UserRole.MANAGER)

        assert seen["role"] == "MANAGER"
        assert users[0].role == UserRole.MANAGER

    @pytest.mark.asyncio
    async def test_update_sends_only_remote_fields(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "data": user_payload(first_name="New")})

        source = self._source(handler)
        await source.update_user(USER_ID, {"first_name": "New", "email_verified": True})

        assert seen["body"] == {"first_name": "New"}

    @pytest.mark.asyncio
    async def test_path_segments_are_encoded(self):
        seen = []

        def handler(request):
            seen.append((request.url.path, request.url.raw_path))
            return httpx.Response(200, json={"success": True, "data": user_payload(email="a#b/c?d@example.com")})

        source = self._source(handler)
        user = await source.get_user_by_email("a#b/c?d@example.com")
        await source.get_user_by_id("id/with#parts")

        assert user.email == "a#b/c?d@example.com"
        assert seen[0][0] == "/api/v1/users/by-email/a#b/c?d@example.com"
        assert seen[0][1] == b"/api/v1/users/by-email/a%23b%2Fc%3Fd%40example.com"
        assert seen[1][1] == b"/api/v1/users/id%2Fwith%23parts"
