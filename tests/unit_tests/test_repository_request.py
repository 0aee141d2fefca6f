"""Tests for the request and profile repositories over a mocked asyncpg pool."""

from unittest.mock import AsyncMock
from unittest.mock import MagicMock
from uuid import uuid4

import asyncpg
import pytest

from upthrive_api.workflow.db.repository_profile import ProfileRepository
from upthrive_api.workflow.db.repository_request import RequestRepository
from upthrive_api.workflow.exceptions import PersistenceError


@pytest.fixture
def conn():
    """Mocked asyncpg connection."""
    connection = MagicMock()
    connection.fetchrow = AsyncMock(return_value=None)
    connection.fetch = AsyncMock(return_value=[])
    connection.fetchval = AsyncMock(return_value=0)
    return connection


@pytest.fixture
def pool(conn):
    """Mocked asyncpg pool whose acquire() yields ``conn``."""
    mock_pool = MagicMock()
    mock_pool.acquire.return_value.__aenter__.return_value = conn
    mock_pool.acquire.return_value.__aexit__.return_value = False
    return mock_pool


class TestConditionalUpdate:
    """Tests for RequestRepository.conditional_update."""

    @pytest.mark.asyncio
    async def test_update_scoped_by_id_and_status(self, pool, conn):
        request_id = uuid4()
        conn.fetchrow.return_value = {"id": request_id, "status": "assigned_to_editor"}

        row = await RequestRepository(pool).conditional_update(
            request_id,
            "pending_manager_review",
            {"status": "assigned_to_editor", "assigned_editor_id": "e1"},
        )

        assert row == {"id": request_id, "status": "assigned_to_editor"}
        query, *args = conn.fetchrow.await_args.args
        assert "UPDATE upthrive.requests" in query
        assert "WHERE id = $1 AND status = $2" in query
        assert "status = $3, assigned_editor_id = $4" in query
        assert "RETURNING *" in query
        assert args == [request_id, "pending_manager_review", "assigned_to_editor", "e1"]

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self, pool, conn):
        conn.fetchrow.return_value = None

        row = await RequestRepository(pool).conditional_update(uuid4(), "submitted_for_review", {"status": "x"})

        assert row is None

    @pytest.mark.asyncio
    async def test_driver_error_wrapped(self, pool, conn):
        conn.fetchrow.side_effect = asyncpg.PostgresError("connection lost")

        with pytest.raises(PersistenceError, match="requests"):
            await RequestRepository(pool).conditional_update(uuid4(), "submitted_for_review", {"status": "x"})


class TestListings:
    """Tests for the listing queries."""

    @pytest.mark.asyncio
    async def test_list_by_editor_with_statuses(self, pool, conn):
        editor_id = uuid4()
        conn.fetch.return_value = [{"id": 1}, {"id": 2}]

        rows = await RequestRepository(pool).list_by_editor(editor_id, ["assigned_to_editor", "client_rejected"])

        assert [row["id"] for row in rows] == [1, 2]
        query, *args = conn.fetch.await_args.args
        assert "r.status = ANY($2::text[])" in query
        assert args == [editor_id, ["assigned_to_editor", "client_rejected"]]

    @pytest.mark.asyncio
    async def test_list_by_client(self, pool, conn):
        client_id = uuid4()

        await RequestRepository(pool).list_by_client(client_id)

        query, *args = conn.fetch.await_args.args
        assert "WHERE r.client_id = $1" in query
        assert args == [client_id]

    @pytest.mark.asyncio
    async def test_views_nest_party_names(self, pool, conn):
        request_id, client_user_id = uuid4(), uuid4()
        conn.fetch.return_value = [
            {
                "id": request_id,
                "from_user_id": client_user_id,
                "from_user_name": "Client One",
                "from_user_email": "c1@example.com",
                "to_user_id": None,
                "to_user_name": None,
                "to_user_email": None,
                "assigned_editor_id": None,
                "assigned_editor_name": None,
                "assigned_editor_email": None,
                "client_name": "Acme Bakery",
            }
        ]

        view = await RequestRepository(pool).get_view(request_id)

        assert view["from_user"] == {"name": "Client One", "email": "c1@example.com"}
        assert view["to_user"] is None
        assert view["assigned_editor"] is None
        assert view["client_name"] == "Acme Bakery"
        assert "from_user_name" not in view
        query, *args = conn.fetch.await_args.args
        assert "LEFT JOIN upthrive.profiles fu ON fu.id = r.from_user_id" in query
        assert "LEFT JOIN upthrive.clients c ON c.id = r.client_id" in query
        assert "WHERE r.id = $1" in query
        assert args == [request_id]

    @pytest.mark.asyncio
    async def test_get_view_missing(self, pool, conn):
        assert await RequestRepository(pool).get_view(uuid4()) is None


class TestProfileRepository:
    """Tests for ProfileRepository."""

    @pytest.mark.asyncio
    async def test_get_any_manager_orders_by_creation(self, pool, conn):
        conn.fetchrow.return_value = {"id": "m1", "role": "manager"}

        manager = await ProfileRepository(pool).get_any_manager()

        assert manager == {"id": "m1", "role": "manager"}
        query = conn.fetchrow.await_args.args[0]
        assert "role = 'manager'" in query
        assert "ORDER BY created_at ASC" in query

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, pool, conn):
        assert await ProfileRepository(pool).get_by_id(uuid4()) is None
