"""
Request Repository

Repository for content requests, including the conditional update the workflow
engine relies on for single-writer-per-request semantics.
"""

from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from uuid import UUID

import asyncpg

from upthrive_api.workflow.db.repository_base import SCHEMA
from upthrive_api.workflow.db.repository_base import BaseRepository

# Profiles joined onto a request for display, keyed by the request column prefix
_PARTIES = ("from_user", "to_user", "assigned_editor")


def _nest_parties(row: Dict[str, Any]) -> Dict[str, Any]:
    """Fold the joined ``<party>_name`` / ``<party>_email`` columns into ``{party: {name, email}}``."""
    view = dict(row)
    for party in _PARTIES:
        name = view.pop(f"{party}_name", None)
        email = view.pop(f"{party}_email", None)
        view[party] = {"name": name, "email": email} if view.get(f"{party}_id") else None
    return view


class RequestRepository(BaseRepository):
    """Request repository with domain-specific queries."""

    def __init__(self, pool: asyncpg.Pool):
        super().__init__(pool, "requests", "id")

    async def conditional_update(
        self,
        request_id: UUID,
        expected_status: str,
        fields: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """
        Update a request only if it is still in ``expected_status``.

        Args:
            request_id: Request id
            expected_status: Status the caller read before deciding on the transition
            fields: Columns to set

        Returns:
            Updated row, or None if the id is unknown or the status moved on
        """
        columns = list(fields.keys())
        assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(columns, start=3))

        async with self._connection() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE {self.qualified_table}
                SET {assignments}
                WHERE id = $1 AND status = $2
                RETURNING *
                """,
                request_id,
                expected_status,
                *fields.values(),
            )
            return dict(row) if row else None

    # ────────────────────────────────────────────────────────────────────
    # Reads joined with profile and client names
    # ────────────────────────────────────────────────────────────────────

    def _view_query(self, where: str = "") -> str:
        return f"""
            SELECT r.*,
                   fu.name AS from_user_name, fu.email AS from_user_email,
                   tu.name AS to_user_name, tu.email AS to_user_email,
                   ae.name AS assigned_editor_name, ae.email AS assigned_editor_email,
                   c.name AS client_name
            FROM {self.qualified_table} r
            LEFT JOIN {SCHEMA}.profiles fu ON fu.id = r.from_user_id
            LEFT JOIN {SCHEMA}.profiles tu ON tu.id = r.to_user_id
            LEFT JOIN {SCHEMA}.profiles ae ON ae.id = r.assigned_editor_id
            LEFT JOIN {SCHEMA}.clients c ON c.id = r.client_id
            {where}
            ORDER BY r.created_at DESC
        """

    async def _fetch_views(self, where: str = "", *args: Any) -> List[Dict[str, Any]]:
        rows = await self._fetch_all(self._view_query(where), *args)
        return [_nest_parties(row) for row in rows]

    async def get_view(self, request_id: UUID) -> Optional[Dict[str, Any]]:
        """One request with party and client names, or None."""
        rows = await self._fetch_views("WHERE r.id = $1", request_id)
        return rows[0] if rows else None

    async def list_all(self) -> List[Dict[str, Any]]:
        """All requests, newest first."""
        return await self._fetch_views()

    async def list_by_client(self, client_id: UUID) -> List[Dict[str, Any]]:
        """Requests belonging to one client scope, newest first."""
        return await self._fetch_views("WHERE r.client_id = $1", client_id)

    async def list_by_editor(
        self,
        editor_id: UUID,
        statuses: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Requests assigned to an editor, optionally restricted to some statuses."""
        if statuses is None:
            return await self._fetch_views("WHERE r.assigned_editor_id = $1", editor_id)
        return await self._fetch_views(
            "WHERE r.assigned_editor_id = $1 AND r.status = ANY($2::text[])",
            editor_id,
            list(statuses),
        )
