"""
Profile Repository

Read-only access to user profiles (role and client scope of each user).
"""

from typing import Any
from typing import Dict
from typing import List
from typing import Optional

import asyncpg

from upthrive_api.workflow.db.repository_base import BaseRepository


class ProfileRepository(BaseRepository):
    """Profile repository (profiles are managed by user administration, not the workflow)."""

    def __init__(self, pool: asyncpg.Pool):
        super().__init__(pool, "profiles", "id")

    async def get_any_manager(self) -> Optional[Dict[str, Any]]:
        """Oldest manager profile, used to route newly created requests."""
        async with self._connection() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT * FROM {self.qualified_table}
                WHERE role = 'manager'
                ORDER BY created_at ASC
                LIMIT 1
                """
            )
            return dict(row) if row else None

    async def list_editors(self) -> List[Dict[str, Any]]:
        """All editor profiles ordered by name."""
        return await self._fetch_all(
            f"""
            SELECT id, name, email, phone_number FROM {self.qualified_table}
            WHERE role = 'editor'
            ORDER BY name
            """
        )
