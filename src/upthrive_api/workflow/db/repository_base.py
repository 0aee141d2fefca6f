"""
Base Repository

Base class providing common single-table operations for all repositories.
Concrete repositories inherit from this class and add domain-specific queries.
"""

from contextlib import asynccontextmanager
from typing import Any
from typing import AsyncIterator
from typing import Dict
from typing import List
from typing import Optional
from uuid import UUID

import asyncpg
from loguru import logger

from upthrive_api.workflow.exceptions import PersistenceError

SCHEMA = "upthrive"

# Driver-level failures surfaced to callers as PersistenceError
DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class BaseRepository:
    """
    Base repository with common row operations.

    All concrete repositories (RequestRepository, ProfileRepository) inherit from this.
    Rows are returned as plain dicts; driver errors are wrapped in PersistenceError.
    """

    def __init__(self, pool: asyncpg.Pool, table_name: str, id_column: str = "id"):
        """
        Initialize base repository.

        Args:
            pool: asyncpg connection pool
            table_name: Database table name (without schema prefix)
            id_column: Primary key column name
        """
        self.pool = pool
        self.table = table_name
        self.id_col = id_column

    @property
    def qualified_table(self) -> str:
        return f"{SCHEMA}.{self.table}"

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection, translating driver errors into PersistenceError."""
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except DRIVER_ERRORS as e:
            logger.error(f"Database operation on {self.qualified_table} failed: {e}", exc_info=True)
            raise PersistenceError(f"Database operation on {self.table} failed") from e

    async def get_by_id(self, entity_id: UUID) -> Optional[Dict[str, Any]]:
        """
        Get a row by primary key.

        Args:
            entity_id: Primary key value

        Returns:
            Dict of row data or None if not found
        """
        async with self._connection() as conn:
            row = await conn.fetchrow(
                f"SELECT * FROM {self.qualified_table} WHERE {self.id_col} = $1",
                entity_id,
            )
            return dict(row) if row else None

    async def insert(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a row and return it as stored.

        Args:
            fields: Column values to insert

        Returns:
            Dict of the inserted row (including defaults)
        """
        columns = list(fields.keys())
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))

        async with self._connection() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO {self.qualified_table} ({", ".join(columns)})
                VALUES ({placeholders})
                RETURNING *
                """,
                *fields.values(),
            )
            return dict(row)

    async def _fetch_all(self, query: str, *args: Any) -> List[Dict[str, Any]]:
        async with self._connection() as conn:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]
