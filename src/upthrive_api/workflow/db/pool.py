"""
Workflow Domain Database Connection Pool

Manages the asyncpg connection pool for the request workflow database.
Creates the upthrive schema from schema.sql on first start.

Schema Evolution:
-----------------
When adding/removing/renaming tables in schema.sql:
1. Update the schema.sql file with new DDL
2. Update DomainDBPool.EXPECTED_TABLES constant with new table names
3. For existing deployments, migrate manually or drop/recreate the schema:
   DROP SCHEMA upthrive CASCADE;
   (then restart app to auto-create)
"""

from pathlib import Path
from typing import Optional

import asyncpg
from loguru import logger


class DomainDBPool:
    """Workflow domain database connection pool manager."""

    # Update this set when schema evolves (add/remove/rename tables)
    EXPECTED_TABLES = {
        "clients",
        "profiles",
        "requests",
    }

    def __init__(self, connection_string: str):
        """
        Initialize domain DB pool.

        Args:
            connection_string: PostgreSQL connection string for the workflow database
        """
        self.connection_string = connection_string
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_initialized = False

    async def initialize(self) -> None:
        """
        Initialize connection pool and run migrations.

        Creates the pool, validates it and creates the schema when it is missing.
        """
        if self._pool_initialized and self.pool is not None:
            logger.debug("Domain DB pool already initialized")
            return

        try:
            logger.info("Initializing workflow domain database pool")

            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=2,
                max_size=10,
                command_timeout=60,  # Query timeout (seconds)
                timeout=15,  # Connection timeout (seconds)
            )

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise RuntimeError("Pool validation query failed")

            logger.info("Domain DB pool validated")

            await self._run_migrations()

            self._pool_initialized = True
            logger.success("Workflow domain database initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize domain DB pool: {e}", exc_info=True)
            if self.pool:
                await self.pool.close()
                self.pool = None
            raise

    async def _existing_tables(self, conn: asyncpg.Connection) -> set:
        rows = await conn.fetch(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'upthrive'
            ORDER BY table_name
            """
        )
        return {row["table_name"] for row in rows}

    async def _run_migrations(self) -> None:
        """
        Execute schema.sql if the upthrive schema or any expected table is missing.

        Raises:
            RuntimeError: if the tables found after migration do not match EXPECTED_TABLES
        """
        async with self.pool.acquire() as conn:
            existing_tables = await self._existing_tables(conn)

            if self.EXPECTED_TABLES <= existing_tables:
                logger.info(f"Upthrive schema and all {len(self.EXPECTED_TABLES)} expected tables exist")
                return

            logger.info(
                "Upthrive schema incomplete - running migrations",
                missing_tables=sorted(self.EXPECTED_TABLES - existing_tables),
            )

            schema_path = Path(__file__).parent / "schema.sql"
            if not schema_path.exists():
                raise FileNotFoundError(f"schema.sql not found at {schema_path}")

            await conn.execute(schema_path.read_text())

            existing_tables = await self._existing_tables(conn)
            missing_tables = self.EXPECTED_TABLES - existing_tables
            if missing_tables:
                logger.error(f"Migration incomplete, missing tables: {missing_tables}")
                raise RuntimeError(f"Migration incomplete: missing tables {missing_tables}")

            logger.success(f"All {len(self.EXPECTED_TABLES)} workflow tables verified successfully")

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self.pool:
            logger.info("Closing workflow domain database pool")
            await self.pool.close()
            self.pool = None
            self._pool_initialized = False
            logger.info("Domain DB pool closed")

    def acquire(self):
        """
        Acquire a database connection from the pool.

        Usage:
            async with pool.acquire() as conn:
                result = await conn.fetchrow("SELECT * FROM ...")
        """
        if not self.pool:
            raise RuntimeError("Domain DB pool not initialized - call initialize() first")
        return self.pool.acquire()

    async def health_check(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        try:
            if not self.pool:
                return False

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                return result == 1
        except Exception as e:
            logger.error(f"Domain DB health check failed: {e}")
            return False
