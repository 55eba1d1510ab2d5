# server/postgres_connector.py

import logging
from typing import Any, List, Optional, Sequence

import asyncpg

from errors import PlatformError
from platform_port import DatabasePlatform, Row

logger = logging.getLogger(__name__)


class PostgresPlatform(DatabasePlatform):
    """
    Direct PostgreSQL connection for self-hosted or local Maia databases.

    There is exactly one project: the database named in settings. Read
    statements run inside a READ ONLY transaction.
    """

    def __init__(self, dsn: str, database_name: str = "postgres", min_size: int = 1, max_size: int = 10):
        if not dsn:
            raise PlatformError("A database DSN is required for the postgres platform (DATABASE_URL)")
        self.dsn = dsn
        self.database_name = database_name
        self._min_size = min_size
        self._max_size = max_size
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> asyncpg.Pool:
        if self.pool is None:
            try:
                self.pool = await asyncpg.create_pool(
                    dsn=self.dsn,
                    min_size=self._min_size,
                    max_size=self._max_size,
                )
            except (OSError, asyncpg.PostgresError) as e:
                raise PlatformError(f"Cannot connect to database '{self.database_name}': {e}") from e
            logger.info(f"✅ Connected to database '{self.database_name}'")
        return self.pool

    async def execute_sql(
        self,
        project_id: str,
        query: str,
        parameters: Optional[Sequence[Any]] = None,
        read_only: bool = False,
    ) -> List[Row]:
        pool = await self.connect()
        args = list(parameters or [])
        try:
            async with pool.acquire() as conn:
                if read_only:
                    async with conn.transaction(readonly=True):
                        records = await conn.fetch(query, *args)
                else:
                    records = await conn.fetch(query, *args)
        except asyncpg.PostgresError as e:
            raise PlatformError(f"{type(e).__name__}: {e}") from e
        return [dict(r) for r in records]

    async def resolve_project_selection(self) -> str:
        return self.database_name

    async def test_connection(self) -> bool:
        try:
            rows = await self.execute_sql(self.database_name, "SELECT version() AS version", read_only=True)
            logger.info(f"✅ Database '{self.database_name}' is reachable: {rows[0]['version']}")
            return True
        except PlatformError as e:
            logger.error(f"❌ Database '{self.database_name}' unreachable: {e}")
            return False

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None
            logger.info("🔌 Database pool closed")
