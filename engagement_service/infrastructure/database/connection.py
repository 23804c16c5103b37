"""
Database connection and transaction management
"""
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from ...config import settings
from ...domain.repositories import IPersistenceGateway
from .repositories import PostgresUnitOfWork
from .schema import SCHEMA_SQL

logger = logging.getLogger(__name__)


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Decode JSONB columns into Python objects"""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


class DatabaseConnection(IPersistenceGateway):
    """PostgreSQL connection pool manager using asyncpg"""

    def __init__(self):
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        """Create database connection pool"""
        try:
            self.pool = await asyncpg.create_pool(
                settings.DATABASE_URL,
                min_size=1,
                max_size=settings.DB_POOL_SIZE,
                command_timeout=settings.DB_COMMAND_TIMEOUT,
                init=_init_connection,
            )
            logger.info("Database connection pool created successfully")
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

    async def disconnect(self):
        """Close database connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database connection pool closed")

    async def create_schema(self):
        """Create tables, constraints and indexes if they do not exist"""
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
        logger.info("Database schema ensured")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresUnitOfWork]:
        """Run the block in one transaction on one pooled connection"""
        if not self.pool:
            raise RuntimeError("Database not connected")

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield PostgresUnitOfWork(conn)

    async def health_check(self) -> bool:
        """Check database connectivity"""
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False


# Global database instance
db = DatabaseConnection()


async def get_db() -> DatabaseConnection:
    """Dependency for getting database instance"""
    return db
