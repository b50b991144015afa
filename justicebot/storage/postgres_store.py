"""
Postgres Entitlement Store
==========================
Direct PostgreSQL backend for deployments that own the database.

- AsyncPG connection pool, created lazily on first use
- Table migration on initialize()
- INSERT ... ON CONFLICT DO UPDATE for idempotent grants

pip install asyncpg
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Optional

import asyncpg
import structlog

from justicebot.config import StoreConfig
from justicebot.errors import ConfigurationError, StoreError
from justicebot.schemas import Entitlement
from justicebot.storage.entitlements import EntitlementStore


logger = structlog.get_logger().bind(component="postgres_store")


MIGRATIONS = [
    """
    CREATE TABLE IF NOT EXISTS entitlements (
        user_id TEXT NOT NULL,
        product_id TEXT NOT NULL,
        granted_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (user_id, product_id)
    )
    """,
]

UPSERT_SQL = """
    INSERT INTO entitlements (user_id, product_id, granted_at)
    VALUES ($1, $2, $3)
    ON CONFLICT (user_id, product_id)
    DO UPDATE SET granted_at = EXCLUDED.granted_at
"""

EXISTS_SQL = "SELECT 1 FROM entitlements WHERE user_id = $1 AND product_id = $2 LIMIT 1"

LIST_SQL = """
    SELECT product_id, granted_at FROM entitlements
    WHERE user_id = $1
    ORDER BY product_id
"""


class PostgresEntitlementStore(EntitlementStore):

    def __init__(self, config: StoreConfig):
        self.config = config
        self._pool: Optional[asyncpg.Pool] = None
        self._init_lock = asyncio.Lock()

    async def initialize(self) -> None:
        if not self.config.database_url:
            raise ConfigurationError("DATABASE_URL is not configured")

        async with self._init_lock:
            if self._pool is not None:
                return
            try:
                pool = await asyncpg.create_pool(
                    self.config.database_url,
                    min_size=self.config.min_pool_size,
                    max_size=self.config.max_pool_size,
                    command_timeout=self.config.timeout_seconds,
                )
                async with pool.acquire() as conn:
                    for migration in MIGRATIONS:
                        await conn.execute(migration)
            except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
                logger.error("postgres_init_failed", error=str(e))
                raise StoreError("entitlement database unavailable")

            self._pool = pool

        logger.info("postgres_pool_initialized",
                    min_size=self.config.min_pool_size,
                    max_size=self.config.max_pool_size)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("postgres_pool_closed")

    @asynccontextmanager
    async def _acquire(self, what: str):
        if self._pool is None:
            await self.initialize()
        try:
            async with self._pool.acquire(timeout=self.config.timeout_seconds) as conn:
                yield conn
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error("postgres_error", what=what, error=str(e))
            raise StoreError(f"{what} failed")

    async def grant(self, user_id: str, product_id: str) -> Entitlement:
        entitlement = Entitlement(user_id=user_id, product_id=product_id)
        async with self._acquire("postgres upsert") as conn:
            await conn.execute(UPSERT_SQL, user_id, product_id, entitlement.granted_at)
        logger.info("entitlement_upserted", user_id=user_id, product_id=product_id)
        return entitlement

    async def has(self, user_id: str, product_id: str) -> bool:
        async with self._acquire("postgres select") as conn:
            row = await conn.fetchrow(EXISTS_SQL, user_id, product_id)
        return row is not None

    async def list_for_user(self, user_id: str) -> list[dict[str, Any]]:
        async with self._acquire("postgres list") as conn:
            rows = await conn.fetch(LIST_SQL, user_id)
        return [
            {"product_id": row["product_id"], "granted_at": row["granted_at"].isoformat()}
            for row in rows
        ]
