"""PostgreSQL connection pool manager."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

import asyncpg

from pgmcp.core.config import DatabaseConfig
from pgmcp.core.errors import ConnectivityError

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the asyncpg pool for the lifetime of the process.

    The pool is shared by every in-flight request; connections are checked
    out per call through :meth:`acquire` and always returned on exit.
    """

    def __init__(self, config: DatabaseConfig, pool_factory: Callable[..., Any] | None = None):
        self._config = config
        self._pool_factory = pool_factory or asyncpg.create_pool
        self._pool = None

    @property
    def target(self) -> str:
        return self._config.target

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Open the pool and verify it with a ping."""
        if self._pool is not None:
            return
        try:
            self._pool = await self._pool_factory(
                self._config.dsn,
                min_size=self._config.min_pool_size,
                max_size=self._config.max_pool_size,
                timeout=self._config.connect_timeout,
                server_settings={"application_name": "pgmcp"},
            )
            await self.ping()
        except Exception as e:
            await self.close()
            raise ConnectivityError(f"failed to connect to database {self.target}: {e}") from e
        logger.info("Database pool established: %s", self.target)

    async def ping(self) -> None:
        async with self.acquire() as conn:
            await conn.fetchval("SELECT 1", timeout=self._config.connect_timeout)

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        if self._pool is None:
            raise ConnectivityError("Database not initialized")
        async with self._pool.acquire() as conn:
            yield conn

    async def close(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("Database pool closed")
