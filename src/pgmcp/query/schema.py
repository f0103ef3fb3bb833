"""Catalog introspection: list tables, describe a table, snapshot the whole schema."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import asyncpg

from pgmcp.core.errors import SchemaFetchError
from pgmcp.db.postgres import DatabaseManager

logger = logging.getLogger(__name__)

TABLES_SQL = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = $1
"""

COLUMNS_SQL = """
    SELECT column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = $1 AND table_name = $2
    ORDER BY ordinal_position
"""

# OSError covers sockets dropped or refused under the driver
_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, asyncio.TimeoutError, OSError)


class SchemaIntrospector:
    """Reads table and column metadata from ``information_schema``.

    Nothing is cached: every call goes to the catalog, so a snapshot always
    reflects the schema at the moment it was requested.
    """

    def __init__(self, db: DatabaseManager, schema_name: str = "public", timeout: float | None = None):
        self._db = db
        self._schema_name = schema_name
        self._timeout = timeout

    async def list_tables(self) -> list[str]:
        async with self._connection() as conn:
            return await self._list_tables(conn)

    async def describe_table(self, table: str) -> list[dict[str, str]]:
        """Columns of one table in ordinal order; an unknown table yields an empty list."""
        async with self._connection() as conn:
            return await self._describe_table(conn, table)

    async def snapshot(self) -> dict[str, list[dict[str, str]]]:
        """Map every table to its columns: one catalog query for the list, one per table."""
        async with self._connection() as conn:
            tables = await self._list_tables(conn)
            snapshot: dict[str, list[dict[str, str]]] = {}
            for table in tables:
                snapshot[table] = await self._describe_table(conn, table)
        logger.debug("Schema snapshot built with %d tables", len(snapshot))
        return snapshot

    @asynccontextmanager
    async def _connection(self):
        try:
            async with self._db.acquire() as conn:
                yield conn
        except _DB_ERRORS as e:
            raise SchemaFetchError(f"failed to reach database: {e}") from e

    async def _list_tables(self, conn) -> list[str]:
        try:
            rows = await conn.fetch(TABLES_SQL, self._schema_name, timeout=self._timeout)
        except _DB_ERRORS as e:
            raise SchemaFetchError(f"failed to list tables: {e}") from e
        return [row["table_name"] for row in rows]

    async def _describe_table(self, conn, table: str) -> list[dict[str, str]]:
        try:
            rows = await conn.fetch(COLUMNS_SQL, self._schema_name, table, timeout=self._timeout)
        except _DB_ERRORS as e:
            raise SchemaFetchError(f"failed to describe table {table}: {e}") from e
        return [{"column": row["column_name"], "type": row["data_type"]} for row in rows]
