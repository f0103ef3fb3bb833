"""Execution of allowed read queries against the shared pool."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import asyncpg

from pgmcp.core.errors import ExecutionError, GatewayError, QueryTimeoutError
from pgmcp.db.postgres import DatabaseManager
from pgmcp.query.classify import SchemaHintPredicate, error_sqlstate
from pgmcp.query.schema import SchemaIntrospector
from pgmcp.query.values import normalize_row

logger = logging.getLogger(__name__)


@dataclass
class ResultSet:
    columns: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> dict[str, Any]:
        return {"columns": self.columns, "rows": self.rows, "count": self.count}


class QueryExecutor:
    """Runs a query that already passed the policy and normalizes its rows.

    On failure, errors the schema-hint predicate accepts are augmented with a
    fresh schema snapshot so the caller can correct table or column names.
    """

    def __init__(
        self,
        db: DatabaseManager,
        introspector: SchemaIntrospector,
        schema_hint: SchemaHintPredicate | None = None,
        timeout: float | None = None,
    ):
        self._db = db
        self._introspector = introspector
        self._schema_hint = schema_hint or SchemaHintPredicate()
        self._timeout = timeout

    async def execute(self, query: str) -> ResultSet:
        try:
            async with self._db.acquire() as conn:
                stmt = await conn.prepare(query, timeout=self._timeout)
                columns = [attr.name for attr in stmt.get_attributes()]
                records = await stmt.fetch(timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Query timed out after %ss", self._timeout)
            raise QueryTimeoutError(f"query exceeded timeout of {self._timeout}s") from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise await self._execution_error(e) from e

        return ResultSet(columns=columns, rows=[normalize_row(columns, r) for r in records])

    async def _execution_error(self, exc: Exception) -> ExecutionError:
        sqlstate = error_sqlstate(exc)
        logger.warning("Query failed (sqlstate=%s): %s", sqlstate, exc)

        if not self._schema_hint(exc):
            return ExecutionError(str(exc), sqlstate=sqlstate)

        try:
            schema = await self._introspector.snapshot()
        except GatewayError as schema_exc:
            logger.warning("Schema fallback failed: %s", schema_exc)
            return ExecutionError(str(exc), sqlstate=sqlstate, schema_error=schema_exc.message)
        return ExecutionError(str(exc), sqlstate=sqlstate, schema=schema)
