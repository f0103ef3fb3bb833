"""Test fixtures for pgmcp.

The asyncpg pool is replaced by in-memory fakes so the suite runs without a
PostgreSQL server. ``FakeDatabase`` holds the catalog and the canned results
for user queries; every connection handed out by ``FakePool`` records the
statements it ran.
"""

from __future__ import annotations

import tempfile
from collections import namedtuple
from contextlib import asynccontextmanager
from pathlib import Path

import pytest

from pgmcp.core.config import DatabaseConfig, PolicyConfig, QueryConfig, ServerConfig, Settings
from pgmcp.core.service import GatewayService
from pgmcp.core.tool_registry import ToolRegistry
from pgmcp.db.postgres import DatabaseManager

Attribute = namedtuple("Attribute", ["name", "type"])


class FakeResult:
    """Canned outcome of a user query; ``error`` is raised when rows are fetched."""

    def __init__(self, columns: list[str], rows: list[tuple] | None = None, error: BaseException | None = None):
        self.columns = columns
        self.rows = rows or []
        self.error = error


class FakeStatement:
    def __init__(self, result: FakeResult):
        self._result = result

    def get_attributes(self):
        return tuple(Attribute(name, None) for name in self._result.columns)

    async def fetch(self, *args, timeout=None):
        if self._result.error is not None:
            raise self._result.error
        return list(self._result.rows)


class FakeDatabase:
    def __init__(self):
        self.catalog: dict[str, list[tuple[str, str]]] = {}
        self.queries: dict[str, FakeResult | BaseException] = {}
        self.tables_error: BaseException | None = None
        self.ping_error: BaseException | None = None
        self.executed: list[tuple] = []

    def add_table(self, name: str, columns: list[tuple[str, str]]) -> None:
        self.catalog[name] = columns

    def add_query(
        self,
        sql: str,
        columns: list[str] | None = None,
        rows: list[tuple] | None = None,
        prepare_error: BaseException | None = None,
        fetch_error: BaseException | None = None,
    ) -> None:
        """Register a user query; ``prepare_error`` fails planning, ``fetch_error`` fails execution."""
        if prepare_error is not None:
            self.queries[sql] = prepare_error
        else:
            self.queries[sql] = FakeResult(columns or [], rows, error=fetch_error)


class FakeConnection:
    def __init__(self, db: FakeDatabase):
        self._db = db

    async def fetchval(self, sql, *args, timeout=None):
        self._db.executed.append(("fetchval", sql, args))
        if self._db.ping_error is not None:
            raise self._db.ping_error
        return 1

    async def prepare(self, sql, timeout=None):
        self._db.executed.append(("prepare", sql, ()))
        outcome = self._db.queries.get(sql)
        if outcome is None:
            raise AssertionError(f"unexpected query: {sql}")
        if isinstance(outcome, BaseException):
            raise outcome
        return FakeStatement(outcome)

    async def fetch(self, sql, *args, timeout=None):
        self._db.executed.append(("fetch", sql, args))
        if "information_schema.tables" in sql:
            if self._db.tables_error is not None:
                raise self._db.tables_error
            return [{"table_name": name} for name in self._db.catalog]
        if "information_schema.columns" in sql:
            _schema, table = args
            return [
                {"column_name": column, "data_type": data_type}
                for column, data_type in self._db.catalog.get(table, [])
            ]
        raise AssertionError(f"unexpected catalog query: {sql}")


class FakePool:
    def __init__(self, db: FakeDatabase):
        self.db = db
        self.acquired = 0
        self.released = 0
        self.closed = False
        self.create_kwargs: dict = {}
        # one entry per upcoming checkout; None lets that checkout succeed
        self.acquire_errors: list[BaseException | None] = []

    @asynccontextmanager
    async def _checkout(self):
        error = self.acquire_errors.pop(0) if self.acquire_errors else None
        if error is not None:
            raise error
        self.acquired += 1
        try:
            yield FakeConnection(self.db)
        finally:
            self.released += 1

    def acquire(self):
        return self._checkout()

    async def close(self):
        self.closed = True


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def fake_db():
    db = FakeDatabase()
    db.add_table("users", [("id", "integer"), ("name", "text"), ("avatar", "bytea")])
    db.add_table("orders", [("id", "integer"), ("user_id", "integer"), ("total", "numeric")])
    return db


@pytest.fixture
def fake_pool(fake_db):
    return FakePool(fake_db)


@pytest.fixture
def pool_factory(fake_pool):
    async def factory(dsn, **kwargs):
        fake_pool.create_kwargs = {"dsn": dsn, **kwargs}
        return fake_pool

    return factory


@pytest.fixture
def settings():
    return Settings(
        database=DatabaseConfig(host="db.test", user="reader", password="secret", dbname="shop"),
        query=QueryConfig(timeout=5.0),
        policy=PolicyConfig(),
        server=ServerConfig(),
    )


@pytest.fixture
async def db_manager(settings, pool_factory):
    manager = DatabaseManager(settings.database, pool_factory=pool_factory)
    await manager.connect()
    return manager


@pytest.fixture
async def service(settings, pool_factory, tmp_dir):
    svc = GatewayService(settings=settings, root=tmp_dir, pool_factory=pool_factory)
    await svc.initialize()
    return svc


@pytest.fixture
def tool_registry():
    registry = ToolRegistry()
    registry.discover(["pgmcp.tools"])
    return registry
