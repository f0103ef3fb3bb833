"""Shared service layer used by the MCP server, the HTTP app and the CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from dotenv import load_dotenv

from pgmcp.core.config import Settings, get_project_root, load_settings
from pgmcp.core.errors import PolicyRejection
from pgmcp.core.tool_registry import ToolRegistry
from pgmcp.db.postgres import DatabaseManager
from pgmcp.query.classify import SchemaHintPredicate
from pgmcp.query.executor import QueryExecutor, ResultSet
from pgmcp.query.schema import SchemaIntrospector
from pgmcp.safety.policy import PolicyValidator
from pgmcp.tools.sql_tools import set_gateway

logger = logging.getLogger(__name__)


class GatewayService:
    """Central service that initializes and wires all components.

    The database pool is the only long-lived state; every request builds its
    own result or snapshot, so handlers share the service without locking.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        root: Path | None = None,
        pool_factory: Callable[..., Any] | None = None,
    ):
        self.root = root or get_project_root()
        load_dotenv(self.root / ".env")
        self.settings = settings or load_settings()
        self._initialized = False

        self.db_manager = DatabaseManager(self.settings.database, pool_factory=pool_factory)

        policy = self.settings.policy
        self.policy = PolicyValidator.with_extra_patterns(policy.extra_deny_patterns)
        self.introspector = SchemaIntrospector(
            self.db_manager,
            schema_name=self.settings.query.schema_name,
            timeout=self.settings.query.timeout,
        )
        self.executor = QueryExecutor(
            self.db_manager,
            self.introspector,
            schema_hint=SchemaHintPredicate(
                mode=policy.schema_hint_mode,
                keywords=policy.schema_hint_keywords,
            ),
            timeout=self.settings.query.timeout,
        )

        # Tool registry
        self.tool_registry = ToolRegistry()
        self.tool_registry.discover(self.settings.tools_modules)
        set_gateway(self)

    async def initialize(self) -> None:
        """Open the pool and ping it; raises ConnectivityError when unreachable."""
        if not self._initialized:
            await self.db_manager.connect()
            logger.info("Connected to database: %s", self.db_manager.target)
            self._initialized = True

    async def close(self) -> None:
        await self.db_manager.close()
        self._initialized = False

    async def run_query(self, query: str) -> ResultSet:
        """Validate a query against the read-only policy, then execute it."""
        verdict = self.policy.validate(query)
        if not verdict.allowed:
            raise PolicyRejection(verdict.rule, verdict.reason)
        return await self.executor.execute(query)

    async def list_tables(self) -> list[str]:
        return await self.introspector.list_tables()

    async def describe_table(self, table: str) -> list[dict[str, str]]:
        return await self.introspector.describe_table(table)
