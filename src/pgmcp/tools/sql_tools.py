"""SQL tools exposed to agents: run a read query, list tables, describe a table."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pgmcp.core.errors import ConnectivityError
from pgmcp.tools.decorator import tool

if TYPE_CHECKING:
    from pgmcp.core.service import GatewayService

_gateway: GatewayService | None = None


def set_gateway(gateway: GatewayService | None) -> None:
    """Set the gateway service instance for tool use."""
    global _gateway
    _gateway = gateway


def _require_gateway() -> GatewayService:
    if _gateway is None:
        raise ConnectivityError("Database not initialized")
    return _gateway


@tool()
async def run_query(query: str) -> dict:
    """Execute a SQL query against the PostgreSQL database.

    Only SELECT and CTE (WITH) queries are allowed. If the query fails because
    a table or column does not exist, the error includes the current schema.

    Args:
        query: The SQL query to execute (only SELECT and CTE queries are allowed).
    """
    result = await _require_gateway().run_query(query)
    return result.to_dict()


@tool()
async def list_tables() -> list[str]:
    """List all tables in the PostgreSQL database."""
    return await _require_gateway().list_tables()


@tool()
async def describe_table(table: str) -> list[dict]:
    """Describe the columns of a specified table.

    Args:
        table: Name of the table to describe.
    """
    return await _require_gateway().describe_table(table)
