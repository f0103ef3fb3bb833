"""MCP server: binds the tool registry to FastMCP and runs it over stdio or HTTP."""

from __future__ import annotations

import functools
import inspect
import logging
from typing import get_type_hints

import uvicorn
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from pgmcp import __version__
from pgmcp.core.service import GatewayService
from pgmcp.core.tool_registry import ToolRegistry
from pgmcp.tools.decorator import ToolFunction

logger = logging.getLogger(__name__)

SERVER_NAME = "postgres-mcp-server"


def _bind_tool(registry: ToolRegistry, tool: ToolFunction):
    """Wrap a registered tool so FastMCP sees its signature but calls go through the registry."""

    @functools.wraps(tool.func)
    async def call(**arguments) -> str:
        result = await registry.execute(tool.name, arguments)
        if result.is_error:
            raise ToolError(result.content)
        return result.content

    hints = get_type_hints(tool.func)
    signature = inspect.signature(tool.func)
    params = [p.replace(annotation=hints.get(p.name, p.annotation)) for p in signature.parameters.values()]
    call.__signature__ = signature.replace(parameters=params, return_annotation=str)
    return call


def build_mcp(service: GatewayService) -> FastMCP:
    """Create a FastMCP server exposing every discovered tool."""
    # The bind host decides whether FastMCP turns on DNS-rebinding protection.
    mcp = FastMCP(SERVER_NAME, host=service.settings.server.host)
    # reported as serverInfo.version; FastMCP takes no version argument
    mcp._mcp_server.version = __version__
    registry = service.tool_registry
    for name in registry.list_tools():
        tool = registry.get(name)
        mcp.add_tool(_bind_tool(registry, tool), name=tool.name, description=tool.description)
    return mcp


class GatewayServer:
    """Runs the gateway over the configured transport and owns its shutdown."""

    def __init__(self, service: GatewayService):
        self._service = service
        self._config = service.settings.server
        self._mcp = build_mcp(service)

    async def start(self) -> None:
        """Connect to the database, then serve until the transport closes.

        Raises ConnectivityError before serving anything if the database is
        unreachable.
        """
        await self._service.initialize()
        logger.info("Starting %s %s (%s transport)", SERVER_NAME, __version__, self._config.transport)
        try:
            if self._config.transport == "http":
                await self._serve_http()
            else:
                await self._mcp.run_stdio_async()
        finally:
            await self.shutdown()

    async def _serve_http(self) -> None:
        from pgmcp.interfaces.web.app import create_app

        app = create_app(service=self._service, mcp=self._mcp)
        config = uvicorn.Config(
            app,
            host=self._config.host,
            port=self._config.port,
            log_level=self._config.log_level.lower(),
            access_log=True,
        )
        server = uvicorn.Server(config)
        logger.info("HTTP server listening on %s:%d/mcp", self._config.host, self._config.port)
        await server.serve()

    async def shutdown(self) -> None:
        logger.info("Shutting down %s...", SERVER_NAME)
        await self._service.close()
