"""FastAPI application serving MCP over streamable HTTP plus a small REST mirror."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from mcp.server.fastmcp import FastMCP

from pgmcp import __version__
from pgmcp.core.errors import GatewayError
from pgmcp.core.service import GatewayService

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = [
    "Content-Type",
    "Authorization",
    "mcp-protocol-version",
    "mcp-session-id",
]

# HTTP status for each error kind returned by the tool registry
STATUS_BY_KIND = {
    "argument_error": 400,
    "policy_rejection": 403,
    "unknown_tool": 404,
    "execution_error": 422,
    "query_timeout": 504,
    "schema_fetch_error": 502,
    "connectivity_error": 503,
    "marshal_error": 500,
    "internal_error": 500,
}


def create_app(service: GatewayService | None = None, mcp: FastMCP | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    from pgmcp.interfaces.server import build_mcp

    service = service or GatewayService()
    mcp = mcp or build_mcp(service)
    mcp_app = mcp.streamable_http_app()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting gateway service...")
        await service.initialize()
        try:
            async with mcp.session_manager.run():
                yield
        finally:
            logger.info("Shutting down gateway service...")
            await service.close()

    app = FastAPI(
        title="pgmcp",
        version=__version__,
        description="Read-only PostgreSQL tools for agents",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )
    app.state.service = service

    @app.get("/health", tags=["System"], summary="Health check")
    async def health_check():
        """Report whether the database pool answers a ping."""
        try:
            await service.db_manager.ping()
        except GatewayError as e:
            return JSONResponse({"status": "unhealthy", "error": e.message}, status_code=503)
        except Exception as e:
            logger.warning("Health check ping failed: %s", e)
            return JSONResponse({"status": "unhealthy", "error": str(e)}, status_code=503)
        return {
            "status": "healthy",
            "version": __version__,
            "database": service.db_manager.target,
        }

    @app.get("/api/tools", tags=["Tools"], summary="List tool descriptors")
    async def api_tools():
        return service.tool_registry.get_schemas()

    @app.post("/api/tools/{name}", tags=["Tools"], summary="Call a tool")
    async def api_call_tool(name: str, arguments: dict | None = Body(default=None)):
        result = await service.tool_registry.execute(name, arguments or {})
        status_code = STATUS_BY_KIND.get(result.kind, 500) if result.is_error else 200
        return Response(content=result.content, media_type="application/json", status_code=status_code)

    # Mounted last so the routes above take precedence; MCP lives at /mcp.
    app.mount("/", mcp_app)
    return app
