"""CLI interface for pgmcp using Click."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from pgmcp import __version__
from pgmcp.core.config import Settings, load_settings
from pgmcp.core.errors import ConnectivityError
from pgmcp.core.service import GatewayService
from pgmcp.interfaces.server import GatewayServer


def _configure_logging(level: str) -> None:
    # stdout belongs to the stdio transport
    logging.basicConfig(
        level=level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class AppContext:
    """Holds settings and builds the gateway service on demand."""

    def __init__(self, config_path: Path | None = None):
        self.settings: Settings = load_settings(config_path)

    def service(self) -> GatewayService:
        return GatewayService(settings=self.settings)


pass_app = click.make_pass_decorator(AppContext)


@click.group()
@click.version_option(version=__version__, prog_name="pgmcp")
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to a settings YAML file",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None):
    """pgmcp - read-only PostgreSQL tools for agents"""
    ctx.obj = AppContext(config_path)
    _configure_logging(ctx.obj.settings.server.log_level)


@cli.command()
@click.option("--transport", "-t", type=click.Choice(["stdio", "http"]), default=None,
              help="Transport type (stdio or http)")
@click.option("--host", default=None, help="Bind host for the http transport")
@click.option("--port", "-p", type=int, default=None, help="Bind port for the http transport")
@pass_app
def serve(app: AppContext, transport: str | None, host: str | None, port: int | None):
    """Serve the tools over MCP until the transport closes."""
    server_config = app.settings.server
    if transport:
        server_config.transport = transport
    if host:
        server_config.host = host
    if port:
        server_config.port = port

    server = GatewayServer(app.service())
    try:
        asyncio.run(server.start())
    except ConnectivityError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@pass_app
def check(app: AppContext):
    """Connect to the database and ping it."""
    sys.exit(asyncio.run(_check(app)))


async def _check(app: AppContext) -> int:
    service = app.service()
    try:
        await service.initialize()
    except ConnectivityError as e:
        click.echo(f"Error: {e}", err=True)
        return 1
    await service.close()
    click.echo(f"Connected to database: {service.db_manager.target}")
    return 0


@cli.command()
@click.argument("sql")
@pass_app
def query(app: AppContext, sql: str):
    """Run a single read-only SQL query and print the JSON result."""
    sys.exit(asyncio.run(_call_tool(app, "run_query", {"query": sql})))


@cli.command("tables")
@pass_app
def list_tables(app: AppContext):
    """List tables in the configured schema."""
    sys.exit(asyncio.run(_call_tool(app, "list_tables", {})))


@cli.command()
@click.argument("table")
@pass_app
def describe(app: AppContext, table: str):
    """Describe the columns of TABLE."""
    sys.exit(asyncio.run(_call_tool(app, "describe_table", {"table": table})))


async def _call_tool(app: AppContext, name: str, arguments: dict) -> int:
    service = app.service()
    try:
        await service.initialize()
    except ConnectivityError as e:
        click.echo(f"Error: {e}", err=True)
        return 1

    try:
        result = await service.tool_registry.execute(name, arguments)
    finally:
        await service.close()

    click.echo(result.content, err=result.is_error)
    return 1 if result.is_error else 0
