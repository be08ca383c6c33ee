"""Command-line entry point: ``quickbooks-mcp [auth|serve]``."""

from __future__ import annotations

import asyncio
import logging
import sys
import webbrowser

import click

from quickbooks_mcp import __version__
from quickbooks_mcp.api.client import QuickBooksClient
from quickbooks_mcp.auth.session import OAuthSession
from quickbooks_mcp.config import Settings, load_settings
from quickbooks_mcp.errors import QuickBooksError
from quickbooks_mcp.server.protocol import Implementation
from quickbooks_mcp.server.session import ServerConfig, ServerSession
from quickbooks_mcp.server.transport import StdioServerTransport
from quickbooks_mcp.tools.accounts import register_account_tools
from quickbooks_mcp.tools.customers import register_customer_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "quickbooks"
SERVER_INSTRUCTIONS = (
    "Tools for reading and editing QuickBooks Online customers and accounts. "
    "Updates are sparse by default; deactivate records instead of deleting them."
)


def configure_logging(level: str) -> None:
    """Send diagnostics to stderr; stdout carries the protocol."""
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(env_file: str | None) -> Settings:
    try:
        settings = load_settings(env_file)
    except QuickBooksError as e:
        raise click.ClickException(str(e)) from e
    configure_logging(settings.log_level)
    return settings


def _open_url(url: str) -> None:
    click.echo(f"Open this URL to authorize:\n{url}", err=True)
    webbrowser.open(url)


async def run_auth(settings: Settings) -> None:
    session = OAuthSession.from_settings(settings, open_url=_open_url)
    try:
        bundle = await session.begin_interactive_authorization(
            timeout=settings.auth_timeout
        )
    finally:
        await session.close()

    click.echo(f"Authorized. Credentials saved to {settings.credentials_path}", err=True)
    if bundle.realm_id:
        click.echo(f"Company (realm) id: {bundle.realm_id}", err=True)


def build_server(client: QuickBooksClient) -> ServerSession:
    server = ServerSession(
        StdioServerTransport(),
        ServerConfig(
            info=Implementation(name=SERVER_NAME, version=__version__),
            instructions=SERVER_INSTRUCTIONS,
        ),
    )
    register_customer_tools(server.tools, client)
    register_account_tools(server.tools, client)
    return server


async def run_server(settings: Settings) -> None:
    session = OAuthSession.from_settings(settings)
    bundle = session.load()
    if bundle is None:
        logger.warning("No stored credentials; run `quickbooks-mcp auth` first")
    elif bundle.is_expired():
        logger.info("Stored access token has expired; it will be refreshed on first use")

    client = QuickBooksClient(
        session,
        settings.api_base_url,
        settings.minor_version,
        realm_id=settings.realm_id,
        timeout=settings.http_timeout,
    )
    server = build_server(client)

    logger.info(f"QuickBooks MCP server running ({settings.environment})")
    try:
        await server.run()
    finally:
        await client.close()
        await session.close()


@click.group(invoke_without_command=True)
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Read settings from this .env file instead of ./.env",
)
@click.version_option(__version__, prog_name="quickbooks-mcp")
@click.pass_context
def cli(ctx: click.Context, env_file: str | None) -> None:
    """QuickBooks Online MCP server."""
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file
    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


@cli.command()
@click.pass_context
def auth(ctx: click.Context) -> None:
    """Authorize with QuickBooks in the browser and save credentials."""
    settings = _load(ctx.obj["env_file"])
    try:
        asyncio.run(run_auth(settings))
    except QuickBooksError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Serve the QuickBooks tools over stdio (default)."""
    settings = _load(ctx.obj["env_file"])
    try:
        asyncio.run(run_server(settings))
    except QuickBooksError as e:
        raise click.ClickException(str(e)) from e


def main() -> None:
    cli(obj={})
