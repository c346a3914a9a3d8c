"""Main CLI entry point for the AEM MCP server."""

import asyncio
import json
from pathlib import Path

import click
from dotenv import set_key

from aem_server.core.logging import setup_logging
from aem_server.mcp_server.auth import AEMSession, exchange_client_credentials
from aem_server.mcp_server.client import AEMClient
from aem_server.mcp_server.config import AuthType, Config
from aem_server.mcp_server.dispatcher import ToolDispatcher
from aem_server.mcp_server.errors import AEMServerError, UpstreamAuthError
from aem_server.mcp_server.tools import OPERATIONS, check_connection
from aem_server.models.api.tools import NoArguments

from .utils import (
    IMS_ERROR_HINTS,
    console,
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    format_expiry,
    probe_table,
)


@click.group(invoke_without_command=True)
@click.option("-v", "--version", is_flag=True, help="Show version information")
@click.option("--log-level", default=None, help="Override AEM_LOG_LEVEL")
@click.pass_context
def cli(ctx, version, log_level):
    """AEM MCP - content operations on Adobe Experience Manager as MCP tools.

    Examples:
        aem-mcp serve                          # Run the MCP stdio server
        aem-mcp check                          # Diagnose auth and read access
        aem-mcp call aem_get_page --args '{"page_path": "/content/site/en"}'
        aem-mcp token --write-env .env         # Fetch an IMS token
    """
    if version:
        from . import __version__

        console.print(f"AEM MCP v{__version__}")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        ctx.exit()

    ctx.ensure_object(dict)
    config = Config()
    if log_level:
        config.log_level = log_level
    ctx.obj["config"] = config


@cli.command()
@click.pass_context
def serve(ctx):
    """Run the MCP server on stdio."""
    from aem_server.mcp_server.main import main

    asyncio.run(main(ctx.obj["config"]))


@cli.command()
@click.pass_context
def check(ctx):
    """Check authentication, identity and read access against AEM."""
    config = ctx.obj["config"]
    setup_logging(config.log_level, config.log_file)

    client = AEMClient(AEMSession(config))
    report = asyncio.run(check_connection(client, NoArguments()))

    console.print(probe_table(report))
    if report["ok"]:
        echo_success("All probes passed")
    else:
        echo_error("One or more probes failed")
        ctx.exit(1)


@cli.command(name="tools")
def list_tools():
    """List the available tools."""
    for spec in OPERATIONS.values():
        console.print(f"[cyan]{spec.name}[/cyan]")
        console.print(f"  {spec.description}")


@cli.command()
@click.argument("name")
@click.option("--args", "raw_args", default="{}", help="Tool arguments as a JSON object")
@click.pass_context
def call(ctx, name, raw_args):
    """Invoke a single tool and print its result."""
    config = ctx.obj["config"]
    setup_logging(config.log_level, config.log_file)

    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--args")
    if not isinstance(arguments, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--args")

    dispatcher = ToolDispatcher(AEMClient(AEMSession(config)))
    result = asyncio.run(dispatcher.dispatch(name, arguments))

    click.echo(result.content)
    if result.is_error:
        ctx.exit(1)


@cli.command()
@click.option(
    "--write-env",
    "env_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the token to this .env file as AEM_ACCESS_TOKEN",
)
@click.pass_context
def token(ctx, env_path):
    """Fetch an IMS access token with the configured client credentials."""
    config = ctx.obj["config"]

    echo_info(f"Requesting IMS access token from {config.ims_token_url}")
    try:
        token_data = asyncio.run(exchange_client_credentials(config))
    except UpstreamAuthError as e:
        echo_error(e.message)
        hint = IMS_ERROR_HINTS.get(_ims_error_code(e.body))
        if hint:
            console.print(f"[yellow]Hint:[/yellow] {hint}")
        ctx.exit(1)
    except AEMServerError as e:
        echo_error(e.message)
        ctx.exit(1)

    access_token = token_data["access_token"]
    expires_in = int(token_data.get("expires_in") or 0)
    echo_success("Token received")
    console.print(f"  Type:    {token_data.get('token_type', 'bearer')}")
    console.print(f"  Expires: in {format_expiry(expires_in)} ({expires_in}s)")
    console.print(f"  Token:   {access_token[:20]}...")

    if env_path:
        Path(env_path).touch(exist_ok=True)
        set_key(env_path, "AEM_ACCESS_TOKEN", access_token, quote_mode="never")
        echo_success(f"Wrote AEM_ACCESS_TOKEN to {env_path}")
    else:
        echo_warning("Token not saved; pass --write-env .env to store it")

    if config.auth_type != AuthType.TOKEN:
        echo_warning(
            f"AEM_AUTH_TYPE is '{config.auth_type.value}'; set it to 'token' "
            "to use AEM_ACCESS_TOKEN"
        )


def _ims_error_code(body: str) -> str | None:
    try:
        parsed = json.loads(body)
    except ValueError:
        return None
    return parsed.get("error") if isinstance(parsed, dict) else None


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
