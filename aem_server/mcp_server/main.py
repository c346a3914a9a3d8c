"""Main MCP server exposing AEM content operations as tools."""

import asyncio
import logging
from typing import Any

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from aem_server.core.logging import setup_logging
from aem_server.mcp_server.auth import AEMSession
from aem_server.mcp_server.client import AEMClient
from aem_server.mcp_server.config import Config
from aem_server.mcp_server.dispatcher import ToolDispatcher
from aem_server.mcp_server.tools import OPERATIONS, OperationSpec

logger = logging.getLogger(__name__)


def tool_definition(spec: OperationSpec) -> types.Tool:
    """Describe an operation to MCP clients."""
    schema = spec.arguments.model_json_schema()
    schema.pop("title", None)
    schema.pop("description", None)
    schema.setdefault("properties", {})
    return types.Tool(name=spec.name, description=spec.description, inputSchema=schema)


def create_server(config: Config, dispatcher: ToolDispatcher) -> Server:
    """Build the MCP server and register tool handlers."""
    server = Server(config.mcp_server_name)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        """List available MCP tools."""
        return [tool_definition(spec) for spec in dispatcher.operations.values()]

    # Arguments are validated by the dispatcher so violations come back
    # in the same error envelope as every other failure
    @server.call_tool(validate_input=False)
    async def handle_call_tool(
        name: str, arguments: dict[str, Any] | None
    ) -> types.CallToolResult:
        """Handle MCP tool calls."""
        result = await dispatcher.dispatch(name, arguments)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=result.content)],
            isError=result.is_error,
        )

    return server


def build_dispatcher(config: Config) -> ToolDispatcher:
    session = AEMSession(config)
    return ToolDispatcher(AEMClient(session), OPERATIONS)


async def main(config: Config | None = None):
    """Main entry point for the MCP server."""
    config = config or Config()
    setup_logging(config.log_level, config.log_file)

    if config.base_url:
        logger.info(
            f"Starting MCP server for AEM at {config.base_url} "
            f"(auth: {config.auth_type.value})"
        )
    else:
        logger.warning(
            "AEM_BASE_URL is not set - every tool call will fail until it is configured"
        )

    dispatcher = build_dispatcher(config)
    server = create_server(config, dispatcher)

    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            InitializationOptions(
                server_name=config.mcp_server_name,
                server_version=config.mcp_server_version,
                capabilities=server.get_capabilities(
                    notification_options=NotificationOptions(),
                    experimental_capabilities={},
                ),
            ),
        )


def cli_main():
    """Synchronous entry point for script generation."""
    asyncio.run(main())


if __name__ == "__main__":
    cli_main()
