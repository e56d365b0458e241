"""MCP stdio server exposing the tool gateway."""

from __future__ import annotations

import logging
from typing import Any

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from thread_resolver import __version__
from thread_resolver.config import Settings
from thread_resolver.gateway import ToolGateway
from thread_resolver.github_client import build_graphql_client
from thread_resolver.schema import ToolEnvelope

logger = logging.getLogger(__name__)

SERVER_NAME = "github-thread-resolver"


def build_mcp_tools(gateway: ToolGateway) -> list[types.Tool]:
    """Describe the gateway catalog as MCP tool definitions."""
    return [
        types.Tool(
            name=descriptor.name,
            description=descriptor.description,
            inputSchema=descriptor.input_schema,
        )
        for descriptor in gateway.list_tools()
    ]


def to_mcp_result(envelope: ToolEnvelope) -> types.CallToolResult:
    """Convert a gateway envelope into the MCP call result."""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=block.text) for block in envelope.content],
        isError=envelope.is_error,
    )


def create_server(gateway: ToolGateway) -> Server:
    """Build the low-level MCP server bound to one gateway."""
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return build_mcp_tools(gateway)

    # Argument validation belongs to the gateway, so the SDK's JSON Schema check is off.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        return to_mcp_result(await gateway.call_tool(name, arguments))

    return server


async def serve_stdio(settings: Settings) -> None:
    """Run the server on stdin/stdout until the client disconnects."""
    async with build_graphql_client(settings) as client:
        gateway = ToolGateway(client)
        server = create_server(gateway)
        try:
            async with stdio_server() as (read_stream, write_stream):
                gateway.mark_ready()
                logger.info("%s %s running on stdio", SERVER_NAME, __version__)
                await server.run(
                    read_stream, write_stream, server.create_initialization_options()
                )
        except Exception as error:
            gateway.mark_failed(f"stdio transport error: {error}")
            raise
