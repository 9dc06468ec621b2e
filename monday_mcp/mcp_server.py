#!/usr/bin/env python3
"""monday.com MCP Server - Exposes the monday.com tools over stdio via Model Context Protocol."""

import asyncio
import logging
import time
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool, ToolAnnotations

from monday_mcp.toolkit.config import ToolkitConfig
from monday_mcp.toolkit.http import close_http_client, configure_http_client
from monday_mcp.toolkit.tools import TOOL_ANNOTATIONS, select_tools

logger = logging.getLogger("monday_mcp.mcp_server")

SERVER_NAME = "monday.com"


class ToolExecutionError(Exception):
    """Raised from call_tool so the MCP layer reports an error result."""


def tool_definitions(tools: dict[str, Any]) -> list[Tool]:
    """MCP tool listings for the selected SDK tools."""
    return [
        Tool(
            name=sdk_tool.name,
            description=sdk_tool.description,
            inputSchema=sdk_tool.input_schema,
            annotations=ToolAnnotations(**TOOL_ANNOTATIONS[sdk_tool.name]),
        )
        for sdk_tool in tools.values()
    ]


async def execute_tool(
    tools: dict[str, Any], name: str, arguments: dict[str, Any] | None,
) -> list[TextContent]:
    """Run one tool handler and convert its result to MCP text content.

    Raises ToolExecutionError for unknown tools and for error results.
    """
    sdk_tool = tools.get(name)
    if sdk_tool is None:
        raise ToolExecutionError(f"Unknown tool: {name}")

    start = time.monotonic()
    result = await sdk_tool.handler(arguments or {})
    duration_ms = round((time.monotonic() - start) * 1000, 1)
    is_error = bool(result.get("isError"))

    logger.info(
        "Tool %s finished", name,
        extra={"tool_name": name, "duration_ms": duration_ms, "is_error": is_error},
    )

    texts = [
        block.get("text", "")
        for block in result.get("content") or []
        if block.get("type") == "text"
    ]
    if is_error:
        raise ToolExecutionError("\n".join(texts) or f"{name} failed")
    return [TextContent(type="text", text=text) for text in texts]


def create_server(config: ToolkitConfig) -> Server:
    """Build an MCP server exposing the tools selected by ``config``."""
    app = Server(SERVER_NAME)
    tools = {
        sdk_tool.name: sdk_tool
        for sdk_tool in select_tools(config.read_only, config.include_tools, config.exclude_tools)
    }

    @app.list_tools()
    async def list_tools() -> list[Tool]:
        return tool_definitions(tools)

    @app.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        return await execute_tool(tools, name, arguments)

    return app


async def serve(config: ToolkitConfig) -> None:
    """Run the MCP server over stdio until the client disconnects."""
    configure_http_client(config)
    app = create_server(config)
    logger.info(
        "Starting %s MCP server", SERVER_NAME,
        extra={"api_version": config.api_version},
    )
    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        await close_http_client()


def main() -> None:
    """Run the MCP server with configuration from the environment."""
    asyncio.run(serve(ToolkitConfig.from_env()))


if __name__ == "__main__":
    main()
