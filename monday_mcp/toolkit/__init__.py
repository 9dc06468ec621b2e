"""monday.com toolkit - GraphQL-backed monday.com tools built on the Claude Agent SDK."""

from monday_mcp.toolkit.config import ToolkitConfig
from monday_mcp.toolkit.hooks import monday_hooks
from monday_mcp.toolkit.http import (
    MondayAPIClient,
    MondayAPIError,
    MondayTimeoutError,
    SearchTimeoutError,
)
from monday_mcp.toolkit.tools import (
    ALL_TOOLS,
    READ_TOOLS,
    TOOL_NAMES,
    WRITE_TOOLS,
    create_monday_tools_server,
    select_tools,
)

__all__ = [
    "ToolkitConfig",
    "MondayAPIClient",
    "MondayAPIError",
    "MondayTimeoutError",
    "SearchTimeoutError",
    "create_monday_tools_server",
    "select_tools",
    "monday_hooks",
    "ALL_TOOLS",
    "TOOL_NAMES",
    "READ_TOOLS",
    "WRITE_TOOLS",
]
