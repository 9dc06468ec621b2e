"""monday.com tools exposed as Claude Agent SDK MCP tools.

Each tool module defines its pydantic input model, its GraphQL documents
and an ``@tool`` handler. This package collects them into a registry and
builds the in-process SDK MCP server.
"""

import logging
from typing import Any

from claude_agent_sdk import create_sdk_mcp_server

from monday_mcp.toolkit.tools.board_insights import board_insights
from monday_mcp.toolkit.tools.board_items_page import get_board_items_page
from monday_mcp.toolkit.tools.docs import create_doc
from monday_mcp.toolkit.tools.search import search
from monday_mcp.toolkit.tools.sprints import (
    get_monday_dev_sprints_boards,
    get_sprint_summary,
    get_sprints_metadata,
)
from monday_mcp.toolkit.tools.users_and_teams import list_users_and_teams
from monday_mcp.toolkit.tools.workspace_info import workspace_info

logger = logging.getLogger("monday_mcp.toolkit.tools")

SERVER_NAME = "monday"
SERVER_VERSION = "1.0.0"

ALL_TOOLS = [
    board_insights,
    get_board_items_page,
    get_sprint_summary,
    get_sprints_metadata,
    get_monday_dev_sprints_boards,
    create_doc,
    list_users_and_teams,
    workspace_info,
    search,
]

# Tool name registry for selection and hook use
TOOL_NAMES = [
    "board_insights",
    "get_board_items_page",
    "get_sprint_summary",
    "get_sprints_metadata",
    "get_monday_dev_sprints_boards",
    "create_doc",
    "list_users_and_teams",
    "workspace_info",
    "search",
]

# Tools that can modify data (write tools)
WRITE_TOOLS = {
    "create_doc",
}

# Tools that only read data
READ_TOOLS = set(TOOL_NAMES) - WRITE_TOOLS


def _annotations(title: str, read_only: bool = True, idempotent: bool = True) -> dict[str, Any]:
    return {
        "title": title,
        "readOnlyHint": read_only,
        "destructiveHint": False,
        "idempotentHint": idempotent,
        "openWorldHint": True,
    }


TOOL_ANNOTATIONS: dict[str, dict[str, Any]] = {
    "board_insights": _annotations("Get Board Insights"),
    "get_board_items_page": _annotations("Get Board Items Page"),
    "get_sprint_summary": _annotations("monday-dev: Get Sprint Summary"),
    "get_sprints_metadata": _annotations("monday-dev: Get Sprints Metadata"),
    "get_monday_dev_sprints_boards": _annotations("monday-dev: Get Sprints Boards"),
    "create_doc": _annotations("Create Document", read_only=False, idempotent=False),
    "list_users_and_teams": _annotations("List Users and Teams"),
    "workspace_info": _annotations("Get Workspace Information"),
    "search": _annotations("Search"),
}


def select_tools(
    read_only: bool = False,
    include: list[str] | None = None,
    exclude: list[str] | None = None,
) -> list[Any]:
    """Return the SDK tools to expose.

    ``include`` wins over ``exclude`` when both are given. Read-only mode
    drops write tools regardless of the lists.
    """
    for name in (include or []) + (exclude or []):
        if name not in TOOL_NAMES:
            logger.warning("Unknown tool name in selection: %s", name)

    selected = []
    for sdk_tool in ALL_TOOLS:
        if read_only and sdk_tool.name not in READ_TOOLS:
            continue
        if include:
            if sdk_tool.name not in include:
                continue
        elif exclude and sdk_tool.name in exclude:
            continue
        selected.append(sdk_tool)
    return selected


def create_monday_tools_server(config: Any = None) -> Any:
    """Create an in-process SDK MCP server with the monday.com tools.

    ``config`` is an optional ToolkitConfig; without one every tool is
    exposed. Returns an SDK MCP server that can be passed to
    ClaudeAgentOptions.mcp_servers.
    """
    if config is None:
        tools = list(ALL_TOOLS)
    else:
        tools = select_tools(config.read_only, config.include_tools, config.exclude_tools)
    return create_sdk_mcp_server(
        name=SERVER_NAME,
        version=SERVER_VERSION,
        tools=tools,
    )
