#!/usr/bin/env python3
"""CLI entry point for the monday.com MCP server.

Usage:
    # Token from the environment
    MONDAY_API_TOKEN=... monday-mcp

    # Explicit token and API version
    monday-mcp --token <token> --api-version 2025-10

    # Only read tools
    monday-mcp --read-only

    # Expose a subset of tools
    monday-mcp --enable-tools search,workspace_info
"""

import argparse
import asyncio

from pydantic import ValidationError

from monday_mcp.mcp_server import serve
from monday_mcp.toolkit.config import ToolkitConfig, parse_tool_list
from monday_mcp.toolkit.logging import configure_toolkit_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser. Extracted for testability."""
    parser = argparse.ArgumentParser(
        description="monday.com MCP server: exposes monday.com boards, docs and sprints as MCP tools"
    )
    parser.add_argument(
        "--token",
        "-t",
        help="monday.com API token (default: MONDAY_API_TOKEN)",
    )
    parser.add_argument(
        "--api-version",
        help="monday.com API version (default: MONDAY_API_VERSION or 2025-10)",
    )
    parser.add_argument(
        "--read-only",
        "-ro",
        action="store_true",
        default=None,
        help="Expose only tools that do not modify data",
    )
    parser.add_argument(
        "--enable-tools",
        help="Comma-separated list of tools to expose (wins over --disable-tools)",
    )
    parser.add_argument(
        "--disable-tools",
        help="Comma-separated list of tools to hide",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Debug logging in plain text",
    )
    return parser


def config_from_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> ToolkitConfig:
    """Merge parsed flags over the environment. A missing token is a parser error."""
    try:
        return ToolkitConfig.from_env(
            api_token=args.token,
            api_version=args.api_version,
            read_only=args.read_only,
            include_tools=parse_tool_list(args.enable_tools),
            exclude_tools=parse_tool_list(args.disable_tools),
        )
    except ValidationError:
        parser.error("monday.com API token is required: pass --token or set MONDAY_API_TOKEN")


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    config = config_from_args(parser, args)

    # Configure logging
    if args.verbose:
        configure_toolkit_logging(level="DEBUG", json_output=False)
    else:
        configure_toolkit_logging(level=config.log_level, json_output=config.json_logs)

    asyncio.run(serve(config))


if __name__ == "__main__":
    main()
