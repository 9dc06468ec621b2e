"""Tests for the tool registry: names, annotations, selection and SDK server assembly."""

from unittest.mock import MagicMock

import monday_mcp.toolkit.tools as tools_mod
from monday_mcp.toolkit.config import ToolkitConfig
from monday_mcp.toolkit.tools import (
    ALL_TOOLS,
    READ_TOOLS,
    SERVER_NAME,
    TOOL_ANNOTATIONS,
    TOOL_NAMES,
    WRITE_TOOLS,
    create_monday_tools_server,
    select_tools,
)


def _names(selected):
    return [sdk_tool.name for sdk_tool in selected]


# --- Registry ---


def test_tool_names_match_registered_tools():
    assert _names(ALL_TOOLS) == TOOL_NAMES


def test_read_and_write_partition():
    assert READ_TOOLS | WRITE_TOOLS == set(TOOL_NAMES)
    assert not READ_TOOLS & WRITE_TOOLS
    assert WRITE_TOOLS == {"create_doc"}


def test_every_tool_annotated():
    assert set(TOOL_ANNOTATIONS) == set(TOOL_NAMES)
    assert TOOL_ANNOTATIONS["create_doc"]["readOnlyHint"] is False
    assert TOOL_ANNOTATIONS["create_doc"]["idempotentHint"] is False
    assert TOOL_ANNOTATIONS["search"]["readOnlyHint"] is True
    assert all(not annotation["destructiveHint"] for annotation in TOOL_ANNOTATIONS.values())


def test_every_tool_has_schema_and_description():
    for sdk_tool in ALL_TOOLS:
        assert sdk_tool.description
        assert sdk_tool.input_schema["type"] == "object"


# --- Selection ---


def test_select_all_by_default():
    assert _names(select_tools()) == TOOL_NAMES


def test_read_only_drops_write_tools():
    assert "create_doc" not in _names(select_tools(read_only=True))
    assert len(select_tools(read_only=True)) == len(TOOL_NAMES) - 1


def test_include_list():
    assert _names(select_tools(include=["search", "workspace_info"])) == ["workspace_info", "search"]


def test_exclude_list():
    names = _names(select_tools(exclude=["search"]))
    assert "search" not in names
    assert len(names) == len(TOOL_NAMES) - 1


def test_include_wins_over_exclude():
    assert _names(select_tools(include=["search"], exclude=["search"])) == ["search"]


def test_read_only_applies_to_include():
    assert select_tools(read_only=True, include=["create_doc"]) == []


def test_unknown_names_warn(monkeypatch):
    mock_logger = MagicMock()
    monkeypatch.setattr(tools_mod, "logger", mock_logger)
    select_tools(include=["search", "create_item"])
    mock_logger.warning.assert_called_once_with("Unknown tool name in selection: %s", "create_item")


# --- SDK Server ---


def test_create_server_with_all_tools(monkeypatch):
    factory = MagicMock(return_value={"type": "sdk"})
    monkeypatch.setattr(tools_mod, "create_sdk_mcp_server", factory)
    assert create_monday_tools_server() == {"type": "sdk"}
    kwargs = factory.call_args.kwargs
    assert kwargs["name"] == SERVER_NAME
    assert _names(kwargs["tools"]) == TOOL_NAMES


def test_create_server_respects_config(monkeypatch):
    factory = MagicMock()
    monkeypatch.setattr(tools_mod, "create_sdk_mcp_server", factory)
    config = ToolkitConfig(api_token="tok", read_only=True, exclude_tools=["search"])
    create_monday_tools_server(config)
    names = _names(factory.call_args.kwargs["tools"])
    assert "create_doc" not in names
    assert "search" not in names
