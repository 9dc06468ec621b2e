"""Fixtures for the monday.com toolkit test suite.

Provides mock GraphQL transports, a mocked API client patched into the
tool modules, environment isolation and audit logger cleanup.
"""

import importlib
import json
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from monday_mcp.toolkit.hooks import reset_audit_logger
from monday_mcp.toolkit.http import MondayAPIClient

API_URL = "http://test-monday/v2"

TOOL_MODULES = (
    "board_insights",
    "board_items_page",
    "docs",
    "search",
    "sprints",
    "users_and_teams",
    "workspace_info",
)


# --- Mock HTTP Transport ---


def graphql_handler(
    status: int = 200,
    body: dict[str, Any] | None = None,
    requests: list[httpx.Request] | None = None,
):
    """Create an httpx transport handler returning a canned GraphQL response.

    When ``requests`` is given every request is appended to it.
    """
    payload = body if body is not None else {"data": {}}

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(status_code=status, json=payload, request=request)

    return handler


def client_with_handler(handler) -> MondayAPIClient:
    """MondayAPIClient wired to a mock transport (no real network)."""
    client = MondayAPIClient(token="test-token", api_version="2025-10", api_url=API_URL)
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


def request_body(request: httpx.Request) -> dict[str, Any]:
    return json.loads(request.content)


@pytest.fixture
def mock_monday_client():
    """Mock API client; tests set ``request.return_value`` or ``side_effect``."""
    mock = AsyncMock()
    mock.request = AsyncMock(return_value={})
    return mock


@pytest.fixture
def patch_http_client(monkeypatch, mock_monday_client):
    """Monkeypatch get_http_client in every tool module to return the mock.

    Modules are looked up by import because the tools package re-exports
    tool objects under the same names as some of its modules.
    """
    for module in TOOL_MODULES:
        monkeypatch.setattr(
            importlib.import_module(f"monday_mcp.toolkit.tools.{module}"),
            "get_http_client",
            lambda: mock_monday_client,
        )
    return mock_monday_client


def tool_text(result: dict[str, Any]) -> str:
    """Text of the first content block of a tool result."""
    return result["content"][0]["text"]


# --- Audit Log Path ---


@pytest.fixture
def audit_log_path(tmp_path, monkeypatch):
    """Temporary audit log file the hooks write to."""
    path = tmp_path / "test-audit.jsonl"
    monkeypatch.setattr("monday_mcp.toolkit.hooks.AUDIT_LOG_PATH", str(path))
    return path


# --- Environment Isolation ---


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove toolkit env vars so tests don't leak state."""
    for var in (
        "MONDAY_API_TOKEN",
        "MONDAY_API_VERSION",
        "MONDAY_API_URL",
        "MONDAY_READ_ONLY",
        "MONDAY_ENABLED_TOOLS",
        "MONDAY_DISABLED_TOOLS",
        "MONDAY_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


# --- Hook State Cleanup ---


@pytest.fixture(autouse=True)
def reset_hooks():
    """Close the audit log handler between tests."""
    reset_audit_logger()
    yield
    reset_audit_logger()
