"""Tests for MondayAPIClient: request shape, error mapping and search timeouts."""

import httpx
import pytest

import monday_mcp.toolkit.http as http_mod
from conftest import API_URL, client_with_handler, graphql_handler, request_body
from monday_mcp.toolkit.config import ToolkitConfig
from monday_mcp.toolkit.http import (
    SEARCH_TIMEOUT_MESSAGE,
    MondayAPIClient,
    MondayAPIError,
    MondayTimeoutError,
    SearchTimeoutError,
    configure_http_client,
    get_http_client,
    raise_if_search_timeout,
    rethrow_with_context,
)


# --- Requests ---


async def test_request_returns_data():
    requests: list[httpx.Request] = []
    client = client_with_handler(graphql_handler(body={"data": {"me": {"id": "1"}}}, requests=requests))
    result = await client.request("query { me { id } }", {"a": 1}, operation="getMe")
    assert result == {"me": {"id": "1"}}

    sent = requests[0]
    assert str(sent.url) == API_URL
    assert request_body(sent) == {"query": "query { me { id } }", "variables": {"a": 1}}


async def test_request_without_variables_sends_empty_object():
    requests: list[httpx.Request] = []
    client = client_with_handler(graphql_handler(requests=requests))
    await client.request("query { me { id } }")
    assert request_body(requests[0])["variables"] == {}


async def test_missing_data_returns_empty_dict():
    client = client_with_handler(graphql_handler(body={"data": None}))
    assert await client.request("query { me { id } }") == {}


async def test_version_override_header():
    requests: list[httpx.Request] = []
    client = client_with_handler(graphql_handler(requests=requests))
    await client.request("query { search }", version_override="dev")
    assert requests[0].headers["API-Version"] == "dev"


def test_default_headers():
    headers = http_mod._build_headers("secret", "2025-10")
    assert headers["Authorization"] == "secret"
    assert headers["API-Version"] == "2025-10"
    assert headers["User-Agent"] == "monday-api-mcp"


def test_headers_without_token():
    assert "Authorization" not in http_mod._build_headers("", "2025-10")


# --- Errors ---


async def test_graphql_errors_are_joined():
    body = {"data": None, "errors": [{"message": "First"}, {"message": "Second"}]}
    client = client_with_handler(graphql_handler(body=body))
    with pytest.raises(MondayAPIError) as exc_info:
        await client.request("query { boards { id } }", operation="getBoards")
    assert str(exc_info.value) == "First, Second"
    assert exc_info.value.errors == ["First", "Second"]
    assert exc_info.value.operation == "getBoards"


async def test_http_error_status_and_messages():
    client = client_with_handler(graphql_handler(status=401, body={"errors": [{"message": "Not Authenticated"}]}))
    with pytest.raises(MondayAPIError) as exc_info:
        await client.request("query { me { id } }", operation="getMe")
    assert exc_info.value.status_code == 401
    assert str(exc_info.value) == "Not Authenticated"


async def test_http_error_without_json_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway", request=request)

    client = client_with_handler(handler)
    with pytest.raises(MondayAPIError) as exc_info:
        await client.request("query { me { id } }", operation="getMe")
    assert exc_info.value.status_code == 502
    assert str(exc_info.value) == "getMe failed with 502"
    assert exc_info.value.body == "Bad Gateway"


async def test_timeout_raises_timeout_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    client = client_with_handler(handler)
    with pytest.raises(MondayTimeoutError, match="SearchDev timed out"):
        await client.request("query { search }", operation="SearchDev", timeout=10.0)


async def test_connect_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = client_with_handler(handler)
    with pytest.raises(MondayAPIError, match="Cannot connect to monday.com API"):
        await client.request("query { me { id } }")


@pytest.mark.parametrize(
    "status,fragment",
    [
        (401, "Verify the API token"),
        (403, "Verify the API token"),
        (429, "rate limited"),
        (503, "server error"),
    ],
)
def test_agent_message_by_status(status, fragment):
    error = MondayAPIError("x", operation="getBoards", status_code=status)
    assert fragment in error.agent_message()


def test_agent_message_default():
    assert MondayAPIError("Board not found").agent_message() == "Error: Board not found"


# --- Helpers ---


def test_rethrow_with_context_uses_graphql_errors():
    with pytest.raises(MondayAPIError, match="Failed to search boards: A, B"):
        rethrow_with_context(MondayAPIError("A, B", errors=["A", "B"]), "search boards")


def test_rethrow_with_context_plain_exception():
    with pytest.raises(MondayAPIError, match="Failed to create item: boom"):
        rethrow_with_context(RuntimeError("boom"), "create item")


def test_rethrow_with_context_empty_message():
    with pytest.raises(MondayAPIError, match="Failed to create item: Unknown error"):
        rethrow_with_context(RuntimeError(), "create item")


def test_search_timeout_converted():
    with pytest.raises(SearchTimeoutError) as exc_info:
        raise_if_search_timeout(MondayTimeoutError("timed out"), operation="SearchDev")
    assert str(exc_info.value) == SEARCH_TIMEOUT_MESSAGE


def test_httpx_timeout_converted():
    with pytest.raises(SearchTimeoutError):
        raise_if_search_timeout(httpx.ReadTimeout("slow"))


def test_other_errors_pass_through():
    assert raise_if_search_timeout(MondayAPIError("nope")) is None
    assert raise_if_search_timeout(ValueError("nope")) is None


# --- Singleton ---


async def test_close_releases_client():
    client = client_with_handler(graphql_handler())
    await client.close()
    assert client._client is None


def test_configure_http_client_replaces_singleton(monkeypatch):
    monkeypatch.setattr(http_mod, "_default_client", None)
    config = ToolkitConfig(api_token="abc", api_version="2024-10", api_url=API_URL)
    client = configure_http_client(config)
    assert get_http_client() is client
    assert client.api_version == "2024-10"


def test_get_http_client_is_singleton(monkeypatch):
    monkeypatch.setattr(http_mod, "_default_client", None)
    assert isinstance(get_http_client(), MondayAPIClient)
    assert get_http_client() is get_http_client()
