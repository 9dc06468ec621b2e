"""Pooled GraphQL client for the monday.com API.

Provides connection pooling, per-call API version and timeout overrides,
and structured error handling. All tools use this client instead of
creating per-request httpx sessions.

Calls are attempted exactly once: a failed request is reported to the
caller immediately.
"""

import logging
import os
from typing import Any

import httpx

logger = logging.getLogger("monday_mcp.toolkit.http")

MONDAY_API_URL = os.getenv("MONDAY_API_URL", "https://api.monday.com/v2")
MONDAY_API_TOKEN = os.getenv("MONDAY_API_TOKEN", "")
MONDAY_API_VERSION = os.getenv("MONDAY_API_VERSION", "2025-10")

USER_AGENT = "monday-api-mcp"
DEV_API_VERSION = "dev"
SEARCH_TIMEOUT = 10.0  # seconds

DEFAULT_TIMEOUT = httpx.Timeout(connect=5.0, read=30.0, write=10.0, pool=5.0)

SEARCH_TIMEOUT_MESSAGE = "Search has timed out, try providing alternative search term"


class MondayAPIError(Exception):
    """Structured error from the monday.com API.

    Carries the GraphQL operation, HTTP status and the flattened GraphQL
    error messages so tool error output can guide the agent toward a fix.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        status_code: int = 0,
        errors: list[str] | None = None,
        body: str = "",
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        self.errors = errors or []
        self.body = body
        super().__init__(message)

    def agent_message(self) -> str:
        """Return an error message formatted for the agent to act on."""
        target = self.operation or "monday.com API"
        if self.status_code in (401, 403):
            return (
                f"Error: {target} was rejected ({self.status_code}). "
                "Try: Verify the API token and that the user can access this resource."
            )
        if self.status_code == 429:
            return (
                f"Error: {target} was rate limited (429). "
                "Try: Wait a moment before calling the tool again."
            )
        if self.status_code >= 500:
            return (
                f"Error: monday.com API server error on {target} ({self.status_code}). "
                "Try: Wait a moment and retry."
            )
        return f"Error: {self}"


class MondayTimeoutError(MondayAPIError):
    """Raised when a request exceeds its timeout."""


class SearchTimeoutError(MondayAPIError):
    """Raised when a search sub-call times out and must not fall back."""

    def __init__(self, operation: str = "") -> None:
        super().__init__(SEARCH_TIMEOUT_MESSAGE, operation=operation)


def _graphql_messages(errors: Any) -> list[str]:
    if not isinstance(errors, list):
        return []
    messages = []
    for error in errors:
        if isinstance(error, dict):
            message = error.get("message")
            if message:
                messages.append(str(message))
        elif error:
            messages.append(str(error))
    return messages


def rethrow_with_context(exc: BaseException, operation: str) -> None:
    """Re-raise ``exc`` as a MondayAPIError prefixed with the failed operation."""
    errors = getattr(exc, "errors", None) or []
    if errors:
        details = ", ".join(errors)
    else:
        details = str(exc) or "Unknown error"
    raise MondayAPIError(
        f"Failed to {operation}: {details}",
        operation=getattr(exc, "operation", ""),
        status_code=getattr(exc, "status_code", 0),
        errors=list(errors),
    ) from exc


def raise_if_search_timeout(exc: BaseException, operation: str = "") -> None:
    """Convert a timeout into SearchTimeoutError; return for anything else."""
    if isinstance(exc, SearchTimeoutError):
        raise exc
    if isinstance(exc, (MondayTimeoutError, httpx.TimeoutException)):
        raise SearchTimeoutError(operation) from exc


def _build_headers(token: str, api_version: str) -> dict[str, str]:
    """Build HTTP headers for monday.com API requests."""
    headers: dict[str, str] = {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        "API-Version": api_version,
    }
    if token:
        headers["Authorization"] = token
    return headers


class MondayAPIClient:
    """Pooled GraphQL client for the monday.com API.

    Features:
    - Connection pooling (single httpx.AsyncClient reused across calls)
    - Per-call API version override (the search endpoints need ``dev``)
    - Per-call timeout override
    - GraphQL ``errors`` arrays raised as MondayAPIError with joined messages
    """

    def __init__(
        self,
        token: str = MONDAY_API_TOKEN,
        api_version: str = MONDAY_API_VERSION,
        api_url: str = MONDAY_API_URL,
    ) -> None:
        self._token = token
        self._api_version = api_version
        self._api_url = api_url
        self._client: httpx.AsyncClient | None = None

    @property
    def api_version(self) -> str:
        return self._api_version

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=_build_headers(self._token, self._api_version),
                timeout=DEFAULT_TIMEOUT,
            )
        return self._client

    async def request(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        *,
        operation: str = "",
        version_override: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Execute a GraphQL query or mutation and return its ``data`` object."""
        payload: dict[str, Any] = {"query": query, "variables": variables or {}}
        headers = {"API-Version": version_override} if version_override else None
        request_timeout: Any = timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT

        try:
            client = await self._get_client()
            resp = await client.post(
                self._api_url, json=payload, headers=headers, timeout=request_timeout,
            )
            resp.raise_for_status()
            body = resp.json()

        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            text = exc.response.text[:500]
            try:
                messages = _graphql_messages(exc.response.json().get("errors"))
            except ValueError:
                messages = []
            message = ", ".join(messages) or f"{operation or 'request'} failed with {status}"
            raise MondayAPIError(
                message,
                operation=operation,
                status_code=status,
                errors=messages,
                body=text,
            ) from exc

        except httpx.TimeoutException as exc:
            logger.warning(
                "Timeout on %s", operation or "request",
                extra={"operation": operation},
            )
            raise MondayTimeoutError(
                f"{operation or 'Request'} timed out",
                operation=operation,
                body=str(exc),
            ) from exc

        except httpx.ConnectError as exc:
            raise MondayAPIError(
                f"Cannot connect to monday.com API at {self._api_url}",
                operation=operation,
                status_code=0,
                body=str(exc),
            ) from exc

        messages = _graphql_messages(body.get("errors"))
        if messages:
            raise MondayAPIError(
                ", ".join(messages),
                operation=operation,
                status_code=resp.status_code,
                errors=messages,
            )
        return body.get("data") or {}

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


# Module-level singleton: tools import and reuse this.
_default_client: MondayAPIClient | None = None


def get_http_client() -> MondayAPIClient:
    """Get or create the module-level GraphQL client singleton."""
    global _default_client
    if _default_client is None:
        _default_client = MondayAPIClient()
    return _default_client


def configure_http_client(config: Any) -> MondayAPIClient:
    """Replace the module-level client with one built from a ToolkitConfig."""
    global _default_client
    _default_client = MondayAPIClient(
        token=config.api_token,
        api_version=config.api_version,
        api_url=config.api_url,
    )
    return _default_client


async def close_http_client() -> None:
    """Close the module-level client. Call during shutdown."""
    global _default_client
    if _default_client is not None:
        await _default_client.close()
        _default_client = None
