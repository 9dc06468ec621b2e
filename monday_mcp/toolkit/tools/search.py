"""Search for boards, documents and folders.

Boards and documents go through the cross-entity search endpoint of the
``dev`` API version first. When that is unavailable the listing queries
are used instead and names are matched in memory.
"""

import json
import logging
from enum import StrEnum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field
from claude_agent_sdk import tool

from monday_mcp.toolkit.http import (
    DEV_API_VERSION,
    SEARCH_TIMEOUT,
    MondayAPIClient,
    get_http_client,
    raise_if_search_timeout,
    rethrow_with_context,
)
from monday_mcp.toolkit.tools.common import _safe_call, _validate

logger = logging.getLogger("monday_mcp.toolkit.tools.search")

SEARCH_LIMIT = 100
LOAD_INTO_MEMORY_LIMIT = 10000

NOT_FILTERED_DISCLAIMER = "[IMPORTANT]Items were not filtered. Please perform the filtering."

CROSS_ENTITY_BOARD_RESULT_TYPENAME = "CrossEntityBoardResult"
CROSS_ENTITY_DOC_RESULT_TYPENAME = "CrossEntityDocResult"

BOARD_PREFIX = "board-"
DOCUMENT_PREFIX = "doc-"
FOLDER_PREFIX = "folder-"

SEARCH_DEV_QUERY = """
query SearchDev($query: String!, $size: Int!, $entityTypes: [SearchableEntity!], $workspaceIds: [ID!]) {
  search(query: $query, size: $size, entity_types: $entityTypes, workspace_ids: $workspaceIds) {
    __typename
    ... on CrossEntityBoardResult {
      entity_type
      data {
        id
        name
        url
      }
    }
    ... on CrossEntityDocResult {
      entity_type
      data {
        id
        name
      }
    }
  }
}
"""

GET_BOARDS_QUERY = """
query GetBoards($page: Int!, $limit: Int!, $workspace_ids: [ID]) {
  boards(page: $page, limit: $limit, workspace_ids: $workspace_ids) {
    id
    name
    url
  }
}
"""

GET_DOCS_QUERY = """
query GetDocs($page: Int!, $limit: Int!, $workspace_ids: [ID]) {
  docs(page: $page, limit: $limit, workspace_ids: $workspace_ids) {
    id
    name
    url
  }
}
"""

GET_FOLDERS_QUERY = """
query GetFolders($page: Int!, $limit: Int!, $workspace_ids: [ID]) {
  folders(page: $page, limit: $limit, workspace_ids: $workspace_ids) {
    id
    name
  }
}
"""


class GlobalSearchType(StrEnum):
    BOARD = "BOARD"
    DOCUMENTS = "DOCUMENTS"
    FOLDERS = "FOLDERS"


# Folders have no cross-entity search entity
SEARCHABLE_ENTITIES = {
    GlobalSearchType.BOARD: "board",
    GlobalSearchType.DOCUMENTS: "document",
}


class SearchInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    search_term: str | None = Field(
        None, alias="searchTerm", description="The search term to use for the search.",
    )
    search_type: GlobalSearchType = Field(
        ..., alias="searchType", description="The type of search to perform.",
    )
    limit: int = Field(
        SEARCH_LIMIT,
        le=SEARCH_LIMIT,
        description=f"The number of items to get. The max and default value is {SEARCH_LIMIT}.",
    )
    page: int = Field(1, description="The page number to get. The default value is 1.")
    workspace_ids: list[int] | None = Field(
        None,
        alias="workspaceIds",
        description=(
            "The ids of the workspaces to search in. [IMPORTANT] Only pass this param if user "
            "explicitly asked to search within specific workspaces."
        ),
    )


def normalize_string(value: str) -> str:
    """Lowercase ``value`` and keep only its letters and digits."""
    return "".join(char for char in value.lower() if char.isalnum())


def _workspace_ids(params: SearchInput) -> list[str] | None:
    if params.workspace_ids is None:
        return None
    return [str(workspace_id) for workspace_id in params.workspace_ids]


# --- Cross-entity Search ---


async def search_with_dev_endpoint(client: MondayAPIClient, params: SearchInput) -> list[dict[str, Any]]:
    entity_type = SEARCHABLE_ENTITIES.get(params.search_type)
    if entity_type is None:
        raise ValueError(f"Unsupported search type for dev endpoint: {params.search_type}")
    if params.page > 1:
        raise ValueError("Pagination is not supported for search, increase the limit parameter instead")

    response = await client.request(
        SEARCH_DEV_QUERY,
        {
            "query": params.search_term,
            "size": params.limit,
            "entityTypes": [entity_type],
            "workspaceIds": _workspace_ids(params),
        },
        operation="SearchDev",
        version_override=DEV_API_VERSION,
        timeout=SEARCH_TIMEOUT,
    )

    results: list[dict[str, Any]] = []
    for result in response.get("search") or []:
        if not result:
            continue
        data = result.get("data") or {}
        if result.get("__typename") == CROSS_ENTITY_BOARD_RESULT_TYPENAME:
            results.append({"id": BOARD_PREFIX + str(data.get("id")), "title": data.get("name"), "url": data.get("url")})
        elif result.get("__typename") == CROSS_ENTITY_DOC_RESULT_TYPENAME:
            results.append({"id": DOCUMENT_PREFIX + str(data.get("id")), "title": data.get("name")})
    return results


# --- Listing Fallback ---


def paging_params(params: SearchInput) -> dict[str, int]:
    """With a term, load everything once and page in memory after filtering."""
    if params.search_term:
        return {"page": 1, "limit": LOAD_INTO_MEMORY_LIMIT}
    return {"page": params.page, "limit": params.limit}


def search_and_paginate(
    params: SearchInput,
    entries: list[dict[str, Any]],
    name_of: Callable[[dict[str, Any]], str],
) -> tuple[list[dict[str, Any]], bool]:
    """Filter ``entries`` by name and slice one page.

    Returns ``(entries, was_filtered)``. Small result sets are returned as is
    and left for the caller to filter.
    """
    if len(entries) <= SEARCH_LIMIT:
        return entries, False

    term = normalize_string(params.search_term or "")
    start = (params.page - 1) * params.limit
    matches = [entry for entry in entries if term in normalize_string(name_of(entry) or "")]
    return matches[start:start + params.limit], True


# (query, response key, id prefix, operation, include url)
LISTING_QUERIES = {
    GlobalSearchType.BOARD: (GET_BOARDS_QUERY, "boards", BOARD_PREFIX, "GetBoards", True),
    GlobalSearchType.DOCUMENTS: (GET_DOCS_QUERY, "docs", DOCUMENT_PREFIX, "GetDocs", True),
    GlobalSearchType.FOLDERS: (GET_FOLDERS_QUERY, "folders", FOLDER_PREFIX, "GetFolders", False),
}


async def search_listing(client: MondayAPIClient, params: SearchInput) -> tuple[list[dict[str, Any]], bool]:
    query, key, prefix, operation, with_url = LISTING_QUERIES[params.search_type]
    variables = {**paging_params(params), "workspace_ids": _workspace_ids(params)}

    try:
        response = await client.request(query, variables, operation=operation)
    except Exception as exc:
        rethrow_with_context(exc, f"search {key}")

    entries = [entry for entry in response.get(key) or [] if entry]
    matches, was_filtered = search_and_paginate(params, entries, lambda entry: entry.get("name"))

    results = []
    for entry in matches:
        result = {"id": prefix + str(entry.get("id")), "title": entry.get("name")}
        if with_url and entry.get("url"):
            result["url"] = entry["url"]
        results.append(result)
    return results, was_filtered


# --- Tool ---


async def run_search(client: MondayAPIClient, params: SearchInput) -> str:
    if params.search_type != GlobalSearchType.FOLDERS and params.search_term:
        try:
            results = await search_with_dev_endpoint(client, params)
            return json.dumps({"results": results}, indent=2, ensure_ascii=False)
        except Exception as exc:
            raise_if_search_timeout(exc, operation="SearchDev")
            logger.info(
                "Cross-entity search unavailable, falling back to listing: %s", exc,
                extra={"operation": "SearchDev"},
            )

    results, was_filtered = await search_listing(client, params)
    response: dict[str, Any] = {}
    if params.search_term and not was_filtered:
        response["disclaimer"] = NOT_FILTERED_DISCLAIMER
    response["results"] = results
    return json.dumps(response, indent=2, ensure_ascii=False)


SEARCH_DESCRIPTION = """Search within monday.com platform. Can search for boards, documents, folders.
For users and teams, use list_users_and_teams tool.
For workspace contents, use workspace_info tool.
For items, use get_board_items_page tool.
IMPORTANT: ids returned by this tool are prefixed with the type of the object (e.g doc-123, board-456, folder-789). When passing the ids to other tools, you need to remove the prefix and just pass the number."""


@tool("search", SEARCH_DESCRIPTION, SearchInput.model_json_schema())
async def search(args: dict[str, Any]) -> dict[str, Any]:
    validated, err = _validate(SearchInput, args)
    if err:
        return err
    return await _safe_call(
        run_search(get_http_client(), validated),
        fallback_hint="Try: Use a different searchTerm or searchType.",
    )
