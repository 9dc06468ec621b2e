"""Paged board items with optional column values and sub-items.

A free-text ``searchTerm`` is first resolved to item ids through the
smart-search endpoint; when that is unavailable the term becomes a
``name contains`` filter instead.
"""

import json
import logging
from collections.abc import Callable
from typing import Any

from pydantic import Field
from claude_agent_sdk import tool

from monday_mcp.toolkit.http import (
    DEV_API_VERSION,
    SEARCH_TIMEOUT,
    MondayAPIClient,
    get_http_client,
    raise_if_search_timeout,
)
from monday_mcp.toolkit.tools.common import (
    FILTERS_DESCRIPTION,
    ColumnType,
    FilterRule,
    ItemsQueryOperator,
    OrderByRule,
    StringifiedFallbackModel,
    _safe_call,
    _validate,
    stringified_description,
)

logger = logging.getLogger("monday_mcp.toolkit.tools.board_items_page")

DEFAULT_LIMIT = 25
MIN_LIMIT = 1
MAX_LIMIT = 500
MAX_SUB_ITEM_LIMIT = 100

COLUMN_VALUE_NOT_SUPPORTED_MESSAGE = "Column value type is not supported"
NO_SEARCH_RESULTS_MESSAGE = "No items found matching the specified searchTerm"

SEARCH_ITEMS_QUERY = """
query SearchItemsDev($searchTerm: String!, $board_ids: [ID!]) {
  search_items(board_ids: $board_ids, query: $searchTerm, size: 100) {
    results {
      data {
        id
      }
    }
  }
}
"""

BOARD_ITEMS_PAGE_QUERY = """
fragment ItemDataFragment on Item {
  id
  name
  created_at
  updated_at
  column_values(ids: $columnIds) @include(if: $includeColumns) {
    id
    type
    text
    value

    ... on FormulaValue {
      display_value
    }

    ... on BoardRelationValue {
      linked_items {
        id
        name
        board {
          id
          name
        }
      }
    }
  }
}

query GetBoardItemsPage(
  $boardId: ID!
  $limit: Int
  $cursor: String
  $includeColumns: Boolean!
  $columnIds: [String!]
  $queryParams: ItemsQuery
  $includeSubItems: Boolean!
) {
  boards(ids: [$boardId]) {
    id
    name
    items_page(limit: $limit, cursor: $cursor, query_params: $queryParams) {
      items {
        ...ItemDataFragment

        subitems @include(if: $includeSubItems) {
          ...ItemDataFragment
        }
      }
      cursor
    }
  }
}
"""


# --- Input Models ---


class ItemsFilterRule(FilterRule):
    compare_value: str | int | float | bool | list[str | int | float] = Field(
        ...,
        alias="compareValue",
        description=(
            "The value to compare the attribute to. This can be a string or index value "
            "depending on the column type."
        ),
    )


class BoardItemsPageInput(StringifiedFallbackModel):
    stringified_fields = ("filters", "orderBy")

    board_id: int = Field(..., alias="boardId", description="The id of the board to get items from")
    item_ids: list[int] | None = Field(
        None,
        alias="itemIds",
        description="The ids of the items to get. The count of items should be less than 100.",
    )
    search_term: str | None = Field(
        None,
        alias="searchTerm",
        description=(
            "The search term to use for the search.\n"
            "- Use this when: the user provides a vague, incomplete, or approximate search term "
            "(e.g., “marketing campaign”, “John’s task”, “budget-related”), "
            "and there isn’t a clear exact compare value for a specific field.\n"
            "- Do not use this when: the user specifies an exact value that maps directly to a column "
            'comparison (e.g., name contains "marketing campaign", status = "Done", priority = "High", '
            'owner = "Daniel"). In these cases, prefer structured compare filters.'
        ),
    )
    limit: int = Field(
        DEFAULT_LIMIT, ge=MIN_LIMIT, le=MAX_LIMIT, description="The number of items to get",
    )
    cursor: str | None = Field(
        None,
        description=(
            "The cursor to get the next page of items, use the nextCursor from the previous response. "
            "If the nextCursor was null, it means there are no more items to get"
        ),
    )
    include_columns: bool = Field(
        False,
        alias="includeColumns",
        description=(
            "Whether to include column values in the response.\n"
            "PERFORMANCE OPTIMIZATION: Only set this to true when you actually need the column data. "
            "Excluding columns significantly reduces token usage and improves response latency. If you "
            "only need to count items, get item IDs/names, or check if items exist, keep this false."
        ),
    )
    include_sub_items: bool = Field(
        False,
        alias="includeSubItems",
        description=(
            "Whether to include sub items in the response. PERFORMANCE OPTIMIZATION: Only set this "
            "to true when you actually need the sub items data."
        ),
    )
    sub_item_limit: int = Field(
        DEFAULT_LIMIT,
        alias="subItemLimit",
        ge=MIN_LIMIT,
        le=MAX_SUB_ITEM_LIMIT,
        description="The number of sub items to get per item. This is only used when includeSubItems is true.",
    )
    filters_stringified: str | None = Field(
        None, alias="filtersStringified", description=stringified_description("filters"),
    )
    filters: list[ItemsFilterRule] | None = Field(None, description=FILTERS_DESCRIPTION)
    filters_operator: ItemsQueryOperator = Field(
        "and", alias="filtersOperator", description="The operator to use for the filters",
    )
    column_ids: list[str] | None = Field(
        None,
        alias="columnIds",
        description=(
            "The ids of the item columns and subitem columns to get, can be used to reduce the "
            "response size when user asks for specific columns. Works only when includeColumns is "
            "true. If not provided, all columns will be returned"
        ),
    )
    order_by_stringified: str | None = Field(
        None, alias="orderByStringified", description=stringified_description("orderBy"),
    )
    order_by: list[OrderByRule] | None = Field(
        None,
        alias="orderBy",
        description="The columns to order by, will control the order of the items in the response",
    )


# --- Column Values ---


def _linked_items(cv: dict[str, Any]) -> Any:
    return cv.get("linked_items")


def _display_value(cv: dict[str, Any]) -> Any:
    return cv.get("display_value")


def _not_supported(cv: dict[str, Any]) -> Any:
    return COLUMN_VALUE_NOT_SUPPORTED_MESSAGE


def _text_or_value(cv: dict[str, Any]) -> Any:
    if cv.get("text"):
        return cv["text"]
    raw = cv.get("value")
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw or None


COLUMN_VALUE_READERS: dict[ColumnType, Callable[[dict[str, Any]], Any]] = {
    ColumnType.BOARD_RELATION: _linked_items,
    ColumnType.FORMULA: _display_value,
    # Needs the mirrored source column to render
    ColumnType.MIRROR: _not_supported,
}


def column_value_data(cv: dict[str, Any]) -> Any:
    """Normalize one column value; unmodeled column types use text, then parsed value."""
    try:
        column_type = ColumnType(cv.get("type"))
    except ValueError:
        return _text_or_value(cv)
    return COLUMN_VALUE_READERS.get(column_type, _text_or_value)(cv)


def map_item(item: dict[str, Any], params: BoardItemsPageInput) -> dict[str, Any]:
    result: dict[str, Any] = {
        "id": item.get("id"),
        "name": item.get("name"),
        "created_at": item.get("created_at"),
        "updated_at": item.get("updated_at"),
    }

    if params.include_columns and item.get("column_values"):
        result["column_values"] = {
            cv["id"]: column_value_data(cv) for cv in item["column_values"]
        }

    if params.include_sub_items and item.get("subitems"):
        result["subitems"] = [
            map_item(sub_item, params)
            for sub_item in item["subitems"][: params.sub_item_limit]
        ]

    return result


def map_result(response: dict[str, Any], params: BoardItemsPageInput) -> dict[str, Any]:
    boards = response.get("boards") or []
    board = boards[0] if boards else {}
    items_page = board.get("items_page") or {}
    items = items_page.get("items") or []
    cursor = items_page.get("cursor")

    return {
        "board": {"id": board.get("id"), "name": board.get("name")},
        "items": [map_item(item, params) for item in items],
        "pagination": {
            "has_more": bool(cursor),
            "nextCursor": cursor or None,
            "count": len(items),
        },
    }


# --- Search ---


async def item_ids_from_smart_search(client: MondayAPIClient, params: BoardItemsPageInput) -> list[int]:
    """Resolve ``searchTerm`` to item ids, narrowed to ``itemIds`` when given."""
    variables = {"board_ids": [str(params.board_id)], "searchTerm": params.search_term}
    response = await client.request(
        SEARCH_ITEMS_QUERY,
        variables,
        operation="SearchItemsDev",
        version_override=DEV_API_VERSION,
        timeout=SEARCH_TIMEOUT,
    )
    results = (response.get("search_items") or {}).get("results") or []
    found = [int(result["data"]["id"]) for result in results]
    if not found or not params.item_ids:
        return found
    allowed = set(params.item_ids)
    return [item_id for item_id in found if item_id in allowed]


def with_name_search_filter(search_term: str, filters: list[ItemsFilterRule] | None) -> list[ItemsFilterRule]:
    """Replace any caller ``name`` filter with ``name contains <searchTerm>``."""
    rules = [rule for rule in (filters or []) if rule.column_id != "name"]
    rules.append(ItemsFilterRule(column_id="name", operator="contains_text", compare_value=search_term))
    return rules


def build_query_params(params: BoardItemsPageInput) -> dict[str, Any]:
    query_params = {
        "ids": [str(item_id) for item_id in params.item_ids] if params.item_ids is not None else None,
        "operator": params.filters_operator,
        "rules": [rule.to_rule() for rule in params.filters] if params.filters is not None else None,
        "order_by": [rule.to_order_by() for rule in params.order_by] if params.order_by is not None else None,
    }
    return {k: v for k, v in query_params.items() if v is not None}


# --- Tool ---


async def run_get_board_items_page(client: MondayAPIClient, params: BoardItemsPageInput) -> str:
    # A cursor already encodes the filters of the first page
    can_include_filters = not params.cursor

    if can_include_filters and params.search_term:
        try:
            params.item_ids = await item_ids_from_smart_search(client, params)
        except Exception as exc:
            raise_if_search_timeout(exc, operation="SearchItemsDev")
            logger.info("Smart search unavailable, filtering by name: %s", exc)
            params.filters = with_name_search_filter(params.search_term, params.filters)
        else:
            if not params.item_ids:
                return NO_SEARCH_RESULTS_MESSAGE

    variables: dict[str, Any] = {
        "boardId": str(params.board_id),
        "limit": params.limit,
        "cursor": params.cursor or None,
        "includeColumns": params.include_columns,
        "columnIds": params.column_ids,
        "includeSubItems": params.include_sub_items,
    }

    if can_include_filters and any(
        value is not None for value in (params.item_ids, params.filters, params.order_by)
    ):
        variables["queryParams"] = build_query_params(params)

    response = await client.request(
        BOARD_ITEMS_PAGE_QUERY, variables, operation="GetBoardItemsPage",
    )
    return json.dumps(map_result(response, params), indent=2)


GET_BOARD_ITEMS_PAGE_DESCRIPTION = (
    "Get all items from a monday.com board with pagination support and optional column values. "
    "Returns structured JSON with item details, creation/update timestamps, and pagination info. "
    "Use the 'nextCursor' parameter from the response to get the next page of results when "
    "'has_more' is true."
    "[REQUIRED PRECONDITION]: Before using this tool, if new columns were added to the board or if "
    "you are not familiar with the board's structure (column IDs, column types, status labels, etc.), "
    "first fetch the board metadata (for example with the monday.com get_board_info tool, when the "
    "client has it). This is essential for constructing "
    "proper filters and knowing which columns are available."
)


@tool("get_board_items_page", GET_BOARD_ITEMS_PAGE_DESCRIPTION, BoardItemsPageInput.model_json_schema())
async def get_board_items_page(args: dict[str, Any]) -> dict[str, Any]:
    validated, err = _validate(BoardItemsPageInput, args)
    if err:
        return err
    return await _safe_call(
        run_get_board_items_page(get_http_client(), validated),
        fallback_hint="Try: Check the board id and column ids against the board metadata.",
    )
