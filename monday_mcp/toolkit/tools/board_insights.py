"""Board insights: filtered, grouped and aggregated board data.

Turns the tool's aggregation request into the ``select``, ``group_by``
and ``query`` structures of the ``aggregate`` GraphQL endpoint, then
flattens the returned entries into plain rows.
"""

import json
import logging
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from claude_agent_sdk import tool

from monday_mcp.toolkit.http import MondayAPIClient, get_http_client
from monday_mcp.toolkit.tools.common import (
    FILTERS_DESCRIPTION,
    FilterRule,
    ItemsQueryOperator,
    OrderByRule,
    StringifiedFallbackModel,
    _safe_call,
    _validate,
    stringified_description,
)

logger = logging.getLogger("monday_mcp.toolkit.tools.board_insights")

DEFAULT_LIMIT = 1000
MAX_LIMIT = 1000

NO_RESULTS_MESSAGE = "No board insights found for the given query."
MISSING_AGGREGATIONS_MESSAGE = (
    'Input must contain either the "aggregations" field or the "aggregationsStringified" field.'
)


class AggregateSelectFunctionName(StrEnum):
    AVERAGE = "AVERAGE"
    BETWEEN = "BETWEEN"
    CASE = "CASE"
    COLOR = "COLOR"
    COUNT = "COUNT"
    COUNT_DISTINCT = "COUNT_DISTINCT"
    COUNT_ITEMS = "COUNT_ITEMS"
    COUNT_KEYS = "COUNT_KEYS"
    COUNT_SUBITEMS = "COUNT_SUBITEMS"
    DATE_TRUNC_DAY = "DATE_TRUNC_DAY"
    DATE_TRUNC_MONTH = "DATE_TRUNC_MONTH"
    DATE_TRUNC_QUARTER = "DATE_TRUNC_QUARTER"
    DATE_TRUNC_WEEK = "DATE_TRUNC_WEEK"
    DATE_TRUNC_YEAR = "DATE_TRUNC_YEAR"
    END_DATE = "END_DATE"
    FIRST = "FIRST"
    FLATTEN = "FLATTEN"
    HOUR = "HOUR"
    IS_DONE = "IS_DONE"
    LABEL = "LABEL"
    LEFT = "LEFT"
    LENGTH = "LENGTH"
    LOWER = "LOWER"
    MAX = "MAX"
    MEDIAN = "MEDIAN"
    MIN = "MIN"
    MIN_MAX = "MIN_MAX"
    NONE = "NONE"
    ORDER = "ORDER"
    PERSON = "PERSON"
    PHONE_COUNTRY_SHORT_NAME = "PHONE_COUNTRY_SHORT_NAME"
    RAW = "RAW"
    START_DATE = "START_DATE"
    SUM = "SUM"
    TRIM = "TRIM"
    UPPER = "UPPER"


F = AggregateSelectFunctionName

EXCLUDED_FUNCTIONS = frozenset({F.CASE, F.BETWEEN, F.LEFT, F.RAW, F.NONE, F.COUNT_KEYS})

# Row-level value mappers; their output is a grouping dimension.
TRANSFORMATIVE_FUNCTIONS = frozenset({
    F.LEFT, F.TRIM, F.UPPER, F.LOWER,
    F.DATE_TRUNC_DAY, F.DATE_TRUNC_WEEK, F.DATE_TRUNC_MONTH, F.DATE_TRUNC_QUARTER, F.DATE_TRUNC_YEAR,
    F.COLOR, F.LABEL, F.END_DATE, F.START_DATE, F.HOUR, F.PHONE_COUNTRY_SHORT_NAME,
    F.PERSON, F.ORDER, F.LENGTH, F.FLATTEN, F.IS_DONE,
})

AGGREGATIVE_FUNCTIONS = frozenset({
    F.COUNT, F.COUNT_DISTINCT, F.COUNT_SUBITEMS, F.COUNT_ITEMS, F.FIRST,
    F.SUM, F.AVERAGE, F.MEDIAN, F.MIN, F.MAX, F.MIN_MAX,
})

BoardInsightsAggregationFunction = Literal[tuple(f.value for f in F if f not in EXCLUDED_FUNCTIONS)]

BOARD_INSIGHTS_QUERY = """
query aggregateBoardInsights($query: AggregateQueryInput!) {
  aggregate(query: $query) {
    results {
      entries {
        alias
        value {
          ... on AggregateBasicAggregationResult {
            result
          }
          ... on AggregateGroupByResult {
            value
          }
        }
      }
    }
  }
}
"""


# --- Input Models ---


class Aggregation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    function: BoardInsightsAggregationFunction | None = Field(
        None,
        description="The function of the aggregation. For simple column value leave undefined",
    )
    column_id: str = Field(..., alias="columnId", description="The id of the column to aggregate")


class BoardInsightsInput(StringifiedFallbackModel):
    stringified_fields = ("aggregations", "filters", "orderBy")

    board_id: int = Field(..., alias="boardId", description="The id of the board to get insights for")
    aggregations_stringified: str | None = Field(
        None, alias="aggregationsStringified", description=stringified_description("aggregations"),
    )
    aggregations: list[Aggregation] | None = Field(
        None,
        description=(
            'The aggregations to get. Before sending the aggregations, check the board metadata '
            '("aggregationGuidelines") when it is available. Transformative functions and plain columns '
            "(no function) must be in group by. [REQUIRED PRECONDITION]: Either send this field or the "
            "stringified version of it."
        ),
    )
    group_by: list[str] | None = Field(
        None,
        alias="groupBy",
        description=(
            "The columns to group by. All columns in the group by must be in the aggregations "
            "as well without a function."
        ),
    )
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="The limit of the results")
    filters_stringified: str | None = Field(
        None, alias="filtersStringified", description=stringified_description("filters"),
    )
    filters: list[FilterRule] | None = Field(None, description=FILTERS_DESCRIPTION)
    filters_operator: ItemsQueryOperator = Field(
        "and", alias="filtersOperator", description="The logical operator to use for the filters",
    )
    order_by_stringified: str | None = Field(
        None, alias="orderByStringified", description=stringified_description("orderBy"),
    )
    order_by: list[OrderByRule] | None = Field(
        None,
        alias="orderBy",
        description="The columns to order by, will control the order of the items in the response",
    )


# --- Query Builders ---


def build_from(board_id: int) -> dict[str, Any]:
    return {"id": str(board_id), "type": "TABLE"}


def build_order_by(params: BoardInsightsInput) -> list[dict[str, Any]] | None:
    if params.order_by is None:
        return None
    return [rule.to_order_by() for rule in params.order_by]


def build_filters(params: BoardInsightsInput) -> dict[str, Any] | None:
    """Build the ``query`` object; None when neither filters nor orderBy were given."""
    if params.filters is None and params.order_by is None:
        return None
    query: dict[str, Any] = {}
    if params.filters is not None:
        query["rules"] = [rule.to_rule() for rule in params.filters]
        query["operator"] = params.filters_operator
    if params.order_by is not None:
        query["order_by"] = build_order_by(params)
    return query


def _column_element(column_id: str) -> dict[str, Any]:
    return {"type": "COLUMN", "column": {"column_id": column_id}, "as": column_id}


def _function_element(function: str, column_id: str, alias: str) -> dict[str, Any]:
    # COUNT_ITEMS counts rows and takes no column
    params = [] if function == F.COUNT_ITEMS else [_column_element(column_id)]
    return {
        "type": "FUNCTION",
        "function": {"function": function, "params": params},
        "as": alias,
    }


def build_select_and_group_by(params: BoardInsightsInput) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Build the ``select`` and ``group_by`` lists for an aggregation request.

    Every explicit group-by column gets a ``LABEL_<column>`` select unless
    one was requested. Function aliases are ``<FUNCTION>_<column>_<n>``
    where ``n`` counts earlier occurrences of the same pair. Transformative
    aliases and plain columns are grouping keys, and every grouping key
    ends up with a matching select.
    """
    aggregations = list(params.aggregations or [])
    group_by_columns = list(params.group_by or [])

    group_by: list[dict[str, Any]] = [{"column_id": column_id} for column_id in group_by_columns]

    def add_group_by(column_id: str) -> None:
        if not any(element["column_id"] == column_id for element in group_by):
            group_by.append({"column_id": column_id})

    labelled = {agg.column_id for agg in aggregations if agg.function == F.LABEL}
    aggregations.extend(
        Aggregation(function=F.LABEL.value, column_id=column_id)
        for column_id in group_by_columns
        if column_id not in labelled
    )

    alias_counts: dict[str, int] = {}
    select: list[dict[str, Any]] = []
    for agg in aggregations:
        if agg.function:
            key = f"{agg.function}_{agg.column_id}"
            index = alias_counts.get(key, 0)
            alias_counts[key] = index + 1
            alias = f"{key}_{index}"
            if agg.function in TRANSFORMATIVE_FUNCTIONS:
                add_group_by(alias)
            select.append(_function_element(agg.function, agg.column_id, alias))
        else:
            select.append(_column_element(agg.column_id))
            add_group_by(agg.column_id)

    aliases = {element["as"] for element in select}
    for element in group_by:
        if element["column_id"] not in aliases:
            select.append(_column_element(element["column_id"]))
            aliases.add(element["column_id"])

    return select, group_by


def build_aggregate_query(params: BoardInsightsInput) -> dict[str, Any]:
    select, group_by = build_select_and_group_by(params)
    query = {
        "from": build_from(params.board_id),
        "query": build_filters(params),
        "select": select,
        "group_by": group_by,
        "limit": params.limit,
    }
    return {k: v for k, v in query.items() if v is not None}


def rows_from_response(response: dict[str, Any]) -> list[dict[str, Any]]:
    """Flatten aggregate result sets into ``{alias: value}`` rows."""
    results = (response.get("aggregate") or {}).get("results") or []
    rows = []
    for result_set in results:
        row: dict[str, Any] = {}
        for entry in result_set.get("entries") or []:
            alias = entry.get("alias") or ""
            if not alias:
                continue
            value = entry.get("value")
            if not value:
                row[alias] = None
                continue
            result = value.get("result")
            row[alias] = result if result is not None else value.get("value")
        rows.append(row)
    return rows


# --- Tool ---


async def run_board_insights(client: MondayAPIClient, params: BoardInsightsInput) -> str:
    if params.aggregations is None:
        return MISSING_AGGREGATIONS_MESSAGE

    variables = {"query": build_aggregate_query(params)}
    response = await client.request(
        BOARD_INSIGHTS_QUERY, variables, operation="aggregateBoardInsights",
    )
    rows = rows_from_response(response)
    if not rows:
        return NO_RESULTS_MESSAGE
    return f"Board insights result ({len(rows)} rows):\n{json.dumps(rows, indent=2)}"


BOARD_INSIGHTS_DESCRIPTION = (
    "This tool allows you to calculate insights about board's data by filtering, grouping and "
    "aggregating columns. For example, you can get the total number of items in a board, the number "
    "of items in each status, the number of items in each column, etc. "
    "Use this tool when you need to get a summary of the board's data, for example, you want to know "
    "the total number of items in a board, the number of items in each status, the number of items "
    "in each column, etc."
    "[REQUIRED PRECONDITION]: Before using this tool, if new columns were added to the board or if "
    "you are not familiar with the board's structure (column IDs, column types, status labels, etc.), "
    "first fetch the board metadata (for example with the monday.com get_board_info tool, when the "
    "client has it). This is essential for constructing "
    "proper filters and knowing which columns are available."
    "[IMPORTANT]: For some columns, human-friendly label is returned inside 'LABEL_<column_id>' field. "
    "E.g. for column with id 'status_123' the label is returned inside 'LABEL_status_123' field."
)


@tool("board_insights", BOARD_INSIGHTS_DESCRIPTION, BoardInsightsInput.model_json_schema())
async def board_insights(args: dict[str, Any]) -> dict[str, Any]:
    validated, err = _validate(BoardInsightsInput, args)
    if err:
        return err
    return await _safe_call(
        run_board_insights(get_http_client(), validated),
        fallback_hint="Try: Verify the column ids and aggregation functions against the board metadata.",
    )
