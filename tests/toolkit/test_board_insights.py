"""Tests for board_insights: query building, row flattening and the tool handler."""

import json

import pytest
from pydantic import ValidationError

from conftest import tool_text
from monday_mcp.toolkit.tools.board_insights import (
    BOARD_INSIGHTS_QUERY,
    MISSING_AGGREGATIONS_MESSAGE,
    NO_RESULTS_MESSAGE,
    BoardInsightsInput,
    board_insights,
    build_aggregate_query,
    build_filters,
    build_select_and_group_by,
    rows_from_response,
)


def _params(**kwargs) -> BoardInsightsInput:
    return BoardInsightsInput(boardId=123, **kwargs)


def _aliases(select):
    return [element["as"] for element in select]


# --- Select and Group By ---


def test_plain_column_is_selected_and_grouped():
    select, group_by = build_select_and_group_by(_params(aggregations=[{"columnId": "status"}]))
    assert select == [{"type": "COLUMN", "column": {"column_id": "status"}, "as": "status"}]
    assert group_by == [{"column_id": "status"}]


def test_function_alias_counts_repeats():
    params = _params(aggregations=[
        {"function": "SUM", "columnId": "numbers"},
        {"function": "SUM", "columnId": "numbers"},
        {"function": "AVERAGE", "columnId": "numbers"},
    ])
    select, group_by = build_select_and_group_by(params)
    assert _aliases(select) == ["SUM_numbers_0", "SUM_numbers_1", "AVERAGE_numbers_0"]
    assert group_by == []


def test_transformative_function_alias_is_grouped():
    params = _params(aggregations=[{"function": "DATE_TRUNC_MONTH", "columnId": "date"}])
    select, group_by = build_select_and_group_by(params)
    assert _aliases(select) == ["DATE_TRUNC_MONTH_date_0"]
    assert group_by == [{"column_id": "DATE_TRUNC_MONTH_date_0"}]


def test_count_items_has_no_params():
    params = _params(aggregations=[{"function": "COUNT_ITEMS", "columnId": "name"}])
    select, _ = build_select_and_group_by(params)
    assert select[0]["function"] == {"function": "COUNT_ITEMS", "params": []}


def test_function_element_wraps_column():
    params = _params(aggregations=[{"function": "MAX", "columnId": "numbers"}])
    select, _ = build_select_and_group_by(params)
    assert select[0] == {
        "type": "FUNCTION",
        "function": {
            "function": "MAX",
            "params": [{"type": "COLUMN", "column": {"column_id": "numbers"}, "as": "numbers"}],
        },
        "as": "MAX_numbers_0",
    }


def test_group_by_adds_label_and_backfills_column():
    params = _params(
        aggregations=[{"function": "COUNT_ITEMS", "columnId": "name"}],
        groupBy=["status"],
    )
    select, group_by = build_select_and_group_by(params)
    assert _aliases(select) == ["COUNT_ITEMS_name_0", "LABEL_status_0", "status"]
    assert group_by == [{"column_id": "status"}, {"column_id": "LABEL_status_0"}]


def test_group_by_keeps_requested_label():
    params = _params(
        aggregations=[{"columnId": "status"}, {"function": "LABEL", "columnId": "status"}],
        groupBy=["status"],
    )
    select, group_by = build_select_and_group_by(params)
    assert _aliases(select) == ["status", "LABEL_status_0"]
    assert group_by == [{"column_id": "status"}, {"column_id": "LABEL_status_0"}]


def test_every_group_by_key_has_a_select():
    params = _params(
        aggregations=[{"function": "SUM", "columnId": "numbers"}],
        groupBy=["status", "person"],
    )
    select, group_by = build_select_and_group_by(params)
    aliases = set(_aliases(select))
    assert all(element["column_id"] in aliases for element in group_by)


# --- Filters ---


def test_filters_none_without_filters_or_order():
    assert build_filters(_params(aggregations=[])) is None


def test_filters_with_rules_and_order():
    params = _params(
        aggregations=[],
        filters=[{"columnId": "status", "compareValue": [1], "operator": "any_of"}],
        filtersOperator="or",
        orderBy=[{"columnId": "date", "direction": "desc"}],
    )
    assert build_filters(params) == {
        "rules": [{"column_id": "status", "compare_value": [1], "operator": "any_of"}],
        "operator": "or",
        "order_by": [{"column_id": "date", "direction": "desc"}],
    }


def test_order_by_only_query():
    params = _params(aggregations=[], orderBy=[{"columnId": "date"}])
    assert build_filters(params) == {"order_by": [{"column_id": "date", "direction": "asc"}]}


def test_aggregate_query_drops_missing_filters():
    query = build_aggregate_query(_params(aggregations=[{"columnId": "status"}], limit=50))
    assert query["from"] == {"id": "123", "type": "TABLE"}
    assert query["limit"] == 50
    assert "query" not in query


# --- Input Model ---


def test_stringified_aggregations_are_decoded():
    params = BoardInsightsInput(
        boardId=1,
        aggregationsStringified=json.dumps([{"function": "COUNT_ITEMS", "columnId": "name"}]),
    )
    assert params.aggregations[0].function == "COUNT_ITEMS"
    assert params.aggregations[0].column_id == "name"


def test_stringified_wrapped_payload_is_decoded():
    params = BoardInsightsInput(
        boardId=1,
        filtersStringified=json.dumps({"filters": [{"columnId": "status", "compareValue": "Done"}]}),
    )
    assert params.filters[0].column_id == "status"
    assert params.filters[0].operator == "any_of"


def test_structured_value_wins_over_stringified():
    params = BoardInsightsInput(
        boardId=1,
        aggregations=[{"columnId": "status"}],
        aggregationsStringified="not json",
    )
    assert params.aggregations[0].column_id == "status"


def test_invalid_stringified_json_rejected():
    with pytest.raises(ValidationError, match="aggregationsStringified is not a valid JSON"):
        BoardInsightsInput(boardId=1, aggregationsStringified="{oops")


def test_stringified_schema_mismatch_rejected():
    with pytest.raises(ValidationError, match="does not match the specified schema"):
        BoardInsightsInput(boardId=1, aggregationsStringified=json.dumps([{"function": "SUM"}]))


def test_excluded_function_rejected():
    with pytest.raises(ValidationError):
        BoardInsightsInput(boardId=1, aggregations=[{"function": "CASE", "columnId": "status"}])


def test_limit_above_max_rejected():
    with pytest.raises(ValidationError):
        BoardInsightsInput(boardId=1, aggregations=[], limit=1001)


@pytest.mark.parametrize("limit", [0, -5])
def test_limit_below_one_rejected(limit):
    with pytest.raises(ValidationError):
        BoardInsightsInput(boardId=1, aggregations=[{"columnId": "status"}], limit=limit)


async def test_handler_rejects_zero_limit(patch_http_client):
    result = await board_insights.handler({"boardId": 1, "aggregations": [{"columnId": "status"}], "limit": 0})
    assert result["isError"] is True
    patch_http_client.request.assert_not_awaited()


# --- Rows ---


def test_rows_from_response():
    response = {
        "aggregate": {
            "results": [
                {"entries": [
                    {"alias": "status", "value": {"value": "1"}},
                    {"alias": "COUNT_ITEMS_name_0", "value": {"result": 4}},
                    {"alias": "empty", "value": None},
                    {"alias": "", "value": {"result": 1}},
                ]},
            ]
        }
    }
    assert rows_from_response(response) == [{"status": "1", "COUNT_ITEMS_name_0": 4, "empty": None}]


def test_rows_from_empty_response():
    assert rows_from_response({}) == []


# --- Tool Handler ---


async def test_handler_requires_aggregations(patch_http_client):
    result = await board_insights.handler({"boardId": 1})
    assert tool_text(result) == MISSING_AGGREGATIONS_MESSAGE
    patch_http_client.request.assert_not_awaited()


async def test_handler_formats_rows(patch_http_client):
    patch_http_client.request.return_value = {
        "aggregate": {"results": [
            {"entries": [{"alias": "COUNT_ITEMS_name_0", "value": {"result": 7}}]},
        ]}
    }
    result = await board_insights.handler({
        "boardId": 42,
        "aggregations": [{"function": "COUNT_ITEMS", "columnId": "name"}],
    })
    text = tool_text(result)
    assert "isError" not in result
    assert text.startswith("Board insights result (1 rows):\n")
    assert json.loads(text.split("\n", 1)[1]) == [{"COUNT_ITEMS_name_0": 7}]

    query, variables = patch_http_client.request.await_args.args
    assert query == BOARD_INSIGHTS_QUERY
    assert variables["query"]["from"] == {"id": "42", "type": "TABLE"}


async def test_handler_no_rows(patch_http_client):
    patch_http_client.request.return_value = {"aggregate": {"results": []}}
    result = await board_insights.handler({"boardId": 1, "aggregations": [{"columnId": "status"}]})
    assert tool_text(result) == NO_RESULTS_MESSAGE


async def test_handler_invalid_input(patch_http_client):
    result = await board_insights.handler({"aggregations": []})
    assert result["isError"] is True
    assert "Invalid input" in tool_text(result)
