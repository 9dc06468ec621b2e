"""Tests for shared tool plumbing: response formatting, validation and stringified input."""

import json
from unittest.mock import AsyncMock

import pytest
from pydantic import TypeAdapter, ValidationError

from monday_mcp.toolkit.http import MondayAPIError
from monday_mcp.toolkit.tools.common import (
    FilterRule,
    OrderByRule,
    _error,
    _safe_call,
    _text,
    _validate,
    decode_stringified_field,
    stringified_description,
)


# --- Response Formatting ---


def test_text_formats_dict():
    result = _text({"key": "value"})
    assert result["content"][0]["type"] == "text"
    assert json.loads(result["content"][0]["text"]) == {"key": "value"}
    assert "isError" not in result


def test_text_formats_string():
    assert _text("hello world")["content"][0]["text"] == "hello world"


def test_error_formats_correctly():
    result = _error("something went wrong")
    assert result["isError"] is True
    assert result["content"][0]["text"] == "something went wrong"


# --- _safe_call ---


async def test_safe_call_success():
    result = await _safe_call(AsyncMock(return_value="done")())
    assert result == {"content": [{"type": "text", "text": "done"}]}


async def test_safe_call_api_error():
    async def _raise():
        raise MondayAPIError("fail", operation="getBoards", status_code=429)

    result = await _safe_call(_raise())
    assert result["isError"] is True
    assert "429" in result["content"][0]["text"]


async def test_safe_call_unexpected_error_with_hint():
    async def _raise():
        raise RuntimeError("boom")

    result = await _safe_call(_raise(), fallback_hint="Try again.")
    assert result["isError"] is True
    assert result["content"][0]["text"] == "Error: Unexpected failure. Try again."


async def test_safe_call_unexpected_error_without_hint():
    async def _raise():
        raise RuntimeError("boom")

    result = await _safe_call(_raise())
    assert result["content"][0]["text"] == "Error: boom"


# --- Validation ---


def test_validate_success():
    model, err = _validate(OrderByRule, {"columnId": "date", "direction": "desc"})
    assert err is None
    assert model.to_order_by() == {"column_id": "date", "direction": "desc"}


def test_validate_failure():
    model, err = _validate(OrderByRule, {"direction": "sideways"})
    assert model is None
    assert err["isError"] is True
    assert "Invalid input" in err["content"][0]["text"]


def test_filter_rule_drops_missing_attribute():
    rule = FilterRule(columnId="status", compareValue=[1, 2])
    assert rule.to_rule() == {"column_id": "status", "compare_value": [1, 2], "operator": "any_of"}


def test_filter_rule_by_field_name():
    rule = FilterRule(column_id="date", compare_value="TODAY", compare_attribute="date", operator="greater_than")
    assert rule.to_rule()["compare_attribute"] == "date"


def test_filter_rule_rejects_unknown_operator():
    with pytest.raises(ValidationError):
        FilterRule(columnId="status", compareValue=1, operator="like")


# --- Stringified Input ---


ADAPTER = TypeAdapter(list[int] | None)


def test_decode_stringified_list():
    assert decode_stringified_field({"idsStringified": "[1, 2]"}, "ids", ADAPTER)["ids"] == [1, 2]


def test_decode_keeps_structured_value():
    data = {"ids": [3], "idsStringified": "[1]"}
    assert decode_stringified_field(data, "ids", ADAPTER) is data


def test_decode_without_stringified_value():
    data = {"other": 1}
    assert decode_stringified_field(data, "ids", ADAPTER) is data


def test_decode_invalid_json():
    with pytest.raises(ValueError, match="idsStringified is not a valid JSON"):
        decode_stringified_field({"idsStringified": "[1,"}, "ids", ADAPTER)


def test_decode_schema_mismatch():
    with pytest.raises(ValueError, match="does not match the specified schema"):
        decode_stringified_field({"idsStringified": '["a"]'}, "ids", ADAPTER)


def test_stringified_description_mentions_key():
    assert '"filters" field' in stringified_description("filters")
