"""Shared plumbing for the monday.com tools.

Response formatting, input validation, error handling and the input
models and GraphQL enums reused across several tools.
"""

import json
import logging
from enum import StrEnum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from monday_mcp.toolkit.http import MondayAPIError

logger = logging.getLogger("monday_mcp.toolkit.tools")

STRINGIFIED_SUFFIX = "Stringified"


# --- Response Formatting ---


def _text(content: Any) -> dict[str, Any]:
    """Wrap content in MCP tool response format."""
    text = json.dumps(content, indent=2) if isinstance(content, (dict, list)) else str(content)
    return {"content": [{"type": "text", "text": text}]}


def _error(message: str) -> dict[str, Any]:
    """Return a tool error response that teaches the agent what to do."""
    return {"content": [{"type": "text", "text": message}], "isError": True}


async def _safe_call(coro: Any, fallback_hint: str = "") -> dict[str, Any]:
    """Execute a tool coroutine with structured error handling."""
    try:
        result = await coro
        return _text(result)
    except MondayAPIError as exc:
        logger.warning("Tool API error: %s", exc, extra={"operation": exc.operation or None})
        return _error(exc.agent_message())
    except Exception as exc:
        logger.error("Unexpected tool error: %s", exc, exc_info=True)
        msg = f"Error: Unexpected failure. {fallback_hint}" if fallback_hint else f"Error: {exc}"
        return _error(msg)


# --- Validation Helper ---


def _validate(model_cls: type[BaseModel], args: dict[str, Any]) -> tuple[BaseModel | None, dict[str, Any] | None]:
    """Validate tool args against a Pydantic model.

    Returns (validated_model, None) on success, or (None, error_response) on failure.
    """
    try:
        return model_cls(**args), None
    except ValidationError as exc:
        return None, _error(
            f"Invalid input: {exc}. Check the tool's parameter descriptions and try again."
        )


# --- Stringified JSON Fallback ---


def stringified_description(key: str) -> str:
    return (
        f'**ONLY FOR MICROSOFT COPILOT**: The {key} to apply. Send this as a stringified JSON '
        f'array of "{key}" field. Read "{key}" field description for details how to use it.'
    )


def decode_stringified_field(data: dict[str, Any], key: str, adapter: TypeAdapter) -> dict[str, Any]:
    """Fill ``data[key]`` from its JSON-encoded ``<key>Stringified`` twin.

    Some clients cannot send structured arrays, so they send the same value
    as a JSON string. The decoded payload goes through the field's own
    validator, so both input paths share one schema.
    """
    stringified = data.get(key + STRINGIFIED_SUFFIX)
    if data.get(key) is not None or not stringified:
        return data

    try:
        parsed = json.loads(stringified)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key}{STRINGIFIED_SUFFIX} is not a valid JSON") from exc

    # Clients sometimes wrap the payload as {"<key>": [...]}
    if isinstance(parsed, dict) and list(parsed) == [key]:
        parsed = parsed[key]

    try:
        value = adapter.validate_python(parsed)
    except ValidationError as exc:
        raise ValueError(
            f"JSON string defined as {key}{STRINGIFIED_SUFFIX} does not match the specified schema"
        ) from exc

    return {**data, key: value}


class StringifiedFallbackModel(BaseModel):
    """Input model whose ``stringified_fields`` may arrive JSON-encoded.

    Decoding runs before field validation so the rest of the model only
    ever sees the structured value.
    """

    model_config = ConfigDict(populate_by_name=True)

    stringified_fields: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def _decode_stringified(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        for key in cls.stringified_fields:
            field = next(
                (f for name, f in cls.model_fields.items() if (f.alias or name) == key),
                None,
            )
            if field is None:
                continue
            data = decode_stringified_field(data, key, TypeAdapter(field.annotation))
        return data


# --- GraphQL Enums ---

ItemsQueryOperator = Literal["and", "or"]

ItemsQueryRuleOperator = Literal[
    "any_of",
    "not_any_of",
    "is_empty",
    "is_not_empty",
    "greater_than",
    "greater_than_or_equals",
    "lower_than",
    "lower_than_or_equal",
    "between",
    "not_contains_text",
    "contains_text",
    "contains_terms",
    "starts_with",
    "ends_with",
    "within_the_next",
    "within_the_last",
]

ItemsOrderByDirection = Literal["asc", "desc"]


class ColumnType(StrEnum):
    """Column kinds the tools inspect; the API defines many more."""

    BOARD_RELATION = "board_relation"
    CHECKBOX = "checkbox"
    DATE = "date"
    DOC = "doc"
    FORMULA = "formula"
    MIRROR = "mirror"
    NAME = "name"
    NUMBERS = "numbers"
    PEOPLE = "people"
    STATUS = "status"
    TEXT = "text"
    TIMELINE = "timeline"


# --- Shared Input Models ---


class FilterRule(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    column_id: str = Field(..., alias="columnId", description="The id of the column to filter by")
    compare_attribute: str | None = Field(
        None,
        alias="compareAttribute",
        description="The attribute to compare the value to. This is OPTIONAL property.",
    )
    compare_value: Any = Field(
        ...,
        alias="compareValue",
        description=(
            "The value to compare the attribute to. This can be a string or index value "
            "depending on the column type."
        ),
    )
    operator: ItemsQueryRuleOperator = Field("any_of", description="The operator to use for the filter")

    def to_rule(self) -> dict[str, Any]:
        rule = {
            "column_id": str(self.column_id),
            "compare_value": self.compare_value,
            "operator": self.operator,
            "compare_attribute": self.compare_attribute,
        }
        return {k: v for k, v in rule.items() if v is not None}


class OrderByRule(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    column_id: str = Field(..., alias="columnId", description="The id of the column to order by")
    direction: ItemsOrderByDirection = Field("asc", description="The direction to order by")

    def to_order_by(self) -> dict[str, Any]:
        return {"column_id": self.column_id, "direction": self.direction}


FILTERS_DESCRIPTION = (
    "The configuration of filters to apply on the items. Before sending the filters, check "
    'the board metadata ("filteringGuidelines") to filter by the column.'
)
