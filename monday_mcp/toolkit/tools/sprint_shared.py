"""Column tables and readers shared by the monday-dev sprint tools.

monday-dev accounts use fixed column ids on their sprints and tasks
boards; these helpers identify such boards and read typed values off
sprint items.
"""

import json
from enum import StrEnum
from typing import Any

from monday_mcp.toolkit.tools.common import ColumnType

CHECKBOX_COLUMN_TYPENAME = "CheckboxValue"
DATE_COLUMN_TYPENAME = "DateValue"
TIMELINE_COLUMN_TYPENAME = "TimelineValue"
DOC_COLUMN_TYPENAME = "DocValue"

SPRINT_TASKS = "sprint_tasks"
SPRINT_TIMELINE = "sprint_timeline"
SPRINT_COMPLETION = "sprint_completion"
SPRINT_START_DATE = "sprint_start_date"
SPRINT_END_DATE = "sprint_end_date"
SPRINT_ACTIVATION = "sprint_activation"
SPRINT_SUMMARY = "sprint_summary"
SPRINT_CAPACITY = "sprint_capacity"

# Minimum columns identifying a sprints board
REQUIRED_SPRINT_COLUMNS = (
    SPRINT_TASKS,
    SPRINT_TIMELINE,
    SPRINT_COMPLETION,
    SPRINT_START_DATE,
    SPRINT_END_DATE,
    SPRINT_ACTIVATION,
)

TASK_SPRINT = "task_sprint"
TASK_STATUS = "task_status"

REQUIRED_TASKS_COLUMNS = (TASK_SPRINT, TASK_STATUS)

SPRINT_COLUMN_DISPLAY_NAMES = {
    SPRINT_TASKS: "Sprint Tasks",
    SPRINT_TIMELINE: "Sprint Timeline",
    SPRINT_COMPLETION: "Sprint Completion",
    SPRINT_START_DATE: "Sprint Start Date",
    SPRINT_END_DATE: "Sprint End Date",
    SPRINT_ACTIVATION: "Sprint Activation",
    SPRINT_SUMMARY: "Sprint Summary",
    SPRINT_CAPACITY: "Sprint Capacity",
}

DOCS_LIMIT = 1
RECENT_BOARDS_LIMIT = 100


class ErrorPrefix(StrEnum):
    BOARD_NOT_FOUND = "BOARD_NOT_FOUND:"
    SPRINT_NOT_FOUND = "SPRINT_NOT_FOUND:"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND:"
    DOCUMENT_INVALID = "DOCUMENT_INVALID:"
    DOCUMENT_EMPTY = "DOCUMENT_EMPTY:"
    EXPORT_FAILED = "EXPORT_FAILED:"
    INTERNAL_ERROR = "INTERNAL_ERROR:"
    VALIDATION_ERROR = "VALIDATION_ERROR:"
    SNAPSHOT_ERROR = "SNAPSHOT_ERROR:"


class SprintState(StrEnum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


# --- Column Readers ---


def get_sprint_column_value(sprint: dict[str, Any], column_id: str) -> dict[str, Any] | None:
    for cv in sprint.get("column_values") or []:
        if cv and cv.get("id") == column_id:
            return cv
    return None


def get_checkbox_value(sprint: dict[str, Any], column_id: str) -> bool | None:
    column = get_sprint_column_value(sprint, column_id)
    if not column or column.get("__typename") != CHECKBOX_COLUMN_TYPENAME:
        return None
    return column.get("checked") or False


def get_date_value(sprint: dict[str, Any], column_id: str) -> str | None:
    column = get_sprint_column_value(sprint, column_id)
    if not column or column.get("__typename") != DATE_COLUMN_TYPENAME:
        return None
    return column.get("date")


def get_timeline_value(sprint: dict[str, Any], column_id: str) -> dict[str, str] | None:
    """Return the planned ``from``/``to`` dates without their time part."""
    column = get_sprint_column_value(sprint, column_id)
    if (
        column
        and column.get("__typename") == TIMELINE_COLUMN_TYPENAME
        and column.get("from")
        and column.get("to")
    ):
        return {
            "from": column["from"].split("T")[0],
            "to": column["to"].split("T")[0],
        }
    return None


def get_doc_value(sprint: dict[str, Any], column_id: str) -> str | None:
    column = get_sprint_column_value(sprint, column_id)
    if not column or column.get("__typename") != DOC_COLUMN_TYPENAME:
        return None
    doc = ((column.get("file") or {}).get("doc")) or {}
    return doc.get("object_id") or None


def get_sprint_column_display_name(column_id: str) -> str:
    return SPRINT_COLUMN_DISPLAY_NAMES.get(column_id, column_id)


# --- Validation ---


def validate_item_columns(column_ids: set[str], required_columns: tuple[str, ...] | list[str]) -> tuple[bool, list[str]]:
    """Return ``(is_valid, missing_columns)`` preserving the order of ``required_columns``."""
    missing = [column_id for column_id in required_columns if column_id not in column_ids]
    return not missing, missing


def validate_sprint_item_columns(sprint: dict[str, Any], additional_required: tuple[str, ...] = ()) -> tuple[bool, list[str]]:
    column_ids = {cv.get("id") for cv in sprint.get("column_values") or [] if cv}
    return validate_item_columns(column_ids, REQUIRED_SPRINT_COLUMNS + tuple(additional_required))


def _board_columns(board: dict[str, Any]) -> list[dict[str, Any]]:
    return [column for column in board.get("columns") or [] if column]


def has_all_required_columns(board: dict[str, Any], required_column_ids: tuple[str, ...]) -> bool:
    if not board.get("columns"):
        return False
    column_ids = {column.get("id") for column in _board_columns(board)}
    return all(column_id in column_ids for column_id in required_column_ids)


def is_sprints_board(board: dict[str, Any]) -> bool:
    return has_all_required_columns(board, REQUIRED_SPRINT_COLUMNS)


def is_tasks_board(board: dict[str, Any]) -> bool:
    return has_all_required_columns(board, REQUIRED_TASKS_COLUMNS)


# --- Board Relations ---


def get_board_relation_column(board: dict[str, Any], column_id: str) -> dict[str, Any] | None:
    for column in _board_columns(board):
        if column.get("id") == column_id and column.get("type") == ColumnType.BOARD_RELATION:
            return column
    return None


def get_related_board_id(column: dict[str, Any]) -> str | None:
    """Read the linked board id from a board-relation column's settings."""
    settings = column.get("settings")
    if isinstance(settings, str):
        try:
            settings = json.loads(settings)
        except ValueError:
            return None
    if not isinstance(settings, dict):
        return None

    board_ids = settings.get("boardIds")
    if isinstance(board_ids, list) and board_ids and board_ids[0]:
        return str(board_ids[0])
    board_id = settings.get("boardId")
    return str(board_id) if board_id else None
