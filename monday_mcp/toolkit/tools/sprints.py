"""monday-dev sprint tools.

Sprint summaries, sprint metadata reports and sprints/tasks board pair
discovery. Expected failures come back as text starting with one of the
``ErrorPrefix`` values rather than as tool errors, so the agent can read
and act on them.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field
from claude_agent_sdk import tool

from monday_mcp.toolkit.http import MondayAPIClient, get_http_client
from monday_mcp.toolkit.tools.common import _safe_call, _validate
from monday_mcp.toolkit.tools.sprint_shared import (
    DOCS_LIMIT,
    RECENT_BOARDS_LIMIT,
    REQUIRED_SPRINT_COLUMNS,
    SPRINT_ACTIVATION,
    SPRINT_COMPLETION,
    SPRINT_END_DATE,
    SPRINT_START_DATE,
    SPRINT_SUMMARY,
    SPRINT_TASKS,
    SPRINT_TIMELINE,
    TASK_SPRINT,
    ErrorPrefix,
    SprintState,
    get_board_relation_column,
    get_checkbox_value,
    get_date_value,
    get_doc_value,
    get_related_board_id,
    get_sprint_column_display_name,
    get_timeline_value,
    is_sprints_board,
    is_tasks_board,
    validate_item_columns,
    validate_sprint_item_columns,
)

logger = logging.getLogger("monday_mcp.toolkit.tools.sprints")

DEFAULT_SPRINTS_LIMIT = 25
MAX_SPRINTS_LIMIT = 100

GET_SPRINTS_BY_IDS_QUERY = """
query getSprintsByIds($ids: [ID!]) {
  items(ids: $ids) {
    id
    name
    board {
      id
    }
    column_values {
      id
      type
      __typename
      ... on TextValue {
        value
      }
      ... on DateValue {
        date
      }
      ... on TimelineValue {
        from
        to
      }
      ... on CheckboxValue {
        checked
      }
      ... on DocValue {
        file {
          doc {
            object_id
          }
        }
      }
    }
  }
}
"""

READ_DOCS_QUERY = """
query readDocs(
  $ids: [ID!]
  $object_ids: [ID!]
  $limit: Int
  $order_by: DocsOrderBy
  $page: Int
  $workspace_ids: [ID]
) {
  docs(
    ids: $ids
    object_ids: $object_ids
    limit: $limit
    order_by: $order_by
    page: $page
    workspace_ids: $workspace_ids
  ) {
    id
    object_id
    name
    doc_kind
    created_at
    created_by {
      id
      name
    }
    settings
    url
    relative_url
    workspace {
      id
      name
    }
    workspace_id
    doc_folder_id
  }
}
"""

EXPORT_MARKDOWN_QUERY = """
query exportMarkdownFromDoc($docId: ID!, $blockIds: [String!]) {
  export_markdown_from_doc(docId: $docId, blockIds: $blockIds) {
    success
    markdown
    error
  }
}
"""

GET_BOARD_SCHEMA_QUERY = """
query getBoardSchema($boardId: ID!) {
  boards(ids: [$boardId]) {
    groups {
      id
      title
    }
    columns {
      id
      type
      title
    }
  }
}
"""

GET_SPRINTS_BOARD_ITEMS_QUERY = """
query GetSprintsBoardItemsWithColumns($boardId: ID!, $limit: Int) {
  boards(ids: [$boardId]) {
    items_page(limit: $limit) {
      items {
        id
        name
        column_values {
          __typename
          id
          type
          ... on TextValue {
            value
          }
          ... on DocValue {
            file {
              doc {
                object_id
              }
            }
          }
          ... on TimelineValue {
            from
            to
          }
          ... on CheckboxValue {
            checked
          }
          ... on DateValue {
            date
          }
        }
      }
    }
  }
}
"""

GET_RECENT_BOARDS_QUERY = """
query GetRecentBoards($limit: Int) {
  boards(limit: $limit, order_by: used_at, state: active) {
    id
    name
    workspace {
      id
      name
    }
    columns {
      id
      type
      settings
    }
  }
}
"""


class SprintToolFailure(Exception):
    """A sprint tool step failed; the message is the text returned to the agent."""


def _reason(exc: BaseException) -> str:
    return str(exc) or "Unknown error"


# --- Input Models ---


class SprintSummaryInput(BaseModel):
    sprint_id: int = Field(
        ...,
        alias="sprintId",
        description='The ID of the sprint to get the summary for (e.g., "9123456789")',
    )


class SprintsMetadataInput(BaseModel):
    sprints_board_id: int = Field(
        ...,
        alias="sprintsBoardId",
        description="The ID of the monday-dev board containing the sprints",
    )
    limit: int = Field(
        DEFAULT_SPRINTS_LIMIT,
        ge=1,
        le=MAX_SPRINTS_LIMIT,
        description=(
            f"The number of sprints to retrieve (default: {DEFAULT_SPRINTS_LIMIT}, "
            f"max: {MAX_SPRINTS_LIMIT})"
        ),
    )


class SprintsBoardsInput(BaseModel):
    pass


# --- Sprint Summary ---


async def get_sprint_summary_object_id(client: MondayAPIClient, sprint_id: int) -> str:
    """Find the summary document object id attached to a sprint item."""
    try:
        response = await client.request(
            GET_SPRINTS_BY_IDS_QUERY, {"ids": [str(sprint_id)]}, operation="getSprintsByIds",
        )
    except Exception as exc:
        raise SprintToolFailure(
            f"{ErrorPrefix.INTERNAL_ERROR} Error getting sprint item: {_reason(exc)}"
        ) from exc

    sprints = response.get("items") or []
    if not sprints or not sprints[0]:
        raise SprintToolFailure(
            f"{ErrorPrefix.SPRINT_NOT_FOUND} Sprint with ID {sprint_id} not found. "
            "Please verify the sprint ID is correct."
        )
    sprint = sprints[0]

    is_valid, missing = validate_sprint_item_columns(sprint, (SPRINT_SUMMARY,))
    if not is_valid:
        raise SprintToolFailure(
            f"{ErrorPrefix.VALIDATION_ERROR} Sprint item is missing required columns: "
            f"{', '.join(missing)}. This may not be a valid sprint board item."
        )

    object_id = get_doc_value(sprint, SPRINT_SUMMARY)
    if not object_id:
        raise SprintToolFailure(
            f'{ErrorPrefix.DOCUMENT_NOT_FOUND} No sprint summary document found for sprint '
            f'"{sprint.get("name")}" (ID: {sprint_id}). Sprint summary is only available for '
            "completed sprints that have analysis documents."
        )
    return object_id


async def read_sprint_summary_document(client: MondayAPIClient, object_id: str) -> str:
    """Export the summary document as markdown."""
    try:
        docs_response = await client.request(
            READ_DOCS_QUERY, {"object_ids": [object_id], "limit": DOCS_LIMIT}, operation="readDocs",
        )
        docs = docs_response.get("docs") or []
        if not docs:
            raise SprintToolFailure(
                f"{ErrorPrefix.DOCUMENT_NOT_FOUND} Document with object ID {object_id} "
                "not found or not accessible."
            )
        doc = docs[0]
        if not doc or not doc.get("id"):
            raise SprintToolFailure(
                f"{ErrorPrefix.DOCUMENT_INVALID} Document data is invalid for object ID {object_id}."
            )

        export_response = await client.request(
            EXPORT_MARKDOWN_QUERY,
            {"docId": doc["id"], "blockIds": []},
            operation="exportMarkdownFromDoc",
        )
    except SprintToolFailure:
        raise
    except Exception as exc:
        raise SprintToolFailure(
            f"{ErrorPrefix.INTERNAL_ERROR} Error reading document: {_reason(exc)}"
        ) from exc

    export = export_response.get("export_markdown_from_doc") or {}
    if not export.get("success"):
        raise SprintToolFailure(
            f"{ErrorPrefix.EXPORT_FAILED} Failed to export markdown from document: "
            f"{export.get('error') or 'Unknown error'}"
        )
    if not export.get("markdown"):
        raise SprintToolFailure(
            f"{ErrorPrefix.DOCUMENT_EMPTY} Document content is empty or could not be retrieved."
        )
    return export["markdown"]


async def run_get_sprint_summary(client: MondayAPIClient, params: SprintSummaryInput) -> str:
    try:
        object_id = await get_sprint_summary_object_id(client, params.sprint_id)
        return await read_sprint_summary_document(client, object_id)
    except SprintToolFailure as exc:
        return str(exc)
    except Exception as exc:
        logger.error("Sprint summary failed: %s", exc, exc_info=True)
        return f"{ErrorPrefix.INTERNAL_ERROR} Error retrieving sprint summary: {_reason(exc)}"


# --- Sprints Metadata ---


def missing_sprint_columns_message(missing: list[str]) -> str:
    message = "BoardID provided is not a valid sprints board. Missing required columns:\n\n"
    for column_id in missing:
        message += f"- {get_sprint_column_display_name(column_id)}\n"
    return message


async def validate_sprints_board_schema(client: MondayAPIClient, board_id: str) -> None:
    try:
        response = await client.request(
            GET_BOARD_SCHEMA_QUERY, {"boardId": board_id}, operation="getBoardSchema",
        )
    except Exception as exc:
        raise SprintToolFailure(
            f"{ErrorPrefix.INTERNAL_ERROR} Error validating board schema: {_reason(exc)}"
        ) from exc

    boards = response.get("boards") or []
    if not boards or not boards[0]:
        raise SprintToolFailure(
            f"{ErrorPrefix.BOARD_NOT_FOUND} Board with ID {board_id} not found. Please verify "
            "the board ID is correct and you have access to it."
        )

    column_ids = {column.get("id") for column in boards[0].get("columns") or [] if column}
    is_valid, missing = validate_item_columns(column_ids, REQUIRED_SPRINT_COLUMNS)
    if not is_valid:
        raise SprintToolFailure(
            f"{ErrorPrefix.VALIDATION_ERROR} {missing_sprint_columns_message(missing)}"
        )


def sprint_status(sprint: dict[str, Any]) -> SprintState:
    if get_checkbox_value(sprint, SPRINT_COMPLETION):
        return SprintState.COMPLETED
    if get_checkbox_value(sprint, SPRINT_ACTIVATION) or get_date_value(sprint, SPRINT_START_DATE):
        return SprintState.ACTIVE
    return SprintState.PLANNED


def sprints_metadata_report(sprints: list[dict[str, Any]]) -> str:
    report = "# Sprints Metadata Report\n\n"
    report += f"**Total Sprints:** {len(sprints)}\n\n"
    report += (
        "| Sprint Name | Sprint ID | Status | Timeline (Planned) | Start Date (Actual) "
        "| End Date (Actual) | Completion | Summary Document ObjectID |\n"
    )
    report += (
        "|-------------|-----------|--------|--------------------|---------------------"
        "|-------------------|------------|---------------------------|\n"
    )

    for sprint in sprints:
        timeline = get_timeline_value(sprint, SPRINT_TIMELINE)
        timeline_text = f"{timeline['from']} to {timeline['to']}" if timeline else "Not set"
        completed = get_checkbox_value(sprint, SPRINT_COMPLETION)
        cells = [
            sprint.get("name") or "Unknown",
            sprint.get("id"),
            sprint_status(sprint),
            timeline_text,
            get_date_value(sprint, SPRINT_START_DATE) or "Not started",
            get_date_value(sprint, SPRINT_END_DATE) or "Not ended",
            "Yes" if completed else "No",
            get_doc_value(sprint, SPRINT_SUMMARY) or "No document",
        ]
        report += "| " + " | ".join(str(cell) for cell in cells) + " |\n"

    report += "\n## Status Definitions:\n"
    report += f"- **{SprintState.PLANNED}**: Sprint not yet started (no activation, no start date)\n"
    report += f"- **{SprintState.ACTIVE}**: Sprint is active (activated but not completed)\n"
    report += f"- **{SprintState.COMPLETED}**: Sprint is finished\n\n"
    return report


async def run_get_sprints_metadata(client: MondayAPIClient, params: SprintsMetadataInput) -> str:
    board_id = str(params.sprints_board_id)
    try:
        await validate_sprints_board_schema(client, board_id)
        response = await client.request(
            GET_SPRINTS_BOARD_ITEMS_QUERY,
            {"boardId": board_id, "limit": params.limit},
            operation="GetSprintsBoardItemsWithColumns",
        )
    except SprintToolFailure as exc:
        return str(exc)
    except Exception as exc:
        logger.error("Sprints metadata failed: %s", exc, exc_info=True)
        return f"{ErrorPrefix.INTERNAL_ERROR} Error retrieving sprints metadata: {_reason(exc)}"

    boards = response.get("boards") or []
    board = boards[0] if boards and boards[0] else {}
    sprints = (board.get("items_page") or {}).get("items") or []
    return sprints_metadata_report(sprints)


# --- Sprints Boards Discovery ---


def _board_info(board_id: str, board: dict[str, Any] | None, fallback_name: str) -> dict[str, str]:
    board = board or {}
    workspace = board.get("workspace") or {}
    return {
        "id": board_id,
        "name": board.get("name") or fallback_name,
        "workspace_id": workspace.get("id") or "unknown",
        "workspace_name": workspace.get("name") or "Unknown",
    }


def extract_board_pairs(boards: list[dict[str, Any]]) -> list[dict[str, dict[str, str]]]:
    """Pair sprints boards with tasks boards through their relation columns.

    Either side of a pair is enough to find it, so a board that fell out of
    the recent-boards window still shows up under a generic name.
    """
    boards_by_id = {str(board["id"]): board for board in boards}
    pairs: dict[str, dict[str, dict[str, str]]] = {}

    for board in boards:
        if not board.get("columns"):
            continue
        board_id = str(board["id"])

        if is_sprints_board(board):
            column = get_board_relation_column(board, SPRINT_TASKS)
            tasks_board_id = get_related_board_id(column) if column else None
            key = f"{board_id}:{tasks_board_id}"
            if tasks_board_id and key not in pairs:
                pairs[key] = {
                    "sprints_board": _board_info(board_id, board, f"Sprints Board {board_id}"),
                    "tasks_board": _board_info(
                        tasks_board_id, boards_by_id.get(tasks_board_id), f"Tasks Board {tasks_board_id}",
                    ),
                }

        if is_tasks_board(board):
            column = get_board_relation_column(board, TASK_SPRINT)
            sprints_board_id = get_related_board_id(column) if column else None
            key = f"{sprints_board_id}:{board_id}"
            if sprints_board_id and key not in pairs:
                pairs[key] = {
                    "sprints_board": _board_info(
                        sprints_board_id, boards_by_id.get(sprints_board_id), f"Sprints Board {sprints_board_id}",
                    ),
                    "tasks_board": _board_info(board_id, board, f"Tasks Board {board_id}"),
                }

    return list(pairs.values())


def _multiple_pairs_warning(count: int) -> str:
    return (
        "## ⚠️ Multiple SprintsBoard Detected\n"
        f"**{count}** different board pairs found. Each pair is isolated and workspace-specific.\n"
        "**AI Agent - REQUIRED:** Before ANY operation, confirm with user which pair and workspace to use.\n"
        "---\n"
    )


def _pair_details(pair: dict[str, dict[str, str]], index: int) -> str:
    sprints, tasks = pair["sprints_board"], pair["tasks_board"]
    return (
        f"### Pair {index + 1}\n"
        "**Sprints Board:**\n"
        f"- ID: `{sprints['id']}`\n"
        f"- Name: {sprints['name']}\n"
        f"- Workspace: {sprints['workspace_name']} (ID: {sprints['workspace_id']})\n"
        "\n"
        "**Tasks Board:**\n"
        f"- ID: `{tasks['id']}`\n"
        f"- Name: {tasks['name']}\n"
        f"- Workspace: {tasks['workspace_name']} (ID: {tasks['workspace_id']})\n"
        "---\n"
        "\n"
    )


TECHNICAL_REFERENCE = (
    "## 📋 Technical Reference\n"
    "\n"
    "**Sprint Operations** (all require correct board pair):\n"
    "• Add to Sprint: Update `task_sprint` column with sprint item ID\n"
    "• Remove from Sprint: Clear `task_sprint` column (set to null)\n"
    "• Search in Sprint: Filter where `task_sprint` equals sprint item ID\n"
    "• Move Between Sprints: Update `task_sprint` with new sprint item ID\n"
    "• Backlog Tasks: `task_sprint` is empty/null\n"
    "\n"
    "**Critical:** `task_sprint` column references ONLY its paired sprints board. "
    "Cross-pair operations WILL FAIL."
)


def sprints_boards_report(pairs: list[dict[str, dict[str, str]]]) -> str:
    warning = _multiple_pairs_warning(len(pairs)) if len(pairs) > 1 else ""
    details = "".join(_pair_details(pair, index) for index, pair in enumerate(pairs))
    return (
        "# Monday-Dev Sprints Boards Discovery\n"
        "\n"
        f"{warning}## Boards\n"
        "\n"
        f"Found **{len(pairs)}** matched pair(s):\n"
        "\n"
        f"{details}{TECHNICAL_REFERENCE}"
    )


def no_pairs_found_message(boards_checked: int) -> str:
    return (
        "## No Monday-Dev Sprints Board Pairs Found\n"
        "\n"
        f"**Boards Checked:** {boards_checked} (recently used)\n"
        "\n"
        "No board pairs with sprint relationships found in your recent boards.\n"
        "\n"
        "### Possible Reasons:\n"
        "1. Boards exist but not accessed recently by your account\n"
        "2. Missing access permissions to sprint/task boards\n"
        "3. Monday-dev product was not set up in account\n"
        "\n"
        "### Next Steps:\n"
        "1. Ask user to access monday-dev boards in UI to refresh recent boards list\n"
        "2. Ask user to verify permissions to view sprint and task boards\n"
        "3. Ask user to provide board IDs manually if known"
    )


async def run_get_monday_dev_sprints_boards(client: MondayAPIClient) -> str:
    try:
        response = await client.request(
            GET_RECENT_BOARDS_QUERY, {"limit": RECENT_BOARDS_LIMIT}, operation="GetRecentBoards",
        )
        boards = [board for board in response.get("boards") or [] if board]
        if not boards:
            return (
                f"{ErrorPrefix.BOARD_NOT_FOUND} No boards found in your account. "
                "Please verify you have access to monday.com boards."
            )

        pairs = extract_board_pairs(boards)
        if not pairs:
            return no_pairs_found_message(len(boards))
        return sprints_boards_report(pairs)
    except Exception as exc:
        logger.error("Sprints boards discovery failed: %s", exc, exc_info=True)
        return f"{ErrorPrefix.INTERNAL_ERROR} Error retrieving sprints boards: {_reason(exc)}"


# --- Tools ---


GET_SPRINT_SUMMARY_DESCRIPTION = """Get the complete summary and analysis of a sprint.

## Purpose:
Unlock deep insights into completed sprint performance.

The sprint summary content including:
- **Scope Management**: Analysis of planned vs. unplanned tasks, scope creep
- **Velocity & Performance**: Individual velocity, task completion rates, workload distribution per team member
- **Task Distribution**: Breakdown of completed tasks by type (Feature, Bug, Tech Debt, Infrastructure, etc.)
- **AI Recommendations**: Action items, process improvements, retrospective focus areas

## Requirements:
- Sprint must be completed and must be created after 1/1/2025

## Important Note:
When viewing the section "Completed by Assignee", you'll see user IDs in the format "@user-12345678". the 8 digits after the @is the user ID. To retrieve the actual owner names, use the list_users_and_teams tool with the user ID and set includeTeams=false for optimal performance.
"""

GET_SPRINTS_METADATA_DESCRIPTION = f"""Get comprehensive sprint metadata from a monday-dev sprints board including:

## Data Retrieved:
A table of sprints with the following information:
- Sprint ID
- Sprint Name
- Sprint timeline (planned from/to dates)
- Sprint completion status (completed/in-progress/planned)
- Sprint start date (actual)
- Sprint end date (actual)
- Sprint activation status
- Sprint summary document object ID

## Parameters:
- **limit**: Number of sprints to retrieve (default: {DEFAULT_SPRINTS_LIMIT}, max: {MAX_SPRINTS_LIMIT})

Requires the Main Sprints board ID of the monday-dev containing your sprints."""

GET_SPRINTS_BOARDS_DESCRIPTION = f"""Discover monday-dev sprints boards and their associated tasks boards in your account.

## Purpose:
Identifies and returns monday-dev sprints board IDs and tasks board IDs that you need to use with other monday-dev tools.
This tool scans your recently used boards (up to {RECENT_BOARDS_LIMIT}) to find valid monday-dev sprint management boards.

## What it Returns:
- Pairs of sprints boards and their corresponding tasks boards
- Board IDs, names, and workspace information for each pair
- The bidirectional relationship between each sprints board and its tasks board

## Note:
Searches recently used boards (up to {RECENT_BOARDS_LIMIT}). If none found, ask user to provide board IDs manually."""


@tool("get_sprint_summary", GET_SPRINT_SUMMARY_DESCRIPTION, SprintSummaryInput.model_json_schema())
async def get_sprint_summary(args: dict[str, Any]) -> dict[str, Any]:
    validated, err = _validate(SprintSummaryInput, args)
    if err:
        return err
    return await _safe_call(run_get_sprint_summary(get_http_client(), validated))


@tool("get_sprints_metadata", GET_SPRINTS_METADATA_DESCRIPTION, SprintsMetadataInput.model_json_schema())
async def get_sprints_metadata(args: dict[str, Any]) -> dict[str, Any]:
    validated, err = _validate(SprintsMetadataInput, args)
    if err:
        return err
    return await _safe_call(run_get_sprints_metadata(get_http_client(), validated))


@tool(
    "get_monday_dev_sprints_boards",
    GET_SPRINTS_BOARDS_DESCRIPTION,
    SprintsBoardsInput.model_json_schema(),
)
async def get_monday_dev_sprints_boards(args: dict[str, Any]) -> dict[str, Any]:
    return await _safe_call(run_get_monday_dev_sprints_boards(get_http_client()))
