"""Document creation in a workspace or on an item's doc column."""

import logging
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from claude_agent_sdk import tool

from monday_mcp.toolkit.http import MondayAPIClient, get_http_client
from monday_mcp.toolkit.tools.common import ColumnType, _safe_call, _validate

logger = logging.getLogger("monday_mcp.toolkit.tools.docs")

BoardKind = Literal["public", "private", "share"]

CREATE_DOC_MUTATION = """
mutation createDoc($location: CreateDocInput!) {
  create_doc(location: $location) {
    id
    url
    name
  }
}
"""

GET_ITEM_BOARD_QUERY = """
query getItemBoard($itemId: ID!) {
  items(ids: [$itemId]) {
    id
    board {
      id
      columns {
        id
        type
      }
    }
  }
}
"""

CREATE_COLUMN_MUTATION = """
mutation createColumn(
  $boardId: ID!
  $columnType: ColumnType!
  $columnTitle: String!
  $columnDescription: String
  $columnSettings: JSON
) {
  create_column(
    board_id: $boardId
    column_type: $columnType
    title: $columnTitle
    description: $columnDescription
    defaults: $columnSettings
  ) {
    id
  }
}
"""

UPDATE_DOC_NAME_MUTATION = """
mutation updateDocName($docId: ID!, $name: String!) {
  update_doc_name(docId: $docId, name: $name)
}
"""

ADD_CONTENT_MUTATION = """
mutation addContentToDocFromMarkdown($docId: ID!, $markdown: String!, $afterBlockId: String) {
  add_content_to_doc_from_markdown(docId: $docId, markdown: $markdown, afterBlockId: $afterBlockId) {
    success
    block_ids
    error
  }
}
"""


class DocCreationFailure(Exception):
    """A creation step failed; the message is the text returned to the agent."""


# --- Input Models ---


class CreateDocInput(BaseModel):
    doc_name: str = Field(..., description="Name for the new document.")
    markdown: str = Field(
        ..., description="Markdown content that will be imported into the newly created document as blocks.",
    )
    location: Literal["workspace", "item"] = Field(
        ...,
        description="Location where the document should be created - either in a workspace or attached to an item",
    )
    workspace_id: int | None = Field(
        None,
        description='[REQUIRED - use only when location="workspace"] Workspace ID under which to create the new document',
    )
    doc_kind: BoardKind | None = Field(
        None,
        description=(
            '[OPTIONAL - use only when location="workspace"] Document kind (public/private/share). '
            "Defaults to public."
        ),
    )
    folder_id: int | None = Field(
        None,
        description=(
            '[OPTIONAL - use only when location="workspace"] Optional folder ID to place the document '
            "inside a specific folder"
        ),
    )
    item_id: int | None = Field(
        None,
        description='[REQUIRED - use only when location="item"] Item ID to attach the new document to',
    )
    column_id: str | None = Field(
        None,
        description=(
            '[OPTIONAL - use only when location="item"] ID of an existing "doc" column on the board which '
            "contains the item. If not provided, the tool will create a new doc column automatically when "
            "creating a doc on an item."
        ),
    )


class WorkspaceDocLocation(BaseModel):
    type: Literal["workspace"]
    workspace_id: int
    doc_kind: BoardKind | None = None
    folder_id: int | None = None


class ItemDocLocation(BaseModel):
    type: Literal["item"]
    item_id: int
    column_id: str | None = None


DocLocation = TypeAdapter(
    Annotated[WorkspaceDocLocation | ItemDocLocation, Field(discriminator="type")]
)


def parse_location(params: CreateDocInput) -> WorkspaceDocLocation | ItemDocLocation | None:
    """Check that the fields required by ``params.location`` are present."""
    try:
        return DocLocation.validate_python({**params.model_dump(), "type": params.location})
    except ValidationError:
        return None


# --- Creation Steps ---


async def create_workspace_doc(
    client: MondayAPIClient, location: WorkspaceDocLocation, doc_name: str,
) -> dict[str, Any]:
    workspace: dict[str, Any] = {
        "workspace_id": str(location.workspace_id),
        "name": doc_name,
        "kind": location.doc_kind or "public",
    }
    if location.folder_id is not None:
        workspace["folder_id"] = str(location.folder_id)
    response = await client.request(
        CREATE_DOC_MUTATION, {"location": {"workspace": workspace}}, operation="createDoc",
    )
    return response.get("create_doc") or {}


async def resolve_doc_column(client: MondayAPIClient, location: ItemDocLocation) -> str:
    """Return the doc column to attach to, creating one on the board if needed.

    Raises DocCreationFailure when the item is missing or the column cannot be made.
    """
    response = await client.request(
        GET_ITEM_BOARD_QUERY, {"itemId": str(location.item_id)}, operation="getItemBoard",
    )
    items = response.get("items") or []
    if not items or not items[0]:
        raise DocCreationFailure(f"Error: Item with id {location.item_id} not found.")

    if location.column_id:
        return location.column_id

    board = items[0].get("board") or {}
    for column in board.get("columns") or []:
        if column and column.get("type") == ColumnType.DOC:
            return column["id"]

    column_response = await client.request(
        CREATE_COLUMN_MUTATION,
        {"boardId": str(board.get("id")), "columnType": ColumnType.DOC.value, "columnTitle": "Doc"},
        operation="createColumn",
    )
    column_id = (column_response.get("create_column") or {}).get("id")
    if not column_id:
        raise DocCreationFailure("Error: Failed to create doc column.")
    return column_id


async def create_item_doc(
    client: MondayAPIClient, location: ItemDocLocation, doc_name: str,
) -> dict[str, Any]:
    column_id = await resolve_doc_column(client, location)
    response = await client.request(
        CREATE_DOC_MUTATION,
        {"location": {"board": {"item_id": str(location.item_id), "column_id": column_id}}},
        operation="createDoc",
    )
    doc = response.get("create_doc") or {}

    # Docs on items cannot be named at creation time
    if doc_name and doc.get("id"):
        try:
            await client.request(
                UPDATE_DOC_NAME_MUTATION,
                {"docId": doc["id"], "name": doc_name},
                operation="updateDocName",
            )
        except Exception as exc:
            logger.warning(
                "Failed to update doc name for doc %s: %s", doc["id"], exc,
                extra={"operation": "updateDocName"},
            )
    return doc


# --- Tool ---


async def run_create_doc(client: MondayAPIClient, params: CreateDocInput) -> str:
    location = parse_location(params)
    if location is None:
        return f"Required parameters were not provided for location parameter of {params.location}"

    try:
        if isinstance(location, WorkspaceDocLocation):
            doc = await create_workspace_doc(client, location, params.doc_name)
        else:
            doc = await create_item_doc(client, location, params.doc_name)

        doc_id = doc.get("id")
        if not doc_id:
            return "Error: Failed to create document."

        response = await client.request(
            ADD_CONTENT_MUTATION,
            {"docId": doc_id, "markdown": params.markdown},
            operation="addContentToDocFromMarkdown",
        )
    except DocCreationFailure as exc:
        return str(exc)
    except Exception as exc:
        logger.error("Document creation failed: %s", exc, exc_info=True)
        return f"Error creating document: {str(exc) or 'Unknown error'}"

    result = response.get("add_content_to_doc_from_markdown") or {}
    if not result.get("success"):
        return (
            f"Document {doc_id} created, but failed to add markdown content: "
            f"{result.get('error') or 'Unknown error'}"
        )

    url = doc.get("url")
    return f"✅ Document successfully created (id: {doc_id}). " + (f"\n\nURL: {url}" if url else "")


CREATE_DOC_DESCRIPTION = """Create a new monday.com doc either inside a workspace or attached to an item (via a doc column). After creation, the provided markdown will be appended to the document.

LOCATION TYPES:
- workspace: Creates a document in a workspace (requires workspace_id, optional doc_kind, optional folder_id)
- item: Creates a document attached to an item (requires item_id, optional column_id)

USAGE EXAMPLES:
- Workspace doc: { location: "workspace", workspace_id: 123, doc_kind: "private" , markdown: "..." }
- Workspace doc in folder: { location: "workspace", workspace_id: 123, folder_id: 17264196 , markdown: "..." }
- Item doc: { location: "item", item_id: 456, column_id: "doc_col_1" , markdown: "..." }"""


@tool("create_doc", CREATE_DOC_DESCRIPTION, CreateDocInput.model_json_schema())
async def create_doc(args: dict[str, Any]) -> dict[str, Any]:
    validated, err = _validate(CreateDocInput, args)
    if err:
        return err
    return await _safe_call(run_create_doc(get_http_client(), validated))
