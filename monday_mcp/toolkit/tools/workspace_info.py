"""Workspace overview: boards, docs and folders grouped by folder."""

import json
from typing import Any

from pydantic import BaseModel, Field
from claude_agent_sdk import tool

from monday_mcp.toolkit.http import MondayAPIClient, get_http_client
from monday_mcp.toolkit.tools.common import _safe_call, _validate

WORKSPACE_OBJECTS_LIMIT = 100

GET_WORKSPACE_INFO_QUERY = """
query getWorkspaceInfo($workspace_id: ID!) {
  workspaces(ids: [$workspace_id]) {
    id
    name
    description
    kind
    created_at
    state
    is_default_workspace
    owners_subscribers {
      id
      name
      email
    }
  }
  boards(workspace_ids: [$workspace_id], limit: 100, order_by: used_at, state: active) {
    id
    name
    board_folder_id
  }
  docs(workspace_ids: [$workspace_id], limit: 100, order_by: used_at) {
    id
    name
    doc_folder_id
  }
  folders(workspace_ids: [$workspace_id], limit: 100) {
    id
    name
  }
}
"""


class WorkspaceInfoInput(BaseModel):
    workspace_id: int = Field(..., description="The ID of the workspace to get information for")


def _named(entries: list[Any] | None) -> list[dict[str, Any]]:
    """Drop null entries and entries missing an id or name."""
    return [
        entry for entry in entries or []
        if entry and entry.get("id") is not None and entry.get("name") is not None
    ]


def organize_workspace_info_hierarchy(response: dict[str, Any]) -> dict[str, Any]:
    """Group a getWorkspaceInfo response into folders and root-level items.

    Raises ValueError when the response holds no workspace.
    """
    workspaces = response.get("workspaces") or []
    workspace = workspaces[0] if workspaces else None
    if not workspace:
        raise ValueError("No workspace found")

    folders = {
        folder["id"]: {"id": folder["id"], "name": folder["name"], "boards": [], "docs": []}
        for folder in _named(response.get("folders"))
    }

    root_boards: list[dict[str, Any]] = []
    for board in _named(response.get("boards")):
        entry = {"id": board["id"], "name": board["name"]}
        folder_id = board.get("board_folder_id")
        if folder_id and folder_id in folders:
            folders[folder_id]["boards"].append(entry)
        else:
            root_boards.append(entry)

    root_docs: list[dict[str, Any]] = []
    for doc in _named(response.get("docs")):
        entry = {"id": doc["id"], "name": doc["name"]}
        folder_id = doc.get("doc_folder_id")
        if folder_id and folder_id in folders:
            folders[folder_id]["docs"].append(entry)
        else:
            root_docs.append(entry)

    owners = [
        {"id": owner["id"], "name": owner["name"], "email": owner["email"]}
        for owner in _named(workspace.get("owners_subscribers"))
        if owner.get("email") is not None
    ]

    return {
        "workspace": {
            "id": workspace.get("id"),
            "name": workspace.get("name"),
            "description": workspace.get("description") or "",
            "kind": workspace.get("kind") or "",
            "created_at": workspace.get("created_at") or "",
            "state": workspace.get("state") or "",
            "is_default_workspace": workspace.get("is_default_workspace") or False,
            "owners_subscribers": owners,
        },
        "folders": list(folders.values()),
        "root_items": {"boards": root_boards, "docs": root_docs},
    }


def _join_entries(entries: list[dict[str, Any]]) -> str:
    return ", ".join(f"{entry['name']} ({entry['id']})" for entry in entries) or "None"


def format_workspace_info(info: dict[str, Any]) -> str:
    workspace = info["workspace"]
    folders = info["folders"]
    root = info["root_items"]

    folder_sections = "\n".join(
        f"\n📁 {folder['name']} (ID: {folder['id']})\n"
        f"  - Boards ({len(folder['boards'])}): {_join_entries(folder['boards'])}\n"
        f"  - Docs ({len(folder['docs'])}): {_join_entries(folder['docs'])}"
        for folder in folders
    )
    total_boards = sum(len(folder["boards"]) for folder in folders) + len(root["boards"])
    total_docs = sum(len(folder["docs"]) for folder in folders) + len(root["docs"])

    return f"""Workspace Information:

**Workspace:** {workspace['name']} (ID: {workspace['id']})
- Description: {workspace['description'] or 'No description'}
- Kind: {workspace['kind']}
- State: {workspace['state']}
- Default Workspace: {'Yes' if workspace['is_default_workspace'] else 'No'}
- Created: {workspace['created_at']}
- Owners/Subscribers: {len(workspace['owners_subscribers'])} users

**Folders ({len(folders)}):**
{folder_sections}

**Root Level Items:**
- Boards ({len(root['boards'])}): {_join_entries(root['boards'])}
- Docs ({len(root['docs'])}): {_join_entries(root['docs'])}

**Summary:**
- Total Folders: {len(folders)}
- Total Boards: {total_boards}
- Total Docs: {total_docs}

{json.dumps(info, indent=2, ensure_ascii=False)}"""


async def run_workspace_info(client: MondayAPIClient, params: WorkspaceInfoInput) -> str:
    response = await client.request(
        GET_WORKSPACE_INFO_QUERY,
        {"workspace_id": params.workspace_id},
        operation="getWorkspaceInfo",
    )
    if not response.get("workspaces"):
        return f"No workspace found with ID {params.workspace_id}"
    return format_workspace_info(organize_workspace_info_hierarchy(response))


WORKSPACE_INFO_DESCRIPTION = (
    "This tool returns the boards, docs and folders in a workspace and which folder they are in. "
    f"It returns up to {WORKSPACE_OBJECTS_LIMIT} of each object type, if you receive "
    f"{WORKSPACE_OBJECTS_LIMIT} assume there are additional objects of that type in the workspace."
)


@tool("workspace_info", WORKSPACE_INFO_DESCRIPTION, WorkspaceInfoInput.model_json_schema())
async def workspace_info(args: dict[str, Any]) -> dict[str, Any]:
    validated, err = _validate(WorkspaceInfoInput, args)
    if err:
        return err
    return await _safe_call(run_workspace_info(get_http_client(), validated))
