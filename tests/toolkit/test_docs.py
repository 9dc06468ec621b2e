"""Tests for create_doc: location validation, workspace and item docs."""

from conftest import tool_text
from monday_mcp.toolkit.http import MondayAPIError
from monday_mcp.toolkit.tools.docs import (
    ADD_CONTENT_MUTATION,
    CREATE_COLUMN_MUTATION,
    CREATE_DOC_MUTATION,
    UPDATE_DOC_NAME_MUTATION,
    CreateDocInput,
    ItemDocLocation,
    WorkspaceDocLocation,
    create_doc,
    parse_location,
)

CONTENT_OK = {"add_content_to_doc_from_markdown": {"success": True, "block_ids": ["b1"]}}


def _queries(mock):
    return [call.args[0] for call in mock.request.await_args_list]


# --- Location Parsing ---


def test_parse_workspace_location():
    params = CreateDocInput(doc_name="Plan", markdown="# Plan", location="workspace", workspace_id=5, folder_id=9)
    location = parse_location(params)
    assert isinstance(location, WorkspaceDocLocation)
    assert location.folder_id == 9


def test_parse_item_location():
    params = CreateDocInput(doc_name="Notes", markdown="x", location="item", item_id=7)
    location = parse_location(params)
    assert isinstance(location, ItemDocLocation)
    assert location.column_id is None


def test_parse_location_missing_required_field():
    params = CreateDocInput(doc_name="Plan", markdown="x", location="workspace", item_id=7)
    assert parse_location(params) is None


# --- Workspace Docs ---


async def test_workspace_doc_created(patch_http_client):
    patch_http_client.request.side_effect = [
        {"create_doc": {"id": "d1", "url": "https://monday.com/docs/d1", "name": "Plan"}},
        CONTENT_OK,
    ]
    result = await create_doc.handler({
        "doc_name": "Plan",
        "markdown": "# Plan",
        "location": "workspace",
        "workspace_id": 5,
        "doc_kind": "private",
    })
    assert tool_text(result) == (
        "✅ Document successfully created (id: d1). \n\nURL: https://monday.com/docs/d1"
    )

    create_call, content_call = patch_http_client.request.await_args_list
    assert create_call.args == (
        CREATE_DOC_MUTATION,
        {"location": {"workspace": {"workspace_id": "5", "name": "Plan", "kind": "private"}}},
    )
    assert content_call.args == (ADD_CONTENT_MUTATION, {"docId": "d1", "markdown": "# Plan"})


async def test_workspace_doc_default_kind_and_folder(patch_http_client):
    patch_http_client.request.side_effect = [{"create_doc": {"id": "d1"}}, CONTENT_OK]
    result = await create_doc.handler({
        "doc_name": "Plan",
        "markdown": "x",
        "location": "workspace",
        "workspace_id": 5,
        "folder_id": 12,
    })
    assert tool_text(result) == "✅ Document successfully created (id: d1). "
    workspace = patch_http_client.request.await_args_list[0].args[1]["location"]["workspace"]
    assert workspace["kind"] == "public"
    assert workspace["folder_id"] == "12"


async def test_missing_location_fields(patch_http_client):
    result = await create_doc.handler({"doc_name": "Plan", "markdown": "x", "location": "item"})
    assert tool_text(result) == "Required parameters were not provided for location parameter of item"
    patch_http_client.request.assert_not_awaited()


async def test_create_returns_no_id(patch_http_client):
    patch_http_client.request.return_value = {"create_doc": None}
    result = await create_doc.handler({"doc_name": "P", "markdown": "x", "location": "workspace", "workspace_id": 1})
    assert tool_text(result) == "Error: Failed to create document."


async def test_markdown_failure_reported(patch_http_client):
    patch_http_client.request.side_effect = [
        {"create_doc": {"id": "d1"}},
        {"add_content_to_doc_from_markdown": {"success": False, "error": "bad markdown"}},
    ]
    result = await create_doc.handler({"doc_name": "P", "markdown": "x", "location": "workspace", "workspace_id": 1})
    assert tool_text(result) == "Document d1 created, but failed to add markdown content: bad markdown"


async def test_api_error_is_text(patch_http_client):
    patch_http_client.request.side_effect = MondayAPIError("Workspace not found")
    result = await create_doc.handler({"doc_name": "P", "markdown": "x", "location": "workspace", "workspace_id": 1})
    assert "isError" not in result
    assert tool_text(result) == "Error creating document: Workspace not found"


# --- Item Docs ---


async def test_item_doc_uses_existing_doc_column(patch_http_client):
    patch_http_client.request.side_effect = [
        {"items": [{"id": "7", "board": {"id": "3", "columns": [{"id": "files", "type": "file"}, {"id": "doc_1", "type": "doc"}]}}]},
        {"create_doc": {"id": "d2"}},
        {"update_doc_name": True},
        CONTENT_OK,
    ]
    result = await create_doc.handler({"doc_name": "Notes", "markdown": "x", "location": "item", "item_id": 7})
    assert tool_text(result).startswith("✅ Document successfully created (id: d2).")

    calls = patch_http_client.request.await_args_list
    assert calls[1].args[1] == {"location": {"board": {"item_id": "7", "column_id": "doc_1"}}}
    assert calls[2].args == (UPDATE_DOC_NAME_MUTATION, {"docId": "d2", "name": "Notes"})
    assert CREATE_COLUMN_MUTATION not in _queries(patch_http_client)


async def test_item_doc_creates_column(patch_http_client):
    patch_http_client.request.side_effect = [
        {"items": [{"id": "7", "board": {"id": "3", "columns": []}}]},
        {"create_column": {"id": "new_doc"}},
        {"create_doc": {"id": "d2"}},
        {"update_doc_name": True},
        CONTENT_OK,
    ]
    await create_doc.handler({"doc_name": "Notes", "markdown": "x", "location": "item", "item_id": 7})
    calls = patch_http_client.request.await_args_list
    assert calls[1].args == (CREATE_COLUMN_MUTATION, {"boardId": "3", "columnType": "doc", "columnTitle": "Doc"})
    assert calls[2].args[1]["location"]["board"]["column_id"] == "new_doc"


async def test_item_doc_explicit_column(patch_http_client):
    patch_http_client.request.side_effect = [
        {"items": [{"id": "7", "board": {"id": "3", "columns": []}}]},
        {"create_doc": {"id": "d2"}},
        {"update_doc_name": True},
        CONTENT_OK,
    ]
    await create_doc.handler({
        "doc_name": "Notes", "markdown": "x", "location": "item", "item_id": 7, "column_id": "my_doc",
    })
    calls = patch_http_client.request.await_args_list
    assert calls[1].args[1]["location"]["board"]["column_id"] == "my_doc"


async def test_item_not_found(patch_http_client):
    patch_http_client.request.return_value = {"items": []}
    result = await create_doc.handler({"doc_name": "Notes", "markdown": "x", "location": "item", "item_id": 7})
    assert tool_text(result) == "Error: Item with id 7 not found."


async def test_item_doc_column_creation_failure(patch_http_client):
    patch_http_client.request.side_effect = [
        {"items": [{"id": "7", "board": {"id": "3", "columns": []}}]},
        {"create_column": None},
    ]
    result = await create_doc.handler({"doc_name": "Notes", "markdown": "x", "location": "item", "item_id": 7})
    assert tool_text(result) == "Error: Failed to create doc column."


async def test_item_doc_rename_failure_is_ignored(patch_http_client):
    patch_http_client.request.side_effect = [
        {"items": [{"id": "7", "board": {"id": "3", "columns": [{"id": "doc_1", "type": "doc"}]}}]},
        {"create_doc": {"id": "d2"}},
        MondayAPIError("rename failed"),
        CONTENT_OK,
    ]
    result = await create_doc.handler({"doc_name": "Notes", "markdown": "x", "location": "item", "item_id": 7})
    assert tool_text(result).startswith("✅ Document successfully created (id: d2).")
