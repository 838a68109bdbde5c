"""End-to-end checks through an in-memory MCP client session."""
import pytest
import respx
from httpx import Response
from mcp.shared.memory import create_connected_server_and_client_session

from raindrop_mcp.api import RaindropAPI
from raindrop_mcp.server import RaindropRegistry
from raindrop_mcp.tools import TOOLS

MOCK_TOKEN = "test-token"
BASE_URL = "https://api.raindrop.io/rest/v1"


@pytest.fixture
def registry():
    return RaindropRegistry(RaindropAPI(MOCK_TOKEN))


@pytest.mark.asyncio
async def test_initialize_and_list(registry):
    async with create_connected_server_and_client_session(registry.server) as client:
        tools = await client.list_tools()
        assert {t.name for t in tools.tools} == set(TOOLS)

        resources = await client.list_resources()
        assert "raindrop://collections/all" in {str(r.uri) for r in resources.resources}

        templates = await client.list_resource_templates()
        assert "raindrop://tags/item/{name}" in {t.uriTemplate for t in templates.resourceTemplates}


@pytest.mark.asyncio
async def test_call_tool_success(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/collection/3").mock(
            return_value=Response(200, json={"item": {"_id": 3, "title": "Reading", "count": 2}})
        )
        async with create_connected_server_and_client_session(registry.server) as client:
            result = await client.call_tool("collection_get", {"id": 3})

    assert result.isError is False
    block = result.content[0]
    assert block.text == "Reading (ID: 3, 2 items)"
    assert block.metadata["id"] == 3


@pytest.mark.asyncio
async def test_call_tool_error_result(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/collection/3").mock(return_value=Response(503))
        async with create_connected_server_and_client_session(registry.server) as client:
            result = await client.call_tool("collection_get", {"id": 3})

    assert result.isError is True
    assert result.content[0].text == "Failed to get collection: Raindrop.io Server Error: 503"


@pytest.mark.asyncio
async def test_call_tool_validation_error(registry):
    async with create_connected_server_and_client_session(registry.server) as client:
        result = await client.call_tool("bookmark_search", {"perPage": 500})

    assert result.isError is True
    assert result.content[0].text.startswith("Invalid arguments for bookmark_search: perPage")


@pytest.mark.asyncio
async def test_read_resource(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/tags/0").mock(
            return_value=Response(200, json={"items": [{"_id": "python", "count": 4}]})
        )
        async with create_connected_server_and_client_session(registry.server) as client:
            result = await client.read_resource("raindrop://tags/all")

    assert result.metadata == {"totalCount": 1}
    assert result.contents[0].text == "python (4 bookmarks)"
    assert str(result.contents[0].uri) == "raindrop://tags/item/python"
