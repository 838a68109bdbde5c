import pytest
import respx
from httpx import Response
from mcp import types
from mcp.shared.exceptions import McpError

from raindrop_mcp.api import RaindropAPI
from raindrop_mcp.content import item_uri
from raindrop_mcp.resources import UnknownResource, compile_template, match_resource
from raindrop_mcp.server import RaindropRegistry

MOCK_TOKEN = "test-token"
BASE_URL = "https://api.raindrop.io/rest/v1"


@pytest.fixture
def registry():
    return RaindropRegistry(RaindropAPI(MOCK_TOKEN))


def test_compile_template():
    pattern = compile_template("raindrop://bookmarks/item/{id}")
    assert pattern.match("raindrop://bookmarks/item/42").group("id") == "42"
    assert pattern.match("raindrop://bookmarks/item/42/extra") is None
    assert pattern.match("raindrop://bookmarks/item/") is None


def test_match_resource_unquotes_variables():
    spec, variables = match_resource(item_uri("tags", "machine learning"))
    assert spec.name == "tag-details"
    assert variables == {"name": "machine learning"}

    with pytest.raises(UnknownResource):
        match_resource("raindrop://nothing/here")


def test_listing(registry):
    static = {str(r.uri) for r in registry.list_resources()}
    assert static == {
        "raindrop://collections/all",
        "raindrop://tags/all",
        "raindrop://highlights/all",
        "raindrop://user/profile",
        "raindrop://user/statistics",
    }
    templates = {t.uriTemplate for t in registry.list_resource_templates()}
    assert "raindrop://bookmarks/item/{id}" in templates
    assert "raindrop://highlights/collection/{collectionId}" in templates
    assert len(templates) == 9


@pytest.mark.asyncio
async def test_read_collections_all(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/collections").mock(return_value=Response(200, json={"items": [{"_id": 1, "title": "A"}]}))
        respx_mock.get("/collections/childrens").mock(
            return_value=Response(200, json={"items": [{"_id": 2, "title": "B", "parent": {"$id": 1}}]})
        )
        listing = await registry.read_resource("raindrop://collections/all")

        assert listing.metadata == {"totalCount": 2}
        assert [str(c.uri) for c in listing.contents] == [
            "raindrop://collections/item/1",
            "raindrop://collections/item/2",
        ]
        assert listing.contents[1].metadata["parentId"] == 1


@pytest.mark.asyncio
async def test_read_collection_bookmarks(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrops/-1").mock(
            return_value=Response(
                200, json={"items": [{"_id": 9, "link": "https://x.com", "title": "X"}], "count": 30}
            )
        )
        listing = await registry.read_resource("raindrop://bookmarks/collection/-1")
        assert listing.metadata == {"collectionId": -1, "totalCount": 30, "returned": 1}
        assert listing.contents[0].metadata["collectionId"] == -1


@pytest.mark.asyncio
async def test_read_tag_item(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/tags/0").mock(
            return_value=Response(200, json={"items": [{"_id": "machine learning", "count": 2}]})
        )
        listing = await registry.read_resource("raindrop://tags/item/machine%20learning")
        assert listing.contents[0].text == "machine learning (2 bookmarks)"
        assert str(listing.contents[0].uri) == "raindrop://tags/item/machine%20learning"

        with pytest.raises(McpError) as exc:
            await registry.read_resource("raindrop://tags/item/missing")
        assert exc.value.error.code == types.INTERNAL_ERROR


@pytest.mark.asyncio
async def test_read_highlight_item(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/highlights").mock(
            return_value=Response(200, json={"items": [{"_id": "h1", "text": "x" * 150, "raindropRef": 3}]})
        )
        listing = await registry.read_resource("raindrop://highlights/item/h1")
        content = listing.contents[0]
        assert content.text == "x" * 100 + "..."
        assert content.metadata["text"] == "x" * 150
        assert content.metadata["bookmarkId"] == 3


@pytest.mark.asyncio
async def test_read_user_statistics(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/user/stats").mock(return_value=Response(200, json={"items": [{"_id": 0, "count": 5}]}))
        respx_mock.get("/collections").mock(return_value=Response(200, json={"items": []}))
        respx_mock.get("/collections/childrens").mock(return_value=Response(200, json={"items": []}))
        respx_mock.get("/tags/0").mock(return_value=Response(200, json={"items": []}))

        listing = await registry.read_resource("raindrop://user/statistics")
        assert listing.contents[0].metadata["count"] == 5
        assert listing.contents[0].metadata["category"] == "user-stats"


@pytest.mark.asyncio
async def test_unknown_resource(registry):
    with pytest.raises(McpError) as exc:
        await registry.read_resource("raindrop://bookmarks/everything")
    assert exc.value.error.code == types.INVALID_PARAMS
    assert "Unknown resource" in exc.value.error.message


@pytest.mark.asyncio
async def test_non_integer_id(registry):
    with pytest.raises(McpError) as exc:
        await registry.read_resource("raindrop://bookmarks/item/abc")
    assert exc.value.error.code == types.INVALID_PARAMS
    assert "id must be an integer" in exc.value.error.message


@pytest.mark.asyncio
async def test_remote_failure(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrop/5").mock(return_value=Response(404, json={"result": False}))
        with pytest.raises(McpError) as exc:
            await registry.read_resource("raindrop://bookmarks/item/5")
    assert exc.value.error.code == types.INTERNAL_ERROR
    assert exc.value.error.message.startswith("Failed to read raindrop://bookmarks/item/5")
