import json

import pytest
import respx
from httpx import Response

from raindrop_mcp.api import RaindropAPI
from raindrop_mcp.server import RaindropRegistry
from raindrop_mcp.tools import ToolError

MOCK_TOKEN = "test-token"
BASE_URL = "https://api.raindrop.io/rest/v1"

SORT_KEYS = ["title", "-title", "domain", "-domain", "created", "-created", "lastUpdate", "-lastUpdate"]


@pytest.fixture
def registry():
    return RaindropRegistry(RaindropAPI(MOCK_TOKEN))


def bookmark(i, **extra):
    item = {
        "_id": i,
        "link": f"https://site{i}.com",
        "title": f"Item {i}",
        "tags": [],
        "collection": {"$id": 10},
        "created": "2024-01-01T00:00:00Z",
    }
    item.update(extra)
    return item


@pytest.mark.asyncio
@pytest.mark.parametrize("sort", SORT_KEYS)
async def test_search_reports_has_more(registry, sort):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.get("/raindrops/0").mock(
            return_value=Response(200, json={"items": [bookmark(i) for i in range(25)], "count": 60})
        )
        blocks = await registry.call_tool("bookmark_search", {"page": 1, "sort": sort})

        summary = blocks[0]
        assert summary.metadata["total"] == 60
        assert summary.metadata["hasMore"] is True
        assert summary.metadata["sort"] == sort
        assert len(blocks) == 26
        assert route.calls.last.request.url.params["sort"] == sort


@pytest.mark.asyncio
async def test_search_last_page(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrops/10").mock(
            return_value=Response(200, json={"items": [bookmark(i) for i in range(10)], "count": 60})
        )
        blocks = await registry.call_tool("bookmark_search", {"collection": 10, "page": 2})
        assert blocks[0].metadata["hasMore"] is False
        assert blocks[0].text == "Showing 10 of 60 bookmarks (page 2, 25 per page)"


@pytest.mark.asyncio
async def test_search_blocks_are_resources(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrops/0").mock(
            return_value=Response(200, json={"items": [bookmark(7, tags=["ai"])], "count": 1})
        )
        blocks = await registry.call_tool("bookmark_search", {"query": "ai", "tags": ["ai"]})
        resource = blocks[1].resource
        assert str(resource.uri) == "raindrop://bookmarks/item/7"
        assert resource.metadata["tags"] == ["ai"]
        assert resource.metadata["collectionId"] == 10
        assert "[ID: 7] Item 7" in resource.text


@pytest.mark.asyncio
async def test_search_date_range_includes_both_ends(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.get("/raindrops/0").mock(return_value=Response(200, json={"items": [], "count": 0}))
        await registry.call_tool(
            "bookmark_search", {"createdStart": "2024-03-01", "createdEnd": "2024-03-31"}
        )
        assert route.calls.last.request.url.params["search"] == "created:>2024-02-29 created:<2024-04-01"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "arguments",
    [
        {"perPage": 51},
        {"perPage": 0},
        {"page": -1},
        {"sort": "random"},
        {"media": "podcast"},
        {"createdStart": "last week"},
    ],
)
async def test_search_rejects_bad_arguments(registry, arguments):
    with pytest.raises(ToolError, match="Invalid arguments for bookmark_search"):
        await registry.call_tool("bookmark_search", arguments)


@pytest.mark.asyncio
async def test_get_missing_bookmark_suggests_recent(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrop/999").mock(return_value=Response(404, json={"result": False}))
        recent = respx_mock.get("/raindrops/0").mock(
            return_value=Response(200, json={"items": [bookmark(i) for i in range(1, 8)], "count": 7})
        )

        with pytest.raises(ToolError) as exc:
            await registry.call_tool("bookmark_get", {"id": 999})

        message = str(exc.value)
        assert message.startswith("Bookmark ID 999 not found.")
        assert "1: Item 1" in message
        assert "bookmark_search" in message
        assert len(exc.value.suggestions) == 5
        assert exc.value.suggestions[0] == {"id": 1, "title": "Item 1"}
        assert recent.calls.last.request.url.params["perpage"] == "5"


@pytest.mark.asyncio
async def test_get_missing_bookmark_without_suggestions(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrop/999").mock(return_value=Response(404, json={"result": False}))
        respx_mock.get("/raindrops/0").mock(return_value=Response(500))

        with pytest.raises(ToolError) as exc:
            await registry.call_tool("bookmark_get", {"id": 999})
        assert str(exc.value) == "Bookmark ID 999 not found. Use bookmark_search to find available bookmarks."
        assert exc.value.suggestions == []


@pytest.mark.asyncio
async def test_create_then_get_round_trip(registry):
    created = bookmark(55, link="https://example.com/a", title="Example", tags=["a", "b"])
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        create = respx_mock.post("/raindrop").mock(return_value=Response(200, json={"item": created}))
        respx_mock.get("/raindrop/55").mock(return_value=Response(200, json={"item": created}))

        blocks = await registry.call_tool(
            "bookmark_create",
            {"url": "https://example.com/a", "collectionId": 10, "tags": ["a", "b"], "description": "An example"},
        )
        new_id = blocks[0].resource.metadata["id"]

        fetched = (await registry.call_tool("bookmark_get", {"id": new_id}))[0].resource.metadata
        assert fetched["link"] == "https://example.com/a"
        assert set(fetched["tags"]) == {"a", "b"}
        assert fetched["collectionId"] == 10

        assert json.loads(create.calls.last.request.content) == {
            "link": "https://example.com/a",
            "collection": {"$id": 10},
            "excerpt": "An example",
            "tags": ["a", "b"],
            "important": False,
        }


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["example.com", "not a url", ""])
async def test_create_rejects_invalid_url(registry, url):
    with pytest.raises(ToolError, match="url"):
        await registry.call_tool("bookmark_create", {"url": url, "collectionId": 10})


@pytest.mark.asyncio
async def test_update_moves_bookmark(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.put("/raindrop/5").mock(
            return_value=Response(200, json={"item": bookmark(5, title="New", collection={"$id": 3})})
        )
        blocks = await registry.call_tool("bookmark_update", {"id": 5, "title": "New", "collectionId": 3})
        assert blocks[0].resource.metadata["collectionId"] == 3
        assert json.loads(route.calls.last.request.content) == {"title": "New", "collection": {"$id": 3}}


@pytest.mark.asyncio
async def test_recent(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.get("/raindrops/0").mock(
            return_value=Response(200, json={"items": [bookmark(1), bookmark(2)], "count": 2})
        )
        blocks = await registry.call_tool("bookmark_recent", {"count": 2})
        assert blocks[0].text.startswith("Your 2 most recent bookmarks:")
        assert len(blocks) == 3
        params = route.calls.last.request.url.params
        assert params["perpage"] == "2"
        assert params["sort"] == "-created"


@pytest.mark.asyncio
async def test_recent_count_bounds(registry):
    with pytest.raises(ToolError):
        await registry.call_tool("bookmark_recent", {"count": 21})


@pytest.mark.asyncio
async def test_batch_tag_add_is_idempotent(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrop/1").mock(return_value=Response(200, json={"item": bookmark(1, tags=["x"])}))
        respx_mock.get("/raindrop/2").mock(
            return_value=Response(200, json={"item": bookmark(2, tags=["x", "t"])})
        )
        update = respx_mock.put("/raindrop/1").mock(
            return_value=Response(200, json={"item": bookmark(1, tags=["x", "t"])})
        )

        blocks = await registry.call_tool(
            "bookmark_batch_operations", {"operation": "tag_add", "bookmarkIds": [1, 2], "tags": ["t"]}
        )

        assert blocks[0].text == "Successfully added tags [t] to 2 bookmarks"
        assert blocks[0].metadata["affectedBookmarks"] == 2
        # Bookmark 2 already carries the tag, so only bookmark 1 is written
        assert update.call_count == 1
        assert json.loads(update.calls.last.request.content) == {"tags": ["x", "t"]}


@pytest.mark.asyncio
async def test_batch_tag_remove(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.get("/raindrop/1").mock(
            return_value=Response(200, json={"item": bookmark(1, tags=["x", "old"])})
        )
        update = respx_mock.put("/raindrop/1").mock(return_value=Response(200, json={"item": bookmark(1)}))

        await registry.call_tool(
            "bookmark_batch_operations", {"operation": "tag_remove", "bookmarkIds": [1], "tags": ["old"]}
        )
        assert json.loads(update.calls.last.request.content) == {"tags": ["x"]}


@pytest.mark.asyncio
async def test_batch_move(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.put("/raindrops/0").mock(return_value=Response(200, json={"result": True}))
        blocks = await registry.call_tool(
            "bookmark_batch_operations", {"operation": "move", "bookmarkIds": [1, 2], "collectionId": 9}
        )
        assert blocks[0].text == "Successfully moved 2 bookmarks"
        assert json.loads(route.calls.last.request.content) == {"collection": {"$id": 9}, "ids": [1, 2]}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "arguments, message",
    [
        ({"operation": "move", "bookmarkIds": [1]}, "collectionId required for move operation"),
        ({"operation": "update", "bookmarkIds": [1]}, "collectionId or important required for update operation"),
        ({"operation": "tag_add", "bookmarkIds": [1]}, "tags required for tag_add operation"),
        ({"operation": "delete", "bookmarkIds": []}, "bookmarkIds"),
    ],
)
async def test_batch_validation(registry, arguments, message):
    with pytest.raises(ToolError, match=message):
        await registry.call_tool("bookmark_batch_operations", arguments)


@pytest.mark.asyncio
async def test_batch_delete_stops_at_first_failure(registry):
    async with respx.mock(base_url=BASE_URL, assert_all_called=False) as respx_mock:
        first = respx_mock.delete("/raindrop/1").mock(return_value=Response(200, json={"result": True}))
        respx_mock.delete("/raindrop/2").mock(return_value=Response(500))
        third = respx_mock.delete("/raindrop/3").mock(return_value=Response(200, json={"result": True}))

        with pytest.raises(ToolError, match="Failed to perform batch operation"):
            await registry.call_tool(
                "bookmark_batch_operations", {"operation": "delete", "bookmarkIds": [1, 2, 3]}
            )
        assert first.called
        assert not third.called


@pytest.mark.asyncio
async def test_batch_delete_permanent(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.delete("/raindrop/4").mock(return_value=Response(200, json={"result": True}))
        blocks = await registry.call_tool(
            "bookmark_batch_operations", {"operation": "delete_permanent", "bookmarkIds": [4]}
        )
        assert blocks[0].text == "Successfully permanently deleted 1 bookmarks"
        assert route.call_count == 2


@pytest.mark.asyncio
async def test_reminders(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.put("/raindrop/5").mock(
            return_value=Response(200, json={"item": bookmark(5, reminder={"data": "2025-03-01T09:00:00.000Z"})})
        )

        blocks = await registry.call_tool(
            "bookmark_reminders", {"operation": "set", "bookmarkId": 5, "date": "2025-03-01T09:00:00.000Z"}
        )
        assert blocks[0].text == 'Reminder set for "Item 5" on 2025-03-01T09:00:00.000Z'
        assert json.loads(route.calls.last.request.content) == {"reminder": {"data": "2025-03-01T09:00:00.000Z"}}

        blocks = await registry.call_tool("bookmark_reminders", {"operation": "remove", "bookmarkId": 5})
        assert blocks[0].text == "Reminder removed from bookmark 5"


@pytest.mark.asyncio
async def test_reminder_requires_date(registry):
    with pytest.raises(ToolError, match="date required for set operation"):
        await registry.call_tool("bookmark_reminders", {"operation": "set", "bookmarkId": 5})


@pytest.mark.asyncio
async def test_remote_errors_are_prefixed(registry):
    async with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.put("/raindrop/5").mock(return_value=Response(429, headers={"Retry-After": "30"}))
        with pytest.raises(ToolError) as exc:
            await registry.call_tool("bookmark_update", {"id": 5, "title": "x"})
        assert str(exc.value) == "Failed to update bookmark: Rate limit exceeded. Retry after 30s"


@pytest.mark.asyncio
async def test_unknown_tool(registry):
    with pytest.raises(ToolError, match="Unknown tool: bookmark_teleport"):
        await registry.call_tool("bookmark_teleport", {})
