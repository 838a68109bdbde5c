"""URI-addressed read-only views over the Raindrop.io account."""
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Pattern, Tuple
from urllib.parse import unquote

from mcp import types

from .api import NotFoundError, RaindropAPI
from .content import (
    URI_SCHEME,
    bookmark_metadata,
    bookmark_summary,
    collection_line,
    collection_metadata,
    highlight_metadata,
    item_uri,
    resource_contents,
    tag_line,
    tag_metadata,
    truncate,
)
from .models import SearchParams

_VARIABLE = re.compile(r"\{(\w+)\}")


class UnknownResource(LookupError):
    """No resource template matches the URI."""


def compile_template(template: str) -> Pattern:
    """Turn ``scheme://a/{b}`` into a regex with one named group per variable."""
    parts = []
    pos = 0
    for m in _VARIABLE.finditer(template):
        parts.append(re.escape(template[pos:m.start()]))
        parts.append(f"(?P<{m.group(1)}>[^/]+)")
        pos = m.end()
    parts.append(re.escape(template[pos:]))
    return re.compile("^" + "".join(parts) + "$")


@dataclass
class ResourceListing:
    contents: List[types.TextResourceContents]
    metadata: Optional[Dict[str, Any]] = None


Reader = Callable[..., Awaitable[ResourceListing]]


@dataclass
class ResourceSpec:
    uri: str
    name: str
    description: str
    reader: Reader
    pattern: Pattern = field(init=False)

    def __post_init__(self):
        self.pattern = compile_template(self.uri)

    @property
    def is_template(self) -> bool:
        return bool(_VARIABLE.search(self.uri))

    def match(self, uri: str) -> Optional[Dict[str, str]]:
        m = self.pattern.match(uri)
        if m is None:
            return None
        return {k: unquote(v) for k, v in m.groupdict().items()}


RESOURCES: List[ResourceSpec] = []


def resource(uri: str, name: str, description: str):
    def decorator(func: Reader) -> Reader:
        RESOURCES.append(ResourceSpec(uri=uri, name=name, description=description, reader=func))
        return func
    return decorator


def match_resource(uri: str) -> Tuple[ResourceSpec, Dict[str, str]]:
    for spec in RESOURCES:
        variables = spec.match(uri)
        if variables is not None:
            return spec, variables
    raise UnknownResource(f"Unknown resource: {uri}")


def _int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _collections(items, **extra) -> List[types.TextResourceContents]:
    return [
        resource_contents(item_uri("collections", c.id), collection_line(c), {**collection_metadata(c), **extra})
        for c in items
    ]


def _bookmark(b) -> types.TextResourceContents:
    return resource_contents(item_uri("bookmarks", b.id), bookmark_summary(b), bookmark_metadata(b))


def _highlights(items) -> List[types.TextResourceContents]:
    return [
        resource_contents(item_uri("highlights", h.id), truncate(h.text, 100), highlight_metadata(h))
        for h in items
    ]


def _tags(items, collection_id: Optional[int] = None) -> List[types.TextResourceContents]:
    return [
        resource_contents(item_uri("tags", t.name), tag_line(t), tag_metadata(t, collection_id))
        for t in items
    ]


# Collections

@resource(f"{URI_SCHEME}://collections/all", "collections-all", "All collections, root and nested")
async def collections_all(api: RaindropAPI) -> ResourceListing:
    collections = await api.get_all_collections()
    return ResourceListing(_collections(collections), {"totalCount": len(collections)})


@resource(f"{URI_SCHEME}://collections/item/{{id}}", "collection-details", "A single collection")
async def collection_item(api: RaindropAPI, id: str) -> ResourceListing:
    return ResourceListing(_collections([await api.get_collection(_int("id", id))]))


@resource(
    f"{URI_SCHEME}://collections/children/{{parentId}}",
    "collection-children",
    "Child collections of a parent collection",
)
async def collection_children(api: RaindropAPI, parentId: str) -> ResourceListing:
    parent_id = _int("parentId", parentId)
    children = await api.list_collections(parent_id)
    return ResourceListing(_collections(children), {"parentId": parent_id, "totalCount": len(children)})


# Bookmarks

@resource(
    f"{URI_SCHEME}://bookmarks/collection/{{collectionId}}",
    "collection-bookmarks",
    "First page of bookmarks in a collection (0 = all, -1 = unsorted, -99 = trash)",
)
async def collection_bookmarks(api: RaindropAPI, collectionId: str) -> ResourceListing:
    collection_id = _int("collectionId", collectionId)
    items, total = await api.search_bookmarks(SearchParams(collection=collection_id))
    return ResourceListing(
        [_bookmark(b) for b in items],
        {"collectionId": collection_id, "totalCount": total, "returned": len(items)},
    )


@resource(f"{URI_SCHEME}://bookmarks/item/{{id}}", "bookmark-details", "A single bookmark")
async def bookmark_item(api: RaindropAPI, id: str) -> ResourceListing:
    return ResourceListing([_bookmark(await api.get_bookmark(_int("id", id)))])


# Tags

@resource(f"{URI_SCHEME}://tags/all", "tags-all", "Every tag with its usage count")
async def tags_all(api: RaindropAPI) -> ResourceListing:
    tags = await api.get_tags()
    return ResourceListing(_tags(tags), {"totalCount": len(tags)})


@resource(
    f"{URI_SCHEME}://tags/collection/{{collectionId}}",
    "collection-tags",
    "Tags used inside one collection",
)
async def collection_tags(api: RaindropAPI, collectionId: str) -> ResourceListing:
    collection_id = _int("collectionId", collectionId)
    tags = await api.get_tags(collection_id)
    return ResourceListing(_tags(tags, collection_id), {"collectionId": collection_id, "totalCount": len(tags)})


@resource(f"{URI_SCHEME}://tags/item/{{name}}", "tag-details", "A single tag and its usage count")
async def tag_item(api: RaindropAPI, name: str) -> ResourceListing:
    tags = await api.get_tags()
    for tag in tags:
        if tag.name == name:
            return ResourceListing(_tags([tag]))
    raise NotFoundError(f"Tag {name!r} not found")


# Highlights

@resource(f"{URI_SCHEME}://highlights/all", "highlights-all", "Every highlight in the account")
async def highlights_all(api: RaindropAPI) -> ResourceListing:
    highlights = await api.get_all_highlights()
    return ResourceListing(_highlights(highlights), {"totalCount": len(highlights)})


@resource(
    f"{URI_SCHEME}://highlights/bookmark/{{bookmarkId}}",
    "bookmark-highlights",
    "Highlights saved on one bookmark",
)
async def bookmark_highlights(api: RaindropAPI, bookmarkId: str) -> ResourceListing:
    bookmark_id = _int("bookmarkId", bookmarkId)
    highlights = await api.get_bookmark_highlights(bookmark_id)
    return ResourceListing(_highlights(highlights), {"bookmarkId": bookmark_id, "totalCount": len(highlights)})


@resource(
    f"{URI_SCHEME}://highlights/collection/{{collectionId}}",
    "collection-highlights",
    "Highlights from every bookmark in a collection",
)
async def collection_highlights(api: RaindropAPI, collectionId: str) -> ResourceListing:
    collection_id = _int("collectionId", collectionId)
    highlights = await api.get_highlights_by_collection(collection_id)
    return ResourceListing(
        _highlights(highlights), {"collectionId": collection_id, "totalCount": len(highlights)}
    )


@resource(f"{URI_SCHEME}://highlights/item/{{id}}", "highlight-details", "A single highlight")
async def highlight_item(api: RaindropAPI, id: str) -> ResourceListing:
    return ResourceListing(_highlights([await api.find_highlight(id)]))


# User

@resource(f"{URI_SCHEME}://user/profile", "user-profile", "Account profile")
async def user_profile(api: RaindropAPI) -> ResourceListing:
    user = await api.get_user()
    text = f"{user.display_name} - {'Pro' if user.pro else 'Free'} Account"
    metadata = {
        "id": user.id,
        "email": user.email,
        "fullName": user.fullName,
        "pro": user.pro,
        "registered": user.registered,
        "category": "user",
    }
    return ResourceListing([resource_contents(f"{URI_SCHEME}://user/profile", text, metadata)])


@resource(f"{URI_SCHEME}://user/statistics", "user-statistics", "Account-wide counters")
async def user_statistics(api: RaindropAPI) -> ResourceListing:
    stats = await api.get_user_stats()
    return ResourceListing(
        [
            resource_contents(
                f"{URI_SCHEME}://user/statistics",
                "Account Statistics",
                {**stats.model_dump(), "category": "user-stats"},
            )
        ]
    )
