"""Builders for MCP content blocks and resource contents."""
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from mcp import types

from .models import Collection, Highlight, Raindrop, Tag

URI_SCHEME = "raindrop"
PREVIEW_LENGTH = 200

Content = Union[types.TextContent, types.EmbeddedResource]


def item_uri(kind: str, item_id: Any) -> str:
    """Canonical URI of a single entity, e.g. ``raindrop://bookmarks/item/42``."""
    return f"{URI_SCHEME}://{kind}/item/{quote(str(item_id), safe='')}"


def text_block(text: str, metadata: Optional[Dict[str, Any]] = None) -> types.TextContent:
    if metadata is None:
        return types.TextContent(type="text", text=text)
    return types.TextContent(type="text", text=text, metadata=metadata)


def resource_contents(
    uri: str, text: str, metadata: Dict[str, Any], mime_type: str = "text/plain"
) -> types.TextResourceContents:
    return types.TextResourceContents(uri=uri, text=text, mimeType=mime_type, metadata=metadata)


def resource_block(uri: str, text: str, metadata: Dict[str, Any]) -> types.EmbeddedResource:
    return types.EmbeddedResource(type="resource", resource=resource_contents(uri, text, metadata))


def truncate(text: str, limit: int = PREVIEW_LENGTH) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def has_more(page: int, per_page: int, returned: int, total: int) -> bool:
    return page * per_page + returned < total


def page_summary(
    noun: str,
    total: int,
    page: int,
    per_page: int,
    returned: int,
    more: Optional[bool] = None,
    **extra: Any,
) -> types.TextContent:
    """Leading block of a listing carrying the pagination metadata."""
    if more is None:
        more = has_more(page, per_page, returned, total)
    text = f"Showing {returned} of {total} {noun} (page {page}, {per_page} per page)"
    if more:
        text += f". More results on page {page + 1}."
    metadata = {"total": total, "page": page, "perPage": per_page, "hasMore": more}
    metadata.update({k: v for k, v in extra.items() if v is not None})
    return text_block(text, metadata)


# Entity metadata

def collection_metadata(collection: Collection) -> Dict[str, Any]:
    return {
        "id": collection.id,
        "title": collection.title,
        "count": collection.count,
        "public": collection.public,
        "view": collection.view,
        "sort": collection.sort,
        "parentId": collection.parent_id,
        "created": collection.created,
        "lastUpdate": collection.lastUpdate,
        "category": "collection",
    }


def bookmark_metadata(bookmark: Raindrop) -> Dict[str, Any]:
    metadata = {
        "id": bookmark.id,
        "title": bookmark.title,
        "link": bookmark.link,
        "excerpt": bookmark.excerpt,
        "tags": bookmark.tags,
        "collectionId": bookmark.collection_ref,
        "created": bookmark.created,
        "lastUpdate": bookmark.lastUpdate,
        "type": bookmark.type,
        "important": bookmark.important,
        "category": "bookmark",
    }
    if bookmark.reminder and bookmark.reminder.date:
        metadata["reminder"] = bookmark.reminder.model_dump(by_alias=False, exclude_none=True)
    return metadata


def highlight_metadata(highlight: Highlight) -> Dict[str, Any]:
    return {
        "id": highlight.id,
        "text": highlight.text,
        "note": highlight.note,
        "color": highlight.color,
        "bookmarkId": highlight.bookmark_id,
        "bookmarkTitle": highlight.bookmark_title,
        "bookmarkLink": highlight.bookmark_link,
        "tags": highlight.tags,
        "created": highlight.created,
        "lastUpdate": highlight.lastUpdate,
        "category": "highlight",
    }


def tag_metadata(tag: Tag, collection_id: Optional[int] = None) -> Dict[str, Any]:
    return {
        "name": tag.name,
        "count": tag.count,
        "collectionId": collection_id,
        "category": "tag",
    }


# Text renderings

def collection_line(collection: Collection) -> str:
    return f"{collection.title} (ID: {collection.id}, {collection.count} items)"


def bookmark_summary(bookmark: Raindrop) -> str:
    lines = [
        f"[ID: {bookmark.id}] {bookmark.title or 'Untitled'}",
        f"Link: {bookmark.link}",
        f"Description: {bookmark.excerpt or 'No description'}",
        f"Tags: {', '.join(bookmark.tags) if bookmark.tags else 'No tags'}",
        f"Collection: {bookmark.collection_ref}",
    ]
    if bookmark.created:
        lines.append(f"Created: {bookmark.created}")
    return "\n".join(lines)


def tag_line(tag: Tag) -> str:
    return f"{tag.name} ({tag.count} bookmarks)"


# Block shorthands used by both tools and resources

def collection_block(collection: Collection) -> types.TextContent:
    return text_block(collection_line(collection), collection_metadata(collection))


def bookmark_block(bookmark: Raindrop) -> types.EmbeddedResource:
    return resource_block(
        item_uri("bookmarks", bookmark.id), bookmark_summary(bookmark), bookmark_metadata(bookmark)
    )


def highlight_block(highlight: Highlight) -> types.EmbeddedResource:
    return resource_block(
        item_uri("highlights", highlight.id), truncate(highlight.text), highlight_metadata(highlight)
    )


def dump(blocks: List[Content]) -> List[Dict[str, Any]]:
    """Plain JSON-ready dicts, as sent over the wire."""
    return [b.model_dump(by_alias=True, mode="json", exclude_none=True) for b in blocks]
