"""The tool catalogue.

Each handler receives a ``ToolContext`` and its validated parameter model and
returns a list of content blocks. Remote failures are left to propagate; the
registry prefixes them with the tool's action.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from . import params as p
from .api import MAX_PER_PAGE, NotFoundError, RaindropAPI, RaindropError
from .content import (
    Content,
    bookmark_block,
    collection_block,
    collection_line,
    collection_metadata,
    highlight_block,
    highlight_metadata,
    page_summary,
    tag_metadata,
    tag_line,
    text_block,
)
from .models import (
    ALL_COLLECTION_ID,
    CollectionCreate,
    CollectionUpdate,
    ExportOptions,
    RaindropCreate,
    RaindropUpdate,
    SearchParams,
)
from .streaming import StreamManager

SUGGESTION_COUNT = 5


class ToolError(Exception):
    """A failure reported back to the caller as an error result."""

    def __init__(
        self,
        message: str,
        suggestions: Optional[List[Dict[str, Any]]] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.suggestions = suggestions or []
        self.hint = hint


@dataclass
class ToolContext:
    api: RaindropAPI
    streams: StreamManager
    owner: Any = None


Handler = Callable[[ToolContext, Any], Awaitable[List[Content]]]


@dataclass
class ToolSpec:
    name: str
    description: str
    params: Type[BaseModel]
    handler: Handler
    action: str
    read_only: bool = False
    destructive: bool = False
    category: str = ""


TOOLS: Dict[str, ToolSpec] = {}


def tool(
    name: str,
    description: str,
    params: Type[BaseModel],
    action: str,
    category: str,
    read_only: bool = False,
    destructive: bool = False,
):
    def decorator(func: Handler) -> Handler:
        TOOLS[name] = ToolSpec(
            name=name,
            description=description,
            params=params,
            handler=func,
            action=action,
            read_only=read_only,
            destructive=destructive,
            category=category,
        )
        return func
    return decorator


# Collections

@tool(
    "collection_list",
    "List all collections or child collections of a parent. Use this to understand the user's "
    "collection structure before performing other operations.",
    p.CollectionListParams,
    action="list collections",
    category="Collections",
    read_only=True,
)
async def collection_list(ctx: ToolContext, params: p.CollectionListParams) -> List[Content]:
    collections = await ctx.api.list_collections(params.parentId)
    if not collections:
        scope = f"under collection {params.parentId}" if params.parentId is not None else ""
        return [text_block(f"No collections found {scope}".strip(), {"total": 0, "parentId": params.parentId})]
    return [collection_block(c) for c in collections]


@tool(
    "collection_get",
    "Get detailed information about a specific collection by ID. Use this when you need full details "
    "about a collection.",
    p.CollectionIdParams,
    action="get collection",
    category="Collections",
    read_only=True,
)
async def collection_get(ctx: ToolContext, params: p.CollectionIdParams) -> List[Content]:
    collection = await ctx.api.get_collection(params.id)
    return [collection_block(collection)]


@tool(
    "collection_create",
    "Create a new collection (folder) for organizing bookmarks. Collections help organize bookmarks "
    "by topic, project, or any categorization system.",
    p.CollectionCreateParams,
    action="create collection",
    category="Collections",
)
async def collection_create(ctx: ToolContext, params: p.CollectionCreateParams) -> List[Content]:
    payload = CollectionCreate(title=params.title, public=params.isPublic)
    if params.parentId is not None:
        payload.parent = {"$id": params.parentId}
    collection = await ctx.api.create_collection(payload)
    return [text_block(f"Created collection: {collection.title}", collection_metadata(collection))]


@tool(
    "collection_update",
    "Update collection properties like title, visibility, or view settings. Use this to rename "
    "collections or change their configuration.",
    p.CollectionUpdateParams,
    action="update collection",
    category="Collections",
)
async def collection_update(ctx: ToolContext, params: p.CollectionUpdateParams) -> List[Content]:
    update = CollectionUpdate(
        title=params.title, public=params.isPublic, view=params.view, sort=params.sort
    )
    collection = await ctx.api.update_collection(params.id, update)
    return [text_block(f"Updated collection: {collection.title}", collection_metadata(collection))]


@tool(
    "collection_delete",
    "Delete a collection permanently. WARNING: This action cannot be undone. Bookmarks in the "
    "collection will be moved to Unsorted.",
    p.CollectionIdParams,
    action="delete collection",
    category="Collections",
    destructive=True,
)
async def collection_delete(ctx: ToolContext, params: p.CollectionIdParams) -> List[Content]:
    await ctx.api.delete_collection(params.id)
    return [
        text_block(
            f"Collection {params.id} successfully deleted. Bookmarks moved to Unsorted.",
            {"deletedCollectionId": params.id, "category": "collection"},
        )
    ]


@tool(
    "collection_find",
    'Find collection ID by name (e.g., "archive", "unread"). This helps identify target collections '
    "for moving bookmarks.",
    p.CollectionFindParams,
    action="find collection",
    category="Collections",
    read_only=True,
)
async def collection_find(ctx: ToolContext, params: p.CollectionFindParams) -> List[Content]:
    collections = await ctx.api.get_all_collections()
    term = params.name.lower()
    matches = [c for c in collections if term in c.title.lower()]

    if not matches:
        available = "\n".join(f"- {c.title} (ID: {c.id})" for c in collections)
        return [
            text_block(
                f'No collections found matching "{params.name}"\n\nAvailable collections:\n{available}',
                {
                    "searchTerm": params.name,
                    "found": False,
                    "availableCollections": [{"id": c.id, "title": c.title} for c in collections],
                },
            )
        ]

    text = f'Found {len(matches)} collection(s) matching "{params.name}":\n\n'
    text += "\n".join(collection_line(c) for c in matches)
    if len(matches) == 1:
        text += f"\n\nUse collection ID {matches[0].id} for operations."
    return [
        text_block(
            text,
            {
                "searchTerm": params.name,
                "found": True,
                "matches": [{"id": c.id, "title": c.title, "count": c.count} for c in matches],
                "primaryMatch": {"id": matches[0].id, "title": matches[0].title},
            },
        )
    ]


@tool(
    "collection_share",
    "Share a collection with specific users, or stop sharing it. Useful for collaboration or sharing "
    "curated bookmark lists.",
    p.CollectionShareParams,
    action="share collection",
    category="Collections",
)
async def collection_share(ctx: ToolContext, params: p.CollectionShareParams) -> List[Content]:
    result = await ctx.api.share_collection(params.id, params.level, params.emails)
    if params.level == "remove":
        text = f"Stopped sharing collection {params.id}"
    else:
        text = f"Collection {params.id} shared with {len(params.emails)} user(s) ({params.level} access)"
    return [
        text_block(
            text,
            {
                "collectionId": params.id,
                "accessLevel": params.level,
                "sharedWith": len(params.emails or []),
                "emails": result.get("emails"),
                "category": "collection",
            },
        )
    ]


@tool(
    "collection_maintenance",
    "Perform maintenance operations on collections: merge several collections into one, remove "
    "empty collections, or empty the trash.",
    p.CollectionMaintenanceParams,
    action="perform maintenance operation",
    category="Collections",
    destructive=True,
)
async def collection_maintenance(ctx: ToolContext, params: p.CollectionMaintenanceParams) -> List[Content]:
    if params.operation == "merge":
        await ctx.api.merge_collections(params.sourceIds, params.targetId)
        text = f"Successfully merged {len(params.sourceIds)} collections into collection {params.targetId}"
    elif params.operation == "remove_empty":
        count = await ctx.api.clean_empty_collections()
        text = f"Removed {count} empty collections"
    else:
        await ctx.api.empty_trash()
        text = "Trash emptied successfully"
    return [
        text_block(
            text,
            {
                "operation": params.operation,
                "targetId": params.targetId,
                "sourceIds": params.sourceIds,
                "category": "collection",
            },
        )
    ]


# Bookmarks

@tool(
    "bookmark_search",
    "Search bookmarks with advanced filtering. This is the primary tool for finding bookmarks. "
    "Supports full-text search, tag filtering, date ranges, and collection scoping.",
    p.BookmarkSearchParams,
    action="search bookmarks",
    category="Bookmarks",
    read_only=True,
)
async def bookmark_search(ctx: ToolContext, params: p.BookmarkSearchParams) -> List[Content]:
    search = SearchParams(
        search=params.query,
        collection=params.collection,
        tags=params.tags,
        createdStart=params.createdStart,
        createdEnd=params.createdEnd,
        important=params.important,
        media=params.media,
        page=params.page,
        perPage=params.perPage,
        sort=params.sort,
    )
    items, total = await ctx.api.search_bookmarks(search)
    summary = page_summary("bookmarks", total, params.page, params.perPage, len(items), sort=params.sort)
    return [summary] + [bookmark_block(b) for b in items]


@tool(
    "bookmark_get",
    "Get detailed information about a specific bookmark by ID. Use this when you need full bookmark "
    "details.",
    p.BookmarkIdParams,
    action="get bookmark",
    category="Bookmarks",
    read_only=True,
)
async def bookmark_get(ctx: ToolContext, params: p.BookmarkIdParams) -> List[Content]:
    try:
        bookmark = await ctx.api.get_bookmark(params.id)
    except NotFoundError:
        raise await _bookmark_not_found(ctx, params.id)
    return [bookmark_block(bookmark)]


async def _bookmark_not_found(ctx: ToolContext, bookmark_id: int) -> ToolError:
    try:
        recent = await ctx.api.get_recent_bookmarks(SUGGESTION_COUNT)
    except RaindropError:
        return ToolError(f"Bookmark ID {bookmark_id} not found. Use bookmark_search to find available bookmarks.")

    suggestions = [{"id": b.id, "title": b.title} for b in recent[:SUGGESTION_COUNT]]
    if not suggestions:
        return ToolError(f"Bookmark ID {bookmark_id} not found. Use bookmark_search to find available bookmarks.")
    listing = "\n".join(f"{s['id']}: {s['title']}" for s in suggestions)
    return ToolError(
        f"Bookmark ID {bookmark_id} not found.\n\n"
        f"Here are your {len(suggestions)} most recent bookmarks:\n{listing}\n\n"
        "Try using bookmark_search to find the bookmark you're looking for.",
        suggestions,
    )


@tool(
    "bookmark_create",
    "Add a new bookmark to a collection. The system will automatically extract title, description, "
    "and other metadata from the URL.",
    p.BookmarkCreateParams,
    action="create bookmark",
    category="Bookmarks",
)
async def bookmark_create(ctx: ToolContext, params: p.BookmarkCreateParams) -> List[Content]:
    payload = RaindropCreate(
        link=params.url,
        collection={"$id": params.collectionId},
        title=params.title,
        excerpt=params.description,
        tags=params.tags,
        important=params.important,
    )
    bookmark = await ctx.api.create_bookmark(payload)
    return [bookmark_block(bookmark)]


@tool(
    "bookmark_update",
    "Update bookmark properties like title, description, tags, or move to different collection. Use "
    "this to modify existing bookmarks.",
    p.BookmarkUpdateParams,
    action="update bookmark",
    category="Bookmarks",
)
async def bookmark_update(ctx: ToolContext, params: p.BookmarkUpdateParams) -> List[Content]:
    update = RaindropUpdate(
        title=params.title,
        excerpt=params.description,
        tags=params.tags,
        important=params.important,
    )
    if params.collectionId is not None:
        update.collection = {"$id": params.collectionId}
    bookmark = await ctx.api.update_bookmark(params.id, update)
    return [bookmark_block(bookmark)]


@tool(
    "bookmark_recent",
    "Get your most recent bookmarks. This is useful to quickly see your latest saved items and their "
    "IDs for further operations.",
    p.BookmarkRecentParams,
    action="get recent bookmarks",
    category="Bookmarks",
    read_only=True,
)
async def bookmark_recent(ctx: ToolContext, params: p.BookmarkRecentParams) -> List[Content]:
    items = await ctx.api.get_recent_bookmarks(params.count)
    lines = [
        f"{i}. [ID: {b.id}] {b.title or 'Untitled'}\n   {b.link}\n   {b.created or ''}".rstrip()
        for i, b in enumerate(items, start=1)
    ]
    header = f"Your {len(items)} most recent bookmarks:"
    return [text_block("\n\n".join([header] + lines), {"total": len(items), "category": "bookmark"})] + [
        bookmark_block(b) for b in items
    ]


@tool(
    "bookmark_batch_operations",
    "Perform operations on multiple bookmarks at once. Efficient for bulk updates, moves, tagging, or "
    "deletions.",
    p.BookmarkBatchParams,
    action="perform batch operation",
    category="Bookmarks",
    destructive=True,
)
async def bookmark_batch_operations(ctx: ToolContext, params: p.BookmarkBatchParams) -> List[Content]:
    ids = params.bookmarkIds
    op = params.operation

    if op in ("update", "move"):
        update = RaindropUpdate(important=params.important)
        if params.collectionId is not None:
            update.collection = {"$id": params.collectionId}
        await ctx.api.batch_update_bookmarks(ALL_COLLECTION_ID, ids, update)
        text = f"Successfully {'moved' if op == 'move' else 'updated'} {len(ids)} bookmarks"

    elif op in ("tag_add", "tag_remove"):
        bookmarks = await asyncio.gather(*(ctx.api.get_bookmark(i) for i in ids))
        # One call per bookmark; the first failure aborts the rest
        for bookmark in bookmarks:
            if op == "tag_add":
                tags = list(dict.fromkeys(bookmark.tags + params.tags))
            else:
                tags = [t for t in bookmark.tags if t not in params.tags]
            if tags != bookmark.tags:
                await ctx.api.update_bookmark(bookmark.id, RaindropUpdate(tags=tags))
        verb, prep = ("added", "to") if op == "tag_add" else ("removed", "from")
        text = f"Successfully {verb} tags [{', '.join(params.tags)}] {prep} {len(ids)} bookmarks"

    else:
        for bookmark_id in ids:
            if op == "delete_permanent":
                await ctx.api.delete_bookmark_permanently(bookmark_id)
            else:
                await ctx.api.delete_bookmark(bookmark_id)
        text = f"Successfully {'permanently ' if op == 'delete_permanent' else ''}deleted {len(ids)} bookmarks"

    return [
        text_block(
            text,
            {"operation": op, "affectedBookmarks": len(ids), "bookmarkIds": ids, "category": "bookmark"},
        )
    ]


@tool(
    "bookmark_reminders",
    "Manage reminders for bookmarks. Set or remove reminder notifications for important bookmarks "
    "you want to revisit.",
    p.BookmarkReminderParams,
    action="manage reminder",
    category="Bookmarks",
)
async def bookmark_reminders(ctx: ToolContext, params: p.BookmarkReminderParams) -> List[Content]:
    if params.operation == "set":
        bookmark = await ctx.api.set_reminder(params.bookmarkId, params.date, params.note)
        return [
            text_block(
                f'Reminder set for "{bookmark.title or "Untitled"}" on {params.date}',
                {
                    "bookmarkId": bookmark.id,
                    "reminderDate": params.date,
                    "reminderNote": params.note,
                    "category": "bookmark",
                },
            )
        ]
    await ctx.api.remove_reminder(params.bookmarkId)
    return [
        text_block(
            f"Reminder removed from bookmark {params.bookmarkId}",
            {"bookmarkId": params.bookmarkId, "category": "bookmark"},
        )
    ]


@tool(
    "bookmark_stream",
    "Wait for new bookmarks to appear. Polls Raindrop.io every `interval` seconds and returns as soon "
    "as new bookmarks matching the filters are saved, or reports that none arrived before `timeout`.",
    p.BookmarkStreamParams,
    action="stream bookmarks",
    category="Bookmarks",
    read_only=True,
)
async def bookmark_stream(ctx: ToolContext, params: p.BookmarkStreamParams) -> List[Content]:
    search = SearchParams(
        search=params.query, collection=params.collection, perPage=MAX_PER_PAGE, sort="-created"
    )

    async def fetch():
        items, _ = await ctx.api.search_bookmarks(search)
        return items

    known = {b.id for b in await fetch()}
    handle = ctx.streams.start(ctx.owner, fetch, known, params.interval, params.timeout)
    fresh = await handle.wait()

    metadata = {
        "streamId": handle.id,
        "query": params.query,
        "collection": params.collection,
        "newCount": len(fresh),
        "category": "bookmark",
    }
    if not fresh:
        return [text_block(f"No new bookmarks within {params.timeout} seconds", metadata)]
    return [text_block(f"Found {len(fresh)} new bookmark(s)", metadata)] + [bookmark_block(b) for b in fresh]


@tool(
    "stream_status",
    "Report how many bookmark streams are currently active on this server.",
    p.NoParams,
    action="get stream status",
    category="Bookmarks",
    read_only=True,
)
async def stream_status(ctx: ToolContext, params: p.NoParams) -> List[Content]:
    count = ctx.streams.active_count
    return [text_block(f"Active streams: {count}", {"activeStreams": count})]


# Tags

@tool(
    "tag_list",
    "List all tags or tags from a specific collection. Use this to understand the current tag "
    "structure before performing tag operations.",
    p.TagListParams,
    action="list tags",
    category="Tags",
    read_only=True,
)
async def tag_list(ctx: ToolContext, params: p.TagListParams) -> List[Content]:
    tags = await ctx.api.get_tags(params.collectionId)
    if not tags:
        return [text_block("No tags found", {"total": 0, "collectionId": params.collectionId})]
    return [text_block(tag_line(t), tag_metadata(t, params.collectionId)) for t in tags]


@tool(
    "tag_manage",
    "Perform tag management operations like renaming, merging, or deleting tags. Use this to maintain "
    "a clean tag structure.",
    p.TagManageParams,
    action="manage tags",
    category="Tags",
    destructive=True,
)
async def tag_manage(ctx: ToolContext, params: p.TagManageParams) -> List[Content]:
    cid = params.collectionId
    scope = f" in collection {cid}" if cid is not None else ""

    if params.operation == "rename":
        await ctx.api.rename_tag(params.oldName, params.newName, cid)
        text = f'Successfully renamed tag "{params.oldName}" to "{params.newName}"{scope}'
    elif params.operation == "merge":
        await ctx.api.merge_tags(params.sourceTags, params.destinationTag, cid)
        text = f'Successfully merged tags [{", ".join(params.sourceTags)}] into "{params.destinationTag}"{scope}'
    elif params.operation == "delete":
        await ctx.api.delete_tags([params.tagName], cid)
        text = f'Successfully deleted tag "{params.tagName}"{scope}'
    else:
        await ctx.api.delete_tags(params.tagNames, cid)
        text = f"Successfully deleted {len(params.tagNames)} tags: [{', '.join(params.tagNames)}]{scope}"

    return [text_block(text, {"operation": params.operation, "collectionId": cid, "category": "tag"})]


# Highlights

@tool(
    "highlight_list",
    "List highlights from all bookmarks, a specific bookmark, or a collection. Use this to find and "
    "review saved text highlights.",
    p.HighlightListParams,
    action="list highlights",
    category="Highlights",
    read_only=True,
)
async def highlight_list(ctx: ToolContext, params: p.HighlightListParams) -> List[Content]:
    if params.scope == "all":
        highlights = await ctx.api.get_highlights(params.page, params.perPage)
        returned = len(highlights)
        # The highlights endpoint reports no total; a full page means there may be more
        summary = page_summary(
            "highlights",
            params.page * params.perPage + returned,
            params.page,
            params.perPage,
            returned,
            more=returned == params.perPage,
            scope=params.scope,
        )
        return [summary] + [highlight_block(h) for h in highlights]

    if params.scope == "bookmark":
        everything = await ctx.api.get_bookmark_highlights(params.bookmarkId)
    else:
        everything = await ctx.api.get_highlights_by_collection(params.collectionId)

    start = params.page * params.perPage
    highlights = everything[start:start + params.perPage]
    summary = page_summary(
        "highlights",
        len(everything),
        params.page,
        params.perPage,
        len(highlights),
        scope=params.scope,
        bookmarkId=params.bookmarkId,
        collectionId=params.collectionId,
    )
    return [summary] + [highlight_block(h) for h in highlights]


@tool(
    "highlight_create",
    "Create a new text highlight for a bookmark. Use this to save important text passages from "
    "articles or documents.",
    p.HighlightCreateParams,
    action="create highlight",
    category="Highlights",
)
async def highlight_create(ctx: ToolContext, params: p.HighlightCreateParams) -> List[Content]:
    highlight = await ctx.api.create_highlight(params.bookmarkId, params.text, params.note, params.color)
    if highlight.bookmark_id is None:
        highlight.raindropRef = params.bookmarkId
    return [text_block(highlight.text, highlight_metadata(highlight))]


@tool(
    "highlight_update",
    "Update an existing highlight's text, note, or color. Use this to modify saved highlights.",
    p.HighlightUpdateParams,
    action="update highlight",
    category="Highlights",
)
async def highlight_update(ctx: ToolContext, params: p.HighlightUpdateParams) -> List[Content]:
    updates = params.model_dump(include={"text", "note", "color"}, exclude_none=True)
    highlight = await ctx.api.update_highlight(str(params.id), updates)
    return [text_block(highlight.text, highlight_metadata(highlight))]


@tool(
    "highlight_delete",
    "Delete a highlight permanently. This action cannot be undone.",
    p.HighlightDeleteParams,
    action="delete highlight",
    category="Highlights",
    destructive=True,
)
async def highlight_delete(ctx: ToolContext, params: p.HighlightDeleteParams) -> List[Content]:
    await ctx.api.delete_highlight(str(params.id))
    return [
        text_block(
            f"Highlight {params.id} successfully deleted",
            {"deletedHighlightId": params.id, "category": "highlight"},
        )
    ]


# User

@tool(
    "user_profile",
    "Get user account information including name, email, subscription status, and registration date.",
    p.NoParams,
    action="get user profile",
    category="User",
    read_only=True,
)
async def user_profile(ctx: ToolContext, params: p.NoParams) -> List[Content]:
    user = await ctx.api.get_user()
    return [
        text_block(
            f"User: {user.display_name} ({'Pro' if user.pro else 'Free'} Account)",
            {
                "id": user.id,
                "email": user.email,
                "fullName": user.fullName,
                "pro": user.pro,
                "registered": user.registered,
                "category": "user",
            },
        )
    ]


@tool(
    "user_statistics",
    "Get user account statistics or statistics for a specific collection. Includes bookmark counts, "
    "collection counts, and other usage metrics.",
    p.UserStatisticsParams,
    action="get statistics",
    category="User",
    read_only=True,
)
async def user_statistics(ctx: ToolContext, params: p.UserStatisticsParams) -> List[Content]:
    if params.collectionId is not None:
        collection = await ctx.api.get_collection(params.collectionId)
        return [
            text_block(
                f"Collection {collection.id} Statistics: {collection.title} has {collection.count} bookmarks",
                {
                    "collectionId": collection.id,
                    "title": collection.title,
                    "count": collection.count,
                    "lastUpdate": collection.lastUpdate,
                    "category": "user",
                },
            )
        ]

    stats = await ctx.api.get_user_stats()
    text = (
        f"Account Statistics: {stats.count} bookmarks ({stats.unsorted} unsorted, {stats.trash} in trash), "
        f"{stats.collections} collections, {stats.tags} tags"
    )
    return [text_block(text, {**stats.model_dump(), "category": "user"})]


# Import / export

@tool(
    "import_status",
    "Check the status of an ongoing import operation. Use this to monitor import progress.",
    p.NoParams,
    action="get import status",
    category="Import/Export",
    read_only=True,
)
async def import_status(ctx: ToolContext, params: p.NoParams) -> List[Content]:
    status = await ctx.api.get_import_status()
    return [
        text_block(
            f"Import Status: {status.status or 'unknown'}",
            {**status.model_dump(exclude_none=True), "category": "import-export"},
        )
    ]


@tool(
    "export_bookmarks",
    "Export bookmarks in various formats for backup or migration. Supports CSV, HTML, and PDF formats "
    "with filtering options.",
    p.ExportParams,
    action="start export",
    category="Import/Export",
)
async def export_bookmarks(ctx: ToolContext, params: p.ExportParams) -> List[Content]:
    options = ExportOptions(
        format=params.format,
        collection=params.collectionId,
        broken=params.includeBroken,
        duplicates=params.includeDuplicates,
    )
    status_url = await ctx.api.export_bookmarks(options)
    return [
        text_block(
            f"Export started successfully in {params.format.upper()} format. "
            "Check export status for download link.",
            {
                "format": params.format,
                "collectionId": params.collectionId,
                "includeBroken": params.includeBroken,
                "includeDuplicates": params.includeDuplicates,
                "statusUrl": status_url,
                "category": "import-export",
            },
        )
    ]


@tool(
    "export_status",
    "Check the status of an ongoing export operation and get download link when ready.",
    p.NoParams,
    action="get export status",
    category="Import/Export",
    read_only=True,
)
async def export_status(ctx: ToolContext, params: p.NoParams) -> List[Content]:
    status = await ctx.api.get_export_status()
    text = f"Export Status: {status.status or 'unknown'}"
    if status.url:
        text += f" - Download: {status.url}"
    return [text_block(text, {**status.model_dump(exclude_none=True), "category": "import-export"})]
