"""Typed parameter models for every tool in the catalogue.

Each model doubles as the tool's JSON schema (``model_json_schema()``) and as
its validator. Operation-specific requirements live in ``model_validator``
hooks so the error names the missing fields.
"""
from datetime import date
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

MAX_PER_PAGE = 50
DEFAULT_PER_PAGE = 25

Email = Annotated[str, Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")]
HighlightId = Union[int, str]

SortKey = Literal[
    "title", "-title", "domain", "-domain", "created", "-created", "lastUpdate", "-lastUpdate"
]
ViewMode = Literal["list", "simple", "grid", "masonry"]
MediaType = Literal["image", "video", "document", "audio"]


def _missing(operation: str, **fields) -> None:
    absent = [name for name, value in fields.items() if value is None or value == []]
    if absent:
        raise ValueError(f"{' and '.join(absent)} required for {operation} operation")


class NoParams(BaseModel):
    pass


class PageParams(BaseModel):
    page: int = Field(default=0, ge=0, description="Page number for pagination (starts at 0)")
    perPage: int = Field(
        default=DEFAULT_PER_PAGE,
        ge=1,
        le=MAX_PER_PAGE,
        description="Results per page (1-50)",
    )


# Collections

class CollectionListParams(BaseModel):
    parentId: Optional[int] = Field(
        default=None, description="Parent collection ID to list children. Omit to list root collections."
    )


class CollectionIdParams(BaseModel):
    id: int = Field(description="Collection ID (e.g., 12345)")


class CollectionCreateParams(BaseModel):
    title: str = Field(
        min_length=1,
        description='Collection name (e.g., "Web Development Resources", "Research Papers")',
    )
    isPublic: bool = Field(default=False, description="Make collection publicly viewable (default: false)")
    parentId: Optional[int] = Field(default=None, description="Create as a child of this collection")


class CollectionUpdateParams(BaseModel):
    id: int = Field(description="Collection ID to update")
    title: Optional[str] = Field(default=None, min_length=1, description="New collection title")
    isPublic: Optional[bool] = Field(default=None, description="Change public visibility")
    view: Optional[ViewMode] = Field(default=None, description="Collection view type in Raindrop.io interface")
    sort: Optional[Literal["title", "-created"]] = Field(
        default=None, description="Default sort order (-created = newest first)"
    )


class CollectionFindParams(BaseModel):
    name: str = Field(
        min_length=1, description="Collection name to search for (case-insensitive, supports partial matches)"
    )


class CollectionShareParams(BaseModel):
    id: int = Field(description="Collection ID to share")
    level: Literal["view", "edit", "remove"] = Field(
        description="Access level: view (read-only), edit (add/modify), remove (stop sharing)"
    )
    emails: Optional[List[Email]] = Field(
        default=None, description="Email addresses to invite (required for view and edit)"
    )

    @model_validator(mode="after")
    def check_emails(self):
        if self.level != "remove":
            _missing(self.level, emails=self.emails)
        return self


class CollectionMaintenanceParams(BaseModel):
    operation: Literal["merge", "remove_empty", "empty_trash"] = Field(
        description="Maintenance operation to perform"
    )
    targetId: Optional[int] = Field(default=None, description="Target collection ID (required for merge operation)")
    sourceIds: Optional[List[int]] = Field(
        default=None, description="Source collection IDs to merge (required for merge operation)"
    )

    @model_validator(mode="after")
    def check_merge(self):
        if self.operation == "merge" and (self.targetId is None or not self.sourceIds):
            raise ValueError("Merge operation requires targetId and sourceIds")
        return self


# Bookmarks

class BookmarkSearchParams(PageParams):
    query: Optional[str] = Field(
        default=None, description="Search query (searches title, description, content, and URL)"
    )
    collection: Optional[int] = Field(default=None, description="Limit search to specific collection ID")
    tags: Optional[List[str]] = Field(
        default=None, description='Filter by tags (e.g., ["javascript", "tutorial"])'
    )
    createdStart: Optional[date] = Field(
        default=None, description="Created on or after date (ISO format: YYYY-MM-DD)"
    )
    createdEnd: Optional[date] = Field(
        default=None, description="Created on or before date (ISO format: YYYY-MM-DD)"
    )
    important: Optional[bool] = Field(default=None, description="Only show important/starred bookmarks")
    media: Optional[MediaType] = Field(default=None, description="Filter by media type")
    sort: SortKey = Field(default="-created", description="Sort order (prefix with - for descending)")


class BookmarkIdParams(BaseModel):
    id: int = Field(description="Bookmark ID")


class BookmarkCreateParams(BaseModel):
    url: str = Field(
        pattern=r"^[a-zA-Z][a-zA-Z0-9+.-]*://\S+$",
        description='URL to bookmark (e.g., "https://example.com/article")',
    )
    collectionId: int = Field(description="Collection ID where bookmark will be saved")
    title: Optional[str] = Field(
        default=None, description="Custom title (if not provided, will be extracted from URL)"
    )
    description: Optional[str] = Field(default=None, description="Custom description or notes")
    tags: Optional[List[str]] = Field(
        default=None, description='Tags for organization (e.g., ["javascript", "tutorial"])'
    )
    important: bool = Field(default=False, description="Mark as important/starred")


class BookmarkUpdateParams(BaseModel):
    id: int = Field(description="Bookmark ID to update")
    title: Optional[str] = Field(default=None, description="New title")
    description: Optional[str] = Field(default=None, description="New description or notes")
    tags: Optional[List[str]] = Field(default=None, description="New tags (replaces existing tags)")
    collectionId: Optional[int] = Field(default=None, description="Move to different collection")
    important: Optional[bool] = Field(default=None, description="Change important/starred status")


class BookmarkRecentParams(BaseModel):
    count: int = Field(
        default=10, ge=1, le=20, description="Number of recent bookmarks to retrieve (1-20, default: 10)"
    )


class BookmarkBatchParams(BaseModel):
    operation: Literal["update", "move", "tag_add", "tag_remove", "delete", "delete_permanent"] = Field(
        description="Batch operation type"
    )
    bookmarkIds: List[int] = Field(min_length=1, description="List of bookmark IDs to operate on")
    collectionId: Optional[int] = Field(
        default=None, description="Target collection ID (for move/update operations)"
    )
    important: Optional[bool] = Field(default=None, description="Set important status (for update operations)")
    tags: Optional[List[str]] = Field(default=None, description="Tags to add/remove (for tag operations)")

    @model_validator(mode="after")
    def check_operation(self):
        if self.operation == "move":
            _missing("move", collectionId=self.collectionId)
        elif self.operation == "update" and self.collectionId is None and self.important is None:
            raise ValueError("collectionId or important required for update operation")
        elif self.operation in ("tag_add", "tag_remove"):
            _missing(self.operation, tags=self.tags)
        return self


class BookmarkReminderParams(BaseModel):
    operation: Literal["set", "remove"] = Field(description="Reminder operation")
    bookmarkId: int = Field(description="Bookmark ID")
    date: Optional[str] = Field(
        default=None,
        description="Reminder date in ISO format (YYYY-MM-DDTHH:mm:ss.sssZ) - required for set operation",
    )
    note: Optional[str] = Field(default=None, description="Optional reminder note")

    @model_validator(mode="after")
    def check_date(self):
        if self.operation == "set":
            _missing("set", date=self.date)
        return self


class BookmarkStreamParams(BaseModel):
    query: Optional[str] = Field(default=None, description="Only report new bookmarks matching this search")
    collection: Optional[int] = Field(default=None, description="Only watch this collection ID")
    interval: int = Field(default=30, ge=1, le=300, description="Seconds between polls (1-300)")
    timeout: int = Field(default=120, ge=1, le=600, description="Give up after this many seconds (1-600)")


# Tags

class TagListParams(BaseModel):
    collectionId: Optional[int] = Field(
        default=None, description="Collection ID to filter tags (omit for all tags)"
    )


class TagManageParams(BaseModel):
    operation: Literal["rename", "merge", "delete", "delete_multiple"] = Field(
        description="Tag management operation"
    )
    collectionId: Optional[int] = Field(
        default=None, description="Collection ID to scope operation (omit for all collections)"
    )
    oldName: Optional[str] = Field(default=None, description="Current tag name (required for rename)")
    newName: Optional[str] = Field(default=None, description="New tag name (required for rename)")
    sourceTags: Optional[List[str]] = Field(default=None, description="Tags to merge from (required for merge)")
    destinationTag: Optional[str] = Field(default=None, description="Tag to merge into (required for merge)")
    tagName: Optional[str] = Field(default=None, description="Tag to delete (required for single delete)")
    tagNames: Optional[List[str]] = Field(
        default=None, description="Tags to delete (required for multiple delete)"
    )

    @model_validator(mode="after")
    def check_operation(self):
        if self.operation == "rename":
            _missing("rename", oldName=self.oldName, newName=self.newName)
        elif self.operation == "merge":
            _missing("merge", sourceTags=self.sourceTags, destinationTag=self.destinationTag)
        elif self.operation == "delete":
            _missing("delete", tagName=self.tagName)
        else:
            _missing("delete_multiple", tagNames=self.tagNames)
        return self


# Highlights

class HighlightListParams(PageParams):
    scope: Literal["all", "bookmark", "collection"] = Field(description="Scope of highlights to retrieve")
    bookmarkId: Optional[int] = Field(default=None, description="Bookmark ID (required when scope=bookmark)")
    collectionId: Optional[int] = Field(
        default=None, description="Collection ID (required when scope=collection)"
    )

    @model_validator(mode="after")
    def check_scope(self):
        if self.scope == "bookmark" and self.bookmarkId is None:
            raise ValueError("bookmarkId required when scope=bookmark")
        if self.scope == "collection" and self.collectionId is None:
            raise ValueError("collectionId required when scope=collection")
        return self


class HighlightCreateParams(BaseModel):
    bookmarkId: int = Field(description="Bookmark ID to add highlight to")
    text: str = Field(min_length=1, description="Text to highlight (the actual content to be highlighted)")
    note: Optional[str] = Field(default=None, description="Optional note or comment about this highlight")
    color: Optional[str] = Field(default=None, description='Highlight color (e.g., "yellow", "blue", "#FFFF00")')


class HighlightUpdateParams(BaseModel):
    id: HighlightId = Field(description="Highlight ID to update")
    text: Optional[str] = Field(default=None, min_length=1, description="New highlighted text")
    note: Optional[str] = Field(default=None, description="New note or comment")
    color: Optional[str] = Field(default=None, description="New highlight color")

    @model_validator(mode="after")
    def check_changes(self):
        if self.text is None and self.note is None and self.color is None:
            raise ValueError("text, note or color required to update a highlight")
        return self


class HighlightDeleteParams(BaseModel):
    id: HighlightId = Field(description="Highlight ID to delete")


# User and import/export

class UserStatisticsParams(BaseModel):
    collectionId: Optional[int] = Field(
        default=None,
        description="Collection ID for specific collection statistics (omit for account-wide stats)",
    )


class ExportParams(BaseModel):
    format: Literal["csv", "html", "pdf"] = Field(
        description="Export format: csv (spreadsheet), html (browser bookmarks), pdf (document)"
    )
    collectionId: Optional[int] = Field(
        default=None, description="Export specific collection only (omit for all bookmarks)"
    )
    includeBroken: bool = Field(default=False, description="Include bookmarks with broken/dead links")
    includeDuplicates: bool = Field(default=False, description="Include duplicate bookmarks")
