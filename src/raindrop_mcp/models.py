from datetime import date
from typing import List, Optional, Union
from pydantic import BaseModel, Field


# Pseudo-collection ids defined by Raindrop.io
ALL_COLLECTION_ID = 0
UNSORTED_COLLECTION_ID = -1
TRASH_COLLECTION_ID = -99


def ref_id(ref: Optional[dict]) -> Optional[int]:
    """Extract the id from a `{"$id": n}` reference."""
    if not ref:
        return None
    return ref.get("$id", ref.get("_id"))


class Collection(BaseModel):
    id: int = Field(alias="_id")
    title: str
    description: Optional[str] = None
    count: Optional[int] = 0
    parent: Optional[dict] = None  # Contains {"$id": int}
    view: Optional[str] = None  # list, simple, grid, masonry
    public: Optional[bool] = None
    expanded: Optional[bool] = None
    sort: Optional[Union[int, str]] = None
    cover: Optional[List[str]] = None
    created: Optional[str] = None
    lastUpdate: Optional[str] = None
    color: Optional[str] = None
    access: Optional[dict] = None
    collaborators: Optional[Union[dict, list]] = None
    user: Optional[dict] = None

    @property
    def parent_id(self) -> Optional[int]:
        return ref_id(self.parent)


class CollectionCreate(BaseModel):
    title: str
    view: Optional[str] = None
    public: Optional[bool] = None
    parent: Optional[dict] = None  # Expecting {"$id": int} if set


class CollectionUpdate(BaseModel):
    title: Optional[str] = None
    view: Optional[str] = None
    public: Optional[bool] = None
    parent: Optional[dict] = None
    expanded: Optional[bool] = None
    sort: Optional[str] = None


class Reminder(BaseModel):
    date: Optional[str] = Field(default=None, alias="data")
    note: Optional[str] = None

    model_config = {"populate_by_name": True}


class Highlight(BaseModel):
    id: Union[int, str] = Field(alias="_id")
    text: str = ""
    note: Optional[str] = None
    color: Optional[str] = None
    created: Optional[str] = None
    lastUpdate: Optional[str] = None
    title: Optional[str] = None
    tags: Optional[List[str]] = None
    link: Optional[str] = None
    raindropRef: Optional[int] = None
    raindrop: Optional[dict] = None  # {"_id": int, "title": str, "link": str, "collection": {"$id": int}}

    @property
    def bookmark_id(self) -> Optional[int]:
        if self.raindropRef is not None:
            return self.raindropRef
        return ref_id(self.raindrop)

    @property
    def bookmark_title(self) -> Optional[str]:
        if self.raindrop:
            return self.raindrop.get("title")
        return self.title

    @property
    def bookmark_link(self) -> Optional[str]:
        if self.raindrop:
            return self.raindrop.get("link")
        return self.link


class Raindrop(BaseModel):
    id: int = Field(alias="_id")
    link: str
    title: str = ""
    excerpt: str = ""
    note: str = ""
    tags: List[str] = []
    cover: Optional[str] = None
    created: Optional[str] = None
    lastUpdate: Optional[str] = None
    type: Optional[str] = "link"  # link, article, image, video, document, audio
    important: Optional[bool] = False
    collection_id: Optional[int] = Field(alias="collectionId", default=None)
    collection: Optional[dict] = None  # {"$id": int}
    domain: Optional[str] = None
    media: Optional[List[dict]] = None
    broken: Optional[bool] = False
    reminder: Optional[Reminder] = None
    highlights: List[Highlight] = []

    @property
    def collection_ref(self) -> int:
        """The owning collection; bookmarks always belong to exactly one."""
        if self.collection_id is not None:
            return self.collection_id
        ref = ref_id(self.collection)
        return UNSORTED_COLLECTION_ID if ref is None else ref


class RaindropCreate(BaseModel):
    link: str
    collection: dict  # {"$id": int}
    title: Optional[str] = None
    excerpt: Optional[str] = None
    tags: Optional[List[str]] = None
    important: Optional[bool] = None


class RaindropUpdate(BaseModel):
    link: Optional[str] = None
    title: Optional[str] = None
    excerpt: Optional[str] = None
    note: Optional[str] = None
    tags: Optional[List[str]] = None
    important: Optional[bool] = None
    collectionId: Optional[int] = None
    collection: Optional[dict] = None  # Expected structure: {"$id": int}


class Tag(BaseModel):
    name: str = Field(alias="_id")
    count: int = 0


class User(BaseModel):
    id: int = Field(alias="_id")
    email: Optional[str] = None
    fullName: Optional[str] = None
    pro: bool = False
    registered: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.fullName or self.email or f"User {self.id}"


class UserStats(BaseModel):
    count: int = 0
    unsorted: int = 0
    trash: int = 0
    collections: int = 0
    tags: int = 0


class SearchParams(BaseModel):
    search: Optional[str] = None
    collection: Optional[int] = None
    tags: Optional[List[str]] = None
    createdStart: Optional[date] = None
    createdEnd: Optional[date] = None
    important: Optional[bool] = None
    media: Optional[str] = None
    page: int = 0
    perPage: int = 25
    sort: Optional[str] = "-created"


class ImportStatus(BaseModel):
    status: Optional[str] = None  # in-progress, ready, error
    progress: Optional[float] = None
    imported: Optional[int] = None
    duplicates: Optional[int] = None
    error: Optional[str] = None


class ExportOptions(BaseModel):
    format: str  # csv, html, pdf
    collection: Optional[int] = None
    broken: Optional[bool] = None
    duplicates: Optional[bool] = None


class ExportStatus(BaseModel):
    status: Optional[str] = None  # in-progress, ready, error
    progress: Optional[float] = None
    url: Optional[str] = None
    error: Optional[str] = None
