import asyncio
import json
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .models import (
    ALL_COLLECTION_ID,
    TRASH_COLLECTION_ID,
    UNSORTED_COLLECTION_ID,
    Collection,
    CollectionCreate,
    CollectionUpdate,
    ExportOptions,
    ExportStatus,
    Highlight,
    ImportStatus,
    Raindrop,
    RaindropCreate,
    RaindropUpdate,
    SearchParams,
    Tag,
    User,
    UserStats,
)

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 50
ONE_DAY = timedelta(days=1)

SHARE_ROLES = {"view": "viewer", "edit": "member"}


class RaindropError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int = 500, hint: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.hint = hint


class NotFoundError(RaindropError):
    """Raised when the requested entity does not exist (404)."""

    def __init__(self, message: str):
        super().__init__(message, 404, hint="The requested resource was not found. Verify the ID is correct.")


class RateLimitError(RaindropError):
    """Raised when the API rejects a call for exceeding its rate limit."""

    def __init__(self, retry_after: int):
        super().__init__(f"Rate limit exceeded. Retry after {retry_after}s", 429)
        self.retry_after = retry_after


class ServerError(RaindropError):
    """Raised when Raindrop.io is down (5xx)."""

    def __init__(self, message: str):
        super().__init__(message, 502)


def build_search_expression(params: SearchParams) -> str:
    """Fold the structured filters into Raindrop's search syntax."""
    parts = []
    if params.search:
        parts.append(params.search.strip())
    for tag in params.tags or []:
        parts.append(f'#"{tag}"' if " " in tag else f"#{tag}")
    # Raindrop's date operators are strict, so shift each bound by a day
    if params.createdStart:
        parts.append(f"created:>{params.createdStart - ONE_DAY}")
    if params.createdEnd:
        parts.append(f"created:<{params.createdEnd + ONE_DAY}")
    if params.important:
        parts.append("important:true")
    if params.media:
        parts.append(f"type:{params.media}")
    return " ".join(p for p in parts if p)


class RaindropAPI:
    BASE_URL = "https://api.raindrop.io/rest/v1"

    def __init__(self, token: str, timeout: float = 30.0):
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        self.client = httpx.AsyncClient(timeout=timeout)

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self) -> "RaindropAPI":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """
        Issue one HTTP call and unwrap the JSON body.

        Every failure surfaces as a RaindropError carrying the HTTP status;
        nothing is retried.
        """
        logger.debug("%s %s", method, path)
        try:
            response = await self.client.request(
                method, f"{self.BASE_URL}{path}", headers=self.headers, **kwargs
            )
        except httpx.RequestError as e:
            raise RaindropError(f"Network Error: {str(e)}", status_code=503) from e

        if response.status_code == 429:
            raise RateLimitError(int(response.headers.get("Retry-After", 60)))

        if response.status_code >= 500:
            raise ServerError(f"Raindrop.io Server Error: {response.status_code}")

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            # 4xx errors: Include the API's error message if available
            error_detail = e.response.text
            try:
                error_json = e.response.json()
                if isinstance(error_json, dict):
                    error_detail = error_json.get("errorMessage", error_detail)
            except ValueError:
                pass

            if e.response.status_code == 404:
                raise NotFoundError(f"API Error 404: {error_detail or 'Not Found'}") from e
            raise RaindropError(
                f"API Error {e.response.status_code}: {error_detail}",
                status_code=e.response.status_code,
            ) from e

        if not response.content:
            return {}
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise RaindropError(f"Invalid JSON response from API: {str(e)}", 502) from e

    # Collections

    async def get_root_collections(self) -> List[Collection]:
        data = await self._request("GET", "/collections")
        return [Collection.model_validate(item) for item in data.get("items", [])]

    async def get_child_collections(self) -> List[Collection]:
        data = await self._request("GET", "/collections/childrens")
        return [Collection.model_validate(item) for item in data.get("items", [])]

    async def get_all_collections(self) -> List[Collection]:
        """Root and nested collections together."""
        roots, children = await asyncio.gather(
            self.get_root_collections(),
            self.get_child_collections(),
        )
        return roots + children

    async def list_collections(self, parent_id: Optional[int] = None) -> List[Collection]:
        if parent_id is None:
            return await self.get_root_collections()
        children = await self.get_child_collections()
        return [c for c in children if c.parent_id == parent_id]

    async def get_collection(self, collection_id: int) -> Collection:
        data = await self._request("GET", f"/collection/{collection_id}")
        return Collection.model_validate(data.get("item", {}))

    async def create_collection(self, collection: CollectionCreate) -> Collection:
        data = await self._request(
            "POST", "/collection", json=collection.model_dump(exclude_none=True)
        )
        return Collection.model_validate(data.get("item", {}))

    async def update_collection(
        self, collection_id: int, update: CollectionUpdate
    ) -> Collection:
        data = await self._request(
            "PUT",
            f"/collection/{collection_id}",
            json=update.model_dump(exclude_none=True),
        )
        return Collection.model_validate(data.get("item", {}))

    async def delete_collection(self, collection_id: int) -> bool:
        data = await self._request("DELETE", f"/collection/{collection_id}")
        return data.get("result", False)

    async def share_collection(
        self, collection_id: int, level: str, emails: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Invite collaborators (view/edit) or stop sharing (remove)."""
        if level == "remove":
            return await self._request("DELETE", f"/collection/{collection_id}/sharing")
        payload = {"role": SHARE_ROLES[level], "emails": emails or []}
        return await self._request("POST", f"/collection/{collection_id}/sharing", json=payload)

    async def merge_collections(self, ids: List[int], target_id: int) -> bool:
        data = await self._request(
            "PUT", "/collections/merge", json={"ids": ids, "to": target_id}
        )
        return data.get("result", True)

    async def clean_empty_collections(self) -> int:
        data = await self._request("PUT", "/collections/clean")
        return data.get("count", 0)

    async def empty_trash(self) -> bool:
        data = await self._request("DELETE", f"/collection/{TRASH_COLLECTION_ID}")
        return data.get("result", False)

    # Bookmarks

    async def search_bookmarks(self, params: SearchParams) -> Tuple[List[Raindrop], int]:
        """One page of bookmarks plus the total match count."""
        query: Dict[str, Any] = {"page": params.page, "perpage": params.perPage}
        expression = build_search_expression(params)
        if expression:
            query["search"] = expression
        if params.sort:
            query["sort"] = params.sort

        collection_id = ALL_COLLECTION_ID if params.collection is None else params.collection
        data = await self._request("GET", f"/raindrops/{collection_id}", params=query)
        items = [Raindrop.model_validate(item) for item in data.get("items", [])]
        return items, data.get("count", len(items))

    async def get_recent_bookmarks(self, count: int = 10) -> List[Raindrop]:
        items, _ = await self.search_bookmarks(SearchParams(perPage=count, sort="-created"))
        return items

    async def collect_bookmark_ids(self, collection_id: int) -> List[int]:
        """Every bookmark id in a collection, paging at the API maximum."""
        page = 0
        ids: List[int] = []

        while True:
            params = {"page": page, "perpage": MAX_PER_PAGE}
            data = await self._request("GET", f"/raindrops/{collection_id}", params=params)
            items = data.get("items", [])

            if not items:
                break

            ids.extend(item["_id"] for item in items)

            if len(items) < MAX_PER_PAGE:
                break

            page += 1

        return ids

    async def get_bookmarks_by_ids(self, ids: List[int]) -> List[Raindrop]:
        """Fetch bookmarks by id, one full page of ids per request."""
        chunks = [ids[i:i + MAX_PER_PAGE] for i in range(0, len(ids), MAX_PER_PAGE)]
        pages = await asyncio.gather(*[
            self._request(
                "GET",
                f"/raindrops/{ALL_COLLECTION_ID}",
                params={"ids": ",".join(str(i) for i in chunk), "perpage": MAX_PER_PAGE},
            )
            for chunk in chunks
        ])
        return [Raindrop.model_validate(item) for data in pages for item in data.get("items", [])]

    async def get_bookmark(self, raindrop_id: int) -> Raindrop:
        data = await self._request("GET", f"/raindrop/{raindrop_id}")
        return Raindrop.model_validate(data.get("item", {}))

    async def create_bookmark(self, bookmark: RaindropCreate) -> Raindrop:
        data = await self._request(
            "POST", "/raindrop", json=bookmark.model_dump(exclude_none=True)
        )
        return Raindrop.model_validate(data.get("item", {}))

    async def update_bookmark(
        self, raindrop_id: int, update: RaindropUpdate
    ) -> Raindrop:
        data = await self._request(
            "PUT", f"/raindrop/{raindrop_id}", json=update.model_dump(exclude_none=True)
        )
        return Raindrop.model_validate(data.get("item", {}))

    async def delete_bookmark(self, raindrop_id: int) -> bool:
        """Move a bookmark to the trash."""
        data = await self._request("DELETE", f"/raindrop/{raindrop_id}")
        return data.get("result", False)

    async def delete_bookmark_permanently(self, raindrop_id: int) -> bool:
        """Deleting a bookmark that is already in the trash removes it for good."""
        await self.delete_bookmark(raindrop_id)
        return await self.delete_bookmark(raindrop_id)

    async def batch_update_bookmarks(
        self, collection_id: int, ids: List[int], update: RaindropUpdate
    ) -> bool:
        """Batch update raindrops in a collection."""
        payload = update.model_dump(exclude_none=True)
        payload["ids"] = ids
        data = await self._request("PUT", f"/raindrops/{collection_id}", json=payload)
        return data.get("result", False)

    async def set_reminder(
        self, raindrop_id: int, date: str, note: Optional[str] = None
    ) -> Raindrop:
        reminder: Dict[str, Any] = {"data": date}
        if note:
            reminder["note"] = note
        data = await self._request(
            "PUT", f"/raindrop/{raindrop_id}", json={"reminder": reminder}
        )
        return Raindrop.model_validate(data.get("item", {}))

    async def remove_reminder(self, raindrop_id: int) -> Raindrop:
        data = await self._request(
            "PUT", f"/raindrop/{raindrop_id}", json={"reminder": None}
        )
        return Raindrop.model_validate(data.get("item", {}))

    # Tags

    async def get_tags(self, collection_id: Optional[int] = None) -> List[Tag]:
        scope = ALL_COLLECTION_ID if collection_id is None else collection_id
        data = await self._request("GET", f"/tags/{scope}")
        if "items" not in data:
            raise RaindropError("Invalid response structure from Raindrop.io API", 502)
        return [Tag.model_validate(item) for item in data["items"]]

    async def rename_tag(
        self, old_name: str, new_name: str, collection_id: Optional[int] = None
    ) -> bool:
        """Rename a tag (merges if new_name exists)."""
        scope = ALL_COLLECTION_ID if collection_id is None else collection_id
        data = await self._request(
            "PUT",
            f"/tags/{scope}",
            json={"replace": new_name, "tags": [old_name]},
        )
        return data.get("result", False)

    async def merge_tags(
        self, source_tags: List[str], destination: str, collection_id: Optional[int] = None
    ) -> None:
        """
        Rename each source tag into the destination, one call per tag.

        Not atomic: if a rename fails, the earlier renames stay applied and the
        remaining tags are never attempted.
        """
        for tag in source_tags:
            await self.rename_tag(tag, destination, collection_id)

    async def delete_tags(self, tags: List[str], collection_id: Optional[int] = None) -> bool:
        """Delete tags globally or from a specific collection."""
        scope = ALL_COLLECTION_ID if collection_id is None else collection_id
        data = await self._request(
            "DELETE", f"/tags/{scope}", json={"tags": tags}
        )
        return data.get("result", False)

    # Highlights

    async def get_highlights(self, page: int = 0, per_page: int = 25) -> List[Highlight]:
        data = await self._request(
            "GET", "/highlights", params={"page": page, "perpage": per_page}
        )
        if "items" not in data:
            raise RaindropError("Invalid response structure from Raindrop.io API", 502)
        return [Highlight.model_validate(item) for item in data["items"]]

    async def get_all_highlights(self) -> List[Highlight]:
        page = 0
        highlights: List[Highlight] = []

        while True:
            items = await self.get_highlights(page, MAX_PER_PAGE)
            highlights.extend(items)
            if len(items) < MAX_PER_PAGE:
                return highlights
            page += 1

    async def get_bookmark_highlights(self, raindrop_id: int) -> List[Highlight]:
        """Highlights embedded in one bookmark; a missing bookmark has none."""
        try:
            bookmark = await self.get_bookmark(raindrop_id)
        except NotFoundError:
            return []
        return [_attach(h, bookmark) for h in bookmark.highlights]

    async def get_highlights_by_collection(self, collection_id: int) -> List[Highlight]:
        # Raises NotFoundError for unknown collections
        await self.get_collection(collection_id)
        ids = await self.collect_bookmark_ids(collection_id)
        if not ids:
            return []
        bookmarks = await self.get_bookmarks_by_ids(ids)
        return [_attach(h, b) for b in bookmarks for h in b.highlights]

    async def find_highlight(self, highlight_id: str) -> Highlight:
        page = 0
        while True:
            items = await self.get_highlights(page, MAX_PER_PAGE)
            for item in items:
                if str(item.id) == str(highlight_id):
                    return item
            if len(items) < MAX_PER_PAGE:
                raise NotFoundError(f"Highlight {highlight_id} not found")
            page += 1

    async def create_highlight(
        self,
        raindrop_id: int,
        text: str,
        note: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Highlight:
        payload: Dict[str, Any] = {"text": text, "raindrop": {"$id": raindrop_id}}
        if note is not None:
            payload["note"] = note
        if color is not None:
            payload["color"] = color
        data = await self._request("POST", "/highlights", json=payload)
        return Highlight.model_validate(data.get("item", {}))

    async def update_highlight(self, highlight_id: str, updates: Dict[str, Any]) -> Highlight:
        data = await self._request("PUT", f"/highlights/{highlight_id}", json=updates)
        return Highlight.model_validate(data.get("item", {}))

    async def delete_highlight(self, highlight_id: str) -> bool:
        data = await self._request("DELETE", f"/highlights/{highlight_id}")
        return data.get("result", True)

    # User

    async def get_user(self) -> User:
        data = await self._request("GET", "/user")
        return User.model_validate(data.get("user", {}))

    async def get_stats(self) -> List[Dict[str, Any]]:
        """Get account statistics (counts of raindrops, collections, tags)."""
        data = await self._request("GET", "/user/stats")
        return data.get("items", [])

    async def get_user_stats(self) -> UserStats:
        stats, collections, tags = await asyncio.gather(
            self.get_stats(),
            self.get_all_collections(),
            self.get_tags(),
        )
        counts = {s.get("_id"): s.get("count", 0) for s in stats}
        return UserStats(
            count=counts.get(ALL_COLLECTION_ID, 0),
            unsorted=counts.get(UNSORTED_COLLECTION_ID, 0),
            trash=counts.get(TRASH_COLLECTION_ID, 0),
            collections=len(collections),
            tags=len(tags),
        )

    # Import / export

    async def get_import_status(self) -> ImportStatus:
        data = await self._request("GET", "/import/status")
        return ImportStatus.model_validate(data)

    async def export_bookmarks(self, options: ExportOptions) -> Optional[str]:
        """Submit an export job; returns the status/download url if the API gives one."""
        data = await self._request(
            "POST", "/export", json=options.model_dump(exclude_none=True)
        )
        return data.get("url")

    async def get_export_status(self) -> ExportStatus:
        data = await self._request("GET", "/export/status")
        return ExportStatus.model_validate(data)


def _attach(highlight: Highlight, bookmark: Raindrop) -> Highlight:
    """Fill in the back-reference to the owning bookmark."""
    if highlight.raindrop is None:
        highlight.raindrop = {
            "_id": bookmark.id,
            "title": bookmark.title,
            "link": bookmark.link,
            "collection": {"$id": bookmark.collection_ref},
        }
    if highlight.tags is None:
        highlight.tags = bookmark.tags
    return highlight
