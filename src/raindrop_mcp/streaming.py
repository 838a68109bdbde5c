import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set

from .models import Raindrop

logger = logging.getLogger(__name__)

Fetch = Callable[[], Awaitable[List[Raindrop]]]


async def poll_for_new(
    fetch: Fetch, known_ids: Set[int], interval: float, timeout: float
) -> List[Raindrop]:
    """
    Poll ``fetch`` every ``interval`` seconds until it returns bookmarks whose
    ids are not in ``known_ids``.

    Only one fetch is in flight at a time. Returns the first non-empty set of
    new bookmarks, or an empty list once ``timeout`` seconds have passed.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            return []
        await asyncio.sleep(min(interval, remaining))

        items = await fetch()
        fresh = [b for b in items if b.id not in known_ids]
        if fresh:
            return fresh


class PollHandle:
    """A running poll task plus the means to await or cancel it."""

    def __init__(self, stream_id: str, owner: Any, task: "asyncio.Task[List[Raindrop]]", manager: "StreamManager"):
        self.id = stream_id
        self.owner = owner
        self.task = task
        self._manager = manager

    def cancel(self) -> None:
        if not self.task.done():
            self.task.cancel()
        self._manager.discard(self)

    async def wait(self) -> List[Raindrop]:
        """Await the result; cancelling the waiter cancels the poll."""
        try:
            return await self.task
        finally:
            self.cancel()


class StreamManager:
    """Process-wide set of active bookmark polls."""

    def __init__(self):
        self._active: Dict[str, PollHandle] = {}

    @property
    def active_count(self) -> int:
        return len(self._active)

    def active(self, owner: Any = None) -> List[PollHandle]:
        return [h for h in self._active.values() if owner is None or h.owner is owner]

    def start(
        self,
        owner: Any,
        fetch: Fetch,
        known_ids: Iterable[int],
        interval: float,
        timeout: float,
    ) -> PollHandle:
        stream_id = uuid.uuid4().hex
        task = asyncio.create_task(poll_for_new(fetch, set(known_ids), interval, timeout))
        handle = PollHandle(stream_id, owner, task, self)
        self._active[stream_id] = handle
        logger.info("Stream %s started (interval=%ss, timeout=%ss)", stream_id, interval, timeout)
        return handle

    def discard(self, handle: PollHandle) -> None:
        if self._active.pop(handle.id, None) is not None:
            logger.info("Stream %s stopped", handle.id)

    def cancel_owner(self, owner: Optional[Any]) -> int:
        """Cancel every poll started by ``owner``; returns how many were stopped."""
        handles = self.active(owner)
        for handle in handles:
            handle.cancel()
        return len(handles)
