import logging
import math
import time
from typing import Callable, Dict, Iterable, Tuple

from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    """Allow ``max_requests`` per client within each ``window_seconds`` window."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}

    def hit(self, key: str) -> Tuple[bool, float]:
        """Record one request; returns (allowed, seconds until the window resets)."""
        now = self._clock()
        start, count = self._windows.get(key, (now, 0))
        if now - start >= self.window_seconds:
            start, count = now, 0

        reset_in = start + self.window_seconds - now
        if count >= self.max_requests:
            return False, reset_in

        self._windows[key] = (start, count + 1)
        self._prune(now)
        return True, reset_in

    def _prune(self, now: float) -> None:
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]


class RateLimitMiddleware:
    """ASGI middleware answering 429 once a client IP exhausts its window."""

    def __init__(self, app: ASGIApp, limiter: FixedWindowRateLimiter, exempt_paths: Iterable[str] = ("/health",)):
        self.app = app
        self.limiter = limiter
        self.exempt_paths = set(exempt_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path") in self.exempt_paths or scope.get("method") == "OPTIONS":
            await self.app(scope, receive, send)
            return

        client = scope.get("client")
        key = client[0] if client else "unknown"
        allowed, reset_in = self.limiter.hit(key)
        if not allowed:
            logger.warning("Rate limit exceeded for %s on %s", key, scope.get("path"))
            response = PlainTextResponse(
                "Too Many Requests",
                status_code=429,
                headers={"Retry-After": str(max(1, math.ceil(reset_in)))},
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
