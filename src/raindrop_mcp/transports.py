"""
Transport bootstraps: stdio, and a Starlette app serving streamable HTTP and SSE.

Every HTTP session gets its own ``RaindropRegistry``; the API client, the
session store and the stream manager are shared across the process.
"""
import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import anyio
from anyio.abc import TaskGroup
import uvicorn
from mcp import types
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPServerTransport
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route
from starlette.types import ASGIApp, Receive, Scope, Send

from . import __version__
from .api import RaindropAPI
from .config import Settings, require_token
from .ratelimit import FixedWindowRateLimiter, RateLimitMiddleware
from .server import SERVER_NAME, RaindropRegistry
from .sessions import SSE, STREAMABLE, Session, SessionStore
from .streaming import StreamManager
from .tools import TOOLS

logger = logging.getLogger(__name__)

BAD_REQUEST_CODE = -32000
MESSAGES_PATH = "/messages/"


def error_envelope(code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None}


def is_initialize(body: bytes) -> bool:
    try:
        payload = json.loads(body)
    except ValueError:
        return False
    messages = payload if isinstance(payload, list) else [payload]
    return any(isinstance(m, dict) and m.get("method") == "initialize" for m in messages)


def _replay(body: bytes, receive: Receive) -> Receive:
    """A receive channel that yields the already-read body once, then defers."""
    sent = False

    async def wrapped():
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return wrapped


# stdio

async def serve_stdio(api: RaindropAPI) -> None:
    registry = RaindropRegistry(api)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await registry.server.run(read_stream, write_stream, registry.create_initialization_options())
    finally:
        await registry.close()
        await api.close()


def run_stdio(settings: Settings) -> None:
    api = RaindropAPI(require_token(settings))
    logger.info("Serving MCP over stdio")
    anyio.run(serve_stdio, api)


# HTTP

class McpHost:
    """Process-wide state shared by the HTTP endpoints."""

    def __init__(self, api: RaindropAPI, json_response: bool = False):
        self.api = api
        self.json_response = json_response
        self.sessions = SessionStore()
        self.streams = StreamManager()
        self.task_group: Optional[TaskGroup] = None

    def new_registry(self) -> RaindropRegistry:
        return RaindropRegistry(self.api, self.streams)

    @asynccontextmanager
    async def run(self):
        try:
            async with anyio.create_task_group() as tg:
                self.task_group = tg
                yield
                tg.cancel_scope.cancel()
        finally:
            self.task_group = None
            await self.api.close()


class GuardedApp:
    """Turns uncaught errors into a JSON-RPC internal error, if nothing was sent yet."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        started = False

        async def tracking_send(message):
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception:
            logger.exception("Error handling MCP request %s %s", scope.get("method"), scope.get("path"))
            if not started:
                response = JSONResponse(
                    error_envelope(types.INTERNAL_ERROR, "Internal server error"), status_code=500
                )
                await response(scope, receive, send)


class StreamableHTTPEndpoint:
    """``/mcp``: routes requests to per-session transports by the session id header."""

    def __init__(self, host: McpHost):
        self.host = host

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)

        session = self.host.sessions.get(session_id)
        if session is not None:
            await session.transport.handle_request(scope, receive, send)
            if request.method == "DELETE":
                self.host.sessions.remove(session_id)
            return

        if session_id or request.method != "POST":
            await self._reject(scope, receive, send)
            return

        body = await request.body()
        if not is_initialize(body):
            await self._reject(scope, receive, send)
            return

        transport = await self._start_session()
        await transport.handle_request(scope, _replay(body, receive), send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = JSONResponse(
            error_envelope(BAD_REQUEST_CODE, "Bad Request: No valid session ID provided"), status_code=400
        )
        await response(scope, receive, send)

    async def _start_session(self) -> StreamableHTTPServerTransport:
        if self.host.task_group is None:
            raise RuntimeError("HTTP server is not running; sessions need the app lifespan")

        session_id = uuid.uuid4().hex
        transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=self.host.json_response,
        )
        registry = self.host.new_registry()
        self.host.sessions.add(Session(session_id, STREAMABLE, registry, transport))

        async def run_session(*, task_status=anyio.TASK_STATUS_IGNORED):
            try:
                async with transport.connect() as (read_stream, write_stream):
                    task_status.started()
                    await registry.server.run(
                        read_stream,
                        write_stream,
                        registry.create_initialization_options(),
                        stateless=False,
                    )
            except Exception:
                logger.exception("Session %s crashed", session_id)
            finally:
                self.host.sessions.remove(session_id)
                await registry.close()

        await self.host.task_group.start(run_session)
        return transport


class SseEndpoint:
    """``/sse`` plus ``/messages/``: one registry per long-lived event stream."""

    def __init__(self, host: McpHost, messages_path: str = MESSAGES_PATH):
        self.host = host
        self.transport = SseServerTransport(messages_path)

    async def handle_sse(self, request: Request) -> Response:
        session_id = uuid.uuid4().hex
        registry = self.host.new_registry()
        self.host.sessions.add(Session(session_id, SSE, registry, self.transport))
        try:
            async with self.transport.connect_sse(request.scope, request.receive, request._send) as (
                read_stream,
                write_stream,
            ):
                await registry.server.run(read_stream, write_stream, registry.create_initialization_options())
        finally:
            self.host.sessions.remove(session_id)
            await registry.close()
        return Response()


def create_app(
    settings: Settings,
    api: Optional[RaindropAPI] = None,
    streamable: bool = True,
    sse: bool = True,
) -> Starlette:
    if api is None:
        api = RaindropAPI(require_token(settings))
    host = McpHost(api, json_response=settings.json_response)

    endpoints: Dict[str, str] = {}
    routes = []

    if streamable:
        routes.append(
            Route("/mcp", endpoint=GuardedApp(StreamableHTTPEndpoint(host)), methods=["GET", "POST", "DELETE"])
        )
        endpoints["/mcp"] = "Streamable HTTP (POST requests, GET event stream, DELETE to end the session)"

    if sse:
        sse_endpoint = SseEndpoint(host)
        routes.append(Route("/sse", endpoint=sse_endpoint.handle_sse, methods=["GET"]))
        routes.append(Mount(MESSAGES_PATH, app=GuardedApp(sse_endpoint.transport.handle_post_message)))
        endpoints["/sse"] = "Server-Sent Events stream (legacy transport)"
        endpoints[MESSAGES_PATH] = "Message endpoint for the SSE transport"

    async def health(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "server": SERVER_NAME,
                "version": __version__,
                "sessions": host.sessions.counts(),
                "activeStreams": host.streams.active_count,
                "sessionList": host.sessions.describe(),
            }
        )

    async def index(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "name": SERVER_NAME,
                "version": __version__,
                "endpoints": {**endpoints, "/health": "Health check and session counts"},
                "tools": len(TOOLS),
                "sessionHeader": MCP_SESSION_ID_HEADER,
            }
        )

    routes.append(Route("/health", endpoint=health, methods=["GET"]))
    routes.append(Route("/", endpoint=index, methods=["GET"]))

    @asynccontextmanager
    async def lifespan(app: Starlette):
        async with host.run():
            logger.info("MCP HTTP server ready (%s)", ", ".join(endpoints) or "no transports")
            yield
        logger.info("MCP HTTP server stopped")

    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
                allow_headers=["*"],
                expose_headers=[MCP_SESSION_ID_HEADER],
            ),
            Middleware(
                RateLimitMiddleware,
                limiter=FixedWindowRateLimiter(
                    settings.rate_limit_max_requests, settings.rate_limit_window_seconds
                ),
            ),
        ],
        lifespan=lifespan,
    )
    app.state.host = host
    return app


def run_http(settings: Settings, streamable: bool = True, sse: bool = True) -> None:
    app = create_app(settings, streamable=streamable, sse=sse)
    logger.info("Listening on http://%s:%s", settings.host, settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )
