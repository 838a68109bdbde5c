"""
MCP server exposing Raindrop.io through tools and resources.

A ``RaindropRegistry`` wraps one low-level ``mcp`` Server. The stdio transport
builds a single registry for the whole process; the HTTP transports build one
per session. All registries share the same ``RaindropAPI`` client.
"""
import logging
from typing import Any, Dict, List, Optional

from mcp import types
from mcp.server.lowlevel import Server
from mcp.shared.exceptions import McpError
from pydantic import ValidationError

from . import __version__
from .api import RaindropAPI, RaindropError
from .content import Content
from .resources import RESOURCES, ResourceListing, UnknownResource, match_resource
from .streaming import StreamManager
from .tools import TOOLS, ToolContext, ToolError

logger = logging.getLogger(__name__)

SERVER_NAME = "raindrop-mcp"

INSTRUCTIONS = """\
Tools for a Raindrop.io bookmark library.

- Collections are folders. Special ids: 0 = all bookmarks, -1 = Unsorted, -99 = Trash.
- Use collection_find to turn a collection name into an id, and bookmark_recent or
  bookmark_search to discover bookmark ids before reading or changing them.
- Tags are plain strings; tag_manage renames, merges and deletes them everywhere.
- Listing tools are paginated: page starts at 0, perPage is at most 50, and the first
  content block reports total and hasMore.
"""


def describe_validation_error(error: ValidationError) -> str:
    messages = []
    for err in error.errors():
        loc = ".".join(str(part) for part in err["loc"])
        msg = err["msg"].removeprefix("Value error, ")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(messages)


class RaindropRegistry:
    def __init__(self, api: RaindropAPI, streams: Optional[StreamManager] = None):
        self.api = api
        self.streams = streams or StreamManager()
        self.server = Server(SERVER_NAME, version=__version__, instructions=INSTRUCTIONS)
        self._register()

    def _register(self) -> None:
        server = self.server

        @server.list_tools()
        async def handle_list_tools() -> List[types.Tool]:
            return self.list_tools()

        # Arguments are validated by the pydantic parameter models instead
        @server.call_tool(validate_input=False)
        async def handle_call_tool(name: str, arguments: Dict[str, Any]) -> List[Content]:
            return await self.call_tool(name, arguments)

        @server.list_resources()
        async def handle_list_resources() -> List[types.Resource]:
            return self.list_resources()

        @server.list_resource_templates()
        async def handle_list_resource_templates() -> List[types.ResourceTemplate]:
            return self.list_resource_templates()

        # The decorator form drops listing-level metadata, so the request is handled directly
        server.request_handlers[types.ReadResourceRequest] = self._handle_read_resource

    def create_initialization_options(self):
        return self.server.create_initialization_options()

    # Tools

    def list_tools(self) -> List[types.Tool]:
        return [
            types.Tool(
                name=spec.name,
                description=spec.description,
                inputSchema=spec.params.model_json_schema(),
                annotations=types.ToolAnnotations(
                    title=spec.name.replace("_", " ").title(),
                    readOnlyHint=spec.read_only,
                    destructiveHint=spec.destructive,
                ),
            )
            for spec in TOOLS.values()
        ]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> List[Content]:
        spec = TOOLS.get(name)
        if spec is None:
            raise ToolError(f"Unknown tool: {name}")

        try:
            params = spec.params.model_validate(arguments or {})
        except ValidationError as e:
            raise ToolError(f"Invalid arguments for {name}: {describe_validation_error(e)}") from e

        logger.debug("Calling tool %s", name)
        ctx = ToolContext(api=self.api, streams=self.streams, owner=self)
        try:
            return await spec.handler(ctx, params)
        except RaindropError as e:
            raise ToolError(f"Failed to {spec.action}: {e}", hint=e.hint) from e

    # Resources

    def list_resources(self) -> List[types.Resource]:
        return [
            types.Resource(uri=spec.uri, name=spec.name, description=spec.description, mimeType="text/plain")
            for spec in RESOURCES
            if not spec.is_template
        ]

    def list_resource_templates(self) -> List[types.ResourceTemplate]:
        return [
            types.ResourceTemplate(
                uriTemplate=spec.uri, name=spec.name, description=spec.description, mimeType="text/plain"
            )
            for spec in RESOURCES
            if spec.is_template
        ]

    async def read_resource(self, uri: str) -> ResourceListing:
        try:
            spec, variables = match_resource(uri)
            return await spec.reader(self.api, **variables)
        except (UnknownResource, ValueError) as e:
            raise McpError(types.ErrorData(code=types.INVALID_PARAMS, message=str(e))) from e
        except RaindropError as e:
            raise McpError(
                types.ErrorData(code=types.INTERNAL_ERROR, message=f"Failed to read {uri}: {e}")
            ) from e

    async def _handle_read_resource(self, req: types.ReadResourceRequest) -> types.ServerResult:
        listing = await self.read_resource(str(req.params.uri))
        extra = {"metadata": listing.metadata} if listing.metadata is not None else {}
        return types.ServerResult(types.ReadResourceResult(contents=listing.contents, **extra))

    async def close(self) -> None:
        stopped = self.streams.cancel_owner(self)
        if stopped:
            logger.info("Cancelled %d stream(s) on close", stopped)
