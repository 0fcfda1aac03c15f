"""HTTP endpoints served next to the MCP transport.

- GET /api/sources: the sources tree as JSON (first call ingests)
- GET /api/sources/watch: Server-Sent Events stream of
  {"type": "connected"} then {"type": "sources_updated", "sources": ...}

Only reachable with the sse / streamable-http transports.
"""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP
from sse_starlette.sse import EventSourceResponse
from starlette.requests import Request
from starlette.responses import JSONResponse

from broadcast.hub import stream_events
from config import SSE_PING_SECONDS, WATCH_ENABLED, WIKI_ROOT_PATH
from engine.source_engine import SourceEngine
from tools.get_sources import sources_response

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET",
    "Access-Control-Allow-Headers": "Cache-Control",
}


def register_routes(
    mcp: FastMCP,
    *,
    engine: SourceEngine,
    root_path: str = WIKI_ROOT_PATH,
    watch: bool = WATCH_ENABLED,
    ping_seconds: int = SSE_PING_SECONDS,
) -> None:
    @mcp.custom_route("/api/sources", methods=["GET"])
    async def api_sources(request: Request) -> JSONResponse:
        payload = await sources_response(engine, root_path=root_path, watch=watch)
        return JSONResponse(payload, status_code=200 if payload["success"] else 500)

    @mcp.custom_route("/api/sources/watch", methods=["GET"])
    async def api_sources_watch(request: Request) -> EventSourceResponse:
        # '\n' separators keep frames byte-identical to 'data: {json}\n\n'
        return EventSourceResponse(
            stream_events(engine.hub),
            headers=CORS_HEADERS,
            ping=ping_seconds,
            sep="\n",
        )
