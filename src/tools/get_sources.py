"""MCP tool that returns the ingested sources tree.

Registers the 'get_sources' tool. The first call ingests the configured
root and arms the file watcher; later calls return the current snapshot.
"""

from __future__ import annotations

from typing import Any, Dict

from loguru import logger
from mcp.server.fastmcp import FastMCP

from config import WATCH_ENABLED, WIKI_ROOT_PATH
from core.errors import IngestError
from core.models import to_wire
from engine.source_engine import SourceEngine


async def sources_response(engine: SourceEngine, *, root_path: str, watch: bool = True) -> Dict[str, Any]:
    """Payload shared by the tool and the HTTP endpoint."""
    try:
        tree = await engine.ensure_started(root_path, watch=watch)
    except IngestError as e:
        logger.error("Error fetching sources: {}", e)
        return {"success": False, "error": "Failed to fetch sources", "message": str(e)}

    return {"success": True, "sources": to_wire(tree)}


def register(
    mcp: FastMCP,
    *,
    engine: SourceEngine,
    root_path: str = WIKI_ROOT_PATH,
    watch: bool = WATCH_ENABLED,
) -> None:
    @mcp.tool(name="get_sources")
    async def get_sources() -> Dict[str, Any]:
        """Return the markdown sources tree.

        Returns:
          {"success": true, "sources": <tree>} where <tree> is a directory
          node {"type": "directory", "name", "children"} whose children are
          directories or files {"type": "file", "content": {"slug", "title",
          "content", "htmlContent"}}. On an unusable root:
          {"success": false, "error": ..., "message": ...}.
        """
        return await sources_response(engine, root_path=root_path, watch=watch)
