"""Server bootstrap for the markdown sources service.

Creates the FastMCP instance and the SourceEngine, registers tools,
resources and HTTP routes, and starts the MCP server.
"""

from mcp.server.fastmcp import FastMCP

from broadcast.hub import BroadcastHub
from config import (
    DOCUMENT_EXTENSIONS,
    LOG_FILE,
    LOG_LEVEL,
    MAX_DIR_ENTRIES,
    MAX_FILE_BYTES,
    MAX_TREE_DEPTH,
    MCP_TRANSPORT,
    SUBSCRIBER_QUEUE_SIZE,
    WATCH_DEBOUNCE_SECONDS,
)
from core.models import TraversalLimits
from engine.source_engine import SourceEngine
from logger_config import setup_logging
from sources.tree_builder import TreeBuilder

from tools.get_sources import register as register_get_sources
from tools.read_document import register as register_read_document

from resources.sources_tree import register_resources
from routes.sources_routes import register_routes

mcp = FastMCP("markdown-sources")


def build_engine() -> SourceEngine:
    limits = TraversalLimits(
        max_depth=MAX_TREE_DEPTH,
        max_entries=MAX_DIR_ENTRIES,
        max_file_bytes=MAX_FILE_BYTES,
    )
    return SourceEngine(
        builder=TreeBuilder(limits=limits, extensions=DOCUMENT_EXTENSIONS),
        hub=BroadcastHub(queue_size=SUBSCRIBER_QUEUE_SIZE),
        debounce_seconds=WATCH_DEBOUNCE_SECONDS,
    )


engine = build_engine()


def register_all() -> None:
    register_get_sources(mcp, engine=engine)
    register_read_document(mcp, engine=engine)
    register_resources(mcp, engine=engine)
    register_routes(mcp, engine=engine)


register_all()


def main() -> None:
    setup_logging(LOG_LEVEL, LOG_FILE or None)
    try:
        mcp.run(transport=MCP_TRANSPORT)
    finally:
        engine.stop_watching()


if __name__ == "__main__":
    main()
