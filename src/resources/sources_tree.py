from mcp.server.fastmcp import FastMCP

from broadcast.hub import encode_payload
from core.models import to_wire
from engine.source_engine import SourceEngine


def register_resources(mcp: FastMCP, *, engine: SourceEngine) -> None:
    """
    Register the current sources tree as a read-only MCP resource.
    """

    @mcp.resource(
        "sources://tree",
        mime_type="application/json",
        description="Current markdown sources tree (empty until the first ingest)",
    )
    def sources_tree() -> str:
        return encode_payload(to_wire(engine.current_tree()))
