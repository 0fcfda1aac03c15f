"""MCP tool that returns a single rendered document.

Registers the 'read_document' tool which resolves a slug path against the
current sources tree.
"""

from __future__ import annotations

from typing import Any, Dict

from mcp.server.fastmcp import FastMCP

from config import WATCH_ENABLED, WIKI_ROOT_PATH
from core.errors import NotFoundError, ValidationError
from core.models import document_to_wire
from rendering.markdown import extract_headings
from engine.source_engine import SourceEngine


def register(
    mcp: FastMCP,
    *,
    engine: SourceEngine,
    root_path: str = WIKI_ROOT_PATH,
    watch: bool = WATCH_ENABLED,
) -> None:
    @mcp.tool(name="read_document")
    async def read_document(path: str = "") -> Dict[str, Any]:
        """Read one document from the sources tree.

        Params:
          - path: directory names and the document slug joined by '/'
            (e.g. "guides/getting-started"), relative to the sources root.

        Returns:
          {"slug", "title", "content", "htmlContent", "headings"} for the
          document; headings lists {"level", "text", "anchor"} in order.

        Raises:
          ValidationError when path is empty; NotFoundError when no document
          matches.
        """
        if not path or not path.strip():
            raise ValidationError("Missing document path")

        await engine.ensure_started(root_path, watch=watch)

        doc = engine.find_document(path)
        if doc is None:
            raise NotFoundError(f"Document not found: {path}")
        payload: Dict[str, Any] = dict(document_to_wire(doc))
        payload["headings"] = [
            {"level": h.level, "text": h.text, "anchor": h.anchor} for h in extract_headings(doc.raw_content)
        ]
        return payload
