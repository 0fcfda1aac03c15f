"""Immutable dataclasses describing the sources tree.

A tree snapshot is a DirectoryNode named "root" whose children are
DirectoryNode / FileNode values. Snapshots are never mutated: each
ingestion builds a new one. The wire helpers produce the JSON shape the
streaming and request/response endpoints share.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

ROOT_NAME = "root"


@dataclass(frozen=True)
class Document:
    """One ingested document.

    - slug: file name without its document extension
    - title: slug with '-' and '_' replaced by spaces
    - raw_content: the text read from disk (or a placeholder notice)
    - rendered_content: HTML produced by the content transform
    """

    slug: str
    title: str
    raw_content: str
    rendered_content: str


@dataclass(frozen=True)
class FileNode:
    document: Document


@dataclass(frozen=True)
class DirectoryNode:
    name: str
    children: Tuple["SourceNode", ...] = ()


SourceNode = Union[DirectoryNode, FileNode]


@dataclass(frozen=True)
class TraversalLimits:
    """Bounds applied while walking the root directory.

    Exceeding any of them trims the tree silently; they are never errors.
    """

    max_depth: int = 10
    max_entries: int = 100
    max_file_bytes: int = 10_000_000


def empty_root() -> DirectoryNode:
    return DirectoryNode(name=ROOT_NAME, children=())


def document_to_wire(document: Document) -> Dict[str, str]:
    return {
        "slug": document.slug,
        "title": document.title,
        "content": document.raw_content,
        "htmlContent": document.rendered_content,
    }


def to_wire(node: SourceNode) -> Dict[str, Any]:
    """Convert a node (and its subtree) to plain JSON-compatible dicts."""
    if isinstance(node, FileNode):
        return {"type": "file", "content": document_to_wire(node.document)}
    return {
        "type": "directory",
        "name": node.name,
        "children": [to_wire(child) for child in node.children],
    }


def connected_message() -> Dict[str, Any]:
    return {"type": "connected"}


def sources_updated_message(tree: SourceNode) -> Dict[str, Any]:
    return {"type": "sources_updated", "sources": to_wire(tree)}


def find_document(tree: SourceNode, path: str) -> Optional[Document]:
    """Resolve 'dir/sub/slug' to a Document, or None.

    Slugs are only unique within their parent, so the first match in
    traversal order wins.
    """
    parts = [seg for seg in (path or "").strip().replace("\\", "/").split("/") if seg]
    if not parts or not isinstance(tree, DirectoryNode):
        return None

    *dirs, slug = parts
    node: DirectoryNode = tree
    for name in dirs:
        nxt = next(
            (c for c in node.children if isinstance(c, DirectoryNode) and c.name == name),
            None,
        )
        if nxt is None:
            return None
        node = nxt

    for child in node.children:
        if isinstance(child, FileNode) and child.document.slug == slug:
            return child.document
    return None


def count_documents(tree: SourceNode) -> int:
    if isinstance(tree, FileNode):
        return 1
    return sum(count_documents(child) for child in tree.children)
