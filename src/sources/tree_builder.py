from __future__ import annotations

import os
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple, Union

from loguru import logger

from core.errors import EntryReadError, RootNotFoundError, TransformError
from core.interfaces import DocumentRenderer
from core.models import ROOT_NAME, DirectoryNode, Document, FileNode, SourceNode, TraversalLimits
from core.paths import (
    DEFAULT_EXCLUDED_NAMES,
    document_slug,
    has_document_extension,
    is_skipped_name,
    slug_to_title,
)
from rendering.markdown import render_markdown


"""Local filesystem tree builder.

Walks a root directory depth-first and produces a fresh, immutable
DirectoryNode snapshot. Per-entry failures never abort a build: unreadable
files become placeholder documents and unreadable directories come back
without children. Only a missing or unreadable root is an error.
"""

TOO_LARGE_TEXT = "File too large to process"
TOO_LARGE_HTML = "<p>File too large to process</p>"
READ_ERROR_TEXT = "Error reading file"
READ_ERROR_HTML = "<p>Error reading file</p>"


class TreeBuilder:
    # Sequential DFS; children keep the filesystem's enumeration order.

    def __init__(
        self,
        *,
        limits: Optional[TraversalLimits] = None,
        render: DocumentRenderer = render_markdown,
        extensions: Tuple[str, ...] = (".md",),
        excluded_names: Iterable[str] = DEFAULT_EXCLUDED_NAMES,
    ) -> None:
        self._limits = limits or TraversalLimits()
        self._render = render
        self._extensions = tuple(ext.lower() for ext in extensions)
        self._excluded = frozenset(excluded_names)

    @property
    def limits(self) -> TraversalLimits:
        return self._limits

    @property
    def extensions(self) -> Tuple[str, ...]:
        return self._extensions

    @property
    def excluded_names(self) -> FrozenSet[str]:
        return self._excluded

    def build(self, root_path: Union[str, Path]) -> DirectoryNode:
        root = Path(root_path)
        try:
            resolved = root.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise RootNotFoundError(f"Root path does not exist: {root_path}") from e

        if not resolved.is_dir():
            raise RootNotFoundError(f"Root path is not a directory: {root_path}")

        try:
            entries = self._scan(resolved)
        except EntryReadError as e:
            raise RootNotFoundError(f"Root path is not readable: {root_path}") from e

        # Visited set holds the directories on the current branch only.
        visited: Set[Path] = {resolved}
        children = self._children(entries, depth=1, visited=visited)
        logger.debug("Built tree for {} with {} top-level entries", resolved, len(children))
        return DirectoryNode(name=ROOT_NAME, children=tuple(children))

    def _scan(self, path: Path) -> List[os.DirEntry]:
        try:
            with os.scandir(path) as it:
                return list(it)
        except OSError as e:
            raise EntryReadError(f"Cannot read directory {path}: {e}") from e

    def _children(self, entries: List[os.DirEntry], *, depth: int, visited: Set[Path]) -> List[SourceNode]:
        if depth > self._limits.max_depth:
            logger.debug("Max depth reached, omitting {} entries", len(entries))
            return []

        out: List[SourceNode] = []
        for entry in entries:
            name = entry.name
            # Checked on the name alone, before any I/O on the entry
            if is_skipped_name(name, self._excluded):
                continue

            try:
                is_dir = entry.is_dir()
                is_doc = not is_dir and entry.is_file() and has_document_extension(name, self._extensions)
            except OSError as e:
                logger.warning("Cannot stat {}: {}", entry.path, e)
                continue

            if not (is_dir or is_doc):
                continue

            if len(out) >= self._limits.max_entries:
                logger.info(
                    "Too many entries in {}, keeping the first {}",
                    os.path.dirname(entry.path),
                    self._limits.max_entries,
                )
                break

            if is_dir:
                out.append(self._directory(Path(entry.path), name, depth=depth, visited=visited))
            else:
                out.append(self._file(Path(entry.path), name))
        return out

    def _directory(self, path: Path, name: str, *, depth: int, visited: Set[Path]) -> DirectoryNode:
        try:
            key = path.resolve()
        except (OSError, RuntimeError) as e:
            logger.warning("Cannot resolve directory {}: {}", path, e)
            return DirectoryNode(name=name)

        if key in visited:
            logger.info("Circular reference detected, not descending into {}", path)
            return DirectoryNode(name=name)

        visited.add(key)
        try:
            entries = self._scan(path)
            children = self._children(entries, depth=depth + 1, visited=visited)
        except EntryReadError as e:
            logger.error("Error reading directory {}: {}", path, e)
            children = []
        finally:
            visited.discard(key)

        return DirectoryNode(name=name, children=tuple(children))

    def _file(self, path: Path, name: str) -> FileNode:
        slug = document_slug(name, self._extensions)
        title = slug_to_title(slug)

        try:
            text = self._read_text(path)
            if text is None:
                logger.warning("File too large, skipping markdown processing: {}", path)
                return FileNode(Document(slug, title, TOO_LARGE_TEXT, TOO_LARGE_HTML))
            rendered = self._transform(text)
        except (EntryReadError, TransformError) as e:
            logger.error("Error processing file {}: {}", path, e)
            return FileNode(Document(slug, title, READ_ERROR_TEXT, READ_ERROR_HTML))

        return FileNode(Document(slug=slug, title=title, raw_content=text, rendered_content=rendered))

    def _transform(self, text: str) -> str:
        # Renderers are pluggable; whatever they raise stays local to the file
        try:
            return self._render(text)
        except TransformError:
            raise
        except Exception as e:
            raise TransformError(f"Renderer failed: {e}") from e

    def _read_text(self, path: Path) -> Optional[str]:
        # None means the file is over the size limit
        limit = self._limits.max_file_bytes
        try:
            if path.stat().st_size > limit:
                return None
            data = path.read_bytes()
        except OSError as e:
            raise EntryReadError(f"Cannot read file {path}: {e}") from e

        # The file may have grown between stat and read
        if len(data) > limit:
            return None
        return data.decode("utf-8", errors="replace")
