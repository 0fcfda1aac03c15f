from __future__ import annotations

from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Tuple

"""
Path utilities shared by the tree builder and the watcher.

Both sides must agree on which names are skipped and how deep a path sits
below the root, otherwise the watcher would trigger rebuilds for content
the builder never shows (or miss content it does).
"""

# Version control, dependency caches and build output
DEFAULT_EXCLUDED_NAMES: FrozenSet[str] = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        ".next",
        "__pycache__",
        ".venv",
        "venv",
        "dist",
        "build",
        ".cache",
    }
)


def is_skipped_name(name: str, excluded: Iterable[str] = DEFAULT_EXCLUDED_NAMES) -> bool:
    """Hidden entries and denylisted housekeeping directories."""
    return name.startswith(".") or name in excluded


def has_document_extension(name: str, extensions: Tuple[str, ...]) -> bool:
    return name.lower().endswith(extensions)


def document_slug(name: str, extensions: Tuple[str, ...]) -> str:
    """File name without its document extension."""
    lowered = name.lower()
    for ext in extensions:
        if lowered.endswith(ext):
            return name[: len(name) - len(ext)]
    return name


def slug_to_title(slug: str) -> str:
    return slug.replace("-", " ").replace("_", " ")


def relative_parts(path: str, root: Path) -> Optional[Tuple[str, ...]]:
    """Split 'path' into segments relative to 'root'.

    Returns None for paths outside the root. The number of segments is the
    depth of the entry (the root's direct children sit at depth 1).
    """
    try:
        rel = Path(path).relative_to(root)
    except ValueError:
        return None
    return tuple(seg for seg in rel.parts if seg not in ("", "."))
