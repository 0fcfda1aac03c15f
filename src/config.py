"""Configuration and environment helpers for the project.

Provides small helpers to read typed environment variables and exposes
project-level configuration constants used across the codebase (e.g.
WIKI_ROOT_PATH, traversal limits, watch debounce and streaming settings).
"""

from __future__ import annotations

import os
from typing import Tuple


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_extensions(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    # Comma separated list, e.g. ".md,.markdown"
    raw = os.environ.get(name)
    if raw is None:
        return default
    exts = []
    for part in raw.split(","):
        ext = part.strip().lower()
        if not ext:
            continue
        exts.append(ext if ext.startswith(".") else f".{ext}")
    return tuple(exts) or default


# Directory ingested into the sources tree (resolved by the engine at ingest time)
WIKI_ROOT_PATH = os.environ.get("WIKI_ROOT_PATH", "./wiki").strip() or "./wiki"

# Documents
DOCUMENT_EXTENSIONS = _env_extensions("DOCUMENT_EXTENSIONS", (".md",))

# Traversal limits
MAX_TREE_DEPTH = _env_int("MAX_TREE_DEPTH", 10)
MAX_DIR_ENTRIES = _env_int("MAX_DIR_ENTRIES", 100)
MAX_FILE_BYTES = _env_int("MAX_FILE_BYTES", 10_000_000)

# Live reload
WATCH_ENABLED = _env_bool("WATCH_ENABLED", True)
WATCH_DEBOUNCE_SECONDS = _env_float("WATCH_DEBOUNCE_SECONDS", 0.5)

# Streaming
SUBSCRIBER_QUEUE_SIZE = _env_int("SUBSCRIBER_QUEUE_SIZE", 64)
SSE_PING_SECONDS = _env_int("SSE_PING_SECONDS", 15)

# Server / logging
MCP_TRANSPORT = os.environ.get("MCP_TRANSPORT", "stdio").strip() or "stdio"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
LOG_FILE = os.environ.get("LOG_FILE", "").strip()
