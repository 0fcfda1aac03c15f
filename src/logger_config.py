"""Loguru sink configuration.

stdout carries the MCP stdio transport, so console logs always go to stderr.
An optional file sink rotates and compresses old logs.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            path,
            rotation="256 MB",
            retention="10 days",
            compression="zip",
            encoding="utf-8",
            level="DEBUG",
        )
