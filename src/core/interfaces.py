"""Core protocol and interface definitions.

Defines the Channel protocol the broadcast hub writes to and the
DocumentRenderer callable the tree builder uses to render bodies.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol


class Channel(Protocol):
    """Contract for a subscriber's outgoing channel (SSE queue, test double...)."""

    def send(self, message: Mapping[str, Any]) -> None:
        """Deliver without blocking; raise SubscriberWriteError when unwritable."""
        ...

    def close(self) -> None:
        ...


class DocumentRenderer(Protocol):
    def __call__(self, text: str) -> str:
        ...
