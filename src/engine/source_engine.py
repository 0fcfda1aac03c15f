"""Coordinator owning the current sources tree.

Holds one immutable snapshot at a time and swaps it with a single
assignment, so readers always see a complete tree. Ingestions are
serialized by an asyncio.Lock; the watcher's rebuilds go through the same
path and publish 'sources_updated' in completion order.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Callable, Optional, Union

from loguru import logger

from broadcast.hub import BroadcastHub, Subscription
from core.errors import IngestError
from core.models import (
    DirectoryNode,
    Document,
    TraversalLimits,
    count_documents,
    empty_root,
    find_document,
    sources_updated_message,
)
from sources.tree_builder import TreeBuilder
from sources.watcher import SourceWatcher

UpdateCallback = Callable[[], None]


class SourceEngine:
    def __init__(
        self,
        *,
        builder: Optional[TreeBuilder] = None,
        hub: Optional[BroadcastHub] = None,
        limits: Optional[TraversalLimits] = None,
        debounce_seconds: float = 0.5,
        watcher_factory: Callable[..., SourceWatcher] = SourceWatcher,
    ) -> None:
        self._builder = builder or TreeBuilder(limits=limits)
        self._hub = hub or BroadcastHub()
        self._debounce_seconds = debounce_seconds
        self._watcher_factory = watcher_factory

        self._tree: DirectoryNode = empty_root()
        self._initialized = False
        self._ingest_lock = asyncio.Lock()
        self._start_lock = asyncio.Lock()

        self._watcher: Optional[SourceWatcher] = None

    @property
    def hub(self) -> BroadcastHub:
        return self._hub

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def watching(self) -> bool:
        return self._watcher is not None and self._watcher.armed

    def current_tree(self) -> DirectoryNode:
        return self._tree

    def find_document(self, path: str) -> Optional[Document]:
        return find_document(self._tree, path)

    async def ingest(self, root_path: Union[str, Path]) -> None:
        """Build a fresh tree and install it.

        Raises IngestError (RootNotFoundError) when the root is unusable; the
        previous snapshot is kept in that case.
        """
        async with self._ingest_lock:
            started = time.monotonic()
            # Blocking IO runs in a thread so publish and other tasks keep going
            tree = await asyncio.to_thread(self._builder.build, root_path)
            self._tree = tree
            self._initialized = True
            logger.info(
                "Ingested {} documents from {} in {:.0f}ms",
                count_documents(tree),
                root_path,
                (time.monotonic() - started) * 1000,
            )

    async def ensure_started(self, root_path: Union[str, Path], *, watch: bool = True) -> DirectoryNode:
        """First-use bootstrap: ingest once, then arm the watcher."""
        async with self._start_lock:
            if not self._initialized:
                await self.ingest(root_path)
                if watch:
                    self.start_watching(root_path)
        return self._tree

    def start_watching(self, root_path: Union[str, Path], on_update: Optional[UpdateCallback] = None) -> None:
        """Arm live reload for root_path; replaces a previous watch session.

        After each successful automatic re-ingestion the new tree is published
        to every subscriber, then on_update (if any) is invoked.
        """
        self.stop_watching()

        watcher = self._watcher_factory(
            on_change=lambda: self._rebuild(root_path, on_update),
            debounce_seconds=self._debounce_seconds,
            limits=self._builder.limits,
            extensions=self._builder.extensions,
            excluded_names=self._builder.excluded_names,
        )
        self._watcher = watcher
        watcher.start(root_path)

    def stop_watching(self) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.stop()
            logger.info("Stopped file watcher")

    def subscribe(self) -> Subscription:
        return self._hub.subscribe()

    def unsubscribe(self, sub: Subscription) -> None:
        self._hub.unsubscribe(sub)

    def broadcast_sources(self) -> int:
        return self._hub.publish(sources_updated_message(self._tree))

    async def _rebuild(self, root_path: Union[str, Path], on_update: Optional[UpdateCallback]) -> None:
        logger.info("Debounced file change, triggering update")
        try:
            await self.ingest(root_path)
        except IngestError as e:
            logger.error("Error during file watch update: {}", e)
            return

        delivered = self.broadcast_sources()
        logger.debug("Published sources update to {} subscribers", delivered)

        if on_update is not None:
            on_update()
