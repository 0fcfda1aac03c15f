"""Filesystem watcher with debounced change notifications.

A watchdog Observer thread reports events under the root. Irrelevant paths
(hidden, denylisted, too deep, not a document) are dropped on that thread;
relevant ones are marshalled onto the event loop where they restart the
debounce window. When the window elapses, on_change() runs once.

States: Idle (no observer) -> Armed.Quiet <-> Armed.Pending -> Idle on stop().
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Optional, Tuple, Union

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from core.debounce import Debouncer
from core.errors import WatchSourceError
from core.models import TraversalLimits
from core.paths import DEFAULT_EXCLUDED_NAMES, has_document_extension, is_skipped_name, relative_parts

RELEVANT_EVENT_TYPES = frozenset({"created", "modified", "deleted", "moved"})
# A directory leaving the tree arrives as one event, without per-file events
DIRECTORY_REMOVAL_TYPES = frozenset({"deleted", "moved"})


class _SourceEventHandler(FileSystemEventHandler):
    # Runs on the observer thread; must not touch loop state directly.

    def __init__(self, watcher: "SourceWatcher", loop: asyncio.AbstractEventLoop) -> None:
        super().__init__()
        self._watcher = watcher
        self._loop = loop

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in RELEVANT_EVENT_TYPES:
            return
        if event.is_directory and event.event_type not in DIRECTORY_REMOVAL_TYPES:
            return

        paths = [event.src_path]
        dest = getattr(event, "dest_path", None)
        if dest:
            paths.append(dest)

        for raw in paths:
            path = raw.decode() if isinstance(raw, bytes) else str(raw)
            if self._watcher.is_relevant(path, is_directory=event.is_directory):
                logger.debug("File {}: {}", event.event_type, path)
                self._schedule(path)
                return

    def _schedule(self, path: str) -> None:
        if self._loop.is_closed():
            return
        try:
            self._loop.call_soon_threadsafe(self._watcher.notify, path)
        except RuntimeError:
            # Loop shut down between the check and the call
            logger.debug("Event loop closed, dropping change for {}", path)


class SourceWatcher:
    def __init__(
        self,
        *,
        on_change: Callable[[], Awaitable[None]],
        debounce_seconds: float = 0.5,
        limits: Optional[TraversalLimits] = None,
        extensions: Tuple[str, ...] = (".md",),
        excluded_names: Iterable[str] = DEFAULT_EXCLUDED_NAMES,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        self._limits = limits or TraversalLimits()
        self._extensions = tuple(ext.lower() for ext in extensions)
        self._excluded = frozenset(excluded_names)
        self._observer_factory = observer_factory
        self._debouncer = Debouncer(delay_seconds=debounce_seconds, action=on_change)

        self._observer: Optional[Any] = None
        self._root: Optional[Path] = None

    @property
    def armed(self) -> bool:
        return self._observer is not None

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    @property
    def root(self) -> Optional[Path]:
        return self._root

    def start(self, root_path: Union[str, Path]) -> None:
        """Arm a watch session on root_path, replacing any previous one.

        Must be called from the event loop thread. A failing notification
        source is logged and leaves the session armed but inert.
        """
        if self._observer is not None:
            logger.info("Closing existing file watcher for {}", self._root)
            self.stop()

        loop = asyncio.get_running_loop()
        root = Path(root_path).resolve()
        observer = self._observer_factory()
        self._observer = observer
        self._root = root

        try:
            observer.schedule(_SourceEventHandler(self, loop), str(root), recursive=True)
            observer.start()
        except OSError as e:
            err = WatchSourceError(f"Cannot watch {root}: {e}")
            logger.error("File watcher error: {}", err)
            return

        logger.info("Started file watcher for {}", root)

    def stop(self) -> None:
        """Cancel the pending window and release the observer. Idempotent."""
        self._debouncer.cancel()

        observer, self._observer = self._observer, None
        self._root = None
        if observer is None:
            return

        try:
            observer.stop()
            if observer.is_alive():
                observer.join(timeout=5.0)
        except (OSError, RuntimeError) as e:
            logger.warning("Error while stopping file watcher: {}", e)

    def is_relevant(self, path: str, *, is_directory: bool = False) -> bool:
        root = self._root
        if root is None:
            return False

        parts = relative_parts(path, root)
        if not parts or len(parts) > self._limits.max_depth:
            return False
        if any(is_skipped_name(seg, self._excluded) for seg in parts):
            return False
        if is_directory:
            return True
        return has_document_extension(parts[-1], self._extensions)

    def notify(self, path: str) -> None:
        # Loop thread. Events that were queued before stop() are dropped.
        if self._observer is None:
            return
        logger.trace("Change queued for {}", path)
        self._debouncer.trigger()

    async def drain(self) -> None:
        await self._debouncer.drain()
