"""
Debounce utilities.

Collapses a burst of triggers into one call: every trigger (re)starts a fixed
delay window and the action runs only once a window elapses untouched.
Timer state is only touched from the event loop thread, so a session never
has two windows open at once.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Set

from loguru import logger


class Debouncer:
    def __init__(self, *, delay_seconds: float, action: Callable[[], Awaitable[None]]) -> None:
        self._delay = max(0.0, float(delay_seconds))
        self._action = action

        # Pending window (Armed.Pending); None means Armed.Quiet.
        self._timer: Optional[asyncio.Task] = None

        # Actions already fired. They outlive cancel(): a rebuild that has
        # started is allowed to finish.
        self._running: Set[asyncio.Task] = set()

    @property
    def delay_seconds(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def trigger(self) -> None:
        # Restart the window; must run on the event loop thread.
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._wait_then_fire())

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def drain(self) -> None:
        """Wait for actions that have already fired."""
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    async def _wait_then_fire(self) -> None:
        await asyncio.sleep(self._delay)

        # Back to Armed.Quiet before the action runs so a trigger from inside
        # the action opens a fresh window instead of cancelling itself.
        self._timer = None

        task = asyncio.get_running_loop().create_task(self._run_action())
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run_action(self) -> None:
        try:
            await self._action()
        except Exception:
            logger.exception("Debounced action failed")
