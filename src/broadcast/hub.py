"""Fan-out of messages to live subscribers.

Each subscriber owns a Channel. publish() never waits on a subscriber:
QueueChannel is a bounded asyncio.Queue written with put_nowait, so a slow
reader whose queue fills up is treated like a dead one and dropped.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import threading
from typing import Any, AsyncIterator, Dict, Mapping, Optional

from loguru import logger

from core.errors import SubscriberWriteError
from core.interfaces import Channel
from core.models import connected_message

_CLOSED = object()


class QueueChannel:
    """Bounded in-memory channel read by one streaming response."""

    def __init__(self, *, maxsize: int = 64) -> None:
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue(maxsize=max(1, int(maxsize)))
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, message: Mapping[str, Any]) -> None:
        if self._closed:
            raise SubscriberWriteError("Channel is closed")
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull as e:
            raise SubscriberWriteError("Subscriber is not keeping up") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        # Wake the reader; make room for the sentinel if needed.
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "QueueChannel":
        return self

    async def __anext__(self) -> Mapping[str, Any]:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class Subscription:
    """Handle returned by BroadcastHub.subscribe."""

    def __init__(self, sub_id: int, channel: Channel) -> None:
        self.id = sub_id
        self.channel = channel

    def __repr__(self) -> str:
        return f"Subscription(id={self.id})"

    def __aiter__(self) -> AsyncIterator[Mapping[str, Any]]:
        return self.channel.__aiter__()  # type: ignore[attr-defined]


class BroadcastHub:
    def __init__(self, *, queue_size: int = 64) -> None:
        self._queue_size = queue_size
        self._subscribers: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)

        # publish may run while a request handler subscribes or leaves
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, channel: Optional[Channel] = None) -> Subscription:
        """Register a subscriber after acknowledging it with a 'connected' message.

        If the acknowledgement cannot be written the handle is returned
        unregistered and its channel closed.
        """
        ch = channel if channel is not None else QueueChannel(maxsize=self._queue_size)
        sub = Subscription(next(self._ids), ch)

        try:
            ch.send(connected_message())
        except SubscriberWriteError as e:
            logger.debug("Subscriber {} failed before registration: {}", sub.id, e)
            ch.close()
            return sub

        with self._lock:
            self._subscribers[sub.id] = sub
        logger.debug("Subscriber {} connected ({} active)", sub.id, len(self))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            removed = self._subscribers.pop(sub.id, None)
        sub.channel.close()
        if removed is not None:
            logger.debug("Subscriber {} disconnected", sub.id)

    def publish(self, message: Mapping[str, Any]) -> int:
        """Deliver to every registered subscriber; returns how many accepted it."""
        with self._lock:
            targets = list(self._subscribers.values())

        delivered = 0
        for sub in targets:
            try:
                sub.channel.send(message)
            except SubscriberWriteError as e:
                logger.info("Dropping subscriber {}: {}", sub.id, e)
                self.unsubscribe(sub)
                continue
            delivered += 1
        return delivered


def encode_event(message: Mapping[str, Any]) -> str:
    """One Server-Sent Events frame: 'data: <json>' followed by a blank line."""
    return f"data: {encode_payload(message)}\n\n"


def encode_payload(message: Mapping[str, Any]) -> str:
    # Compact separators and raw unicode match JSON.stringify output.
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False)


async def stream_events(hub: BroadcastHub) -> AsyncIterator[str]:
    """Subscribe and yield JSON payloads until the consumer goes away."""
    sub = hub.subscribe()
    try:
        async for message in sub:
            yield encode_payload(message)
    finally:
        hub.unsubscribe(sub)
