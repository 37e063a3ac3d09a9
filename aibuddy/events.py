"""EventBus -- in-process broadcast of buddy domain events.

Every component publishes what it did (assistant created, file uploaded,
conversation loaded, ...) and any number of observers (a terminal
printer, a test) subscribe independently::

    bus = EventBus()
    sub = bus.subscribe()

    bus.publish(AsstLoaded(AsstRef("helper", "asst_123")))

    async for evt in sub:
        print(evt.type.value)

Publishing never blocks and never fails: each subscription owns a bounded
queue, and a subscriber that falls behind loses its oldest events (counted
in ``Subscription.missed``). The bus only holds subscriptions weakly, so a
handle nobody references anymore simply stops receiving.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from aibuddy.types import AsstRef, FileRef

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 16
HISTORY_LIMIT = 200


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class EventType(str, Enum):
    # Assistant
    ASST_CREATED = "asst_created"
    ASST_LOADED = "asst_loaded"
    ASST_DELETED = "asst_deleted"
    ASST_FILE_CANT_REMOVE = "asst_file_cant_remove"

    # Account files
    ORG_FILE_UPLOADING = "org_file_uploading"
    ORG_FILE_UPLOADED = "org_file_uploaded"
    ORG_FILE_DELETED = "org_file_deleted"
    ORG_FILE_CANT_DELETE = "org_file_cant_delete"

    # Buddy
    INST_UPLOADED = "inst_uploaded"
    CONV_CREATED = "conv_created"
    CONV_LOADED = "conv_loaded"


@dataclass(frozen=True, slots=True)
class AsstCreated:
    asst_ref: AsstRef
    type: ClassVar[EventType] = EventType.ASST_CREATED


@dataclass(frozen=True, slots=True)
class AsstLoaded:
    asst_ref: AsstRef
    type: ClassVar[EventType] = EventType.ASST_LOADED


@dataclass(frozen=True, slots=True)
class AsstDeleted:
    asst_ref: AsstRef
    type: ClassVar[EventType] = EventType.ASST_DELETED


@dataclass(frozen=True, slots=True)
class AsstFileCantRemove:
    asst_id: str
    file_id: str
    cause: str
    type: ClassVar[EventType] = EventType.ASST_FILE_CANT_REMOVE


@dataclass(frozen=True, slots=True)
class OrgFileUploading:
    file_name: str
    type: ClassVar[EventType] = EventType.ORG_FILE_UPLOADING


@dataclass(frozen=True, slots=True)
class OrgFileUploaded:
    file_ref: FileRef
    type: ClassVar[EventType] = EventType.ORG_FILE_UPLOADED


@dataclass(frozen=True, slots=True)
class OrgFileDeleted:
    file_ref: FileRef
    type: ClassVar[EventType] = EventType.ORG_FILE_DELETED


@dataclass(frozen=True, slots=True)
class OrgFileCantDelete:
    file_ref: FileRef
    cause: str
    type: ClassVar[EventType] = EventType.ORG_FILE_CANT_DELETE


@dataclass(frozen=True, slots=True)
class InstUploaded:
    type: ClassVar[EventType] = EventType.INST_UPLOADED


@dataclass(frozen=True, slots=True)
class ConvCreated:
    type: ClassVar[EventType] = EventType.CONV_CREATED


@dataclass(frozen=True, slots=True)
class ConvLoaded:
    type: ClassVar[EventType] = EventType.CONV_LOADED


Event = Union[
    AsstCreated,
    AsstLoaded,
    AsstDeleted,
    AsstFileCantRemove,
    OrgFileUploading,
    OrgFileUploaded,
    OrgFileDeleted,
    OrgFileCantDelete,
    InstUploaded,
    ConvCreated,
    ConvLoaded,
]


# ---------------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------------

class Subscription:
    """One independent receive handle on an EventBus.

    ``recv()`` returns ``None`` once the subscription (or its bus) is closed
    and every buffered event has been consumed.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._queue: asyncio.Queue[Event | None] = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self.missed = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, item: Event | None) -> None:
        """Enqueue without blocking, evicting the oldest item when full."""
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            dropped = self._queue.get_nowait()
            if dropped is not None:
                self.missed += 1
            self._queue.put_nowait(item)

    def close(self) -> None:
        """Stop receiving. Events already buffered can still be drained."""
        if self._closed:
            return
        self._closed = True
        self._offer(None)

    async def recv(self) -> Event | None:
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def try_recv(self) -> Event | None:
        """Non-blocking receive; ``None`` when nothing is buffered."""
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def drain(self) -> list[Event]:
        """Pop every buffered event without waiting."""
        events: list[Event] = []
        while True:
            evt = self.try_recv()
            if evt is None:
                return events
            events.append(evt)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Event:
        evt = await self.recv()
        if evt is None:
            raise StopAsyncIteration
        return evt


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------

class EventBus:
    """Single-producer, many-consumer broadcast channel for buddy events."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, history_limit: int = HISTORY_LIMIT) -> None:
        self._capacity = capacity
        self._subscribers: weakref.WeakSet[Subscription] = weakref.WeakSet()
        self._history: deque[Event] = deque(maxlen=history_limit)
        self._closed = False

    def subscribe(self) -> Subscription:
        """Return a new independent subscription.

        The caller must keep a reference to it; the bus does not.
        """
        sub = Subscription(self._capacity)
        if self._closed:
            sub.close()
        else:
            self._subscribers.add(sub)
        return sub

    def publish(self, event: Event) -> int:
        """Broadcast ``event``; returns how many subscriptions received it.

        Zero receivers is not an error.
        """
        if self._closed:
            logger.debug("[bus] Dropping %s, bus is closed", event.type.value)
            return 0

        self._history.append(event)

        delivered = 0
        for sub in list(self._subscribers):
            if sub.closed:
                self._subscribers.discard(sub)
                continue
            sub._offer(event)
            delivered += 1

        if delivered == 0:
            logger.debug("[bus] No receivers for %s", event.type.value)
        return delivered

    def close(self) -> None:
        """Close the bus; subscribers finish once their buffers are drained."""
        if self._closed:
            return
        self._closed = True
        for sub in list(self._subscribers):
            sub.close()
        self._subscribers = weakref.WeakSet()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return sum(1 for s in self._subscribers if not s.closed)

    def recent(self, n: int = 50) -> list[Event]:
        """The N most recently published events, oldest first."""
        if n <= 0:
            return []
        return list(self._history)[-n:]
