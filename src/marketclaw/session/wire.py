"""Wire protocol: decouples task execution from notification.

The registry emits task lifecycle events onto the wire. A notification
layer (chat replies for ``notify_on_complete`` tasks, logs, a UI) either
subscribes with a queue or registers a callback per event type.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from marketclaw.agent.types import AgentTask

logger = logging.getLogger(__name__)


class EventType(enum.Enum):
    TASK_START = "task:start"
    TASK_COMPLETE = "task:complete"
    TASK_ERROR = "task:error"


@dataclass
class WireEvent:
    """An event on the wire. ``task`` is a snapshot taken at emission time."""

    type: EventType
    task: AgentTask


Listener = Callable[[WireEvent], None]


class Wire:
    """Event bus: registry -> notification subscribers.

    Single-producer, multi-consumer broadcast. Listeners run synchronously
    inside ``send``; a failing listener is logged and skipped.
    """

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue[WireEvent | None]] = []
        self._listeners: dict[EventType, list[Listener]] = defaultdict(list)
        self._closed: bool = False

    def send(self, event: WireEvent) -> None:
        """Send an event to all subscribers and listeners.

        Silently drops events after ``close()`` has been called.
        """
        if self._closed:
            return
        for q in self._subscribers:
            q.put_nowait(event)
        for listener in list(self._listeners[event.type]):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Listener for %s failed on task %s", event.type.value, event.task.id
                )

    def send_task_start(self, task: AgentTask) -> None:
        self.send(WireEvent(type=EventType.TASK_START, task=task.snapshot()))

    def send_task_complete(self, task: AgentTask) -> None:
        self.send(WireEvent(type=EventType.TASK_COMPLETE, task=task.snapshot()))

    def send_task_error(self, task: AgentTask) -> None:
        self.send(WireEvent(type=EventType.TASK_ERROR, task=task.snapshot()))

    def add_listener(self, event_type: EventType, listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def remove_listener(self, event_type: EventType, listener: Listener) -> None:
        if listener in self._listeners[event_type]:
            self._listeners[event_type].remove(listener)

    def subscribe(self) -> asyncio.Queue[WireEvent | None]:
        """Subscribe to events. Returns a queue to read from."""
        q: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        self._subscribers.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        if q in self._subscribers:
            self._subscribers.remove(q)

    def close(self) -> None:
        """Signal all subscribers that the wire is closing."""
        if self._closed:
            return
        self._closed = True
        for q in self._subscribers:
            q.put_nowait(None)
