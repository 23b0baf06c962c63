"""Domain event dispatch.

Services announce outcomes here instead of calling role or notification
code directly. Event names used by the core:

``plot.launched``, ``plot.succeeded``, ``plot.foiled``, ``plot.withdrawn``,
``strike.landed``, ``strike.shielded`` and ``admin.*``.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Awaitable, Callable, DefaultDict, Iterable, Mapping

EventPayload = Mapping[str, Any]
EventListener = Callable[[EventPayload], Awaitable[None]]


class EventBus:
    """Simple async pub-sub shared by the services of one app."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, list[EventListener]] = defaultdict(list)

    def subscribe(self, event_name: str, listener: EventListener) -> None:
        self._listeners[event_name].append(listener)

    def unsubscribe(self, event_name: str, listener: EventListener) -> None:
        listeners = self._listeners.get(event_name)
        if listeners and listener in listeners:
            listeners.remove(listener)

    async def publish(self, event_name: str, payload: EventPayload) -> None:
        for listener in list(self._listeners.get(event_name, ())):
            await listener(payload)

    def clear(self) -> None:
        self._listeners.clear()

    def listeners(self, event_name: str) -> Iterable[EventListener]:
        return tuple(self._listeners.get(event_name, ()))
