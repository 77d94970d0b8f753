"""Typed in-process event bus for socket events.

Handlers subscribe per event type and are called in subscription order.
A failing handler is logged and does not stop the others.
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")
Handler = Callable[[Any], Awaitable[None] | None]


class Subscription:
    __slots__ = ("_bus", "event_type", "handler", "active")

    def __init__(self, bus: EventBus, event_type: type, handler: Handler) -> None:
        self._bus = bus
        self.event_type = event_type
        self.handler = handler
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._bus.unsubscribe(self.event_type, self.handler)
            self.active = False


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = {}

    def subscribe(
        self,
        event_type: type[E],
        handler: Callable[[E], Awaitable[None] | None],
    ) -> Subscription:
        self._handlers.setdefault(event_type, []).append(handler)
        return Subscription(self, event_type, handler)

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[event_type]

    def handler_count(self, event_type: type | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(h) for h in self._handlers.values())

    def clear(self) -> None:
        self._handlers.clear()

    async def publish(self, event: object) -> None:
        # copy: a handler may unsubscribe while we iterate
        for handler in list(self._handlers.get(type(event), [])):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Error handling %s", type(event).__name__)
