"""Fire-and-forget event dispatch for hierarchy events."""

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


class EventDispatcher(ABC):
    @abstractmethod
    async def dispatch(self, event: object) -> None: ...

    @abstractmethod
    def add_listener(self, event_class: type, listener: Listener) -> None: ...

    @abstractmethod
    def get_listeners(self, event_class: type) -> list[Listener]: ...

    @abstractmethod
    def remove_listeners(self, event_class: type) -> None: ...

    @abstractmethod
    def clear_listeners(self) -> None: ...


class InProcessEventDispatcher(EventDispatcher):
    """Runs listeners for an event's exact class in registration order.

    Listeners may be plain callables or coroutine functions. A failing
    listener is logged and skipped; the remaining listeners still run and the
    caller never sees the error.
    """

    def __init__(self) -> None:
        self._listeners: dict[type, list[Listener]] = {}

    async def dispatch(self, event: object) -> None:
        for listener in self.get_listeners(type(event)):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.warning(
                    "Event listener %r failed for %s: %s",
                    listener, type(event).__name__, exc,
                )

    def add_listener(self, event_class: type, listener: Listener) -> None:
        self._listeners.setdefault(event_class, []).append(listener)

    def get_listeners(self, event_class: type) -> list[Listener]:
        return list(self._listeners.get(event_class, []))

    def remove_listeners(self, event_class: type) -> None:
        self._listeners.pop(event_class, None)

    def clear_listeners(self) -> None:
        self._listeners.clear()
