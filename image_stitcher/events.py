"""Synchronous event bus used for model change notifications.

Handlers are stored per event kind in registration order and invoked in the
emitting thread.  There is no batching: every ``emit`` call reaches every
handler registered for that kind at the time of the call.
"""

from __future__ import annotations

from collections import defaultdict
from enum import Enum
from typing import Any, Callable, DefaultDict, List

Handler = Callable[[Any], None]


class EventBus:
    """Map event kinds to ordered handler lists."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[Enum, List[Handler]] = defaultdict(list)

    def subscribe(self, kind: Enum, handler: Handler) -> Callable[[], None]:
        """Register *handler* for *kind* and return a callable undoing it."""

        if not callable(handler):
            raise TypeError("handler must be callable")
        self._handlers[kind].append(handler)

        def _unsubscribe() -> None:
            self.unsubscribe(kind, handler)

        return _unsubscribe

    def unsubscribe(self, kind: Enum, handler: Handler) -> bool:
        """Remove the earliest registration of *handler* for *kind*."""

        handlers = self._handlers.get(kind)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def emit(self, kind: Enum, payload: Any = None) -> None:
        # Snapshot so handlers can subscribe or unsubscribe while dispatching.
        for handler in list(self._handlers.get(kind, ())):
            handler(payload)


__all__ = ["EventBus", "Handler"]
