"""Publish/subscribe registry for sync notifications."""

from collections import defaultdict
from enum import Enum
from typing import Any, Callable

import structlog

log = structlog.stdlib.get_logger()

Handler = Callable[[Any], None]


class SyncEvent(str, Enum):
    """Events published by the sync coordinator."""

    SYNC_COMPLETE = "sync-complete"
    CONFLICT = "conflict"


def _event_name(event: SyncEvent | str) -> str:
    return event.value if isinstance(event, SyncEvent) else event


class EventBus:
    """Ordered handler lists keyed by event name."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def on(self, event: SyncEvent | str, handler: Handler) -> None:
        """Register a handler; handlers run in registration order."""
        self._handlers[_event_name(event)].append(handler)

    def off(self, event: SyncEvent | str, handler: Handler) -> None:
        """Unregister a handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(_event_name(event))
        if handlers and handler in handlers:
            handlers.remove(handler)

    def publish(self, event: SyncEvent | str, payload: Any) -> None:
        """
        Invoke every handler registered for an event.

        The handler list is copied first, so handlers may subscribe or
        unsubscribe while the event is being dispatched. A failing handler is
        logged and does not stop the others.
        """
        name = _event_name(event)
        for handler in list(self._handlers.get(name, [])):
            try:
                handler(payload)
            except Exception as e:
                log.error(
                    "event_handler_failed",
                    event_name=name,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                )

    def handler_count(self, event: SyncEvent | str) -> int:
        return len(self._handlers.get(_event_name(event), []))

    def clear(self) -> None:
        """Drop every subscription."""
        self._handlers.clear()
