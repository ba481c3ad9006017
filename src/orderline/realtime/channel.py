"""
In-process push channel: handlers subscribe per event type.

The transport that feeds it (see `redis_listener`) only calls `publish`.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from threading import Lock
from typing import Any

from orderline.constants import EventType

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, Any], None]


class EventChannel:
    def __init__(self):
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, event_type: EventType | str, handler: EventHandler) -> Callable[[], None]:
        key = EventType(event_type).value
        with self._lock:
            self._handlers[key].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers[key]:
                    self._handlers[key].remove(handler)

        return unsubscribe

    def publish(self, event_type: str, payload: Any) -> int:
        """Deliver one event to its handlers; returns how many were called."""
        with self._lock:
            handlers = list(self._handlers.get(event_type, ()))
        if not handlers:
            logger.debug(f"No handlers for event '{event_type}'")
        for handler in handlers:
            handler(event_type, payload)
        return len(handlers)
