"""In-process domain event bus.

Settlement code publishes facts (``payment.completed``, ``escrow.released`` ...)
and never constructs the services that react to them. Listeners are registered
once per app in ``create_app()``; the bus lives on ``app.extensions`` so test
apps do not share handlers.
"""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
from typing import Any, Callable, Dict, List

from flask import current_app

PAYMENT_COMPLETED = "payment.completed"
PAYMENT_FAILED = "payment.failed"
ESCROW_RELEASED = "escrow.released"
REQUEST_STATUS_CHANGED = "request.status.changed"

Handler = Callable[[Dict[str, Any]], None]


class EventBus:

    def __init__(self):
        self._lock = Lock()
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, event: str, handler: Handler) -> None:
        with self._lock:
            if handler not in self._handlers[event]:
                self._handlers[event].append(handler)

    def handlers(self, event: str) -> List[Handler]:
        with self._lock:
            return list(self._handlers.get(event, []))

    def publish(self, event: str, payload: Dict[str, Any]) -> int:
        """Call every handler; a failing handler is logged and the rest still run."""
        delivered = 0
        for handler in self.handlers(event):
            try:
                handler(payload)
                delivered += 1
            except Exception:
                current_app.logger.exception("event handler %s failed for %s", getattr(handler, "__name__", handler), event)
        return delivered


def init_bus(app) -> EventBus:
    bus = EventBus()
    app.extensions["vybraa_events"] = bus
    return bus


def get_bus() -> EventBus:
    bus = current_app.extensions.get("vybraa_events")
    if bus is None:
        bus = init_bus(current_app)
    return bus


def publish(event: str, **payload: Any) -> int:
    return get_bus().publish(event, {"event": event, **payload})
