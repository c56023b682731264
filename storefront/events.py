"""In-process publish/subscribe channel owned by the application shell.

Listeners are plain callables invoked synchronously, in registration order,
during :meth:`EventBus.publish`.  A listener registered or removed while an
event is being delivered only takes effect for the next publish.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

FAVORITES_UPDATED_EVENT = "favorites:updated"
PERMISSION_DENIED_EVENT = "permission-denied"
AUTH_REQUIRED_EVENT = "auth:required"
AUTH_STATE_CHANGED_EVENT = "auth:state-changed"

Listener = Callable[[Any], None]


class EventBus:
    """Named events with an arbitrary payload, fanned out in the same tick."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, event_name: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it again."""

        self._listeners[event_name].append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(event_name, listener)

        return unsubscribe

    def unsubscribe(self, event_name: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_name)
        if not listeners:
            return
        try:
            listeners.remove(listener)
        except ValueError:
            return
        if not listeners:
            del self._listeners[event_name]

    def publish(self, event_name: str, payload: Any = None) -> int:
        """Deliver ``payload`` to every current listener and return how many ran.

        A failing listener is logged and does not prevent delivery to the
        remaining listeners.
        """

        delivered = 0
        for listener in list(self._listeners.get(event_name, ())):
            try:
                listener(payload)
            except Exception:
                logger.exception("Listener for %s raised during delivery", event_name)
                continue
            delivered += 1
        return delivered

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, ()))


__all__ = [
    "AUTH_REQUIRED_EVENT",
    "AUTH_STATE_CHANGED_EVENT",
    "EventBus",
    "FAVORITES_UPDATED_EVENT",
    "Listener",
    "PERMISSION_DENIED_EVENT",
]
