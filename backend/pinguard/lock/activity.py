"""User activity signals that keep an unlocked session alive."""

from typing import Callable

# Raw input signals the guard listens to
ACTIVITY_EVENTS = (
    "mousemove",
    "mousedown",
    "keypress",
    "touchmove",
    "touchstart",
)

ActivityHandler = Callable[[str], None]


class ActivityHub:
    """
    In-process publisher for activity events.

    The host feeds it (from HTTP requests or WebSocket messages) and the
    guard subscribes to it while it needs to track activity.
    """

    def __init__(self):
        self._handlers: dict[str, list[ActivityHandler]] = {}

    def subscribe(self, event: str, handler: ActivityHandler) -> None:
        handlers = self._handlers.setdefault(event, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event: str, handler: ActivityHandler) -> None:
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                del self._handlers[event]

    def emit(self, event: str) -> int:
        """Deliver an event to its subscribers. Returns how many were called."""
        handlers = list(self._handlers.get(event, ()))
        for handler in handlers:
            handler(event)
        return len(handlers)

    def subscriber_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))
