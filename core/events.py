"""
Lightweight event bus for decoupled inter-module communication.

The exercise session publishes rep and lifecycle events; the dashboard,
feedback overlay and session logger subscribe without the session
knowing about any of them.

Usage:
    bus = EventBus()
    bus.subscribe(Events.REP_COUNTED, my_handler)
    bus.emit(Events.REP_COUNTED, count=3, goal=5, exercise="fist")
"""

import time
import logging
from collections import defaultdict, deque
from typing import Callable, NamedTuple

logger = logging.getLogger(__name__)


def _name_of(callback) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class _Subscription(NamedTuple):
    priority: int
    callback: Callable


class EventBus:
    """Publish/subscribe event bus with priority ordering.

    Dispatch is synchronous and runs on the caller's thread, which is
    always the frame loop.
    """

    _instance = None
    MAX_HISTORY = 100

    def __new__(cls):
        if cls._instance is None:
            bus = super().__new__(cls)
            bus._subscriptions = defaultdict(list)
            bus._history = deque(maxlen=cls.MAX_HISTORY)
            bus._enabled = True
            cls._instance = bus
        return cls._instance

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Called with the keyword arguments given to emit()
            priority: Higher priority listeners run first; equal
                      priorities run in subscription order
        """
        subs = self._subscriptions[event_name]
        index = len(subs)
        while index > 0 and subs[index - 1].priority < priority:
            index -= 1
        subs.insert(index, _Subscription(priority, callback))
        logger.debug("%s subscribed to '%s' (priority=%d)",
                     _name_of(callback), event_name, priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove every registration of ``callback`` for an event."""
        subs = self._subscriptions.get(event_name)
        if subs:
            subs[:] = [s for s in subs if s.callback is not callback]

    def emit(self, event_name: str, **kwargs):
        """Deliver an event to its listeners, highest priority first.

        A failing listener is logged and skipped; the emitter never
        sees its exception.
        """
        if not self._enabled:
            return

        self._history.append({
            "event": event_name,
            "time": time.time(),
            "data_keys": list(kwargs),
        })

        for sub in tuple(self._subscriptions.get(event_name, ())):
            try:
                sub.callback(**kwargs)
            except Exception as e:
                logger.error("Listener %s failed on '%s': %s",
                             _name_of(sub.callback), event_name, e)

    def clear(self, event_name: str = None):
        """Drop listeners for one event, or for all events."""
        if event_name is None:
            self._subscriptions.clear()
        else:
            self._subscriptions.pop(event_name, None)

    def set_enabled(self, enabled: bool):
        self._enabled = enabled

    @property
    def registered_events(self) -> list:
        return [name for name, subs in self._subscriptions.items() if subs]

    @property
    def listener_count(self) -> int:
        return sum(map(len, self._subscriptions.values()))

    def get_history(self, last_n: int = 10) -> list:
        """Most recent emitted events, oldest first."""
        return list(self._history)[-last_n:]

    def reset(self):
        """Forget listeners and history (for testing)."""
        self._subscriptions.clear()
        self._history.clear()
        self._enabled = True


# =============================================================================
# Standard Event Names (constants to avoid typos)
# =============================================================================

class Events:
    """Event names published by the session and the application."""

    # Hand presence, emitted on change only
    HAND_DETECTED = "hand_detected"
    HAND_LOST = "hand_lost"

    # Session lifecycle
    SESSION_STARTED = "session_started"
    REP_COUNTED = "rep_counted"
    SESSION_COMPLETE = "session_complete"
    SESSION_PAUSED = "session_paused"
    SESSION_RESUMED = "session_resumed"
    SESSION_ABANDONED = "session_abandoned"

    # Application
    CAMERA_ERROR = "camera_error"
    SCREEN_CHANGED = "screen_changed"
    SYSTEM_SHUTDOWN = "system_shutdown"
