"""Named event subscriptions for backend-pushed notifications.

Emissions are delivered FIFO. An emission raised from inside a handler is
queued behind the one being delivered, so every handler sees events of a
given name in the order they were emitted.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Callable

_log = logging.getLogger(__name__)

Handler = Callable[[Any], None]
Disposer = Callable[[], None]

# Backend event names
RECORDING_STARTED = "recording-started"
RECORDING_STOPPED = "recording-stopped"
TRANSCRIPTION_STARTED = "transcription-started"
TRANSCRIPTION_COMPLETE = "transcription-complete"
TRANSCRIPTION_ERROR = "transcription-error"
CONFIG_UPDATED = "config-updated"

ALL_EVENTS = (
    RECORDING_STARTED,
    RECORDING_STOPPED,
    TRANSCRIPTION_STARTED,
    TRANSCRIPTION_COMPLETE,
    TRANSCRIPTION_ERROR,
    CONFIG_UPDATED,
)


class _Subscription:
    __slots__ = ("event", "handler", "active")

    def __init__(self, event: str, handler: Handler) -> None:
        self.event = event
        self.handler = handler
        self.active = True


class EventRegistry:
    """Register handlers per event name and deliver emissions to them."""

    def __init__(self) -> None:
        self._subs: dict[str, list[_Subscription]] = {}
        self._pending: deque[tuple[str, Any]] = deque()
        self._delivering = False

    def subscribe(self, event: str, handler: Handler) -> Disposer:
        sub = _Subscription(event, handler)
        self._subs.setdefault(event, []).append(sub)
        _log.debug("subscribed to %s (%d active)", event, self.listener_count(event))

        def dispose() -> None:
            if not sub.active:
                return
            sub.active = False
            subs = self._subs.get(event)
            if subs is not None:
                subs.remove(sub)
                if not subs:
                    del self._subs[event]
            _log.debug("unsubscribed from %s", event)

        return dispose

    def listener_count(self, event: str | None = None) -> int:
        if event is None:
            return sum(len(subs) for subs in self._subs.values())
        return len(self._subs.get(event, ()))

    def emit(self, event: str, payload: Any = None) -> None:
        self._pending.append((event, payload))
        if self._delivering:
            return
        self._delivering = True
        try:
            while self._pending:
                name, data = self._pending.popleft()
                self._deliver(name, data)
        finally:
            self._delivering = False

    def emit_threadsafe(
        self, loop: asyncio.AbstractEventLoop, event: str, payload: Any = None
    ) -> None:
        """Emit from a foreign thread; delivery happens on `loop` in call order."""
        loop.call_soon_threadsafe(self.emit, event, payload)

    def _deliver(self, event: str, payload: Any) -> None:
        # Snapshot so handlers may subscribe or dispose while we iterate
        for sub in tuple(self._subs.get(event, ())):
            if not sub.active:
                continue
            try:
                sub.handler(payload)
            except Exception:
                _log.exception("handler for %s failed", event)
