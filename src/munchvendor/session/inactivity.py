# Inactivity monitor: forced logout after a quiet period.
# Created: 2026-10-16

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_EVENTS = ("mousemove", "keydown", "scroll", "click", "touchstart")


class ActivitySource:
    """Process-wide event target for user interaction events.

    Front-ends call ``dispatch("keydown")`` etc.; listeners are plain
    callables taking the event type. ``passive`` is recorded for parity with
    DOM listeners: listeners here can never block the dispatching caller.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[Callable[[str], Any], bool]]] = {}

    def add_listener(
        self, event_type: str, callback: Callable[[str], Any], *, passive: bool = True
    ) -> None:
        self._listeners.setdefault(event_type, []).append((callback, passive))

    def remove_listener(self, event_type: str, callback: Callable[[str], Any]) -> None:
        entries = self._listeners.get(event_type, [])
        for i, (cb, _) in enumerate(entries):
            if cb == callback:
                del entries[i]
                break
        if not entries:
            self._listeners.pop(event_type, None)

    def listener_count(self, event_type: str | None = None) -> int:
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return sum(len(v) for v in self._listeners.values())

    def dispatch(self, event_type: str) -> None:
        for callback, _ in list(self._listeners.get(event_type, [])):
            try:
                callback(event_type)
            except Exception:
                logger.warning("Activity listener for %s failed", event_type, exc_info=True)


class InactivityMonitor:
    """Debounced timeout: any qualifying event restarts the countdown.

    Must be started from inside a running event loop. ``start()`` returns a
    cleanup callable (``stop``) that is safe to call any number of times.
    Firing also stops the monitor, so one quiet period means one timeout.
    """

    def __init__(
        self,
        source: ActivitySource,
        on_timeout: Callable[[], Any],
        timeout: float = 60 * 60,
        events: Iterable[str] = DEFAULT_EVENTS,
    ):
        self.source = source
        self.timeout = timeout
        self.events = tuple(events)
        self._on_timeout = on_timeout
        self._handle: asyncio.TimerHandle | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None

    def _reset(self, _event_type: str | None = None) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._loop.call_later(self.timeout, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self.stop()
        logger.info("No activity for %ss, logging out", self.timeout)
        result = self._on_timeout()
        if asyncio.iscoroutine(result):
            self._task = self._loop.create_task(result)

    def start(self) -> Callable[[], None]:
        self._loop = asyncio.get_running_loop()
        for event_type in self.events:
            self.source.add_listener(event_type, self._reset, passive=True)
        self._reset()
        return self.stop

    def stop(self) -> None:
        for event_type in self.events:
            self.source.remove_listener(event_type, self._reset)
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
