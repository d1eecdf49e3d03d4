"""
pagebridge/host/events.py

Event subscription interface between a host window and the core.

Contains:
- HostEvent: lifecycle events a host emits
- EventDispatcher: small name -> listeners dispatch table used for both host
  events and the page message channel
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pagebridge.utils.logger import get_logger


logger = get_logger(name=__name__)


class HostEvent(StrEnum):
    """Lifecycle events emitted by a host window."""
    NAVIGATION_START = "navigation-start"
    DOM_READY = "dom-ready"
    FINISH_LOAD = "finish-load"
    FAIL_LOAD = "fail-load"       # args: (code: int, description: str, url: str | None)
    CLOSED = "closed"


Listener = Callable[..., Any]


@dataclass
class _Registration:
    callback: Listener
    once: bool


class EventDispatcher:
    """
    Registry of listeners keyed by event name.

    Listeners are called synchronously, in registration order, from emit().
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[_Registration]] = {}

    def on(self, name: str, callback: Listener) -> None:
        """Register a listener for every emission of name."""
        self._listeners.setdefault(name, []).append(_Registration(callback=callback, once=False))

    def once(self, name: str, callback: Listener) -> None:
        """Register a listener that is removed right before its first call."""
        self._listeners.setdefault(name, []).append(_Registration(callback=callback, once=True))

    def off(self, name: str, callback: Listener) -> None:
        """Remove every registration of callback for name. Unknown listeners are ignored."""
        registrations = self._listeners.get(name)
        if not registrations:
            return
        remaining = [r for r in registrations if r.callback != callback]
        if remaining:
            self._listeners[name] = remaining
        else:
            del self._listeners[name]

    def remove_all_listeners(self, name: str | None = None) -> None:
        """Remove all listeners of name, or of every name when name is None."""
        if name is None:
            self._listeners.clear()
        else:
            self._listeners.pop(name, None)

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, []))

    def emit(self, name: str, *args: Any) -> int:
        """
        Call the listeners of name with args.

        A listener that raises is logged and the remaining listeners still run.

        Returns:
            Number of listeners called.
        """
        registrations = list(self._listeners.get(name, []))
        if not registrations:
            return 0

        for registration in registrations:
            if registration.once:
                self._remove_registration(name, registration)

        for registration in registrations:
            try:
                registration.callback(*args)
            except Exception:
                logger.exception("Listener for %s raised", name)
        return len(registrations)

    def _remove_registration(self, name: str, registration: _Registration) -> None:
        registrations = self._listeners.get(name)
        if registrations is None:
            return
        self._listeners[name] = [r for r in registrations if r is not registration]
        if not self._listeners[name]:
            del self._listeners[name]
