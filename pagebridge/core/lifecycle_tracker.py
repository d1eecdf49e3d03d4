"""
pagebridge/core/lifecycle_tracker.py

Per-session page lifecycle state machine fed by host navigation events.
"""

from pagebridge.data_models.lifecycle import LifecycleRecord, NavigationFailureDetails
from pagebridge.host.events import EventDispatcher, HostEvent
from pagebridge.utils.logger import get_logger


logger = get_logger(name=__name__)


def navigation_failure_from_event(code: int, description: str = "", url: str | None = None) -> NavigationFailureDetails | None:
    """
    Build failure details from a fail-load event.

    Returns:
        The failure, or None for the engine-initiated abort which never counts as a failure.
    """
    failure = NavigationFailureDetails(code=code, description=description or "", url=url)
    if failure.is_abort:
        return None
    return failure


class LifecycleTracker:
    """
    Keeps the LifecycleRecord of the current navigation.

    navigation-start  -> fresh record
    dom-ready         -> dom_ready = True
    finish-load       -> finish_loaded = True
    fail-load         -> fatal_error set, unless the code is the abort code
    """

    def __init__(self, events: EventDispatcher) -> None:
        self._events = events
        self._record = LifecycleRecord()
        self._subscriptions = {
            HostEvent.NAVIGATION_START: self._on_navigation_start,
            HostEvent.DOM_READY: self._on_dom_ready,
            HostEvent.FINISH_LOAD: self._on_finish_load,
            HostEvent.FAIL_LOAD: self._on_fail_load,
        }
        for event, handler in self._subscriptions.items():
            events.on(event, handler)

    @property
    def record(self) -> LifecycleRecord:
        return self._record

    def detach(self) -> None:
        """Stop listening to host events."""
        for event, handler in self._subscriptions.items():
            self._events.off(event, handler)

    def _on_navigation_start(self, *_: object) -> None:
        self._record = LifecycleRecord()

    def _on_dom_ready(self, *_: object) -> None:
        self._record.dom_ready = True

    def _on_finish_load(self, *_: object) -> None:
        self._record.finish_loaded = True

    def _on_fail_load(self, code: int, description: str = "", url: str | None = None, *_: object) -> None:
        failure = navigation_failure_from_event(code, description, url)
        if failure is None:
            logger.debug("Ignoring aborted load of %s", url)
            return
        logger.debug("Load failed: %s (%s)", failure.description, failure.code)
        self._record.fatal_error = failure
