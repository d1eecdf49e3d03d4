"""
pagebridge/core/wait_engine.py

The wait/poll primitive behind PageSession.wait().

Modes:
- DelayWait: sleep, no deadline
- PredicateWait: evaluate a page function every predicate tick until truthy
- LifecycleWait: after a settling delay, poll the lifecycle record every tick
- SelectorWait: predicate wait on document.querySelector(selector)

Polling modes share one global deadline measured from the call to wait(); the
deadline is checked on every tick, so timeouts are cooperative.
"""

import asyncio
from dataclasses import dataclass

from pagebridge.core.eval_bridge import EvalBridge
from pagebridge.core.lifecycle_tracker import LifecycleTracker
from pagebridge.data_models.session_options import WaitSettings
from pagebridge.data_models.wait_request import (
    DelayWait,
    LifecycleEvent,
    LifecycleWait,
    PredicateWait,
    SelectorWait,
    WaitRequest,
)
from pagebridge.utils.exceptions import TimeoutExceeded
from pagebridge.utils.js_utils import SELECTOR_PRESENCE_PREDICATE, PageFunction
from pagebridge.utils.logger import get_logger


logger = get_logger(name=__name__)


@dataclass
class _Deadline:
    """Start timestamp and budget of one wait, on the loop's monotonic clock."""
    started: float
    timeout_ms: float

    @classmethod
    def start(cls, timeout_ms: float) -> "_Deadline":
        return cls(started=asyncio.get_running_loop().time(), timeout_ms=timeout_ms)

    def elapsed_ms(self) -> float:
        return (asyncio.get_running_loop().time() - self.started) * 1000

    def remaining_ms(self) -> float:
        return self.timeout_ms - self.elapsed_ms()

    def expired(self) -> bool:
        return self.elapsed_ms() > self.timeout_ms


class WaitEngine:
    """
    Resolves WaitRequests against one session's lifecycle tracker and eval bridge.
    """

    def __init__(self, tracker: LifecycleTracker, bridge: EvalBridge, settings: WaitSettings) -> None:
        self._tracker = tracker
        self._bridge = bridge
        self.settings = settings

    async def wait(self, request: WaitRequest) -> None:
        """
        Block until the request's condition holds.

        Raises:
            TimeoutExceeded: if a polling wait outlives the global timeout.
            NavigationFailure: if the page failed to load during a lifecycle wait.
            ScriptError: if a predicate throws inside the page.
        """
        deadline = _Deadline.start(self.settings.global_timeout_ms)

        if isinstance(request, DelayWait):
            await asyncio.sleep(request.duration_ms / 1000)
        elif isinstance(request, PredicateWait):
            await self._wait_predicate(PageFunction(request.source), request.args, deadline, "predicate")
        elif isinstance(request, SelectorWait):
            await self._wait_predicate(
                SELECTOR_PRESENCE_PREDICATE,
                [request.selector],
                deadline,
                f"selector {request.selector!r}",
            )
        elif isinstance(request, LifecycleWait):
            await self._wait_lifecycle(request.event, deadline)
        else:
            raise TypeError(f"unsupported wait request: {request!r}")

    async def _wait_predicate(self, predicate: PageFunction, args: list, deadline: _Deadline, waited_for: str) -> None:
        tick = self.settings.predicate_tick_ms / 1000
        while True:
            await asyncio.sleep(tick)
            if deadline.expired():
                raise TimeoutExceeded(deadline.timeout_ms, waited_for)

            # the bridge has no deadline of its own
            try:
                result = await asyncio.wait_for(
                    self._bridge.evaluate(predicate, *args),
                    timeout=max(deadline.remaining_ms(), 0) / 1000,
                )
            except asyncio.TimeoutError:
                raise TimeoutExceeded(deadline.timeout_ms, waited_for) from None

            if result:
                logger.debug("%s satisfied after %.0fms", waited_for, deadline.elapsed_ms())
                return

    async def _wait_lifecycle(self, event: LifecycleEvent, deadline: _Deadline) -> None:
        await asyncio.sleep(self.settings.delay_ms / 1000)

        tick = self.settings.tick_ms / 1000
        while True:
            await asyncio.sleep(tick)
            if deadline.expired():
                raise TimeoutExceeded(deadline.timeout_ms, f"event:{event}")

            record = self._tracker.record
            if record.fatal_error is not None:
                raise record.fatal_error.to_exception()
            if event == LifecycleEvent.DOM and record.dom_ready:
                return
            # ALL does not track outstanding sub-requests and resolves like LOADED
            if event in (LifecycleEvent.LOADED, LifecycleEvent.ALL) and record.finish_loaded:
                return
