"""
pagebridge/core/navigation_controller.py

Issues navigations and settles each one on the first of completion or failure.
"""

import asyncio
from enum import StrEnum

from pagebridge.core.lifecycle_tracker import navigation_failure_from_event
from pagebridge.host.abstract_host import AbstractPageHost
from pagebridge.host.events import HostEvent
from pagebridge.utils.logger import get_logger


logger = get_logger(name=__name__)


class NavigationWaitMode(StrEnum):
    """Host event that completes a navigation."""
    DOM = "dom"
    LOADED = "loaded"


class NavigationController:
    """
    Races the completion event against fail-load for every goto().

    Each call registers its own listeners and removes them when it settles.
    """

    def __init__(self, host: AbstractPageHost, default_headers: dict[str, str] | None = None) -> None:
        self._host = host
        self.default_headers = dict(default_headers or {})

    async def goto(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        wait_mode: NavigationWaitMode | str = NavigationWaitMode.LOADED,
    ) -> None:
        """
        Navigate to url and wait until the page completes loading.

        Caller headers override default headers with the same name. An aborted
        load (code -3) neither completes nor fails the navigation.

        Raises:
            NavigationFailure: if the host reports a load failure first.
        """
        wait_mode = NavigationWaitMode(wait_mode)
        completion_event = HostEvent.DOM_READY if wait_mode == NavigationWaitMode.DOM else HostEvent.FINISH_LOAD
        merged_headers = {**self.default_headers, **(headers or {})}

        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def on_complete(*_: object) -> None:
            if not future.done():
                logger.debug("finish load %s", url)
                future.set_result(None)

        def on_fail(code: int, description: str = "", failed_url: str | None = None, *_: object) -> None:
            failure = navigation_failure_from_event(code, description, failed_url or url)
            if failure is None:
                logger.debug("Ignoring aborted load while navigating to %s", url)
                return
            if not future.done():
                future.set_exception(failure.to_exception())

        self._host.events.once(completion_event, on_complete)
        self._host.events.on(HostEvent.FAIL_LOAD, on_fail)
        try:
            logger.debug("goto %s", url)
            await self._host.navigate(url, merged_headers)
            await future
        finally:
            self._host.events.off(completion_event, on_complete)
            self._host.events.off(HostEvent.FAIL_LOAD, on_fail)
