"""
pagebridge/session.py

Public surface: one PageSession per controlled page.

Contains:
- PageSession: navigate, evaluate, wait, read content/url, capture, type, click, end
- create_session(): top-level factory awaiting the host's ready latch
"""

import asyncio
from pathlib import Path
from typing import Any

from pagebridge.core.eval_bridge import ConsoleHandler, EvalBridge
from pagebridge.core.lifecycle_tracker import LifecycleTracker
from pagebridge.core.navigation_controller import NavigationController, NavigationWaitMode
from pagebridge.core.wait_engine import WaitEngine
from pagebridge.data_models.session_options import ClipRect, SessionOptions
from pagebridge.data_models.wait_request import DelayWait, parse_wait_argument
from pagebridge.host.abstract_host import AbstractHostFactory, AbstractPageHost
from pagebridge.host.cdp_host import CDPBrowser
from pagebridge.host.events import HostEvent
from pagebridge.utils.exceptions import PageBridgeError
from pagebridge.utils.js_utils import CLICK_SCRIPT, CONTENT_SCRIPT, FOCUS_SCRIPT, PageFunction
from pagebridge.utils.logger import get_logger


logger = get_logger(name=__name__)

_default_host_factory: AbstractHostFactory | None = None


def get_default_host_factory() -> AbstractHostFactory:
    """Shared CDPBrowser built from Config, created on first use."""
    global _default_host_factory  # noqa: PLW0603
    if _default_host_factory is None:
        _default_host_factory = CDPBrowser()
    return _default_host_factory


class PageSession:
    """
    One logical browser page under control.

    Wires a host window to the lifecycle tracker, eval bridge, wait engine and
    navigation controller. Operations fail with PageBridgeError once the window
    has been closed.
    """

    def __init__(self, host: AbstractPageHost, options: SessionOptions | None = None) -> None:
        self.options = options or SessionOptions()
        self.session_id = self.options.session_id
        self._host: AbstractPageHost | None = host

        self.tracker = LifecycleTracker(host.events)
        self.bridge = EvalBridge(self.session_id, host)
        self.waiter = WaitEngine(self.tracker, self.bridge, self.options.wait)
        self.navigator = NavigationController(host, self.options.headers)

        host.events.once(HostEvent.CLOSED, self._on_closed)

    @classmethod
    async def create(
        cls,
        options: SessionOptions | None = None,
        host_factory: AbstractHostFactory | None = None,
    ) -> "PageSession":
        """
        Wait for the host to be ready, open a window and wrap it in a session.
        """
        options = options or SessionOptions()
        factory = host_factory or get_default_host_factory()
        await factory.ready()
        host = await factory.open_page(options)
        logger.info("Session %s ready", options.session_id)
        return cls(host, options)

    async def __aenter__(self) -> "PageSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.end()

    @property
    def host(self) -> AbstractPageHost:
        if self._host is None:
            raise PageBridgeError(f"session {self.session_id} is closed")
        return self._host

    @property
    def is_closed(self) -> bool:
        return self._host is None

    def _require_open(self) -> None:
        if self._host is None:
            raise PageBridgeError(f"session {self.session_id} is closed")

    def on_console(self, callback: ConsoleHandler | None) -> None:
        """Receive console.log output produced by evaluated scripts."""
        self.bridge.console_handler = callback

    # Navigation and scripts ______________________________________________________________________

    async def goto(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        wait_mode: NavigationWaitMode | str = NavigationWaitMode.LOADED,
    ) -> "PageSession":
        self._require_open()
        await self.navigator.goto(url, headers=headers, wait_mode=wait_mode)
        return self

    async def evaluate(self, script: PageFunction | str, *args: Any) -> Any:
        self._require_open()
        return await self.bridge.evaluate(script, *args)

    async def wait(self, target: Any = None, *args: Any) -> "PageSession | None":
        """
        Wait for a condition.

        Args:
            target: milliseconds to sleep, a PageFunction predicate, a lifecycle token
                ("event:dom", "event:loaded", "event:all" or nothing), or a CSS selector.
            *args: Arguments for a PageFunction predicate.

        Returns:
            None for a fixed delay, the session otherwise.
        """
        request = parse_wait_argument(target, *args)
        self._require_open()
        await self.waiter.wait(request)
        if isinstance(request, DelayWait):
            return None
        return self

    async def content(self) -> str:
        return await self.evaluate(CONTENT_SCRIPT)

    def url(self) -> str:
        return self.host.url

    async def useragent(self, agent: str | None = None) -> str | None:
        """Return the user agent, or set it when agent is given."""
        if agent is None:
            return await self.host.get_user_agent()
        await self.host.set_user_agent(agent)
        return None

    # Interaction _________________________________________________________________________________

    async def screenshot(
        self,
        path: str | Path | None = None,
        rect: ClipRect | dict[str, float] | None = None,
    ) -> "PageSession | bytes":
        """
        Capture the page as JPEG.

        Returns:
            The session once the file is written when path is given, the raw image otherwise.
        """
        if isinstance(rect, dict):
            rect = ClipRect.model_validate(rect)
        image = await self.host.capture(rect)
        if path is None:
            return image

        logger.debug(".screenshot() captured with length %s", len(image))
        await asyncio.to_thread(Path(path).write_bytes, image)
        return self

    async def type(self, selector: str, text: str, delay_ms: float = 0) -> "PageSession":
        """Focus the element matching selector and send one keystroke per character."""
        await self.evaluate(FOCUS_SCRIPT, selector)
        for char in text:
            await self.host.press_key(char)
            if delay_ms:
                await asyncio.sleep(delay_ms / 1000)
        return self

    async def click(self, selector: str) -> Any:
        return await self.evaluate(CLICK_SCRIPT, selector)

    # Teardown ____________________________________________________________________________________

    async def end(self) -> None:
        """Destroy the window and wait until the host reports it closed."""
        host = self._host
        if host is None:
            return

        closed: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def on_closed(*_: object) -> None:
            if not closed.done():
                closed.set_result(None)

        host.events.once(HostEvent.CLOSED, on_closed)
        await host.close()
        await closed

    def _on_closed(self, *_: object) -> None:
        logger.debug("window closed")
        self.tracker.detach()
        self._host = None


async def create_session(
    options: SessionOptions | None = None,
    host_factory: AbstractHostFactory | None = None,
) -> PageSession:
    """Create a ready PageSession. See PageSession.create()."""
    return await PageSession.create(options=options, host_factory=host_factory)
