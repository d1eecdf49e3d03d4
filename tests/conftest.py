"""
tests/conftest.py

Configuration for pytest.

Provides an in-memory host that stands in for a browser window, so the
coordination engine can be driven without Chrome.
"""

import re
from collections.abc import Callable
from typing import Any

import pytest

from pagebridge.data_models.session_options import ClipRect, SessionOptions, WaitSettings
from pagebridge.host.abstract_host import AbstractHostFactory, AbstractPageHost
from pagebridge.host.events import HostEvent


_RESPONSE_CHANNEL_RE = re.compile(r'"([^"]*)js:response"')


class FakePageHost(AbstractPageHost):
    """
    AbstractPageHost that records every call.

    script_handler(host, source) plays the page when a script is submitted;
    navigate_handler(host, url) plays the engine when a navigation is issued.
    """

    def __init__(self) -> None:
        super().__init__()
        self.scripts: list[str] = []
        self.navigations: list[tuple[str, dict[str, str]]] = []
        self.keys: list[str] = []
        self.captured_rects: list[ClipRect | None] = []
        self.image = b"\xff\xd8\xff\xe0fake-jpeg"
        self.user_agent = "FakeAgent/1.0"
        self.current_url = "about:blank"
        self.closed = False
        self.script_handler: Callable[["FakePageHost", str], None] | None = None
        self.navigate_handler: Callable[["FakePageHost", str], None] | None = None

    # AbstractPageHost

    async def navigate(self, url: str, headers: dict[str, str]) -> None:
        self.navigations.append((url, headers))
        self.current_url = url
        if self.navigate_handler is not None:
            self.navigate_handler(self, url)

    async def execute_script(self, source: str) -> None:
        self.scripts.append(source)
        if self.script_handler is not None:
            self.script_handler(self, source)

    async def capture(self, rect: ClipRect | None = None) -> bytes:
        self.captured_rects.append(rect)
        return self.image

    @property
    def url(self) -> str:
        return self.current_url

    async def get_user_agent(self) -> str:
        return self.user_agent

    async def set_user_agent(self, agent: str) -> None:
        self.user_agent = agent

    async def press_key(self, char: str) -> None:
        self.keys.append(char)

    async def close(self) -> None:
        self.closed = True
        self.events.emit(HostEvent.CLOSED)

    # Page simulation

    @staticmethod
    def prefix_of(source: str) -> str:
        """Channel prefix of a submitted evaluation script."""
        match = _RESPONSE_CHANNEL_RE.search(source)
        assert match is not None, "not an evaluation script"
        return match.group(1)

    def reply(self, source: str, value: Any) -> None:
        self.messages.emit(f"{self.prefix_of(source)}js:response", value)

    def throw(self, source: str, message: str, name: str = "Error", stack: str | None = None) -> None:
        self.messages.emit(f"{self.prefix_of(source)}js:error", message, name, stack)

    def console_log(self, source: str, *lines: str) -> None:
        self.messages.emit(f"{self.prefix_of(source)}js:log", list(lines))

    def load_page(self) -> None:
        """Emit the events of a complete successful navigation."""
        self.events.emit(HostEvent.NAVIGATION_START)
        self.events.emit(HostEvent.DOM_READY)
        self.events.emit(HostEvent.FINISH_LOAD)


class FakeHostFactory(AbstractHostFactory):
    """Hands out FakePageHosts and counts readiness checks."""

    def __init__(self) -> None:
        self.ready_calls = 0
        self.hosts: list[FakePageHost] = []
        self.options: list[SessionOptions] = []

    async def ready(self) -> None:
        self.ready_calls += 1

    async def open_page(self, options: SessionOptions) -> FakePageHost:
        assert self.ready_calls > 0, "open_page called before ready()"
        host = FakePageHost()
        self.hosts.append(host)
        self.options.append(options)
        return host


@pytest.fixture
def fake_host() -> FakePageHost:
    return FakePageHost()


@pytest.fixture
def fake_host_factory() -> FakeHostFactory:
    return FakeHostFactory()


@pytest.fixture
def fast_wait_settings() -> WaitSettings:
    """Wait timings small enough to keep polling tests fast."""
    return WaitSettings(tick_ms=5, delay_ms=5, predicate_tick_ms=5, global_timeout_ms=300)


@pytest.fixture
def make_session_options(fast_wait_settings: WaitSettings) -> Callable[..., SessionOptions]:
    """
    Factory fixture to create SessionOptions with fast wait settings.

    Usage:
        options = make_session_options(headers={"X-Test": "1"})
    """
    def factory(**kwargs: Any) -> SessionOptions:
        defaults: dict[str, Any] = {"session_id": "sess01", "wait": fast_wait_settings}
        return SessionOptions(**{**defaults, **kwargs})
    return factory
