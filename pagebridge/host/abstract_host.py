"""
pagebridge/host/abstract_host.py

Abstract contract of the host browser engine.

The core never talks to a browser directly. It drives one AbstractPageHost
(a single window handle) and listens on its two dispatch tables:
- events: HostEvent lifecycle notifications
- messages: the page -> controller message channel
"""

from abc import ABC, abstractmethod

from pagebridge.data_models.session_options import ClipRect, SessionOptions
from pagebridge.host.events import EventDispatcher


class AbstractPageHost(ABC):
    """
    One host window showing one page.

    Subclasses must implement:
    - navigate(url, headers)
    - execute_script(source)
    - capture(rect)
    - url
    - get_user_agent() / set_user_agent(agent)
    - press_key(char)
    - close()
    """

    def __init__(self) -> None:
        self.events = EventDispatcher()
        self.messages = EventDispatcher()

    @abstractmethod
    async def navigate(self, url: str, headers: dict[str, str]) -> None:
        """
        Start loading url with extra request headers.

        Returns once the request has been issued; completion and failure are
        reported through events.
        """
        ...

    @abstractmethod
    async def execute_script(self, source: str) -> None:
        """
        Submit source for execution in the page context without waiting for its outcome.

        Raises:
            ScriptError: if the page could not compile the source.
            TransportFailure: if the host could not be reached.
        """
        ...

    @abstractmethod
    async def capture(self, rect: ClipRect | None = None) -> bytes:
        """Capture the page (or a region of it) as JPEG bytes."""
        ...

    @property
    @abstractmethod
    def url(self) -> str:
        """URL of the document currently shown in the main frame."""
        ...

    @abstractmethod
    async def get_user_agent(self) -> str:
        ...

    @abstractmethod
    async def set_user_agent(self, agent: str) -> None:
        ...

    @abstractmethod
    async def press_key(self, char: str) -> None:
        """Send one synthetic keystroke producing char to the focused element."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Destroy the window. Emits HostEvent.CLOSED once it is gone."""
        ...


class AbstractHostFactory(ABC):
    """
    Source of host windows.

    ready() is the one-time initialization phase every caller awaits before
    the first window is opened.
    """

    @abstractmethod
    async def ready(self) -> None:
        ...

    @abstractmethod
    async def open_page(self, options: SessionOptions) -> AbstractPageHost:
        ...
