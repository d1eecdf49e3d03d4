"""
pagebridge/host/cdp_host.py

Host implementation on top of the Chrome DevTools Protocol.

Contains:
- CDPBrowser: one websocket to a running Chrome, command/reply correlation,
  and the factory that opens page windows in isolated browser contexts
- CDPPageHost: one page target, translating CDP events into HostEvents and
  binding calls into message channel deliveries
"""

import asyncio
import base64
import itertools
import json
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import urlparse

import requests
import websockets
from websockets.asyncio.client import ClientConnection, connect

from pagebridge.config import Config
from pagebridge.data_models.session_options import ClipRect, SessionOptions
from pagebridge.host.abstract_host import AbstractHostFactory, AbstractPageHost
from pagebridge.host.events import HostEvent
from pagebridge.host.readiness import ReadinessLatch
from pagebridge.utils.exceptions import ScriptError, TransportFailure
from pagebridge.utils.js_utils import PAGE_BRIDGE_GLOBAL
from pagebridge.utils.logger import get_logger


logger = get_logger(name=__name__)


# Runtime binding the page calls to post a message to the controller
BINDING_NAME = "__pagebridgeIpc"

# Installed in every new document; exposes window.__pagebridge__.send(name, ...args)
PRELOAD_SCRIPT = f"""(function () {{
    if (window.{PAGE_BRIDGE_GLOBAL}) {{
        return;
    }}
    Object.defineProperty(window, "{PAGE_BRIDGE_GLOBAL}", {{
        value: {{
            send: function (name) {{
                var args = Array.prototype.slice.call(arguments, 1);
                window.{BINDING_NAME}(JSON.stringify({{name: name, args: args}}));
            }}
        }},
        enumerable: false
    }});
}})();"""

# Chromium net error codes reported by Page.navigate errorText
NET_ERROR_CODES: dict[str, int] = {
    "net::ERR_FAILED": -2,
    "net::ERR_ABORTED": -3,
    "net::ERR_TIMED_OUT": -7,
    "net::ERR_BLOCKED_BY_CLIENT": -20,
    "net::ERR_BLOCKED_BY_RESPONSE": -27,
    "net::ERR_CONNECTION_CLOSED": -100,
    "net::ERR_CONNECTION_RESET": -101,
    "net::ERR_CONNECTION_REFUSED": -102,
    "net::ERR_CONNECTION_ABORTED": -103,
    "net::ERR_CONNECTION_FAILED": -104,
    "net::ERR_NAME_NOT_RESOLVED": -105,
    "net::ERR_INTERNET_DISCONNECTED": -106,
    "net::ERR_SSL_PROTOCOL_ERROR": -107,
    "net::ERR_ADDRESS_INVALID": -108,
    "net::ERR_ADDRESS_UNREACHABLE": -109,
    "net::ERR_CONNECTION_TIMED_OUT": -118,
    "net::ERR_PROXY_CONNECTION_FAILED": -130,
    "net::ERR_CERT_COMMON_NAME_INVALID": -200,
    "net::ERR_CERT_DATE_INVALID": -201,
    "net::ERR_CERT_AUTHORITY_INVALID": -202,
    "net::ERR_INVALID_URL": -300,
    "net::ERR_DISALLOWED_URL_SCHEME": -301,
    "net::ERR_UNKNOWN_URL_SCHEME": -302,
    "net::ERR_TOO_MANY_REDIRECTS": -310,
    "net::ERR_EMPTY_RESPONSE": -324,
    "net::ERR_HTTP_RESPONSE_CODE_FAILURE": -379,
}

# char -> (key, code, text) for characters that are not sent as plain text
KEY_MAP: dict[str, tuple[str, str, str]] = {
    "\n": ("Enter", "Enter", "\r"),
    "\r": ("Enter", "Enter", "\r"),
    "\t": ("Tab", "Tab", ""),
    "\b": ("Backspace", "Backspace", ""),
}


def net_error_code(error_text: str) -> int:
    """Map a net::ERR_* string onto its numeric code; unknown errors map to ERR_FAILED."""
    return NET_ERROR_CODES.get(error_text.strip(), NET_ERROR_CODES["net::ERR_FAILED"])


class CDPBrowser(AbstractHostFactory):
    """
    Connection to a Chrome instance started with --remote-debugging-port.

    All page sessions share the one browser websocket using flat target sessions;
    every command gets an id and its reply settles the matching future.
    """

    def __init__(
        self,
        host: str = Config.CHROME_HOST,
        port: int = Config.CHROME_PORT,
        ready_timeout: float = Config.HOST_READY_TIMEOUT,
    ) -> None:
        self.host = host
        self.port = port
        self.ready_timeout = ready_timeout
        self.http_url = f"http://{host}:{port}"

        self._ws: ClientConnection | None = None
        self._listen_task: asyncio.Task | None = None
        self._ids = itertools.count(1)

        # command id -> (method, future)
        self._pending: dict[int, tuple[str, asyncio.Future]] = {}

        # CDP session id -> page host
        self._pages: dict[str, "CDPPageHost"] = {}

        self._latch: ReadinessLatch[None] = ReadinessLatch(self._connect)

    # Connection __________________________________________________________________________________

    def _fetch_ws_url(self) -> str:
        """Poll /json/version until Chrome answers. Blocking; run in a thread."""
        deadline = time.monotonic() + self.ready_timeout
        while True:
            try:
                resp = requests.get(f"{self.http_url}/json/version", timeout=5)
                resp.raise_for_status()
                ws_url = resp.json()["webSocketDebuggerUrl"]
                break
            except (requests.RequestException, KeyError, ValueError) as e:
                if time.monotonic() >= deadline:
                    raise TransportFailure(f"DevTools endpoint {self.http_url} not available: {e}") from e
                time.sleep(0.25)

        # Normalize to reachable host
        parsed = urlparse(ws_url)
        return parsed._replace(netloc=f"{self.host}:{self.port}").geturl()

    async def _connect(self) -> None:
        ws_url = await asyncio.to_thread(self._fetch_ws_url)
        try:
            ws = await connect(ws_url, max_size=None)
        except (OSError, websockets.exceptions.WebSocketException) as e:
            raise TransportFailure(f"failed to connect to {ws_url}: {e}") from e

        self._ws = ws
        self._listen_task = asyncio.create_task(self._listen(ws))
        try:
            await self.send("Target.setDiscoverTargets", {"discover": True})
        except TransportFailure:
            await ws.close()
            raise
        logger.info("Connected to Chrome at %s", ws_url)

    async def ready(self) -> None:
        """Connect on first use. A failed or lost connection is retried by the next call."""
        await self._latch.wait()

    async def close(self) -> None:
        """Close the websocket. Open pages are reported as closed."""
        if self._ws is not None:
            await self._ws.close()
        if self._listen_task is not None:
            await asyncio.gather(self._listen_task, return_exceptions=True)
        self._ws = None
        self._listen_task = None
        self._latch.reset()

    # Commands ____________________________________________________________________________________

    async def send(self, method: str, params: dict[str, Any] | None = None, session_id: str | None = None) -> dict[str, Any]:
        """
        Send a CDP command and wait for its reply.

        Args:
            method: CDP method, e.g. "Page.navigate".
            params: Command parameters.
            session_id: Flat target session the command is addressed to.

        Returns:
            The "result" object of the reply.

        Raises:
            TransportFailure: on a protocol error or a lost connection.
        """
        if self._ws is None:
            raise TransportFailure("not connected to Chrome", method=method)

        msg_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = (method, future)

        message: dict[str, Any] = {"id": msg_id, "method": method, "params": params or {}}
        if session_id is not None:
            message["sessionId"] = session_id

        try:
            await self._ws.send(json.dumps(message))
            return await future
        except websockets.exceptions.ConnectionClosed as e:
            raise TransportFailure(f"websocket connection lost: {e}", method=method) from e
        finally:
            self._pending.pop(msg_id, None)

    async def _listen(self, ws: ClientConnection) -> None:
        """Main message processing loop. When the socket ends, the next ready() reconnects."""
        try:
            async for raw in ws:
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError as e:
                    logger.warning("Failed to parse message: %s", e)
                    continue
                self._handle_message(msg)
        except websockets.exceptions.ConnectionClosed as e:
            logger.info("Connection lost: %s", e)
        finally:
            if self._ws is ws:
                self._ws = None
                if self._latch.is_ready:
                    self._latch.reset()
            for method, future in self._pending.values():
                if not future.done():
                    future.set_exception(TransportFailure("websocket connection closed", method=method))
            self._pending.clear()
            for page in list(self._pages.values()):
                page.mark_closed()

    def _handle_message(self, msg: dict[str, Any]) -> None:
        if "id" in msg:
            self._handle_command_reply(msg)
            return

        method = msg.get("method", "")
        params = msg.get("params", {})

        # target lifecycle events arrive on the browser session
        if method == "Target.detachedFromTarget":
            page = self._pages.get(params.get("sessionId", ""))
            if page is not None:
                page.mark_closed()
            return
        if method == "Target.targetDestroyed":
            for page in list(self._pages.values()):
                if page.target_id == params.get("targetId"):
                    page.mark_closed()
            return

        session_id = msg.get("sessionId")
        page = self._pages.get(session_id) if session_id else None
        if page is not None:
            page.handle_event(method, params)

    def _handle_command_reply(self, msg: dict[str, Any]) -> None:
        entry = self._pending.pop(msg["id"], None)
        if entry is None:
            return
        method, future = entry
        if future.done():
            return
        if "error" in msg:
            error = msg["error"]
            future.set_exception(TransportFailure(
                error.get("message", "unknown CDP error"),
                method=method,
                details=error,
            ))
        else:
            future.set_result(msg.get("result", {}))

    # Pages _______________________________________________________________________________________

    async def open_page(self, options: SessionOptions) -> "CDPPageHost":
        """
        Open a page in its own browser context.

        The browser context is the session's isolated storage partition.
        """
        await self.ready()

        context_params: dict[str, Any] = {}
        if options.proxy_server:
            context_params["proxyServer"] = options.proxy_server
        context = await self.send("Target.createBrowserContext", context_params)
        context_id = context["browserContextId"]

        target = await self.send("Target.createTarget", {
            "url": "about:blank",
            "browserContextId": context_id,
            "width": options.window.width,
            "height": options.window.height,
        })
        target_id = target["targetId"]

        attached = await self.send("Target.attachToTarget", {"targetId": target_id, "flatten": True})
        page = CDPPageHost(
            browser=self,
            target_id=target_id,
            cdp_session_id=attached["sessionId"],
            browser_context_id=context_id,
        )
        self._pages[page.cdp_session_id] = page
        await page.setup(options)
        logger.debug("Opened page %s for session %s", target_id, options.session_id)
        return page

    def forget_page(self, cdp_session_id: str) -> None:
        self._pages.pop(cdp_session_id, None)


class CDPPageHost(AbstractPageHost):
    """One page target attached through a flat CDP session."""

    def __init__(self, browser: CDPBrowser, target_id: str, cdp_session_id: str, browser_context_id: str) -> None:
        super().__init__()
        self._browser = browser
        self.target_id = target_id
        self.cdp_session_id = cdp_session_id
        self.browser_context_id = browser_context_id

        self._main_frame_id: str | None = None
        self._url = "about:blank"
        self._closed = False

        self._event_handlers: dict[str, Callable[[dict[str, Any]], None]] = {
            "Page.frameStartedLoading": self._on_frame_started_loading,
            "Page.frameNavigated": self._on_frame_navigated,
            "Page.domContentEventFired": self._on_dom_content_event_fired,
            "Page.loadEventFired": self._on_load_event_fired,
            "Runtime.bindingCalled": self._on_binding_called,
            "Inspector.detached": self._on_inspector_detached,
        }

    @property
    def closed(self) -> bool:
        return self._closed

    async def _send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        if self._closed:
            raise TransportFailure("window is closed", method=method)
        return await self._browser.send(method, params, session_id=self.cdp_session_id)

    async def setup(self, options: SessionOptions) -> None:
        """Enable domains, install the message channel and apply session options."""
        for domain in ("Page", "Runtime", "Network"):
            await self._send(f"{domain}.enable")
        await self._send("Runtime.addBinding", {"name": BINDING_NAME})
        await self._send("Page.addScriptToEvaluateOnNewDocument", {"source": PRELOAD_SCRIPT})
        # the current document predates the registration above
        await self._send("Runtime.evaluate", {"expression": PRELOAD_SCRIPT})

        tree = await self._send("Page.getFrameTree")
        frame = tree["frameTree"]["frame"]
        self._main_frame_id = frame["id"]
        self._url = frame.get("url", self._url)

        if options.useragent is not None:
            await self.set_user_agent(options.useragent)

    # Events ______________________________________________________________________________________

    def handle_event(self, method: str, params: dict[str, Any]) -> None:
        handler = self._event_handlers.get(method)
        if handler is not None:
            handler(params)

    def _on_frame_started_loading(self, params: dict[str, Any]) -> None:
        if params.get("frameId") == self._main_frame_id:
            self.events.emit(HostEvent.NAVIGATION_START)

    def _on_frame_navigated(self, params: dict[str, Any]) -> None:
        frame = params.get("frame", {})
        if frame.get("parentId"):
            return
        self._main_frame_id = frame.get("id", self._main_frame_id)
        self._url = frame.get("url", self._url) + frame.get("urlFragment", "")

    def _on_dom_content_event_fired(self, params: dict[str, Any]) -> None:
        self.events.emit(HostEvent.DOM_READY)

    def _on_load_event_fired(self, params: dict[str, Any]) -> None:
        self.events.emit(HostEvent.FINISH_LOAD)

    def _on_binding_called(self, params: dict[str, Any]) -> None:
        if params.get("name") != BINDING_NAME:
            return
        try:
            payload = json.loads(params.get("payload", ""))
            name = payload["name"]
            args = payload.get("args") or []
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning("Malformed channel message from page %s: %s", self.target_id, e)
            return
        self.messages.emit(name, *args)

    def _on_inspector_detached(self, params: dict[str, Any]) -> None:
        self.mark_closed()

    def mark_closed(self) -> None:
        """Record that the window is gone and emit HostEvent.CLOSED once."""
        if self._closed:
            return
        self._closed = True
        self._browser.forget_page(self.cdp_session_id)
        logger.debug("Window %s closed", self.target_id)
        self.events.emit(HostEvent.CLOSED)

    # Page operations _____________________________________________________________________________

    async def navigate(self, url: str, headers: dict[str, str]) -> None:
        """
        Navigate the main frame to url.

        CDP has no per-navigation headers, so headers are installed with
        Network.setExtraHTTPHeaders. They apply to every request the page makes,
        subresources and XHR included, until the next navigate() replaces them.
        """
        await self._send("Network.setExtraHTTPHeaders", {"headers": headers})
        result = await self._send("Page.navigate", {"url": url})
        error_text = result.get("errorText")
        if error_text:
            self.events.emit(HostEvent.FAIL_LOAD, net_error_code(error_text), error_text, url)

    async def execute_script(self, source: str) -> None:
        result = await self._send("Runtime.evaluate", {"expression": source, "returnByValue": False})
        details = result.get("exceptionDetails")
        if details is None:
            return

        exception = details.get("exception", {})
        name = exception.get("className", "Error")
        description = exception.get("description") or details.get("text", "script failed")
        message = description.split("\n", 1)[0]
        if message.startswith(f"{name}: "):
            message = message[len(name) + 2:]
        raise ScriptError(message=message, name=name, stack=description)

    async def capture(self, rect: ClipRect | None = None) -> bytes:
        params: dict[str, Any] = {"format": "jpeg", "quality": 50}
        if rect is not None:
            params["clip"] = {**rect.model_dump(), "scale": 1}
        result = await self._send("Page.captureScreenshot", params)
        return base64.b64decode(result["data"])

    @property
    def url(self) -> str:
        return self._url

    async def get_user_agent(self) -> str:
        result = await self._send("Runtime.evaluate", {"expression": "navigator.userAgent", "returnByValue": True})
        return result["result"]["value"]

    async def set_user_agent(self, agent: str) -> None:
        await self._send("Network.setUserAgentOverride", {"userAgent": agent})

    async def press_key(self, char: str) -> None:
        key, code, text = KEY_MAP.get(char, (char, "", char))
        down: dict[str, Any] = {"type": "keyDown", "key": key}
        if code:
            down["code"] = code
        if text:
            down["text"] = text
            down["unmodifiedText"] = text
        await self._send("Input.dispatchKeyEvent", down)
        await self._send("Input.dispatchKeyEvent", {"type": "keyUp", "key": key, **({"code": code} if code else {})})

    async def close(self) -> None:
        if self._closed:
            return
        try:
            await self._browser.send("Target.closeTarget", {"targetId": self.target_id})
            try:
                await self._browser.send("Target.disposeBrowserContext", {"browserContextId": self.browser_context_id})
            except TransportFailure as e:
                logger.warning("Could not dispose browser context %s: %s", self.browser_context_id, e)
        finally:
            self.mark_closed()
