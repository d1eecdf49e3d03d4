"""
pagebridge/data_models/session_options.py

Per-session configuration.

Contains:
- WaitSettings: wait engine timings, defaulting to Config
- WindowOptions: size of the page window
- ClipRect: screenshot region
- SessionOptions: everything needed to open one session
"""

import uuid
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from pagebridge.config import Config


class WaitSettings(BaseModel):
    """Timings used by the wait engine, all in milliseconds."""
    tick_ms: float = Field(default=Config.WAIT_TICK_MS, gt=0, description="Lifecycle poll interval")
    delay_ms: float = Field(default=Config.WAIT_DELAY_MS, ge=0, description="Settling delay before lifecycle polling starts")
    predicate_tick_ms: float = Field(default=Config.WAIT_FN_TICK_MS, gt=0, description="Predicate poll interval")
    global_timeout_ms: float = Field(default=Config.WAIT_GLOBAL_TIMEOUT_MS, gt=0, description="Deadline for polling waits")


class WindowOptions(BaseModel):
    """Geometry of the page window."""
    width: int = Field(default=800, gt=0)
    height: int = Field(default=600, gt=0)


class ClipRect(BaseModel):
    """A page region in CSS pixels."""
    x: float = Field(default=0, ge=0)
    y: float = Field(default=0, ge=0)
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class SessionOptions(BaseModel):
    """
    Options for one page session.

    The session_id doubles as the name of the session's isolated storage
    partition and as the root of its message channel names.
    """
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12], min_length=1)
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Default headers sent with every navigation"
    )
    wait: WaitSettings = Field(default_factory=WaitSettings)
    window: WindowOptions = Field(default_factory=WindowOptions)
    useragent: str | None = Field(default=None, description="User agent override applied on open")
    proxy: str | None = Field(default=None, description="Proxy address, e.g. http://host:port")

    @property
    def proxy_server(self) -> str | None:
        """
        Proxy address reduced to scheme://host:port as the host expects it.
        Credentials embedded in the address are dropped.
        """
        if not self.proxy:
            return None
        addr = self.proxy.strip()
        if "://" not in addr:
            addr = f"http://{addr}"
        parsed = urlparse(addr)
        if not parsed.hostname:
            return None
        host_port = f"{parsed.hostname}:{parsed.port}" if parsed.port else parsed.hostname
        return f"{parsed.scheme}://{host_port}"
