"""
pagebridge/__init__.py

Programmatic control of a single browser page: navigate it, run script inside
the page context, wait for lifecycle or DOM conditions and read back results.
"""

from pagebridge.core.navigation_controller import NavigationWaitMode
from pagebridge.data_models.lifecycle import LifecycleRecord, NavigationFailureDetails
from pagebridge.data_models.session_options import ClipRect, SessionOptions, WaitSettings, WindowOptions
from pagebridge.data_models.wait_request import LifecycleEvent
from pagebridge.session import PageSession, create_session
from pagebridge.utils.exceptions import (
    NavigationFailure,
    PageBridgeError,
    ScriptError,
    TimeoutExceeded,
    TransportFailure,
)
from pagebridge.utils.js_utils import PageFunction

__all__ = [
    "ClipRect",
    "LifecycleEvent",
    "LifecycleRecord",
    "NavigationFailure",
    "NavigationFailureDetails",
    "NavigationWaitMode",
    "PageBridgeError",
    "PageFunction",
    "PageSession",
    "ScriptError",
    "SessionOptions",
    "TimeoutExceeded",
    "TransportFailure",
    "WaitSettings",
    "WindowOptions",
    "create_session",
]
