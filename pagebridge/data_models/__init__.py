"""
pagebridge/data_models/__init__.py

Pydantic models shared across the project.
"""

from pagebridge.data_models.lifecycle import LifecycleRecord, NavigationFailureDetails
from pagebridge.data_models.session_options import ClipRect, SessionOptions, WaitSettings, WindowOptions
from pagebridge.data_models.wait_request import (
    DelayWait,
    LifecycleEvent,
    LifecycleWait,
    PredicateWait,
    SelectorWait,
    WaitRequest,
    parse_wait_argument,
)

__all__ = [
    "ClipRect",
    "DelayWait",
    "LifecycleEvent",
    "LifecycleRecord",
    "LifecycleWait",
    "NavigationFailureDetails",
    "PredicateWait",
    "SelectorWait",
    "SessionOptions",
    "WaitRequest",
    "WaitSettings",
    "WindowOptions",
    "parse_wait_argument",
]
