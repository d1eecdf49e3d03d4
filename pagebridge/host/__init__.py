"""
pagebridge/host/__init__.py

Host browser engine abstraction and its Chrome DevTools Protocol implementation.
"""

from pagebridge.host.abstract_host import AbstractHostFactory, AbstractPageHost
from pagebridge.host.cdp_host import CDPBrowser, CDPPageHost
from pagebridge.host.events import EventDispatcher, HostEvent
from pagebridge.host.readiness import ReadinessLatch

__all__ = [
    "AbstractHostFactory",
    "AbstractPageHost",
    "CDPBrowser",
    "CDPPageHost",
    "EventDispatcher",
    "HostEvent",
    "ReadinessLatch",
]
