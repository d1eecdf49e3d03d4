"""
pagebridge/utils/exceptions.py

Custom exceptions for the project.

Every public operation of a page session fails with a subclass of PageBridgeError.
"""

from typing import Any


class PageBridgeError(Exception):
    """
    Base class for all pagebridge errors.
    """
    pass


class NavigationFailure(PageBridgeError):
    """
    Raised when the host reports that a page failed to load.
    """

    def __init__(self, reason: str, code: int, description: str, url: str | None = None) -> None:
        super().__init__(f"{reason}: {description} ({code})")
        self.reason = reason
        self.code = code
        self.description = description
        self.url = url


class ScriptError(PageBridgeError):
    """
    Raised when injected script throws inside the page context.
    Carries the message, name and stack exactly as reported by the page.
    """

    def __init__(self, message: str, name: str = "Error", stack: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.name = name
        self.stack = stack

    def __str__(self) -> str:
        return f"{self.name}: {self.message}"


class TimeoutExceeded(PageBridgeError):
    """
    Raised when a wait operation's global deadline elapses before its condition is met.
    """

    def __init__(self, timeout_ms: float, waited_for: str) -> None:
        super().__init__(f"wait for {waited_for} rejected after global timeout of {timeout_ms:g}ms")
        self.timeout_ms = timeout_ms
        self.waited_for = waited_for


class TransportFailure(PageBridgeError):
    """
    Raised when a message cannot be built or delivered across the host boundary.
    """

    def __init__(self, message: str, method: str | None = None, details: Any = None) -> None:
        super().__init__(message if method is None else f"{method}: {message}")
        self.method = method
        self.details = details
