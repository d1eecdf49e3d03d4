"""
pagebridge/host/readiness.py

One-time "is the host ready" latch shared by all callers.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from pagebridge.utils.logger import get_logger


logger = get_logger(name=__name__)

T = TypeVar("T")


class ReadinessLatch(Generic[T]):
    """
    Runs an async initializer until it succeeds and lets every caller await its result.

    The first wait() starts the initializer; concurrent and later callers await the
    same task, so callers arriving after readiness resolve immediately. If the
    initializer fails, every waiter sees the error and the next wait() starts it
    again; reset() forgets a successful initialization, e.g. after a disconnect.
    The latch is bound to the event loop that started it and starts over on a new loop.
    """

    def __init__(self, initializer: Callable[[], Awaitable[T]]) -> None:
        self._initializer = initializer
        self._task: asyncio.Future[T] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_ready(self) -> bool:
        task = self._task
        return task is not None and task.done() and not task.cancelled() and task.exception() is None

    async def wait(self) -> T:
        loop = asyncio.get_running_loop()
        if self._task is not None and self._loop is not loop:
            logger.debug("Event loop changed, initializing host again")
            self._task = None
        if self._task is None:
            logger.debug("Starting host initialization")
            self._loop = loop
            self._task = asyncio.ensure_future(self._initializer())
        task = self._task
        try:
            # shield so that one cancelled waiter does not cancel initialization for the others
            return await asyncio.shield(task)
        except Exception:
            # a failed initialization is not remembered; the next wait() tries again
            if self._task is task and task.done():
                self._task = None
                self._loop = None
            raise

    def reset(self) -> None:
        """Forget the previous initialization, cancelling it if still running."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._loop = None
