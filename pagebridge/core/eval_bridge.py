"""
pagebridge/core/eval_bridge.py

Request/response correlation for script executed inside the page context.

Every evaluate() call gets its own message namespace <session_id>|<call_id>|,
so concurrent calls on one session never see each other's messages.
"""

import asyncio
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from pagebridge.host.abstract_host import AbstractPageHost
from pagebridge.utils.exceptions import ScriptError
from pagebridge.utils.js_utils import (
    PageFunction,
    build_evaluation_script,
    channel_name,
    channel_prefix,
)
from pagebridge.utils.logger import get_logger


logger = get_logger(name=__name__)


ConsoleHandler = Callable[[list[str]], None]


@dataclass
class PendingEvaluation:
    """One injected script invocation waiting for its outcome."""
    call_id: str
    channel_prefix: str
    future: asyncio.Future
    listeners: dict[str, Callable[..., None]] = field(default_factory=dict)


class EvalBridge:
    """
    Executes page functions through the host and recovers their outcome from the message channel.
    """

    def __init__(self, session_id: str, host: AbstractPageHost, console_handler: ConsoleHandler | None = None) -> None:
        self.session_id = session_id
        self._host = host
        self._call_ids = itertools.count(1)
        self._pending: dict[str, PendingEvaluation] = {}
        self.console_handler = console_handler

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def evaluate(self, script: PageFunction | str, *args: Any) -> Any:
        """
        Run script inside the page with args and return its result.

        Args:
            script: Source of a single expression evaluating to a callable.
            *args: JSON-serializable arguments passed to the callable.

        Returns:
            The callable's JSON-compatible return value.

        Raises:
            ScriptError: if the script throws inside the page.
            TransportFailure: if the arguments cannot be serialized or the host is unreachable.
        """
        call_id = str(next(self._call_ids))
        prefix = channel_prefix(self.session_id, call_id)
        source = build_evaluation_script(script, args, prefix)

        logger.debug("evaluate script %s with args %s", script, args)

        pending = PendingEvaluation(
            call_id=call_id,
            channel_prefix=prefix,
            future=asyncio.get_running_loop().create_future(),
        )
        self._bind(pending)
        try:
            await self._host.execute_script(source)
            return await pending.future
        finally:
            # no-op when a response already unbound the call
            self._unbind(pending)

    # Private methods _____________________________________________________________________________

    def _bind(self, pending: PendingEvaluation) -> None:
        pending.listeners = {
            channel_name(pending.channel_prefix, "response"): partial(self._on_response, pending),
            channel_name(pending.channel_prefix, "error"): partial(self._on_error, pending),
            channel_name(pending.channel_prefix, "log"): partial(self._on_log, pending),
        }
        for name, listener in pending.listeners.items():
            self._host.messages.on(name, listener)
        self._pending[pending.call_id] = pending

    def _unbind(self, pending: PendingEvaluation) -> None:
        for name in pending.listeners:
            self._host.messages.remove_all_listeners(name)
        self._pending.pop(pending.call_id, None)

    def _on_response(self, pending: PendingEvaluation, value: Any = None, *_: Any) -> None:
        logger.debug("receive evaluate result %s", value)
        self._unbind(pending)
        if not pending.future.done():
            pending.future.set_result(value)

    def _on_error(
        self,
        pending: PendingEvaluation,
        message: str | None = None,
        name: str | None = None,
        stack: str | None = None,
        *_: Any,
    ) -> None:
        logger.debug("failed evaluate call %s: %s", pending.call_id, message)
        self._unbind(pending)
        if not pending.future.done():
            pending.future.set_exception(ScriptError(
                message=message if message is not None else "",
                name=name or "Error",
                stack=stack,
            ))

    def _on_log(self, pending: PendingEvaluation, lines: Any = None, *_: Any) -> None:
        lines = [str(line) for line in lines] if isinstance(lines, list) else [str(lines)]
        logger.debug("jslog %s", " ".join(lines))
        if self.console_handler is not None:
            self.console_handler(lines)
