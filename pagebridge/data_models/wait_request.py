"""
pagebridge/data_models/wait_request.py

Tagged variants accepted by the wait engine.

Contains:
- LifecycleEvent: which lifecycle flag a wait targets
- DelayWait, PredicateWait, LifecycleWait, SelectorWait: the wait modes
- WaitRequest: discriminated union over the modes
- parse_wait_argument(): maps a loose wait() argument onto a WaitRequest
"""

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from pagebridge.utils.js_utils import PageFunction


class LifecycleEvent(StrEnum):
    """Lifecycle condition a wait can target."""
    DOM = "dom"           # DOMContentLoaded
    LOADED = "loaded"     # window load
    ALL = "all"           # currently identical to LOADED; async sub-requests are not tracked


LIFECYCLE_TOKENS: dict[str, LifecycleEvent] = {
    "event:dom": LifecycleEvent.DOM,
    "dom-ready": LifecycleEvent.DOM,
    "event:loaded": LifecycleEvent.LOADED,
    "fully-loaded": LifecycleEvent.LOADED,
    "event:all": LifecycleEvent.ALL,
    "all-settled": LifecycleEvent.ALL,
}


class DelayWait(BaseModel):
    """Resolve after a fixed delay. No polling and no deadline."""
    kind: Literal["delay"] = "delay"
    duration_ms: float = Field(ge=0)


class PredicateWait(BaseModel):
    """Poll a page function until it returns a truthy value."""
    kind: Literal["predicate"] = "predicate"
    source: str = Field(min_length=1, description="JavaScript function source")
    args: list[Any] = Field(default_factory=list, description="JSON arguments passed on every call")


class LifecycleWait(BaseModel):
    """Poll the lifecycle record until the targeted flag is set."""
    kind: Literal["lifecycle"] = "lifecycle"
    event: LifecycleEvent = LifecycleEvent.ALL


class SelectorWait(BaseModel):
    """Poll until document.querySelector(selector) matches."""
    kind: Literal["selector"] = "selector"
    selector: str


WaitRequest = Annotated[
    Union[DelayWait, PredicateWait, LifecycleWait, SelectorWait],
    Field(discriminator="kind"),
]

_WAIT_REQUEST_TYPES = (DelayWait, PredicateWait, LifecycleWait, SelectorWait)


def parse_wait_argument(target: Any = None, *args: Any) -> DelayWait | PredicateWait | LifecycleWait | SelectorWait:
    """
    Map a wait() argument onto a WaitRequest.

    Precedence: number > page function > nothing or lifecycle token > selector string.
    A ready-made WaitRequest is returned unchanged. A negative or NaN duration
    is treated as 0.

    Args:
        target: Duration in ms, PageFunction, lifecycle token, selector, or None.
        *args: Extra JSON arguments for a page function predicate.

    Returns:
        The matching wait request variant.

    Raises:
        TypeError: if the argument has none of the supported shapes.
    """
    if isinstance(target, _WAIT_REQUEST_TYPES):
        return target
    if isinstance(target, (int, float)) and not isinstance(target, bool):
        # negative and NaN durations sleep for 0ms
        return DelayWait(duration_ms=target if target > 0 else 0)
    if isinstance(target, PageFunction):
        return PredicateWait(source=target.source, args=list(args))
    if target is None:
        return LifecycleWait(event=LifecycleEvent.ALL)
    if isinstance(target, LifecycleEvent):
        return LifecycleWait(event=target)
    if isinstance(target, str):
        if target in LIFECYCLE_TOKENS:
            return LifecycleWait(event=LIFECYCLE_TOKENS[target])
        return SelectorWait(selector=target)
    raise TypeError(f"unsupported wait argument of type {type(target).__name__}")
