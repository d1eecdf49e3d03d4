"""
pagebridge/utils/js_utils.py

Building blocks for script that runs inside the page context.

Contains:
- PageFunction: marker for JavaScript function source
- channel_prefix / channel_name: message channel naming
- serialize_arguments: JSON argument list spliced into a call site
- build_evaluation_script: the wrapper submitted for every evaluate()
- canned page functions used by the session (selector presence, content, focus, click)
"""

import json
from dataclasses import dataclass
from typing import Any

from pagebridge.utils.exceptions import TransportFailure


# global installed in every document by the host; send(name, ...args) posts to the message channel
PAGE_BRIDGE_GLOBAL = "__pagebridge__"

CHANNEL_KINDS = ("response", "error", "log")


@dataclass(frozen=True)
class PageFunction:
    """
    JavaScript source of a single expression evaluating to a callable.

    Wrapping source in PageFunction marks it as code to run rather than
    a selector or lifecycle token when passed to wait().
    """
    source: str

    def __str__(self) -> str:
        return self.source


def channel_prefix(session_id: str, call_id: str) -> str:
    """Message namespace of one evaluate() call."""
    return f"{session_id}|{call_id}|"


def channel_name(prefix: str, kind: str) -> str:
    """
    Full message name for one of the three channel kinds.

    Args:
        prefix: Namespace returned by channel_prefix().
        kind: One of "response", "error", "log".

    Returns:
        The message name, e.g. "abc123|7|js:response".
    """
    if kind not in CHANNEL_KINDS:
        raise ValueError(f"unknown channel kind: {kind}")
    return f"{prefix}js:{kind}"


def serialize_arguments(args: tuple[Any, ...] | list[Any]) -> str:
    """
    Encode arguments as a comma-joined JSON list without the surrounding brackets.

    Output is pure ASCII, so U+2028/U+2029 and quotes cannot break out of the call site.

    Raises:
        TransportFailure: if an argument is not JSON-serializable (including NaN/Infinity).
    """
    try:
        encoded = json.dumps(list(args), ensure_ascii=True, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise TransportFailure(f"cannot serialize evaluate arguments: {e}") from e
    return encoded[1:-1]


def build_evaluation_script(script: "PageFunction | str", args: tuple[Any, ...] | list[Any], prefix: str) -> str:
    """
    Wrap a page function so that its outcome is posted back on the message channel.

    The wrapper forwards console.log output on <prefix>js:log, posts the return value
    on <prefix>js:response or {message, name, stack} on <prefix>js:error, and restores
    console.log whatever happens.
    """
    source = str(script).strip()
    if not source:
        raise TransportFailure("cannot evaluate an empty script")

    response = json.dumps(channel_name(prefix, "response"))
    error = json.dumps(channel_name(prefix, "error"))
    log = json.dumps(channel_name(prefix, "log"))

    return f"""
(function () {{
    var log = console.log;
    var send = window.{PAGE_BRIDGE_GLOBAL}.send;
    console.log = function () {{
        send({log}, Array.prototype.slice.call(arguments).map(String));
    }};
    try {{
        // source may end in a line comment
        var response = ({source}
)({serialize_arguments(args)});
        send({response}, response);
    }} catch (e) {{
        var failure = (e !== null && typeof e === "object") ? e : {{}};
        send(
            {error},
            failure.message !== undefined ? String(failure.message) : String(e),
            failure.name !== undefined ? String(failure.name) : "Error",
            failure.stack !== undefined ? String(failure.stack) : null
        );
    }} finally {{
        console.log = log;
    }}
}})()"""


SELECTOR_PRESENCE_PREDICATE = PageFunction("""function (selector) {
    return document.querySelector(selector) ? true : false;
}""")

CONTENT_SCRIPT = PageFunction("""function () {
    return document.documentElement.outerHTML;
}""")

FOCUS_SCRIPT = PageFunction("""function (selector) {
    var element = document.querySelector(selector);
    if (!element) {
        throw new Error("unable to find element by selector: " + selector);
    }
    element.focus();
    return true;
}""")

CLICK_SCRIPT = PageFunction("""function (selector) {
    var element = document.querySelector(selector);
    if (!element) {
        throw new Error("unable to find element by selector: " + selector);
    }
    var event = document.createEvent("MouseEvent");
    event.initEvent("click", true, true);
    return element.dispatchEvent(event);
}""")
