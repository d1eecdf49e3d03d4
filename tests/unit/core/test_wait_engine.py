"""
tests/unit/core/test_wait_engine.py

Unit tests for pagebridge/core/wait_engine.py
"""

import asyncio
import json
import time

import pytest

from conftest import FakePageHost
from pagebridge.core.eval_bridge import EvalBridge
from pagebridge.core.lifecycle_tracker import LifecycleTracker
from pagebridge.core.wait_engine import WaitEngine
from pagebridge.data_models.session_options import WaitSettings
from pagebridge.data_models.wait_request import (
    DelayWait,
    LifecycleEvent,
    LifecycleWait,
    PredicateWait,
    SelectorWait,
)
from pagebridge.host.events import HostEvent
from pagebridge.utils.exceptions import NavigationFailure, ScriptError, TimeoutExceeded


@pytest.fixture
def tracker(fake_host: FakePageHost) -> LifecycleTracker:
    return LifecycleTracker(fake_host.events)


@pytest.fixture
def engine(fake_host: FakePageHost, tracker: LifecycleTracker, fast_wait_settings: WaitSettings) -> WaitEngine:
    return WaitEngine(tracker, EvalBridge("sess01", fake_host), fast_wait_settings)


def answer_after(calls_before_true: int) -> tuple[list[str], object]:
    """Script handler replying False until it has been called calls_before_true times."""
    seen: list[str] = []

    def handler(host: FakePageHost, source: str) -> None:
        seen.append(source)
        host.reply(source, len(seen) > calls_before_true)

    return seen, handler


class TestDelayWait:
    def test_resolves_no_earlier_than_duration(self, engine: WaitEngine) -> None:
        started = time.monotonic()
        result = asyncio.run(engine.wait(DelayWait(duration_ms=50)))
        elapsed_ms = (time.monotonic() - started) * 1000

        assert result is None
        assert elapsed_ms >= 45

    def test_delay_ignores_global_timeout(self, engine: WaitEngine) -> None:
        engine.settings = WaitSettings(global_timeout_ms=10)
        asyncio.run(engine.wait(DelayWait(duration_ms=30)))


class TestPredicateWait:
    def test_resolves_once_predicate_is_truthy(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        seen, handler = answer_after(2)
        fake_host.script_handler = handler

        asyncio.run(engine.wait(PredicateWait(source="() => window.ready")))

        assert len(seen) == 3

    def test_arguments_reach_predicate(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        seen, handler = answer_after(0)
        fake_host.script_handler = handler

        asyncio.run(engine.wait(PredicateWait(source="(a, b) => a < b", args=[1, {"b": 2}])))

        assert '((a, b) => a < b\n)(1, {"b": 2});' in seen[0]

    def test_times_out_when_never_truthy(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        fake_host.script_handler = lambda host, source: host.reply(source, False)
        engine.settings = engine.settings.model_copy(update={"global_timeout_ms": 60})

        started = time.monotonic()
        with pytest.raises(TimeoutExceeded) as exc_info:
            asyncio.run(engine.wait(PredicateWait(source="() => false")))

        assert exc_info.value.timeout_ms == 60
        assert time.monotonic() - started < 1

    def test_script_error_rejects_immediately(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        fake_host.script_handler = lambda host, source: host.throw(source, "nope is not defined", "ReferenceError")

        with pytest.raises(ScriptError) as exc_info:
            asyncio.run(engine.wait(PredicateWait(source="() => nope")))

        assert exc_info.value.name == "ReferenceError"
        assert len(fake_host.scripts) == 1

    def test_unanswered_evaluation_bounded_by_deadline(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        """A page that never answers cannot stall the wait past its deadline."""
        engine.settings = engine.settings.model_copy(update={"global_timeout_ms": 50})

        started = time.monotonic()
        with pytest.raises(TimeoutExceeded):
            asyncio.run(engine.wait(PredicateWait(source="() => true")))

        assert time.monotonic() - started < 1
        assert fake_host.messages.listener_count(f"{FakePageHost.prefix_of(fake_host.scripts[0])}js:response") == 0


class TestSelectorWait:
    def test_resolves_when_selector_matches(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        seen, handler = answer_after(1)
        fake_host.script_handler = handler

        asyncio.run(engine.wait(SelectorWait(selector="#app")))

        assert len(seen) == 2
        assert "document.querySelector(selector)" in seen[0]
        assert '("#app");' in seen[0]

    def test_selector_is_escaped(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        seen, handler = answer_after(0)
        fake_host.script_handler = handler
        selector = "a[title=\"it's\"]"

        asyncio.run(engine.wait(SelectorWait(selector=selector)))

        assert f"({json.dumps(selector)});" in seen[0]

    def test_times_out_when_selector_missing(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        fake_host.script_handler = lambda host, source: host.reply(source, False)
        engine.settings = engine.settings.model_copy(update={"global_timeout_ms": 40})

        with pytest.raises(TimeoutExceeded) as exc_info:
            asyncio.run(engine.wait(SelectorWait(selector="#never")))

        assert "#never" in exc_info.value.waited_for


class TestLifecycleWait:
    def test_dom_wait_resolves_on_dom_ready(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        fake_host.events.emit(HostEvent.NAVIGATION_START)
        fake_host.events.emit(HostEvent.DOM_READY)

        asyncio.run(engine.wait(LifecycleWait(event=LifecycleEvent.DOM)))

    @pytest.mark.parametrize("event", [LifecycleEvent.LOADED, LifecycleEvent.ALL])
    def test_loaded_and_all_need_finish_load(self, engine: WaitEngine, fake_host: FakePageHost, event: LifecycleEvent) -> None:
        fake_host.events.emit(HostEvent.DOM_READY)

        async def scenario() -> None:
            waiting = asyncio.ensure_future(engine.wait(LifecycleWait(event=event)))
            await asyncio.sleep(0.03)
            assert not waiting.done()
            fake_host.events.emit(HostEvent.FINISH_LOAD)
            await asyncio.wait_for(waiting, timeout=1)

        asyncio.run(scenario())

    def test_fatal_error_short_circuits(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        engine.settings = engine.settings.model_copy(update={"global_timeout_ms": 10_000})

        async def scenario() -> None:
            waiting = asyncio.ensure_future(engine.wait(LifecycleWait(event=LifecycleEvent.ALL)))
            await asyncio.sleep(0.02)
            fake_host.events.emit(HostEvent.FAIL_LOAD, -105, "net::ERR_NAME_NOT_RESOLVED", "https://nope.invalid")
            await asyncio.wait_for(waiting, timeout=1)

        started = time.monotonic()
        with pytest.raises(NavigationFailure) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.code == -105
        assert time.monotonic() - started < 1

    def test_aborted_load_does_not_short_circuit(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        fake_host.events.emit(HostEvent.FAIL_LOAD, -3, "net::ERR_ABORTED")
        fake_host.events.emit(HostEvent.FINISH_LOAD)

        asyncio.run(engine.wait(LifecycleWait(event=LifecycleEvent.LOADED)))

    def test_times_out_without_events(self, engine: WaitEngine) -> None:
        engine.settings = engine.settings.model_copy(update={"global_timeout_ms": 40})

        with pytest.raises(TimeoutExceeded) as exc_info:
            asyncio.run(engine.wait(LifecycleWait(event=LifecycleEvent.DOM)))

        assert exc_info.value.waited_for == "event:dom"

    def test_waits_for_settling_delay(self, engine: WaitEngine, fake_host: FakePageHost) -> None:
        engine.settings = engine.settings.model_copy(update={"delay_ms": 50})
        fake_host.load_page()

        started = time.monotonic()
        asyncio.run(engine.wait(LifecycleWait()))

        assert (time.monotonic() - started) * 1000 >= 45


class TestUnsupportedRequest:
    def test_rejects_unknown_request(self, engine: WaitEngine) -> None:
        with pytest.raises(TypeError):
            asyncio.run(engine.wait("#app"))
