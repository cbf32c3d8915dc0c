"""Tests for per-fault dispatch in the fault handler."""

from __future__ import annotations

import json
from typing import Any

import pytest

from error_explainer.config import Config
from error_explainer.explainer import Explainer
from error_explainer.handler import FatalRecord, FaultHandler, last_fatal_error
from error_explainer.models import DispatchResult, RequestState, StackFrame, StateSnapshot
from error_explainer.render.context import HttpTarget
from error_explainer.severity import Severity, suppressed


class SpyExplainer(Explainer):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def explain(self, *args: Any, **kwargs: Any):
        self.calls += 1
        return super().explain(*args, **kwargs)


class HookRecorder:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[Any, ...]] = []

    def __call__(self, *args: Any) -> None:
        self.calls.append(args)
        if self.fail:
            raise RuntimeError("previous hook exploded")


def _handler(config: Config | None = None, **kwargs: Any) -> FaultHandler:
    kwargs.setdefault("target_factory", lambda: HttpTarget({}))
    return FaultHandler(config or Config(output="json"), **kwargs)


def _payload(target: HttpTarget) -> dict[str, Any]:
    return json.loads(target.body)


def _level_three() -> None:
    raise ValueError("deep failure")


def _level_two() -> None:
    _level_three()


def _level_one() -> None:
    _level_two()


def _caught() -> ValueError:
    try:
        _level_one()
    except ValueError as exc:
        return exc
    raise AssertionError("expected ValueError")


# ---------------------------------------------------------------------------
# Error hook
# ---------------------------------------------------------------------------


def test_error_is_explained_and_rendered() -> None:
    target = HttpTarget({})

    result = _handler().handle_error("Disk almost full", UserWarning, "/app/disk.py", 14, target=target)

    assert result is DispatchResult.HANDLED
    payload = _payload(target)
    assert payload["severityLabel"] == "E_USER_WARNING"
    assert payload["original"] == {"message": "Disk almost full", "file": "/app/disk.py", "line": 14}
    assert payload["trace"][0]["function"] == "test_error_is_explained_and_rendered"
    assert target.status == 500


def test_suppressed_error_is_ignored_entirely() -> None:
    explainer = SpyExplainer()
    previous = HookRecorder()
    target = HttpTarget({})
    handler = _handler(explainer=explainer, previous_error_hook=previous)

    with suppressed():
        result = handler.handle_error("quiet", UserWarning, "/app/a.py", 1, target=target)

    assert result is DispatchResult.SUPPRESSED
    assert explainer.calls == 0
    assert previous.calls == []
    assert target.body == ""


def test_disabled_error_renders_nothing() -> None:
    explainer = SpyExplainer()
    target = HttpTarget({})

    result = _handler(Config(enabled=False), explainer=explainer).handle_error("x", target=target)

    assert result is DispatchResult.DISABLED
    assert explainer.calls == 0
    assert target.body == ""


def test_previous_error_hook_runs_after_render() -> None:
    previous = HookRecorder()
    target = HttpTarget({})

    _handler(previous_error_hook=previous).handle_error("careful", RuntimeWarning, "/app/b.py", 2, target=target)

    assert previous.calls == [("careful", RuntimeWarning, "/app/b.py", 2)]
    assert target.body


def test_failing_previous_hook_does_not_change_result() -> None:
    target = HttpTarget({})
    handler = _handler(previous_error_hook=HookRecorder(fail=True))

    result = handler.handle_error("careful", UserWarning, "/app/b.py", 2, target=target)

    assert result is DispatchResult.HANDLED
    assert _payload(target)["original"]["message"] == "careful"


# ---------------------------------------------------------------------------
# Exception hook
# ---------------------------------------------------------------------------


def test_exception_trace_round_trips_in_order() -> None:
    exc = _caught()
    target = HttpTarget({})

    result = _handler().handle_exception(exc, target=target)

    assert result is DispatchResult.HANDLED
    payload = _payload(target)
    assert payload["severityLabel"] == "Exception"
    assert payload["exceptionClass"] == "ValueError"
    assert payload["original"]["message"] == "deep failure"
    assert payload["original"]["line"] == _level_three.__code__.co_firstlineno + 1
    assert [frame["function"] for frame in payload["trace"]] == ["_level_three", "_level_two", "_level_one", "_caught"]


def test_previous_exception_hook_receives_exception() -> None:
    previous = HookRecorder()
    exc = _caught()

    _handler(previous_exception_hook=previous).handle_exception(exc, target=HttpTarget({}))

    assert previous.calls == [(exc,)]


def test_explicit_previous_overrides_configured_one() -> None:
    configured = HookRecorder()
    explicit = HookRecorder()
    exc = _caught()

    _handler(previous_exception_hook=configured).handle_exception(exc, target=HttpTarget({}), previous=explicit)

    assert configured.calls == []
    assert explicit.calls == [(exc,)]


def test_disabled_exception_with_previous_hook_delegates_once() -> None:
    previous = HookRecorder()
    explainer = SpyExplainer()
    target = HttpTarget({})
    exc = _caught()
    handler = _handler(Config(enabled=False), previous_exception_hook=previous, explainer=explainer)

    result = handler.handle_exception(exc, target=target)

    assert result is DispatchResult.DISABLED
    assert previous.calls == [(exc,)]
    assert explainer.calls == 0
    assert target.body == ""


def test_disabled_exception_without_previous_hook_reraises_same_object() -> None:
    exc = _caught()

    with pytest.raises(ValueError) as excinfo:
        _handler(Config(enabled=False)).handle_exception(exc, target=HttpTarget({}))

    assert excinfo.value is exc


def test_failing_previous_exception_hook_is_isolated() -> None:
    target = HttpTarget({})

    result = _handler(previous_exception_hook=HookRecorder(fail=True)).handle_exception(_caught(), target=target)

    assert result is DispatchResult.HANDLED
    assert target.body


def test_default_target_factory_is_used() -> None:
    targets: list[HttpTarget] = []

    def factory() -> HttpTarget:
        targets.append(HttpTarget({}))
        return targets[-1]

    FaultHandler(Config(output="json"), target_factory=factory).handle_exception(_caught())

    assert len(targets) == 1
    assert _payload(targets[0])["exceptionClass"] == "ValueError"


# ---------------------------------------------------------------------------
# Shutdown hook
# ---------------------------------------------------------------------------


def test_shutdown_explains_fatal_record() -> None:
    trace = (
        StackFrame(function="allocate", file="/app/mem.py", line=9),
        StackFrame(function="main", file="/app/cli.py", line=2),
        StackFrame(function="<module>", file="/app/run.py", line=1),
    )
    record = FatalRecord(severity=int(Severity.FATAL_ERROR), message="Out of memory", file="/app/mem.py", line=9, trace=trace)
    target = HttpTarget({})

    result = _handler(last_error=lambda: record).handle_shutdown(target=target)

    assert result is DispatchResult.HANDLED
    payload = _payload(target)
    assert payload["severityLabel"] == "E_FATAL_ERROR"
    assert [frame["function"] for frame in payload["trace"]] == ["allocate", "main", "<module>"]


@pytest.mark.parametrize(
    "record",
    [None, FatalRecord(severity=int(Severity.WARNING), message="meh")],
)
def test_shutdown_ignores_non_fatal(record: FatalRecord | None) -> None:
    target = HttpTarget({})

    assert _handler(last_error=lambda: record).handle_shutdown(target=target) is None
    assert target.body == ""


def test_shutdown_skips_exception_already_explained() -> None:
    exc = _caught()
    record = FatalRecord(severity=int(Severity.FATAL_ERROR), message=str(exc), exception=exc)
    handler = _handler(last_error=lambda: record)
    handler.handle_exception(exc, target=HttpTarget({}))
    target = HttpTarget({})

    assert handler.handle_shutdown(target=target) is None
    assert target.body == ""


def test_shutdown_disabled() -> None:
    assert _handler(Config(enabled=False)).handle_shutdown() is DispatchResult.DISABLED


def test_last_fatal_error_reads_interpreter_state(monkeypatch: pytest.MonkeyPatch) -> None:
    exc = _caught()
    monkeypatch.setattr("sys.last_exc", exc, raising=False)

    record = last_fatal_error()

    assert record is not None
    assert record.exception is exc
    assert record.severity == int(Severity.FATAL_ERROR)
    assert record.trace[0].function == "_level_three"


# ---------------------------------------------------------------------------
# Runtime state
# ---------------------------------------------------------------------------


class Checkout:
    def __init__(self) -> None:
        self.cart_id = 42

    def pay(self) -> None:
        raise RuntimeError("card declined")


def test_exception_state_describes_raising_object_and_request() -> None:
    try:
        Checkout().pay()
    except RuntimeError as exc:
        caught = exc
    target = HttpTarget({"REQUEST_METHOD": "POST", "PATH_INFO": "/pay"})

    _handler().handle_exception(caught, target=target)

    state = _payload(target)["state"]
    assert state["object"]["class"] == f"{__name__}.Checkout"
    assert "cart_id=42" in state["object"]["attributes"]
    assert "pay()" in state["object"]["methods"]
    assert state["request"]["method"] == "POST"
    assert state["request"]["path"] == "/pay"


def test_state_collector_receives_live_frames_and_target() -> None:
    seen: list[tuple[tuple[Any, ...], Any]] = []

    def collector(frames: Any, target: Any, config: Config) -> StateSnapshot:
        seen.append((tuple(frames), target))
        return StateSnapshot(request=RequestState(method="FAKE"))

    target = HttpTarget({})
    _handler(state_collector=collector).handle_exception(_caught(), target=target)

    frames, seen_target = seen[0]
    assert seen_target is target
    assert frames[0].f_code.co_name == "_level_three"
    assert _payload(target)["state"]["request"]["method"] == "FAKE"


def test_failing_state_collector_only_drops_the_state() -> None:
    def collector(*args: Any) -> StateSnapshot:
        raise RuntimeError("collector broke")

    target = HttpTarget({})

    result = _handler(state_collector=collector).handle_error("x", UserWarning, "/app/a.py", 1, target=target)

    assert result is DispatchResult.HANDLED
    assert "state" not in _payload(target)


def test_state_collection_can_be_turned_off() -> None:
    target = HttpTarget({"REQUEST_METHOD": "GET"})

    _handler(state_collector=None).handle_exception(_caught(), target=target)

    assert "state" not in _payload(target)
