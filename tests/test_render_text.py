"""Tests for the terminal renderer."""

from __future__ import annotations

import io
from typing import Callable

from error_explainer.config import Config
from error_explainer.models import Explanation, ObjectState, RequestState, StateSnapshot
from error_explainer.render.context import ConsoleTarget, HttpTarget
from error_explainer.render.text_renderer import (
    ERROR_MARKER,
    TEXT_CONTENT_TYPE,
    TextRenderer,
    severity_background,
    should_use_color,
)


SOURCE = "import sys\n\nclass Job:\n    def run(self):\n        return 1 / 0\n"


def _render(explanation: Explanation, config: Config, **kwargs: object) -> str:
    stream = io.StringIO()
    renderer = TextRenderer(environ=kwargs.pop("environ", {}), reader=kwargs.pop("reader", lambda path: None), **kwargs)
    renderer.render(explanation, config, ConsoleTarget(stream))
    return stream.getvalue()


def test_plain_output_sections_in_order(make_explanation: Callable[..., Explanation]) -> None:
    output = _render(make_explanation(), Config(project_root="/app"))

    assert "\x1b[" not in output
    positions = [
        output.index("E_WARNING"),
        output.index("boom"),
        output.index("Suggestions:"),
        output.index("  - Check the input"),
        output.index("at src/main.py:3"),
        output.index("1 src/main.py:3 Job.run()"),
        output.index("2 src/cli.py:10 <module>()"),
    ]
    assert positions == sorted(positions)


def test_excerpt_marks_faulting_line(make_explanation: Callable[..., Explanation]) -> None:
    output = _render(make_explanation(), Config(project_root="/app"), reader=lambda path: SOURCE)

    assert f"{ERROR_MARKER} 3 | class Job:" in output
    assert "  2 | " in output


def test_hidden_frames_are_counted(make_explanation: Callable[..., Explanation]) -> None:
    output = _render(make_explanation(), Config(project_root="/app"), max_frames=1)

    assert "… +1" in output
    assert "src/cli.py:10" not in output


def test_verbose_footer(make_explanation: Callable[..., Explanation]) -> None:
    output = _render(make_explanation(), Config(verbose=True, model="llama3"))

    assert "lang=en model=llama3" in output


def test_forced_color_emits_ansi(make_explanation: Callable[..., Explanation]) -> None:
    output = _render(make_explanation(), Config(), environ={"FORCE_COLOR": "1"})

    assert "\x1b[" in output


def test_no_color_beats_force_color() -> None:
    target = ConsoleTarget(io.StringIO())

    assert should_use_color(target, {"FORCE_COLOR": "1", "NO_COLOR": ""}) is False
    assert should_use_color(target, {"ERROR_EXPLAINER_FORCE_COLOR": "1"}) is True
    assert should_use_color(target, {}) is False
    assert should_use_color(HttpTarget({}), {"FORCE_COLOR": "1"}) is False


def test_http_target_receives_status_and_content_type(make_explanation: Callable[..., Explanation]) -> None:
    target = HttpTarget({})

    TextRenderer(environ={}, reader=lambda path: None).render(make_explanation(), Config(), target)

    assert target.status == 500
    assert target.content_type == TEXT_CONTENT_TYPE
    assert "boom" in target.body


def test_severity_backgrounds() -> None:
    assert severity_background("E_FATAL_ERROR") == "red"
    assert severity_background("Exception") == "red"
    assert severity_background("E_USER_WARNING") == "yellow"
    assert severity_background("E_DEPRECATED") == "blue"


class _TerminalStream(io.StringIO):
    def __init__(self, tty: bool) -> None:
        super().__init__()
        self._tty = tty

    def isatty(self) -> bool:
        return self._tty


def test_color_follows_terminal_when_not_forced() -> None:
    assert should_use_color(ConsoleTarget(_TerminalStream(True)), {}) is True
    assert should_use_color(ConsoleTarget(_TerminalStream(False)), {}) is False
    assert should_use_color(ConsoleTarget(_TerminalStream(True)), {"NO_COLOR": "1"}) is False
    assert should_use_color(ConsoleTarget(_TerminalStream(True)), {"FORCE_COLOR": "0"}) is True


def test_verbose_output_lists_runtime_state(make_explanation: Callable[..., Explanation]) -> None:
    state = StateSnapshot(
        current_object=ObjectState(class_name="jobs.Job", attributes=("retries=2",)),
        request=RequestState(method="GET", path="/jobs", query=("page='2'",)),
    )

    verbose = _render(make_explanation(state=state), Config(verbose=True))
    quiet = _render(make_explanation(state=state), Config())

    assert "State:" in verbose
    assert "Current object: jobs.Job" in verbose
    assert "      retries=2" in verbose
    assert "Request: GET /jobs" in verbose
    assert "    Query string:" in verbose
    assert verbose.index("retries=2") < verbose.index("Request: GET /jobs")
    assert "State:" not in quiet
