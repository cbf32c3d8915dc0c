"""Shared pytest fixtures."""

from __future__ import annotations

import atexit
import os
import sys
import threading
import warnings
from typing import Any, Callable, Iterator

import pytest

from error_explainer import app as app_module
from error_explainer.config import Config
from error_explainer.models import Explanation, OriginalFault, StackFrame


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("ERROR_EXPLAINER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("FORCE_COLOR", raising=False)


@pytest.fixture(autouse=True)
def atexit_calls(monkeypatch: pytest.MonkeyPatch) -> dict[str, list[Callable[..., Any]]]:
    """Record shutdown-hook registrations instead of touching the real atexit table."""

    calls: dict[str, list[Callable[..., Any]]] = {"register": [], "unregister": []}
    monkeypatch.setattr(atexit, "register", lambda func, *a, **k: calls["register"].append(func) or func)
    monkeypatch.setattr(atexit, "unregister", lambda func: calls["unregister"].append(func))
    return calls


@pytest.fixture(autouse=True)
def _restore_runtime_hooks(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setattr(threading, "excepthook", threading.excepthook)
    monkeypatch.setattr(warnings, "showwarning", warnings.showwarning)
    yield
    app_module.default_context().unregister()


@pytest.fixture
def config() -> Config:
    return Config(output="json")


class RecordingAI:
    """AI client double returning a canned answer and remembering prompts."""

    def __init__(self, answer: str | None = None) -> None:
        self.answer = answer
        self.prompts: list[str] = []

    def generate_explanation(self, prompt: str, config: Config) -> str | None:
        self.prompts.append(prompt)
        return self.answer


@pytest.fixture
def recording_ai() -> Callable[[str | None], RecordingAI]:
    return RecordingAI


@pytest.fixture
def make_explanation() -> Callable[..., Explanation]:
    def _factory(**overrides: Any) -> Explanation:
        values: dict[str, Any] = {
            "title": "An error occurred",
            "details": "Message: boom\nPosition: /app/src/main.py:3",
            "severity_label": "E_WARNING",
            "original": OriginalFault(message="boom", file="/app/src/main.py", line=3),
            "suggestions": ("Check the input",),
            "trace": (
                StackFrame(function="run", file="/app/src/main.py", line=3, class_name="Job", call_type="."),
                StackFrame(function="<module>", file="/app/src/cli.py", line=10),
            ),
        }
        values.update(overrides)
        return Explanation(**values)

    return _factory
