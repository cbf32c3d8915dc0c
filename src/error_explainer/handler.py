"""Per-fault dispatch: suppression and disabled checks, capture, explain, render, chain."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from .capture import (
    capture_stack,
    exception_message,
    frames_from_traceback,
    live_frames_from_traceback,
    live_stack,
    origin_of,
    qualified_name,
)
from .config import Config
from .explainer import Explainer
from .models import DispatchResult, Explanation, FaultEvent, FaultKind, StackFrame, StateSnapshot
from .render.context import ConsoleTarget, OutputTarget
from .render.factory import RendererFactory
from .render.negotiation import resolve_format
from .severity import SuppressionPolicy, is_fatal, severity_for_exception, severity_for_warning
from .state import StateCollector, collect_state

__all__ = [
    "ErrorHook",
    "ExceptionHook",
    "FatalRecord",
    "FaultHandler",
    "last_fatal_error",
]

LOGGER = logging.getLogger(__name__)

ErrorHook = Callable[..., Any]
ExceptionHook = Callable[[BaseException], Any]

_USE_DEFAULT: Any = object()


@dataclass(slots=True, frozen=True)
class FatalRecord:
    """The last fatal condition the runtime recorded before shutdown."""

    severity: int
    message: str
    file: str | None = None
    line: int | None = None
    trace: tuple[StackFrame, ...] = ()
    exception: BaseException | None = None


def last_fatal_error() -> FatalRecord | None:
    """Read the exception that terminated the interpreter, if any."""

    exc = getattr(sys, "last_exc", None) or getattr(sys, "last_value", None)
    if not isinstance(exc, BaseException):
        return None
    file, line = origin_of(exc)
    return FatalRecord(
        severity=int(severity_for_exception(exc)),
        message=exception_message(exc),
        file=file,
        line=line,
        trace=frames_from_traceback(exc.__traceback__),
        exception=exc,
    )


class FaultHandler:
    """Drives one explanation + render per captured fault.

    ``previous_error_hook`` is called like ``warnings.showwarning`` and
    ``previous_exception_hook`` with the exception instance; either may be
    ``None``. A previous hook that raises never affects this handler's result.
    """

    def __init__(
        self,
        config: Config,
        *,
        previous_error_hook: ErrorHook | None = None,
        previous_exception_hook: ExceptionHook | None = None,
        explainer: Explainer | None = None,
        renderers: RendererFactory | None = None,
        target_factory: Callable[[], OutputTarget] = ConsoleTarget,
        suppression: SuppressionPolicy | None = None,
        last_error: Callable[[], FatalRecord | None] = last_fatal_error,
        state_collector: StateCollector | None = collect_state,
    ) -> None:
        self._config = config
        self._previous_error_hook = previous_error_hook
        self._previous_exception_hook = previous_exception_hook
        self._explainer = explainer or Explainer()
        self._renderers = renderers or RendererFactory()
        self._target_factory = target_factory
        self._suppression = suppression or SuppressionPolicy()
        self._last_error = last_error
        self._state_collector = state_collector
        self._explained: BaseException | None = None

    @property
    def config(self) -> Config:
        return self._config

    @property
    def previous_error_hook(self) -> ErrorHook | None:
        return self._previous_error_hook

    @property
    def previous_exception_hook(self) -> ExceptionHook | None:
        return self._previous_exception_hook

    # ------------------------------------------------------------------
    # Hook entry points
    # ------------------------------------------------------------------
    def handle_error(
        self,
        message: Warning | str,
        category: type[Warning] | None = None,
        filename: str | None = None,
        lineno: int | None = None,
        *,
        target: OutputTarget | None = None,
    ) -> DispatchResult:
        """Handle a runtime warning reported through the error hook."""

        if self._suppression.is_suppressed():
            return DispatchResult.SUPPRESSED
        if not self._config.enabled:
            return DispatchResult.DISABLED

        event = FaultEvent(
            kind=FaultKind.ERROR,
            message=str(message),
            file=filename,
            line=lineno,
            severity=int(severity_for_warning(category)),
            raw_trace=capture_stack(),
        )
        self._dispatch(event, target=target, is_shutdown=False, frames=tuple(live_stack(sys._getframe())))
        self._chain(self._previous_error_hook, message, category, filename, lineno)
        return DispatchResult.HANDLED

    def handle_exception(
        self,
        exc: BaseException,
        *,
        target: OutputTarget | None = None,
        previous: ExceptionHook | None = _USE_DEFAULT,
    ) -> DispatchResult:
        """Handle an uncaught exception.

        When disabled, the previous hook (if any) receives the exception;
        without one the original exception is raised again unchanged.
        """

        chained = self._previous_exception_hook if previous is _USE_DEFAULT else previous
        if not self._config.enabled:
            if chained is not None:
                chained(exc)
                return DispatchResult.DISABLED
            raise exc

        file, line = origin_of(exc)
        event = FaultEvent(
            kind=FaultKind.EXCEPTION,
            message=exception_message(exc),
            file=file,
            line=line,
            severity=None,
            raw_trace=frames_from_traceback(exc.__traceback__),
            exception_class=qualified_name(type(exc)),
        )
        self._explained = exc
        frames = live_frames_from_traceback(exc.__traceback__)
        self._dispatch(event, target=target, is_shutdown=False, frames=frames)
        self._chain(chained, exc)
        return DispatchResult.HANDLED

    def handle_shutdown(self, *, target: OutputTarget | None = None) -> DispatchResult | None:
        """Explain the fatal condition that ended the process, if there was one."""

        if not self._config.enabled:
            return DispatchResult.DISABLED
        record = self._last_error()
        if record is None or not is_fatal(record.severity):
            return None
        if record.exception is not None and record.exception is self._explained:
            return None

        event = FaultEvent(
            kind=FaultKind.SHUTDOWN,
            message=record.message or "Fatal error",
            file=record.file,
            line=record.line,
            severity=record.severity,
            raw_trace=record.trace or capture_stack(),
            exception_class=qualified_name(type(record.exception)) if record.exception is not None else None,
        )
        if record.exception is not None:
            frames = live_frames_from_traceback(record.exception.__traceback__)
        else:
            frames = tuple(live_stack(sys._getframe()))
        self._dispatch(event, target=target, is_shutdown=True, frames=frames)
        return DispatchResult.HANDLED

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def explain(self, event: FaultEvent, *, state: StateSnapshot | None = None) -> Explanation:
        return self._explainer.explain(
            event.kind,
            event.message,
            event.file,
            event.line,
            event.raw_trace,
            event.severity,
            self._config,
            exception_class=event.exception_class,
            state=state,
        )

    def render(
        self,
        explanation: Explanation,
        kind: FaultKind,
        *,
        target: OutputTarget | None = None,
        is_shutdown: bool = False,
    ) -> None:
        output = target or self._target_factory()
        fmt = resolve_format(self._config, output)
        renderer = self._renderers.create(fmt)
        renderer.render(explanation, self._config, output, kind=kind, is_shutdown=is_shutdown)

    def snapshot_state(self, frames: Iterable[Any], target: OutputTarget) -> StateSnapshot | None:
        """Best-effort state snapshot; a failing collector only costs the state panel."""

        if self._state_collector is None:
            return None
        try:
            return self._state_collector(frames, target, self._config)
        except Exception:
            LOGGER.debug("State collection failed; rendering without it", exc_info=True)
            return None

    def _dispatch(
        self,
        event: FaultEvent,
        *,
        target: OutputTarget | None,
        is_shutdown: bool,
        frames: Iterable[Any] = (),
    ) -> None:
        output = target or self._target_factory()
        explanation = self.explain(event, state=self.snapshot_state(frames, output))
        self.render(explanation, event.kind, target=output, is_shutdown=is_shutdown)

    @staticmethod
    def _chain(hook: Callable[..., Any] | None, *args: Any) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception:
            LOGGER.debug("Previous hook raised; ignoring", exc_info=True)
