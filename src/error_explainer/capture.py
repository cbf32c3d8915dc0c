"""Snapshotting live Python frames into :class:`StackFrame` values."""

from __future__ import annotations

import inspect
import sys
import traceback
from types import FrameType, TracebackType
from typing import Iterable, Iterator

from .models import StackFrame
from .sanitizer import DENYLISTED_KEYS, mask_args

__all__ = [
    "INTERNAL_MODULES",
    "MAX_LOCALS",
    "capture_stack",
    "live_stack",
    "live_frames_from_traceback",
    "frames_from_traceback",
    "origin_of",
    "stack_frame_from",
    "exception_message",
    "qualified_name",
    "is_internal_frame",
]

# Hook machinery frames dropped from the top of a captured stack.
INTERNAL_MODULES: tuple[str, ...] = ("error_explainer", "warnings", "_py_warnings", "threading", "atexit")
MAX_LOCALS = 20


def stack_frame_from(
    frame: FrameType,
    lineno: int | None = None,
    *,
    denylist: Iterable[str] = DENYLISTED_KEYS,
) -> StackFrame:
    """Convert one interpreter frame; arguments and locals are rendered, never kept alive."""

    code = frame.f_code
    class_name, call_type = _owner(frame)
    blocked = tuple(denylist)
    return StackFrame(
        function=code.co_name,
        file=code.co_filename or None,
        line=lineno if lineno is not None else frame.f_lineno,
        class_name=class_name,
        call_type=call_type,
        args=_arguments(frame, blocked),
        locals=_local_values(frame, blocked),
    )


def capture_stack(
    start: FrameType | None = None,
    *,
    skip_modules: Iterable[str] = INTERNAL_MODULES,
    limit: int | None = None,
) -> tuple[StackFrame, ...]:
    """Capture the current call stack, most recent call first.

    Leading frames from ``skip_modules`` are discarded so the result starts at
    the code that triggered the hook.
    """

    origin = start if start is not None else sys._getframe(1)
    frames: list[StackFrame] = []
    for frame in live_stack(origin, skip_modules=skip_modules):
        if limit is not None and len(frames) >= limit:
            break
        frames.append(stack_frame_from(frame))
    return tuple(frames)


def live_stack(
    start: FrameType | None = None,
    *,
    skip_modules: Iterable[str] = INTERNAL_MODULES,
) -> Iterator[FrameType]:
    """Yield live frames from ``start`` outwards, past any leading internal frames."""

    prefixes = tuple(skip_modules)
    frame = start if start is not None else sys._getframe(1)
    while frame is not None and is_internal_frame(frame, prefixes):
        frame = frame.f_back
    while frame is not None:
        yield frame
        frame = frame.f_back


def live_frames_from_traceback(tb: TracebackType | None) -> tuple[FrameType, ...]:
    """Live frames of an exception traceback, innermost first."""

    return tuple(frame for frame, _ in traceback.walk_tb(tb))[::-1]


def frames_from_traceback(tb: TracebackType | None) -> tuple[StackFrame, ...]:
    """Frames of an exception traceback, most recent call first."""

    collected = [stack_frame_from(frame, lineno) for frame, lineno in traceback.walk_tb(tb)]
    collected.reverse()
    return tuple(collected)


def origin_of(exc: BaseException) -> tuple[str | None, int | None]:
    """Best location for ``exc``: the syntax error position or the raising frame."""

    if isinstance(exc, SyntaxError) and exc.filename:
        return exc.filename, exc.lineno
    last: tuple[str | None, int | None] = (None, None)
    for frame, lineno in traceback.walk_tb(exc.__traceback__):
        last = (frame.f_code.co_filename, lineno)
    return last


def exception_message(exc: BaseException) -> str:
    if isinstance(exc, SyntaxError) and exc.msg:
        return str(exc.msg)
    text = str(exc)
    return text if text else type(exc).__name__


def qualified_name(exc_type: type[BaseException]) -> str:
    module = exc_type.__module__
    if module in {"builtins", "__main__"}:
        return exc_type.__qualname__
    return f"{module}.{exc_type.__qualname__}"


def is_internal_frame(frame: FrameType, prefixes: Iterable[str] = INTERNAL_MODULES) -> bool:
    name = frame.f_globals.get("__name__", "")
    return any(name == prefix or name.startswith(prefix + ".") for prefix in prefixes)


def _owner(frame: FrameType) -> tuple[str | None, str | None]:
    local_vars = frame.f_locals
    code = frame.f_code
    if code.co_argcount:
        first = code.co_varnames[0]
        bound = local_vars.get(first)
        if first == "self" and bound is not None:
            return type(bound).__name__, "."
        if first == "cls" and isinstance(bound, type):
            return bound.__name__, "."
    qualname = getattr(code, "co_qualname", code.co_name)
    if "." in qualname:
        owner = qualname.rsplit(".", 1)[0]
        if not owner.endswith("<locals>"):
            return owner, "."
    return None, None


def _arguments(frame: FrameType, denylist: Iterable[str]) -> tuple[str, ...]:
    try:
        info = inspect.getargvalues(frame)
    except (TypeError, ValueError):
        return ()
    names: list[str] = list(info.args)
    if info.varargs:
        names.append(info.varargs)
    if info.keywords:
        names.append(info.keywords)
    return mask_args(_pairs(names, info.locals), denylist=denylist)


def _pairs(names: list[str], values: dict) -> Iterator[tuple[str, object]]:
    for name in names:
        if name in values:
            yield name, values[name]


def _local_values(frame: FrameType, denylist: Iterable[str]) -> tuple[str, ...]:
    """Non-argument locals worth showing, capped at :data:`MAX_LOCALS`."""

    try:
        info = inspect.getargvalues(frame)
    except (TypeError, ValueError):
        return ()
    skipped = set(info.args)
    skipped.update(name for name in (info.varargs, info.keywords) if name)
    shown: list[tuple[str, object]] = []
    for name, value in info.locals.items():
        if len(shown) >= MAX_LOCALS:
            break
        if name in skipped or name.startswith("__") or _is_definition(value):
            continue
        shown.append((name, value))
    return mask_args(shown, denylist=denylist)


def _is_definition(value: object) -> bool:
    # Imports and definitions at module level are noise in a locals dump.
    return inspect.ismodule(value) or inspect.isclass(value) or inspect.isroutine(value)
