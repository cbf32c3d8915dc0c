"""Installing, chaining and restoring the runtime hook points.

Error hook: ``warnings.showwarning``. Exception hooks: ``sys.excepthook`` and
``threading.excepthook``. Shutdown hook: an ``atexit`` callback.
"""

from __future__ import annotations

import atexit
import logging
import sys
import threading
import warnings
from dataclasses import dataclass
from typing import Any, Callable

from .handler import ErrorHook, ExceptionHook, FaultHandler
from .models import DispatchResult

__all__ = ["CapturedHooks", "HookChain", "is_default_error_hook"]

LOGGER = logging.getLogger(__name__)

# The stdlib default lives in "_py_warnings" from Python 3.14 on.
_WARNINGS_MODULES = frozenset({"warnings", "_py_warnings"})


@dataclass(slots=True, frozen=True)
class CapturedHooks:
    """Hooks that were active before installation."""

    showwarning: Callable[..., Any]
    excepthook: Callable[..., Any]
    threading_excepthook: Callable[..., Any]

    @classmethod
    def current(cls) -> "CapturedHooks":
        # Plain attribute reads: probing never mutates the host's hooks.
        return cls(
            showwarning=warnings.showwarning,
            excepthook=sys.excepthook,
            threading_excepthook=threading.excepthook,
        )

    def previous_error_hook(self) -> ErrorHook | None:
        if is_default_error_hook(self.showwarning):
            return None
        return self.showwarning

    def previous_exception_hook(self) -> ExceptionHook | None:
        if self.excepthook is sys.__excepthook__:
            return None
        hook = self.excepthook
        return lambda exc: hook(type(exc), exc, exc.__traceback__)


def is_default_error_hook(hook: Callable[..., Any]) -> bool:
    if hook is getattr(warnings, "_showwarning_orig", None):
        return True
    return getattr(hook, "__module__", None) in _WARNINGS_MODULES


class HookChain:
    """Owns the hooks this library installs and puts the previous ones back."""

    def __init__(self) -> None:
        self._captured: CapturedHooks | None = None
        self._showwarning: Callable[..., Any] | None = None
        self._excepthook: Callable[..., Any] | None = None
        self._threading_excepthook: Callable[..., Any] | None = None
        self._shutdown: Callable[[], Any] | None = None

    @property
    def installed(self) -> bool:
        return self._captured is not None

    @property
    def captured(self) -> CapturedHooks | None:
        return self._captured

    def install(self, handler: FaultHandler, captured: CapturedHooks | None = None) -> None:
        if self.installed:
            return
        captured = captured or CapturedHooks.current()

        def showwarning(message, category, filename, lineno, file=None, line=None):
            result = handler.handle_error(message, category, filename, lineno)
            if result is DispatchResult.DISABLED:
                captured.showwarning(message, category, filename, lineno, file, line)

        def excepthook(exc_type, exc_value, exc_traceback):
            if not isinstance(exc_value, Exception):
                captured.excepthook(exc_type, exc_value, exc_traceback)
                return
            handler.handle_exception(exc_value)

        def threading_excepthook(args):
            exc_value = args.exc_value
            if not isinstance(exc_value, Exception):
                captured.threading_excepthook(args)
                return
            previous = None
            if captured.threading_excepthook is not threading.__excepthook__:
                previous = lambda _exc: captured.threading_excepthook(args)  # noqa: E731
            handler.handle_exception(exc_value, previous=previous)

        warnings.showwarning = showwarning
        sys.excepthook = excepthook
        threading.excepthook = threading_excepthook
        atexit.register(handler.handle_shutdown)

        self._captured = captured
        self._showwarning = showwarning
        self._excepthook = excepthook
        self._threading_excepthook = threading_excepthook
        self._shutdown = handler.handle_shutdown
        LOGGER.debug("Installed error, exception and shutdown hooks")

    def restore(self) -> None:
        """Put the captured hooks back where ours are still in place; never raises."""

        captured = self._captured
        if captured is None:
            return
        self._restore(warnings, "showwarning", self._showwarning, captured.showwarning)
        self._restore(sys, "excepthook", self._excepthook, captured.excepthook)
        self._restore(threading, "excepthook", self._threading_excepthook, captured.threading_excepthook)
        if self._shutdown is not None:
            try:
                atexit.unregister(self._shutdown)
            except Exception:  # pragma: no cover - atexit.unregister does not raise in CPython
                LOGGER.debug("Unable to unregister shutdown hook", exc_info=True)
        self._captured = None
        self._showwarning = self._excepthook = self._threading_excepthook = None
        self._shutdown = None
        LOGGER.debug("Restored previous hooks")

    @staticmethod
    def _restore(module: Any, attribute: str, ours: Any, previous: Any) -> None:
        try:
            if getattr(module, attribute) is ours:
                setattr(module, attribute, previous)
            else:
                LOGGER.debug("%s.%s was replaced after install; leaving it", module.__name__, attribute)
        except Exception:
            LOGGER.debug("Unable to restore %s.%s", module.__name__, attribute, exc_info=True)
