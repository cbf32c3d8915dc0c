"""Severity codes, labels, and the reporting-mask/suppression policy."""

from __future__ import annotations

import contextlib
import contextvars
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Callable, Iterator

__all__ = [
    "Severity",
    "FATAL_SEVERITIES",
    "SUPPRESSED_MASK",
    "SuppressionPolicy",
    "severity_label",
    "severity_for_warning",
    "severity_for_exception",
    "is_fatal",
    "error_reporting",
    "suppressed",
]


class Severity(IntFlag):
    """Runtime fault conditions reported by the handler."""

    FATAL_ERROR = 1
    WARNING = 2
    PARSE_ERROR = 4
    NOTICE = 8
    CORE_ERROR = 16
    CORE_WARNING = 32
    COMPILE_ERROR = 64
    COMPILE_WARNING = 128
    USER_ERROR = 256
    USER_WARNING = 512
    USER_NOTICE = 1024
    RECOVERABLE_ERROR = 4096
    DEPRECATED = 8192
    USER_DEPRECATED = 16384

    ALL = (
        FATAL_ERROR
        | WARNING
        | PARSE_ERROR
        | NOTICE
        | CORE_ERROR
        | CORE_WARNING
        | COMPILE_ERROR
        | COMPILE_WARNING
        | USER_ERROR
        | USER_WARNING
        | USER_NOTICE
        | RECOVERABLE_ERROR
        | DEPRECATED
        | USER_DEPRECATED
    )


_LABELS: dict[int, str] = {
    Severity.FATAL_ERROR: "E_FATAL_ERROR",
    Severity.WARNING: "E_WARNING",
    Severity.PARSE_ERROR: "E_PARSE_ERROR",
    Severity.NOTICE: "E_NOTICE",
    Severity.CORE_ERROR: "E_CORE_ERROR",
    Severity.CORE_WARNING: "E_CORE_WARNING",
    Severity.COMPILE_ERROR: "E_COMPILE_ERROR",
    Severity.COMPILE_WARNING: "E_COMPILE_WARNING",
    Severity.USER_ERROR: "E_USER_ERROR",
    Severity.USER_WARNING: "E_USER_WARNING",
    Severity.USER_NOTICE: "E_USER_NOTICE",
    Severity.RECOVERABLE_ERROR: "E_RECOVERABLE_ERROR",
    Severity.DEPRECATED: "E_DEPRECATED",
    Severity.USER_DEPRECATED: "E_USER_DEPRECATED",
}

FATAL_SEVERITIES: frozenset[int] = frozenset(
    {
        Severity.FATAL_ERROR,
        Severity.PARSE_ERROR,
        Severity.CORE_ERROR,
        Severity.COMPILE_ERROR,
    }
)

SUPPRESSED_MASK = 0

# Checked in order, so subclasses must precede their bases.
_WARNING_SEVERITIES: tuple[tuple[type[Warning], Severity], ...] = (
    (DeprecationWarning, Severity.DEPRECATED),
    (PendingDeprecationWarning, Severity.DEPRECATED),
    (FutureWarning, Severity.USER_DEPRECATED),
    (UserWarning, Severity.USER_WARNING),
    (SyntaxWarning, Severity.COMPILE_WARNING),
    (ImportWarning, Severity.CORE_WARNING),
    (ResourceWarning, Severity.NOTICE),
)

_EXCEPTION_SEVERITIES: tuple[tuple[type[BaseException], Severity], ...] = (
    (SyntaxError, Severity.PARSE_ERROR),
    (SystemError, Severity.CORE_ERROR),
    (MemoryError, Severity.CORE_ERROR),
    (ImportError, Severity.COMPILE_ERROR),
    (Exception, Severity.FATAL_ERROR),
)

_REPORTING_MASK: contextvars.ContextVar[int] = contextvars.ContextVar(
    "error_explainer_reporting_mask", default=int(Severity.ALL)
)


def severity_label(severity: int) -> str:
    """Return the stable label for ``severity`` (``E_<code>`` when unknown)."""

    return _LABELS.get(int(severity), f"E_{int(severity)}")


def severity_for_warning(category: type[Warning] | None) -> Severity:
    """Map a ``warnings`` category onto a :class:`Severity`."""

    if isinstance(category, type):
        for base, severity in _WARNING_SEVERITIES:
            if issubclass(category, base):
                return severity
    return Severity.WARNING


def severity_for_exception(exc: BaseException) -> Severity:
    """Map an exception that terminated the interpreter onto a :class:`Severity`."""

    for base, severity in _EXCEPTION_SEVERITIES:
        if isinstance(exc, base):
            return severity
    return Severity.USER_NOTICE


def is_fatal(severity: int | None) -> bool:
    return severity is not None and int(severity) in FATAL_SEVERITIES


def error_reporting() -> int:
    """Return the reporting mask active in the current context."""

    return _REPORTING_MASK.get()


@contextlib.contextmanager
def suppressed(mask: int = SUPPRESSED_MASK) -> Iterator[None]:
    """Silence the error hook for the duration of the block.

    Warnings raised inside the block still go through ``warnings`` filtering
    but are dropped by the handler without being explained or rendered.
    """

    token = _REPORTING_MASK.set(mask)
    try:
        yield
    finally:
        _REPORTING_MASK.reset(token)


@dataclass(slots=True, frozen=True)
class SuppressionPolicy:
    """Decides whether the active reporting mask means "suppressed by caller"."""

    masks: frozenset[int] = field(default_factory=lambda: frozenset({SUPPRESSED_MASK}))
    reader: Callable[[], int] = error_reporting

    def is_suppressed(self) -> bool:
        return self.reader() in self.masks
