"""Value objects flowing through the capture → explain → render pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

__all__ = [
    "FaultKind",
    "DispatchResult",
    "StackFrame",
    "FaultEvent",
    "OriginalFault",
    "ObjectState",
    "RequestState",
    "StateSnapshot",
    "Explanation",
]


class FaultKind(str, Enum):
    """Which hook point captured the fault."""

    ERROR = "error"
    EXCEPTION = "exception"
    SHUTDOWN = "shutdown"


class DispatchResult(Enum):
    """Outcome of a single hook callback."""

    SUPPRESSED = "suppressed"
    DISABLED = "disabled"
    HANDLED = "handled"


@dataclass(slots=True, frozen=True)
class StackFrame:
    """One normalized call-stack entry."""

    function: str = ""
    file: str | None = None
    line: int | None = None
    class_name: str | None = None
    call_type: str | None = None
    args: tuple[Any, ...] = ()
    locals: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "StackFrame":
        """Build a frame from a loosely-typed mapping, coercing missing fields."""

        file = data.get("file")
        line = data.get("line")
        cls_name = data.get("class")
        call_type = data.get("type")
        args = data.get("args")
        local_values = data.get("locals")
        return cls(
            function=str(data.get("function") or ""),
            file=str(file) if file else None,
            line=_coerce_int(line),
            class_name=str(cls_name) if cls_name else None,
            call_type=str(call_type) if call_type else None,
            args=tuple(args) if isinstance(args, (list, tuple)) else (),
            locals=tuple(str(value) for value in local_values) if isinstance(local_values, (list, tuple)) else (),
        )

    def signature(self) -> str:
        owner = self.class_name or ""
        qualifier = self.call_type or ""
        name = self.function or "unknown"
        return f"{owner}{qualifier}{name}()".strip()

    def location(self) -> str:
        if not self.file:
            return ""
        if self.line:
            return f"{self.file}:{self.line}"
        return self.file

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "file": self.file,
            "line": self.line,
            "class": self.class_name,
            "type": self.call_type,
            "function": self.function,
            "args": list(self.args),
        }
        if self.locals:
            data["locals"] = list(self.locals)
        return data


@dataclass(slots=True, frozen=True)
class FaultEvent:
    """Immutable description of one captured fault."""

    kind: FaultKind
    message: str
    file: str | None = None
    line: int | None = None
    severity: int | None = None
    raw_trace: Sequence[Any] = ()
    exception_class: str | None = None


@dataclass(slots=True, frozen=True)
class OriginalFault:
    message: str
    file: str | None = None
    line: int | None = None

    def location(self) -> str:
        if not self.file:
            return ""
        return f"{self.file}:{self.line}" if self.line else self.file


@dataclass(slots=True, frozen=True)
class ObjectState:
    """Introspection of the innermost bound ``self`` at the time of the fault."""

    class_name: str
    attributes: tuple[str, ...] = ()
    methods: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class RequestState:
    """Sanitized view of the HTTP request being served when the fault happened."""

    method: str = ""
    path: str = ""
    query: tuple[str, ...] = ()
    content: tuple[str, ...] = ()
    form: tuple[str, ...] = ()
    cookies: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class StateSnapshot:
    """Extended runtime state shown next to the stack trace."""

    current_object: ObjectState | None = None
    request: RequestState | None = None

    def __bool__(self) -> bool:
        return self.current_object is not None or self.request is not None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.current_object is not None:
            payload["object"] = {
                "class": self.current_object.class_name,
                "attributes": list(self.current_object.attributes),
                "methods": list(self.current_object.methods),
            }
        if self.request is not None:
            request = self.request
            payload["request"] = {
                "method": request.method,
                "path": request.path,
                "query": list(request.query),
                "content": list(request.content),
                "form": list(request.form),
                "cookies": list(request.cookies),
            }
        return payload


@dataclass(slots=True, frozen=True)
class Explanation:
    """Renderer-agnostic explanation of a :class:`FaultEvent`.

    ``suggestions`` never holds duplicates and ``title`` is never empty; both
    are enforced at construction time.
    """

    title: str
    details: str
    severity_label: str
    original: OriginalFault
    suggestions: tuple[str, ...] = ()
    trace: tuple[StackFrame, ...] = field(default_factory=tuple)
    exception_class: str | None = None
    state: StateSnapshot | None = None

    def __post_init__(self) -> None:
        if not self.title:
            raise ValueError("Explanation title must not be empty")
        unique = tuple(dict.fromkeys(self.suggestions))
        if unique != tuple(self.suggestions):
            object.__setattr__(self, "suggestions", unique)

    @property
    def message(self) -> str:
        return self.original.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the stable key schema used by the JSON renderer."""

        payload: dict[str, Any] = {
            "title": self.title,
            "details": self.details,
            "suggestions": list(self.suggestions),
            "severityLabel": self.severity_label,
            "original": {
                "message": self.original.message,
                "file": self.original.file,
                "line": self.original.line,
            },
            "trace": [frame.to_dict() for frame in self.trace],
        }
        if self.exception_class:
            payload["exceptionClass"] = self.exception_class
        if self.state:
            payload["state"] = self.state.to_dict()
        return payload


def _coerce_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
