"""Extended runtime state captured next to a fault: the current object and the HTTP request."""

from __future__ import annotations

import inspect
import logging
from http.cookies import CookieError, SimpleCookie
from types import FrameType
from typing import Any, Callable, Iterable, List, Mapping, Tuple
from urllib.parse import parse_qsl

from .capture import INTERNAL_MODULES, is_internal_frame, qualified_name
from .config import Config
from .models import ObjectState, RequestState, StateSnapshot
from .sanitizer import DENYLISTED_KEYS, mask_args, sanitize

__all__ = [
    "MAX_ATTRIBUTES",
    "MAX_METHODS",
    "MAX_FORM_BYTES",
    "StateCollector",
    "collect_state",
    "current_object",
    "describe_object",
    "request_state",
]

LOGGER = logging.getLogger(__name__)

MAX_ATTRIBUTES = 20
MAX_METHODS = 30
MAX_FORM_BYTES = 64 * 1024
_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

StateCollector = Callable[[Iterable[FrameType], Any, Config], "StateSnapshot | None"]
_Scrub = Callable[[str], str]


def collect_state(frames: Iterable[FrameType], target: Any, config: Config) -> StateSnapshot | None:
    """Describe the innermost bound ``self`` and, for HTTP targets, the request.

    ``frames`` are live frames, innermost first. Every rendered value goes
    through the denylist and, when enabled, the sanitizer. Returns ``None``
    when there is nothing to show.
    """

    scrub = _scrubber(config)
    owner = current_object(frames)
    object_state = describe_object(owner, scrub=scrub) if owner is not None else None

    request = None
    environ = getattr(target, "environ", None)
    if environ is not None and not target.cli_like:
        request = request_state(environ, scrub=scrub)

    snapshot = StateSnapshot(current_object=object_state, request=request)
    return snapshot if snapshot else None


def current_object(frames: Iterable[FrameType]) -> Any:
    """The innermost ``self`` bound outside this package, or ``None``."""

    for frame in frames:
        if is_internal_frame(frame, INTERNAL_MODULES):
            continue
        code = frame.f_code
        if code.co_argcount and code.co_varnames[0] == "self":
            bound = frame.f_locals.get("self")
            if bound is not None:
                return bound
    return None


def describe_object(
    obj: Any,
    *,
    denylist: Iterable[str] = DENYLISTED_KEYS,
    scrub: _Scrub | None = None,
) -> ObjectState:
    """Class name, public attribute values and public method names of ``obj``."""

    clean = scrub or _unchanged
    cls = type(obj)
    attributes = [(name, value) for name, value in _instance_attributes(obj) if not name.startswith("__")]
    methods: list[str] = []
    for name in dir(cls):
        if len(methods) >= MAX_METHODS:
            break
        if name.startswith("_"):
            continue
        if inspect.isroutine(inspect.getattr_static(cls, name, None)):
            methods.append(f"{name}()")
    return ObjectState(
        class_name=qualified_name(cls),
        attributes=_rendered(attributes[:MAX_ATTRIBUTES], clean, denylist),
        methods=tuple(methods),
    )


def request_state(
    environ: Mapping[str, Any],
    *,
    denylist: Iterable[str] = DENYLISTED_KEYS,
    scrub: _Scrub | None = None,
) -> RequestState:
    """Summarize a WSGI environ: query string, body metadata, form fields and cookies.

    Form fields are read only from a seekable ``wsgi.input``; the stream
    position is restored afterwards.
    """

    clean = scrub or _unchanged
    content_type = str(environ.get("CONTENT_TYPE") or "")
    content_length = str(environ.get("CONTENT_LENGTH") or "")
    content: list[str] = []
    if content_type:
        content.append(f"Content-Type: {content_type}")
    if content_length:
        content.append(f"Content-Length: {content_length}")

    path = f"{environ.get('SCRIPT_NAME') or ''}{environ.get('PATH_INFO') or ''}"
    query = parse_qsl(str(environ.get("QUERY_STRING") or ""), keep_blank_values=True)
    return RequestState(
        method=str(environ.get("REQUEST_METHOD") or ""),
        path=clean(path),
        query=_rendered(query, clean, denylist),
        content=tuple(content),
        form=_rendered(_form_fields(environ, content_type), clean, denylist),
        cookies=_rendered(_cookie_pairs(environ.get("HTTP_COOKIE")), clean, denylist),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _scrubber(config: Config) -> _Scrub:
    if not config.sanitize.enabled:
        return _unchanged
    sanitizer = config.sanitizer_config()
    return lambda text: sanitize(text, sanitizer)


def _unchanged(text: str) -> str:
    return text


def _rendered(pairs: Iterable[Tuple[str, Any]], clean: _Scrub, denylist: Iterable[str]) -> tuple[str, ...]:
    return tuple(clean(entry) for entry in mask_args(pairs, denylist=denylist))


def _instance_attributes(obj: Any) -> List[Tuple[str, Any]]:
    try:
        return list(vars(obj).items())
    except TypeError:
        pass
    slots = getattr(type(obj), "__slots__", ())
    if isinstance(slots, str):
        slots = (slots,)
    return [(name, getattr(obj, name)) for name in slots if hasattr(obj, name)]


def _form_fields(environ: Mapping[str, Any], content_type: str) -> List[Tuple[str, str]]:
    if not content_type.lower().startswith(_FORM_CONTENT_TYPE):
        return []
    stream = environ.get("wsgi.input")
    seekable = getattr(stream, "seekable", None)
    if not callable(seekable) or not seekable():
        return []
    try:
        position = stream.tell()
        stream.seek(0)
        body = stream.read(MAX_FORM_BYTES)
        stream.seek(position)
    except (OSError, ValueError) as exc:
        LOGGER.debug("Request body not readable for the state dump: %s", exc)
        return []
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return parse_qsl(body, keep_blank_values=True)


def _cookie_pairs(header: Any) -> List[Tuple[str, str]]:
    if not header:
        return []
    jar: SimpleCookie = SimpleCookie()
    try:
        jar.load(str(header))
    except CookieError:
        return []
    return [(name, morsel.value) for name, morsel in jar.items()]
