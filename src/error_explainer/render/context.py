"""Output targets: where a rendered explanation goes and what that context looks like."""

from __future__ import annotations

import sys
from typing import IO, Any, Mapping, Protocol, runtime_checkable

__all__ = ["OutputTarget", "ConsoleTarget", "HttpTarget", "ERROR_STATUS"]

ERROR_STATUS = 500


@runtime_checkable
class OutputTarget(Protocol):
    """Capability a renderer writes through."""

    @property
    def cli_like(self) -> bool: ...

    @property
    def headers_sent(self) -> bool: ...

    def send_headers(self, status: int, content_type: str) -> None: ...

    def request_header(self, name: str) -> str | None: ...

    def write(self, text: str) -> None: ...


class ConsoleTarget:
    """Command-line context writing to a text stream (``sys.stdout`` by default)."""

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> IO[str]:
        # Resolved lazily so pytest's capsys and stream redirection are honoured.
        return self._stream if self._stream is not None else sys.stdout

    @property
    def cli_like(self) -> bool:
        return True

    @property
    def headers_sent(self) -> bool:
        return False

    def send_headers(self, status: int, content_type: str) -> None:
        return None

    def request_header(self, name: str) -> str | None:
        return None

    def isatty(self) -> bool:
        isatty = getattr(self.stream, "isatty", None)
        try:
            return bool(isatty()) if callable(isatty) else False
        except ValueError:
            return False

    def write(self, text: str) -> None:
        self.stream.write(text)
        flush = getattr(self.stream, "flush", None)
        if callable(flush):
            flush()


class HttpTarget:
    """HTTP context built from a WSGI environ; buffers the response body."""

    def __init__(self, environ: Mapping[str, Any] | None = None) -> None:
        self._environ = dict(environ or {})
        self._status: int | None = None
        self._content_type: str | None = None
        self._chunks: list[str] = []

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "HttpTarget":
        """Build a target from plain header names (``Accept``, ``Content-Type``)."""

        environ: dict[str, str] = {}
        for name, value in headers.items():
            key = name.upper().replace("-", "_")
            if key not in {"CONTENT_TYPE", "CONTENT_LENGTH"}:
                key = f"HTTP_{key}"
            environ[key] = value
        return cls(environ)

    @property
    def cli_like(self) -> bool:
        return False

    @property
    def headers_sent(self) -> bool:
        return self._status is not None

    @property
    def environ(self) -> Mapping[str, Any]:
        return self._environ

    @property
    def status(self) -> int | None:
        return self._status

    @property
    def content_type(self) -> str | None:
        return self._content_type

    @property
    def body(self) -> str:
        return "".join(self._chunks)

    def send_headers(self, status: int, content_type: str) -> None:
        if self._status is not None:
            raise RuntimeError("Response headers were already sent")
        self._status = status
        self._content_type = content_type

    def request_header(self, name: str) -> str | None:
        key = name.upper().replace("-", "_")
        if key in {"CONTENT_TYPE", "CONTENT_LENGTH"}:
            value = self._environ.get(key)
        else:
            value = self._environ.get(f"HTTP_{key}")
        return str(value) if value is not None else None

    def write(self, text: str) -> None:
        self._chunks.append(text)
