"""Renderer capability and helpers shared by every output format."""

from __future__ import annotations

from typing import Protocol

from ..config import Config
from ..models import Explanation, FaultKind
from .context import ERROR_STATUS, OutputTarget

__all__ = ["Renderer", "send_error_headers"]


class Renderer(Protocol):
    content_type: str

    def render(
        self,
        explanation: Explanation,
        config: Config,
        target: OutputTarget,
        *,
        kind: FaultKind = FaultKind.ERROR,
        is_shutdown: bool = False,
    ) -> None: ...


def send_error_headers(target: OutputTarget, content_type: str) -> None:
    """Emit the 500 status line once, before any body, for HTTP-like targets."""

    if target.cli_like or target.headers_sent:
        return
    target.send_headers(ERROR_STATUS, content_type)
