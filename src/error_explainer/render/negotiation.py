"""Deterministic output-format selection."""

from __future__ import annotations

from ..config import OUTPUT_AUTO, OUTPUT_HTML, OUTPUT_JSON, OUTPUT_TEXT, Config
from .context import OutputTarget

__all__ = ["resolve_format", "wants_json"]

_JSON_HEADERS = ("Accept", "Content-Type")


def resolve_format(config: Config, target: OutputTarget) -> str:
    """Pick ``text``/``html``/``json`` for ``target``.

    An explicit configured format wins over the context default, but an HTTP
    request whose ``Accept`` or ``Content-Type`` mentions JSON always gets JSON.
    """

    fmt = (config.output or OUTPUT_AUTO).lower()
    if fmt == OUTPUT_AUTO:
        fmt = OUTPUT_TEXT if target.cli_like else OUTPUT_HTML
    if not target.cli_like and wants_json(target):
        return OUTPUT_JSON
    return fmt


def wants_json(target: OutputTarget) -> bool:
    for name in _JSON_HEADERS:
        value = target.request_header(name)
        if value and "json" in value.lower():
            return True
    return False
