"""Format name → renderer instance."""

from __future__ import annotations

from typing import Mapping

from ..config import OUTPUT_HTML, OUTPUT_JSON, OUTPUT_TEXT
from ..errors import ConfigurationError
from .base import Renderer
from .html_renderer import HtmlRenderer
from .json_renderer import JsonRenderer
from .text_renderer import TextRenderer

__all__ = ["RendererFactory"]


class RendererFactory:
    """Builds renderers, sharing one environment mapping between them."""

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ

    def create(self, fmt: str) -> Renderer:
        if fmt == OUTPUT_JSON:
            return JsonRenderer()
        if fmt == OUTPUT_HTML:
            return HtmlRenderer(environ=self._environ)
        if fmt == OUTPUT_TEXT:
            return TextRenderer(environ=self._environ)
        raise ConfigurationError(f"No renderer for output format {fmt!r}")
