"""Output targets, format negotiation and the three renderers."""

from .base import Renderer, send_error_headers
from .context import ConsoleTarget, HttpTarget, OutputTarget
from .factory import RendererFactory
from .html_renderer import HtmlRenderer
from .json_renderer import JsonRenderer
from .negotiation import resolve_format, wants_json
from .paths import editor_href, relativize
from .text_renderer import TextRenderer

__all__ = [
    "ConsoleTarget",
    "HtmlRenderer",
    "HttpTarget",
    "JsonRenderer",
    "OutputTarget",
    "Renderer",
    "RendererFactory",
    "TextRenderer",
    "editor_href",
    "relativize",
    "resolve_format",
    "send_error_headers",
    "wants_json",
]
